"""Structured logging for the butler service.

structlog renders JSON in production and a console view when ``DEBUG`` is
set. Every line carries whichever of request, user, conversation and
session ids are bound for the current request; the pipeline's step trace
writes through the same loggers.
"""

import logging
import sys
from contextvars import ContextVar, Token

import structlog

from app.config import get_settings

# ── Per-request context ──────────────────────────────────────────────

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
conversation_id_var: ContextVar[str | None] = ContextVar("conversation_id", default=None)
session_id_var: ContextVar[str | None] = ContextVar("session_id", default=None)

_CONTEXT_FIELDS: tuple[tuple[ContextVar[str | None], str], ...] = (
    (request_id_var, "request_id"),
    (user_id_var, "user_id"),
    (conversation_id_var, "conversation_id"),
    (session_id_var, "session_id"),
)

# Upstream clients log every request at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "uvicorn.access", "sqlalchemy.engine")


def bind_query_context(
    conversation_id: str,
    user_id: str | None = None,
    session_id: str | None = None,
) -> list[tuple[ContextVar[str | None], Token]]:
    """Bind the ids of one butler query; guests leave ``user_id`` unbound.

    Returns the tokens so a caller can restore the previous values.
    """
    tokens = [(conversation_id_var, conversation_id_var.set(conversation_id))]
    if user_id:
        tokens.append((user_id_var, user_id_var.set(user_id)))
    if session_id:
        tokens.append((session_id_var, session_id_var.set(session_id)))
    return tokens


def reset_context(tokens: list[tuple[ContextVar[str | None], Token]]) -> None:
    for var, token in reversed(tokens):
        var.reset(token)


def _inject_context_vars(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict,
) -> dict:
    for var, key in _CONTEXT_FIELDS:
        value = var.get()
        if value is not None:
            event_dict.setdefault(key, value)
    return event_dict


def setup_logging(level: str | None = None) -> None:
    """Configure structlog and the stdlib root logger.

    ``level`` overrides ``LOG_LEVEL``; the developer script uses it to
    surface pipeline steps.
    """
    settings = get_settings()
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        _inject_context_vars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.debug:
        renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
