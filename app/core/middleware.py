"""Request middleware: ids for structured logs and request timing."""

import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.core.logging import (
    bind_query_context,
    get_logger,
    request_id_var,
    reset_context,
    user_id_var,
)

logger = get_logger(__name__)

# Only the butler endpoint belongs to a conversation
CONVERSATION_PATHS = ("/api/v1/process-movie-query",)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Binds request, user and conversation ids for the duration of a request.

    The request id comes from ``x-request-id`` (generated when absent) and is
    echoed on the response. The user id is read from ``x-user-id`` or the
    movies tab's ``user_id`` query parameter. ``x-conversation-id`` is bound
    on conversation routes only; the endpoint rebinds it from the body.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        tokens = [(request_id_var, request_id_var.set(request_id))]

        path = request.url.path
        conversation_id = request.headers.get("x-conversation-id")
        if conversation_id and path in CONVERSATION_PATHS:
            tokens += bind_query_context(conversation_id)

        user_id = request.headers.get("x-user-id") or request.query_params.get("user_id")
        if user_id:
            tokens.append((user_id_var, user_id_var.set(user_id)))

        t0 = time.monotonic()
        response = await call_next(request)
        duration_ms = int((time.monotonic() - t0) * 1000)

        response.headers["x-request-id"] = request_id
        log_fn = logger.warning if response.status_code >= 500 else logger.debug
        log_fn(
            "request_finished",
            method=request.method,
            path=path,
            status_code=response.status_code,
            duration_ms=duration_ms,
        )
        reset_context(tokens)
        return response
