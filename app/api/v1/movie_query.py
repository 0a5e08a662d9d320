"""Movie query endpoint: the single entry point the chat client calls."""

from __future__ import annotations

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from app.core.logging import bind_query_context, get_logger
from app.deps import DbSession
from app.schemas.chat import QueryRequest
from app.services.butler import get_movie_butler

logger = get_logger(__name__)

router = APIRouter()


def _error(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    body = {"error": error}
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)


@router.post("/process-movie-query")
async def process_movie_query(body: QueryRequest, db: DbSession) -> JSONResponse:
    """Run one user query through the movie butler.

    Returns ``{"data": {...}}`` on success. A pipeline that caught an
    internal failure answers 500 with its apology in ``error``.
    """
    query = (body.query or "").strip()
    if not query:
        return _error(status.HTTP_400_BAD_REQUEST, "Query is required")
    if not body.conversation_id:
        return _error(status.HTTP_400_BAD_REQUEST, "Conversation ID is required")

    bind_query_context(body.conversation_id, body.user_id, body.resolved_session_id())
    logger.info("movie_query_received", query_length=len(query), guest=body.user_id is None)

    try:
        result = await get_movie_butler().process_query(
            query,
            body.conversation_id,
            user_id=body.user_id,
            db=db,
        )
    except Exception as e:
        logger.exception("movie_query_unhandled")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", str(e))

    if result.error:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, result.message, result.error)
    return JSONResponse(content=result.to_response())
