"""Query request/response schemas for the movie butler endpoint."""

import time
from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.movie import MovieRecord
from app.schemas.recommendation import RecommendationRecord


class QueryRequest(BaseModel):
    """Inbound body. Field validation happens in the endpoint so the error
    messages match what the client expects."""

    model_config = ConfigDict(populate_by_name=True)

    query: str | None = None
    user_id: str | None = Field(default=None, alias="userId")
    conversation_id: str | None = Field(default=None, alias="conversationId")
    session_id: str | None = Field(default=None, alias="sessionId")

    def resolved_session_id(self) -> str:
        return self.session_id or f"session_{int(time.time() * 1000)}"


class ConversationStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    turn_count: int = Field(default=0, alias="turnCount")
    total_tokens: int = Field(default=0, alias="totalTokens")


class QueryResult(BaseModel):
    """What the pipeline produces for one query.

    ``error`` is set only when the pipeline caught an unexpected failure;
    ``message`` then carries the apology shown to the user.
    """

    message: str
    movie: MovieRecord | None = None
    recommendation: RecommendationRecord | None = None
    logs: list[dict] = Field(default_factory=list)
    conversation: ConversationStats = Field(default_factory=ConversationStats)
    error: str | None = None

    def to_response(self) -> dict:
        data: dict = {
            "message": self.message,
            "logs": self.logs,
            "conversation": self.conversation.model_dump(by_alias=True),
        }
        if self.movie is not None:
            data["movie"] = self.movie.model_dump(by_alias=True)
        if self.recommendation is not None:
            data["recommendation"] = self.recommendation.model_dump()
        return {"data": data}


class ChatMessage(BaseModel):
    """A chat bubble as the client keeps it. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str | None = None
    content: str
    is_user: bool
    movie: MovieRecord | None = None
    recommendation: RecommendationRecord | None = None
    created_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())

    @classmethod
    def from_user(cls, content: str, user_id: str | None = None) -> "ChatMessage":
        return cls(content=content, is_user=True, user_id=user_id)

    @classmethod
    def from_response(cls, payload: dict, user_id: str | None = None) -> "ChatMessage":
        """Build an assistant bubble from a ``{"data": {...}}`` response body."""
        data = payload.get("data") or {}
        movie = data.get("movie")
        recommendation = data.get("recommendation")
        return cls(
            content=data.get("message") or payload.get("error") or "",
            is_user=False,
            user_id=user_id,
            movie=MovieRecord.model_validate(movie) if movie else None,
            recommendation=(
                RecommendationRecord.model_validate(recommendation) if recommendation else None
            ),
        )
