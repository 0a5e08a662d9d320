"""Recommendation schemas."""

from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class RecommendationRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    movie_id: str | None = None
    recommendation: str
    worth_watching: bool = False
    created_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())


class GeneratedRecommendation(RecommendationRecord):
    """A freshly generated recommendation, before persistence."""

    tokens_used: int = 0
    used_fallback: bool = False


def recommendation_from_row(row) -> RecommendationRecord:
    """Convert a ``recommendations`` row into the API shape."""
    created_at = row.created_at
    return RecommendationRecord(
        id=str(row.id),
        movie_id=str(row.movie_id) if row.movie_id else None,
        recommendation=row.recommendation,
        worth_watching=bool(row.worth_watching),
        created_at=created_at.isoformat() if created_at else datetime.now(UTC).isoformat(),
    )
