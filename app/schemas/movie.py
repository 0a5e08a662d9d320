"""Movie schemas: normalized catalog metadata shared by store, catalog and API."""

import re
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.recommendation import RecommendationRecord

_NON_DIGITS = re.compile(r"[^\d]")


class MovieRecord(BaseModel):
    """Movie metadata as returned to clients.

    Field names serialize with the catalog's casing (``imdbID``,
    ``imdbRating``, ``imdbVotes``) because the mobile client reads them that way.
    """

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    title: str = ""
    year: str = ""
    imdb_id: str = Field(default="", alias="imdbID")
    poster: str = ""
    imdb_rating: str = Field(default="N/A", alias="imdbRating")
    imdb_votes: str = Field(default="", alias="imdbVotes")
    plot: str = ""
    director: str = ""
    actors: str = ""
    genre: str = ""
    created_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())

    @property
    def numeric_rating(self) -> float | None:
        try:
            return float(self.imdb_rating)
        except (TypeError, ValueError):
            return None

    @property
    def primary_genre(self) -> str:
        return self.genre.split(",")[0].strip() if self.genre else ""


class MovieRead(MovieRecord):
    """Movie row for the user's movies tab, with its stored recommendation."""

    votes_display: str = Field(default="0", alias="votesDisplay")
    recommendation: RecommendationRecord | None = None


def _pick(payload: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = payload.get(key)
        if value:
            return value
    return None


def normalize_movie(payload: dict[str, Any] | Any) -> MovieRecord:
    """Normalize an OMDb payload, a stored row or an ORM object into a MovieRecord.

    OMDb uses capitalized keys (``Title``, ``imdbID``), stored rows use
    snake case. Missing values become empty strings, a missing rating
    becomes ``"N/A"`` and a missing id is generated.
    """
    if isinstance(payload, MovieRecord):
        return payload
    if not isinstance(payload, dict):
        payload = {
            column: getattr(payload, column, None)
            for column in (
                "id", "title", "year", "imdb_id", "poster", "imdb_rating",
                "imdb_votes", "plot", "director", "actors", "genre", "created_at",
            )
        }

    created_at = payload.get("created_at")
    if isinstance(created_at, datetime):
        created_at = created_at.isoformat()

    movie_id = payload.get("id")
    return MovieRecord(
        id=str(movie_id) if movie_id else str(uuid4()),
        title=str(_pick(payload, "Title", "title") or ""),
        year=str(_pick(payload, "Year", "year") or ""),
        imdb_id=str(_pick(payload, "imdbID", "imdb_id", "imdbid") or ""),
        poster=str(_pick(payload, "Poster", "poster") or ""),
        imdb_rating=str(_pick(payload, "imdbRating", "imdb_rating", "imdbrating") or "N/A"),
        imdb_votes=str(_pick(payload, "imdbVotes", "imdb_votes", "imdbvotes") or ""),
        plot=str(_pick(payload, "Plot", "plot") or ""),
        director=str(_pick(payload, "Director", "director") or ""),
        actors=str(_pick(payload, "Actors", "actors") or ""),
        genre=str(_pick(payload, "Genre", "genre") or ""),
        created_at=created_at or datetime.now(UTC).isoformat(),
    )


def format_vote_count(raw: Any) -> str:
    """Format a raw vote count for display: "1,234,567" or "0" when unusable."""
    if not raw or raw == "N/A":
        return "0"
    digits = _NON_DIGITS.sub("", str(raw))
    if not digits:
        return "0"
    count = int(digits)
    if count <= 0:
        return "0"
    return f"{count:,}"
