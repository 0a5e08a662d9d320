"""User-scoped movie store: movies and recommendations per user.

Every user gets their own copy of a movie row; recommendations hang off
that copy, so one user's history never leaks into another's.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from typing import TypeVar
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.models.movie import Movie
from app.models.recommendation import Recommendation
from app.schemas.movie import MovieRecord
from app.schemas.recommendation import RecommendationRecord

logger = get_logger(__name__)

T = TypeVar("T")

FUZZY_CANDIDATES = 3

_NON_WORD = re.compile(r"[^\w\s]")


# ── Fuzzy title matching ─────────────────────────────────────────────


def _normalize(text: str) -> str:
    return _NON_WORD.sub("", text.lower()).strip()


def title_match_score(search: str, candidate: str) -> int:
    """Shared significant words (x10) minus the length difference."""
    search_norm = _normalize(search)
    candidate_norm = _normalize(candidate)
    common = sum(
        1 for word in search_norm.split(" ")
        if len(word) > 2 and word in candidate_norm
    )
    return common * 10 - abs(len(search_norm) - len(candidate_norm))


def best_title_match(
    search: str,
    candidates: Sequence[T],
    key: Callable[[T], str] = lambda m: m.title,
) -> T:
    """Highest scoring candidate; ties and all-negative scores keep store order."""
    best = candidates[0]
    best_score = 0
    for candidate in candidates:
        score = title_match_score(search, key(candidate))
        if score > best_score:
            best, best_score = candidate, score
    return best


def escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def fuzzy_patterns(title: str) -> list[str]:
    """ILIKE patterns: raw, colon-stripped, spaces as wildcards.

    Literal ``%`` and ``_`` in the title are escaped with a backslash.
    """
    escaped = escape_like(title)
    return [
        f"%{escaped}%",
        f"%{escaped.replace(':', '')}%",
        "%" + re.sub(r"\s+", "%", escaped) + "%",
    ]


# ── Store ────────────────────────────────────────────────────────────


def _as_uuid(value: UUID | str) -> UUID:
    return value if isinstance(value, UUID) else UUID(str(value))


class MovieStore:
    async def find_by_title(
        self,
        db: AsyncSession,
        title: str,
        user_id: str,
    ) -> Movie | None:
        """Exact case-insensitive match, then the best of a few fuzzy matches."""
        result = await db.execute(
            select(Movie)
            .where(Movie.user_id == user_id)
            .where(func.lower(Movie.title) == title.lower())
            .order_by(Movie.created_at.desc())
            .limit(1)
        )
        exact = result.scalars().first()
        if exact:
            logger.debug("movie_store_exact_match", title=title, movie_id=str(exact.id))
            return exact

        for pattern in fuzzy_patterns(title):
            result = await db.execute(
                select(Movie)
                .where(Movie.user_id == user_id)
                .where(Movie.title.ilike(pattern, escape="\\"))
                .limit(FUZZY_CANDIDATES)
            )
            matches = list(result.scalars().all())
            if matches:
                best = best_title_match(title, matches)
                logger.debug(
                    "movie_store_fuzzy_match",
                    title=title,
                    pattern=pattern,
                    matched=best.title,
                    options=len(matches),
                )
                return best

        return None

    async def find_by_imdb_id(
        self,
        db: AsyncSession,
        user_id: str,
        imdb_id: str,
    ) -> Movie | None:
        result = await db.execute(
            select(Movie)
            .where(Movie.user_id == user_id)
            .where(Movie.imdb_id == imdb_id)
        )
        return result.scalar_one_or_none()

    async def ensure_user_movie(
        self,
        db: AsyncSession,
        movie: MovieRecord,
        user_id: str,
    ) -> Movie:
        """Return the user's row for this catalog id, inserting it on first reference."""
        existing = await self.find_by_imdb_id(db, user_id, movie.imdb_id)
        if existing:
            return existing

        async with db.begin_nested():
            row = Movie(
                user_id=user_id,
                title=movie.title,
                year=movie.year,
                imdb_id=movie.imdb_id,
                poster=movie.poster,
                imdb_rating=movie.imdb_rating,
                imdb_votes=movie.imdb_votes,
                plot=movie.plot,
                director=movie.director,
                actors=movie.actors,
                genre=movie.genre,
            )
            db.add(row)
            await db.flush()

        logger.info("movie_saved", movie_id=str(row.id), title=row.title)
        return row

    async def get_recommendation(
        self,
        db: AsyncSession,
        movie_id: UUID | str,
    ) -> Recommendation | None:
        result = await db.execute(
            select(Recommendation).where(Recommendation.movie_id == _as_uuid(movie_id))
        )
        return result.scalar_one_or_none()

    async def save_recommendation(
        self,
        db: AsyncSession,
        movie_id: UUID | str,
        recommendation: RecommendationRecord,
    ) -> Recommendation:
        async with db.begin_nested():
            row = Recommendation(
                movie_id=_as_uuid(movie_id),
                recommendation=recommendation.recommendation,
                worth_watching=recommendation.worth_watching,
            )
            db.add(row)
            await db.flush()

        logger.info("recommendation_saved", movie_id=str(movie_id), recommendation_id=str(row.id))
        return row

    async def list_user_movies(
        self,
        db: AsyncSession,
        user_id: str,
    ) -> list[Movie]:
        result = await db.execute(
            select(Movie)
            .where(Movie.user_id == user_id)
            .order_by(Movie.created_at.desc())
        )
        return list(result.scalars().all())


movie_store = MovieStore()
