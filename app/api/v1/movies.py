"""Movies endpoint: the user's catalog with stored recommendations."""

from __future__ import annotations

from fastapi import APIRouter, Query

from app.deps import DbSession
from app.schemas.movie import MovieRead, format_vote_count, normalize_movie
from app.schemas.recommendation import recommendation_from_row
from app.services.movie_store import movie_store

router = APIRouter()


@router.get("/movies", response_model=list[MovieRead])
async def list_movies(
    db: DbSession,
    user_id: str = Query(..., min_length=1),
) -> list[MovieRead]:
    """Movies the user has asked about, newest first."""
    rows = await movie_store.list_user_movies(db, user_id)
    return [
        MovieRead(
            **normalize_movie(row).model_dump(),
            votes_display=format_vote_count(row.imdb_votes),
            recommendation=(
                recommendation_from_row(row.recommendation) if row.recommendation else None
            ),
        )
        for row in rows
    ]
