"""API v1 router aggregating all endpoints."""

from fastapi import APIRouter

from app.api.v1 import movie_query, movies

api_router = APIRouter()

api_router.include_router(movie_query.router, tags=["movie-query"])
api_router.include_router(movies.router, tags=["movies"])
