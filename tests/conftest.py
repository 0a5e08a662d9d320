"""Shared fakes: scripted LLM, OMDb transport and an in-memory movie store."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest

from app.services.llm import Completion

# ── LLM ────────────────────────────────────────────────────────────


class FakeLLM:
    """Answers per ``step``; an Exception value is raised instead."""

    def __init__(self, replies: dict[str, Any] | None = None, tokens: int = 10) -> None:
        self.replies = replies or {}
        self.tokens = tokens
        self.calls: list[tuple[str, list[dict[str, str]]]] = []

    def steps(self) -> list[str]:
        return [step for step, _ in self.calls]

    async def complete(self, messages, *, temperature, max_tokens, step="completion"):
        self.calls.append((step, messages))
        reply = self.replies.get(step, "")
        if isinstance(reply, Exception):
            raise reply
        return Completion(text=reply, tokens_used=self.tokens)


@pytest.fixture
def make_llm() -> Callable[..., FakeLLM]:
    return FakeLLM


# ── OMDb ───────────────────────────────────────────────────────────

NOT_FOUND = {"Response": "False", "Error": "Movie not found!"}


class OmdbRoutes:
    """Canned OMDb answers keyed by (param, value); everything else is not found."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], dict] = {}
        self.calls: list[dict[str, str]] = []

    def add_title(self, payload: dict) -> None:
        self.routes[("t", payload["Title"])] = payload
        self.routes[("i", payload["imdbID"])] = payload

    def add_search(self, keyword: str, hits: list[dict]) -> None:
        self.routes[("s", keyword)] = {"Response": "True", "Search": hits}

    def add_detail(self, payload: dict) -> None:
        self.routes[("i", payload["imdbID"])] = payload

    def requested(self, key: str) -> list[str]:
        return [c[key] for c in self.calls if key in c]

    def answer(self, params: dict[str, str]) -> dict:
        self.calls.append({k: v for k, v in params.items() if k != "apikey"})
        for key in ("t", "i", "s"):
            if key in params:
                return self.routes.get((key, params[key]), NOT_FOUND)
        return NOT_FOUND


class _FakeAsyncClient:
    def __init__(self, routes: OmdbRoutes) -> None:
        self.routes = routes

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def get(self, url, params=None):
        resp = MagicMock()
        resp.raise_for_status.return_value = None
        resp.json.return_value = self.routes.answer(params or {})
        return resp


@pytest.fixture
def omdb_routes():
    routes = OmdbRoutes()
    with patch("app.services.omdb.httpx.AsyncClient", side_effect=lambda **kw: _FakeAsyncClient(routes)):
        yield routes


def _omdb_movie(title: str, year: str, imdb_id: str, **extra: str) -> dict:
    payload = {
        "Title": title,
        "Year": year,
        "imdbID": imdb_id,
        "Poster": f"https://img.example/{imdb_id}.jpg",
        "imdbRating": "7.5",
        "imdbVotes": "450,123",
        "Plot": "A plot.",
        "Director": "Someone",
        "Actors": "Actor One, Actor Two",
        "Genre": "Drama",
        "Response": "True",
    }
    payload.update(extra)
    return payload


@pytest.fixture
def omdb_movie() -> Callable[..., dict]:
    return _omdb_movie


# ── Movie store ────────────────────────────────────────────────────


class FakeMovieStore:
    """In-memory stand-in for MovieStore keyed the same way (user, imdb id)."""

    def __init__(self) -> None:
        self.movies: list[SimpleNamespace] = []
        self.recommendations: list[SimpleNamespace] = []

    async def find_by_title(self, db, title, user_id):
        for row in self.movies:
            if row.user_id == user_id and row.title.lower() == title.lower():
                return row
        return None

    async def find_by_imdb_id(self, db, user_id, imdb_id):
        for row in self.movies:
            if row.user_id == user_id and row.imdb_id == imdb_id:
                return row
        return None

    async def ensure_user_movie(self, db, movie, user_id):
        existing = await self.find_by_imdb_id(db, user_id, movie.imdb_id)
        if existing:
            return existing
        row = SimpleNamespace(
            id=uuid4(),
            user_id=user_id,
            created_at=datetime.now(UTC),
            **movie.model_dump(exclude={"id", "created_at"}),
        )
        self.movies.append(row)
        return row

    async def get_recommendation(self, db, movie_id):
        for row in self.recommendations:
            if str(row.movie_id) == str(movie_id):
                return row
        return None

    async def save_recommendation(self, db, movie_id, recommendation):
        row = SimpleNamespace(
            id=uuid4(),
            movie_id=movie_id,
            recommendation=recommendation.recommendation,
            worth_watching=recommendation.worth_watching,
            created_at=datetime.now(UTC),
        )
        self.recommendations.append(row)
        return row


@pytest.fixture
def fake_store() -> FakeMovieStore:
    return FakeMovieStore()
