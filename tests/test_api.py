"""Tests for the HTTP surface: validation, response shapes and the movies tab."""

from __future__ import annotations

from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from app.core.logging import conversation_id_var, session_id_var, user_id_var
from app.database import get_db
from app.main import app
from app.schemas.chat import ConversationStats, QueryResult
from app.schemas.movie import MovieRecord
from app.schemas.recommendation import RecommendationRecord
from app.services.butler import APOLOGY


async def _no_db():
    yield None


@pytest.fixture
def client():
    app.dependency_overrides[get_db] = _no_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def butler():
    mock = MagicMock()
    mock.process_query = AsyncMock()
    with patch("app.api.v1.movie_query.get_movie_butler", return_value=mock):
        yield mock


URL = "/api/v1/process-movie-query"


class TestValidation:
    def test_missing_query(self, client, butler):
        resp = client.post(URL, json={"conversationId": "c1"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Query is required"}
        butler.process_query.assert_not_called()

    def test_blank_query(self, client, butler):
        resp = client.post(URL, json={"query": "   ", "conversationId": "c1"})
        assert resp.status_code == 400

    def test_missing_conversation_id(self, client, butler):
        resp = client.post(URL, json={"query": "Heat"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Conversation ID is required"}


class TestProcessQuery:
    def test_success_shape(self, client, butler):
        butler.process_query.return_value = QueryResult(
            message="Great choice!",
            movie=MovieRecord(title="Heat", year="1995", imdb_id="tt0113277"),
            recommendation=RecommendationRecord(recommendation="Watch it.", worth_watching=True),
            logs=[{"step": "PROCESS_QUERY", "status": "SUCCESS", "timestamp": "t"}],
            conversation=ConversationStats(turn_count=1, total_tokens=12),
        )

        resp = client.post(URL, json={"query": "  Heat ", "conversationId": "c1", "userId": "u1"})

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["message"] == "Great choice!"
        assert data["movie"]["imdbID"] == "tt0113277"
        assert data["recommendation"]["worth_watching"] is True
        assert data["conversation"] == {"turnCount": 1, "totalTokens": 12}
        butler.process_query.assert_awaited_once_with("Heat", "c1", user_id="u1", db=None)

    def test_pipeline_error(self, client, butler):
        butler.process_query.return_value = QueryResult(message=APOLOGY, error="boom")
        resp = client.post(URL, json={"query": "Heat", "conversationId": "c1"})
        assert resp.status_code == 500
        assert resp.json() == {"error": APOLOGY, "details": "boom"}

    def test_unhandled_error(self, client, butler):
        butler.process_query.side_effect = RuntimeError("kaboom")
        resp = client.post(URL, json={"query": "Heat", "conversationId": "c1"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal server error", "details": "kaboom"}

    def test_request_id_echoed(self, client, butler):
        butler.process_query.return_value = QueryResult(message="Hi")
        resp = client.post(URL, json={"query": "hi", "conversationId": "c1"}, headers={"x-request-id": "req-1"})
        assert resp.headers["x-request-id"] == "req-1"


class TestMovies:
    def test_lists_user_movies(self, client):
        movie_id = uuid4()
        row = SimpleNamespace(
            id=movie_id, title="Heat", year="1995", imdb_id="tt0113277", poster="",
            imdb_rating="8.3", imdb_votes="1234567", plot="", director="Michael Mann",
            actors="", genre="Crime", created_at=datetime(2025, 1, 2, tzinfo=UTC),
            recommendation=SimpleNamespace(
                id=uuid4(), movie_id=movie_id, recommendation="Watch it.",
                worth_watching=True, created_at=datetime(2025, 1, 2, tzinfo=UTC),
            ),
        )
        with patch("app.api.v1.movies.movie_store") as store:
            store.list_user_movies = AsyncMock(return_value=[row])
            resp = client.get("/api/v1/movies", params={"user_id": "u1"})

        assert resp.status_code == 200
        [movie] = resp.json()
        assert movie["imdbID"] == "tt0113277"
        assert movie["votesDisplay"] == "1,234,567"
        assert movie["recommendation"]["recommendation"] == "Watch it."

    def test_user_id_required(self, client):
        assert client.get("/api/v1/movies").status_code == 422


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


class TestRequestContext:
    def test_query_ids_bound_during_pipeline(self, client, butler):
        seen = {}

        async def capture(query, conversation_id, user_id=None, db=None):
            seen.update(
                conversation=conversation_id_var.get(),
                user=user_id_var.get(),
                session=session_id_var.get(),
            )
            return QueryResult(message="Hi")

        butler.process_query.side_effect = capture
        client.post(URL, json={"query": "Heat", "conversationId": "c1", "userId": "u1", "sessionId": "s1"})

        assert seen == {"conversation": "c1", "user": "u1", "session": "s1"}

    def test_movies_tab_binds_user_but_not_conversation(self, client):
        seen = {}

        async def capture(db, user_id):
            seen.update(user=user_id_var.get(), conversation=conversation_id_var.get())
            return []

        with patch("app.api.v1.movies.movie_store") as store:
            store.list_user_movies = AsyncMock(side_effect=capture)
            resp = client.get("/api/v1/movies", params={"user_id": "u9"}, headers={"x-conversation-id": "c9"})

        assert resp.json() == []
        assert seen == {"user": "u9", "conversation": None}
