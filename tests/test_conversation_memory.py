"""Tests for conversation memory bounds and the memory store."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.trace import StepStatus, StepTrace
from app.schemas.memory import ConversationMemory
from app.services.memory import ConversationMemoryStore


class TestBounds:
    def test_eleven_user_turns_keep_ten(self):
        memory = ConversationMemory()
        for i in range(11):
            memory.add_user_message(f"message {i}")
        assert len(memory.messages) == 10
        assert memory.messages[0].content == "message 1"
        assert memory.turn_count == 11

    def test_six_movies_keep_five(self):
        memory = ConversationMemory()
        for i in range(6):
            memory.add_assistant_message("reply", title=f"Movie {i}", genre="Drama", rating="7.0")
        assert len(memory.discussed_movies) == 5
        assert memory.discussed_movies[0].title == "Movie 1"
        assert memory.last_movie.title == "Movie 5"

    def test_preferred_genres_most_recent_wins(self):
        memory = ConversationMemory()
        for genre in ("Action, Thriller", "Drama", "Comedy", "Horror", "Drama"):
            memory.add_assistant_message("reply", title="X", genre=genre)
        assert memory.user_preferences.genres == ["Drama", "Comedy", "Horror"]


class TestDiscussedMovies:
    def test_first_genre_kept(self):
        memory = ConversationMemory()
        memory.add_assistant_message("reply", title="Heat", genre="Crime, Drama", rating="8.3")
        movie = memory.last_movie
        assert (movie.title, movie.genre, movie.rating) == ("Heat", "Crime", "8.3")

    def test_missing_genre_and_rating(self):
        memory = ConversationMemory()
        memory.add_assistant_message("reply", title="Heat")
        assert memory.last_movie.genre == "Unknown"
        assert memory.last_movie.rating == "N/A"
        assert memory.user_preferences.genres == []

    def test_plain_reply_records_no_movie(self):
        memory = ConversationMemory()
        memory.add_assistant_message("hello")
        assert memory.discussed_movies == []
        assert memory.messages[-1].role == "assistant"

    def test_has_discussed_ignores_case(self):
        memory = ConversationMemory()
        memory.add_assistant_message("reply", title="Heat")
        assert memory.has_discussed("HEAT")
        assert not memory.has_discussed("Ronin")

    def test_negative_tokens_ignored(self):
        memory = ConversationMemory()
        memory.add_tokens(30)
        memory.add_tokens(-5)
        assert memory.total_tokens == 30


class TestRowMapping:
    def test_from_row(self):
        row = SimpleNamespace(
            messages=[{"role": "user", "content": "hi", "timestamp": 1}],
            discussed_movies=[{"title": "Heat", "genre": "Crime", "rating": "8.3"}],
            user_preferences={"genres": ["Crime"], "last_context": ""},
            total_tokens=55,
            turns=3,
        )
        memory = ConversationMemory.from_row(row)
        assert memory.turn_count == 3
        assert memory.last_movie.title == "Heat"
        assert memory.to_row_values()["turns"] == 3

    def test_from_row_with_nulls(self):
        row = SimpleNamespace(messages=None, discussed_movies=None, user_preferences=None, total_tokens=None, turns=None)
        memory = ConversationMemory.from_row(row)
        assert memory.is_new
        assert memory.messages == []


# ── Store ──────────────────────────────────────────────────────────


class TestMemoryStore:
    @pytest.mark.asyncio
    async def test_new_conversation_is_cached(self):
        store = ConversationMemoryStore()
        memory = await store.load("c1", StepTrace())
        assert memory.is_new
        assert store.get("c1") is memory
        assert await store.load("c1", StepTrace()) is memory

    @pytest.mark.asyncio
    async def test_loads_from_repository(self):
        saved = ConversationMemory(turn_count=4)
        repo = MagicMock()
        repo.load = AsyncMock(return_value=saved)
        store = ConversationMemoryStore(repo)

        assert await store.load("c1", StepTrace()) is saved
        await store.load("c1", StepTrace())
        repo.load.assert_awaited_once_with("c1")

    @pytest.mark.asyncio
    async def test_repository_failure_starts_fresh(self):
        repo = MagicMock()
        repo.load = AsyncMock(side_effect=RuntimeError("db down"))
        trace = StepTrace()
        memory = await ConversationMemoryStore(repo).load("c1", trace)
        assert memory.is_new
        assert any(e.status == StepStatus.ERROR for e in trace.entries)

    @pytest.mark.asyncio
    async def test_persist_failure_keeps_memory(self):
        repo = MagicMock()
        repo.load = AsyncMock(return_value=None)
        repo.save = AsyncMock(side_effect=RuntimeError("db down"))
        store = ConversationMemoryStore(repo)
        memory = ConversationMemory()
        memory.add_user_message("hi")
        trace = StepTrace()

        await store.persist("c1", memory, trace, user_id="u1")

        assert store.get("c1") is memory
        repo.save.assert_awaited_once_with("c1", memory, "u1")
        assert trace.entries[-1].step == "SAVE_CONVERSATION_DB"
        assert trace.entries[-1].status == StepStatus.ERROR

    @pytest.mark.asyncio
    async def test_persist_without_repository(self):
        trace = StepTrace()
        await ConversationMemoryStore().persist("c1", ConversationMemory(), trace)
        assert trace.entries[-1].status == StepStatus.SKIP
