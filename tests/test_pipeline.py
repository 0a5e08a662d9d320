"""End-to-end tests for the movie butler pipeline with faked upstreams."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.title_resolver import TitleResolver
from app.services.butler import APOLOGY, MovieButler
from app.services.catalog import CatalogLookup
from app.services.conversation import ConversationResponder
from app.services.memory import ConversationMemoryStore
from app.services.omdb import OmdbClient
from app.services.recommendation import RecommendationGenerator

GENERATED = (
    '"28 Days Later" (2002) - Danny Boyle\'s raw, propulsive take on the zombie film. '
    "Ideal for viewers who like their horror grounded. "
    "Similar movies: Train to Busan, Dawn of the Dead, Children of Men."
)

# Stand-in for the request session; the fake store ignores it
DB = object()


def _butler(llm=None, store=None, catalog=None) -> MovieButler:
    return MovieButler(
        memory_store=ConversationMemoryStore(),
        resolver=TitleResolver(llm),
        catalog=catalog or CatalogLookup(store=store or MagicMock(), omdb=OmdbClient(api_key="test-key")),
        recommender=RecommendationGenerator(llm),
        responder=ConversationResponder(llm),
        store=store,
    )


@pytest.fixture
def days_later(omdb_routes, omdb_movie):
    omdb_routes.add_title(
        omdb_movie("28 Days Later", "2002", "tt0289043", imdbRating="7.5", Genre="Drama, Horror, Sci-Fi")
    )
    return omdb_routes


def _similar_titles(text: str) -> list[str]:
    clause = text.split("Similar movies:")[1].strip().rstrip(".")
    return [t.strip() for t in clause.split(",")]


class TestMovieLookup:
    @pytest.mark.asyncio
    async def test_how_is_28_days_later(self, days_later, make_llm):
        llm = make_llm({"title_extraction": "28 Days Later", "recommendation": GENERATED})

        result = await _butler(llm).process_query("How is 28 Days Later", "conv-1")

        assert result.error is None
        assert result.movie.title == "28 Days Later"
        text = result.recommendation.recommendation
        assert '"28 Days Later" (2002)' in text
        assert text.count("Similar movies:") == 1
        assert len(_similar_titles(text)) == 3
        assert result.recommendation.worth_watching is True
        assert result.message == 'Great choice! Here\'s my detailed take on "28 Days Later" (2002).'

    @pytest.mark.asyncio
    async def test_how_is_28_days_later_offline(self, days_later):
        result = await _butler().process_query("How is 28 Days Later", "conv-1")

        text = result.recommendation.recommendation
        assert text.startswith('"28 Days Later" (2002) - ')
        assert text.count("Similar movies:") == 1
        assert len(_similar_titles(text)) == 3

    @pytest.mark.asyncio
    async def test_recommend_named_title_looks_it_up(self, omdb_routes, omdb_movie):
        omdb_routes.add_title(omdb_movie("Inception", "2010", "tt1375666", imdbRating="8.8", Genre="Action, Sci-Fi"))

        result = await _butler().process_query("recommend Inception", "conv-1")

        assert result.movie.title == "Inception"
        assert result.recommendation.worth_watching is True
        assert "Inception" in omdb_routes.requested("t")
        assert any(
            e["step"] == "QUERY_TYPE_DETECTION" and e["details"]["isGeneral"] is False for e in result.logs
        )

    @pytest.mark.asyncio
    async def test_recommend_named_title_with_model(self, omdb_routes, omdb_movie, make_llm):
        omdb_routes.add_title(omdb_movie("Inception", "2010", "tt1375666"))
        llm = make_llm({"title_extraction": "Inception"})

        result = await _butler(llm).process_query("recommend inception", "conv-1")

        assert result.movie.imdb_id == "tt1375666"
        assert "title_extraction" in llm.steps()
        assert "conversation" not in llm.steps()

    @pytest.mark.asyncio
    async def test_response_carries_trace_and_stats(self, days_later):
        result = await _butler().process_query("How is 28 Days Later", "conv-1")
        steps = [entry["step"] for entry in result.logs]
        assert steps[0] == "PROCESS_QUERY"
        assert steps[-1] == "PROCESS_QUERY"
        assert "MOVIE_NORMALIZATION" in steps
        assert result.conversation.turn_count == 1

    @pytest.mark.asyncio
    async def test_second_request_reuses_recommendation(self, days_later, make_llm, fake_store):
        llm = make_llm({"title_extraction": "28 Days Later", "recommendation": GENERATED})
        butler = _butler(llm, store=fake_store)

        first = await butler.process_query("How is 28 Days Later", "conv-1", user_id="u1", db=DB)
        second = await butler.process_query("How is 28 Days Later", "conv-2", user_id="u1", db=DB)

        assert llm.steps().count("recommendation") == 1
        assert len(fake_store.movies) == 1
        assert len(fake_store.recommendations) == 1
        assert second.recommendation == first.recommendation
        assert second.movie.id == first.movie.id
        assert second.message == 'Here\'s my detailed recommendation for "28 Days Later" (2002).'

    @pytest.mark.asyncio
    async def test_guest_is_not_persisted(self, days_later, fake_store):
        butler = _butler(store=fake_store)
        await butler.process_query("How is 28 Days Later", "conv-1", user_id=None, db=DB)
        assert fake_store.movies == []
        assert fake_store.recommendations == []

    @pytest.mark.asyncio
    async def test_repeated_movie_in_conversation(self, days_later):
        butler = _butler()
        await butler.process_query("How is 28 Days Later", "conv-1")
        again = await butler.process_query("How is 28 Days Later", "conv-1")
        assert again.message == 'Here\'s the detailed recommendation for "28 Days Later" again.'

    @pytest.mark.asyncio
    async def test_store_save_failure_still_answers(self, days_later, fake_store):
        fake_store.save_recommendation = AsyncMock(side_effect=RuntimeError("db down"))
        result = await _butler(store=fake_store).process_query(
            "How is 28 Days Later", "conv-1", user_id="u1", db=DB
        )
        assert result.error is None
        assert result.recommendation is not None
        assert any(e["step"] == "RECOMMENDATION_SAVE" and e["status"] == "ERROR" for e in result.logs)


class TestConversational:
    @pytest.mark.asyncio
    async def test_recommend_similar_after_movie(self, days_later):
        butler = _butler()
        await butler.process_query("How is 28 Days Later", "conv-1")
        lookups = len(days_later.calls)

        result = await butler.process_query("recommend similar", "conv-1")

        assert result.movie is None
        assert '"28 Days Later"' in result.message
        assert len(days_later.calls) == lookups
        assert not any(e["step"] == "EXTRACT_MOVIE_TITLES" for e in result.logs)

    @pytest.mark.asyncio
    async def test_recommend_similar_prompt_names_last_movie(self, days_later, make_llm):
        llm = make_llm({"title_extraction": "28 Days Later", "recommendation": GENERATED,
                        "conversation": "Try Train to Busan."})
        butler = _butler(llm)
        await butler.process_query("How is 28 Days Later", "conv-1")

        result = await butler.process_query("recommend similar", "conv-1")

        assert result.message == "Try Train to Busan."
        step, messages = llm.calls[-1]
        assert step == "conversation"
        assert any('"28 Days Later" (Drama, 7.5/10)' in m["content"] for m in messages)

    @pytest.mark.asyncio
    async def test_bare_reply_is_general(self, days_later):
        result = await _butler().process_query("yes", "conv-1")
        assert result.movie is None
        assert days_later.calls == []

    @pytest.mark.asyncio
    async def test_welcome(self):
        result = await _butler().process_query("hello", "conv-1")
        assert result.message == "Hello! I'm your movie advisor. What film has caught your interest today?"

    @pytest.mark.asyncio
    async def test_sentinel_defers_to_conversation(self, make_llm):
        llm = make_llm({"title_extraction": "GENERAL_RECOMMENDATION", "conversation": "Try Heat."})
        result = await _butler(llm).process_query("a good heist movie to watch tonight", "conv-1")
        assert result.message == "Try Heat."
        assert llm.steps() == ["title_extraction", "conversation"]


class TestClarifications:
    @pytest.mark.asyncio
    async def test_unidentified_without_history(self):
        result = await _butler().process_query("the movie", "conv-1")
        assert result.message.startswith("I couldn't identify a movie")

    @pytest.mark.asyncio
    async def test_unidentified_with_history(self, days_later):
        butler = _butler()
        await butler.process_query("How is 28 Days Later", "conv-1")
        result = await butler.process_query("the movie", "conv-1")
        assert 'Are you asking about "28 Days Later" or a different film?' in result.message

    @pytest.mark.asyncio
    async def test_anti_repetition(self, days_later, make_llm):
        llm = make_llm({"title_extraction": "28 Days Later", "recommendation": GENERATED})
        butler = _butler(llm)
        await butler.process_query("How is 28 Days Later", "conv-1")
        lookups = len(days_later.calls)

        result = await butler.process_query("something different than 28 days later for tonight", "conv-1")

        assert result.message.startswith('I see you mentioned "28 Days Later"')
        assert len(days_later.calls) == lookups

    @pytest.mark.asyncio
    async def test_not_found_without_history(self, omdb_routes):
        result = await _butler().process_query("Zzyzx Road Trip", "conv-1")
        assert result.message.startswith('I couldn\'t find information about "Zzyzx Road Trip"')

    @pytest.mark.asyncio
    async def test_not_found_korean(self, days_later):
        butler = _butler()
        await butler.process_query("How is 28 Days Later", "conv-1")
        days_later.routes.clear()

        result = await butler.process_query("the korean one", "conv-1")
        assert result.message.startswith('I couldn\'t find a Korean version of "28 Days Later"')


class TestMemoryAcrossTurns:
    @pytest.mark.asyncio
    async def test_discussed_movie_recorded(self, days_later):
        butler = _butler()
        await butler.process_query("How is 28 Days Later", "conv-1")
        memory = butler.memory_store.get("conv-1")
        assert memory.last_movie.title == "28 Days Later"
        assert memory.last_movie.genre == "Drama"
        assert memory.user_preferences.genres == ["Drama"]
        assert [m.role for m in memory.messages] == ["user", "assistant"]


class TestErrors:
    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_apology(self):
        catalog = MagicMock()
        catalog.lookup = AsyncMock(side_effect=RuntimeError("boom"))
        result = await _butler(catalog=catalog).process_query("Heat", "conv-1")
        assert result.message == APOLOGY
        assert result.error == "boom"
        assert result.logs[-1]["status"] == "ERROR"
