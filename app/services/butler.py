"""Movie butler pipeline: one query in, one reply out.

load memory → classify → [general: conversational reply]
→ resolve titles → catalog lookup → ensure the user's movie row
→ reuse or generate the recommendation → persist → respond.

Upstream failures are absorbed by each step's fallback. Anything else is
caught here and turned into an apologetic reply carrying ``error``.
"""

from __future__ import annotations

import re
from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.classifier import classify
from app.core.logging import get_logger
from app.core.title_resolver import Resolution, TitleResolver
from app.core.trace import StepTrace
from app.schemas.chat import ConversationStats, QueryResult
from app.schemas.memory import ConversationMemory
from app.schemas.movie import MovieRecord, normalize_movie
from app.schemas.recommendation import (
    GeneratedRecommendation,
    RecommendationRecord,
    recommendation_from_row,
)
from app.services.catalog import CatalogLookup
from app.services.conversation import ConversationResponder
from app.services.llm import LLMClient
from app.services.memory import ConversationMemoryStore, SqlConversationRepository
from app.services.movie_store import MovieStore, movie_store
from app.services.recommendation import RecommendationGenerator

logger = get_logger(__name__)

APOLOGY = "An error occurred while processing your request. Please try again."

_SEQUEL_REQUEST = re.compile(r"sequel|next|follow.up|part\s+2|part\s+ii", re.IGNORECASE)
_WANTS_DIFFERENT = re.compile(r"\b(?:sequel|different|another|else|new|next)\b", re.IGNORECASE)
_COUNTRY_QUALIFIER = re.compile(r"korean|japanese", re.IGNORECASE)


# ── Reply texts ──────────────────────────────────────────────────────


def unidentified_reply(query: str, memory: ConversationMemory) -> str:
    last = memory.last_movie
    if last is None:
        return "I couldn't identify a movie in your query. Could you please specify which movie you're asking about?"
    if _SEQUEL_REQUEST.search(query):
        return (
            f'I understand you\'re looking for a sequel or different version of "{last.title}". '
            "Could you be more specific, for example by giving the sequel's title or year?"
        )
    return f'I\'m not sure which movie you\'re referring to. Are you asking about "{last.title}" or a different film? Please clarify.'


def repetition_reply(title: str) -> str:
    return (
        f'I see you mentioned "{title}", but it seems like you might be looking for a different '
        "movie or sequel. Could you be more specific?"
    )


def not_found_reply(query: str, title: str, memory: ConversationMemory) -> str:
    last = memory.last_movie
    if last is None:
        return (
            f'I couldn\'t find information about "{title}". '
            "Could you check the spelling or try asking about a different movie?"
        )
    if _COUNTRY_QUALIFIER.search(title) or _COUNTRY_QUALIFIER.search(query):
        return (
            f'I couldn\'t find a Korean version of "{last.title}". You might be thinking of a '
            "different Korean film with a similar theme. Could you provide more details or try "
            "searching for specific Korean movie titles?"
        )
    return (
        f'I couldn\'t find "{title}". Are you looking for something similar to "{last.title}" '
        "that we discussed earlier, or a completely different movie?"
    )


def lookup_reply(movie: MovieRecord, *, reused: bool, repeated: bool) -> str:
    if reused:
        return f'Here\'s my detailed recommendation for "{movie.title}" ({movie.year}).'
    if repeated:
        return f'Here\'s the detailed recommendation for "{movie.title}" again.'
    return f'Great choice! Here\'s my detailed take on "{movie.title}" ({movie.year}).'


def _public(recommendation: GeneratedRecommendation) -> RecommendationRecord:
    return RecommendationRecord.model_validate(
        recommendation.model_dump(exclude={"tokens_used", "used_fallback"})
    )


# ── Pipeline ─────────────────────────────────────────────────────────


class MovieButler:
    def __init__(
        self,
        memory_store: ConversationMemoryStore,
        resolver: TitleResolver,
        catalog: CatalogLookup,
        recommender: RecommendationGenerator,
        responder: ConversationResponder,
        store: MovieStore | None = None,
    ) -> None:
        self.memory_store = memory_store
        self.resolver = resolver
        self.catalog = catalog
        self.recommender = recommender
        self.responder = responder
        self.store = store or movie_store

    async def process_query(
        self,
        query: str,
        conversation_id: str,
        user_id: str | None = None,
        db: AsyncSession | None = None,
    ) -> QueryResult:
        trace = StepTrace()
        trace.start("PROCESS_QUERY", {"userId": user_id, "query": query, "conversationId": conversation_id})
        try:
            result = await self._run(query, conversation_id, user_id, db, trace)
        except Exception as e:
            logger.exception("process_query_failed", conversation_id=conversation_id)
            trace.fail("PROCESS_QUERY", "Unexpected error in process_query", error=str(e))
            return QueryResult(message=APOLOGY, error=str(e) or type(e).__name__, logs=trace.to_list())

        trace.success("PROCESS_QUERY", {**trace.summary(), "hasMovie": result.movie is not None})
        result.logs = trace.to_list()
        return result

    async def _run(
        self,
        query: str,
        conversation_id: str,
        user_id: str | None,
        db: AsyncSession | None,
        trace: StepTrace,
    ) -> QueryResult:
        memory = await self.memory_store.load(conversation_id, trace)
        memory.add_user_message(query)

        classification = classify(query, memory)
        trace.success("QUERY_TYPE_DETECTION", classification.as_details())
        if classification.is_general:
            return await self._converse(query, conversation_id, user_id, memory, trace)

        resolution = await self.resolver.resolve(query, memory, trace)
        if resolution.is_deferred:
            trace.skip("TITLE_EXTRACTION", {"deferred": resolution.deferred})
            return await self._converse(query, conversation_id, user_id, memory, trace)
        if not resolution.titles:
            return await self._finish(
                unidentified_reply(query, memory), conversation_id, user_id, memory, trace
            )

        if self._is_repetition(query, resolution, memory):
            trace.success(
                "ANTI_REPETITION_CHECK",
                {"extractedTitle": resolution.titles[0], "lastTitle": memory.last_movie.title},
            )
            return await self._finish(
                repetition_reply(resolution.titles[0]), conversation_id, user_id, memory, trace
            )

        hit = await self.catalog.lookup(db, resolution.titles, user_id, trace)
        if hit is None:
            return await self._finish(
                not_found_reply(query, resolution.titles[0], memory), conversation_id, user_id, memory, trace
            )

        movie = normalize_movie(hit.data)
        trace.success(
            "MOVIE_NORMALIZATION",
            {"title": movie.title, "year": movie.year, "rating": movie.imdb_rating, "source": hit.source},
        )

        movie = await self._ensure_user_movie(db, movie, user_id, trace)
        recommendation = await self._existing_recommendation(db, movie, user_id, trace)
        reused = recommendation is not None
        repeated = memory.has_discussed(movie.title)

        if recommendation is None:
            generated = await self.recommender.generate(movie, memory, trace)
            recommendation = _public(generated)
            recommendation = await self._save_recommendation(db, movie, recommendation, user_id, trace)

        return await self._finish(
            lookup_reply(movie, reused=reused, repeated=repeated),
            conversation_id,
            user_id,
            memory,
            trace,
            movie=movie,
            recommendation=recommendation,
        )

    # ── Steps ────────────────────────────────────────────────────────

    async def _converse(
        self,
        query: str,
        conversation_id: str,
        user_id: str | None,
        memory: ConversationMemory,
        trace: StepTrace,
    ) -> QueryResult:
        reply = await self.responder.reply(query, memory, trace)
        return await self._finish(reply.text, conversation_id, user_id, memory, trace)

    @staticmethod
    def _is_repetition(query: str, resolution: Resolution, memory: ConversationMemory) -> bool:
        last = memory.last_movie
        if last is None or not _WANTS_DIFFERENT.search(query):
            return False
        return resolution.titles[0].lower() == last.title.lower()

    async def _ensure_user_movie(
        self,
        db: AsyncSession | None,
        movie: MovieRecord,
        user_id: str | None,
        trace: StepTrace,
    ) -> MovieRecord:
        """Swap in the user's own row id so the recommendation attaches to it."""
        if not user_id or db is None:
            trace.skip("DATABASE_SAVE", "No user ID provided - guest user")
            return movie
        try:
            row = await self.store.ensure_user_movie(db, movie, user_id)
        except Exception as e:
            logger.warning("movie_save_failed", title=movie.title, error=str(e))
            trace.fail("DATABASE_SAVE", {"title": movie.title}, error=str(e))
            return movie
        trace.success("DATABASE_SAVE", {"movieId": str(row.id), "title": row.title})
        return movie.model_copy(update={"id": str(row.id)})

    async def _existing_recommendation(
        self,
        db: AsyncSession | None,
        movie: MovieRecord,
        user_id: str | None,
        trace: StepTrace,
    ) -> RecommendationRecord | None:
        if not user_id or db is None:
            return None
        try:
            row = await self.store.get_recommendation(db, movie.id)
        except Exception as e:
            logger.warning("recommendation_lookup_failed", movie_id=movie.id, error=str(e))
            trace.fail("EXISTING_RECOMMENDATION", {"movieId": movie.id}, error=str(e))
            return None
        if row is None:
            return None
        trace.success(
            "EXISTING_RECOMMENDATION_FOUND",
            {"recommendationId": str(row.id), "worthWatching": row.worth_watching},
        )
        return recommendation_from_row(row)

    async def _save_recommendation(
        self,
        db: AsyncSession | None,
        movie: MovieRecord,
        recommendation: RecommendationRecord,
        user_id: str | None,
        trace: StepTrace,
    ) -> RecommendationRecord:
        if not user_id or db is None:
            trace.skip("RECOMMENDATION_SAVE", "No user ID - guest user")
            return recommendation
        try:
            row = await self.store.save_recommendation(db, movie.id, recommendation)
        except Exception as e:
            logger.warning("recommendation_save_failed", movie_id=movie.id, error=str(e))
            trace.fail("RECOMMENDATION_SAVE", "Failed to save recommendation", error=str(e))
            return recommendation
        trace.success("RECOMMENDATION_SAVE", {"recommendationId": str(row.id)})
        return recommendation_from_row(row)

    async def _finish(
        self,
        message: str,
        conversation_id: str,
        user_id: str | None,
        memory: ConversationMemory,
        trace: StepTrace,
        *,
        movie: MovieRecord | None = None,
        recommendation: RecommendationRecord | None = None,
    ) -> QueryResult:
        """Record the assistant turn, mirror memory to storage and build the result."""
        if movie is not None:
            memory.add_assistant_message(
                message, title=movie.title, genre=movie.genre, rating=movie.imdb_rating
            )
        else:
            memory.add_assistant_message(message)
        await self.memory_store.persist(conversation_id, memory, trace, user_id)

        return QueryResult(
            message=message,
            movie=movie,
            recommendation=recommendation,
            conversation=ConversationStats(
                turn_count=memory.turn_count,
                total_tokens=memory.total_tokens,
            ),
        )


@lru_cache
def get_movie_butler() -> MovieButler:
    """Process-wide butler; the memory cache lives as long as the process."""
    settings = get_settings()
    llm = None
    if settings.openai_api_key:
        llm = LLMClient()
    else:
        logger.warning("llm_disabled", reason="OPENAI_API_KEY not set")

    return MovieButler(
        memory_store=ConversationMemoryStore(SqlConversationRepository()),
        resolver=TitleResolver(llm),
        catalog=CatalogLookup(),
        recommender=RecommendationGenerator(llm),
        responder=ConversationResponder(llm),
    )
