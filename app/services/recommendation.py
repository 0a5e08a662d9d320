"""Recommendation generator: structured advice for one movie.

One completion shaped as ``"Title" (Year) - assessment. appeal. Similar
movies: A, B, C.``. When the model is unavailable a deterministic template
built from the genre example table is used instead; that path never raises.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from app.config import get_settings
from app.core.franchises import examples_for_genre
from app.core.logging import get_logger
from app.core.trace import StepTrace
from app.schemas.memory import ConversationMemory
from app.schemas.movie import MovieRecord
from app.schemas.recommendation import GeneratedRecommendation
from app.services.prompts import RECOMMENDATION_PROMPT

if TYPE_CHECKING:
    from app.services.llm import LLMClient

logger = get_logger(__name__)
settings = get_settings()

# Sentence-boundary truncation only keeps cuts past this many characters
MIN_SENTENCE_CUT = 200


def is_worth_watching(rating: str | None, threshold: float | None = None) -> bool:
    """Rating at or above the threshold; missing or non-numeric ratings are not."""
    limit = settings.worth_watching_threshold if threshold is None else threshold
    try:
        return float(rating) >= limit
    except (TypeError, ValueError):
        return False


def truncate_recommendation(text: str, max_chars: int | None = None) -> str:
    limit = max_chars or settings.recommendation_max_chars
    if len(text) <= limit:
        return text
    truncated = text[:limit]
    last_stop = truncated.rfind(".")
    if last_stop > MIN_SENTENCE_CUT:
        return truncated[: last_stop + 1]
    return text[: limit - 3] + "..."


def build_context_info(movie: MovieRecord, memory: ConversationMemory | None) -> str:
    parts = []
    if memory is not None:
        if memory.user_preferences.genres:
            parts.append(f"User likes: {', '.join(memory.user_preferences.genres)}.")
        if memory.last_movie:
            parts.append(f"Recently discussed: {memory.last_movie.title}.")
    if movie.genre:
        parts.append(f"Focus genre: {movie.genre}.")
    return " ".join(parts)


def fallback_recommendation(movie: MovieRecord) -> GeneratedRecommendation:
    worth = is_worth_watching(movie.imdb_rating)
    similar = examples_for_genre(movie.genre or "Drama")
    quality = (
        "Worth watching with solid ratings and engaging content."
        if worth
        else "Consider carefully as ratings suggest mixed reception."
    )
    audience = "quality entertainment" if worth else "alternative viewing"
    text = (
        f'"{movie.title}" ({movie.year}) - {quality} '
        f"Appeals to fans of {movie.genre} cinema and those seeking {audience}. "
        f"Similar movies: {', '.join(similar)}."
    )
    return GeneratedRecommendation(
        movie_id=movie.id,
        recommendation=text,
        worth_watching=worth,
        used_fallback=True,
    )


class RecommendationGenerator:
    def __init__(self, llm: LLMClient | None = None) -> None:
        self.llm = llm

    async def generate(
        self,
        movie: MovieRecord,
        memory: ConversationMemory | None,
        trace: StepTrace,
    ) -> GeneratedRecommendation:
        trace.start("GENERATE_RECOMMENDATION", {"movieTitle": movie.title})
        if self.llm is None:
            trace.skip("GENERATE_RECOMMENDATION", {"fallback": True, "reason": "No language model configured"})
            return fallback_recommendation(movie)

        prompt = RECOMMENDATION_PROMPT.format(
            context_info=build_context_info(movie, memory),
            title=movie.title,
            year=movie.year,
            rating=movie.imdb_rating,
            genre=movie.genre,
            plot=movie.plot,
        )
        try:
            completion = await self.llm.complete(
                [{"role": "user", "content": prompt}],
                temperature=settings.recommendation_temperature,
                max_tokens=settings.recommendation_max_tokens,
                step="recommendation",
            )
        except Exception as e:
            logger.warning("recommendation_generation_failed", title=movie.title, error=str(e))
            trace.fail("GENERATE_RECOMMENDATION", "Failed to generate recommendation", error=str(e))
            return fallback_recommendation(movie)

        text = completion.text.strip()
        if not text:
            trace.fail("GENERATE_RECOMMENDATION", "Empty completion")
            return fallback_recommendation(movie)

        truncated = truncate_recommendation(text)
        if memory is not None:
            memory.add_tokens(completion.tokens_used)

        recommendation = GeneratedRecommendation(
            movie_id=movie.id,
            recommendation=truncated,
            worth_watching=is_worth_watching(movie.imdb_rating),
            tokens_used=completion.tokens_used,
        )
        trace.success(
            "GENERATE_RECOMMENDATION",
            {
                "recommendationLength": len(truncated),
                "truncated": len(truncated) != len(text),
                "worthWatching": recommendation.worth_watching,
            },
            tokens_used=completion.tokens_used,
        )
        return recommendation
