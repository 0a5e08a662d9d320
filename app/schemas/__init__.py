"""Pydantic schemas package."""

from app.schemas.recommendation import GeneratedRecommendation, RecommendationRecord
from app.schemas.movie import MovieRead, MovieRecord, format_vote_count, normalize_movie
from app.schemas.memory import ConversationMemory, DiscussedMovie, MemoryMessage, UserPreferences
from app.schemas.chat import ChatMessage, ConversationStats, QueryRequest, QueryResult

__all__ = [
    "GeneratedRecommendation",
    "RecommendationRecord",
    "MovieRead",
    "MovieRecord",
    "format_vote_count",
    "normalize_movie",
    "ConversationMemory",
    "DiscussedMovie",
    "MemoryMessage",
    "UserPreferences",
    "ChatMessage",
    "ConversationStats",
    "QueryRequest",
    "QueryResult",
]
