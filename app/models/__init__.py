"""SQLAlchemy models package."""

from app.models.movie import Movie
from app.models.recommendation import Recommendation
from app.models.conversation import Conversation

__all__ = [
    "Movie",
    "Recommendation",
    "Conversation",
]
