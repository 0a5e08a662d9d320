"""Conversation memory schemas.

ConversationMemory is the per-conversation state the pipeline reads and
mutates on every turn. Its lists are bounded: the oldest entries are
evicted first once a bound is exceeded.
"""

import time
from typing import Any, Literal

from pydantic import BaseModel, Field

MAX_MESSAGES = 10
MAX_DISCUSSED_MOVIES = 5
MAX_PREFERRED_GENRES = 3


def _now_ms() -> int:
    return int(time.time() * 1000)


# ── Entries ──────────────────────────────────────────────────────────

class MemoryMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: int = Field(default_factory=_now_ms)  # epoch ms


class DiscussedMovie(BaseModel):
    title: str
    genre: str = "Unknown"
    rating: str = "N/A"


class UserPreferences(BaseModel):
    genres: list[str] = Field(default_factory=list)
    last_context: str = ""


# ── Memory ───────────────────────────────────────────────────────────

class ConversationMemory(BaseModel):
    messages: list[MemoryMessage] = Field(default_factory=list)
    discussed_movies: list[DiscussedMovie] = Field(default_factory=list)
    user_preferences: UserPreferences = Field(default_factory=UserPreferences)
    total_tokens: int = 0
    turn_count: int = 0

    @property
    def last_movie(self) -> DiscussedMovie | None:
        return self.discussed_movies[-1] if self.discussed_movies else None

    @property
    def is_new(self) -> bool:
        return self.turn_count == 0

    def discussed_titles(self) -> list[str]:
        return [m.title for m in self.discussed_movies]

    def has_discussed(self, title: str) -> bool:
        needle = title.lower()
        return any(m.title.lower() == needle for m in self.discussed_movies)

    def recent_messages(self, limit: int) -> list[MemoryMessage]:
        return self.messages[-limit:] if limit > 0 else []

    def add_user_message(self, content: str) -> None:
        """Append a user turn and bump the turn counter."""
        self.messages.append(MemoryMessage(role="user", content=content))
        self.messages = self.messages[-MAX_MESSAGES:]
        self.turn_count += 1

    def add_assistant_message(
        self,
        content: str,
        *,
        title: str | None = None,
        genre: str | None = None,
        rating: str | None = None,
    ) -> None:
        """Append an assistant turn, recording the discussed movie when given.

        Only the first genre of a comma-separated list is kept; it also
        feeds the preferred genres (most recent wins).
        """
        self.messages.append(MemoryMessage(role="assistant", content=content))
        self.messages = self.messages[-MAX_MESSAGES:]

        if not title:
            return

        first_genre = genre.split(",")[0].strip() if genre else ""
        self.discussed_movies.append(
            DiscussedMovie(
                title=title,
                genre=first_genre or "Unknown",
                rating=rating or "N/A",
            )
        )
        self.discussed_movies = self.discussed_movies[-MAX_DISCUSSED_MOVIES:]

        genres = self.user_preferences.genres
        if first_genre and first_genre != "Unknown" and first_genre not in genres:
            genres.append(first_genre)
            self.user_preferences.genres = genres[-MAX_PREFERRED_GENRES:]

    def add_tokens(self, tokens: int) -> None:
        self.total_tokens += max(tokens, 0)

    # ── Row mapping ──────────────────────────────────────────────────

    @classmethod
    def from_row(cls, row: Any) -> "ConversationMemory":
        """Build memory from a ``conversations`` row."""
        return cls(
            messages=row.messages or [],
            discussed_movies=row.discussed_movies or [],
            user_preferences=row.user_preferences or {},
            total_tokens=row.total_tokens or 0,
            turn_count=row.turns or 0,
        )

    def to_row_values(self) -> dict:
        """Column values for an upsert into ``conversations``."""
        return {
            "turns": self.turn_count,
            "total_tokens": self.total_tokens,
            "messages": [m.model_dump() for m in self.messages],
            "discussed_movies": [m.model_dump() for m in self.discussed_movies],
            "user_preferences": self.user_preferences.model_dump(),
        }
