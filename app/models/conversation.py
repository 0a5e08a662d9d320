"""Conversation model: durable copy of the per-conversation memory."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Conversation(Base):
    """Serialized conversation memory keyed by the client conversation id.

    The in-process cache is authoritative while the process lives; this row
    is the source of truth across restarts.
    """

    __tablename__ = "conversations"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    conversation_id: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        unique=True,
    )
    user_id: Mapped[str | None] = mapped_column(String(64), index=True)

    turns: Mapped[int] = mapped_column(Integer, default=0)
    total_tokens: Mapped[int] = mapped_column(Integer, default=0)

    messages: Mapped[list | None] = mapped_column(JSONB, default=list)
    # Structure: [{"role": "user|assistant", "content": "...", "timestamp": 1718000000000}]  (max 10)

    discussed_movies: Mapped[list | None] = mapped_column(JSONB, default=list)
    # Structure: [{"title": "...", "genre": "Drama", "rating": "8.5"}]  (max 5)

    user_preferences: Mapped[dict | None] = mapped_column(JSONB, default=dict)
    # Structure: {"genres": ["Drama", ...], "last_context": ""}  (max 3 genres)

    last_activity: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )
