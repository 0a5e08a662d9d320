"""Movie model: user-scoped copy of catalog metadata."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import DateTime, String, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

if TYPE_CHECKING:
    from app.models.recommendation import Recommendation


class Movie(Base):
    """A movie as it appears in one user's catalog.

    Each user gets their own row even when another user already stored the
    same catalog entry, so the movies tab only ever reads rows by user_id.
    """

    __tablename__ = "movies"
    __table_args__ = (
        UniqueConstraint("user_id", "imdb_id", name="uq_movies_user_imdb"),
    )

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    user_id: Mapped[str | None] = mapped_column(String(64), index=True)

    title: Mapped[str] = mapped_column(Text, nullable=False)
    year: Mapped[str | None] = mapped_column(String(16))
    imdb_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    poster: Mapped[str | None] = mapped_column(Text)
    imdb_rating: Mapped[str | None] = mapped_column(String(16))
    imdb_votes: Mapped[str | None] = mapped_column(String(32))
    plot: Mapped[str | None] = mapped_column(Text)
    director: Mapped[str | None] = mapped_column(Text)
    actors: Mapped[str | None] = mapped_column(Text)
    genre: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    recommendation: Mapped["Recommendation | None"] = relationship(
        back_populates="movie",
        uselist=False,
        cascade="all, delete-orphan",
        lazy="selectin",
    )
