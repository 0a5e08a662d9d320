"""Conversation memory service: in-process cache over a durable repository.

Reads go to the cache first, then the repository; new conversations start
empty. Writes update the cache immediately and are mirrored to the
repository after each assistant turn. A failed mirror is logged and never
undoes the in-memory state.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.logging import get_logger
from app.core.trace import StepTrace
from app.models.conversation import Conversation
from app.schemas.memory import ConversationMemory

logger = get_logger(__name__)


class ConversationRepository(Protocol):
    async def load(self, conversation_id: str) -> ConversationMemory | None: ...

    async def save(
        self,
        conversation_id: str,
        memory: ConversationMemory,
        user_id: str | None = None,
    ) -> None: ...


class SqlConversationRepository:
    """Stores memory in the ``conversations`` table, one row per conversation id."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        if session_factory is None:
            from app.database import async_session_maker

            session_factory = async_session_maker
        self.session_factory = session_factory

    async def load(self, conversation_id: str) -> ConversationMemory | None:
        async with self.session_factory() as db:
            result = await db.execute(
                select(Conversation).where(Conversation.conversation_id == conversation_id)
            )
            row = result.scalar_one_or_none()
        return ConversationMemory.from_row(row) if row else None

    async def save(
        self,
        conversation_id: str,
        memory: ConversationMemory,
        user_id: str | None = None,
    ) -> None:
        """Upsert on conversation_id."""
        now = datetime.now(UTC)
        values = {
            **memory.to_row_values(),
            "user_id": user_id,
            "last_activity": now,
            "updated_at": now,
        }
        stmt = (
            pg_insert(Conversation)
            .values(conversation_id=conversation_id, **values)
            .on_conflict_do_update(
                index_elements=[Conversation.conversation_id],
                set_=values,
            )
        )
        async with self.session_factory() as db:
            await db.execute(stmt)
            await db.commit()


class ConversationMemoryStore:
    """Process-wide cache of conversation memory keyed by conversation id.

    Concurrent requests for the same conversation id share one object and
    can interleave; there is no locking.
    """

    def __init__(self, repository: ConversationRepository | None = None) -> None:
        self.repository = repository
        self._cache: dict[str, ConversationMemory] = {}

    def get(self, conversation_id: str) -> ConversationMemory | None:
        return self._cache.get(conversation_id)

    async def load(self, conversation_id: str, trace: StepTrace) -> ConversationMemory:
        trace.start("LOAD_CONVERSATION", {"conversationId": conversation_id})

        memory = self._cache.get(conversation_id)
        if memory is not None:
            trace.success("LOAD_CONVERSATION", "Loaded from memory store")
            return memory

        if self.repository is not None:
            try:
                memory = await self.repository.load(conversation_id)
            except Exception as e:
                logger.warning("conversation_load_failed", conversation_id=conversation_id, error=str(e))
                trace.fail("LOAD_CONVERSATION", "Failed to load from database", error=str(e))
                memory = None
            if memory is not None:
                self._cache[conversation_id] = memory
                trace.success("LOAD_CONVERSATION", "Loaded from database")
                return memory

        memory = ConversationMemory()
        self._cache[conversation_id] = memory
        trace.success("LOAD_CONVERSATION", "Created new conversation")
        return memory

    async def persist(
        self,
        conversation_id: str,
        memory: ConversationMemory,
        trace: StepTrace,
        user_id: str | None = None,
    ) -> None:
        self._cache[conversation_id] = memory
        if self.repository is None:
            trace.skip("SAVE_CONVERSATION_DB", "No durable store configured")
            return
        try:
            await self.repository.save(conversation_id, memory, user_id)
        except Exception as e:
            logger.warning("conversation_save_failed", conversation_id=conversation_id, error=str(e))
            trace.fail("SAVE_CONVERSATION_DB", "Database save failed", error=str(e))
            return
        trace.success("SAVE_CONVERSATION_DB", "Conversation saved to database")
