"""Conversational replies for queries that are not movie lookups.

Greetings, comparisons, yes/no follow-ups and open recommendation requests
all land here. The advisor prompt gets the previous turns plus a context
line naming the most recently discussed movies.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from app.config import get_settings
from app.core.logging import get_logger
from app.core.titles import is_greeting
from app.core.trace import StepTrace
from app.schemas.memory import ConversationMemory
from app.services.prompts import (
    CONVERSATION_SYSTEM_PROMPT,
    DISCUSSED_CONTEXT_TEMPLATE,
    WELCOME_MESSAGE,
)

if TYPE_CHECKING:
    from app.services.llm import LLMClient

logger = get_logger(__name__)
settings = get_settings()

HISTORY_MESSAGES = 8
CONTEXT_MOVIES = 3
FALLBACK_REPLY = "I'm here to help you discover great movies! What film interests you?"


@dataclass
class Reply:
    text: str
    tokens_used: int = 0
    used_fallback: bool = False


def fallback_reply(memory: ConversationMemory) -> str:
    last = memory.last_movie
    if last is None:
        return FALLBACK_REPLY
    return (
        f'We were just talking about "{last.title}". Would you like something similar, '
        "a comparison, or a completely different film?"
    )


def build_conversation_messages(query: str, memory: ConversationMemory) -> list[dict[str, str]]:
    """System prompt, up to 8 earlier turns, the discussed-movies context, then the query.

    The current user message is already the last entry in memory and is
    sent separately, so it is left out of the history.
    """
    messages = [{"role": "system", "content": CONVERSATION_SYSTEM_PROMPT}]

    history = memory.messages[:-1][-HISTORY_MESSAGES:]
    messages += [{"role": m.role, "content": m.content} for m in history]

    recent = memory.discussed_movies[-CONTEXT_MOVIES:]
    if recent:
        movies = ", ".join(f'"{m.title}" ({m.genre or "Unknown"}, {m.rating or "N/A"}/10)' for m in recent)
        messages.append({"role": "assistant", "content": DISCUSSED_CONTEXT_TEMPLATE.format(movies=movies)})

    messages.append({"role": "user", "content": query})
    return messages


class ConversationResponder:
    def __init__(self, llm: LLMClient | None = None) -> None:
        self.llm = llm

    async def reply(
        self,
        query: str,
        memory: ConversationMemory,
        trace: StepTrace,
    ) -> Reply:
        trace.start("HANDLE_GENERAL_CONVERSATION", {"query": query})

        # Only the current user message is in memory
        if len(memory.messages) <= 1 and is_greeting(query):
            trace.success("HANDLE_GENERAL_CONVERSATION", {"isNewConversation": True, "welcome": True})
            return Reply(WELCOME_MESSAGE)

        if self.llm is None:
            trace.skip("HANDLE_GENERAL_CONVERSATION", "No language model configured")
            return Reply(fallback_reply(memory), used_fallback=True)

        try:
            completion = await self.llm.complete(
                build_conversation_messages(query, memory),
                temperature=settings.conversation_temperature,
                max_tokens=settings.conversation_max_tokens,
                step="conversation",
            )
        except Exception as e:
            logger.warning("conversation_reply_failed", error=str(e))
            trace.fail("HANDLE_GENERAL_CONVERSATION", "Failed to generate response", error=str(e))
            return Reply(fallback_reply(memory), used_fallback=True)

        memory.add_tokens(completion.tokens_used)
        text = completion.text.strip() or fallback_reply(memory)
        trace.success(
            "HANDLE_GENERAL_CONVERSATION",
            {
                "responseLength": len(text),
                "moviesInContext": len(memory.discussed_movies),
                "conversationLength": len(memory.messages),
            },
            tokens_used=completion.tokens_used,
        )
        return Reply(text, tokens_used=completion.tokens_used)
