"""Chat-completion client shared by the title, recommendation and conversation steps."""

from __future__ import annotations

import time
from dataclasses import dataclass

from openai import AsyncOpenAI

from app.config import get_settings
from app.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


@dataclass
class Completion:
    text: str
    tokens_used: int = 0


class LLMClient:
    """Thin wrapper over AsyncOpenAI returning text plus total token usage.

    Errors propagate; every caller has its own fallback.
    """

    def __init__(self, client: AsyncOpenAI | None = None, model: str | None = None) -> None:
        self.client = client or AsyncOpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
        )
        self.model = model or settings.llm_model

    async def complete(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float,
        max_tokens: int,
        step: str = "completion",
    ) -> Completion:
        t0 = time.monotonic()
        response = await self.client.chat.completions.create(
            model=self.model,
            temperature=temperature,
            max_tokens=max_tokens,
            messages=messages,
        )
        text = (response.choices[0].message.content or "").strip()
        tokens = response.usage.total_tokens if response.usage else 0

        logger.info(
            "llm_completion",
            step=step,
            model=self.model,
            tokens=tokens,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )
        return Completion(text=text, tokens_used=tokens)
