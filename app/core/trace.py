"""Per-request step trace.

Every pipeline step appends a StepLogEntry. The entries are returned to the
client as ``logs`` and each one is mirrored to structlog as it is recorded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from app.core.logging import get_logger

logger = get_logger(__name__)

# gpt-3.5-turbo blended price, USD per 1k tokens
COST_PER_1K_TOKENS = 0.00175


class StepStatus(StrEnum):
    START = "START"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    SKIP = "SKIP"


@dataclass
class StepLogEntry:
    step: str
    status: StepStatus
    timestamp: str
    details: Any = None
    tokens_used: int | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        entry: dict[str, Any] = {
            "step": self.step,
            "status": self.status.value,
            "timestamp": self.timestamp,
        }
        if self.details is not None:
            entry["details"] = self.details
        if self.tokens_used is not None:
            entry["tokensUsed"] = self.tokens_used
        if self.error is not None:
            entry["error"] = self.error
        return entry


@dataclass
class StepTrace:
    entries: list[StepLogEntry] = field(default_factory=list)

    def log(
        self,
        step: str,
        status: StepStatus,
        details: Any = None,
        *,
        tokens_used: int | None = None,
        error: str | None = None,
    ) -> StepLogEntry:
        entry = StepLogEntry(
            step=step,
            status=status,
            timestamp=datetime.now(UTC).isoformat(),
            details=details,
            tokens_used=tokens_used,
            error=error,
        )
        self.entries.append(entry)

        log_fn = logger.warning if status == StepStatus.ERROR else logger.debug
        log_fn(
            "pipeline_step",
            step=step,
            status=status.value,
            details=details,
            tokens_used=tokens_used,
            error=error,
        )
        return entry

    def start(self, step: str, details: Any = None) -> StepLogEntry:
        return self.log(step, StepStatus.START, details)

    def success(self, step: str, details: Any = None, *, tokens_used: int | None = None) -> StepLogEntry:
        return self.log(step, StepStatus.SUCCESS, details, tokens_used=tokens_used)

    def fail(self, step: str, details: Any = None, *, error: str | None = None) -> StepLogEntry:
        return self.log(step, StepStatus.ERROR, details, error=error)

    def skip(self, step: str, details: Any = None) -> StepLogEntry:
        return self.log(step, StepStatus.SKIP, details)

    @property
    def total_tokens(self) -> int:
        return sum(e.tokens_used or 0 for e in self.entries)

    def summary(self) -> dict:
        counts = {status.value: 0 for status in StepStatus}
        for entry in self.entries:
            counts[entry.status.value] += 1
        total_tokens = self.total_tokens
        return {
            "totalSteps": len(self.entries),
            "byStatus": counts,
            "totalTokens": total_tokens,
            "estimatedCost": (total_tokens / 1000) * COST_PER_1K_TOKENS,
        }

    def to_list(self) -> list[dict]:
        return [entry.to_dict() for entry in self.entries]
