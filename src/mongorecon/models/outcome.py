"""Component run outcomes reported back to the orchestrator."""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from loguru import logger


class OutcomeStatus(StrEnum):
    """Terminal status of a component run."""

    APPLIED = "applied"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class Outcome:
    """
    Result of a single component run.

    Messages are logged as they are recorded, so the outcome doubles
    as the human-readable status trail for the run.
    """

    component: str
    status: OutcomeStatus = OutcomeStatus.UNCHANGED
    messages: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status != OutcomeStatus.FAILED

    def info(self, message: str, *args: Any) -> None:
        text = message.format(*args)
        self.messages.append(text)
        logger.opt(depth=1).info("[{}] {}", self.component, text)

    def warning(self, message: str, *args: Any) -> None:
        text = message.format(*args)
        self.warnings.append(text)
        logger.opt(depth=1).warning("[{}] {}", self.component, text)

    def error(self, message: str, *args: Any) -> None:
        text = message.format(*args)
        self.errors.append(text)
        logger.opt(depth=1).error("[{}] {}", self.component, text)

    def mark_applied(self) -> None:
        """Record that a change was made, unless the run already failed."""
        if self.status == OutcomeStatus.UNCHANGED:
            self.status = OutcomeStatus.APPLIED

    def skip(self, message: str, *args: Any) -> "Outcome":
        self.warning(message, *args)
        self.status = OutcomeStatus.SKIPPED
        return self

    def fail(self, message: str, *args: Any) -> "Outcome":
        self.error(message, *args)
        self.status = OutcomeStatus.FAILED
        return self

    def finish(self) -> "Outcome":
        """Fail the run if any per-item error was recorded."""
        if self.errors and self.status != OutcomeStatus.SKIPPED:
            self.status = OutcomeStatus.FAILED
        return self
