"""Models for browser console log entries."""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum

from pydantic import Field

from artifact_capture.models.base import Model


class ConsoleLevel(IntEnum):
    """Console severity, ordered so that SEVERE is the highest."""

    DEBUG = 10
    INFO = 20
    WARNING = 30
    SEVERE = 40


class ConsoleEntry(Model):
    """One message read from the browser console buffer."""

    level: ConsoleLevel
    message: str = Field(default="", description="Console message text")
    timestamp: datetime = Field(..., description="When the browser logged it")


@dataclass(frozen=True, kw_only=True)
class ConsoleSummary:
    """Counts of console entries by severity bucket."""

    total: int
    errors: int
    warnings: int
    info: int

    @classmethod
    def tally(cls, entries: Sequence[ConsoleEntry]) -> "ConsoleSummary":
        """Count entries: SEVERE is an error, WARNING a warning, the rest info."""
        errors = sum(1 for entry in entries if entry.level == ConsoleLevel.SEVERE)
        warnings = sum(1 for entry in entries if entry.level == ConsoleLevel.WARNING)
        return cls(
            total=len(entries),
            errors=errors,
            warnings=warnings,
            info=len(entries) - errors - warnings,
        )
