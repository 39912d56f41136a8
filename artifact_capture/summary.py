"""Suite level outcome counts."""

import logging
from collections import Counter
from dataclasses import dataclass

from artifact_capture.models.execution import Outcome

STATUS_SYMBOLS = {
    "passed": "✅",
    "failed": "❌",
    "skipped": "⏭️",
    "broken": "⚠️",
}


@dataclass(frozen=True, kw_only=True)
class SuiteSummary:
    """Counts of finished tests by outcome."""

    suite_name: str
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    broken: int = 0

    @property
    def total(self) -> int:
        """All finished tests; broken tests are counted as skipped."""
        return self.passed + self.failed + self.skipped

    @classmethod
    def from_outcomes(cls, suite_name: str, outcomes: Counter[Outcome]) -> "SuiteSummary":
        """Fold per-test outcomes into suite counts."""
        return cls(
            suite_name=suite_name,
            passed=outcomes["pass"],
            failed=outcomes["fail"],
            skipped=outcomes["skip-clean"] + outcomes["skip-broken"],
            broken=outcomes["skip-broken"],
        )


def log_suite_summary(log: logging.Logger, summary: SuiteSummary) -> None:
    """Log a formatted summary of the finished suite."""
    log.info("=" * 80)
    log.info("Test Suite Finished: %s", summary.suite_name)
    log.info("=" * 80)
    log.info("%s Passed: %d", STATUS_SYMBOLS["passed"], summary.passed)
    log.info("%s Failed: %d", STATUS_SYMBOLS["failed"], summary.failed)
    log.info("%s Skipped: %d", STATUS_SYMBOLS["skipped"], summary.skipped)
    if summary.broken:
        log.info("  %s Broken: %d", STATUS_SYMBOLS["broken"], summary.broken)
