"""Models for aggregated test outcomes."""

from dataclasses import dataclass
from datetime import datetime, timedelta

from gitlab_test_reporter.models.events import TestOutcome, TestResultRecord


@dataclass(frozen=True, kw_only=True)
class LeafResult:
    """Minimal projection of a result kept until the run completes.

    Only leaves are counted in statistics; a leaf is evicted when a later
    result names it as its parent.
    """

    source: str
    outcome: TestOutcome
    start_time: datetime
    end_time: datetime

    @classmethod
    def from_record(cls, record: TestResultRecord) -> "LeafResult":
        """Project a full result record."""
        return cls(
            source=record.test_case.source,
            outcome=record.outcome,
            start_time=record.start_time,
            end_time=record.end_time,
        )


@dataclass(frozen=True, kw_only=True)
class SourceSummary:
    """Counters for the leaves of one test source."""

    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    duration: timedelta = timedelta(0)

    @property
    def outcome(self) -> TestOutcome:
        """Outcome shown for the whole source: failed > passed > skipped."""
        if self.failed > 0:
            return "failed"
        if self.passed > 0:
            return "passed"
        if self.skipped > 0:
            return "skipped"
        return "none"


@dataclass(frozen=True, kw_only=True)
class RunTotals:
    """Cumulative counters for a whole run."""

    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    has_error_messages: bool = False
    is_canceled: bool = False
    is_aborted: bool = False

    @property
    def run_failed(self) -> bool:
        """Whether a host should treat the run as unsuccessful."""
        return (
            self.failed > 0
            or self.has_error_messages
            or self.is_canceled
            or self.is_aborted
        )
