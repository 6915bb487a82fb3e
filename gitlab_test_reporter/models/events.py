"""Models for the events a test host delivers to the reporter."""

from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import Annotated, Literal
from uuid import UUID

from pydantic import Field

from gitlab_test_reporter.models.base import Model

TestOutcome = Literal["passed", "failed", "skipped", "none", "not_found"]

MessageCategory = Literal["stdout", "stderr", "debug_trace", "additional_info"]


class TestCase(Model):
    """The test case a result was produced for."""

    __test__ = False

    display_name: str = Field(..., description="Display name of the test case")
    source: str = Field(..., description="File or assembly the test came from")


class TestResultMessage(Model):
    """A chunk of text captured while a test ran."""

    __test__ = False

    category: MessageCategory = Field(..., description="Kind of captured output")
    text: str | None = Field(default=None, description="Captured text")


class TestResultRecord(Model):
    """A completed test result as reported by the host.

    Identity fields are populated by the host adapter; ``None`` means the host
    did not supply one.
    """

    __test__ = False

    test_case: TestCase
    outcome: TestOutcome
    display_name: str | None = Field(
        default=None, description="Result display name, may differ per data row"
    )
    duration: timedelta = Field(default=timedelta(0))
    start_time: datetime
    end_time: datetime
    messages: Sequence[TestResultMessage] | None = Field(default_factory=list)
    error_message: str | None = None
    error_stack_trace: str | None = None
    execution_id: UUID | None = Field(
        default=None, description="Identity of this execution"
    )
    parent_execution_id: UUID | None = Field(
        default=None, description="Identity of the hierarchical parent execution"
    )


class Attachment(Model):
    """A file attached to the run."""

    uri: str = Field(..., description="Attachment URI (file:// or plain path)")
    description: str | None = None


class AttachmentSet(Model):
    """A group of attachments produced by one data collector."""

    display_name: str = ""
    attachments: Sequence[Attachment] = Field(default_factory=list)


class TestRunMessage(Model):
    """Free-form message emitted by the host (discovery or run)."""

    __test__ = False

    kind: Literal["message"] = "message"
    level: str = Field(
        ..., description="One of informational, warning, error; others are ignored"
    )
    text: str = ""


class TestResultEvent(Model):
    """A single test finished."""

    __test__ = False

    kind: Literal["result"] = "result"
    result: TestResultRecord


class TestRunComplete(Model):
    """The run finished; delivered exactly once."""

    __test__ = False

    kind: Literal["complete"] = "complete"
    attachment_sets: Sequence[AttachmentSet] | None = Field(default_factory=list)
    is_canceled: bool = False
    is_aborted: bool = False
    error: str | None = None
    elapsed_running_time: timedelta = Field(default=timedelta(0))


ReporterEvent = Annotated[
    TestRunMessage | TestResultEvent | TestRunComplete, Field(discriminator="kind")
]
