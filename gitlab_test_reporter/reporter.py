"""Event reducer turning host events into a GitLab CI friendly report."""

import logging
import re
import uuid
from collections.abc import Iterable, Mapping, Sequence
from pathlib import PureWindowsPath
from uuid import UUID

from yarl import URL

from gitlab_test_reporter import resources
from gitlab_test_reporter.config import ReporterConfig, Verbosity
from gitlab_test_reporter.details import TEST_RESULT_PREFIX, render_result_details
from gitlab_test_reporter.duration import format_duration, format_total_time
from gitlab_test_reporter.models.events import (
    AttachmentSet,
    TestOutcome,
    TestResultEvent,
    TestResultRecord,
    TestRunComplete,
    TestRunMessage,
)
from gitlab_test_reporter.models.result import LeafResult, RunTotals, SourceSummary
from gitlab_test_reporter.output import AnsiColor, GitLabOutput, OutputLevel

log = logging.getLogger(__name__)

TEST_RESULT_SUFFIX = " "
EMPTY_ID = UUID(int=0)
DRIVE_PATH_PATTERN = re.compile(r"^/[A-Za-z]:")

INDICATORS: Mapping[TestOutcome, str] = {
    "failed": resources.FAILED_TEST_INDICATOR,
    "passed": resources.PASSED_TEST_INDICATOR,
    "skipped": resources.SKIPPED_TEST_INDICATOR,
}

OUTCOME_COLORS: Mapping[TestOutcome, AnsiColor] = {
    "failed": AnsiColor.RED,
    "passed": AnsiColor.GREEN,
    "skipped": AnsiColor.YELLOW,
}

# Longest indicator (+1 for "!") so summary lines stay aligned.
LONGEST_RESULT_INDICATOR = max(
    [len(indicator) + 1 for indicator in INDICATORS.values()] + [len(resources.NONE)]
)


class DuplicateExecutionIdError(RuntimeError):
    """Raised when two results claim the same execution id."""


class GitLabReporter:
    """Consumes test host events and writes the report.

    Handlers may be called from any thread. Each one runs to completion while
    holding the output lock, which also guards the leaf result map.
    """

    def __init__(self, config: ReporterConfig, output: GitLabOutput) -> None:
        self.config = config
        self.output = output
        self._leaf_results: dict[UUID, LeafResult] = {}
        self._has_error_messages = False

    @property
    def verbosity(self) -> Verbosity:
        """Configured verbosity."""
        return self.config.verbosity

    @property
    def leaf_results(self) -> Mapping[UUID, LeafResult]:
        """Snapshot of the results currently counted as leaves."""
        with self.output.lock:
            return dict(self._leaf_results)

    def handle(
        self, event: TestRunMessage | TestResultEvent | TestRunComplete
    ) -> RunTotals | None:
        """Dispatch any event to its handler."""
        match event:
            case TestRunMessage():
                self.handle_message(event)
            case TestResultEvent():
                self.handle_result(event.result)
            case TestRunComplete():
                return self.handle_run_complete(event)
        return None

    def handle_message(self, message: TestRunMessage) -> None:
        """Print a host message if the verbosity allows it."""
        with self.output.lock:
            match message.level:
                case "informational":
                    if self.verbosity > Verbosity.MINIMAL:
                        self.output.write_line(message.text, OutputLevel.INFORMATION)
                case "warning":
                    if self.verbosity > Verbosity.QUIET:
                        self.output.write_line(message.text, OutputLevel.WARNING)
                case "error":
                    self._has_error_messages = True
                    self.output.write_line(message.text, OutputLevel.ERROR)
                case _:
                    log.warning(
                        "The test message level is unrecognized: %s", message.level
                    )

    def handle_result(self, result: TestResultRecord) -> None:
        """Record a result as a leaf and print its line and details.

        Raises:
            DuplicateExecutionIdError: If the execution id was already recorded

        """
        with self.output.lock:
            display_name = result.display_name
            if not display_name or display_name.isspace():
                display_name = result.test_case.display_name

            if formatted_duration := format_duration(result.duration):
                display_name = f"{display_name} [{formatted_duration}]"

            execution_id = result.execution_id
            if execution_id is None or execution_id == EMPTY_ID:
                execution_id = uuid.uuid4()
            parent_execution_id = result.parent_execution_id or EMPTY_ID

            if parent_execution_id != EMPTY_ID:
                # The parent was recorded as a leaf before its children finished.
                if self._leaf_results.pop(parent_execution_id, None) is not None:
                    log.debug("Evicted parent execution %s", parent_execution_id)

            if execution_id in self._leaf_results:
                raise DuplicateExecutionIdError(
                    f"ExecutionId {execution_id} already exists."
                )
            self._leaf_results[execution_id] = LeafResult.from_record(result)

            self._write_result(result, display_name)

    def _write_result(self, result: TestResultRecord, display_name: str) -> None:
        if self.verbosity == Verbosity.QUIET:
            return

        match result.outcome:
            case "failed":
                self._write_indicator("failed", display_name)
                render_result_details(self.output, result, self.config)
                if self.config.failed_test_separator:
                    self.output.write_line(
                        self.config.failed_test_separator, AnsiColor.OFF
                    )
            case "passed":
                if self.verbosity >= Verbosity.NORMAL:
                    self._write_indicator("passed", display_name)
                    if self.verbosity == Verbosity.DETAILED:
                        render_result_details(self.output, result, self.config)
            case _:
                self._write_indicator("skipped", display_name)
                if self.verbosity == Verbosity.DETAILED:
                    render_result_details(self.output, result, self.config)

    def _write_indicator(self, outcome: TestOutcome, display_name: str) -> None:
        indicator = TEST_RESULT_PREFIX + INDICATORS[outcome] + TEST_RESULT_SUFFIX
        self.output.write(indicator, OUTCOME_COLORS[outcome])
        self.output.write_line(display_name, OutputLevel.INFORMATION)

    def handle_run_complete(self, event: TestRunComplete) -> RunTotals:
        """Summarize the leaves per source and for the whole run.

        The leaf map is drained; the returned totals describe the run.
        """
        with self.output.lock:
            leaves, self._leaf_results = self._leaf_results, {}

            self.output.write_line("", OutputLevel.INFORMATION)
            self._write_attachments(event.attachment_sets or ())

            total = passed = failed = skipped = 0
            for source, results in group_by_source(leaves.values()).items():
                summary = summarize_source(results)
                if self.verbosity <= Verbosity.MINIMAL:
                    self._write_source_summary(source, summary)

                total += summary.total
                passed += summary.passed
                failed += summary.failed
                skipped += summary.skipped

            totals = RunTotals(
                total=total,
                passed=passed,
                failed=failed,
                skipped=skipped,
                has_error_messages=self._has_error_messages,
                is_canceled=event.is_canceled,
                is_aborted=event.is_aborted,
            )

            if self.verbosity <= Verbosity.MINIMAL:
                self._write_canceled_or_aborted(event)
                return totals

            if not self._write_canceled_or_aborted(event):
                if failed > 0 or self._has_error_messages:
                    self.output.write_line(resources.TEST_RUN_FAILED, OutputLevel.ERROR)
                elif total > 0:
                    self.output.write_line(
                        resources.TEST_RUN_SUCCESSFUL, AnsiColor.GREEN
                    )

            if total > 0:
                self._write_run_summary(event, totals)

            return totals

    def _write_attachments(self, attachment_sets: Sequence[AttachmentSet]) -> None:
        attachments = [a for s in attachment_sets for a in s.attachments]
        if not attachments:
            return

        self.output.write_line(resources.ATTACHMENTS_BANNER, OutputLevel.INFORMATION)
        for attachment in attachments:
            self.output.write_line(
                resources.ATTACHMENT_OUTPUT_FORMAT.format(local_path(attachment.uri)),
                OutputLevel.INFORMATION,
            )

    def _write_source_summary(self, source: str, summary: SourceSummary) -> None:
        outcome = summary.outcome
        if outcome in INDICATORS:
            result_string = (INDICATORS[outcome] + "!").ljust(LONGEST_RESULT_INDICATOR)
        else:
            result_string = resources.NONE.ljust(LONGEST_RESULT_INDICATOR)

        framework = self.config.target_framework
        framework_string = f"({framework})" if framework else ""

        line = resources.TEST_RUN_SUMMARY.format(
            result_string,
            f"{summary.failed:>5}",
            f"{summary.passed:>5}",
            f"{summary.skipped:>5}",
            f"{summary.total:>5}",
            format_duration(summary.duration) or "",
        )
        self.output.write(line, OUTCOME_COLORS.get(outcome, AnsiColor.OFF))
        self.output.write_line(
            resources.TEST_RUN_SUMMARY_SOURCE_AND_FRAMEWORK.format(
                file_name(source), framework_string
            ),
            OutputLevel.INFORMATION,
        )

    def _write_canceled_or_aborted(self, event: TestRunComplete) -> bool:
        if event.is_canceled:
            self.output.write_line(resources.TEST_RUN_CANCELED, OutputLevel.ERROR)
        elif event.is_aborted:
            if event.error is None:
                self.output.write_line(resources.TEST_RUN_ABORTED, OutputLevel.ERROR)
            else:
                self.output.write_line(
                    resources.TEST_RUN_ABORTED_WITH_ERROR.format(event.error),
                    OutputLevel.ERROR,
                )
        else:
            return False
        return True

    def _write_run_summary(self, event: TestRunComplete, totals: RunTotals) -> None:
        if event.is_aborted or event.is_canceled:
            total_line = resources.TEST_RUN_SUMMARY_CANCELED_OR_ABORTED
        else:
            total_line = resources.TEST_RUN_SUMMARY_TOTAL_TESTS.format(totals.total)
        self.output.write_line(total_line, OutputLevel.INFORMATION)

        if totals.passed > 0:
            self.output.write_line(
                resources.TEST_RUN_SUMMARY_PASSED_TESTS.format(totals.passed),
                AnsiColor.GREEN,
            )
        if totals.failed > 0:
            self.output.write_line(
                resources.TEST_RUN_SUMMARY_FAILED_TESTS.format(totals.failed),
                AnsiColor.RED,
            )
        if totals.skipped > 0:
            self.output.write_line(
                resources.TEST_RUN_SUMMARY_SKIPPED_TESTS.format(totals.skipped),
                AnsiColor.YELLOW,
            )

        if not event.elapsed_running_time:
            log.info(
                "Skipped printing test execution time because it could not be measured"
            )
        else:
            self.output.write_line(
                format_total_time(event.elapsed_running_time), OutputLevel.INFORMATION
            )


def group_by_source(leaves: Iterable[LeafResult]) -> dict[str, list[LeafResult]]:
    """Group leaves by source, in order of first appearance."""
    groups: dict[str, list[LeafResult]] = {}
    for leaf in leaves:
        groups.setdefault(leaf.source, []).append(leaf)
    return groups


def summarize_source(results: Sequence[LeafResult]) -> SourceSummary:
    """Count the outcomes of one source's leaves.

    The duration spans from the earliest start to the latest end.
    """
    if not results:
        return SourceSummary()

    passed = sum(1 for r in results if r.outcome == "passed")
    failed = sum(1 for r in results if r.outcome == "failed")
    skipped = sum(1 for r in results if r.outcome == "skipped")

    return SourceSummary(
        total=passed + failed + skipped,
        passed=passed,
        failed=failed,
        skipped=skipped,
        duration=max(r.end_time for r in results) - min(r.start_time for r in results),
    )


def file_name(source: str) -> str:
    """Final path component of a source, for either path flavour."""
    return PureWindowsPath(source).name


def local_path(uri: str) -> str:
    """Local filesystem path of an attachment URI.

    File URIs keep their host as a UNC prefix and lose the slash in front of
    a drive letter. Anything else is returned unchanged.
    """
    url = URL(uri)
    if url.scheme != "file":
        return uri

    path = url.path
    if url.host:
        return f"//{url.host}{path}"
    if DRIVE_PATH_PATTERN.match(path):
        return path[1:]
    return path
