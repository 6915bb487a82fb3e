"""pytest plugin reporting a session through the GitLab reporter.

Enable with ``-p gitlab_test_reporter.hosts.pytest_plugin --gitlab-report``.
"""

import logging
import time
import uuid
import warnings
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from gitlab_test_reporter import resources
from gitlab_test_reporter.config import ReporterConfig, parse_parameters
from gitlab_test_reporter.models.events import (
    Attachment,
    AttachmentSet,
    TestCase,
    TestOutcome,
    TestResultMessage,
    TestResultRecord,
    TestRunComplete,
    TestRunMessage,
)
from gitlab_test_reporter.output import GitLabOutput
from gitlab_test_reporter.reporter import GitLabReporter

log = logging.getLogger(__name__)

PLUGIN_NAME = "gitlab-report"


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register the command line options."""
    group = parser.getgroup("gitlab-report", "GitLab CI test report")
    group.addoption(
        "--gitlab-report",
        action="store_true",
        default=False,
        help="Write a GitLab CI report with collapsible sections",
    )
    group.addoption(
        "--gitlab-report-param",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Reporter parameter, e.g. verbosity=normal (repeatable)",
    )


def pytest_configure(config: pytest.Config) -> None:
    """Register the reporting plugin when requested."""
    if not config.getoption("gitlab_report"):
        return

    try:
        parameters = parse_parameters(config.getoption("gitlab_report_param"))
    except ValueError as e:
        raise pytest.UsageError(str(e)) from e
    parameters.setdefault("TestRunDirectory", str(config.rootpath))
    reporter_config = ReporterConfig.from_parameters(parameters)

    log.debug("GitLab report enabled: verbosity=%s", reporter_config.verbosity.name)
    config.pluginmanager.register(
        GitLabReportPlugin(config, reporter_config), PLUGIN_NAME
    )


class TerminalStream:
    """Routes report text through pytest's terminal reporter."""

    def __init__(self, terminal_reporter: pytest.TerminalReporter) -> None:
        self.terminal_reporter = terminal_reporter

    def write(self, text: str, /) -> None:
        """Write text after any pending progress line."""
        self.terminal_reporter.ensure_newline()
        self.terminal_reporter.write(text, flush=True)


class GitLabReportPlugin:
    """Translates pytest hooks into reporter events."""

    def __init__(self, config: pytest.Config, reporter_config: ReporterConfig) -> None:
        self.config = config
        self.reporter_config = reporter_config
        self.reporter: GitLabReporter | None = None
        self._session_start = 0.0
        self._reports: dict[str, list[pytest.TestReport]] = {}

    def pytest_sessionstart(self, session: pytest.Session) -> None:
        """Create the reporter once the terminal is available."""
        self._session_start = time.time()
        terminal_reporter = self.config.pluginmanager.get_plugin("terminalreporter")
        stream = TerminalStream(terminal_reporter) if terminal_reporter else None
        self.reporter = GitLabReporter(
            self.reporter_config, GitLabOutput.from_environment(stream)
        )

    def pytest_collection_finish(self, session: pytest.Session) -> None:
        """Report how many test files were collected."""
        files = {item.location[0] for item in session.items}
        self._message(
            "informational", resources.TEST_SOURCES_DISCOVERED.format(len(files))
        )

    def pytest_collectreport(self, report: pytest.CollectReport) -> None:
        """Report collection errors as error messages."""
        if report.failed:
            self._message("error", f"{report.nodeid}: {report.longreprtext}")

    def pytest_warning_recorded(
        self,
        warning_message: warnings.WarningMessage,
        when: str,
        nodeid: str,
        location: tuple[str, int, str] | None,
    ) -> None:
        """Report recorded warnings."""
        category = getattr(warning_message.category, "__name__", "Warning")
        text = (
            f"{warning_message.filename}:{warning_message.lineno}: "
            f"{category}: {warning_message.message}"
        )
        self._message("warning", text)

    def pytest_runtest_logreport(self, report: pytest.TestReport) -> None:
        """Collect the phases of a test and report it after teardown."""
        reports = self._reports.setdefault(report.nodeid, [])
        reports.append(report)
        if report.when != "teardown":
            return

        del self._reports[report.nodeid]
        if self.reporter is not None:
            self.reporter.handle_result(result_from_reports(reports))

    @pytest.hookimpl(trylast=True)
    def pytest_sessionfinish(
        self, session: pytest.Session, exitstatus: int | pytest.ExitCode
    ) -> None:
        """Print the run summary."""
        if self.reporter is None:
            return

        attachments = []
        if xml_path := getattr(self.config.option, "xmlpath", None):
            attachments.append(Attachment(uri=Path(xml_path).resolve().as_uri()))

        self.reporter.handle_run_complete(
            TestRunComplete(
                attachment_sets=[AttachmentSet(attachments=attachments)],
                is_canceled=exitstatus == pytest.ExitCode.INTERRUPTED,
                is_aborted=exitstatus == pytest.ExitCode.INTERNAL_ERROR,
                elapsed_running_time=timedelta(
                    seconds=time.time() - self._session_start
                ),
            )
        )

    def _message(self, level: str, text: str) -> None:
        if self.reporter is not None:
            self.reporter.handle_message(TestRunMessage(level=level, text=text))


def result_from_reports(reports: Sequence[pytest.TestReport]) -> TestResultRecord:
    """Merge the setup, call and teardown reports of one test."""
    last = reports[-1]
    outcome = merged_outcome(reports)
    decisive = next(
        (r for r in reports if r.outcome == outcome),
        last,
    )

    messages = [
        TestResultMessage(category=category, text=text)
        for category, text in (
            ("stdout", last.capstdout),
            ("stderr", last.capstderr),
            ("debug_trace", last.caplog),
        )
        if text
    ]

    return TestResultRecord(
        test_case=TestCase(display_name=last.nodeid, source=last.location[0]),
        display_name=last.location[2],
        outcome=outcome,
        duration=timedelta(seconds=sum(r.duration for r in reports)),
        start_time=timestamp(min(r.start for r in reports)),
        end_time=timestamp(max(r.stop for r in reports)),
        messages=messages,
        error_message=error_message(decisive) if outcome != "passed" else None,
        error_stack_trace=decisive.longreprtext if outcome == "failed" else None,
        execution_id=uuid.uuid4(),
    )


def merged_outcome(reports: Sequence[pytest.TestReport]) -> TestOutcome:
    """A failure in any phase fails the test; otherwise a skip skips it."""
    outcomes = {r.outcome for r in reports}
    if "failed" in outcomes:
        return "failed"
    if "skipped" in outcomes:
        return "skipped"
    return "passed"


def error_message(report: pytest.TestReport) -> str | None:
    """Crash message of a failure, or the reason of a skip."""
    longrepr = report.longrepr
    if longrepr is None:
        return None
    if isinstance(longrepr, tuple):
        return str(longrepr[2])
    if (crash := getattr(longrepr, "reprcrash", None)) is not None:
        return str(crash.message)
    return str(longrepr).splitlines()[0] if str(longrepr) else None


def timestamp(epoch: float) -> datetime:
    """UTC datetime for an epoch timestamp."""
    return datetime.fromtimestamp(epoch, tz=timezone.utc)

