"""Tests for CLI module."""

import io
import json
import logging
from collections.abc import Mapping
from pathlib import Path
from unittest.mock import patch

import pytest

from gitlab_test_reporter.cli import main, replay, run
from gitlab_test_reporter.config import ReporterConfig, Verbosity
from gitlab_test_reporter.models.events import TestResultEvent
from gitlab_test_reporter.output import GitLabOutput
from gitlab_test_reporter.reporter import GitLabReporter
from gitlab_test_reporter.testing.factories import (
    TestResultRecordFactory,
    TestRunCompleteFactory,
)
from gitlab_test_reporter.testing.output import report_lines

PARAMETERS = {"TestRunDirectory": "/build", "verbosity": "normal"}


def result_line(**fields: object) -> str:
    """JSON line for a result event."""
    event = TestResultEvent(result=TestResultRecordFactory.build(**fields))
    return event.model_dump_json()


def complete_line(**fields: object) -> str:
    """JSON line for a completion event."""
    return TestRunCompleteFactory.build(**fields).model_dump_json()


def message_line(level: str, text: str) -> str:
    """JSON line for a message event."""
    return json.dumps({"kind": "message", "level": level, "text": text})


@pytest.fixture
def events_file(tmp_path: Path) -> Path:
    """Path for an event log."""
    return tmp_path / "events.jsonl"


def write_events(path: Path, *lines: str) -> Path:
    """Write an event log."""
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


class TestReplay:
    """Tests for replay."""

    @pytest.fixture
    def reporter(self) -> GitLabReporter:
        """Reporter writing to memory."""
        return GitLabReporter(
            ReporterConfig(verbosity=Verbosity.NORMAL), GitLabOutput(io.StringIO())
        )

    def test_returns_totals(self, reporter: GitLabReporter) -> None:
        """Events are handled in order up to completion."""
        totals = replay(
            reporter,
            [
                message_line("informational", "starting"),
                result_line(display_name="test_a"),
                result_line(display_name="test_b", outcome="failed"),
                complete_line(),
            ],
        )

        assert totals is not None
        assert (totals.total, totals.passed, totals.failed) == (2, 1, 1)

    def test_skips_blank_lines(self, reporter: GitLabReporter) -> None:
        """Empty lines between events are allowed."""
        totals = replay(reporter, ["", result_line(), "  ", complete_line()])

        assert totals is not None
        assert totals.total == 1

    def test_missing_completion(self, reporter: GitLabReporter) -> None:
        """Returns None when the log has no completion event."""
        assert replay(reporter, [result_line()]) is None

    def test_invalid_line(self, reporter: GitLabReporter) -> None:
        """Invalid events name the offending line."""
        with pytest.raises(ValueError, match="Invalid event on line 2"):
            replay(reporter, [result_line(), '{"kind": "bogus"}'])

    def test_events_after_completion_ignored(
        self, reporter: GitLabReporter, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Nothing is handled once the run completed."""
        with caplog.at_level(logging.WARNING):
            totals = replay(reporter, [complete_line(), result_line()])

        assert totals is not None
        assert totals.total == 0
        assert reporter.leaf_results == {}
        assert "Ignoring event after run completion (line 2)" in caplog.text


class TestRun:
    """Tests for run."""

    def replay_file(
        self, events_file: Path, parameters: Mapping[str, str] = PARAMETERS
    ) -> tuple[int, str]:
        """Run against a file without colors, returning exit code and output."""
        stream = io.StringIO()
        exit_code = run(events_file, parameters, stream, no_color=True)
        return exit_code, stream.getvalue()

    def test_returns_zero_when_run_succeeds(self, events_file: Path) -> None:
        """A passing run exits with zero and prints the summary."""
        write_events(events_file, result_line(display_name="test_a"), complete_line())

        exit_code, text = self.replay_file(events_file)

        assert exit_code == 0
        assert report_lines(text) == [
            "  Passed test_a",
            "",
            "Test Run Successful.",
            "Total tests: 1",
            "     Passed: 1",
            "Total time: 2.0000 Seconds",
        ]

    def test_returns_one_when_test_fails(self, events_file: Path) -> None:
        """A failing test fails the process."""
        write_events(events_file, result_line(outcome="failed"), complete_line())

        exit_code, _ = self.replay_file(events_file)

        assert exit_code == 1

    def test_returns_one_when_aborted(self, events_file: Path) -> None:
        """An aborted run fails the process even without failures."""
        write_events(events_file, result_line(), complete_line(is_aborted=True))

        exit_code, text = self.replay_file(events_file)

        assert exit_code == 1
        assert "Test Run Aborted." in report_lines(text)

    def test_returns_one_without_completion(
        self, events_file: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A truncated log fails the process."""
        write_events(events_file, result_line())

        with caplog.at_level(logging.ERROR):
            exit_code, _ = self.replay_file(events_file)

        assert exit_code == 1
        assert "ended without a run completion event" in caplog.text

    def test_returns_two_on_invalid_event(
        self, events_file: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Malformed logs are reported with their line number."""
        write_events(events_file, "not json")

        with caplog.at_level(logging.ERROR):
            exit_code, _ = self.replay_file(events_file)

        assert exit_code == 2
        assert "Invalid event on line 1" in caplog.text

    def test_returns_two_when_file_missing(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """An unreadable event log is reported without a traceback."""
        missing = tmp_path / "missing.jsonl"

        with caplog.at_level(logging.ERROR):
            exit_code, text = self.replay_file(missing)

        assert exit_code == 2
        assert text == ""
        assert f"Cannot read events from {missing}" in caplog.text

    def test_reads_stdin(self) -> None:
        """No path means standard input."""
        stdin = io.StringIO(complete_line() + "\n")

        with patch("sys.stdin", stdin):
            exit_code = run(None, PARAMETERS, io.StringIO())

        assert exit_code == 0

    def test_verbosity_parameter(self, events_file: Path) -> None:
        """Minimal verbosity prints per-source lines instead of totals."""
        write_events(events_file, result_line(), complete_line())

        _, text = self.replay_file(
            events_file, {"TestRunDirectory": "/build", "verbosity": "minimal"}
        )

        assert report_lines(text)[1].startswith("Passed!  - Failed:     0")


class TestMain:
    """Tests for the argument parsing entry point."""

    def test_exits_with_run_result(self, events_file: Path) -> None:
        """Parameters are forwarded and the exit code propagated."""
        write_events(events_file, result_line(outcome="failed"), complete_line())
        argv = [
            "gitlab-test-report",
            "--param",
            "verbosity=quiet",
            "--param",
            "failedTestSeparator=",
            "--no-color",
            str(events_file),
        ]

        with (
            patch("sys.argv", argv),
            patch("gitlab_test_reporter.cli.run", return_value=1) as mock_run,
            pytest.raises(SystemExit) as exc_info,
        ):
            main()

        assert exc_info.value.code == 1
        kwargs = mock_run.call_args.kwargs
        assert kwargs["events_path"] == events_file
        assert kwargs["no_color"] is True
        assert kwargs["parameters"]["verbosity"] == "quiet"
        assert kwargs["parameters"]["failedTestSeparator"] == ""
        assert kwargs["parameters"]["TestRunDirectory"] == str(Path.cwd())

    def test_dash_reads_stdin(self) -> None:
        """A dash selects standard input."""
        with (
            patch("sys.argv", ["gitlab-test-report", "-"]),
            patch("gitlab_test_reporter.cli.run", return_value=0) as mock_run,
            pytest.raises(SystemExit) as exc_info,
        ):
            main()

        assert exc_info.value.code == 0
        assert mock_run.call_args.kwargs["events_path"] is None

    def test_rejects_malformed_parameter(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Parameters must be KEY=VALUE."""
        with (
            patch("sys.argv", ["gitlab-test-report", "--param", "verbosity", "-"]),
            pytest.raises(SystemExit) as exc_info,
        ):
            main()

        assert exc_info.value.code == 2
        assert "expected KEY=VALUE" in capsys.readouterr().err
