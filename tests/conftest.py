"""Shared fixtures for reporter tests."""

import io

import pytest

from gitlab_test_reporter.config import ReporterConfig, Verbosity
from gitlab_test_reporter.output import GitLabOutput
from gitlab_test_reporter.reporter import GitLabReporter
from gitlab_test_reporter.testing.output import ReporterFactory

FIXED_EPOCH = 1_700_000_000.0


@pytest.fixture
def stream() -> io.StringIO:
    """In-memory report stream."""
    return io.StringIO()


@pytest.fixture
def output(stream: io.StringIO) -> GitLabOutput:
    """Colored output with a frozen clock."""
    return GitLabOutput(stream, clock=lambda: FIXED_EPOCH)


@pytest.fixture
def make_reporter(output: GitLabOutput) -> ReporterFactory:
    """Build a reporter writing to the shared output."""

    def factory(
        verbosity: Verbosity = Verbosity.NORMAL, **overrides: object
    ) -> GitLabReporter:
        config = ReporterConfig.model_validate({"verbosity": verbosity, **overrides})
        return GitLabReporter(config, output)

    return factory
