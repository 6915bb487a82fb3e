"""Test factories for generating host events."""

import uuid
from datetime import datetime, timedelta, timezone

from polyfactory import Use
from polyfactory.factories.pydantic_factory import ModelFactory

from gitlab_test_reporter.models.events import (
    TestCase,
    TestResultMessage,
    TestResultRecord,
    TestRunComplete,
)

START_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestCaseFactory(ModelFactory[TestCase]):
    """Factory for TestCase."""

    __test__ = False

    source = "tests/test_sample.py"


class TestResultRecordFactory(ModelFactory[TestResultRecord]):
    """Factory for a passed result without captured output or identity links."""

    __test__ = False

    test_case = Use(TestCaseFactory.build)
    outcome = "passed"
    display_name = None
    duration = timedelta(0)
    start_time = START_TIME
    end_time = START_TIME + timedelta(seconds=1)
    messages = Use(list[TestResultMessage])
    error_message = None
    error_stack_trace = None
    execution_id = Use(uuid.uuid4)
    parent_execution_id = None


class TestRunCompleteFactory(ModelFactory[TestRunComplete]):
    """Factory for a completed run that was neither canceled nor aborted."""

    __test__ = False

    attachment_sets = Use(list)
    is_canceled = False
    is_aborted = False
    error = None
    elapsed_running_time = timedelta(seconds=2)
