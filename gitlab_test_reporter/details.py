"""Rendering of the error and captured output of a single test result."""

from collections.abc import Iterable

from gitlab_test_reporter import resources
from gitlab_test_reporter.config import ReporterConfig
from gitlab_test_reporter.models.events import (
    MessageCategory,
    TestResultMessage,
    TestResultRecord,
)
from gitlab_test_reporter.output import AnsiColor, GitLabOutput, OutputLevel

TEST_MESSAGE_FORMATTING_PREFIX = " "
TEST_RESULT_PREFIX = "  "


def format_messages(messages: Iterable[TestResultMessage]) -> str:
    """Join message texts, indenting every line by the formatting prefix."""
    parts: list[str] = []
    for message in messages:
        if message.text is None:
            continue
        text = (
            message.text.replace("\r\n", "\n")
            .replace("\n", "\n" + TEST_MESSAGE_FORMATTING_PREFIX)
            .rstrip(TEST_MESSAGE_FORMATTING_PREFIX)
        )
        if text.strip():
            parts.append(TEST_MESSAGE_FORMATTING_PREFIX + text)
    return "".join(parts)


def messages_of(
    result: TestResultRecord, category: MessageCategory
) -> list[TestResultMessage]:
    """Select the messages of one category."""
    return [m for m in result.messages or () if m.category == category]


def render_result_details(
    output: GitLabOutput, result: TestResultRecord, config: ReporterConfig
) -> None:
    """Write the error message, stack trace and captured output of a result.

    Each non-empty part gets its own section, in a fixed order. A blank line
    follows the block when the last part present was the error message or
    standard output.
    """
    add_blank_line = False

    if result.error_message:
        add_blank_line = True
        with output.section(
            TEST_RESULT_PREFIX + resources.ERROR_MESSAGE_BANNER,
            AnsiColor.RED,
            collapsed=config.collapse_error_messages,
        ):
            output.write_line(
                TEST_RESULT_PREFIX + TEST_MESSAGE_FORMATTING_PREFIX + result.error_message,
                AnsiColor.RED,
            )

    if result.error_stack_trace:
        add_blank_line = False
        with output.section(
            TEST_RESULT_PREFIX + resources.STACK_TRACE_BANNER,
            AnsiColor.RED,
            collapsed=config.collapse_stack_traces,
        ):
            output.write_line(
                TEST_RESULT_PREFIX + result.error_stack_trace, AnsiColor.RED
            )

    if stdout_messages := messages_of(result, "stdout"):
        add_blank_line = True
        if text := format_messages(stdout_messages):
            with output.section(
                TEST_RESULT_PREFIX + resources.STDOUT_MESSAGES_BANNER,
                collapsed=config.collapse_standard_output,
            ):
                output.write_line(text, OutputLevel.INFORMATION)

    if stderr_messages := messages_of(result, "stderr"):
        add_blank_line = False
        if text := format_messages(stderr_messages):
            with output.section(
                TEST_RESULT_PREFIX + resources.STDERR_MESSAGES_BANNER,
                AnsiColor.RED,
                collapsed=config.collapse_standard_error,
            ):
                output.write_line(text, AnsiColor.RED)

    for category, banner in (
        ("debug_trace", resources.DEBUG_TRACE_MESSAGES_BANNER),
        ("additional_info", resources.ADDITIONAL_INFO_MESSAGES_BANNER),
    ):
        if category_messages := messages_of(result, category):
            add_blank_line = False
            if text := format_messages(category_messages):
                with output.section(TEST_RESULT_PREFIX + banner):
                    output.write_line(text, OutputLevel.INFORMATION)

    if add_blank_line:
        output.write_line("", OutputLevel.INFORMATION)
