"""Label and format strings used in the report."""

FAILED_TEST_INDICATOR = "Failed"
PASSED_TEST_INDICATOR = "Passed"
SKIPPED_TEST_INDICATOR = "Skipped"
NONE = "None"

EXECUTION_TIME_FORMAT = "Total time: {0:.4f} {1}"
DAYS = "Days"
HOURS = "Hours"
MINUTES = "Minutes"
SECONDS = "Seconds"

ERROR_MESSAGE_BANNER = "Error Message:"
STACK_TRACE_BANNER = "Stack Trace:"
STDOUT_MESSAGES_BANNER = "Standard Output Messages:"
STDERR_MESSAGES_BANNER = "Standard Error Messages:"
DEBUG_TRACE_MESSAGES_BANNER = "Debug Traces Messages:"
ADDITIONAL_INFO_MESSAGES_BANNER = "Additional Information Messages:"
TEST_SOURCES_DISCOVERED = "A total of {0} test files matched the specified pattern."

ATTACHMENT_OUTPUT_FORMAT = "  {0}"
ATTACHMENTS_BANNER = "Attachments:"

TEST_RUN_SUMMARY = (
    "{0} - Failed: {1}, Passed: {2}, Skipped: {3}, Total: {4}, Duration: {5}"
)
TEST_RUN_SUMMARY_SOURCE_AND_FRAMEWORK = " - {0} {1}"
TEST_RUN_CANCELED = "Test Run Canceled."
TEST_RUN_ABORTED = "Test Run Aborted."
TEST_RUN_ABORTED_WITH_ERROR = "Test Run Aborted with error {0}."
TEST_RUN_FAILED = "Test Run Failed."
TEST_RUN_SUCCESSFUL = "Test Run Successful."
TEST_RUN_SUMMARY_CANCELED_OR_ABORTED = "Total tests: Unknown"
TEST_RUN_SUMMARY_PASSED_TESTS = "     Passed: {0}"
TEST_RUN_SUMMARY_FAILED_TESTS = "     Failed: {0}"
TEST_RUN_SUMMARY_SKIPPED_TESTS = "     Skipped: {0}"
TEST_RUN_SUMMARY_TOTAL_TESTS = "Total tests: {0}"
