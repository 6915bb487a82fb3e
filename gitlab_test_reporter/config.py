"""Configuration for the GitLab test reporter."""

import enum
import logging
import re
from collections.abc import Mapping, Sequence

from pydantic import BaseModel, ConfigDict

log = logging.getLogger(__name__)

VERBOSITY_PARAM = "verbosity"
COLLAPSE_STACK_TRACES_PARAM = "collapseStackTraces"
COLLAPSE_ERROR_MESSAGES_PARAM = "collapseErrorMessages"
COLLAPSE_STANDARD_OUTPUT_PARAM = "collapseStandardOutput"
COLLAPSE_STANDARD_ERROR_PARAM = "collapseStandardError"
FAILED_TEST_SEPARATOR_PARAM = "failedTestSeparator"
TARGET_FRAMEWORK_PARAM = "TargetFramework"

DEFAULT_FAILED_TEST_SEPARATOR = "\n \n "

_FRAMEWORK_PATTERN = re.compile(
    r"^\.NET(?P<family>CoreApp|Framework|Standard)\s*,\s*Version\s*=\s*v?"
    r"(?P<version>\d+(?:\.\d+)*)",
    re.IGNORECASE,
)


class ConfigurationError(ValueError):
    """Raised when the host supplies no configuration at all."""


class Verbosity(enum.IntEnum):
    """How much of the run is printed, in increasing order."""

    QUIET = 0
    MINIMAL = 1
    NORMAL = 2
    DETAILED = 3

    @classmethod
    def parse(cls, value: str) -> "Verbosity | None":
        """Parse a verbosity name case-insensitively, None when unknown."""
        try:
            return cls[value.strip().upper()]
        except KeyError:
            return None


class ReporterConfig(BaseModel):
    """Settings for one run, immutable once the reporter is initialized."""

    model_config = ConfigDict(frozen=True)

    verbosity: Verbosity = Verbosity.MINIMAL
    collapse_stack_traces: bool = False
    collapse_error_messages: bool = False
    collapse_standard_output: bool = True
    collapse_standard_error: bool = True
    failed_test_separator: str = DEFAULT_FAILED_TEST_SEPARATOR
    target_framework: str | None = None

    @classmethod
    def from_parameters(cls, parameters: Mapping[str, str | None]) -> "ReporterConfig":
        """Bind a host parameter bag.

        Values that do not parse keep their default.

        Raises:
            ConfigurationError: If the bag is empty

        """
        if not parameters:
            raise ConfigurationError("No default parameters added")

        values: dict[str, object] = {}

        if (raw := parameters.get(VERBOSITY_PARAM)) is not None:
            if (verbosity := Verbosity.parse(raw)) is not None:
                values["verbosity"] = verbosity
            else:
                log.warning("Ignoring unknown verbosity %r", raw)

        for param, name in (
            (COLLAPSE_ERROR_MESSAGES_PARAM, "collapse_error_messages"),
            (COLLAPSE_STACK_TRACES_PARAM, "collapse_stack_traces"),
            (COLLAPSE_STANDARD_OUTPUT_PARAM, "collapse_standard_output"),
            (COLLAPSE_STANDARD_ERROR_PARAM, "collapse_standard_error"),
        ):
            if (flag := parse_bool(parameters.get(param))) is not None:
                values[name] = flag

        if (separator := parameters.get(FAILED_TEST_SEPARATOR_PARAM)) is not None:
            values["failed_test_separator"] = separator

        values["target_framework"] = short_framework_name(
            parameters.get(TARGET_FRAMEWORK_PARAM)
        )

        return cls.model_validate(values)


def parse_bool(value: str | None) -> bool | None:
    """Parse ``true``/``false`` case-insensitively, None for anything else."""
    if value is None:
        return None
    match value.strip().lower():
        case "true":
            return True
        case "false":
            return False
        case _:
            return None


def short_framework_name(value: str | None) -> str | None:
    """Shorten a target framework identifier for display.

    ``.NETCoreApp,Version=v8.0`` becomes ``net8.0``; values that are already
    short, or not recognized, are returned stripped.
    """
    if value is None or not value.strip():
        return None

    value = value.strip()
    if (match := _FRAMEWORK_PATTERN.match(value)) is None:
        return value

    family = match.group("family").lower()
    version = match.group("version")
    major = int(version.split(".")[0])

    if family == "framework":
        return "net" + version.replace(".", "")
    if family == "standard":
        return f"netstandard{version}"
    if major >= 5:
        return f"net{version}"
    return f"netcoreapp{version}"


def parse_parameters(pairs: Sequence[str]) -> dict[str, str]:
    """Parse ``KEY=VALUE`` strings into a parameter bag.

    Raises:
        ValueError: If an entry has no ``=``

    """
    parameters: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Invalid parameter '{pair}', expected KEY=VALUE")
        parameters[key.strip()] = value
    return parameters
