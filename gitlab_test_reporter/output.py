"""Text sink with ANSI colors and GitLab collapsible sections."""

import enum
import os
import sys
import threading
import time
from collections.abc import Callable, Generator, Mapping
from contextlib import contextmanager
from typing import Protocol

ESCAPE = "\x1b"
CLEAR_LINE = f"{ESCAPE}[0K"


class AnsiColor(enum.Enum):
    """Terminal colors used by the report."""

    OFF = "0"
    RED = "31"
    GREEN = "32"
    YELLOW = "33"
    RED_BACKGROUND = "41"

    def __str__(self) -> str:
        return f"{ESCAPE}[{self.value}m"


class OutputLevel(enum.Enum):
    """Semantic level of a line, mapped to a default color."""

    INFORMATION = "information"
    WARNING = "warning"
    ERROR = "error"


LEVEL_COLORS: Mapping[OutputLevel, AnsiColor] = {
    OutputLevel.INFORMATION: AnsiColor.OFF,
    OutputLevel.WARNING: AnsiColor.YELLOW,
    OutputLevel.ERROR: AnsiColor.RED_BACKGROUND,
}


class TextStream(Protocol):
    """Anything text can be written to."""

    def write(self, text: str, /) -> object:
        """Write text without adding a newline."""


class GitLabOutput:
    """Synchronous text sink shared by all event handlers of one reporter.

    ``lock`` is the single ordering lock for the report. Individual writes
    take it, and handlers hold it across a whole event so lines and sections
    from concurrent events never interleave. Section names come from a
    counter owned by this instance.
    """

    def __init__(
        self,
        stream: TextStream,
        *,
        no_color: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.stream = stream
        self.no_color = no_color
        self.lock = threading.RLock()
        self._clock = clock
        self._section_count = 0

    @classmethod
    def from_environment(
        cls, stream: TextStream | None = None, *, no_color: bool = False
    ) -> "GitLabOutput":
        """Create an output honoring the ``NO_COLOR`` environment variable."""
        return cls(
            stream if stream is not None else sys.stdout,
            no_color=no_color or bool(os.environ.get("NO_COLOR")),
        )

    def format(self, message: str, color: AnsiColor | OutputLevel) -> str:
        """Wrap a message in a color code and a reset code."""
        if isinstance(color, OutputLevel):
            color = LEVEL_COLORS[color]
        if self.no_color:
            color = AnsiColor.OFF
        message = message.replace("\r\n", "\n")
        return f"{color}{message}{AnsiColor.OFF}"

    def write(self, message: str, color: AnsiColor | OutputLevel) -> None:
        """Write a colored message without a line break."""
        with self.lock:
            self.stream.write(self.format(message, color))

    def write_line(self, message: str, color: AnsiColor | OutputLevel) -> None:
        """Write a colored message followed by a line break."""
        with self.lock:
            self.stream.write(self.format(message, color) + "\n")

    @contextmanager
    def section(
        self,
        title: str,
        color: AnsiColor | None = None,
        *,
        collapsed: bool = False,
    ) -> Generator[None, None, None]:
        """Wrap the output written inside the block in a collapsible section.

        The end marker is written on every exit path.
        See https://docs.gitlab.com/ee/ci/jobs/#custom-collapsible-sections
        """
        self._section_count += 1
        name = f"s{self._section_count}"
        collapsed_text = "[collapsed=true]" if collapsed else ""
        title_color = ""
        if color is not None:
            title_color = str(AnsiColor.OFF if self.no_color else color)

        with self.lock:
            self.stream.write(
                f"{CLEAR_LINE}section_start:{self._timestamp()}:{name}{collapsed_text}"
                f"\r{CLEAR_LINE}{title_color}{title}\n"
            )
        try:
            yield
        finally:
            with self.lock:
                self.stream.write(
                    f"{CLEAR_LINE}section_end:{self._timestamp()}:{name}\r{CLEAR_LINE}\n"
                )

    def _timestamp(self) -> int:
        """Milliseconds since the Unix epoch."""
        return int(self._clock() * 1000)
