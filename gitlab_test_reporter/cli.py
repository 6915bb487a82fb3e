"""CLI entry point replaying a recorded event log as a GitLab CI report."""

import argparse
import logging
import sys
from collections.abc import Iterable, Mapping
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from gitlab_test_reporter.config import ReporterConfig, parse_parameters
from gitlab_test_reporter.models.events import ReporterEvent
from gitlab_test_reporter.models.result import RunTotals
from gitlab_test_reporter.output import GitLabOutput, TextStream
from gitlab_test_reporter.reporter import GitLabReporter

EVENT_ADAPTER: TypeAdapter[ReporterEvent] = TypeAdapter(ReporterEvent)


def replay(reporter: GitLabReporter, lines: Iterable[str]) -> RunTotals | None:
    """Feed JSON Lines events to the reporter, in order.

    Returns the run totals from the completion event, or None if the log
    ended without one.

    Raises:
        ValueError: If a line is not a valid event

    """
    log = logging.getLogger("gitlab_test_reporter")
    totals: RunTotals | None = None

    for line_number, line in enumerate(lines, 1):
        if not line.strip():
            continue
        try:
            event = EVENT_ADAPTER.validate_json(line)
        except ValidationError as e:
            raise ValueError(f"Invalid event on line {line_number}: {e}") from e

        if totals is not None:
            log.warning("Ignoring event after run completion (line %d)", line_number)
            continue
        totals = reporter.handle(event)

    return totals


def run(
    events_path: Path | None,
    parameters: Mapping[str, str],
    stream: TextStream,
    no_color: bool = False,
) -> int:
    """Replay an event log and return the exit code."""
    log = logging.getLogger("gitlab_test_reporter")

    config = ReporterConfig.from_parameters(parameters)
    output = GitLabOutput.from_environment(stream, no_color=no_color)
    reporter = GitLabReporter(config, output)

    source = "stdin" if events_path is None else str(events_path)
    log.info("Replaying events from %s (verbosity=%s)", source, config.verbosity.name)

    try:
        if events_path is None:
            totals = replay(reporter, sys.stdin)
        else:
            with events_path.open(encoding="utf-8") as handle:
                totals = replay(reporter, handle)
    except OSError as e:
        log.error("Cannot read events from %s: %s", source, e)
        return 2
    except ValueError as e:
        log.error("%s", e)
        return 2

    if totals is None:
        log.error("Event log ended without a run completion event")
        return 1

    log.info(
        "Run finished: total=%d passed=%d failed=%d skipped=%d",
        totals.total,
        totals.passed,
        totals.failed,
        totals.skipped,
    )
    return 1 if totals.run_failed else 0


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Render a recorded test event log as a GitLab CI report"
    )
    parser.add_argument(
        "events",
        help="JSON Lines file with one event per line, or '-' for stdin",
    )
    parser.add_argument(
        "--param",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Reporter parameter, e.g. verbosity=normal (repeatable)",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable ANSI colors (also disabled when NO_COLOR is set)",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        parameters = parse_parameters(args.param)
    except ValueError as e:
        parser.error(str(e))

    # The run directory is always known, so the bag is never empty.
    parameters.setdefault("TestRunDirectory", str(Path.cwd()))

    exit_code = run(
        events_path=None if args.events == "-" else Path(args.events),
        parameters=parameters,
        stream=sys.stdout,
        no_color=args.no_color,
    )
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
