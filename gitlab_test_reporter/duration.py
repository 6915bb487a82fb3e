"""Human readable durations."""

from datetime import timedelta

from gitlab_test_reporter import resources


def format_duration(duration: timedelta) -> str | None:
    """Format a test duration compactly, e.g. ``1 m 30 s`` or ``12 ms``.

    Returns None for a zero duration so the caller can omit it, and
    ``< 1 ms`` for a negative one. Only the time-of-day components are shown:
    seconds are dropped once hours are present, and milliseconds only appear
    when minutes and seconds are zero.
    """
    if duration == timedelta(0):
        return None
    if duration < timedelta(0):
        return "< 1 ms"

    hours, remainder = divmod(duration.seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    milliseconds = duration.microseconds // 1000

    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours} h")
    if minutes > 0:
        parts.append(f"{minutes} m")
    if hours == 0:
        if seconds > 0:
            parts.append(f"{seconds} s")
        if milliseconds > 0 and minutes == 0 and seconds == 0:
            parts.append(f"{milliseconds} ms")

    return " ".join(parts) if parts else "< 1 ms"


def format_total_time(elapsed: timedelta) -> str:
    """Format the elapsed time of a run in its single largest unit."""
    total_seconds = elapsed.total_seconds()

    if total_seconds >= 86400:
        value, unit = total_seconds / 86400, resources.DAYS
    elif total_seconds >= 3600:
        value, unit = total_seconds / 3600, resources.HOURS
    elif total_seconds >= 60:
        value, unit = total_seconds / 60, resources.MINUTES
    else:
        value, unit = total_seconds, resources.SECONDS

    return resources.EXECUTION_TIME_FORMAT.format(value, unit)
