"""
Time formatting helpers shared by the handlers, the logging stage and the
startup banner.

    rfc3339()          2026-10-18T14:03:07+02:00   (Z when the offset is UTC)
    format_duration()  1h2m3.5s, 1m0s, 15s, 1.234ms, 850µs, 42ns
"""

from datetime import datetime
from typing import Optional


NANOSECOND = 1
MICROSECOND = 1000 * NANOSECOND
MILLISECOND = 1000 * MICROSECOND
SECOND = 1000 * MILLISECOND
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE


def rfc3339(moment: Optional[datetime] = None) -> str:
    """
    Format a timestamp as RFC 3339 with second precision.

    Naive datetimes (and the default, "now") are interpreted in the local
    timezone; aware ones keep their offset. A zero offset is written as "Z".
    """
    if moment is None:
        moment = datetime.now()
    if moment.tzinfo is None:
        moment = moment.astimezone()
    text = moment.isoformat(timespec="seconds")
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


def format_duration(nanoseconds: int) -> str:
    """
    Format a duration the way operators read it in log lines.

    =========================================================================
    FORMAT
    =========================================================================

        under 1µs   →  "<n>ns"
        under 1ms   →  "<n.fff>µs"     trailing zeros dropped
        under 1s    →  "<n.ffffff>ms"
        otherwise   →  "[<h>h][<m>m]<s.fffffffff>s"

        0                 → "0s"
        1_500_000_000     → "1.5s"
        60 * SECOND       → "1m0s"
        3723.5 * SECOND   → "1h2m3.5s"

    =========================================================================
    """
    if nanoseconds == 0:
        return "0s"

    sign = "-" if nanoseconds < 0 else ""
    value = abs(int(nanoseconds))

    if value < MICROSECOND:
        return f"{sign}{value}ns"
    if value < MILLISECOND:
        return f"{sign}{_decimal(value, 3)}µs"
    if value < SECOND:
        return f"{sign}{_decimal(value, 6)}ms"

    hours, rest = divmod(value, HOUR)
    minutes, rest = divmod(rest, MINUTE)
    seconds = _decimal(rest, 9) + "s"

    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}"
    if minutes:
        return f"{sign}{minutes}m{seconds}"
    return sign + seconds


def seconds_to_duration(seconds: float) -> str:
    """format_duration() for a value in (float) seconds."""
    return format_duration(round(seconds * SECOND))


def _decimal(value: int, digits: int) -> str:
    whole, fraction = divmod(value, 10 ** digits)
    if not fraction:
        return str(whole)
    return f"{whole}." + f"{fraction:0{digits}d}".rstrip("0")
