"""Time and unit conversion helpers shared by every report.

Every helper returns ``None`` when given ``None``; none of them substitute a
sentinel such as ``0``. Malformed API values are logged and become ``None``.
"""

import logging
from datetime import UTC, datetime
from typing import Any, NamedTuple

logger = logging.getLogger(__name__)

BYTES_PER_GB = 1_000_000_000
SECONDS_PER_HOUR = 3600


class Duration(NamedTuple):
    """Elapsed time between two timestamps."""

    minutes: float | None
    seconds: int | None
    formatted: str | None


EMPTY_DURATION = Duration(None, None, None)


def unix_ms_to_utc(value: Any) -> datetime | None:
    """Convert UNIX epoch milliseconds to an aware UTC datetime."""
    if value is None or value == "":
        return None
    try:
        return datetime.fromtimestamp(float(value) / 1000, tz=UTC)
    except (TypeError, ValueError, OverflowError, OSError):
        logger.warning(f"Ignoring malformed epoch milliseconds: {value!r}")
        return None


def unix_s_to_utc(value: Any) -> datetime | None:
    """Convert UNIX epoch seconds to an aware UTC datetime."""
    if value is None or value == "":
        return None
    try:
        return datetime.fromtimestamp(float(value), tz=UTC)
    except (TypeError, ValueError, OverflowError, OSError):
        logger.warning(f"Ignoring malformed epoch seconds: {value!r}")
        return None


def parse_iso_utc(value: Any) -> datetime | None:
    """Strict form of :func:`iso_to_utc`; raises ``ValueError`` on bad input.

    Used for user-supplied dates, where a typo must not be silently ignored.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def iso_to_utc(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) into aware UTC.

    Naive inputs are assumed to already be UTC. Datetime inputs pass through
    (converted to UTC).
    """
    try:
        return parse_iso_utc(value)
    except ValueError:
        logger.warning(f"Ignoring malformed timestamp: {value!r}")
        return None


def to_utc(value: Any) -> datetime | None:
    """Coerce a datetime, ISO string or epoch-milliseconds number to UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return unix_ms_to_utc(value)
    return iso_to_utc(value)


def bytes_to_gb(value: Any, places: int = 2) -> float | None:
    """Convert bytes to decimal gigabytes (1 GB = 10^9 bytes).

    Uses Python's ``round`` (half-to-even), the same midpoint rule as
    .NET's default ``Math.Round``.
    """
    if value is None or value == "":
        return None
    return round(float(value) / BYTES_PER_GB, places)


def compute_duration(start: Any, end: Any) -> Duration:
    """Return (minutes, seconds, ``HH:MM:SS``) for ``end - start``.

    All three fields are ``None`` if either endpoint is missing.
    """
    start_dt = to_utc(start)
    end_dt = to_utc(end)
    if start_dt is None or end_dt is None:
        return EMPTY_DURATION

    total_seconds = (end_dt - start_dt).total_seconds()
    seconds = int(round(total_seconds))
    minutes = round(total_seconds / 60, 2)
    return Duration(minutes, seconds, format_duration(seconds))


def format_duration(seconds: int | float | None) -> str | None:
    """Format a number of seconds as ``HH:MM:SS`` (hours may exceed 24)."""
    if seconds is None:
        return None
    sign = "-" if seconds < 0 else ""
    remaining = abs(int(round(seconds)))
    hours, remaining = divmod(remaining, SECONDS_PER_HOUR)
    mins, secs = divmod(remaining, 60)
    return f"{sign}{hours:02d}:{mins:02d}:{secs:02d}"


def hours_since(value: Any, now: datetime | None = None, places: int = 2) -> float | None:
    """Hours elapsed between a timestamp and ``now`` (UTC)."""
    dt = to_utc(value)
    if dt is None:
        return None
    now = now or datetime.now(UTC)
    return round((now - dt).total_seconds() / SECONDS_PER_HOUR, places)


def dedupe_ratio(logical_bytes: Any, physical_bytes: Any, places: int = 2) -> float | None:
    """Logical over physical size; ``None`` when either is missing or physical is 0."""
    if logical_bytes is None or physical_bytes is None:
        return None
    physical = float(physical_bytes)
    if physical == 0:
        return None
    return round(float(logical_bytes) / physical, places)


def contains_phrase(message: Any, phrase: str) -> bool | None:
    """Case-insensitive substring test used to classify event messages."""
    if message is None:
        return None
    return phrase.lower() in str(message).lower()
