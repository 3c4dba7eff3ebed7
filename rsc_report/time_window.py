"""Resolve the DaysToCapture / HoursToCapture / MinutesToCapture / FromDate / ToDate selectors."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from rsc_report.conversions import parse_iso_utc

DEFAULT_DAYS = 1


@dataclass(frozen=True)
class TimeWindow:
    """A closed UTC interval used to filter report queries."""

    start: datetime
    end: datetime

    def as_variables(self) -> dict[str, str]:
        """Values for ``${start}``, ``${end}`` and ``${end_date}`` placeholders."""
        return {
            "start": _iso_z(self.start),
            "end": _iso_z(self.end),
            "end_date": self.end.astimezone(UTC).strftime("%Y-%m-%d"),
        }

    def describe(self) -> str:
        return f"{self.start:%Y-%m-%d %H:%M} UTC to {self.end:%Y-%m-%d %H:%M} UTC"


def _iso_z(dt: datetime) -> str:
    return dt.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.000Z")


def resolve_time_window(
    days: int | None = None,
    hours: int | None = None,
    minutes: int | None = None,
    from_date: Any = None,
    to_date: Any = None,
    now: datetime | None = None,
) -> TimeWindow:
    """Build a :class:`TimeWindow` from the capture selectors.

    Precedence: ``days`` > ``hours`` > ``minutes`` > ``from_date``/``to_date``.
    With nothing set the window is the last :data:`DEFAULT_DAYS` day.
    """
    now = (now or datetime.now(UTC)).astimezone(UTC)

    if days is not None:
        return TimeWindow(now - timedelta(days=days), now)
    if hours is not None:
        return TimeWindow(now - timedelta(hours=hours), now)
    if minutes is not None:
        return TimeWindow(now - timedelta(minutes=minutes), now)

    start = parse_iso_utc(from_date)
    end = parse_iso_utc(to_date) or now
    if start is None:
        return TimeWindow(end - timedelta(days=DEFAULT_DAYS), end)
    if end < start:
        raise ValueError(f"ToDate {end.isoformat()} is before FromDate {start.isoformat()}")
    return TimeWindow(start, end)
