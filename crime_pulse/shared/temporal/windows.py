"""
Crime Pulse - Date Windows

Date parsing and the rolling windows used by the stats view. Every window is
a half-open calendar-day range ``[start, end)`` anchored on the day after the
latest observed event.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any

import pandas as pd

logger = logging.getLogger(__name__)


def parse_day(value: Any) -> date | None:
    """
    Parse an API date value to a calendar day.

    Accepts dates, datetimes and ISO-like strings such as
    ``2025-03-14T08:30:00.000``. Unparseable values return None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    timestamp = pd.to_datetime(str(value), errors="coerce")
    if timestamp is None or pd.isna(timestamp):
        return None
    return timestamp.date()


def week_start(day: date) -> date:
    """Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


def _shift_month_start(day: date) -> date:
    """First day of the month before ``day``'s month."""
    return (day.replace(day=1) - timedelta(days=1)).replace(day=1)


@dataclass(frozen=True)
class DateWindow:
    """Half-open day range; None bounds are unbounded."""

    start: date | None = None
    end: date | None = None

    @property
    def days(self) -> int | None:
        if self.start is None or self.end is None:
            return None
        return (self.end - self.start).days

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,}


@dataclass(frozen=True)
class StatsWindows:
    """All windows the stats view queries, derived from the latest day."""

    latest_day: date
    end: date
    last_7: DateWindow
    prior_7: DateWindow
    last_30: DateWindow
    prior_30: DateWindow
    month_to_date: DateWindow
    prior_month_to_date: DateWindow
    year_to_date: DateWindow
    prior_year_to_date: DateWindow
    trend: DateWindow


def derive_windows(latest_day: date, trend_days: int = 182) -> StatsWindows:
    """
    Derive the stats windows for a latest day.

    The prior month-to-date and prior year-to-date windows cover the same
    number of elapsed days as the current ones, truncated so they never run
    past the start of the current period.

    Args:
        latest_day: Latest day with data (inclusive)
        trend_days: Length of the trend window in days

    Returns:
        StatsWindows
    """
    end = latest_day + timedelta(days=1)

    month_start = latest_day.replace(day=1)
    month_elapsed = timedelta(days=(end - month_start).days)
    prior_month_start = _shift_month_start(latest_day)

    year_start = date(latest_day.year, 1, 1)
    year_elapsed = timedelta(days=(end - year_start).days)
    prior_year_start = date(latest_day.year - 1, 1, 1)

    windows = StatsWindows(
        latest_day=latest_day,
        end=end,
        last_7=DateWindow(end - timedelta(days=7), end),
        prior_7=DateWindow(end - timedelta(days=14), end - timedelta(days=7)),
        last_30=DateWindow(end - timedelta(days=30), end),
        prior_30=DateWindow(end - timedelta(days=60), end - timedelta(days=30)),
        month_to_date=DateWindow(month_start, end),
        prior_month_to_date=DateWindow(
            prior_month_start, min(prior_month_start + month_elapsed, month_start)
        ),
        year_to_date=DateWindow(year_start, end),
        prior_year_to_date=DateWindow(
            prior_year_start, min(prior_year_start + year_elapsed, year_start)
        ),
        trend=DateWindow(end - timedelta(days=trend_days), end),
    )

    logger.debug(f"Derived stats windows ending {end.isoformat()}")
    return windows
