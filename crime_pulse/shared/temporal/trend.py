"""
Crime Pulse - Weekly Trend

Buckets daily counts into Monday-starting weeks for the sparkline series.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

import pandas as pd

from crime_pulse.shared.temporal.windows import parse_day, week_start
from crime_pulse.soql.normalizer import coerce_count

DAY_KEYS = ("day", "date", "day_start")
COUNT_KEYS = ("count", "total")


@dataclass(frozen=True)
class TrendPoint:
    """One week of the trend series."""

    week_start: date
    label: str
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "week_start": self.week_start.isoformat(),
            "label": self.label,
            "count": self.count,}


def week_label(day: date) -> str:
    """Short label for a week start, e.g. ``Mar 4``."""
    return f"{day:%b} {day.day}"


def parse_daily_row(row: Any) -> tuple[date, int] | None:
    """Read ``(day, count)`` from a ``[day, count]`` sequence or a keyed row."""
    if isinstance(row, list | tuple):
        if not row:
            return None
        day_value = row[0]
        count_value = row[1] if len(row) > 1 else None
    elif isinstance(row, dict):
        day_value = next((row[key] for key in DAY_KEYS if row.get(key) is not None), None)
        count_value = next((row[key] for key in COUNT_KEYS if key in row), None)
    else:
        return None

    day = parse_day(day_value)
    if day is None:
        return None
    return day, coerce_count(count_value)


def build_weekly_trend(daily_rows: Iterable[Any], end: date, weeks: int = 26) -> list[TrendPoint]:
    """
    Build exactly ``weeks`` consecutive weekly totals.

    The series ends at the week containing ``end - 1 day``. Weeks without any
    daily entry count 0; unparseable rows are skipped.

    Args:
        daily_rows: Daily count rows (``[day, count]`` or ``{"day", "count"}``)
        end: Exclusive end of the trend window
        weeks: Number of points to return

    Returns:
        List of TrendPoint in chronological order
    """
    if weeks <= 0:
        return []

    last_week = week_start(end - timedelta(days=1))
    week_index = pd.date_range(end=pd.Timestamp(last_week), periods=weeks, freq="7D")

    entries = [entry for entry in map(parse_daily_row, daily_rows) if entry is not None]
    if entries:
        daily = pd.Series(
            [count for _, count in entries],
            index=pd.to_datetime([week_start(day) for day, _ in entries]),
        )
        weekly = daily.groupby(level=0).sum().reindex(week_index, fill_value=0)
    else:
        weekly = pd.Series(0, index=week_index)

    return [
        TrendPoint(week_start=stamp.date(), label=week_label(stamp.date()), count=int(count))
        for stamp, count in weekly.items()
    ]
