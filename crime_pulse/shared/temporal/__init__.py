"""
Crime Pulse - Temporal Utilities

Temporal processing utilities for the stats view:
- Date parsing of API values
- Rolling windows (7/30 days, month/year to date and their prior periods)
- Monday-aligned weekly trend series
"""

from crime_pulse.shared.temporal.trend import TrendPoint, build_weekly_trend, parse_daily_row
from crime_pulse.shared.temporal.windows import (
    DateWindow,
    StatsWindows,
    derive_windows,
    parse_day,
    week_start,
)

__all__ = [
    "DateWindow",
    "StatsWindows",
    "TrendPoint",
    "build_weekly_trend",
    "derive_windows",
    "parse_daily_row",
    "parse_day",
    "week_start",
]
