"""
Crime Pulse - SoQL Query Builder

Pure functions that assemble SoQL query strings. Nothing here touches the
network or any state, and nothing raises: malformed numeric input falls back
to defaults.

Date bounds are always rendered as calendar days (YYYY-MM-DD), whatever the
precision of the source field. Lower bounds are inclusive, upper bounds are
exclusive.

Usage:
    from crime_pulse.soql.builder import build_count_query

    query = build_count_query("occ_date", start=date(2025, 1, 1))
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime
from typing import Any

from crime_pulse.datasets.registry import DatasetConfig

DEFAULT_ROW_LIMIT = 200


def parse_limit(limit: Any, default: int) -> int:
    """Parse a positive integer limit, falling back to ``default``."""
    try:
        value = int(str(limit).strip())
    except (TypeError, ValueError):
        try:
            value = int(float(str(limit).strip()))
        except (TypeError, ValueError, OverflowError):
            return default
    return value if value > 0 else default


def format_day(value: date | datetime | str) -> str:
    """Render a date bound as ``YYYY-MM-DD``."""
    if isinstance(value, datetime | date):
        return value.strftime("%Y-%m-%d")
    return str(value)[:10]


def _date_filters(date_expr: str, start: Any = None, end: Any = None) -> list[str]:
    filters = []
    if start is not None:
        filters.append(f"{date_expr} >= '{format_day(start)}'")
    if end is not None:
        filters.append(f"{date_expr} < '{format_day(end)}'")
    return filters


def _where(filters: list[str]) -> str | None:
    if not filters:
        return None
    return "where " + " and ".join(filters)


def _join(*parts: str | None) -> str:
    return " ".join(part for part in parts if part)


def build_row_query(limit: Any = None) -> str:
    """
    Select full rows.

    Args:
        limit: Row limit; defaults to 200 when absent, non-numeric or <= 0
    """
    return f"select * limit {parse_limit(limit, DEFAULT_ROW_LIMIT)}"


def build_probe_query() -> str:
    """Fetch a single row so the live column set can be inspected."""
    return "select * limit 1"


def build_monthly_query(dataset: DatasetConfig) -> str:
    """
    Count incidents per month over the dataset's comparison window.

    The projection truncates the (possibly cast) date expression; the filter
    compares the raw field against the configured literals unchanged.
    """
    return _join(
        f"select date_trunc_ym({dataset.date_expr}) as month_start, count(*) as count",
        f"where {dataset.date_field} >= '{dataset.compare_start}' "
        f"and {dataset.date_field} < '{dataset.compare_end}'",
        "group by month_start",
        "order by month_start",
    )


def build_date_range_query(date_expr: str) -> str:
    """Earliest and latest event date across all rows."""
    return f"select min({date_expr}) as min_date, max({date_expr}) as max_date"


def build_count_query(date_expr: str, start: Any = None, end: Any = None) -> str:
    """
    Count incidents with zero, one or two date bounds.

    An omitted bound omits its clause entirely.
    """
    return _join("select count(*) as count", _where(_date_filters(date_expr, start, end)))


def build_group_count_query(
    date_expr: str,
    start: Any,
    end: Any,
    field: str,
    limit: Any = 10,
) -> str:
    """
    Count incidents per value of ``field`` within ``[start, end)``.

    Null and empty values are excluded; results are ordered by count
    descending and capped at ``limit``.
    """
    filters = _date_filters(date_expr, start, end)
    filters.append(f"{field} is not null")
    filters.append(f"{field} != ''")
    return _join(
        f"select {field}, count(*) as count",
        _where(filters),
        f"group by {field}",
        "order by count desc",
        f"limit {parse_limit(limit, 10)}",
    )


def build_daily_count_query(date_expr: str, start: Any, end: Any) -> str:
    """Count incidents per calendar day within ``[start, end)``."""
    return _join(
        f"select date_trunc_ymd({date_expr}) as day, count(*) as count",
        _where(_date_filters(date_expr, start, end)),
        "group by day",
        "order by day",
    )


def build_point_query(
    date_expr: str,
    start: Any,
    end: Any,
    fields: Sequence[str],
    limit: Any = 1000,
) -> str:
    """Select geo fields of incidents within ``[start, end)`` that have a location."""
    fields = list(fields)
    filters = _date_filters(date_expr, start, end)
    if fields:
        filters.append(f"{fields[0]} is not null")
    return _join(
        f"select {', '.join(fields) or '*'}",
        _where(filters),
        f"limit {parse_limit(limit, 1000)}",
    )
