"""
Crime Pulse - Monthly Comparison

Year-over-year incident counts per calendar month for 2024 and 2025, with a
synthetic totals row.

Usage:
    comparison = load_monthly(fetch, dataset)
    for row in comparison.rows:
        print(row.month, row.count2024, row.count2025, row.change)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from crime_pulse.datasets.registry import DatasetConfig
from crime_pulse.soql.builder import build_monthly_query
from crime_pulse.soql.normalizer import Column, coerce_count, normalize_payload

logger = logging.getLogger(__name__)

MONTH_LABELS = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)

BASE_YEAR = 2024
COMPARE_YEAR = 2025

MONTH_KEYS = ("month_start", "month", "monthStart")

COMPARISON_COLUMNS = [
    Column(label="Month", key="month", index=0),
    Column(label=str(BASE_YEAR), key="count2024", index=1),
    Column(label=str(COMPARE_YEAR), key="count2025", index=2),
    Column(label="Change", key="change", index=3),
]


@dataclass(frozen=True)
class MonthlyCount:
    """One parsed month bucket from the API."""

    year: int
    month_index: int
    count: int


@dataclass(frozen=True)
class MonthlyComparisonRow:
    """One month (or the totals row) of the comparison."""

    month: str
    count2024: int
    count2025: int
    is_total: bool = False

    @property
    def change(self) -> int:
        return self.count2025 - self.count2024

    def to_dict(self) -> dict[str, Any]:
        row = {
            "month": self.month,
            "count2024": self.count2024,
            "count2025": self.count2025,
            "change": self.change,}
        if self.is_total:
            row["is_total"] = True
        return row


@dataclass
class MonthlyComparison:
    """Comparison table plus values the chart needs."""

    rows: list[MonthlyComparisonRow]
    max_count: int
    total2024: int
    total2025: int

    @property
    def columns(self) -> list[Column]:
        return COMPARISON_COLUMNS

    @property
    def change(self) -> int:
        return self.total2025 - self.total2024

    @property
    def month_rows(self) -> list[MonthlyComparisonRow]:
        return [row for row in self.rows if not row.is_total]

    @property
    def summary(self) -> str:
        return (
            f"{BASE_YEAR} total: {self.total2024} | {COMPARE_YEAR} total: {self.total2025} "
            f"| Change: {self.change}"
        )

    def bar_widths(self) -> list[tuple[float, float]]:
        """Chart bar widths per month as percentages of the largest month."""
        if self.max_count <= 0:
            return [(0.0, 0.0) for _ in self.month_rows]
        return [
            (row.count2024 / self.max_count * 100, row.count2025 / self.max_count * 100)
            for row in self.month_rows
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "columns": [column.to_dict() for column in self.columns],
            "rows": [row.to_dict() for row in self.rows],
            "max_count": self.max_count,
            "totals": {
                "total2024": self.total2024,
                "total2025": self.total2025,
                "change": self.change,},}


def parse_monthly_row(row: Any) -> MonthlyCount | None:
    """
    Parse one month bucket.

    Accepts ``[month, count]`` sequences or mappings keyed by
    ``month_start``/``month``/``monthStart`` and ``count``/``total``.
    Returns None when the month cannot be read.
    """
    if not row:
        return None

    if isinstance(row, list | tuple):
        month_value = row[0]
        count_value = row[1] if len(row) > 1 else None
    elif isinstance(row, dict):
        month_value = next(
            (row[key] for key in MONTH_KEYS if row.get(key) is not None), None
        )
        count_value = next(
            (row[key] for key in ("count", "total") if row.get(key) is not None), None
        )
    else:
        return None

    if not month_value:
        return None

    parts = str(month_value).split("-")
    if len(parts) < 2:
        return None

    try:
        year = int(parts[0])
        month_index = int(parts[1][:2]) - 1
    except ValueError:
        return None

    return MonthlyCount(year=year, month_index=month_index, count=coerce_count(count_value))


def build_monthly_comparison(rows: Iterable[Any]) -> MonthlyComparison:
    """
    Build the 12-month comparison plus totals row.

    Unparseable rows, rows from other years and out-of-range months are
    ignored. A repeated month keeps the last value seen.
    """
    counts_by_year = {BASE_YEAR: [0] * 12, COMPARE_YEAR: [0] * 12}

    for row in rows:
        parsed = parse_monthly_row(row)
        if parsed is None:
            continue
        if parsed.year in counts_by_year and 0 <= parsed.month_index < 12:
            counts_by_year[parsed.year][parsed.month_index] = parsed.count

    base, compare = counts_by_year[BASE_YEAR], counts_by_year[COMPARE_YEAR]
    month_rows = [
        MonthlyComparisonRow(month=label, count2024=base[index], count2025=compare[index])
        for index, label in enumerate(MONTH_LABELS)
    ]
    totals_row = MonthlyComparisonRow(
        month="Total", count2024=sum(base), count2025=sum(compare), is_total=True
    )

    return MonthlyComparison(
        rows=[*month_rows, totals_row],
        max_count=max(*base, *compare, 0),
        total2024=sum(base),
        total2025=sum(compare),
    )


def load_monthly(fetch: Callable[[str], Any], dataset: DatasetConfig) -> MonthlyComparison:
    """Run the monthly query for a dataset and build the comparison."""
    table = normalize_payload(fetch(build_monthly_query(dataset)))
    comparison = build_monthly_comparison(table.rows)
    logger.info(
        f"Monthly comparison for {dataset.id}: {comparison.summary}",
        extra={"dataset": dataset.id, "buckets": len(table.rows)},
    )
    return comparison
