"""
Crime Pulse - Row View

Raw incident rows with client-side search and a display limit.

Usage:
    table = load_rows(fetch, limit=200)
    filtered = apply_filters(table, search="theft", limit=50)
    print(filtered.summary)
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from crime_pulse.soql.builder import DEFAULT_ROW_LIMIT, build_row_query, parse_limit
from crime_pulse.soql.normalizer import Column, TableModel, get_cell_value, normalize_payload

logger = logging.getLogger(__name__)

MAX_CELL_LENGTH = 160


def format_cell(value: Any) -> str:
    """Display text for one cell; None is blank and containers are JSON."""
    if value is None:
        return ""
    if isinstance(value, dict | list | tuple):
        return json.dumps(value, default=str)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def truncate(value: str, max_length: int = MAX_CELL_LENGTH) -> str:
    """Shorten text to ``max_length`` characters, ending in ``...`` when cut."""
    if len(value) <= max_length:
        return value
    return f"{value[: max_length - 3]}..."


def row_matches(row: Any, columns: Sequence[Column], query: str) -> bool:
    """Case-insensitive substring match against every column value of a row."""
    if not query:
        return True
    needle = query.lower()
    for column in columns:
        value = get_cell_value(row, column)
        if value is None:
            continue
        if needle in format_cell(value).lower():
            return True
    return False


@dataclass
class FilteredRows:
    """Rows left after search, truncated to the display limit."""

    columns: list[Column]
    rows: list[Any]
    matched: int

    @property
    def summary(self) -> str:
        return (
            f"Showing {len(self.rows)} of {self.matched} rows, "
            f"{len(self.columns)} columns."
        )

    def display_rows(self) -> list[list[str]]:
        """Formatted and truncated cell text, one list per row."""
        return [
            [truncate(format_cell(get_cell_value(row, column))) for column in self.columns]
            for row in self.rows
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "columns": [column.to_dict() for column in self.columns],
            "rows": self.rows,
            "matched": self.matched,
            "summary": self.summary,}


def apply_filters(table: TableModel, search: str = "", limit: Any = None) -> FilteredRows:
    """
    Filter a table by free-text search and cap it at the display limit.

    Args:
        table: Current table snapshot
        search: Search text (whitespace trimmed; empty matches everything)
        limit: Display limit; defaults to 200 when missing or invalid
    """
    query = (search or "").strip()
    matched = [row for row in table.rows if row_matches(row, table.columns, query)]
    shown = matched[: parse_limit(limit, DEFAULT_ROW_LIMIT)]
    return FilteredRows(columns=table.columns, rows=shown, matched=len(matched))


def load_rows(fetch: Callable[[str], Any], limit: Any = None) -> TableModel:
    """
    Run the row query and normalize the result.

    Args:
        fetch: Function executing one SoQL query and returning the payload
        limit: Row limit for the query

    Returns:
        TableModel (possibly empty)
    """
    table = normalize_payload(fetch(build_row_query(limit)))
    logger.info(
        f"Loaded {len(table.rows)} rows with {len(table.columns)} columns",
        extra={"rows": len(table.rows), "columns": len(table.columns)},
    )
    return table
