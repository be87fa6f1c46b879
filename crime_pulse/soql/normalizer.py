"""
Crime Pulse - Response Normalizer

Maps an arbitrary JSON payload into a uniform table model of columns and rows.

Supported row-bearing shapes, in precedence order:
    1. {"data": {"rows": [...]}}
    2. {"rows": [...]}
    3. {"data": [...]}
    4. {"results": [...]}
    5. [...]
    6. anything else non-empty, treated as a single row

Columns come from metadata when present (data.columns, meta.view.columns or
columns), otherwise from the shape of the first row.

Usage:
    from crime_pulse.soql.normalizer import normalize_payload

    table = normalize_payload(response.json())
    for row in table.rows:
        values = [get_cell_value(row, column) for column in table.columns]
"""

from __future__ import annotations

import math
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

ROW_SHAPES = (("data", "rows"), ("rows",), ("data",), ("results",))
COLUMN_SHAPES = (("data", "columns"), ("meta", "view", "columns"), ("columns",))


@dataclass(frozen=True)
class Column:
    """One display column; ``key`` addresses keyed rows, ``index`` positional ones."""

    label: str
    key: str
    index: int

    def to_dict(self) -> dict[str, Any]:
        return {"label": self.label, "key": self.key, "index": self.index}


@dataclass
class TableModel:
    """Uniform column/row model produced from one payload."""

    columns: list[Column] = field(default_factory=list)
    rows: list[Any] = field(default_factory=list)

    @property
    def column_keys(self) -> set[str]:
        return {column.key for column in self.columns}

    def to_dict(self) -> dict[str, Any]:
        return {
            "columns": [column.to_dict() for column in self.columns],
            "rows": self.rows,}

    def to_dataframe(self) -> pd.DataFrame:
        """Tabulate the rows under their column labels."""
        records = [
            [get_cell_value(row, column) for column in self.columns] for row in self.rows
        ]
        return pd.DataFrame(records, columns=[column.label for column in self.columns])


def _dig(payload: Any, path: tuple[str, ...]) -> Any:
    """Follow ``path`` through nested mappings, returning None on any miss."""
    current = payload
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def format_label(value: str) -> str:
    """
    Turn a field name into a display label.

    Underscores become spaces, camel-case boundaries are split and every word
    is capitalised: ``occ_date`` -> ``Occ Date``, ``reportDate`` -> ``Report Date``.
    """
    text = str(value).replace("_", " ")
    text = re.sub(r"([a-z])([A-Z])", r"\1 \2", text)
    return re.sub(r"\b\w", lambda match: match.group(0).upper(), text)


def _first_text(*values: Any) -> str | None:
    for value in values:
        if value is not None and value != "":
            return str(value)
    return None


def _unique_keys(columns: list[Column]) -> list[Column]:
    """Suffix repeated keys so every key in a column set is unique."""
    seen: set[str] = set()
    unique = []
    for column in columns:
        key, suffix = column.key, 2
        while key in seen:
            key = f"{column.key}_{suffix}"
            suffix += 1
        seen.add(key)
        unique.append(Column(label=column.label, key=key, index=column.index))
    return unique


def build_columns(meta_columns: Any, sample_row: Any) -> list[Column]:
    """
    Derive the column set from metadata or, failing that, a sample row.

    Args:
        meta_columns: Column metadata entries (may be None or malformed)
        sample_row: First row of the payload (may be None)

    Returns:
        Ordered list of columns with unique keys
    """
    if isinstance(meta_columns, list) and meta_columns:
        columns = []
        for index, entry in enumerate(meta_columns):
            if isinstance(entry, dict):
                name, field_name, column_id = (
                    entry.get("name"),
                    entry.get("fieldName"),
                    entry.get("id"),
                )
            else:
                name, field_name, column_id = entry, None, None
            columns.append(
                Column(
                    label=_first_text(name, field_name, column_id) or f"Column {index + 1}",
                    key=_first_text(field_name, name, column_id) or str(index),
                    index=index,
                )
            )
        return _unique_keys(columns)

    if isinstance(sample_row, list | tuple):
        return [
            Column(label=f"Column {index + 1}", key=str(index), index=index)
            for index in range(len(sample_row))
        ]

    if isinstance(sample_row, dict):
        return [
            Column(label=format_label(key), key=str(key), index=index)
            for index, key in enumerate(sample_row)
        ]

    return [Column(label="Value", key="value", index=0)]


def normalize_payload(payload: Any) -> TableModel:
    """
    Normalize one JSON payload into a TableModel.

    Never raises: a falsy payload yields an empty model and an unrecognized
    payload yields one column and one row.
    """
    if not payload:
        return TableModel()

    meta_columns = None
    for path in COLUMN_SHAPES:
        meta_columns = _dig(payload, path)
        if meta_columns:
            break

    for path in ROW_SHAPES:
        rows = _dig(payload, path)
        if isinstance(rows, list):
            sample = rows[0] if rows else None
            return TableModel(columns=build_columns(meta_columns, sample), rows=rows)

    if isinstance(payload, list):
        return TableModel(columns=build_columns(meta_columns, payload[0]), rows=payload)

    return TableModel(columns=build_columns(meta_columns, payload), rows=[payload])


def get_cell_value(row: Any, column: Column) -> Any:
    """Read one cell from a positional or keyed row."""
    if isinstance(row, list | tuple):
        return row[column.index] if 0 <= column.index < len(row) else None

    if isinstance(row, dict):
        if column.key in row:
            return row[column.key]
        return row.get(column.label)

    return row


def first_value(table: TableModel, *keys: str) -> Any:
    """
    Return the first row's value for the first matching key.

    Keys are matched against column keys, then labels. Positional rows
    without metadata are keyed by stringified index, so ``"0"`` reads the
    first cell.
    """
    if not table.rows:
        return None
    row = table.rows[0]
    for key in keys:
        for column in table.columns:
            if key in (column.key, column.label):
                return get_cell_value(row, column)
    return None


def rows_as_records(table: TableModel, names: Sequence[str] | None = None) -> list[dict[str, Any]]:
    """
    Rows as mappings; scalar rows are dropped.

    Positional rows are zipped with ``names`` (the query's projection order)
    when given, otherwise keyed by column key.
    """
    records = []
    for row in table.rows:
        if isinstance(row, dict):
            records.append(row)
        elif isinstance(row, list | tuple):
            if names:
                records.append(dict(zip(names, row, strict=False)))
            else:
                records.append(
                    {column.key: get_cell_value(row, column) for column in table.columns}
                )
    return records


def coerce_count(value: Any) -> int:
    """Convert a count cell to int; absent or non-numeric values count as 0."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return int(number)
