"""
Crime Pulse - Statistics View

Aggregation engine behind the stats view. One load issues a chain of dependent
SoQL queries and assembles the results into AggregateStats:

    1. Probe one row to learn the live column set
    2. Query the earliest and latest event dates
    3. Derive the rolling windows from the latest day
    4. Run every count, group, trend and geo query concurrently
    5. Assemble KPIs, weekly trend, top-N lists, summary and map model

Any failing sub-query aborts the whole load with StatsLoadError; partial
results are never returned.

Usage:
    engine = StatsEngine(dataset, fetch=client.bind(dataset.endpoint))
    stats = engine.load(now=datetime.now(UTC))
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any

import numpy as np

from crime_pulse.datasets.registry import (
    ChoroplethGeography,
    CombinedGeography,
    DatasetConfig,
    PointGeography,
)
from crime_pulse.exceptions import StatsLoadError
from crime_pulse.shared.config import Settings, get_config
from crime_pulse.shared.geo import (
    BoundaryCache,
    ChoroplethMap,
    PointMap,
    build_choropleth,
    counts_by_label,
    extract_points,
)
from crime_pulse.shared.temporal import (
    DateWindow,
    StatsWindows,
    TrendPoint,
    build_weekly_trend,
    derive_windows,
    parse_day,
)
from crime_pulse.soql.builder import (
    build_count_query,
    build_daily_count_query,
    build_date_range_query,
    build_group_count_query,
    build_point_query,
    build_probe_query,
)
from crime_pulse.soql.normalizer import (
    TableModel,
    coerce_count,
    first_value,
    normalize_payload,
    rows_as_records,
)

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "n/a"

GROUP_TITLES = {
    "category": "Top categories",
    "location": "Top locations",
    "address": "Top addresses",
}


# =============================================================================
# Result Models
# =============================================================================


@dataclass(frozen=True)
class Kpi:
    """One headline number."""

    label: str
    value: int
    meta: str

    def to_dict(self) -> dict[str, Any]:
        return {"label": self.label, "value": self.value, "meta": self.meta}


@dataclass(frozen=True)
class TopEntry:
    """One row of a top-N list."""

    label: str
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"label": self.label, "count": self.count}


@dataclass
class TopList:
    """Top-N breakdown over one grouping field."""

    group: str
    field: str
    entries: list[TopEntry] = field(default_factory=list)

    @property
    def title(self) -> str:
        return GROUP_TITLES.get(self.group, self.group.title())

    def to_dict(self) -> dict[str, Any]:
        return {
            "group": self.group,
            "title": self.title,
            "field": self.field,
            "entries": [entry.to_dict() for entry in self.entries],}


@dataclass
class AggregateStats:
    """Everything the stats view renders for one dataset."""

    dataset_id: str
    first_day: date | None
    latest_day: date
    freshness_days: int
    windows: StatsWindows
    kpis: list[Kpi]
    trend: list[TrendPoint]
    top_lists: dict[str, TopList]
    summary: list[str]
    map: PointMap | ChoroplethMap | None = None

    @property
    def freshness(self) -> str:
        if self.freshness_days <= 0:
            return "Latest incident reported today"
        if self.freshness_days == 1:
            return "Latest incident reported 1 day ago"
        return f"Latest incident reported {self.freshness_days} days ago"

    @property
    def date_span(self) -> str:
        first = self.first_day.isoformat() if self.first_day else "unknown"
        return f"{first} to {self.latest_day.isoformat()}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "dataset_id": self.dataset_id,
            "first_day": self.first_day.isoformat() if self.first_day else None,
            "latest_day": self.latest_day.isoformat(),
            "freshness_days": self.freshness_days,
            "freshness": self.freshness,
            "kpis": [kpi.to_dict() for kpi in self.kpis],
            "trend": [point.to_dict() for point in self.trend],
            "top_lists": {group: top.to_dict() for group, top in self.top_lists.items()},
            "summary": self.summary,
            "map": self.map.to_dict() if self.map else None,}


# =============================================================================
# Pure Helpers
# =============================================================================


def compute_change(current: float, previous: float) -> tuple[float, float] | None:
    """
    Absolute and percentage change from ``previous`` to ``current``.

    Returns None when the baseline is zero or not finite.
    """
    if previous is None or current is None:
        return None
    if not np.isfinite(previous) or previous == 0 or not np.isfinite(current):
        return None
    delta = current - previous
    return delta, delta / previous * 100


def format_change(current: float, previous: float) -> str:
    """
    Change text such as ``+12 (+5.0%)``, or ``n/a`` without a usable baseline.
    """
    change = compute_change(current, previous)
    if change is None:
        return NOT_AVAILABLE
    delta, percent = change
    delta_text = f"{int(delta):+,}" if float(delta).is_integer() else f"{delta:+,.1f}"
    return f"{delta_text} ({percent:+.1f}%)"


def resolve_field(candidates: Sequence[str], column_keys: Iterable[str]) -> str | None:
    """
    Pick the first candidate field present in the live schema.

    When no candidate is present the first candidate is returned anyway;
    the query then usually comes back empty.
    """
    if not candidates:
        return None
    keys = set(column_keys)
    for candidate in candidates:
        if candidate in keys:
            return candidate
    logger.warning(
        f"None of {list(candidates)} found in live columns, falling back to {candidates[0]}",
        extra={"candidates": list(candidates)},
    )
    return candidates[0]


def grouped_entries(table: TableModel, field_name: str) -> list[tuple[Any, int]]:
    """Read ``(label, count)`` pairs from a grouped count result."""
    return [
        (row.get(field_name), coerce_count(row.get("count")))
        for row in rows_as_records(table, [field_name, "count"])
    ]


def top_entries(entries: Iterable[tuple[Any, int]], limit: int) -> list[TopEntry]:
    """Sort grouped counts descending and truncate; blank labels are excluded."""
    cleaned = []
    for label, count in entries:
        if label is None:
            continue
        text = str(label).strip()
        if text:
            cleaned.append(TopEntry(label=text, count=count))
    cleaned.sort(key=lambda entry: entry.count, reverse=True)
    return cleaned[: max(limit, 0)]


def _period_sentence(label: str, current: int, previous: int, comparison: str) -> str:
    return (
        f"{label}: {current:,} incidents vs {previous:,} {comparison} "
        f"({format_change(current, previous)})."
    )


def build_summary(
    counts: dict[str, int],
    top_lists: dict[str, TopList],
    top_district: tuple[str, int] | None = None,
    limit: int = 4,
) -> list[str]:
    """
    Assemble the plain-language summary.

    Order: month to date, last 30 days, year to date, then the top category,
    location, choropleth district and address. At most ``limit`` sentences.
    """
    sentences = [
        _period_sentence(
            "Month to date",
            counts["month_to_date"],
            counts["prior_month_to_date"],
            "over the same days last month",
        ),
        _period_sentence(
            "Last 30 days", counts["last_30"], counts["prior_30"], "in the prior 30 days"
        ),
        _period_sentence(
            "Year to date",
            counts["year_to_date"],
            counts["prior_year_to_date"],
            "over the same days last year",
        ),
    ]

    tops = [
        ("Most reported category", _leader(top_lists.get("category"))),
        ("Most common location", _leader(top_lists.get("location"))),
        ("Busiest district", top_district),
        ("Most reported address", _leader(top_lists.get("address"))),
    ]
    for lead, top in tops:
        if top is not None:
            sentences.append(f"{lead} in the last 30 days: {top[0]} ({top[1]:,}).")

    return sentences[:limit]


def _leader(top: TopList | None) -> tuple[str, int] | None:
    if top is None or not top.entries:
        return None
    return top.entries[0].label, top.entries[0].count


# =============================================================================
# Engine
# =============================================================================


class StatsEngine:
    """
    Orchestrates one stats load for one dataset.

    The engine is independent of HTTP: ``fetch`` runs one SoQL query and
    returns the decoded payload, ``fetch_boundaries`` returns a boundary
    document for a URL. Both may raise; any failure aborts the load.
    """

    def __init__(
        self,
        dataset: DatasetConfig,
        fetch: Callable[[str], Any],
        config: Settings | None = None,
        fetch_boundaries: Callable[[str], dict[str, Any]] | None = None,
        boundary_cache: BoundaryCache | None = None,
    ):
        """
        Initialize the engine.

        Args:
            dataset: Dataset to aggregate
            fetch: Function executing one SoQL query
            config: Configuration object (uses default if not provided)
            fetch_boundaries: Function fetching a boundary document by URL
            boundary_cache: Shared boundary cache (a private one if not provided)
        """
        self.dataset = dataset
        self.fetch = fetch
        self.config = config or get_config()
        self.fetch_boundaries = fetch_boundaries
        self.boundary_cache = boundary_cache if boundary_cache is not None else BoundaryCache()
        self._columns: set[str] | None = None

    # -------------------------------------------------------------------------
    # Sequential steps
    # -------------------------------------------------------------------------

    def _query(self, query: str) -> TableModel:
        return normalize_payload(self.fetch(query))

    def _step(self, step: str, func: Callable[[], Any]) -> Any:
        try:
            return func()
        except StatsLoadError:
            raise
        except Exception as e:
            raise StatsLoadError(self.dataset.id, step, e) from e

    def resolve_columns(self) -> set[str]:
        """Live column keys from a one-row probe, cached for this load."""
        if self._columns is None:
            table = self._query(build_probe_query())
            self._columns = table.column_keys
            logger.debug(
                f"Resolved {len(self._columns)} live columns for {self.dataset.id}",
                extra={"dataset": self.dataset.id},
            )
        return self._columns

    def fetch_date_span(self) -> tuple[date | None, date | None]:
        """Earliest and latest event day across all rows."""
        table = self._query(build_date_range_query(self.dataset.date_expr))
        first_day = parse_day(first_value(table, "min_date", "0"))
        latest_day = parse_day(first_value(table, "max_date", "1"))
        return first_day, latest_day

    # -------------------------------------------------------------------------
    # Concurrent sub-queries
    # -------------------------------------------------------------------------

    def _count(self, window: DateWindow) -> Callable[[], int]:
        query = build_count_query(self.dataset.date_expr, window.start, window.end)

        def run() -> int:
            return coerce_count(first_value(self._query(query), "count", "0"))

        return run

    def _group(self, field_name: str, window: DateWindow, limit: int) -> Callable[[], Any]:
        query = build_group_count_query(
            self.dataset.date_expr, window.start, window.end, field_name, limit
        )

        def run() -> list[tuple[Any, int]]:
            return grouped_entries(self._query(query), field_name)

        return run

    def _daily(self, window: DateWindow) -> Callable[[], list[Any]]:
        query = build_daily_count_query(self.dataset.date_expr, window.start, window.end)

        def run() -> list[Any]:
            return self._query(query).rows

        return run

    def _points(self, window: DateWindow) -> Callable[[], PointMap]:
        geography = self.dataset.geography
        if isinstance(geography, PointGeography):
            fields = [geography.lat_field, geography.lon_field]
            extract_fields = {"lat_field": geography.lat_field, "lon_field": geography.lon_field}
        else:
            fields = [geography.geo_field]
            extract_fields = {"geo_field": geography.geo_field}
        query = build_point_query(
            self.dataset.date_expr,
            window.start,
            window.end,
            fields,
            self.config.stats.map_point_limit,
        )

        def run() -> PointMap:
            records = rows_as_records(self._query(query), fields)
            return PointMap(points=extract_points(records, **extract_fields))

        return run

    def _build_tasks(
        self, windows: StatsWindows, group_fields: dict[str, str]
    ) -> dict[str, Callable[[], Any]]:
        stats_config = self.config.stats
        tasks: dict[str, Callable[[], Any]] = {
            "last_7": self._count(windows.last_7),
            "prior_7": self._count(windows.prior_7),
            "last_30": self._count(windows.last_30),
            "prior_30": self._count(windows.prior_30),
            "month_to_date": self._count(windows.month_to_date),
            "prior_month_to_date": self._count(windows.prior_month_to_date),
            "year_to_date": self._count(windows.year_to_date),
            "prior_year_to_date": self._count(windows.prior_year_to_date),
            "all_time": self._count(DateWindow()),
            "trend": self._daily(windows.trend),
        }

        for group, field_name in group_fields.items():
            tasks[f"top:{group}"] = self._group(
                field_name, windows.last_30, stats_config.top_n_limit
            )

        geography = self.dataset.geography
        if isinstance(geography, PointGeography | CombinedGeography):
            tasks["map:points"] = self._points(windows.last_30)
        elif isinstance(geography, ChoroplethGeography):
            tasks["map:groups"] = self._group(
                geography.field, windows.last_30, stats_config.choropleth_group_limit
            )
            if geography.url not in self.boundary_cache:
                if self.fetch_boundaries is None:
                    raise StatsLoadError(
                        self.dataset.id,
                        "map:boundaries",
                        RuntimeError("no boundary fetcher configured"),
                    )
                fetch_boundaries = self.fetch_boundaries
                tasks["map:boundaries"] = lambda: fetch_boundaries(geography.url)

        return tasks

    def run_concurrently(self, tasks: dict[str, Callable[[], Any]]) -> dict[str, Any]:
        """
        Run independent tasks concurrently and join them all-or-nothing.

        The first failure cancels every task that has not started yet and is
        re-raised as StatsLoadError.
        """
        if not tasks:
            return {}

        max_workers = max(1, min(self.config.stats.max_workers, len(tasks)))
        executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="stats")
        try:
            futures: dict[Future, str] = {
                executor.submit(task): name for name, task in tasks.items()
            }
            done, pending = wait(futures, return_when=FIRST_EXCEPTION)
            for future in pending:
                future.cancel()

            for future, name in futures.items():
                error = future.exception() if future in done else None
                if error is not None:
                    raise StatsLoadError(self.dataset.id, name, error) from error

            return {name: future.result() for future, name in futures.items()}
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    # -------------------------------------------------------------------------
    # Assembly
    # -------------------------------------------------------------------------

    def _kpis(self, counts: dict[str, int], first_day: date | None) -> list[Kpi]:
        since = "All recorded incidents"
        if first_day:
            since = f"Since {first_day:%b} {first_day.day}, {first_day.year}"
        return [
            Kpi(
                "Last 7 days",
                counts["last_7"],
                f"vs prior 7 days: {format_change(counts['last_7'], counts['prior_7'])}",
            ),
            Kpi(
                "Month to date",
                counts["month_to_date"],
                "vs same days last month: "
                f"{format_change(counts['month_to_date'], counts['prior_month_to_date'])}",
            ),
            Kpi(
                "Last 30 days",
                counts["last_30"],
                f"vs prior 30 days: {format_change(counts['last_30'], counts['prior_30'])}",
            ),
            Kpi(
                "Year to date",
                counts["year_to_date"],
                "vs same days last year: "
                f"{format_change(counts['year_to_date'], counts['prior_year_to_date'])}",
            ),
            Kpi("All time", counts["all_time"], since),
        ]

    def _map(self, results: dict[str, Any]) -> PointMap | ChoroplethMap | None:
        geography = self.dataset.geography
        if "map:points" in results:
            return results["map:points"]
        if not isinstance(geography, ChoroplethGeography):
            return None

        if "map:boundaries" in results:
            self.boundary_cache.put(geography.url, results["map:boundaries"])
        geojson = self.boundary_cache.get(geography.url) or {}
        return build_choropleth(geojson, counts_by_label(results["map:groups"]), geography.key)

    def load(self, now: datetime | None = None) -> AggregateStats:
        """
        Run a full stats load.

        Args:
            now: Current instant (defaults to the current UTC time)

        Returns:
            AggregateStats

        Raises:
            StatsLoadError: If any query or boundary fetch fails
        """
        start_time = time.time()
        now = now or datetime.now(UTC)
        dataset = self.dataset
        self._columns = None

        logger.info(f"Starting stats load for {dataset.id}", extra={"dataset": dataset.id})

        columns = self._step("columns", self.resolve_columns)
        group_fields = {
            group: field_name
            for group, field_name in (
                ("category", resolve_field(dataset.category_fields, columns)),
                ("location", resolve_field(dataset.location_fields, columns)),
                ("address", resolve_field(dataset.address_fields, columns)),
            )
            if field_name
        }

        first_day, latest_day = self._step("date_span", self.fetch_date_span)
        if latest_day is None:
            latest_day = now.date()

        windows = derive_windows(latest_day, self.config.stats.trend_days)
        tasks = self._step("plan", lambda: self._build_tasks(windows, group_fields))
        results = self.run_concurrently(tasks)

        counts = {
            name: results[name]
            for name in (
                "last_7",
                "prior_7",
                "last_30",
                "prior_30",
                "month_to_date",
                "prior_month_to_date",
                "year_to_date",
                "prior_year_to_date",
                "all_time",
            )
        }

        top_lists = {
            group: TopList(
                group=group,
                field=field_name,
                entries=top_entries(results[f"top:{group}"], self.config.stats.top_n_limit),
            )
            for group, field_name in group_fields.items()
        }

        map_model = self._step("map", lambda: self._map(results))
        top_district = None
        if isinstance(map_model, ChoroplethMap):
            top_district = map_model.top_feature(dataset.geography.label)

        stats = AggregateStats(
            dataset_id=dataset.id,
            first_day=first_day,
            latest_day=latest_day,
            freshness_days=max((now.date() - latest_day).days, 0),
            windows=windows,
            kpis=self._kpis(counts, first_day),
            trend=build_weekly_trend(results["trend"], windows.end, self.config.stats.trend_weeks),
            top_lists=top_lists,
            summary=build_summary(counts, top_lists, top_district, self.config.stats.summary_limit),
            map=map_model,
        )

        logger.info(
            f"Stats load for {dataset.id} complete in {time.time() - start_time:.2f}s",
            extra={
                "dataset": dataset.id,
                "queries": len(tasks) + 2,
                "latest_day": latest_day.isoformat(),},
        )
        return stats
