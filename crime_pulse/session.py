"""
Crime Pulse - Dashboard Session

Single context object owning the dashboard state: the active dataset, the
view mode, the current column/row snapshot, per-dataset app tokens, the
boundary cache and the last stats result. Every view load goes through
DashboardSession.load(), which turns failures into a user-facing status and
never leaves state half-updated.

Usage:
    from crime_pulse.session import DashboardSession, ViewMode

    session = DashboardSession()
    session.select_dataset("chicago")
    result = session.load(ViewMode.STATS)
    print(result.status)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from pathlib import Path
from typing import Any

from crime_pulse.datasets.registry import DatasetConfig, dataset_options, get_dataset
from crime_pulse.exceptions import CrimePulseError, RequestFailedError, StatsLoadError
from crime_pulse.shared.config import Settings, get_config
from crime_pulse.shared.geo import BoundaryCache
from crime_pulse.shared.logging_utils import log_event
from crime_pulse.soql.client import SoqlClient
from crime_pulse.soql.normalizer import TableModel
from crime_pulse.views.monthly import MonthlyComparison, load_monthly
from crime_pulse.views.rows import FilteredRows, apply_filters, load_rows
from crime_pulse.views.stats import AggregateStats, StatsEngine

logger = logging.getLogger(__name__)

STATUS_ROWS_LOADED = "Data loaded."
STATUS_NO_ROWS = "No rows returned from the API."
STATUS_MONTHLY_LOADED = "Monthly comparison loaded."
STATUS_STATS_LOADED = "Stats loaded."
STATUS_TOKEN_FAILURE = "Unable to load data. Add an app token if the API blocks the request."
STATUS_FAILURE = "Unable to load data."


class ViewMode(StrEnum):
    """Dashboard views."""

    ROWS = "rows"
    MONTHLY = "monthly"
    STATS = "stats"


@dataclass
class LoadResult:
    """Outcome of one view load."""

    view: ViewMode
    status: str
    is_error: bool = False
    table: FilteredRows | None = None
    comparison: MonthlyComparison | None = None
    stats: AggregateStats | None = None
    summary: str = ""
    map_message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "view": str(self.view),
            "status": self.status,
            "is_error": self.is_error,
            "table": self.table.to_dict() if self.table else None,
            "comparison": self.comparison.to_dict() if self.comparison else None,
            "stats": self.stats.to_dict() if self.stats else None,
            "summary": self.summary,
            "map_message": self.map_message,}


def failure_status(error: BaseException) -> str:
    """User-facing status for a failed load."""
    cause = error.cause if isinstance(error, StatsLoadError) else error
    if isinstance(cause, RequestFailedError) and cause.likely_needs_token:
        return STATUS_TOKEN_FAILURE
    return STATUS_FAILURE


def no_geo_message(dataset: DatasetConfig) -> str:
    return f"{dataset.label} does not include location coordinates/boundaries."


class DashboardSession:
    """
    Mutable dashboard state plus the three view loads.

    Loads run on the calling thread; a newer load simply replaces the state
    left by an older one.
    """

    def __init__(
        self,
        config: Settings | None = None,
        client: SoqlClient | None = None,
        boundary_cache: BoundaryCache | None = None,
    ):
        """
        Initialize the session.

        Args:
            config: Configuration object (uses default if not provided)
            client: Query client (built from config if not provided)
            boundary_cache: Boundary cache shared across loads
        """
        self.config = config or get_config()
        self.client = client or SoqlClient(self.config)
        self.boundary_cache = boundary_cache if boundary_cache is not None else BoundaryCache()

        self.dataset_id = self.config.default_dataset
        self.view = ViewMode.ROWS
        self.table = TableModel()
        self.search = ""
        self.limit: Any = self.config.api.default_row_limit
        self.tokens: dict[str, str] = {}
        self.comparison: MonthlyComparison | None = None
        self.stats: AggregateStats | None = None

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------

    @property
    def dataset(self) -> DatasetConfig:
        return get_dataset(self.dataset_id, self.config)

    def dataset_options(self) -> list[dict[str, str]]:
        """``{id, label}`` entries for the dataset selector."""
        return dataset_options(self.config)

    def select_dataset(self, dataset_id: str) -> DatasetConfig:
        """
        Switch the active dataset and drop every snapshot of the old one.

        Raises:
            UnknownDatasetError: If the dataset is not enabled
        """
        dataset = get_dataset(dataset_id, self.config)
        self.dataset_id = dataset.id
        self.clear()
        logger.info(f"Selected dataset {dataset.id}", extra={"dataset": dataset.id})
        return dataset

    def set_token(self, dataset_id: str, token: str | None) -> None:
        """Store an app token for a dataset; a blank token removes it."""
        token = (token or "").strip()
        if token:
            self.tokens[dataset_id] = token
        else:
            self.tokens.pop(dataset_id, None)

    def token_for(self, dataset_id: str) -> str | None:
        """Token for a dataset, falling back to the configured app token."""
        return self.tokens.get(dataset_id) or self.config.app_token

    def clear(self) -> None:
        """Reset every dataset-dependent panel."""
        self.table = TableModel()
        self.comparison = None
        self.stats = None

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def filter_rows(self, search: str | None = None, limit: Any = None) -> FilteredRows:
        """Re-apply search and display limit to the current snapshot without fetching."""
        if search is not None:
            self.search = search
        if limit is not None:
            self.limit = limit
        return apply_filters(self.table, self.search, self.limit)

    def export_rows(self, path: str | Path) -> int:
        """
        Write the current row snapshot to a CSV file.

        Args:
            path: Destination file

        Returns:
            Number of rows written
        """
        df = self.table.to_dataframe()
        df.to_csv(path, index=False)
        logger.info(f"Exported {len(df)} rows to {path}", extra={"dataset": self.dataset_id})
        return len(df)

    def load(self, view: ViewMode | str | None = None, now: datetime | None = None) -> LoadResult:
        """
        Load a view for the active dataset.

        Args:
            view: View to load (defaults to the current view mode)
            now: Current instant for the stats view

        Returns:
            LoadResult; failures are reported through ``is_error`` and ``status``
        """
        self.view = ViewMode(view) if view is not None else self.view
        dataset = self.dataset
        start_time = time.time()

        try:
            if self.view == ViewMode.ROWS:
                result = self._load_rows(dataset)
            elif self.view == ViewMode.MONTHLY:
                result = self._load_monthly(dataset)
            else:
                result = self._load_stats(dataset, now)
        except CrimePulseError as e:
            self.clear()
            logger.error(
                f"Failed to load {self.view} view for {dataset.id}: {e}",
                exc_info=True,
                extra={"dataset": dataset.id, "view": str(self.view)},
            )
            return LoadResult(view=self.view, status=failure_status(e), is_error=True)

        log_event(
            logger,
            logging.INFO,
            "view_loaded",
            dataset=dataset.id,
            view=str(self.view),
            status=result.status,
            duration_s=round(time.time() - start_time, 3),
        )
        return result

    def _fetch(self, dataset: DatasetConfig):
        return self.client.bind(dataset.endpoint, self.token_for(dataset.id))

    def _load_rows(self, dataset: DatasetConfig) -> LoadResult:
        table = load_rows(self._fetch(dataset), self.limit)
        self.clear()
        self.table = table
        filtered = apply_filters(table, self.search, self.limit)
        status = STATUS_ROWS_LOADED if table.rows else STATUS_NO_ROWS
        return LoadResult(
            view=ViewMode.ROWS, status=status, table=filtered, summary=filtered.summary
        )

    def _load_monthly(self, dataset: DatasetConfig) -> LoadResult:
        comparison = load_monthly(self._fetch(dataset), dataset)
        self.clear()
        self.comparison = comparison
        return LoadResult(
            view=ViewMode.MONTHLY,
            status=STATUS_MONTHLY_LOADED,
            comparison=comparison,
            summary=comparison.summary,
        )

    def _load_stats(self, dataset: DatasetConfig, now: datetime | None) -> LoadResult:
        engine = StatsEngine(
            dataset,
            fetch=self._fetch(dataset),
            config=self.config,
            fetch_boundaries=self.client.fetch_geojson,
            boundary_cache=self.boundary_cache,
        )
        stats = engine.load(now)
        self.clear()
        self.stats = stats
        return LoadResult(
            view=ViewMode.STATS,
            status=STATUS_STATS_LOADED,
            stats=stats,
            summary=" ".join(stats.summary),
            map_message=None if dataset.has_geo_support else no_geo_message(dataset),
        )
