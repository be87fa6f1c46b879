"""
Crime Pulse - Dataset Registry

Static configuration for every crime incident source the dashboard can query.
Each dataset is described by one YAML file under configs/datasets/ and
validated into an immutable DatasetConfig.

The geography of a dataset is a closed variant selected by ``kind``:
    - none:       no location data, the map panel is hidden
    - point:      separate latitude/longitude fields
    - combined:   one field holding both coordinates (text, JSON or GeoJSON)
    - choropleth: counts grouped by a field and joined to boundary polygons

Usage:
    from crime_pulse.datasets.registry import get_dataset, list_datasets

    dataset = get_dataset("austin")
    query_date = dataset.date_expr
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from crime_pulse.exceptions import DatasetConfigError, UnknownDatasetError
from crime_pulse.shared.config import Settings, get_config, get_dataset_config

logger = logging.getLogger(__name__)


# =============================================================================
# Geography Variants
# =============================================================================


class NoGeography(BaseModel):
    """Dataset without any location data."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["none"] = "none"


class PointGeography(BaseModel):
    """Separate latitude and longitude fields."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["point"] = "point"
    lat_field: str
    lon_field: str


class CombinedGeography(BaseModel):
    """A single field carrying both coordinates."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["combined"] = "combined"
    geo_field: str


class ChoroplethGeography(BaseModel):
    """Counts grouped by ``field`` and shaded onto polygons from ``url``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["choropleth"] = "choropleth"
    url: str
    key: str
    label: str
    field: str


Geography = Annotated[
    NoGeography | PointGeography | CombinedGeography | ChoroplethGeography,
    Field(discriminator="kind"),
]


# =============================================================================
# Dataset Configuration
# =============================================================================


class DatasetConfig(BaseModel):
    """Immutable description of one crime incident source."""

    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    city: str
    dataset_id: str
    name: str
    endpoint: str
    description: str = ""
    notes: tuple[str, ...] = ()

    date_field: str
    date_field_cast: str | None = None
    compare_start: str
    compare_end: str

    category_fields: tuple[str, ...] = ()
    location_fields: tuple[str, ...] = ()
    address_fields: tuple[str, ...] = ()

    geography: Geography = Field(default_factory=NoGeography)

    @property
    def date_expr(self) -> str:
        """Date field with its cast suffix, for projections and day filters."""
        return f"{self.date_field}{self.date_field_cast or ''}"

    @property
    def has_geo_support(self) -> bool:
        """Whether the stats view can show a map for this dataset."""
        return self.geography.kind != "none"

    def option(self) -> dict[str, str]:
        """Selector entry for this dataset."""
        return {"id": self.id, "label": self.label}


@lru_cache(maxsize=32)
def load_dataset(dataset_id: str) -> DatasetConfig:
    """
    Load and validate one dataset configuration.

    Args:
        dataset_id: Dataset id (file stem under configs/datasets/)

    Returns:
        Validated DatasetConfig

    Raises:
        UnknownDatasetError: If no configuration file exists
        DatasetConfigError: If the configuration does not validate
    """
    raw = dict(get_dataset_config(dataset_id))
    if not raw:
        raise UnknownDatasetError(dataset_id)

    raw.setdefault("id", dataset_id)
    try:
        dataset = DatasetConfig.model_validate(raw)
    except ValidationError as e:
        raise DatasetConfigError(dataset_id, str(e)) from e

    logger.debug(
        f"Loaded dataset config {dataset_id}",
        extra={"dataset": dataset_id, "geography": dataset.geography.kind},
    )
    return dataset


def list_datasets(config: Settings | None = None) -> list[DatasetConfig]:
    """Return the datasets offered by the selector, in configured order."""
    config = config or get_config()
    return [load_dataset(dataset_id) for dataset_id in config.datasets]


def get_dataset(dataset_id: str, config: Settings | None = None) -> DatasetConfig:
    """
    Get a dataset that is enabled in the current configuration.

    Raises:
        UnknownDatasetError: If the dataset is not enabled
    """
    config = config or get_config()
    if dataset_id not in config.datasets:
        raise UnknownDatasetError(dataset_id)
    return load_dataset(dataset_id)


def dataset_options(config: Settings | None = None) -> list[dict[str, str]]:
    """Return ``{id, label}`` pairs for the dataset selector."""
    return [dataset.option() for dataset in list_datasets(config)]
