"""
Unit tests for the dataset registry.
"""

import pytest
from pydantic import ValidationError

from crime_pulse.datasets.registry import (
    ChoroplethGeography,
    CombinedGeography,
    DatasetConfig,
    NoGeography,
    PointGeography,
    dataset_options,
    get_dataset,
    list_datasets,
    load_dataset,
)
from crime_pulse.exceptions import DatasetConfigError, UnknownDatasetError


class TestDatasetConfigs:
    """Test cases for the shipped dataset configurations."""

    def test_every_enabled_dataset_validates(self, test_config):
        datasets = list_datasets(test_config)
        assert [dataset.id for dataset in datasets] == test_config.datasets

    def test_geography_variants(self, test_config):
        assert isinstance(get_dataset("austin", test_config).geography, PointGeography)
        assert isinstance(get_dataset("chicago", test_config).geography, CombinedGeography)
        assert isinstance(get_dataset("san_francisco", test_config).geography, ChoroplethGeography)
        assert isinstance(get_dataset("los_angeles", test_config).geography, NoGeography)

    def test_geo_support(self, austin, los_angeles, san_francisco):
        assert austin.has_geo_support
        assert san_francisco.has_geo_support
        assert not los_angeles.has_geo_support

    def test_date_expr_applies_cast(self, test_config, austin):
        seattle = get_dataset("seattle", test_config)
        assert seattle.date_expr == "offense_start_datetime::floating_timestamp"
        assert austin.date_expr == "occ_date"

    def test_dataset_options(self, test_config):
        options = dataset_options(test_config)
        assert options[0] == {"id": "austin", "label": "Austin, TX - APD Crime Reports"}
        assert len(options) == len(test_config.datasets)

    def test_config_is_immutable(self, austin):
        with pytest.raises(ValidationError):
            austin.label = "changed"


class TestLoading:
    """Test cases for load errors."""

    def test_unknown_dataset(self):
        with pytest.raises(UnknownDatasetError) as exc_info:
            load_dataset("atlantis")
        assert str(exc_info.value) == "Unknown dataset: atlantis"
        assert isinstance(exc_info.value, KeyError)

    def test_disabled_dataset(self, test_config):
        config = test_config.model_copy(update={"datasets": ["austin"]})
        with pytest.raises(UnknownDatasetError):
            get_dataset("chicago", config)

    def test_invalid_config(self, mocker):
        mocker.patch(
            "crime_pulse.datasets.registry.get_dataset_config",
            return_value={"label": "Broken", "geography": {"kind": "point"}},
        )
        load_dataset.cache_clear()
        try:
            with pytest.raises(DatasetConfigError) as exc_info:
                load_dataset("broken")
        finally:
            load_dataset.cache_clear()
        assert exc_info.value.dataset_id == "broken"

    def test_geography_rejects_unknown_kind(self):
        with pytest.raises(ValidationError):
            DatasetConfig.model_validate(
                {
                    "id": "x",
                    "label": "X",
                    "city": "X",
                    "dataset_id": "x",
                    "name": "X",
                    "endpoint": "https://example.org",
                    "date_field": "d",
                    "compare_start": "2024-01-01",
                    "compare_end": "2026-01-01",
                    "geography": {"kind": "heatmap"},
                }
            )

    def test_geography_defaults_to_none(self):
        dataset = DatasetConfig(
            id="x",
            label="X",
            city="X",
            dataset_id="x",
            name="X",
            endpoint="https://example.org",
            date_field="d",
            compare_start="2024-01-01",
            compare_end="2026-01-01",
        )
        assert dataset.geography.kind == "none"
        assert not dataset.has_geo_support
