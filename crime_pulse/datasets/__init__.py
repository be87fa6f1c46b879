"""
Crime Pulse - Datasets

Registry of the configured crime incident sources.
"""

from crime_pulse.datasets.registry import (
    DatasetConfig,
    dataset_options,
    get_dataset,
    list_datasets,
    load_dataset,
)

__all__ = ["DatasetConfig", "dataset_options", "get_dataset", "list_datasets", "load_dataset"]
