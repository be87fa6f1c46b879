"""
Crime Pulse - Choropleth Resolution

Joins grouped incident counts to boundary polygons and assigns each polygon a
fill from a fixed five-step color ramp. Boundary documents are cached per
source URL for the lifetime of the process.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

import numpy as np

logger = logging.getLogger(__name__)

# Lowest to highest intensity
COLOR_RAMP = ("#fee5d9", "#fcae91", "#fb6a4a", "#de2d26", "#a50f15")
RATIO_STEPS = (0.2, 0.4, 0.6, 0.8)


class BoundaryCache:
    """Boundary documents keyed by source URL; never invalidated."""

    def __init__(self) -> None:
        self._documents: dict[str, dict[str, Any]] = {}

    def __contains__(self, url: str) -> bool:
        return url in self._documents

    def __len__(self) -> int:
        return len(self._documents)

    def get(self, url: str) -> dict[str, Any] | None:
        return self._documents.get(url)

    def put(self, url: str, document: dict[str, Any]) -> None:
        self._documents[url] = document
        logger.debug(f"Cached boundary document {url}")


def fill_color(count: int, max_count: int) -> str:
    """Ramp color for ``count / max_count`` (ratio >= 0.8, 0.6, 0.4, 0.2, else base)."""
    ratio = count / max_count if max_count > 0 else 0.0
    return COLOR_RAMP[int(np.searchsorted(RATIO_STEPS, ratio, side="right"))]


def counts_by_label(entries: Iterable[tuple[Any, int]]) -> dict[str, int]:
    """Key grouped counts by trimmed label text, skipping blank labels."""
    counts: dict[str, int] = {}
    for label, count in entries:
        if label is None:
            continue
        key = str(label).strip()
        if not key:
            continue
        counts[key] = counts.get(key, 0) + count
    return counts


@dataclass
class ChoroplethMap:
    """Polygons shaded by count."""

    counts_by_key: dict[str, int]
    geojson: dict[str, Any]
    max_count: int = 0
    kind: str = field(default="choropleth", init=False)

    @property
    def features(self) -> list[dict[str, Any]]:
        return self.geojson.get("features", [])

    def top_feature(self, label_property: str) -> tuple[str, int] | None:
        """Label and count of the polygon with the highest count, if any is non-zero."""
        best = None
        for feature in self.features:
            properties = feature.get("properties") or {}
            count = properties.get("count", 0)
            if count > 0 and (best is None or count > best[1]):
                best = (str(properties.get(label_property, "")).strip(), count)
        return best

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "counts_by_key": self.counts_by_key,
            "geojson": self.geojson,
            "max_count": self.max_count,}


def build_choropleth(
    geojson: dict[str, Any],
    counts: dict[str, int],
    key_property: str,
) -> ChoroplethMap:
    """
    Shade every boundary polygon by its count.

    Polygons are matched on the trimmed ``key_property`` value; unmatched
    polygons count 0 and are kept. Entries that are not objects are skipped
    and a non-list ``features`` counts as empty. The cached document is not
    modified.

    Args:
        geojson: Boundary FeatureCollection
        counts: Counts keyed by trimmed group label
        key_property: Feature property holding the boundary key

    Returns:
        ChoroplethMap with ``count`` and ``fill`` added to each feature
    """
    max_count = max(counts.values(), default=0)

    source = geojson.get("features") if isinstance(geojson, Mapping) else None
    if not isinstance(source, list):
        source = []

    features = []
    unmatched = 0
    skipped = 0
    for feature in source:
        if not isinstance(feature, Mapping):
            skipped += 1
            continue
        raw_properties = feature.get("properties")
        properties = dict(raw_properties) if isinstance(raw_properties, Mapping) else {}
        key = str(properties.get(key_property, "")).strip()
        count = counts.get(key, 0)
        if key not in counts:
            unmatched += 1
        properties["count"] = count
        properties["fill"] = fill_color(count, max_count)
        features.append({**feature, "properties": properties})

    if unmatched:
        logger.debug(f"{unmatched} boundary polygons had no matching counts")
    if skipped:
        logger.warning(f"Skipped {skipped} malformed boundary features")

    shaded = dict(geojson) if isinstance(geojson, Mapping) else {}
    shaded["features"] = features
    return ChoroplethMap(counts_by_key=counts, geojson=shaded, max_count=max_count)
