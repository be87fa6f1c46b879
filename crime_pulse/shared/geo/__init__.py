"""
Crime Pulse - Geographic Utilities

Geographic processing for the stats map:
- Point extraction from heterogeneous row encodings
- Choropleth shading of boundary polygons
- Boundary document cache
"""

from crime_pulse.shared.geo.choropleth import (
    BoundaryCache,
    ChoroplethMap,
    build_choropleth,
    counts_by_label,
    fill_color,
)
from crime_pulse.shared.geo.points import (
    GeoPoint,
    PointMap,
    extract_point,
    extract_points,
    point_from_value,
)

__all__ = [
    "BoundaryCache",
    "ChoroplethMap",
    "GeoPoint",
    "PointMap",
    "build_choropleth",
    "counts_by_label",
    "extract_point",
    "extract_points",
    "fill_color",
    "point_from_value",
]
