"""
Crime Pulse - Point Extraction

Reduces one incident row to a latitude/longitude pair. Rows arrive with very
different location encodings depending on the portal:

    {"latitude": "30.27", "longitude": "-97.74"}            explicit fields
    {"location": "(30.27, -97.74)"}                          text pair
    {"location": "POINT (-97.74 30.27)"}                     WKT, lon first
    {"location": {"type": "Point", "coordinates": [-97.74, 30.27]}}
    {"location": {"latitude": "30.27", "longitude": "-97.74"}}

A row that yields no usable pair resolves to None and is left off the map.
"""

from __future__ import annotations

import json
import logging
import math
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

LAT_KEYS = ("latitude", "lat", "y")
LON_KEYS = ("longitude", "lon", "lng", "x")
GENERIC_LAT_FIELDS = ("lat", "latitude")
GENERIC_LON_FIELDS = ("lon", "longitude", "lng", "long")

COORDINATE_PAIR = re.compile(r"(-?\d+(?:\.\d+)?)[,\s]+(-?\d+(?:\.\d+)?)")


@dataclass(frozen=True)
class GeoPoint:
    """One map point."""

    lat: float
    lon: float

    def to_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lon": self.lon}


def _to_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _point(lat: Any, lon: Any) -> GeoPoint | None:
    lat, lon = _to_float(lat), _to_float(lon)
    if lat is None or lon is None:
        return None
    return GeoPoint(lat=lat, lon=lon)


def _first_number(row: Mapping[str, Any], keys: Iterable[str]) -> float | None:
    """First candidate field whose value parses as a finite number."""
    for key in keys:
        number = _to_float(row.get(key))
        if number is not None:
            return number
    return None


def point_from_text(text: str) -> GeoPoint | None:
    """
    Parse an embedded coordinate pair from free text.

    The pair is read latitude-first unless the first number cannot be a
    latitude (magnitude above 90) or the text is WKT (contains ``POINT``).
    """
    match = COORDINATE_PAIR.search(text)
    if match is None:
        return None
    first, second = float(match.group(1)), float(match.group(2))
    if abs(first) > 90 or "POINT" in text.upper():
        first, second = second, first
    return _point(first, second)


def point_from_object(value: Any) -> GeoPoint | None:
    """Parse a ``{lat, lon}``-style mapping or a GeoJSON-style ``coordinates`` array."""
    if not isinstance(value, Mapping):
        return None

    point = _point(_first_number(value, LAT_KEYS), _first_number(value, LON_KEYS))
    if point is not None:
        return point

    coordinates = value.get("coordinates")
    if isinstance(coordinates, list | tuple) and len(coordinates) >= 2:
        return _point(coordinates[1], coordinates[0])
    return None


def point_from_value(value: Any) -> GeoPoint | None:
    """Parse a combined geo field value of any supported encoding."""
    if value is None:
        return None
    if isinstance(value, Mapping):
        return point_from_object(value)
    if isinstance(value, list | tuple):
        return point_from_object({"coordinates": value})

    text = str(value)
    point = point_from_text(text)
    if point is not None:
        return point
    try:
        return point_from_object(json.loads(text))
    except ValueError:
        return None


def extract_point(
    row: Mapping[str, Any],
    lat_field: str | None = None,
    lon_field: str | None = None,
    geo_field: str | None = None,
) -> GeoPoint | None:
    """
    Resolve one row to a point.

    Precedence:
        1. ``lat_field``/``lon_field``, then the generic lat/lon field names;
           each axis takes the first candidate that parses as a finite number
        2. ``geo_field`` parsed as text pair, JSON, or GeoJSON-style object

    Args:
        row: Keyed row
        lat_field: Configured latitude field
        lon_field: Configured longitude field
        geo_field: Configured combined geo field

    Returns:
        GeoPoint, or None if the row has no usable location
    """
    if not isinstance(row, Mapping):
        return None

    lat_fields = ((lat_field,) if lat_field else ()) + GENERIC_LAT_FIELDS
    lon_fields = ((lon_field,) if lon_field else ()) + GENERIC_LON_FIELDS
    point = _point(_first_number(row, lat_fields), _first_number(row, lon_fields))
    if point is not None:
        return point

    if geo_field:
        return point_from_value(row.get(geo_field))
    return None


def extract_points(rows: Iterable[Mapping[str, Any]], **fields: str | None) -> list[GeoPoint]:
    """Resolve every row, dropping rows without a usable location."""
    points = []
    skipped = 0
    for row in rows:
        point = extract_point(row, **fields)
        if point is None:
            skipped += 1
            continue
        points.append(point)

    if skipped:
        logger.debug(f"Skipped {skipped} rows without a usable location")
    return points


@dataclass
class PointMap:
    """Individual incident locations."""

    points: list[GeoPoint]
    kind: str = "points"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "points": [point.to_dict() for point in self.points]}
