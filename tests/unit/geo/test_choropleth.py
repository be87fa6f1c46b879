"""
Unit tests for choropleth shading and the boundary cache.
"""

import copy

import pytest

from crime_pulse.shared.geo import (
    BoundaryCache,
    build_choropleth,
    counts_by_label,
    fill_color,
)
from crime_pulse.shared.geo.choropleth import COLOR_RAMP


@pytest.fixture
def districts():
    """Boundary collection with three districts."""
    return {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "properties": {"district": "CENTRAL"}, "geometry": None},
            {"type": "Feature", "properties": {"district": " MISSION "}, "geometry": None},
            {"type": "Feature", "properties": {"district": "PARK"}, "geometry": None},
        ],
    }


class TestFillColor:
    """Test cases for fill_color."""

    @pytest.mark.parametrize(
        "count,expected",
        [(100, 4), (80, 4), (79, 3), (60, 3), (40, 2), (20, 1), (19, 0), (0, 0)],
    )
    def test_ratio_steps(self, count, expected):
        assert fill_color(count, 100) == COLOR_RAMP[expected]

    def test_zero_max(self):
        assert fill_color(0, 0) == COLOR_RAMP[0]


class TestBuildChoropleth:
    """Test cases for build_choropleth."""

    def test_counts_and_fills(self, districts):
        shaded = build_choropleth(districts, {"CENTRAL": 10, "MISSION": 5}, "district")

        properties = [feature["properties"] for feature in shaded.features]
        assert [p["count"] for p in properties] == [10, 5, 0]
        assert [p["fill"] for p in properties] == [COLOR_RAMP[4], COLOR_RAMP[2], COLOR_RAMP[0]]
        assert shaded.max_count == 10

    def test_no_features_dropped_and_input_untouched(self, districts):
        original = copy.deepcopy(districts)
        shaded = build_choropleth(districts, {}, "district")

        assert len(shaded.features) == 3
        assert districts == original
        assert shaded.max_count == 0

    def test_top_feature(self, districts):
        shaded = build_choropleth(districts, {"CENTRAL": 3, "PARK": 7}, "district")
        assert shaded.top_feature("district") == ("PARK", 7)
        assert build_choropleth(districts, {}, "district").top_feature("district") is None

    def test_malformed_features_are_skipped(self):
        geojson = {"features": [None, "x", {"properties": {"district": "CENTRAL"}}]}

        shaded = build_choropleth(geojson, {"CENTRAL": 2}, "district")

        assert len(shaded.features) == 1
        assert shaded.features[0]["properties"]["count"] == 2

    def test_non_list_features_count_as_empty(self):
        assert build_choropleth({"features": "bad"}, {"CENTRAL": 2}, "district").features == []
        assert build_choropleth(["not", "a", "map"], {}, "district").features == []

    def test_to_dict(self, districts):
        data = build_choropleth(districts, {"PARK": 1}, "district").to_dict()
        assert data["kind"] == "choropleth"
        assert data["counts_by_key"] == {"PARK": 1}
        assert data["max_count"] == 1


class TestHelpers:
    """Test cases for counts_by_label and BoundaryCache."""

    def test_counts_by_label_trims_and_skips_blanks(self):
        entries = [(" CENTRAL ", 4), ("CENTRAL", 1), ("", 3), (None, 2), ("PARK", 6)]
        assert counts_by_label(entries) == {"CENTRAL": 5, "PARK": 6}

    def test_boundary_cache(self):
        cache = BoundaryCache()
        assert "https://example.org/a.geojson" not in cache
        cache.put("https://example.org/a.geojson", {"features": []})
        assert "https://example.org/a.geojson" in cache
        assert cache.get("https://example.org/a.geojson") == {"features": []}
        assert cache.get("https://example.org/b.geojson") is None
        assert len(cache) == 1
