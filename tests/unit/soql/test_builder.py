"""
Unit tests for the SoQL query builder.
"""

from datetime import date, datetime

import pytest

from crime_pulse.soql.builder import (
    build_count_query,
    build_daily_count_query,
    build_date_range_query,
    build_group_count_query,
    build_monthly_query,
    build_point_query,
    build_probe_query,
    build_row_query,
    format_day,
    parse_limit,
)


class TestRowQuery:
    """Test cases for build_row_query."""

    @pytest.mark.parametrize("limit", [None, "", "abc", 0, -5, "0", "-1", "nan", "inf"])
    def test_invalid_limit_defaults_to_200(self, limit):
        assert build_row_query(limit) == "select * limit 200"

    @pytest.mark.parametrize("limit,expected", [(50, 50), ("75", 75), (" 10 ", 10), ("12.7", 12)])
    def test_valid_limit(self, limit, expected):
        assert build_row_query(limit) == f"select * limit {expected}"

    def test_probe_query(self):
        assert build_probe_query() == "select * limit 1"

    def test_parse_limit_custom_default(self):
        assert parse_limit("x", 10) == 10


class TestMonthlyQuery:
    """Test cases for build_monthly_query."""

    def test_uses_cast_in_projection_and_raw_field_in_filter(self, test_config):
        from crime_pulse.datasets.registry import get_dataset

        seattle = get_dataset("seattle", test_config)
        assert build_monthly_query(seattle) == (
            "select date_trunc_ym(offense_start_datetime::floating_timestamp) as month_start, "
            "count(*) as count "
            "where offense_start_datetime >= '2024-01-01' "
            "and offense_start_datetime < '2026-01-01' "
            "group by month_start order by month_start"
        )

    def test_keeps_literal_precision(self, austin):
        query = build_monthly_query(austin)
        assert "occ_date >= '2024-01-01T00:00:00.000'" in query
        assert "occ_date < '2026-01-01T00:00:00.000'" in query
        assert query.startswith("select date_trunc_ym(occ_date) as month_start")


class TestCountQueries:
    """Test cases for count, group, daily and point queries."""

    def test_count_without_bounds(self):
        assert build_count_query("occ_date") == "select count(*) as count"

    def test_count_with_start_only(self):
        assert build_count_query("occ_date", start=date(2025, 1, 1)) == (
            "select count(*) as count where occ_date >= '2025-01-01'"
        )

    def test_count_with_end_only(self):
        assert build_count_query("occ_date", end=date(2025, 2, 1)) == (
            "select count(*) as count where occ_date < '2025-02-01'"
        )

    def test_count_with_both_bounds_drops_time(self):
        query = build_count_query(
            "occ_date", datetime(2025, 1, 1, 13, 45), "2025-02-01T08:00:00.000"
        )
        assert query == (
            "select count(*) as count "
            "where occ_date >= '2025-01-01' and occ_date < '2025-02-01'"
        )

    def test_group_count_query(self):
        query = build_group_count_query(
            "occ_date", date(2025, 2, 13), date(2025, 3, 15), "crime_type", 8
        )
        assert query == (
            "select crime_type, count(*) as count "
            "where occ_date >= '2025-02-13' and occ_date < '2025-03-15' "
            "and crime_type is not null and crime_type != '' "
            "group by crime_type order by count desc limit 8"
        )

    def test_group_count_invalid_limit(self):
        query = build_group_count_query("d", None, None, "f", "bad")
        assert query.endswith("limit 10")
        assert "d >=" not in query

    def test_daily_count_query(self):
        query = build_daily_count_query("d::floating_timestamp", date(2025, 1, 1), date(2025, 2, 1))
        assert query == (
            "select date_trunc_ymd(d::floating_timestamp) as day, count(*) as count "
            "where d::floating_timestamp >= '2025-01-01' "
            "and d::floating_timestamp < '2025-02-01' "
            "group by day order by day"
        )

    def test_date_range_query(self):
        assert build_date_range_query("occ_date") == (
            "select min(occ_date) as min_date, max(occ_date) as max_date"
        )

    def test_point_query(self):
        query = build_point_query(
            "occ_date", date(2025, 2, 13), date(2025, 3, 15), ["latitude", "longitude"], 500
        )
        assert query == (
            "select latitude, longitude "
            "where occ_date >= '2025-02-13' and occ_date < '2025-03-15' "
            "and latitude is not null limit 500"
        )

    def test_format_day(self):
        assert format_day(date(2025, 3, 4)) == "2025-03-04"
        assert format_day(datetime(2025, 3, 4, 23, 59)) == "2025-03-04"
        assert format_day("2025-03-04T10:00:00") == "2025-03-04"
