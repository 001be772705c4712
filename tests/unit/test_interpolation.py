"""Tests for percentile interpolation over four-point benchmark tables."""

import math

import pytest

from provcomp.sdk.interpolation import (
    BenchmarkCurve,
    PercentileResult,
    percentile_of_value,
    value_at_percentile,
)
from provcomp.sdk.schemas import MarketRecord, PercentilePoints


# === FIXTURES ===


@pytest.fixture
def tcc_points():
    return PercentilePoints(p25=200000, p50=250000, p75=300000, p90=350000)


class TestValueAtPercentile:
    """Percentile -> value."""

    def test_published_point_returns_exact_value(self, tcc_points):
        assert value_at_percentile(tcc_points, 50) == 250000

    def test_linear_between_points(self, tcc_points):
        assert value_at_percentile(tcc_points, 60) == pytest.approx(270000)

    def test_extrapolates_below_25th_with_first_segment_slope(self, tcc_points):
        # 2,000 per percentile point on the 25-50 segment
        assert value_at_percentile(tcc_points, 10) == pytest.approx(170000)

    def test_extrapolates_above_90th_with_last_segment_slope(self, tcc_points):
        assert value_at_percentile(tcc_points, 95) == pytest.approx(350000 + 5 * 50000 / 15)

    def test_single_point_is_unavailable(self):
        assert value_at_percentile(PercentilePoints(p50=250000), 50) is None

    def test_non_finite_percentile_is_unavailable(self, tcc_points):
        assert value_at_percentile(tcc_points, math.nan) is None

    def test_skips_missing_points(self):
        points = PercentilePoints(p25=100, p75=200)
        assert value_at_percentile(points, 50) == pytest.approx(150)

    def test_accepts_pairs(self):
        assert value_at_percentile([(25, 10.0), (50, 20.0)], 30) == pytest.approx(12.0)


class TestPercentileOfValue:
    """Value -> percentile with range flags."""

    def test_inside_range(self, tcc_points):
        result = percentile_of_value(tcc_points, 275000)
        assert result.percentile == pytest.approx(62.5)
        assert not result.off_scale
        assert result.available

    def test_below_range_is_flagged_and_clamped(self, tcc_points):
        result = percentile_of_value(tcc_points, 100000)
        assert result.below_range
        assert result.percentile == 0.0
        assert result.display() == "<25"

    def test_below_range_extrapolates_before_clamping(self, tcc_points):
        result = percentile_of_value(tcc_points, 190000)
        assert result.below_range
        assert result.percentile == pytest.approx(20.0)

    def test_above_range_is_flagged_and_clamped(self, tcc_points):
        result = percentile_of_value(tcc_points, 400000)
        assert result.above_range
        assert result.percentile == 100.0
        assert result.display() == ">90"

    def test_flat_segment_returns_lower_percentile(self):
        points = PercentilePoints(p25=100, p50=100, p75=200, p90=300)
        assert percentile_of_value(points, 100).percentile == 25.0

    def test_non_monotone_points_are_unavailable(self):
        points = PercentilePoints(p25=300, p50=250, p75=400, p90=500)
        result = percentile_of_value(points, 260)
        assert not result.available
        assert result.display() == "n/a"

    def test_nan_value_is_unavailable(self, tcc_points):
        assert percentile_of_value(tcc_points, math.nan) == PercentileResult.unavailable()

    def test_inverse_of_value_at_percentile(self, tcc_points):
        value = value_at_percentile(tcc_points, 42)
        assert percentile_of_value(tcc_points, value).percentile == pytest.approx(42)


class TestBenchmarkCurve:

    def test_from_market_record(self):
        row = MarketRecord(specialty="Cardiology", cf_25=40, cf_50=50, cf_75=60, cf_90=70)
        curve = BenchmarkCurve.from_points(row.cf)
        assert curve.low == (25.0, 40.0)
        assert curve.high == (90.0, 70.0)
        assert curve.value_at(40) == pytest.approx(46.0)

    def test_missing_table_has_no_curve(self):
        row = MarketRecord(specialty="Cardiology")
        assert BenchmarkCurve.from_points(row.tcc) is None
