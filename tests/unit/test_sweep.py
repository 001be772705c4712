"""Tests for the CF percentile sweep."""

import math

import pytest

from provcomp.sdk.optimizer import CancellationToken, OptimizerSettings, run_sweep
from provcomp.sdk.optimizer.sweep import SweepConfigError
from provcomp.sdk.schemas import MarketRecord, ProviderRecord


# === FIXTURES ===


@pytest.fixture
def market_rows():
    return [
        MarketRecord(
            specialty="Cardiology",
            tcc_25=200000, tcc_50=250000, tcc_75=300000, tcc_90=350000,
            wrvu_25=4000, wrvu_50=5000, wrvu_75=6000, wrvu_90=7000,
            cf_25=40, cf_50=50, cf_75=60, cf_90=70,
        ),
        MarketRecord(
            specialty="Neurology",
            tcc_25=200000, tcc_50=250000, tcc_75=300000, tcc_90=350000,
            wrvu_25=4000, wrvu_50=5000, wrvu_75=6000, wrvu_90=7000,
        ),
    ]


def make_provider(provider_id: str, work_rvus: float, specialty: str = "Cardiology") -> ProviderRecord:
    return ProviderRecord(
        provider_id=provider_id,
        specialty=specialty,
        total_fte=1.0,
        clinical_fte=1.0,
        base_salary=150000,
        work_rvus=work_rvus,
        current_cf=45.0,
    )


@pytest.fixture
def providers():
    return [make_provider("P1", 4600), make_provider("P2", 5400)]


class TestRunSweep:

    def test_rows_follow_requested_percentiles(self, providers, market_rows):
        result = run_sweep(providers, market_rows, None, [20, 30, 40, 50])
        spec = result.specialty("Cardiology")

        assert [row.cf_percentile for row in spec.rows] == [20, 30, 40, 50]
        assert [row.cf_dollars for row in spec.rows] == [
            pytest.approx(38.0),
            pytest.approx(42.0),
            pytest.approx(46.0),
            pytest.approx(50.0),
        ]
        pays = [row.mean_modeled_pay_percentile for row in spec.rows]
        assert pays == sorted(pays)

    def test_row_figures_at_median(self, providers, market_rows):
        row = run_sweep(providers, market_rows, None, [50]).specialty("Cardiology").rows[0]

        # 230,000 (40th) and 270,000 (60th)
        assert row.mean_modeled_pay_percentile == pytest.approx(50.0)
        assert row.mean_productivity_percentile == pytest.approx(50.0)
        assert row.gap == pytest.approx(0.0)
        assert row.total_incentive == pytest.approx(200000)
        assert row.spend_impact == pytest.approx(200000)

    def test_incentive_excluded_when_component_off(self, providers, market_rows):
        settings = OptimizerSettings(include_work_rvu_incentive=False)
        row = run_sweep(providers, market_rows, settings, [50]).specialty("Cardiology").rows[0]
        assert row.total_incentive == 0.0
        assert row.spend_impact == 0.0

    def test_missing_market_cf(self, market_rows):
        providers = [make_provider("P1", 5000, specialty="Neurology")]
        spec = run_sweep(providers, market_rows, None, [50]).specialty("Neurology")
        assert spec.rows == []
        assert spec.notes == ["Market CF benchmarks unavailable."]

    @pytest.mark.parametrize("percentiles", [[], [math.nan], [150], [-1, 50]])
    def test_invalid_percentiles(self, providers, market_rows, percentiles):
        with pytest.raises(SweepConfigError):
            run_sweep(providers, market_rows, None, percentiles)

    def test_cancelled(self, providers, market_rows):
        token = CancellationToken()
        token.cancel()
        assert run_sweep(providers, market_rows, None, [50], cancel_token=token) is None

    def test_cf_floored_at_zero_below_published_range(self, providers):
        steep = [
            MarketRecord(
                specialty="Cardiology",
                tcc_25=200000, tcc_50=250000, tcc_75=300000, tcc_90=350000,
                wrvu_25=4000, wrvu_50=5000, wrvu_75=6000, wrvu_90=7000,
                cf_25=10, cf_50=60, cf_75=70, cf_90=80,
            )
        ]
        spec = run_sweep(providers, steep, None, [0, 25]).specialty("Cardiology")

        # 10 - 25 * 2 extrapolates to -40 at the 0th
        assert spec.rows[0].cf_dollars == 0.0
        assert spec.rows[0].total_incentive == 0.0
        assert spec.rows[1].cf_dollars == pytest.approx(10.0)
        assert spec.notes == ["CF floored at $0 below the published range."]
