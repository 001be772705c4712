"""Tests for imputed $/wRVU versus market.

Market curve used throughout (per 1.0 cFTE):
    CF   40 / 50 / 60 / 70
    TCC  200k / 260k / 330k / 400k
    wRVU 4000 / 5000 / 6000 / 7000
    TCC / wRVU  50.00 / 52.00 / 55.00 / 57.14
"""

import pytest

from provcomp.sdk.optimizer import OptimizerSettings, compute_imputed_vs_market
from provcomp.sdk.optimizer.imputed import market_per_wrvu
from provcomp.sdk.schemas import MarketRecord, ProviderRecord


# === FIXTURES ===


def make_market_row(specialty: str = "Cardiology") -> MarketRecord:
    return MarketRecord(
        specialty=specialty,
        tcc_25=200000, tcc_50=260000, tcc_75=330000, tcc_90=400000,
        wrvu_25=4000, wrvu_50=5000, wrvu_75=6000, wrvu_90=7000,
        cf_25=40, cf_50=50, cf_75=60, cf_90=70,
    )


def make_provider(provider_id: str, work_rvus: float, **overrides) -> ProviderRecord:
    fields = dict(
        provider_id=provider_id,
        specialty="Cardiology",
        total_fte=1.0,
        clinical_fte=1.0,
        base_salary=150000,
        work_rvus=work_rvus,
    )
    fields.update(overrides)
    return ProviderRecord(**fields)


@pytest.fixture
def market_rows():
    return [make_market_row("Cardiology"), make_market_row("Dermatology")]


@pytest.fixture
def providers():
    return [
        # 260,000 / 5,000 = 52.00
        make_provider("P1", 5000, current_cf=52.0),
        # No current CF: modeled at the market 50th, 300,000 / 6,000 = 50.00
        make_provider("P2", 6000),
        make_provider("P3", 5000, clinical_fte=0.2, current_cf=52.0),
    ]


class TestImputedVsMarket:

    def test_specialty_row(self, providers, market_rows):
        result = compute_imputed_vs_market(providers, market_rows)
        row = result.specialty("Cardiology")

        assert row.provider_count == 2
        assert result.providers_used == 2
        assert row.median_imputed_per_wrvu == pytest.approx(51.0)
        assert row.median_current_cf == pytest.approx(51.0)
        assert row.imputed_percentile == pytest.approx(37.5)
        assert not row.below_range
        assert not row.above_range
        assert row.mean_wrvu_percentile == pytest.approx(62.5)
        assert row.mean_tcc_percentile == pytest.approx((50 + 50 + 40 / 70 * 25) / 2)
        assert row.market_cf_50 == 50

    def test_market_ratios(self, market_rows):
        assert market_per_wrvu(market_rows[0]) == [
            pytest.approx(50.0),
            pytest.approx(52.0),
            pytest.approx(55.0),
            pytest.approx(400000 / 7000),
        ]
        assert market_per_wrvu(MarketRecord(specialty="Sparse", tcc_50=250000, wrvu_50=5000)) == [
            None,
            pytest.approx(50.0),
            None,
            None,
        ]

    def test_above_market_range(self, market_rows):
        # 150,000 base + 100,000 quality + 75,000 incentive over 5,000 wRVUs = 65.00
        providers = [make_provider("P1", 5000, current_cf=45.0, quality_payments=100000)]
        row = compute_imputed_vs_market(providers, market_rows).specialty("Cardiology")

        assert row.median_imputed_per_wrvu == pytest.approx(65.0)
        assert row.above_range
        assert row.imputed_percentile > 90

    def test_quality_excluded_by_settings(self, market_rows):
        providers = [make_provider("P1", 5000, current_cf=45.0, quality_payments=100000)]
        settings = OptimizerSettings(include_quality_payments=False)
        row = compute_imputed_vs_market(providers, market_rows, settings).specialty("Cardiology")
        assert row.median_imputed_per_wrvu == pytest.approx(45.0)
        assert row.below_range

    def test_rows_sorted_and_filtered(self, providers, market_rows):
        roster = providers + [make_provider("D1", 5000, specialty="dermatology", current_cf=52.0)]

        result = compute_imputed_vs_market(roster, market_rows)
        assert [r.specialty for r in result.rows] == ["Cardiology", "Dermatology"]

        filtered = compute_imputed_vs_market(roster, market_rows, specialty_filter="Dermatology")
        assert [r.specialty for r in filtered.rows] == ["Dermatology"]
        assert filtered.providers_used == 1

    def test_no_eligible_providers(self, market_rows):
        providers = [make_provider("P1", 5000, clinical_fte=0.2)]
        assert compute_imputed_vs_market(providers, market_rows).rows == []
