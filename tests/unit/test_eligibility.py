"""Tests for eligibility filtering."""

import pytest

from provcomp.sdk.optimizer.eligibility import filter_providers, top_exclusion_reasons
from provcomp.sdk.optimizer.settings import ExclusionRules
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
        MarketRecord(specialty="Urology", tcc_50=300000),
    ]


def make_provider(provider_id: str, **overrides) -> ProviderRecord:
    fields = dict(
        provider_id=provider_id,
        specialty="Cardiology",
        total_fte=1.0,
        clinical_fte=1.0,
        base_salary=150000,
        work_rvus=5000,
        current_cf=45.0,
    )
    fields.update(overrides)
    return ProviderRecord(**fields)


def reasons_for(provider, market_rows, rules=None, **kwargs):
    result = filter_providers([provider], market_rows, rules or ExclusionRules(), **kwargs)
    return list(result.all()[0].reasons)


class TestExclusionReasons:

    def test_eligible_provider_has_no_reasons(self, market_rows):
        assert reasons_for(make_provider("P1"), market_rows) == []

    def test_low_clinical_fte(self, market_rows):
        assert reasons_for(make_provider("P1", clinical_fte=0.4), market_rows) == ["below_min_clinical_fte"]

    def test_zero_clinical_fte_fails_both_floors(self, market_rows):
        assert reasons_for(make_provider("P1", clinical_fte=0.0), market_rows) == [
            "no_clinical_fte",
            "below_min_wrvu_per_cfte",
        ]

    def test_low_productivity(self, market_rows):
        assert reasons_for(make_provider("P1", work_rvus=800), market_rows) == ["below_min_wrvu_per_cfte"]

    def test_growth_applies_before_productivity_floor(self, market_rows):
        provider = make_provider("P1", work_rvus=950)
        assert reasons_for(provider, market_rows, wrvu_growth_pct=10) == []

    def test_excluded_provider_type(self, market_rows):
        rules = ExclusionRules(excluded_provider_types=["app"])
        assert reasons_for(make_provider("P1", provider_type="APP"), market_rows, rules) == [
            "excluded_provider_type"
        ]

    def test_missing_market(self, market_rows):
        assert reasons_for(make_provider("P1", specialty="Podiatry"), market_rows) == ["missing_market"]

    def test_insufficient_benchmarks(self, market_rows):
        assert reasons_for(make_provider("P1", specialty="Urology"), market_rows) == [
            "insufficient_benchmarks"
        ]

    def test_loa(self, market_rows):
        assert reasons_for(make_provider("P1", loa=True), market_rows) == ["loa_flagged"]
        rules = ExclusionRules(exclude_loa=False)
        assert reasons_for(make_provider("P1", loa=True), market_rows, rules) == []

    def test_productivity_model_filter(self, market_rows):
        rules = ExclusionRules(productivity_model="productivity")
        assert reasons_for(make_provider("P1", productivity_model="Base"), market_rows, rules) == [
            "productivity_model_filtered"
        ]
        assert reasons_for(make_provider("P1"), market_rows, rules) == []

    def test_reasons_accumulate(self, market_rows):
        provider = make_provider("P1", clinical_fte=0.3, loa=True, specialty="Podiatry")
        assert set(reasons_for(provider, market_rows)) >= {
            "below_min_clinical_fte",
            "missing_market",
            "loa_flagged",
        }


class TestManualOverrides:

    def test_manual_exclude(self, market_rows):
        rules = ExclusionRules(manual_exclude_ids=["P1"])
        assert reasons_for(make_provider("P1"), market_rows, rules) == ["manual_exclude"]

    def test_manual_include_overrides_reasons(self, market_rows):
        rules = ExclusionRules(manual_include_ids=["P1"])
        result = filter_providers([make_provider("P1", clinical_fte=0.3)], market_rows, rules)
        assert len(result.included) == 1
        decision = result.included[0]
        assert decision.manually_included
        assert decision.reasons == ("below_min_clinical_fte",)

    @pytest.mark.parametrize(
        "overrides, reason",
        [
            ({"specialty": "Podiatry"}, "missing_market"),
            ({"specialty": "Urology"}, "insufficient_benchmarks"),
            ({"clinical_fte": 0.0}, "no_clinical_fte"),
        ],
    )
    def test_manual_include_cannot_override_hard_exclusions(self, market_rows, overrides, reason):
        rules = ExclusionRules(manual_include_ids=["P1"])
        result = filter_providers([make_provider("P1", **overrides)], market_rows, rules)

        assert result.included == []
        decision = result.excluded[0]
        assert decision.manually_included
        assert decision.hard_excluded
        assert reason in decision.reasons


class TestPartition:

    def test_every_provider_lands_once_in_input_order(self, market_rows):
        providers = [
            make_provider("P1"),
            make_provider("P2", clinical_fte=0.2),
            make_provider("P3"),
            make_provider("P4", specialty="Podiatry"),
        ]
        result = filter_providers(providers, market_rows, ExclusionRules())
        assert result.total == 4
        assert [d.provider.provider_id for d in result.included] == ["P1", "P3"]
        assert [d.provider.provider_id for d in result.excluded] == ["P2", "P4"]
        assert result.excluded[0].reason_labels == ["Below minimum clinical FTE"]

    def test_top_exclusion_reasons_sorted_by_count_then_name(self, market_rows):
        providers = [
            make_provider("P1", loa=True),
            make_provider("P2", specialty="Podiatry"),
            make_provider("P3", specialty="Podiatry", loa=True),
        ]
        result = filter_providers(providers, market_rows, ExclusionRules())
        assert top_exclusion_reasons(result.excluded) == [("loa_flagged", 2), ("missing_market", 2)]
        assert top_exclusion_reasons(result.excluded, limit=1) == [("loa_flagged", 2)]
