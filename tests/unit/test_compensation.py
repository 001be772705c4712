"""Tests for TCC composition."""

import pytest

from provcomp.sdk.optimizer.compensation import (
    CompositionConfig,
    base_salary,
    clinical_base,
    clinical_fte,
    compose_tcc,
    compose_tcc_breakdown,
    total_wrvus,
    wrvu_incentive,
)
from provcomp.sdk.optimizer.settings import OptimizerSettings
from provcomp.sdk.schemas import ProviderRecord


# === FIXTURES ===


def make_provider(**overrides) -> ProviderRecord:
    fields = dict(
        provider_id="P1",
        specialty="Cardiology",
        total_fte=1.0,
        clinical_fte=1.0,
        base_salary=150000,
        work_rvus=4600,
        quality_payments=5000,
        other_incentives=3000,
        non_clinical_pay=8000,
        current_cf=45.0,
    )
    fields.update(overrides)
    return ProviderRecord(**fields)


def config_for(**settings) -> CompositionConfig:
    return CompositionConfig.from_settings(OptimizerSettings(**settings))


class TestProviderQuantities:

    def test_clinical_fte_zero_is_respected(self):
        assert clinical_fte(make_provider(clinical_fte=0.0)) == 0.0

    def test_clinical_fte_falls_back_to_total(self):
        assert clinical_fte(make_provider(clinical_fte=None, total_fte=0.9)) == 0.9

    def test_explicit_clinical_salary_wins(self):
        assert clinical_base(make_provider(clinical_fte_salary=120000)) == 120000

    def test_clinical_base_scaled_by_fte_share(self):
        provider = make_provider(base_salary=200000, clinical_fte=0.8)
        assert clinical_base(provider) == pytest.approx(160000)

    def test_clinical_base_without_total_fte(self):
        assert clinical_base(make_provider(total_fte=None, clinical_fte=0.6)) == 150000

    def test_itemized_components_replace_base_salary(self):
        provider = make_provider(
            base_pay_components=[{"name": "Clinical", "amount": 140000}, {"name": "Call", "amount": 20000}]
        )
        assert base_salary(provider) == 160000

    def test_total_wrvus_reported_directly(self):
        assert total_wrvus(make_provider(total_wrvus=6000, outside_wrvus=100)) == 6000

    def test_total_wrvus_sums_sources(self):
        assert total_wrvus(make_provider(outside_wrvus=400)) == 5000


class TestWrvuIncentive:

    def test_incentive_above_threshold(self):
        assert wrvu_incentive(150000, 4600, 45) == pytest.approx(57000)

    def test_no_incentive_below_threshold(self):
        assert wrvu_incentive(150000, 3000, 45) == 0.0

    def test_zero_cf(self):
        assert wrvu_incentive(150000, 4600, 0) == 0.0


class TestComposeTcc:

    def test_baseline_excludes_productivity_incentive(self):
        # Defaults: quality and incentive on, other incentives and non-clinical off
        assert compose_tcc(make_provider(), config_for()) == pytest.approx(155000)

    def test_modeled_adds_incentive(self):
        tcc = compose_tcc(make_provider(), config_for(), mode="modeled", cf=45)
        assert tcc == pytest.approx(212000)

    def test_modeled_without_incentive_component(self):
        config = config_for(include_work_rvu_incentive=False)
        assert compose_tcc(make_provider(), config, mode="modeled", cf=45) == pytest.approx(155000)

    def test_legacy_flag_enables_component(self):
        assert compose_tcc(make_provider(), config_for(include_other_incentives=True)) == pytest.approx(158000)

    def test_normalize_for_fte_scales_component(self):
        provider = make_provider(total_fte=0.5, clinical_fte=0.5, base_salary=100000, quality_payments=10000)
        config = config_for(component_inclusion={"quality": {"normalize_for_fte": True}})
        breakdown = compose_tcc_breakdown(provider, config)
        assert breakdown.quality == pytest.approx(5000)
        assert breakdown.total == pytest.approx(105000)

    def test_quality_override_percent_of_base(self):
        config = config_for(quality_source="override_pct_of_base", quality_override_pct=10)
        assert compose_tcc_breakdown(make_provider(), config).quality == pytest.approx(15000)

    def test_additional_layers(self):
        provider = make_provider(custom_fields={"call_pay": 12000})
        config = config_for(
            additional_layers=[
                {"name": "Retention", "type": "percent_of_base", "value": 5},
                {"name": "Leadership", "type": "dollar_per_cfte", "value": 10000},
                {"name": "Sign-on", "type": "flat_dollar", "value": 2000},
                {"name": "Call", "type": "from_field", "field": "call_pay"},
            ]
        )
        breakdown = compose_tcc_breakdown(provider, config)
        assert breakdown.layers == {
            "Retention": pytest.approx(7500),
            "Leadership": pytest.approx(10000),
            "Sign-on": pytest.approx(2000),
            "Call": pytest.approx(12000),
        }
        assert breakdown.total == pytest.approx(186500)

    def test_missing_inputs_contribute_zero(self):
        assert compose_tcc(ProviderRecord(provider_id="X"), config_for(), mode="modeled", cf=50) == 0.0
