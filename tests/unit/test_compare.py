"""Tests for optimizer and productivity target run comparisons."""

import pytest

from provcomp.sdk.optimizer import OptimizerSettings, compare_optimizer_runs, run_optimizer
from provcomp.sdk.optimizer.compare import settings_differences
from provcomp.sdk.schemas import MarketRecord, ProviderRecord
from provcomp.sdk.targets import (
    ProductivityTargetSettings,
    TargetConfigError,
    compare_target_runs,
    run_productivity_targets,
)


# === FIXTURES ===


def make_market_row(specialty: str) -> MarketRecord:
    return MarketRecord(
        specialty=specialty,
        tcc_25=200000, tcc_50=250000, tcc_75=300000, tcc_90=350000,
        wrvu_25=4000, wrvu_50=5000, wrvu_75=6000, wrvu_90=7000,
        cf_25=40, cf_50=50, cf_75=60, cf_90=70,
    )


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


def bounded(pct: float) -> OptimizerSettings:
    return OptimizerSettings(
        error_metric="absolute",
        cf_bounds={"min_change_pct": pct, "max_change_pct": pct},
    )


@pytest.fixture
def market_rows():
    return [make_market_row("Cardiology"), make_market_row("Dermatology")]


@pytest.fixture
def providers():
    return [make_provider("P1", 4600), make_provider("P2", 5400)]


# === OPTIMIZER RUNS ===


class TestCompareOptimizerRuns:

    def test_rollup_and_specialty_delta(self, providers, market_rows):
        # Both runs stop at the upper bound: 49.50 and 47.25
        run_a = run_optimizer(providers, market_rows, bounded(10))
        run_b = run_optimizer(providers, market_rows, bounded(5))
        comparison = compare_optimizer_runs(run_a, run_b, "FY26", "FY27")

        rollup = comparison.rollup
        assert rollup.spend_impact_a == pytest.approx(195000)
        assert rollup.spend_impact_b == pytest.approx(172500)
        assert rollup.spend_impact_delta == pytest.approx(-22500)
        assert rollup.spend_impact_delta_pct == pytest.approx(-22500 / 195000 * 100)
        assert rollup.providers_included_a == rollup.providers_included_b == 2

        row = comparison.specialty("Cardiology")
        assert row.presence == "both"
        assert row.recommended_cf_a == pytest.approx(49.5)
        assert row.recommended_cf_b == pytest.approx(47.25)
        assert row.cf_delta_pct == pytest.approx((47.25 - 49.5) / 49.5 * 100)
        assert row.spend_impact_delta == pytest.approx(-22500)

        assert comparison.narrative[0].startswith("FY27 reduces modeled spend impact by $22,500")
        assert not any(line.startswith("Scope differs") for line in comparison.narrative)

    def test_specialty_in_one_run_only(self, providers, market_rows):
        run_a = run_optimizer(providers, market_rows, bounded(10))
        run_b = run_optimizer(
            providers + [make_provider("D1", 5000, specialty="Dermatology")], market_rows, bounded(10)
        )
        comparison = compare_optimizer_runs(run_a, run_b)

        assert [r.specialty for r in comparison.by_specialty] == ["Cardiology", "Dermatology"]
        dermatology = comparison.specialty("Dermatology")
        assert dermatology.presence == "b_only"
        assert dermatology.recommended_cf_a is None
        assert dermatology.cf_delta_pct is None
        assert dermatology.spend_impact_delta is None
        assert any(line.startswith("Scope differs: A included 2") for line in comparison.narrative)

    def test_identical_runs(self, providers, market_rows):
        run = run_optimizer(providers, market_rows, bounded(10))
        comparison = compare_optimizer_runs(run, run)

        assert comparison.narrative == ["Modeled spend impact is the same in both runs."]
        assert comparison.specialty("Cardiology").cf_delta_pct == pytest.approx(0.0)
        assert comparison.settings_differences == []

    def test_settings_differences(self, providers, market_rows):
        settings_a, settings_b = bounded(10), bounded(5)
        run_a = run_optimizer(providers, market_rows, settings_a)
        run_b = run_optimizer(providers, market_rows, settings_b)
        comparison = compare_optimizer_runs(run_a, run_b, settings_a=settings_a, settings_b=settings_b)

        assert [(d.key, d.value_a, d.value_b) for d in comparison.settings_differences] == [
            ("cf_bounds.max_change_pct", 10.0, 5.0),
            ("cf_bounds.min_change_pct", 10.0, 5.0),
        ]
        assert settings_differences(settings_a, settings_a) == []


# === TARGET RUNS ===


def target_run(providers, market_rows, percentile):
    return run_productivity_targets(
        providers, market_rows, ProductivityTargetSettings(target_percentile=percentile)
    )


class TestCompareTargetRuns:

    def test_rollup_per_scenario(self, providers, market_rows):
        comparison = compare_target_runs({
            "p50": target_run(providers, market_rows, 50),
            "p25": target_run(providers, market_rows, 25),
        })

        assert comparison.scenarios == ["p50", "p25"]
        p50, p25 = comparison.rollup
        # Targets 5,000 and 4,000 wRVUs; planning CF $50
        assert p50.total_planning_incentive == pytest.approx(20000)
        assert p25.total_planning_incentive == pytest.approx(100000)
        assert p50.mean_percent_to_target == pytest.approx(100.0)
        assert p25.mean_percent_to_target == pytest.approx(125.0)
        assert p50.band_counts == {"below_80": 0, "80_to_99": 1, "100_to_119": 1, "at_or_above_120": 0}
        assert p25.band_counts == {"below_80": 0, "80_to_99": 0, "100_to_119": 1, "at_or_above_120": 1}
        assert p50.target_approaches == ["wrvu_percentile"]
        assert p25.target_percentiles == [25.0]

        row = comparison.specialty("Cardiology")
        assert row.present_in == ["p50", "p25"]
        assert row.by_scenario["p50"].group_target_wrvu == pytest.approx(5000)
        assert row.by_scenario["p25"].group_target_wrvu == pytest.approx(4000)

    def test_specialty_absent_from_a_scenario(self, providers, market_rows):
        wider = providers + [make_provider("D1", 5000, specialty="Dermatology")]
        comparison = compare_target_runs({
            "base": target_run(providers, market_rows, 50),
            "wider": target_run(wider, market_rows, 50),
            "low": target_run(providers, market_rows, 40),
        })

        row = comparison.specialty("Dermatology")
        assert row.present_in == ["wider"]
        missing = row.by_scenario["base"]
        assert missing.group_target_wrvu is None
        assert missing.mean_percent_to_target is None
        assert sum(missing.band_counts.values()) == 0

    @pytest.mark.parametrize("count", [1, 5])
    def test_scenario_count_limits(self, providers, market_rows, count):
        run = target_run(providers, market_rows, 50)
        with pytest.raises(TargetConfigError):
            compare_target_runs({f"s{i}": run for i in range(count)})
