"""Tests for governance flags, traffic-light status, budget and explanations."""

import pytest

from provcomp.sdk.optimizer.budget import reconcile_budget
from provcomp.sdk.optimizer.explanation import build_explanation, ordinal
from provcomp.sdk.interpolation import PercentileResult
from provcomp.sdk.optimizer.governance import (
    effective_rate_flag,
    evaluate_governance,
    evaluate_status,
    policy_check,
)
from provcomp.sdk.optimizer.results import KeyMetrics
from provcomp.sdk.optimizer.settings import CFBounds, GovernanceSettings


# === FIXTURES ===


@pytest.fixture
def governance():
    return GovernanceSettings()


class TestEvaluateGovernance:

    def test_underpay_and_low_cf_resolved(self):
        flags = evaluate_governance(-20, 30, current_cf_percentile=20, modeled_cf_percentile=30)
        assert flags.underpay_risk
        assert flags.cf_below_25
        assert flags.cf_below_25_resolved
        assert flags.within_policy_band
        assert not flags.fmv_check_suggested
        assert not flags.is_clean

    def test_fmv_review_above_75th(self):
        flags = evaluate_governance(0, 80, current_cf_percentile=50, modeled_cf_percentile=50)
        assert flags.fmv_check_suggested
        assert not flags.within_policy_band

    def test_fmv_review_on_large_positive_gap(self):
        assert evaluate_governance(16, 60).fmv_check_suggested

    def test_unknown_cf_percentile_is_not_in_band(self):
        flags = evaluate_governance(0, 50)
        assert not flags.cf_below_25
        assert not flags.within_policy_band
        assert flags.is_clean
        assert flags.messages() == []


class TestEvaluateStatus:

    def test_green(self, governance):
        assert evaluate_status(40, 0, governance) == ("GREEN", [])

    def test_fmv_red(self, governance):
        status, constraints = evaluate_status(80, 0, governance)
        assert status == "RED"
        assert constraints == ["FMV_OVER_75", "HARD_CAP_50"]

    def test_between_hard_and_soft_cap(self, governance):
        status, constraints = evaluate_status(55, 0, governance)
        assert status == "YELLOW"
        assert constraints == ["HARD_CAP_50", "SOFT_CAP_60"]

    def test_gap_bands(self, governance):
        assert evaluate_status(40, 7, governance) == ("YELLOW", ["GAP_5_TO_10"])
        assert evaluate_status(40, 12, governance) == ("RED", ["GAP_OVER_10"])

    def test_max_change_bound(self, governance):
        _, constraints = evaluate_status(40, 0, governance, cf_change_pct=30, action="INCREASE")
        assert constraints == ["MAX_CHANGE_BOUND"]
        _, constraints = evaluate_status(40, 0, governance, cf_change_pct=30, action="HOLD")
        assert constraints == []

    def test_max_change_bound_follows_configured_bounds(self, governance):
        bounds = CFBounds(min_change_pct=5, max_change_pct=10)
        _, constraints = evaluate_status(
            40, 0, governance, cf_change_pct=10, action="INCREASE", cf_bounds=bounds
        )
        assert constraints == ["MAX_CHANGE_BOUND"]
        _, constraints = evaluate_status(
            40, 0, governance, cf_change_pct=-5, action="DECREASE", cf_bounds=bounds
        )
        assert constraints == ["MAX_CHANGE_BOUND"]
        _, constraints = evaluate_status(
            40, 0, governance, cf_change_pct=-4, action="DECREASE", cf_bounds=bounds
        )
        assert constraints == []


class TestPolicyCheck:

    @pytest.mark.parametrize(
        "percentile, expected",
        [
            (None, "ok"),
            (50, "ok"),
            (50.1, "above_policy"),
            (75, "above_policy"),
            (80, "above_75"),
            (95, "above_90"),
        ],
    )
    def test_default_threshold(self, percentile, expected):
        assert policy_check(percentile) == expected

    def test_custom_threshold(self):
        assert policy_check(45, threshold_percentile=40) == "above_policy"
        assert policy_check(45, threshold_percentile=60) == "ok"

    def test_effective_rate_flag(self):
        in_range = PercentileResult(percentile=60)
        assert not effective_rate_flag([in_range, PercentileResult.unavailable()])
        assert effective_rate_flag([in_range, PercentileResult(percentile=92)])
        assert effective_rate_flag([PercentileResult(percentile=100, above_range=True)])
        assert not effective_rate_flag([])
        assert not effective_rate_flag([PercentileResult(percentile=0, below_range=True)])


class TestBudget:

    def test_within_tolerance(self):
        assert reconcile_budget(100000.5, 100000).status == "within"

    def test_over(self):
        budget = reconcile_budget(150000, 100000)
        assert budget.status == "over"
        assert budget.delta_dollars == 50000
        assert budget.utilization_pct == pytest.approx(150.0)

    def test_under(self):
        assert reconcile_budget(50000, 100000).status == "under"

    def test_zero_cap_has_no_utilization(self):
        assert reconcile_budget(0, 0).utilization_pct is None


class TestExplanation:

    @pytest.mark.parametrize("value,expected", [
        (1, "1st"), (2, "2nd"), (3, "3rd"), (11, "11th"), (12, "12th"),
        (21, "21st"), (47.6, "48th"), (113, "113th"),
    ])
    def test_ordinal(self, value, expected):
        assert ordinal(value) == expected

    def test_increase_headline(self, governance):
        metrics = KeyMetrics(productivity_percentile=50, pay_percentile=30, gap=-20)
        explanation = build_explanation("INCREASE", "GREEN", metrics, [], 45.0, 49.5, 2, governance)
        assert explanation.headline == (
            "Increase CF from $45.00 to $49.50 (+10.0%) to better align pay with productivity."
        )
        assert "underpaid relative to output" in explanation.why[0]
        assert len(explanation.why) <= 3

    def test_fmv_hold(self, governance):
        metrics = KeyMetrics(productivity_percentile=40, pay_percentile=80, gap=40)
        explanation = build_explanation("HOLD", "RED", metrics, ["FMV_OVER_75"], 60.0, 60.0, 5, governance)
        assert "flagging FMV risk" in explanation.headline
        assert len(explanation.why) == 3

    def test_no_recommendation(self, governance):
        explanation = build_explanation(
            "NO_RECOMMENDATION", "YELLOW", KeyMetrics(), [], None, None, 0, governance
        )
        assert explanation.headline.startswith("No recommendation")
        assert explanation.what_to_do_next
