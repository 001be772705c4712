"""Tests for optimizer settings resolution and validation."""

import pytest
from pydantic import ValidationError

from provcomp.sdk.optimizer.settings import (
    COMPONENT_IDS,
    ObjectiveSettings,
    OptimizerConfigError,
    OptimizerSettings,
    PayLayer,
    recommend_error_metric,
    validate_optimizer_settings,
)


class TestComponentInclusion:

    def test_defaults_cover_every_component(self):
        settings = OptimizerSettings()
        assert set(settings.component_inclusion) == set(COMPONENT_IDS)
        assert settings.component("quality").included
        assert settings.component("work_rvu_incentive").included
        assert not settings.component("other_incentives").included
        assert not settings.component("non_clinical").included

    def test_legacy_flags_fold_into_map(self):
        settings = OptimizerSettings(include_quality_payments=False, include_non_clinical=True)
        assert not settings.component("quality").included
        assert settings.component("non_clinical").included

    def test_explicit_entry_wins_over_legacy_flag(self):
        settings = OptimizerSettings(
            include_quality_payments=False,
            component_inclusion={"quality": {"included": True, "normalize_for_fte": True}},
        )
        assert settings.component("quality").included
        assert settings.component("quality").normalize_for_fte

    def test_boolean_shorthand(self):
        settings = OptimizerSettings(component_inclusion={"other_incentives": True})
        assert settings.component("other_incentives").included

    def test_unknown_component_rejected(self):
        with pytest.raises(ValidationError, match="unknown pay components"):
            OptimizerSettings(component_inclusion={"signing_bonus": True})

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            OptimizerSettings(include_everything=True)


class TestObjective:

    def test_missing_weight_is_derived(self):
        objective = ObjectiveSettings(kind="hybrid", align_weight=0.6)
        assert objective.target_weight == pytest.approx(0.4)

    def test_weights_must_sum_to_one(self):
        with pytest.raises(ValidationError, match="must equal 1"):
            ObjectiveSettings(kind="hybrid", align_weight=0.6, target_weight=0.6)

    @pytest.mark.parametrize("percentile", [0, 100])
    def test_target_percentile_range(self, percentile):
        with pytest.raises(ValidationError):
            ObjectiveSettings(target_percentile=percentile)


class TestBoundsAndLayers:

    def test_change_bounds_are_clamped(self):
        settings = OptimizerSettings(cf_bounds={"min_change_pct": 150, "max_change_pct": -5})
        assert settings.cf_bounds.min_change_pct == 100
        assert settings.cf_bounds.max_change_pct == 0

    def test_from_field_layer_requires_field(self):
        with pytest.raises(ValidationError, match="require 'field'"):
            PayLayer(name="Call", type="from_field")


class TestValidateOptimizerSettings:

    def test_valid_settings_pass_through(self):
        settings = OptimizerSettings()
        assert validate_optimizer_settings(settings) is settings

    def test_collects_every_error(self):
        settings = OptimizerSettings(
            cf_bounds={"absolute_min": 60, "absolute_max": 50},
            governance={"hard_cap_percentile": 70, "soft_cap_percentile": 60},
        )
        with pytest.raises(OptimizerConfigError) as excinfo:
            validate_optimizer_settings(settings)
        assert len(excinfo.value.errors) == 2
        assert "absolute_min" in str(excinfo.value)


class TestRecommendErrorMetric:

    def test_small_cohort_prefers_absolute(self):
        assert recommend_error_metric(8, ObjectiveSettings()) == "absolute"

    def test_fixed_target_prefers_absolute(self):
        objective = ObjectiveSettings(kind="target_fixed_percentile")
        assert recommend_error_metric(50, objective) == "absolute"

    def test_large_cohort_prefers_squared(self):
        assert recommend_error_metric(25, ObjectiveSettings()) == "squared"
