"""Optimizer settings.

Settings are resolved once, at construction: every default is applied by the
models below so the engine never falls back to ad hoc defaults at the point
of use. Legacy include_* booleans are folded into a single canonical
component_inclusion map by an explicit resolution step.

Example:
    settings = OptimizerSettings(
        objective={"kind": "hybrid", "target_percentile": 45, "align_weight": 0.6},
        error_metric="absolute",
        cf_bounds={"min_change_pct": 10, "max_change_pct": 10},
    )
    settings.objective.target_weight   # 0.4
"""

import math
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


ObjectiveKind = Literal["align_percentile", "target_fixed_percentile", "hybrid"]
ErrorMetric = Literal["squared", "absolute"]
QualitySource = Literal["from_file", "override_pct_of_base"]
LayerType = Literal["percent_of_base", "dollar_per_cfte", "flat_dollar", "from_field"]
ProductivityModelFilter = Literal["all", "productivity", "base"]

# Built-in pay components that can be toggled on top of clinical base.
COMPONENT_IDS = ("quality", "work_rvu_incentive", "other_incentives", "non_clinical")

# Legacy boolean flag -> canonical component id
LEGACY_INCLUSION_FLAGS = {
    "include_quality_payments": "quality",
    "include_work_rvu_incentive": "work_rvu_incentive",
    "include_other_incentives": "other_incentives",
    "include_non_clinical": "non_clinical",
}

DEFAULT_COMPONENT_INCLUSION = {
    "quality": True,
    "work_rvu_incentive": True,
    "other_incentives": False,
    "non_clinical": False,
}

WEIGHT_SUM_TOLERANCE = 1e-6


class OptimizerConfigError(ValueError):
    """Raised when settings fail validation before a run."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class ObjectiveSettings(BaseModel):
    """What the search minimizes."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: ObjectiveKind = Field("align_percentile", description="Objective kind")
    target_percentile: float = Field(
        40.0, ge=1, le=99, description="Target pay percentile (fixed-target and hybrid)"
    )
    align_weight: float = Field(0.7, ge=0, le=1, description="Hybrid weight on alignment error")
    target_weight: float = Field(0.3, ge=0, le=1, description="Hybrid weight on target error")

    @model_validator(mode="before")
    @classmethod
    def derive_missing_weight(cls, data: Any) -> Any:
        """Derive the complementary weight when only one is given."""
        if isinstance(data, dict):
            data = dict(data)
            has_align = data.get("align_weight") is not None
            has_target = data.get("target_weight") is not None
            if has_align and not has_target:
                data["target_weight"] = 1.0 - float(data["align_weight"])
            elif has_target and not has_align:
                data["align_weight"] = 1.0 - float(data["target_weight"])
        return data

    @model_validator(mode="after")
    def weights_sum_to_one(self) -> "ObjectiveSettings":
        total = self.align_weight + self.target_weight
        if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
            raise ValueError(f"align_weight + target_weight must equal 1, got {total:g}")
        return self


class ExclusionRules(BaseModel):
    """Eligibility rules applied before optimization."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    min_clinical_fte: float = Field(0.5, ge=0, description="Minimum clinical FTE")
    min_wrvu_per_cfte: float = Field(
        1000.0, ge=0, description="Minimum wRVUs per 1.0 clinical FTE"
    )
    excluded_provider_types: List[str] = Field(
        default_factory=list, description="Provider roles excluded from optimization"
    )
    exclude_loa: bool = Field(True, description="Exclude providers flagged for leave of absence")
    productivity_model: ProductivityModelFilter = Field(
        "all", description="Only include providers on this compensation model"
    )
    manual_exclude_ids: List[str] = Field(default_factory=list)
    manual_include_ids: List[str] = Field(
        default_factory=list, description="Providers included regardless of other rules"
    )


class CFBounds(BaseModel):
    """Allowed movement of the conversion factor, in percent of current."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    min_change_pct: float = Field(30.0, description="Maximum decrease (percent)")
    max_change_pct: float = Field(30.0, description="Maximum increase (percent)")
    absolute_min: Optional[float] = Field(None, ge=0, description="Absolute CF floor")
    absolute_max: Optional[float] = Field(None, ge=0, description="Absolute CF ceiling")

    @field_validator("min_change_pct")
    @classmethod
    def clamp_min_change(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("min_change_pct must be finite")
        return max(0.0, min(100.0, v))

    @field_validator("max_change_pct")
    @classmethod
    def clamp_max_change(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("max_change_pct must be finite")
        return max(0.0, v)


class ComponentInclusion(BaseModel):
    """Inclusion options for one built-in pay component."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    included: bool = True
    normalize_for_fte: bool = Field(
        False, description="Treat the amount as per 1.0 FTE and scale by clinical FTE"
    )


class PayLayer(BaseModel):
    """Additional named pay layer added to TCC."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(..., description="Layer label")
    type: LayerType = Field(..., description="How the layer amount is derived")
    value: float = Field(0.0, description="Percent, dollars, or dollars per cFTE")
    field: Optional[str] = Field(None, description="Provider field (from_field only)")
    normalize_for_fte: bool = Field(False, description="Scale by clinical FTE")

    @model_validator(mode="after")
    def from_field_needs_field(self) -> "PayLayer":
        if self.type == "from_field" and not self.field:
            raise ValueError(f"layer '{self.name}': from_field layers require 'field'")
        return self


class GovernanceSettings(BaseModel):
    """Policy thresholds used for status, flags and action."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    hard_cap_percentile: float = Field(50.0, ge=0, le=100)
    soft_cap_percentile: float = Field(60.0, ge=0, le=100)
    fmv_red_flag_percentile: float = Field(75.0, ge=0, le=100)
    cf_policy_threshold_percentile: float = Field(
        50.0, ge=0, le=100, description="Recommended CF above this market percentile is reported"
    )
    alignment_tolerance: float = Field(
        3.0, ge=0, description="Gap (percentile points) treated as aligned"
    )
    min_meaningful_change_pct: float = Field(
        0.01, ge=0, description="Smallest CF change (fraction) worth recommending"
    )
    block_increase_above_hard_cap: bool = Field(
        False, description="Do not search above current CF when pay exceeds the hard cap"
    )


class SearchSettings(BaseModel):
    """Bounded one-dimensional search controls."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    grid_points: int = Field(21, ge=3, le=1001, description="Coarse bracketing grid size")
    tolerance: float = Field(1e-4, gt=0, description="CF tolerance in dollars")
    max_iterations: int = Field(100, ge=1, description="Refinement iteration cap")


class OptimizerSettings(BaseModel):
    """Fully-resolved optimizer configuration."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    objective: ObjectiveSettings = Field(default_factory=ObjectiveSettings)
    error_metric: ErrorMetric = "squared"
    exclusion_rules: ExclusionRules = Field(default_factory=ExclusionRules)
    cf_bounds: CFBounds = Field(default_factory=CFBounds)
    max_recommended_cf_percentile: float = Field(
        50.0, ge=1, le=99, description="Recommended CF never exceeds this market percentile"
    )
    component_inclusion: Dict[str, ComponentInclusion] = Field(default_factory=dict)
    quality_source: QualitySource = "from_file"
    quality_override_pct: float = Field(
        0.0, ge=0, description="Quality as percent of clinical base (override source)"
    )
    additional_layers: List[PayLayer] = Field(default_factory=list)
    wrvu_growth_pct: float = Field(
        0.0, gt=-100, description="Scale recorded wRVUs by (1 + pct/100) for this run"
    )
    budget_cap_dollars: Optional[float] = Field(None, ge=0)
    governance: GovernanceSettings = Field(default_factory=GovernanceSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    min_included_providers: int = Field(
        1, ge=1, description="Fewer included providers yields NO_RECOMMENDATION"
    )
    low_sample_threshold: int = Field(3, ge=0, description="Flag results with n at or below this")

    @model_validator(mode="before")
    @classmethod
    def resolve_component_inclusion(cls, data: Any) -> Any:
        """Merge legacy include_* booleans into one canonical inclusion map.

        Explicit component_inclusion entries win over legacy flags, which win
        over defaults. Every built-in component ends up with an entry.
        """
        if not isinstance(data, dict):
            return data
        data = dict(data)

        resolved: Dict[str, Any] = {
            cid: {"included": included} for cid, included in DEFAULT_COMPONENT_INCLUSION.items()
        }
        for flag, cid in LEGACY_INCLUSION_FLAGS.items():
            value = data.pop(flag, None)
            if value is not None:
                resolved[cid] = {"included": bool(value)}

        explicit = data.get("component_inclusion") or {}
        for cid, entry in explicit.items():
            if isinstance(entry, bool):
                entry = {"included": entry}
            elif isinstance(entry, ComponentInclusion):
                entry = entry.model_dump()
            resolved[cid] = {**resolved.get(cid, {}), **entry}

        data["component_inclusion"] = resolved
        return data

    @field_validator("component_inclusion")
    @classmethod
    def known_components(cls, v: Dict[str, ComponentInclusion]) -> Dict[str, ComponentInclusion]:
        unknown = sorted(set(v) - set(COMPONENT_IDS))
        if unknown:
            raise ValueError(f"unknown pay components: {', '.join(unknown)}")
        return v

    def component(self, component_id: str) -> ComponentInclusion:
        return self.component_inclusion.get(component_id, ComponentInclusion(included=False))


def validate_optimizer_settings(settings: OptimizerSettings) -> OptimizerSettings:
    """Re-check cross-field constraints before a run.

    Raises:
        OptimizerConfigError: listing every violated constraint
    """
    errors = []
    objective = settings.objective
    if not 1 <= objective.target_percentile <= 99:
        errors.append(f"target_percentile must be in [1, 99], got {objective.target_percentile}")
    if abs(objective.align_weight + objective.target_weight - 1.0) > WEIGHT_SUM_TOLERANCE:
        errors.append("objective weights must sum to 1")
    if not 1 <= settings.max_recommended_cf_percentile <= 99:
        errors.append("max_recommended_cf_percentile must be in [1, 99]")

    bounds = settings.cf_bounds
    if (
        bounds.absolute_min is not None
        and bounds.absolute_max is not None
        and bounds.absolute_min > bounds.absolute_max
    ):
        errors.append(
            f"cf_bounds.absolute_min ({bounds.absolute_min}) exceeds absolute_max ({bounds.absolute_max})"
        )

    governance = settings.governance
    if governance.soft_cap_percentile < governance.hard_cap_percentile:
        errors.append("governance.soft_cap_percentile must be >= hard_cap_percentile")

    if settings.budget_cap_dollars is not None and not math.isfinite(settings.budget_cap_dollars):
        errors.append("budget_cap_dollars must be finite")

    if errors:
        raise OptimizerConfigError(errors)
    return settings


def recommend_error_metric(included_count: int, objective: ObjectiveSettings) -> ErrorMetric:
    """Advisory metric choice; never applied automatically.

    Absolute error spreads adjustment evenly and suits small cohorts or a
    fixed target. Squared error emphasizes large misalignments in larger groups.
    """
    if objective.kind == "target_fixed_percentile" or included_count <= 10:
        return "absolute"
    return "squared"
