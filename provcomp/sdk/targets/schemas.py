"""Productivity target settings and result schemas."""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..optimizer.settings import ExclusionRules


TargetApproach = Literal["wrvu_percentile", "pay_per_wrvu", "manual"]
PlanningCFSource = Literal["market_percentile", "manual"]
TargetBand = Literal["below_80", "80_to_99", "100_to_119", "at_or_above_120"]
TargetStatus = Literal["Below Target", "At Target", "Above Target"]

TARGET_BANDS = ("below_80", "80_to_99", "100_to_119", "at_or_above_120")

BAND_LABELS: Dict[str, str] = {
    "below_80": "<80%",
    "80_to_99": "80-99%",
    "100_to_119": "100-119%",
    "at_or_above_120": ">=120%",
}


class TargetConfigError(ValueError):
    """Raised when target settings fail validation before a run."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


def _no_floor_rules() -> ExclusionRules:
    return ExclusionRules(min_clinical_fte=0.0, min_wrvu_per_cfte=0.0, exclude_loa=False)


class SpecialtyTargetRule(BaseModel):
    """Per-specialty override of the target approach and percentiles."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    target_approach: TargetApproach = "wrvu_percentile"
    target_percentile: Optional[float] = Field(None, ge=1, le=99)
    pay_percentile: Optional[float] = Field(None, ge=1, le=99)
    cf_percentile: Optional[float] = Field(None, ge=1, le=99)
    manual_target_wrvu: Optional[float] = Field(None, ge=0)


class ProductivityTargetSettings(BaseModel):
    """Settings for group productivity targets."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    target_approach: TargetApproach = Field(
        "wrvu_percentile", description="How the group target is derived"
    )
    target_percentile: float = Field(
        50.0, ge=1, le=99, description="Market wRVU percentile for the group target"
    )
    pay_percentile: Optional[float] = Field(
        None, ge=1, le=99, description="Market TCC percentile (pay_per_wrvu); defaults to target"
    )
    cf_percentile: float = Field(
        50.0, ge=1, le=99, description="Market CF percentile (pay_per_wrvu)"
    )
    manual_target_wrvu: Optional[float] = Field(
        None, ge=0, description="Group target at 1.0 cFTE (manual approach)"
    )
    specialty_overrides: Dict[str, SpecialtyTargetRule] = Field(default_factory=dict)
    alignment_tolerance: float = Field(
        10.0, ge=0, description="Max |pay - productivity| percentile gap treated as aligned"
    )
    planning_cf_source: PlanningCFSource = "market_percentile"
    planning_cf_percentile: float = Field(50.0, ge=0, le=100)
    planning_cf_manual: Optional[float] = Field(None, ge=0)
    ramp_factor_by_provider_id: Dict[str, float] = Field(
        default_factory=dict, description="Target multiplier per provider (e.g., 0.5 in year one)"
    )
    exclusion_rules: ExclusionRules = Field(default_factory=_no_floor_rules)

    @model_validator(mode="after")
    def required_manual_values(self) -> "ProductivityTargetSettings":
        if self.target_approach == "manual" and self.manual_target_wrvu is None:
            raise ValueError("manual_target_wrvu is required when target_approach is 'manual'")
        if self.planning_cf_source == "manual" and self.planning_cf_manual is None:
            raise ValueError("planning_cf_manual is required when planning_cf_source is 'manual'")
        bad = sorted(k for k, v in self.ramp_factor_by_provider_id.items() if v < 0)
        if bad:
            raise ValueError(f"ramp factors must be >= 0: {', '.join(bad)}")
        return self


class ProviderTargetResult(BaseModel):
    """One provider's actual productivity against target."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    provider_id: str
    provider_name: Optional[str] = None
    specialty: str = ""
    included: bool = True
    exclusion_reasons: List[str] = Field(default_factory=list)

    clinical_fte: float = 0.0
    actual_wrvus: float = 0.0
    ramp_factor: float = 1.0
    target_wrvu: Optional[float] = None
    ramped_target_wrvu: Optional[float] = None
    variance_wrvu: Optional[float] = None
    percent_to_target: Optional[float] = None
    band: Optional[TargetBand] = None
    status: Optional[TargetStatus] = None
    planning_incentive: Optional[float] = None

    wrvu_percentile: Optional[float] = None
    pay_percentile: Optional[float] = None


class SpecialtyTargetSummary(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    included_count: int = 0
    excluded_count: int = 0
    mean_percent_to_target: float = 0.0
    median_percent_to_target: float = 0.0
    band_counts: Dict[str, int] = Field(
        default_factory=lambda: {band: 0 for band in TARGET_BANDS}
    )
    mean_pay_percentile: Optional[float] = None
    mean_productivity_percentile: Optional[float] = None
    alignment_gap: Optional[float] = None
    aligned: Optional[bool] = None


class SpecialtyTargetResult(BaseModel):
    """Group target and provider results for one specialty."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    specialty: str
    market_specialty: Optional[str] = None
    target_approach: TargetApproach
    target_percentile: Optional[float] = None
    group_target_wrvu: Optional[float] = Field(None, description="Target at 1.0 cFTE")
    planning_cf: Optional[float] = None
    providers: List[ProviderTargetResult] = Field(default_factory=list)
    summary: SpecialtyTargetSummary = Field(default_factory=SpecialtyTargetSummary)
    total_planning_incentive: float = 0.0
    warnings: List[str] = Field(default_factory=list)


class ProductivityTargetRunResult(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    by_specialty: List[SpecialtyTargetResult] = Field(default_factory=list)
    total_planning_incentive: float = 0.0
    providers_included: int = 0
    providers_excluded: int = 0

    def specialty(self, name: str) -> Optional[SpecialtyTargetResult]:
        wanted = name.strip().lower()
        return next((s for s in self.by_specialty if s.specialty.lower() == wanted), None)
