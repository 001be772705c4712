"""Optimizer result schemas.

Results are immutable snapshots: re-running with identical inputs produces
an equal result. Nothing here carries timestamps or run identifiers.
"""

from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..specialty_match import MatchStatus
from .budget import BudgetReconciliation
from .governance import GovernanceFlags, PolicyCheck, TrafficLight
from .search import SearchState


RecommendedAction = Literal["INCREASE", "DECREASE", "HOLD", "NO_RECOMMENDATION"]
RiskLevel = Literal["high", "medium", "low"]

OptimizerFlag = Literal[
    "low_sample",
    "cf_capped",
    "not_converged",
    "fmv_risk",
    "off_scale",
    "providers_excluded",
    "infeasible",
    "increase_blocked",
]


class KeyMetrics(BaseModel):
    """Specialty means across included providers (per 1.0 clinical FTE)."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    productivity_percentile: float = Field(0.0, description="Mean wRVU percentile")
    pay_percentile: float = Field(0.0, description="Mean TCC percentile")
    gap: float = Field(0.0, description="pay_percentile - productivity_percentile")
    tcc_per_cfte: float = Field(0.0, description="Mean TCC per 1.0 cFTE")
    wrvu_per_cfte: float = Field(0.0, description="Mean wRVUs per 1.0 cFTE")

    @classmethod
    def empty(cls) -> "KeyMetrics":
        return cls()


class Explanation(BaseModel):
    """Short narrative built from the computed numbers."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    headline: str
    why: List[str] = Field(default_factory=list, description="At most three bullets")
    what_to_do_next: List[str] = Field(default_factory=list)


class ProviderContext(BaseModel):
    """Per-provider figures behind a specialty result."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    provider_id: str
    provider_name: Optional[str] = None
    specialty: str = ""
    market_specialty: Optional[str] = None
    match_status: MatchStatus = "Missing"
    included: bool = False
    manually_included: bool = False
    exclusion_reasons: List[str] = Field(default_factory=list)

    clinical_fte: float = 0.0
    clinical_base: float = 0.0
    effective_wrvus: float = 0.0
    wrvu_per_cfte: float = 0.0
    wrvu_percentile: Optional[float] = None
    wrvu_off_scale: bool = False

    baseline_tcc: float = 0.0
    baseline_tcc_per_cfte: float = 0.0
    baseline_tcc_percentile: Optional[float] = None
    baseline_gap: Optional[float] = None
    baseline_incentive: float = 0.0

    modeled_tcc: Optional[float] = None
    modeled_tcc_per_cfte: Optional[float] = None
    modeled_tcc_percentile: Optional[float] = None
    modeled_gap: Optional[float] = None
    modeled_incentive: Optional[float] = None
    tcc_off_scale: bool = False

    effective_rate: Optional[float] = Field(
        None, description="Modeled TCC per wRVU at the recommended CF"
    )
    effective_rate_percentile: Optional[float] = None
    effective_rate_off_scale: bool = False

    risk_level: Optional[RiskLevel] = None


class SpecialtyResult(BaseModel):
    """Recommendation and audit detail for one specialty."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    specialty: str
    included_count: int = 0
    excluded_count: int = 0

    current_cf: Optional[float] = None
    recommended_cf: Optional[float] = None
    cf_change_pct: float = 0.0
    current_cf_percentile: Optional[float] = None
    recommended_cf_percentile: Optional[float] = None
    cf_domain: Optional[Tuple[float, float]] = Field(
        None, description="Searched CF interval after bounds and caps"
    )
    search_state: SearchState = "not_started"
    search_iterations: int = 0
    objective_value: Optional[float] = None
    suggested_error_metric: Optional[str] = None

    baseline_metrics: KeyMetrics = Field(default_factory=KeyMetrics)
    modeled_metrics: KeyMetrics = Field(default_factory=KeyMetrics)

    spend_impact: float = Field(0.0, description="Sum of modeled minus baseline TCC")
    total_incentive: float = Field(0.0, description="wRVU incentive dollars at recommended CF")

    action: RecommendedAction = "NO_RECOMMENDATION"
    status: TrafficLight = "YELLOW"
    constraints_hit: List[str] = Field(default_factory=list)
    governance: GovernanceFlags = Field(default_factory=GovernanceFlags)
    policy_check: PolicyCheck = "ok"
    effective_rate_flag: bool = Field(
        False, description="A provider's effective $/wRVU is above the 90th or off-scale"
    )
    meets_alignment_target: bool = Field(
        False, description="Modeled gap within the governance alignment tolerance"
    )
    flags: List[OptimizerFlag] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)
    key_messages: List[str] = Field(default_factory=list)
    explanation: Explanation
    high_risk_count: int = 0
    medium_risk_count: int = 0

    providers: List[ProviderContext] = Field(default_factory=list)

    @property
    def infeasible(self) -> bool:
        return self.search_state == "infeasible"


class ExcludedProvider(BaseModel):
    """Exclusion audit row."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    provider_id: str
    provider_name: Optional[str] = None
    specialty: str = ""
    reasons: List[str] = Field(default_factory=list)


class ExclusionReasonCount(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    reason: str
    label: str
    count: int


class OptimizerRunSummary(BaseModel):
    """Roll-up across specialties."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    specialties_analyzed: int = 0
    providers_included: int = 0
    providers_excluded: int = 0
    infeasible_count: int = 0
    not_analyzable_count: int = Field(
        0, description="Included by the rules but without usable benchmarks; counted as excluded"
    )
    meeting_alignment_count: int = 0
    cf_above_policy_count: int = 0
    effective_rate_above_90_count: int = 0
    total_spend_impact: float = 0.0
    total_incentive: float = 0.0
    action_counts: Dict[str, int] = Field(default_factory=dict)
    status_counts: Dict[str, int] = Field(default_factory=dict)
    governance_counts: Dict[str, int] = Field(default_factory=dict)
    key_messages: List[str] = Field(default_factory=list)
    top_exclusion_reasons: List[ExclusionReasonCount] = Field(default_factory=list)


class OptimizerRunResult(BaseModel):
    """Complete optimizer output."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    summary: OptimizerRunSummary
    by_specialty: List[SpecialtyResult] = Field(default_factory=list)
    excluded: List[ExcludedProvider] = Field(default_factory=list)
    budget: Optional[BudgetReconciliation] = None

    def specialty(self, name: str) -> Optional[SpecialtyResult]:
        """Look up a specialty result by label (case-insensitive)."""
        wanted = name.strip().lower()
        for result in self.by_specialty:
            if result.specialty.strip().lower() == wanted:
                return result
        return None
