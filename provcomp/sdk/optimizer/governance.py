"""Governance checks on specialty outputs.

Independent views:
- evaluate_governance: boolean policy flags from modeled outputs
  (underpay risk, CF below 25th, within policy band, FMV review suggested)
- evaluate_status: GREEN/YELLOW/RED traffic light plus the constraint codes
  that drove it, from baseline key metrics and the recommended change
- policy_check: where the recommended CF sits against the CF policy threshold
- effective_rate_flag: any provider whose modeled $/wRVU is above the 90th
  or off the published CF scale
"""

from typing import Iterable, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..interpolation import PercentileResult
from .settings import CFBounds, GovernanceSettings


TrafficLight = Literal["GREEN", "YELLOW", "RED"]
PolicyCheck = Literal["ok", "above_policy", "above_75", "above_90"]

UNDERPAY_GAP = -15.0
FMV_GAP = 15.0
POLICY_BAND = (25.0, 75.0)
FMV_PAY_PERCENTILE = 75.0
CF_FLOOR_PERCENTILE = 25.0
EFFECTIVE_RATE_CEILING = 90.0

GAP_RED = 10.0
GAP_YELLOW = 5.0
_BOUND_EPSILON = 1e-6


class GovernanceFlags(BaseModel):
    """Independent policy flags for one specialty."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    underpay_risk: bool = Field(False, description="Modeled gap below -15")
    cf_below_25: bool = Field(False, description="Current CF under the market 25th")
    cf_below_25_resolved: bool = Field(
        False, description="Modeled CF reaches the 25th while current is below"
    )
    within_policy_band: bool = Field(
        False, description="Modeled pay and modeled CF percentiles both in [25, 75]"
    )
    fmv_check_suggested: bool = Field(
        False, description="Modeled pay above 75th or gap above +15"
    )

    @property
    def is_clean(self) -> bool:
        """True when no risk flag is raised."""
        return not (self.underpay_risk or self.cf_below_25 or self.fmv_check_suggested)

    def messages(self) -> List[str]:
        msgs = []
        if self.underpay_risk:
            msgs.append("Underpay risk: pay percentile trails productivity by more than 15 points.")
        if self.cf_below_25:
            if self.cf_below_25_resolved:
                msgs.append("Current CF is below the market 25th; the modeled CF reaches the 25th.")
            else:
                msgs.append("CF is below the market 25th percentile.")
        if self.within_policy_band:
            msgs.append("Within policy band (25th-75th) for pay and CF.")
        if self.fmv_check_suggested:
            msgs.append("FMV review suggested: pay above 75th or well above productivity.")
        return msgs


def _in_band(value: Optional[float]) -> bool:
    return value is not None and POLICY_BAND[0] <= value <= POLICY_BAND[1]


def evaluate_governance(
    gap: float,
    modeled_pay_percentile: float,
    current_cf_percentile: Optional[float] = None,
    modeled_cf_percentile: Optional[float] = None,
) -> GovernanceFlags:
    """Derive policy flags from a specialty's modeled outputs.

    Args:
        gap: Modeled pay percentile minus productivity percentile
        modeled_pay_percentile: Mean modeled TCC percentile
        current_cf_percentile: Market percentile of the current CF (None if unknown)
        modeled_cf_percentile: Market percentile of the recommended CF (None if unknown)
    """
    cf_below = current_cf_percentile is not None and current_cf_percentile < CF_FLOOR_PERCENTILE
    return GovernanceFlags(
        underpay_risk=gap < UNDERPAY_GAP,
        cf_below_25=cf_below,
        cf_below_25_resolved=(
            cf_below
            and modeled_cf_percentile is not None
            and modeled_cf_percentile >= CF_FLOOR_PERCENTILE
        ),
        within_policy_band=_in_band(modeled_pay_percentile) and _in_band(modeled_cf_percentile),
        fmv_check_suggested=modeled_pay_percentile > FMV_PAY_PERCENTILE or gap > FMV_GAP,
    )


def _at_change_bound(cf_change_pct: float, action: str, bounds: CFBounds) -> bool:
    if action == "INCREASE":
        return cf_change_pct >= bounds.max_change_pct - _BOUND_EPSILON
    if action == "DECREASE":
        return -cf_change_pct >= bounds.min_change_pct - _BOUND_EPSILON
    return False


def evaluate_status(
    pay_percentile: float,
    gap: float,
    governance: GovernanceSettings,
    cf_change_pct: float = 0.0,
    action: str = "HOLD",
    cf_bounds: Optional[CFBounds] = None,
) -> Tuple[TrafficLight, List[str]]:
    """Traffic-light status and the constraint codes that set it.

    MAX_CHANGE_BOUND is reported when the recommended move reaches the
    configured rate-change bound in its direction (cf_bounds, defaults
    when omitted).
    """
    bounds = cf_bounds or CFBounds()
    constraints: List[str] = []
    status: TrafficLight = "GREEN"

    if pay_percentile >= governance.fmv_red_flag_percentile:
        status = "RED"
        constraints.append(f"FMV_OVER_{governance.fmv_red_flag_percentile:g}")

    if gap >= GAP_RED:
        status = "RED"
        constraints.append("GAP_OVER_10")

    if pay_percentile > governance.hard_cap_percentile:
        if status != "RED":
            status = "YELLOW"
        constraints.append(f"HARD_CAP_{governance.hard_cap_percentile:g}")
        if pay_percentile <= governance.soft_cap_percentile and status != "RED":
            constraints.append(f"SOFT_CAP_{governance.soft_cap_percentile:g}")

    if GAP_YELLOW <= gap < GAP_RED and status == "GREEN":
        status = "YELLOW"
        constraints.append("GAP_5_TO_10")

    if _at_change_bound(cf_change_pct, action, bounds):
        constraints.append("MAX_CHANGE_BOUND")

    return status, constraints


def policy_check(cf_percentile: Optional[float], threshold_percentile: float = 50.0) -> PolicyCheck:
    """Classify a CF market percentile against the CF policy threshold."""
    if cf_percentile is None:
        return "ok"
    if cf_percentile > 90:
        return "above_90"
    if cf_percentile > 75:
        return "above_75"
    if cf_percentile > threshold_percentile:
        return "above_policy"
    return "ok"


def effective_rate_flag(rates: Iterable[PercentileResult]) -> bool:
    """True when any provider's effective $/wRVU is above the 90th or beyond the published range."""
    return any(
        r.available and (r.percentile > EFFECTIVE_RATE_CEILING or r.above_range) for r in rates
    )
