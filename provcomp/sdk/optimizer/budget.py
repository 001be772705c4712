"""Budget reconciliation.

Compares aggregate modeled incentive spend against an optional cap. This is
a read-only report: specialty recommendations are never adjusted here.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..numeric import num


BudgetStatus = Literal["over", "under", "within"]

# Differences smaller than this (dollars) count as on budget.
BUDGET_TOLERANCE_DOLLARS = 1.0


class BudgetReconciliation(BaseModel):
    """Outcome of comparing incentive spend to the cap."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    status: BudgetStatus = Field(..., description="over, under or within the cap")
    total_incentive: float = Field(..., description="Aggregate modeled incentive dollars")
    cap_dollars: float = Field(..., description="Budget cap")
    delta_dollars: float = Field(..., description="total_incentive - cap_dollars")

    @property
    def utilization_pct(self) -> Optional[float]:
        if self.cap_dollars <= 0:
            return None
        return self.total_incentive / self.cap_dollars * 100.0


def reconcile_budget(
    total_incentive: float,
    cap_dollars: float,
    tolerance: float = BUDGET_TOLERANCE_DOLLARS,
) -> BudgetReconciliation:
    """Compare total incentive dollars with a cap.

    Args:
        total_incentive: Aggregate incentive at recommended rates
        cap_dollars: Budget cap in dollars
        tolerance: Absolute dollars treated as 'within'

    Returns:
        BudgetReconciliation with delta = total - cap
    """
    total = num(total_incentive)
    cap = num(cap_dollars)
    delta = total - cap
    if abs(delta) <= tolerance:
        status = "within"
    elif delta > 0:
        status = "over"
    else:
        status = "under"
    return BudgetReconciliation(
        status=status, total_incentive=total, cap_dollars=cap, delta_dollars=delta
    )
