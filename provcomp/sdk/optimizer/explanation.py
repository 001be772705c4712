"""Plain-language explanation of a specialty recommendation.

Built only from computed numbers: a headline, up to three supporting
bullets and next-step suggestions.
"""

from typing import List, Optional

from ..interpolation import BenchmarkCurve
from .governance import TrafficLight
from .results import Explanation, KeyMetrics
from .settings import GovernanceSettings

MAX_BULLETS = 3


def ordinal(value: float) -> str:
    """47.6 -> '48th', 21 -> '21st', 12 -> '12th'."""
    n = int(round(value))
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def fmt_cf(value: float) -> str:
    return f"${value:,.2f}"


def _signed(value: float) -> str:
    return f"{value:+.0f}"


def market_position(cf: float, curve: Optional[BenchmarkCurve]) -> Optional[str]:
    """Where a CF sits relative to the published market points."""
    if curve is None:
        return None
    points = dict(curve.points)
    p25, p50, p75, p90 = (points.get(p) for p in (25.0, 50.0, 75.0, 90.0))
    if p25 is not None and cf <= p25:
        return f"below the 25th percentile ({fmt_cf(p25)})"
    if p25 is not None and p50 is not None and cf <= p50:
        return f"between the 25th ({fmt_cf(p25)}) and median ({fmt_cf(p50)})"
    if p50 is not None and p75 is not None and cf <= p75:
        return f"between the median ({fmt_cf(p50)}) and 75th ({fmt_cf(p75)})"
    if p75 is not None and p90 is not None and cf <= p90:
        return f"between the 75th ({fmt_cf(p75)}) and 90th ({fmt_cf(p90)})"
    if p90 is not None and cf > p90:
        return f"above the 90th percentile ({fmt_cf(p90)})"
    return None


def build_explanation(
    action: str,
    status: TrafficLight,
    metrics: KeyMetrics,
    constraints_hit: List[str],
    current_cf: Optional[float],
    recommended_cf: Optional[float],
    included_count: int,
    governance: GovernanceSettings,
    recommended_cf_percentile: Optional[float] = None,
    cf_curve: Optional[BenchmarkCurve] = None,
    infeasible: bool = False,
) -> Explanation:
    """Compose the explanation for one specialty result."""
    why: List[str] = []
    next_steps: List[str] = []
    prod_p = metrics.productivity_percentile
    pay_p = metrics.pay_percentile
    gap = metrics.gap
    hard_cap_hit = any(c.startswith("HARD_CAP") for c in constraints_hit)

    if action == "NO_RECOMMENDATION":
        headline = "No recommendation: insufficient data for a reliable analysis."
        why.append(f"Only {included_count} provider(s) had enough data to analyze.")
        why.append("Providers need clinical FTE, work RVUs and a matching market row.")
        next_steps.append("Review excluded providers and fix missing data where possible.")
        return Explanation(headline=headline, why=why, what_to_do_next=next_steps)

    current = current_cf or 0.0
    recommended = recommended_cf if recommended_cf is not None else current
    delta = recommended - current
    change_pct = delta / current * 100.0 if current > 0 else 0.0

    if infeasible:
        headline = f"Hold CF at {fmt_cf(current)}: no feasible CF within the configured bounds."
        why.append("Rate-change bounds and the recommended-percentile cap do not overlap.")
        why.append(f"Productivity is at the {ordinal(prod_p)} percentile; pay is at the {ordinal(pay_p)}.")
        next_steps.append("Widen the CF bounds or raise the maximum recommended percentile.")
        return Explanation(headline=headline, why=why, what_to_do_next=next_steps)

    if action == "HOLD":
        if status == "RED" and pay_p >= governance.fmv_red_flag_percentile:
            headline = (
                f"Hold CF at {fmt_cf(current)}: compensation exceeds the "
                f"{ordinal(governance.fmv_red_flag_percentile)} percentile, flagging FMV risk."
            )
            why.append(f"Compensation is at the {ordinal(pay_p)} percentile.")
            why.append(
                f"Productivity is at the {ordinal(prod_p)} percentile; the {_signed(gap)} point gap "
                "indicates pay exceeds output."
            )
            why.append("Raising CF would add above-market pay without incentive leverage.")
            next_steps.append("Investigate structural pay (base salary, guaranteed payments).")
            next_steps.append("Consider holding or reducing base pay before adjusting CF.")
        elif hard_cap_hit:
            headline = (
                f"Hold CF at {fmt_cf(current)}: group already above the "
                f"{ordinal(governance.hard_cap_percentile)} percentile policy cap."
            )
            why.append(f"Compensation is at the {ordinal(pay_p)} percentile.")
            why.append(f"Productivity is at the {ordinal(prod_p)} percentile (gap {_signed(gap)}).")
            next_steps.append("Review whether the policy cap fits this specialty.")
        else:
            headline = f"Hold CF at {fmt_cf(current)}: no material change needed."
            if abs(gap) <= governance.alignment_tolerance:
                why.append(
                    f"Productivity ({ordinal(prod_p)}) and compensation ({ordinal(pay_p)}) "
                    "percentiles are well aligned."
                )
            else:
                why.append(
                    f"Productivity is at the {ordinal(prod_p)} percentile; compensation is at "
                    f"the {ordinal(pay_p)}."
                )
                why.append("The best CF change is too small to matter.")
            if constraints_hit:
                why.append(f"Constraints: {', '.join(constraints_hit)}.")
        return Explanation(headline=headline, why=why[:MAX_BULLETS], what_to_do_next=next_steps)

    if action == "INCREASE":
        headline = (
            f"Increase CF from {fmt_cf(current)} to {fmt_cf(recommended)} "
            f"({change_pct:+.1f}%) to better align pay with productivity."
        )
        if gap > 0:
            why.append(
                f"Total pay is at the {ordinal(pay_p)} percentile against productivity at the "
                f"{ordinal(prod_p)}; the incentive piece is underpowered."
            )
        else:
            why.append(
                f"Productivity is at the {ordinal(prod_p)} percentile but pay is only at the "
                f"{ordinal(pay_p)}: underpaid relative to output."
            )
        if "MAX_CHANGE_BOUND" in constraints_hit:
            next_steps.append("Consider phasing a larger increase over two cycles.")
        next_steps.append("Review the provider drilldown for outliers before finalizing.")
    else:
        headline = (
            f"Decrease CF from {fmt_cf(current)} to {fmt_cf(recommended)} "
            f"({change_pct:+.1f}%) to bring pay closer to productivity."
        )
        why.append(
            f"Compensation is at the {ordinal(pay_p)} percentile while productivity is at "
            f"the {ordinal(prod_p)}."
        )
        if "MAX_CHANGE_BOUND" in constraints_hit:
            next_steps.append("Consider phasing the change across review cycles.")
        next_steps.append("Review the provider drilldown with division leadership.")

    why.append(f"A {fmt_cf(abs(delta))} CF change moves the group toward alignment.")
    position = market_position(recommended, cf_curve)
    if position and recommended_cf_percentile is not None:
        why.append(
            f"Recommended CF of {fmt_cf(recommended)} sits at the "
            f"{ordinal(recommended_cf_percentile)} market percentile, {position}."
        )
    return Explanation(headline=headline, why=why[:MAX_BULLETS], what_to_do_next=next_steps)
