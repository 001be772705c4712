"""Compare two optimizer runs.

Works from saved results (plus, optionally, the settings each was run
with): scope and settings differences, a roll-up of spend and alignment,
a row per specialty present in either run, and a short narrative.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..numeric import mean_or_none
from .results import OptimizerRunResult, SpecialtyResult
from .settings import OptimizerSettings


Presence = Literal["both", "a_only", "b_only"]

# Percentile differences at or below this are not called out
NARRATIVE_PERCENTILE_THRESHOLD = 0.5


class SettingDifference(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    key: str = Field(..., description="Dotted settings path")
    value_a: Any = None
    value_b: Any = None


class ComparisonRollup(BaseModel):
    """Run-level figures side by side."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    providers_included_a: int = 0
    providers_included_b: int = 0
    providers_excluded_a: int = 0
    providers_excluded_b: int = 0
    spend_impact_a: float = 0.0
    spend_impact_b: float = 0.0
    spend_impact_delta: float = 0.0
    spend_impact_delta_pct: Optional[float] = Field(
        None, description="Delta as percent of |A|; None when A is 0"
    )
    incentive_a: float = 0.0
    incentive_b: float = 0.0
    incentive_delta: float = 0.0
    mean_tcc_percentile_a: float = 0.0
    mean_tcc_percentile_b: float = 0.0
    mean_wrvu_percentile_a: float = 0.0
    mean_wrvu_percentile_b: float = 0.0
    meeting_alignment_a: int = 0
    meeting_alignment_b: int = 0
    cf_above_policy_a: int = 0
    cf_above_policy_b: int = 0
    effective_rate_above_90_a: int = 0
    effective_rate_above_90_b: int = 0


class SpecialtyComparisonRow(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    specialty: str
    presence: Presence
    recommended_cf_a: Optional[float] = None
    recommended_cf_b: Optional[float] = None
    cf_delta_pct: Optional[float] = None
    spend_impact_a: Optional[float] = None
    spend_impact_b: Optional[float] = None
    spend_impact_delta: Optional[float] = None
    tcc_percentile_a: Optional[float] = None
    tcc_percentile_b: Optional[float] = None
    wrvu_percentile_a: Optional[float] = None
    wrvu_percentile_b: Optional[float] = None


class OptimizerComparison(BaseModel):
    """Side-by-side view of two optimizer runs."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name_a: str
    name_b: str
    settings_differences: List[SettingDifference] = Field(default_factory=list)
    rollup: ComparisonRollup
    by_specialty: List[SpecialtyComparisonRow] = Field(default_factory=list)
    narrative: List[str] = Field(default_factory=list)

    def specialty(self, name: str) -> Optional[SpecialtyComparisonRow]:
        wanted = name.strip().lower()
        return next((r for r in self.by_specialty if r.specialty.lower() == wanted), None)


def _flatten(data: Any, prefix: str = "") -> Dict[str, Any]:
    if isinstance(data, dict):
        flat: Dict[str, Any] = {}
        for key, value in data.items():
            flat.update(_flatten(value, f"{prefix}.{key}" if prefix else str(key)))
        return flat
    return {prefix: data}


def settings_differences(a: OptimizerSettings, b: OptimizerSettings) -> List[SettingDifference]:
    """Every leaf setting whose value differs, sorted by key."""
    flat_a = _flatten(a.model_dump(mode="json"))
    flat_b = _flatten(b.model_dump(mode="json"))
    return [
        SettingDifference(key=key, value_a=flat_a.get(key), value_b=flat_b.get(key))
        for key in sorted(set(flat_a) | set(flat_b))
        if flat_a.get(key) != flat_b.get(key)
    ]


def _mean_percentiles(result: OptimizerRunResult):
    """Unweighted means of the specialties' modeled pay and productivity percentiles."""
    metrics = [s.modeled_metrics for s in result.by_specialty]
    return (
        mean_or_none(m.pay_percentile for m in metrics) or 0.0,
        mean_or_none(m.productivity_percentile for m in metrics) or 0.0,
    )


def build_rollup(a: OptimizerRunResult, b: OptimizerRunResult) -> ComparisonRollup:
    sa, sb = a.summary, b.summary
    delta = sb.total_spend_impact - sa.total_spend_impact
    tcc_a, wrvu_a = _mean_percentiles(a)
    tcc_b, wrvu_b = _mean_percentiles(b)
    return ComparisonRollup(
        providers_included_a=sa.providers_included,
        providers_included_b=sb.providers_included,
        providers_excluded_a=sa.providers_excluded,
        providers_excluded_b=sb.providers_excluded,
        spend_impact_a=sa.total_spend_impact,
        spend_impact_b=sb.total_spend_impact,
        spend_impact_delta=delta,
        spend_impact_delta_pct=(
            delta / abs(sa.total_spend_impact) * 100.0 if sa.total_spend_impact != 0 else None
        ),
        incentive_a=sa.total_incentive,
        incentive_b=sb.total_incentive,
        incentive_delta=sb.total_incentive - sa.total_incentive,
        mean_tcc_percentile_a=tcc_a,
        mean_tcc_percentile_b=tcc_b,
        mean_wrvu_percentile_a=wrvu_a,
        mean_wrvu_percentile_b=wrvu_b,
        meeting_alignment_a=sa.meeting_alignment_count,
        meeting_alignment_b=sb.meeting_alignment_count,
        cf_above_policy_a=sa.cf_above_policy_count,
        cf_above_policy_b=sb.cf_above_policy_count,
        effective_rate_above_90_a=sa.effective_rate_above_90_count,
        effective_rate_above_90_b=sb.effective_rate_above_90_count,
    )


def _specialty_row(
    specialty: str, a: Optional[SpecialtyResult], b: Optional[SpecialtyResult]
) -> SpecialtyComparisonRow:
    presence = "both" if a and b else ("a_only" if a else "b_only")
    cf_a = a.recommended_cf if a else None
    cf_b = b.recommended_cf if b else None
    cf_delta = None
    if cf_a is not None and cf_b is not None and cf_a != 0:
        cf_delta = (cf_b - cf_a) / cf_a * 100.0
    spend_a = a.spend_impact if a else None
    spend_b = b.spend_impact if b else None
    return SpecialtyComparisonRow(
        specialty=specialty,
        presence=presence,
        recommended_cf_a=cf_a,
        recommended_cf_b=cf_b,
        cf_delta_pct=cf_delta,
        spend_impact_a=spend_a,
        spend_impact_b=spend_b,
        spend_impact_delta=spend_b - spend_a if a and b else None,
        tcc_percentile_a=a.modeled_metrics.pay_percentile if a else None,
        tcc_percentile_b=b.modeled_metrics.pay_percentile if b else None,
        wrvu_percentile_a=a.modeled_metrics.productivity_percentile if a else None,
        wrvu_percentile_b=b.modeled_metrics.productivity_percentile if b else None,
    )


def build_narrative(name_a: str, name_b: str, rollup: ComparisonRollup) -> List[str]:
    """Plain-language bullets about what changed between the runs."""
    lines = []
    delta = rollup.spend_impact_delta
    if delta != 0:
        direction = "increases" if delta > 0 else "reduces"
        pct = ""
        if rollup.spend_impact_delta_pct is not None:
            pct = f" ({rollup.spend_impact_delta_pct:+.1f}% vs {name_a})"
        lines.append(
            f"{name_b} {direction} modeled spend impact by ${abs(delta):,.0f} compared to {name_a}{pct}."
        )
    else:
        lines.append("Modeled spend impact is the same in both runs.")

    wrvu_diff = rollup.mean_wrvu_percentile_b - rollup.mean_wrvu_percentile_a
    tcc_diff = rollup.mean_tcc_percentile_b - rollup.mean_tcc_percentile_a
    if abs(wrvu_diff) > NARRATIVE_PERCENTILE_THRESHOLD:
        lines.append(
            f"Mean wRVU percentile is {rollup.mean_wrvu_percentile_b:.1f} in {name_b} "
            f"vs {rollup.mean_wrvu_percentile_a:.1f} in {name_a}."
        )
    if abs(tcc_diff) > NARRATIVE_PERCENTILE_THRESHOLD:
        lines.append(
            f"Mean TCC percentile is {rollup.mean_tcc_percentile_b:.1f} in {name_b} "
            f"vs {rollup.mean_tcc_percentile_a:.1f} in {name_a}."
        )

    if rollup.meeting_alignment_a != rollup.meeting_alignment_b:
        lines.append(
            f"Specialties meeting the alignment target: {name_a} {rollup.meeting_alignment_a}, "
            f"{name_b} {rollup.meeting_alignment_b}."
        )
    if (
        rollup.cf_above_policy_a != rollup.cf_above_policy_b
        or rollup.effective_rate_above_90_a != rollup.effective_rate_above_90_b
    ):
        lines.append(
            f"CF above policy: {name_a} {rollup.cf_above_policy_a}, {name_b} {rollup.cf_above_policy_b}. "
            f"Effective rate above 90th: {name_a} {rollup.effective_rate_above_90_a}, "
            f"{name_b} {rollup.effective_rate_above_90_b}."
        )

    if (
        rollup.providers_included_a != rollup.providers_included_b
        or rollup.providers_excluded_a != rollup.providers_excluded_b
    ):
        lines.append(
            f"Scope differs: {name_a} included {rollup.providers_included_a} "
            f"({rollup.providers_excluded_a} excluded); {name_b} included "
            f"{rollup.providers_included_b} ({rollup.providers_excluded_b} excluded)."
        )
    return lines


def compare_optimizer_runs(
    result_a: OptimizerRunResult,
    result_b: OptimizerRunResult,
    name_a: str = "A",
    name_b: str = "B",
    settings_a: Optional[OptimizerSettings] = None,
    settings_b: Optional[OptimizerSettings] = None,
) -> OptimizerComparison:
    """Side-by-side comparison of two optimizer runs.

    Args:
        result_a: Baseline run
        result_b: Run compared against result_a
        name_a: Label for result_a in the narrative
        name_b: Label for result_b in the narrative
        settings_a: Settings behind result_a (settings diff needs both)
        settings_b: Settings behind result_b

    Returns:
        OptimizerComparison with specialty rows sorted by name
    """
    by_a = {s.specialty: s for s in result_a.by_specialty}
    by_b = {s.specialty: s for s in result_b.by_specialty}
    names = sorted(set(by_a) | set(by_b), key=lambda s: (s.lower(), s))
    rows = [_specialty_row(name, by_a.get(name), by_b.get(name)) for name in names]

    diffs = []
    if settings_a is not None and settings_b is not None:
        diffs = settings_differences(settings_a, settings_b)

    rollup = build_rollup(result_a, result_b)
    return OptimizerComparison(
        name_a=name_a,
        name_b=name_b,
        settings_differences=diffs,
        rollup=rollup,
        by_specialty=rows,
        narrative=build_narrative(name_a, name_b, rollup),
    )
