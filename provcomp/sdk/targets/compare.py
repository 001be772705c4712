"""Compare two to four productivity target runs side by side."""

from typing import Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..numeric import mean_or_none
from .schemas import TARGET_BANDS, ProductivityTargetRunResult, TargetConfigError

MIN_COMPARE_SCENARIOS = 2
MAX_COMPARE_SCENARIOS = 4


class TargetScenarioRollup(BaseModel):
    """Run-level figures for one scenario."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    target_approaches: List[str] = Field(
        default_factory=list, description="Distinct approaches used across specialties"
    )
    target_percentiles: List[float] = Field(default_factory=list)
    total_planning_incentive: float = 0.0
    mean_percent_to_target: float = Field(0.0, description="Mean across scored providers")
    band_counts: Dict[str, int] = Field(
        default_factory=lambda: {band: 0 for band in TARGET_BANDS}
    )


class TargetScenarioCell(BaseModel):
    """One scenario's figures for one specialty (None when absent from that run)."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    group_target_wrvu: Optional[float] = None
    planning_incentive: Optional[float] = None
    mean_percent_to_target: Optional[float] = None
    band_counts: Dict[str, int] = Field(
        default_factory=lambda: {band: 0 for band in TARGET_BANDS}
    )


class TargetComparisonRow(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    specialty: str
    present_in: List[str] = Field(default_factory=list, description="Scenario names with this specialty")
    by_scenario: Dict[str, TargetScenarioCell] = Field(default_factory=dict)


class TargetComparison(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    scenarios: List[str]
    rollup: List[TargetScenarioRollup] = Field(default_factory=list)
    by_specialty: List[TargetComparisonRow] = Field(default_factory=list)

    def specialty(self, name: str) -> Optional[TargetComparisonRow]:
        wanted = name.strip().lower()
        return next((r for r in self.by_specialty if r.specialty.lower() == wanted), None)


def scenario_rollup(name: str, result: ProductivityTargetRunResult) -> TargetScenarioRollup:
    approaches = sorted({s.target_approach for s in result.by_specialty})
    percentiles = sorted(
        {s.target_percentile for s in result.by_specialty if s.target_percentile is not None}
    )
    counts = {band: 0 for band in TARGET_BANDS}
    for spec in result.by_specialty:
        for band, count in spec.summary.band_counts.items():
            counts[band] = counts.get(band, 0) + count
    scored = [
        p.percent_to_target
        for spec in result.by_specialty
        for p in spec.providers
        if p.included and p.percent_to_target is not None
    ]
    return TargetScenarioRollup(
        name=name,
        target_approaches=approaches,
        target_percentiles=percentiles,
        total_planning_incentive=result.total_planning_incentive,
        mean_percent_to_target=mean_or_none(scored) or 0.0,
        band_counts=counts,
    )


def compare_target_runs(results: Mapping[str, ProductivityTargetRunResult]) -> TargetComparison:
    """Compare named target runs, in the order given.

    Args:
        results: Scenario name -> run result (two to four entries)

    Returns:
        TargetComparison with a row per specialty present in any run

    Raises:
        TargetConfigError: for fewer than two or more than four scenarios
    """
    if not MIN_COMPARE_SCENARIOS <= len(results) <= MAX_COMPARE_SCENARIOS:
        raise TargetConfigError(
            [f"Compare {MIN_COMPARE_SCENARIOS} to {MAX_COMPARE_SCENARIOS} scenarios, got {len(results)}"]
        )
    names = list(results)

    specialties = sorted(
        {s.specialty for result in results.values() for s in result.by_specialty},
        key=lambda s: (s.lower(), s),
    )
    rows: List[TargetComparisonRow] = []
    for specialty in specialties:
        cells: Dict[str, TargetScenarioCell] = {}
        present = []
        for name in names:
            spec = results[name].specialty(specialty)
            if spec is None:
                cells[name] = TargetScenarioCell()
                continue
            present.append(name)
            cells[name] = TargetScenarioCell(
                group_target_wrvu=spec.group_target_wrvu,
                planning_incentive=spec.total_planning_incentive,
                mean_percent_to_target=spec.summary.mean_percent_to_target,
                band_counts=dict(spec.summary.band_counts),
            )
        rows.append(TargetComparisonRow(specialty=specialty, present_in=present, by_scenario=cells))

    return TargetComparison(
        scenarios=names,
        rollup=[scenario_rollup(name, results[name]) for name in names],
        by_specialty=rows,
    )
