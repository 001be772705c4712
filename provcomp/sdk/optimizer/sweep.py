"""CF percentile sweep: modeled outcomes at fixed market CF percentiles.

No search is performed. For each specialty and each requested percentile
the CF is read from the market curve and the cohort is re-composed at that
rate, answering "what happens at the 30th vs the 50th" directly.
"""

import logging
import math
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from ..numeric import is_finite, mean_or_none
from ..schemas import MarketRecord, ProviderRecord
from .compensation import wrvu_incentive
from .engine import CancellationToken, PreparedRun, SpecialtyGroup, SpecialtyProgress, prepare_run
from .settings import OptimizerSettings

logger = logging.getLogger(__name__)


class SweepConfigError(ValueError):
    """Raised when the sweep request itself is unusable."""


class SweepRow(BaseModel):
    """Modeled outcome at one CF percentile."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    cf_percentile: float
    cf_dollars: float
    mean_modeled_pay_percentile: float = 0.0
    mean_productivity_percentile: float = 0.0
    gap: float = 0.0
    total_incentive: float = 0.0
    spend_impact: float = Field(0.0, description="Modeled minus baseline TCC")


class SpecialtySweep(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    specialty: str
    included_count: int = 0
    rows: List[SweepRow] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)


class SweepResult(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    percentiles: List[float]
    by_specialty: List[SpecialtySweep] = Field(default_factory=list)

    def specialty(self, name: str) -> Optional[SpecialtySweep]:
        wanted = name.strip().lower()
        return next((s for s in self.by_specialty if s.specialty.lower() == wanted), None)


def validate_percentiles(percentiles: Sequence[float]) -> List[float]:
    """Reject an empty or non-finite percentile list.

    Raises:
        SweepConfigError: if no usable percentiles were requested
    """
    if not percentiles:
        raise SweepConfigError("At least one CF percentile is required for a sweep")
    bad = [p for p in percentiles if not is_finite(p) or not 0 <= p <= 100]
    if bad:
        raise SweepConfigError(f"CF percentiles must be finite values in [0, 100], got {bad}")
    return [float(p) for p in percentiles]


def sweep_specialty(group: SpecialtyGroup, prepared: PreparedRun, percentiles: Sequence[float]) -> SpecialtySweep:
    cohort = group.cohort
    cf_curve = group.cf_curve
    if cf_curve is None:
        logger.warning(f"{group.specialty}: no usable market CF points, sweep skipped")
        return SpecialtySweep(
            specialty=group.specialty,
            included_count=len(cohort),
            notes=["Market CF benchmarks unavailable."],
        )

    config = prepared.config
    include_incentive = config.component("work_rvu_incentive").included
    baseline_total = math.fsum(m.baseline_tcc for m in cohort)
    mean_prod = mean_or_none(m.wrvu_pct.percentile for m in cohort) or 0.0

    rows = []
    floored = False
    for pct in percentiles:
        raw_cf = cf_curve.value_at(pct)
        # extrapolation below the 25th can go negative
        cf = max(0.0, raw_cf)
        floored = floored or raw_cf < 0
        tccs = [m.modeled_tcc(config, cf) for m in cohort]
        mean_pay = mean_or_none(m.pay_percentile(t).percentile for m, t in zip(cohort, tccs)) or 0.0
        incentive = (
            math.fsum(wrvu_incentive(m.base, m.wrvus, cf) for m in cohort)
            if include_incentive
            else 0.0
        )
        rows.append(
            SweepRow(
                cf_percentile=pct,
                cf_dollars=cf,
                mean_modeled_pay_percentile=mean_pay,
                mean_productivity_percentile=mean_prod,
                gap=mean_pay - mean_prod,
                total_incentive=incentive,
                spend_impact=math.fsum(tccs) - baseline_total,
            )
        )
    notes = [] if cohort else ["No included providers for this specialty."]
    if floored:
        notes.append("CF floored at $0 below the published range.")
    return SpecialtySweep(specialty=group.specialty, included_count=len(cohort), rows=rows, notes=notes)


def iter_sweep(prepared: PreparedRun, percentiles: Sequence[float]) -> Iterator[SpecialtyProgress]:
    """Yield one SpecialtyProgress (result: SpecialtySweep) per specialty."""
    percentiles = validate_percentiles(percentiles)
    total = len(prepared.groups)
    for index, group in enumerate(prepared.groups):
        yield SpecialtyProgress(
            specialty_index=index,
            total_specialties=total,
            specialty_name=group.specialty,
            result=sweep_specialty(group, prepared, percentiles),
        )


def run_sweep(
    providers: Sequence[ProviderRecord],
    market_rows: Sequence[MarketRecord],
    settings: Optional[OptimizerSettings],
    percentiles: Sequence[float],
    synonym_map: Optional[Mapping[str, str]] = None,
    specialty_filter: Optional[str] = None,
    on_progress: Optional[Callable[[SpecialtyProgress], None]] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> Optional[SweepResult]:
    """Evaluate every specialty at each requested CF percentile.

    Returns:
        SweepResult with rows in the requested percentile order, or None if cancelled

    Raises:
        SweepConfigError: if percentiles is empty or contains invalid values
        OptimizerConfigError: if settings fail validation
    """
    percentiles = validate_percentiles(percentiles)
    prepared = prepare_run(providers, market_rows, settings, synonym_map, specialty_filter)
    if cancel_token is not None and cancel_token.cancelled:
        return None

    by_specialty: Dict[str, SpecialtySweep] = {}
    for progress in iter_sweep(prepared, percentiles):
        by_specialty[progress.specialty_name] = progress.result
        if on_progress is not None:
            on_progress(progress)
        if cancel_token is not None and cancel_token.cancelled:
            return None
    return SweepResult(percentiles=percentiles, by_specialty=list(by_specialty.values()))
