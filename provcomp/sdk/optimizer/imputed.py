"""Imputed $/wRVU versus market, by specialty.

A read-only view with no search: each eligible provider's TCC at the
current CF is divided by wRVUs, and the specialty median is placed on the
market's TCC/wRVU ratio curve. Providers without a current CF are modeled
at the market 50th. Eligibility and scoping match the optimizer.
"""

import logging
from typing import List, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from ..interpolation import BenchmarkCurve
from ..numeric import is_finite, mean_or_none, median_or_none, safe_div
from ..schemas import BENCHMARK_PERCENTILES, MarketRecord, ProviderRecord
from .engine import PreparedRun, SpecialtyGroup, prepare_run
from .settings import OptimizerSettings

logger = logging.getLogger(__name__)


class ImputedVsMarketRow(BaseModel):
    """Median effective $/wRVU for one specialty against the market."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    specialty: str
    provider_count: int = 0
    median_imputed_per_wrvu: float = Field(0.0, description="Median TCC / wRVU")
    median_current_cf: float = Field(0.0, description="Median CF used for the incentive")

    market_per_wrvu_25: Optional[float] = Field(None, description="Market TCC_25 / wRVU_25")
    market_per_wrvu_50: Optional[float] = None
    market_per_wrvu_75: Optional[float] = None
    market_per_wrvu_90: Optional[float] = None

    imputed_percentile: Optional[float] = Field(
        None, description="Market percentile of the median imputed $/wRVU"
    )
    below_range: bool = False
    above_range: bool = False

    mean_tcc_percentile: Optional[float] = None
    mean_wrvu_percentile: Optional[float] = None

    market_cf_25: Optional[float] = None
    market_cf_50: Optional[float] = None
    market_cf_75: Optional[float] = None
    market_cf_90: Optional[float] = None


class ImputedVsMarketResult(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    rows: List[ImputedVsMarketRow] = Field(default_factory=list)
    providers_used: int = 0

    def specialty(self, name: str) -> Optional[ImputedVsMarketRow]:
        wanted = name.strip().lower()
        return next((r for r in self.rows if r.specialty.lower() == wanted), None)


def market_per_wrvu(row: MarketRecord) -> List[Optional[float]]:
    """Market TCC / wRVU at each published percentile (None when either is missing)."""
    ratios = []
    for (_, tcc), (_, wrvu) in zip(row.tcc.as_pairs(), row.wrvu.as_pairs()):
        if is_finite(tcc) and is_finite(wrvu) and wrvu > 0:
            ratios.append(tcc / wrvu)
        else:
            ratios.append(None)
    return ratios


def imputed_row(group: SpecialtyGroup, prepared: PreparedRun) -> Optional[ImputedVsMarketRow]:
    """Specialty row, or None when no provider yields a positive $/wRVU."""
    row = group.market_row
    imputed, current_cfs, tcc_pcts, wrvu_pcts = [], [], [], []
    for member in group.cohort:
        current_cf = member.provider.current_cf
        if not is_finite(current_cf) or current_cf <= 0:
            current_cf = row.cf_50
        if not is_finite(current_cf):
            current_cf = 0.0
        tcc = member.modeled_tcc(prepared.config, current_cf)
        rate = safe_div(tcc, member.wrvus)
        if rate <= 0:
            continue
        imputed.append(rate)
        current_cfs.append(current_cf)
        tcc_pcts.append(member.pay_percentile(tcc).percentile)
        wrvu_pcts.append(member.wrvu_pct.percentile)

    if not imputed:
        return None

    median_rate = median_or_none(imputed)
    ratios = market_per_wrvu(row)
    curve = BenchmarkCurve.from_points(list(zip(BENCHMARK_PERCENTILES, ratios)))
    position = curve.percentile_of(median_rate) if curve is not None else None

    return ImputedVsMarketRow(
        specialty=group.specialty,
        provider_count=len(imputed),
        median_imputed_per_wrvu=median_rate,
        median_current_cf=median_or_none(current_cfs) or 0.0,
        market_per_wrvu_25=ratios[0],
        market_per_wrvu_50=ratios[1],
        market_per_wrvu_75=ratios[2],
        market_per_wrvu_90=ratios[3],
        imputed_percentile=position.percentile if position is not None else None,
        below_range=position.below_range if position is not None else False,
        above_range=position.above_range if position is not None else False,
        mean_tcc_percentile=mean_or_none(tcc_pcts),
        mean_wrvu_percentile=mean_or_none(wrvu_pcts),
        market_cf_25=row.cf_25,
        market_cf_50=row.cf_50,
        market_cf_75=row.cf_75,
        market_cf_90=row.cf_90,
    )


def compute_imputed_vs_market(
    providers: Sequence[ProviderRecord],
    market_rows: Sequence[MarketRecord],
    settings: Optional[OptimizerSettings] = None,
    synonym_map: Optional[Mapping[str, str]] = None,
    specialty_filter: Optional[str] = None,
) -> ImputedVsMarketResult:
    """Median imputed $/wRVU by specialty against market TCC/wRVU ratios.

    Returns:
        ImputedVsMarketResult with rows sorted by specialty

    Raises:
        OptimizerConfigError: if settings fail validation
    """
    prepared = prepare_run(providers, market_rows, settings, synonym_map, specialty_filter)
    rows = []
    for group in prepared.groups:
        result = imputed_row(group, prepared)
        if result is None:
            logger.debug(f"{group.specialty}: no provider with a usable $/wRVU")
            continue
        rows.append(result)
    return ImputedVsMarketResult(rows=rows, providers_used=sum(r.provider_count for r in rows))
