"""Eligibility filtering.

Every provider is matched to a market row and checked against the exclusion
rules. Reasons are evaluated independently and accumulated; a provider with
no reasons is included. A provider listed in manual_include_ids is included
despite its reasons unless one of them is a hard exclusion (no clinical FTE,
no market match, unusable benchmarks): those leave nothing to analyze.
The partition is complete: each input provider lands in exactly one of
included/excluded.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Literal, Mapping, Optional, Sequence, Tuple

from ..interpolation import BenchmarkCurve
from ..numeric import safe_div
from ..schemas import MarketRecord, ProviderRecord
from ..specialty_match import MarketMatch, match_market_row
from .compensation import clinical_fte, effective_wrvus
from .settings import ExclusionRules

logger = logging.getLogger(__name__)


ExclusionReason = Literal[
    "no_clinical_fte",
    "below_min_clinical_fte",
    "below_min_wrvu_per_cfte",
    "excluded_provider_type",
    "missing_market",
    "insufficient_benchmarks",
    "loa_flagged",
    "productivity_model_filtered",
    "manual_exclude",
    "not_analyzable",
]

EXCLUSION_REASON_LABELS: Dict[str, str] = {
    "no_clinical_fte": "No clinical FTE",
    "below_min_clinical_fte": "Below minimum clinical FTE",
    "below_min_wrvu_per_cfte": "Below minimum productivity per clinical FTE",
    "excluded_provider_type": "Excluded provider type",
    "missing_market": "No market match",
    "insufficient_benchmarks": "Insufficient market benchmark points",
    "loa_flagged": "Leave of absence",
    "productivity_model_filtered": "Compensation model not in scope",
    "manual_exclude": "Manually excluded",
    "not_analyzable": "Benchmarks could not be evaluated",
}

# Reasons a manual include cannot override
HARD_EXCLUSION_REASONS = frozenset({"no_clinical_fte", "missing_market", "insufficient_benchmarks"})

TOP_REASONS_LIMIT = 10


@dataclass(frozen=True)
class ProviderEligibility:
    """Eligibility decision for one provider."""

    provider: ProviderRecord
    match: MarketMatch
    reasons: Tuple[str, ...] = ()
    manually_included: bool = False

    @property
    def hard_excluded(self) -> bool:
        return not HARD_EXCLUSION_REASONS.isdisjoint(self.reasons)

    @property
    def included(self) -> bool:
        if not self.reasons:
            return True
        return self.manually_included and not self.hard_excluded

    @property
    def reason_labels(self) -> List[str]:
        return [EXCLUSION_REASON_LABELS.get(r, r) for r in self.reasons]


@dataclass(frozen=True)
class EligibilityResult:
    """Partition of the roster into included and excluded providers."""

    included: List[ProviderEligibility] = field(default_factory=list)
    excluded: List[ProviderEligibility] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.included) + len(self.excluded)

    def all(self) -> List[ProviderEligibility]:
        return self.included + self.excluded


def _has_usable_benchmarks(row: MarketRecord) -> bool:
    return (
        BenchmarkCurve.from_points(row.tcc) is not None
        and BenchmarkCurve.from_points(row.wrvu) is not None
    )


def exclusion_reasons(
    provider: ProviderRecord,
    match: MarketMatch,
    rules: ExclusionRules,
    wrvu_growth_pct: float = 0.0,
) -> List[str]:
    """All exclusion reasons that apply to one provider, in a stable order."""
    reasons = []
    cfte = clinical_fte(provider)

    if cfte <= 0:
        reasons.append("no_clinical_fte")
    elif cfte < rules.min_clinical_fte:
        reasons.append("below_min_clinical_fte")

    # 0 when cFTE is 0, so any positive threshold excludes without dividing by zero
    wrvu_per_cfte = safe_div(effective_wrvus(provider, wrvu_growth_pct), cfte)
    if rules.min_wrvu_per_cfte > 0 and wrvu_per_cfte < rules.min_wrvu_per_cfte:
        reasons.append("below_min_wrvu_per_cfte")

    excluded_types = {t.strip().lower() for t in rules.excluded_provider_types}
    if provider.provider_type and provider.provider_type.strip().lower() in excluded_types:
        reasons.append("excluded_provider_type")

    if match.market_row is None:
        reasons.append("missing_market")
    elif not _has_usable_benchmarks(match.market_row):
        reasons.append("insufficient_benchmarks")

    if rules.exclude_loa and provider.loa:
        reasons.append("loa_flagged")

    if (
        rules.productivity_model != "all"
        and provider.productivity_model is not None
        and provider.productivity_model != rules.productivity_model
    ):
        reasons.append("productivity_model_filtered")

    if provider.key and provider.key in set(rules.manual_exclude_ids):
        reasons.append("manual_exclude")

    return reasons


def evaluate_provider(
    provider: ProviderRecord,
    market_rows: Sequence[MarketRecord],
    rules: ExclusionRules,
    synonym_map: Optional[Mapping[str, str]] = None,
    wrvu_growth_pct: float = 0.0,
) -> ProviderEligibility:
    match = match_market_row(
        provider.specialty, market_rows, synonym_map, provider_type=provider.provider_type
    )
    reasons = exclusion_reasons(provider, match, rules, wrvu_growth_pct)
    return ProviderEligibility(
        provider=provider,
        match=match,
        reasons=tuple(reasons),
        manually_included=bool(provider.key) and provider.key in set(rules.manual_include_ids),
    )


def filter_providers(
    providers: Iterable[ProviderRecord],
    market_rows: Sequence[MarketRecord],
    rules: ExclusionRules,
    synonym_map: Optional[Mapping[str, str]] = None,
    wrvu_growth_pct: float = 0.0,
) -> EligibilityResult:
    """Partition providers into included and excluded sets.

    Args:
        providers: Provider roster
        market_rows: Market benchmark table
        rules: Exclusion rules
        synonym_map: Optional specialty synonyms
        wrvu_growth_pct: Growth assumption applied to wRVUs before productivity checks

    Returns:
        EligibilityResult preserving input order within each set
    """
    included, excluded = [], []
    for provider in providers:
        decision = evaluate_provider(provider, market_rows, rules, synonym_map, wrvu_growth_pct)
        if decision.included:
            included.append(decision)
        else:
            excluded.append(decision)

    if excluded:
        logger.debug(f"Eligibility: {len(included)} included, {len(excluded)} excluded")
    return EligibilityResult(included=included, excluded=excluded)


def top_exclusion_reasons(excluded: Iterable, limit: int = TOP_REASONS_LIMIT) -> List[Tuple[str, int]]:
    """(reason, count) pairs, count descending, ties broken by reason name.

    Accepts anything with a ``reasons`` sequence: eligibility decisions or
    exclusion audit rows.
    """
    counts = Counter(reason for row in excluded for reason in row.reasons)
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return ranked[:limit]
