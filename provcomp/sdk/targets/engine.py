"""Group productivity targets by specialty.

A single wRVU target is set per specialty at 1.0 clinical FTE, then scaled
by each provider's clinical FTE (and optional ramp factor). Providers are
banded by percent-to-target. Planning incentive dollars estimate what a
target-as-threshold plan would pay at a planning CF; they are for budgeting
and never feed back into the CF optimizer.
"""

import logging
import math
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..interpolation import percentile_of_value, value_at_percentile
from ..numeric import mean_or_none, median_or_none, num, safe_div
from ..optimizer.compensation import CompositionConfig, clinical_fte, compose_tcc, total_wrvus
from ..optimizer.eligibility import ProviderEligibility, filter_providers
from ..optimizer.settings import OptimizerSettings
from ..schemas import MarketRecord, ProviderRecord
from ..specialty_match import normalize_specialty_key
from .schemas import (
    TARGET_BANDS,
    ProductivityTargetRunResult,
    ProductivityTargetSettings,
    ProviderTargetResult,
    SpecialtyTargetResult,
    SpecialtyTargetRule,
    SpecialtyTargetSummary,
    TargetConfigError,
)

logger = logging.getLogger(__name__)

MISSING_MARKET_WARNING = "Missing market data"
NO_TARGET_WARNING = "Could not compute group target"


def validate_target_settings(settings: ProductivityTargetSettings) -> ProductivityTargetSettings:
    """Re-check ranges before a run.

    Raises:
        TargetConfigError: listing every violated constraint
    """
    errors = []
    if not 1 <= settings.target_percentile <= 99:
        errors.append(f"target_percentile must be in [1, 99], got {settings.target_percentile}")
    if settings.alignment_tolerance < 0:
        errors.append("alignment_tolerance must be >= 0")
    for name, rule in settings.specialty_overrides.items():
        if rule.target_percentile is not None and not 1 <= rule.target_percentile <= 99:
            errors.append(f"override '{name}': target_percentile must be in [1, 99]")
    if errors:
        raise TargetConfigError(errors)
    return settings


def band_for(percent_to_target: float) -> str:
    """Band key for a percent-to-target value."""
    if percent_to_target < 80:
        return "below_80"
    if percent_to_target < 100:
        return "80_to_99"
    if percent_to_target < 120:
        return "100_to_119"
    return "at_or_above_120"


def status_for(percent_to_target: float) -> str:
    if percent_to_target >= 120:
        return "Above Target"
    if percent_to_target >= 100:
        return "At Target"
    return "Below Target"


def effective_rule(settings: ProductivityTargetSettings, specialty: str) -> SpecialtyTargetRule:
    """Per-specialty override merged over the global settings."""
    override = settings.specialty_overrides.get(specialty)
    if override is None:
        key = normalize_specialty_key(specialty)
        override = next(
            (r for name, r in settings.specialty_overrides.items() if normalize_specialty_key(name) == key),
            None,
        )
    if override is None:
        return SpecialtyTargetRule(
            target_approach=settings.target_approach,
            target_percentile=settings.target_percentile,
            pay_percentile=settings.pay_percentile,
            cf_percentile=settings.cf_percentile,
            manual_target_wrvu=settings.manual_target_wrvu,
        )
    return SpecialtyTargetRule(
        target_approach=override.target_approach,
        target_percentile=(
            override.target_percentile
            if override.target_percentile is not None
            else settings.target_percentile
        ),
        pay_percentile=(
            override.pay_percentile if override.pay_percentile is not None else settings.pay_percentile
        ),
        cf_percentile=(
            override.cf_percentile if override.cf_percentile is not None else settings.cf_percentile
        ),
        manual_target_wrvu=(
            override.manual_target_wrvu
            if override.manual_target_wrvu is not None
            else settings.manual_target_wrvu
        ),
    )


def group_target_wrvu(rule: SpecialtyTargetRule, market_row: Optional[MarketRecord]) -> Optional[float]:
    """Group wRVU target at 1.0 cFTE, or None when it cannot be derived.

    wrvu_percentile: market wRVU at the target percentile.
    pay_per_wrvu: market TCC at the pay percentile / market CF at the CF percentile.
    manual: the configured manual target.
    """
    if rule.target_approach == "manual":
        manual = rule.manual_target_wrvu
        return float(manual) if manual is not None and manual >= 0 else None
    if market_row is None:
        return None
    if rule.target_approach == "wrvu_percentile":
        return value_at_percentile(market_row.wrvu, rule.target_percentile)

    pay_pct = rule.pay_percentile if rule.pay_percentile is not None else rule.target_percentile
    tcc = value_at_percentile(market_row.tcc, pay_pct)
    cf = value_at_percentile(market_row.cf, rule.cf_percentile)
    if tcc is None or cf is None or cf <= 0:
        return None
    return tcc / cf


def planning_cf(settings: ProductivityTargetSettings, market_row: Optional[MarketRecord]) -> Optional[float]:
    if settings.planning_cf_source == "manual":
        return settings.planning_cf_manual
    if market_row is None:
        return None
    return value_at_percentile(market_row.cf, settings.planning_cf_percentile)


def provider_target(
    decision: ProviderEligibility,
    group_target: Optional[float],
    settings: ProductivityTargetSettings,
    plan_cf: Optional[float],
    config: CompositionConfig,
) -> ProviderTargetResult:
    """Target, variance, band and planning incentive for one provider."""
    provider = decision.provider
    row = decision.match.market_row
    cfte = clinical_fte(provider)
    actual = total_wrvus(provider)
    ramp = num(settings.ramp_factor_by_provider_id.get(provider.key), default=1.0)

    wrvu_pct = pay_pct = None
    if row is not None and cfte > 0:
        wrvu_res = percentile_of_value(row.wrvu, actual / cfte)
        pay_res = percentile_of_value(row.tcc, compose_tcc(provider, config) / cfte)
        wrvu_pct = wrvu_res.percentile if wrvu_res.available else None
        pay_pct = pay_res.percentile if pay_res.available else None

    fields = dict(
        provider_id=provider.key,
        provider_name=provider.provider_name,
        specialty=(provider.specialty or "").strip(),
        included=decision.included,
        exclusion_reasons=list(decision.reasons),
        clinical_fte=cfte,
        actual_wrvus=actual,
        ramp_factor=ramp,
        wrvu_percentile=wrvu_pct,
        pay_percentile=pay_pct,
    )
    if not decision.included or group_target is None or group_target <= 0:
        return ProviderTargetResult(**fields)

    target = group_target * cfte
    ramped = target * ramp
    percent = safe_div(actual, ramped) * 100.0 if ramped > 0 else 0.0
    incentive = None
    if plan_cf is not None and plan_cf > 0 and ramped > 0:
        incentive = max(0.0, actual - ramped) * plan_cf

    return ProviderTargetResult(
        **fields,
        target_wrvu=target,
        ramped_target_wrvu=ramped,
        variance_wrvu=actual - ramped,
        percent_to_target=percent,
        band=band_for(percent),
        status=status_for(percent),
        planning_incentive=incentive,
    )


def summarize_specialty(
    results: Sequence[ProviderTargetResult], alignment_tolerance: float
) -> SpecialtyTargetSummary:
    """Mean/median percent-to-target, band counts and the alignment check."""
    included = [r for r in results if r.included]
    scored = [r for r in included if r.percent_to_target is not None]
    counts = {band: 0 for band in TARGET_BANDS}
    for r in scored:
        counts[r.band] += 1

    mean_pay = mean_or_none(r.pay_percentile for r in included if r.pay_percentile is not None)
    mean_prod = mean_or_none(r.wrvu_percentile for r in included if r.wrvu_percentile is not None)
    gap = aligned = None
    if mean_pay is not None and mean_prod is not None:
        gap = mean_pay - mean_prod
        aligned = abs(gap) <= alignment_tolerance

    return SpecialtyTargetSummary(
        included_count=len(included),
        excluded_count=len(results) - len(included),
        mean_percent_to_target=mean_or_none(r.percent_to_target for r in scored) or 0.0,
        median_percent_to_target=median_or_none(r.percent_to_target for r in scored) or 0.0,
        band_counts=counts,
        mean_pay_percentile=mean_pay,
        mean_productivity_percentile=mean_prod,
        alignment_gap=gap,
        aligned=aligned,
    )


def _group_by_specialty(
    decisions: Sequence[ProviderEligibility],
) -> Dict[str, Tuple[Optional[MarketRecord], List[ProviderEligibility]]]:
    """Group by matched market label; unmatched providers keep their own label."""
    groups: Dict[str, Tuple[Optional[MarketRecord], List[ProviderEligibility]]] = {}
    for decision in decisions:
        row = decision.match.market_row
        label = row.specialty.strip() if row else (decision.provider.specialty or "").strip()
        if label not in groups:
            groups[label] = (row, [])
        groups[label][1].append(decision)
    return groups


def run_productivity_targets(
    providers: Sequence[ProviderRecord],
    market_rows: Sequence[MarketRecord],
    settings: Optional[ProductivityTargetSettings] = None,
    synonym_map: Optional[Mapping[str, str]] = None,
) -> ProductivityTargetRunResult:
    """Compute group targets and provider banding for every specialty.

    Args:
        providers: Provider roster
        market_rows: Market benchmark table
        settings: Target settings (defaults when omitted)
        synonym_map: Specialty synonyms

    Returns:
        ProductivityTargetRunResult with specialties sorted by name

    Raises:
        TargetConfigError: if settings fail validation
    """
    settings = validate_target_settings(settings or ProductivityTargetSettings())
    config = CompositionConfig.from_settings(OptimizerSettings())
    eligibility = filter_providers(
        providers, market_rows, settings.exclusion_rules, synonym_map=synonym_map
    )
    # Input order within each specialty
    order = {id(p): i for i, p in enumerate(providers)}
    decisions = sorted(eligibility.all(), key=lambda d: order.get(id(d.provider), 0))

    results = []
    for label, (row, members) in _group_by_specialty(decisions).items():
        rule = effective_rule(settings, label)
        target = group_target_wrvu(rule, row)
        plan_cf = planning_cf(settings, row)

        warnings = []
        if row is None:
            warnings.append(MISSING_MARKET_WARNING)
        elif target is None:
            warnings.append(NO_TARGET_WARNING)
        if warnings:
            logger.warning(f"{label or '(no specialty)'}: {'; '.join(warnings)}")

        provider_results = [provider_target(d, target, settings, plan_cf, config) for d in members]
        results.append(
            SpecialtyTargetResult(
                specialty=label,
                market_specialty=row.specialty if row else None,
                target_approach=rule.target_approach,
                target_percentile=(
                    rule.target_percentile if rule.target_approach == "wrvu_percentile" else None
                ),
                group_target_wrvu=target,
                planning_cf=plan_cf,
                providers=provider_results,
                summary=summarize_specialty(provider_results, settings.alignment_tolerance),
                total_planning_incentive=math.fsum(
                    r.planning_incentive for r in provider_results if r.planning_incentive is not None
                ),
                warnings=warnings,
            )
        )

    results.sort(key=lambda r: (r.specialty.lower(), r.specialty))
    return ProductivityTargetRunResult(
        by_specialty=results,
        total_planning_incentive=math.fsum(r.total_planning_incentive for r in results),
        providers_included=len(eligibility.included),
        providers_excluded=len(eligibility.excluded),
    )
