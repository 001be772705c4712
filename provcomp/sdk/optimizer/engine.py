"""Per-specialty conversion factor optimizer.

Data flow:
    providers + market + synonyms + settings
      -> eligibility (match + exclusion rules)
      -> baseline TCC per included provider
      -> bounded CF search per specialty
      -> governance flags, status, explanation
      -> summary, exclusion audit, budget reconciliation

Execution is incremental: iter_optimizer() yields one specialty at a time so
a caller can report progress or stop early. run_optimizer() drives it and
returns None when cancelled, never a partial result.
"""

import logging
import math
import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Sequence

from ..interpolation import BenchmarkCurve, PercentileResult
from ..numeric import mean_or_none, median_or_none, num, safe_div
from ..schemas import MarketRecord, ProviderRecord
from ..specialty_match import normalize_specialty_key
from .budget import reconcile_budget
from .compensation import (
    CompositionConfig,
    clinical_base,
    clinical_fte,
    compose_tcc_breakdown,
    effective_wrvus,
    wrvu_incentive,
)
from .eligibility import (
    EXCLUSION_REASON_LABELS,
    EligibilityResult,
    ProviderEligibility,
    filter_providers,
    top_exclusion_reasons,
)
from .explanation import build_explanation
from .governance import effective_rate_flag, evaluate_governance, evaluate_status, policy_check
from .results import (
    ExcludedProvider,
    ExclusionReasonCount,
    KeyMetrics,
    OptimizerRunResult,
    OptimizerRunSummary,
    ProviderContext,
    SpecialtyResult,
)
from .search import bounded_search, candidate_domain
from .settings import (
    OptimizerSettings,
    recommend_error_metric,
    validate_optimizer_settings,
)

logger = logging.getLogger(__name__)

_CF_EPSILON = 1e-6


class CancellationToken:
    """Cooperative cancellation flag, safe to set from another thread."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass(frozen=True)
class SpecialtyProgress:
    """Progress event emitted after each specialty completes."""

    specialty_index: int
    total_specialties: int
    specialty_name: str
    result: object = None


# =============================================================================
# Per-provider cohort state
# =============================================================================


@dataclass
class CohortMember:
    """Figures for one provider that do not depend on the candidate CF."""

    decision: ProviderEligibility
    tcc_curve: Optional[BenchmarkCurve]
    wrvu_curve: Optional[BenchmarkCurve]
    cfte: float
    base: float
    wrvus: float
    wrvu_per_cfte: float
    wrvu_pct: PercentileResult
    baseline_tcc: float
    baseline_tcc_per_cfte: float
    baseline_pct: PercentileResult

    @property
    def provider(self) -> ProviderRecord:
        return self.decision.provider

    @property
    def analyzable(self) -> bool:
        """Included and with both benchmark curves usable."""
        return (
            self.decision.included
            and self.cfte > 0
            and self.wrvu_pct.available
            and self.tcc_curve is not None
        )

    @property
    def audit_reasons(self) -> List[str]:
        """Exclusion reasons as reported; included-but-unusable rows get not_analyzable."""
        reasons = list(self.decision.reasons)
        if self.decision.included and not self.analyzable:
            reasons.append("not_analyzable")
        return reasons

    def modeled_tcc(self, config: CompositionConfig, cf: float) -> float:
        return compose_tcc_breakdown(
            self.provider, config, mode="modeled", cf=cf, wrvus=self.wrvus
        ).total

    def pay_percentile(self, tcc: float) -> PercentileResult:
        if self.tcc_curve is None:
            return PercentileResult.unavailable()
        return self.tcc_curve.percentile_of(safe_div(tcc, self.cfte))


def build_member(
    decision: ProviderEligibility, config: CompositionConfig, wrvu_growth_pct: float
) -> CohortMember:
    provider = decision.provider
    row = decision.match.market_row
    tcc_curve = BenchmarkCurve.from_points(row.tcc) if row else None
    wrvu_curve = BenchmarkCurve.from_points(row.wrvu) if row else None

    cfte = clinical_fte(provider)
    wrvus = effective_wrvus(provider, wrvu_growth_pct)
    wrvu_per_cfte = safe_div(wrvus, cfte)
    baseline_tcc = compose_tcc_breakdown(provider, config, mode="baseline", wrvus=wrvus).total
    baseline_per_cfte = safe_div(baseline_tcc, cfte)

    if wrvu_curve is not None and cfte > 0:
        wrvu_pct = wrvu_curve.percentile_of(wrvu_per_cfte)
    else:
        wrvu_pct = PercentileResult.unavailable()
    if tcc_curve is not None and cfte > 0:
        baseline_pct = tcc_curve.percentile_of(baseline_per_cfte)
    else:
        baseline_pct = PercentileResult.unavailable()

    return CohortMember(
        decision=decision,
        tcc_curve=tcc_curve,
        wrvu_curve=wrvu_curve,
        cfte=cfte,
        base=clinical_base(provider),
        wrvus=wrvus,
        wrvu_per_cfte=wrvu_per_cfte,
        wrvu_pct=wrvu_pct,
        baseline_tcc=baseline_tcc,
        baseline_tcc_per_cfte=baseline_per_cfte,
        baseline_pct=baseline_pct,
    )


@dataclass
class SpecialtyGroup:
    """Providers matched to one market specialty."""

    specialty: str
    market_row: MarketRecord
    members: List[CohortMember] = field(default_factory=list)

    @property
    def cohort(self) -> List[CohortMember]:
        return [m for m in self.members if m.analyzable]

    @property
    def excluded(self) -> List[CohortMember]:
        """Every member outside the cohort, so cohort + excluded == members."""
        return [m for m in self.members if not m.analyzable]

    @property
    def cf_curve(self) -> Optional[BenchmarkCurve]:
        return BenchmarkCurve.from_points(self.market_row.cf)


@dataclass
class PreparedRun:
    """Everything computed before the per-specialty loop."""

    settings: OptimizerSettings
    config: CompositionConfig
    eligibility: EligibilityResult
    groups: List[SpecialtyGroup]
    scoped: List[ProviderEligibility] = field(default_factory=list)

    def analyzed(self) -> List[CohortMember]:
        return [m for g in self.groups for m in g.cohort]


def _matches_filter(label: str, specialty_filter: Optional[str]) -> bool:
    if not specialty_filter or not specialty_filter.strip():
        return True
    wanted = specialty_filter.strip()
    return label == wanted or normalize_specialty_key(label) == normalize_specialty_key(wanted)


def _scope_label(decision: ProviderEligibility) -> str:
    """Market label when matched, else the provider's own specialty."""
    row = decision.match.market_row
    if row is not None:
        return row.specialty.strip()
    return (decision.provider.specialty or "").strip()


def prepare_run(
    providers: Sequence[ProviderRecord],
    market_rows: Sequence[MarketRecord],
    settings: Optional[OptimizerSettings] = None,
    synonym_map: Optional[Mapping[str, str]] = None,
    specialty_filter: Optional[str] = None,
) -> PreparedRun:
    """Validate settings, filter providers and group them by market specialty.

    The specialty filter scopes everything downstream: providers outside it
    appear in no specialty, no summary count and no exclusion audit.
    Unmatched providers are in scope when their own specialty passes the filter.

    Raises:
        OptimizerConfigError: if settings fail validation
    """
    settings = validate_optimizer_settings(settings or OptimizerSettings())
    config = CompositionConfig.from_settings(settings)
    eligibility = filter_providers(
        providers,
        market_rows,
        settings.exclusion_rules,
        synonym_map=synonym_map,
        wrvu_growth_pct=settings.wrvu_growth_pct,
    )
    order = {id(p): i for i, p in enumerate(providers)}
    decisions = sorted(eligibility.all(), key=lambda d: order.get(id(d.provider), 0))

    groups: Dict[str, SpecialtyGroup] = {}
    scoped: List[ProviderEligibility] = []
    for decision in decisions:
        if not _matches_filter(_scope_label(decision), specialty_filter):
            continue
        scoped.append(decision)
        row = decision.match.market_row
        if row is None:
            continue
        label = row.specialty.strip()
        group = groups.get(label)
        if group is None:
            group = groups[label] = SpecialtyGroup(specialty=label, market_row=row)
        group.members.append(build_member(decision, config, settings.wrvu_growth_pct))

    ordered = [groups[k] for k in sorted(groups, key=lambda s: (s.lower(), s))]
    logger.debug(
        f"Prepared run: {len(ordered)} specialties, "
        f"{len(scoped)} of {eligibility.total} providers in scope"
    )
    return PreparedRun(
        settings=settings, config=config, eligibility=eligibility, groups=ordered, scoped=scoped
    )


# =============================================================================
# Objective
# =============================================================================


def aggregate_error(errors: Sequence[float], metric: str) -> float:
    """Mean squared or mean absolute error (0 for an empty cohort)."""
    if not errors:
        return 0.0
    if metric == "squared":
        return math.fsum(e * e for e in errors) / len(errors)
    return math.fsum(abs(e) for e in errors) / len(errors)


def make_objective(
    cohort: Sequence[CohortMember], settings: OptimizerSettings, config: CompositionConfig
) -> Callable[[float], float]:
    """CF -> aggregate error for the configured objective kind and metric."""
    objective = settings.objective
    metric = settings.error_metric

    def evaluate(cf: float) -> float:
        align_errors, target_errors = [], []
        for member in cohort:
            pay_pct = member.pay_percentile(member.modeled_tcc(config, cf)).percentile
            align_errors.append(pay_pct - member.wrvu_pct.percentile)
            target_errors.append(pay_pct - objective.target_percentile)
        if objective.kind == "align_percentile":
            return aggregate_error(align_errors, metric)
        if objective.kind == "target_fixed_percentile":
            return aggregate_error(target_errors, metric)
        return objective.align_weight * aggregate_error(
            align_errors, metric
        ) + objective.target_weight * aggregate_error(target_errors, metric)

    return evaluate


# =============================================================================
# Specialty optimization
# =============================================================================


def _risk_level(baseline_gap: float, wrvu_pct: PercentileResult, pay_pct: PercentileResult) -> str:
    if abs(baseline_gap) > 15 or wrvu_pct.off_scale or pay_pct.off_scale:
        return "high"
    if abs(baseline_gap) > 5 or wrvu_pct.percentile < 25 or wrvu_pct.percentile > 90:
        return "medium"
    return "low"


def _key_metrics(members: Sequence[CohortMember], pay_pcts: Sequence[float], tccs: Sequence[float]) -> KeyMetrics:
    if not members:
        return KeyMetrics.empty()
    prod = mean_or_none(m.wrvu_pct.percentile for m in members) or 0.0
    pay = mean_or_none(pay_pcts) or 0.0
    return KeyMetrics(
        productivity_percentile=prod,
        pay_percentile=pay,
        gap=pay - prod,
        tcc_per_cfte=mean_or_none(safe_div(t, m.cfte) for t, m in zip(tccs, members)) or 0.0,
        wrvu_per_cfte=mean_or_none(m.wrvu_per_cfte for m in members) or 0.0,
    )


def _context(member: CohortMember, modeled: Optional[dict] = None) -> ProviderContext:
    decision = member.decision
    provider = member.provider
    row = decision.match.market_row
    baseline_gap = None
    if member.wrvu_pct.available and member.baseline_pct.available:
        baseline_gap = member.baseline_pct.percentile - member.wrvu_pct.percentile

    fields = dict(
        provider_id=provider.key,
        provider_name=provider.provider_name,
        specialty=(provider.specialty or "").strip(),
        market_specialty=row.specialty if row else None,
        match_status=decision.match.status,
        included=member.analyzable,
        manually_included=decision.manually_included,
        exclusion_reasons=member.audit_reasons,
        clinical_fte=member.cfte,
        clinical_base=member.base,
        effective_wrvus=member.wrvus,
        wrvu_per_cfte=member.wrvu_per_cfte,
        wrvu_percentile=member.wrvu_pct.percentile if member.wrvu_pct.available else None,
        wrvu_off_scale=member.wrvu_pct.off_scale,
        baseline_tcc=member.baseline_tcc,
        baseline_tcc_per_cfte=member.baseline_tcc_per_cfte,
        baseline_tcc_percentile=(
            member.baseline_pct.percentile if member.baseline_pct.available else None
        ),
        baseline_gap=baseline_gap,
        tcc_off_scale=member.baseline_pct.off_scale,
    )
    if modeled:
        fields.update(modeled)
    return ProviderContext(**fields)


def _current_cf(cohort: Sequence[CohortMember], cf_curve: Optional[BenchmarkCurve]) -> Optional[float]:
    """Median current CF of the cohort, else the market 50th percentile."""
    current = median_or_none(
        m.provider.current_cf for m in cohort if num(m.provider.current_cf) > 0
    )
    if current is None and cf_curve is not None:
        current = cf_curve.value_at(50.0)
    if current is None or current <= 0:
        return None
    return current


def optimize_specialty(group: SpecialtyGroup, settings: OptimizerSettings, config: CompositionConfig) -> SpecialtyResult:
    """Search the recommended CF for one specialty."""
    governance = settings.governance
    cohort = group.cohort
    cf_curve = group.cf_curve
    excluded = group.excluded
    notes: List[str] = []
    flags: List[str] = []
    key_messages: List[str] = []

    low_cfte = sum(
        1
        for m in excluded
        if {"no_clinical_fte", "below_min_clinical_fte"} & set(m.decision.reasons)
    )
    low_wrvu = sum(1 for m in excluded if "below_min_wrvu_per_cfte" in m.decision.reasons)
    if low_cfte:
        key_messages.append(f"{low_cfte} provider(s) excluded due to low clinical FTE.")
    if low_wrvu:
        key_messages.append(f"{low_wrvu} provider(s) excluded due to low wRVU volume.")
    if excluded:
        flags.append("providers_excluded")

    current_cf = _current_cf(cohort, cf_curve)
    current_cf_pct = (
        cf_curve.percentile_of(current_cf).percentile
        if cf_curve is not None and current_cf is not None
        else None
    )

    if len(cohort) < settings.min_included_providers:
        logger.debug(f"{group.specialty}: {len(cohort)} analyzable provider(s), no recommendation")
        flags.append("low_sample")
        notes.append("Too few included providers for a recommendation.")
        return SpecialtyResult(
            specialty=group.specialty,
            included_count=len(cohort),
            excluded_count=len(excluded),
            current_cf=current_cf,
            recommended_cf=current_cf,
            current_cf_percentile=current_cf_pct,
            recommended_cf_percentile=current_cf_pct,
            action="NO_RECOMMENDATION",
            status="YELLOW",
            flags=flags,
            notes=notes,
            key_messages=key_messages,
            explanation=build_explanation(
                "NO_RECOMMENDATION", "YELLOW", KeyMetrics.empty(), [], current_cf,
                current_cf, len(cohort), governance,
            ),
            providers=[_context(m) for m in group.members],
        )

    if len(cohort) <= settings.low_sample_threshold:
        flags.append("low_sample")
        notes.append(f"Low sample size (n={len(cohort)}); result is indicative only.")
        key_messages.append(f"Low sample (n={len(cohort)}); result indicative only.")

    baseline_metrics = _key_metrics(
        cohort, [m.baseline_pct.percentile for m in cohort], [m.baseline_tcc for m in cohort]
    )

    # Domain: rate-change bounds, absolute bounds and the percentile cap
    cap_pct = settings.max_recommended_cf_percentile
    cap_cf = cf_curve.value_at(cap_pct) if cf_curve is not None else None
    domain = candidate_domain(current_cf, settings.cf_bounds, cap_cf)

    increase_blocked = (
        governance.block_increase_above_hard_cap
        and baseline_metrics.pay_percentile > governance.hard_cap_percentile
        and domain is not None
        and current_cf is not None
    )
    if increase_blocked:
        lo, hi = domain
        if current_cf < lo - _CF_EPSILON:
            domain = None
        else:
            domain = (lo, min(hi, current_cf))
        flags.append("increase_blocked")
        notes.append("Pay above the hard cap; CF increase blocked.")

    outcome = bounded_search(
        make_objective(cohort, settings, config),
        domain,
        anchor=current_cf or 0.0,
        settings=settings.search,
    )

    if outcome.state == "infeasible":
        logger.warning(f"{group.specialty}: empty CF domain, keeping current CF {current_cf}")
        flags.append("infeasible")
        if current_cf is None:
            notes.append("No current CF and no market CF; search not possible.")
        else:
            notes.append("CF bounds and the percentile cap leave no feasible CF; current CF retained.")
        recommended_cf = current_cf
    else:
        recommended_cf = outcome.best_cf
        lo, hi = domain
        if abs(recommended_cf - current_cf) > _CF_EPSILON and (
            recommended_cf <= lo + _CF_EPSILON or recommended_cf >= hi - _CF_EPSILON
        ):
            flags.append("cf_capped")
            key_messages.append("CF move capped at a bound; alignment may be incomplete.")
        if cap_cf is not None and hi >= cap_cf - _CF_EPSILON and recommended_cf >= cap_cf - _CF_EPSILON:
            notes.append(f"Recommended CF capped at the {cap_pct:g}th market percentile ({cap_cf:.2f}).")
        if not outcome.reached_tolerance:
            flags.append("not_converged")
            notes.append(f"Search stopped at the iteration cap ({outcome.iterations}).")

    # Modeled figures at the recommended CF
    cf = recommended_cf if recommended_cf is not None else 0.0
    modeled_tccs, modeled_pcts, contexts = [], [], []
    effective_rates: List[PercentileResult] = []
    total_incentive = 0.0
    any_off_scale = False
    cohort_ids = {id(m) for m in cohort}
    for member in group.members:
        if id(member) not in cohort_ids:
            contexts.append(_context(member))
            continue
        tcc = member.modeled_tcc(config, cf)
        pct = member.pay_percentile(tcc)
        incentive = (
            wrvu_incentive(member.base, member.wrvus, cf)
            if config.component("work_rvu_incentive").included
            else 0.0
        )
        # Effective $/wRVU; cFTE cancels between numerator and denominator
        rate = safe_div(tcc, member.wrvus) if member.wrvus > 0 else None
        rate_pct = (
            cf_curve.percentile_of(rate)
            if cf_curve is not None and rate is not None
            else PercentileResult.unavailable()
        )
        modeled_tccs.append(tcc)
        modeled_pcts.append(pct.percentile)
        effective_rates.append(rate_pct)
        total_incentive += incentive
        any_off_scale = any_off_scale or pct.off_scale or member.wrvu_pct.off_scale
        baseline_gap = member.baseline_pct.percentile - member.wrvu_pct.percentile
        contexts.append(
            _context(
                member,
                dict(
                    modeled_tcc=tcc,
                    modeled_tcc_per_cfte=safe_div(tcc, member.cfte),
                    modeled_tcc_percentile=pct.percentile,
                    modeled_gap=pct.percentile - member.wrvu_pct.percentile,
                    modeled_incentive=incentive,
                    baseline_incentive=wrvu_incentive(member.base, member.wrvus, current_cf or 0.0),
                    tcc_off_scale=member.baseline_pct.off_scale or pct.off_scale,
                    effective_rate=rate,
                    effective_rate_percentile=rate_pct.percentile if rate_pct.available else None,
                    effective_rate_off_scale=rate_pct.off_scale,
                    risk_level=_risk_level(baseline_gap, member.wrvu_pct, member.baseline_pct),
                ),
            )
        )
    if any_off_scale:
        flags.append("off_scale")

    modeled_metrics = _key_metrics(cohort, modeled_pcts, modeled_tccs)
    spend_impact = math.fsum(modeled_tccs) - math.fsum(m.baseline_tcc for m in cohort)

    recommended_cf_pct = (
        cf_curve.percentile_of(recommended_cf).percentile
        if cf_curve is not None and recommended_cf is not None
        else None
    )
    rate_flag = effective_rate_flag(effective_rates)
    if rate_flag:
        flags.append("fmv_risk")
        key_messages.append("Effective $/wRVU above the market 90th for at least one provider.")
    cf_policy = policy_check(recommended_cf_pct, governance.cf_policy_threshold_percentile)

    # Action
    cf_change_pct = 0.0
    if current_cf and recommended_cf is not None:
        cf_change_pct = (recommended_cf - current_cf) / current_cf * 100.0
    if outcome.state == "infeasible":
        action = "HOLD"
    elif increase_blocked and recommended_cf >= current_cf - _CF_EPSILON:
        action = "HOLD"
    elif abs(cf_change_pct) / 100.0 < governance.min_meaningful_change_pct:
        action = "HOLD"
    elif recommended_cf > current_cf:
        action = "INCREASE"
    else:
        action = "DECREASE"

    status, constraints = evaluate_status(
        baseline_metrics.pay_percentile,
        baseline_metrics.gap,
        governance,
        cf_change_pct,
        action,
        cf_bounds=settings.cf_bounds,
    )
    gov_flags = evaluate_governance(
        modeled_metrics.gap,
        modeled_metrics.pay_percentile,
        current_cf_percentile=current_cf_pct,
        modeled_cf_percentile=recommended_cf_pct,
    )
    key_messages.extend(gov_flags.messages())

    logger.debug(
        f"{group.specialty}: n={len(cohort)} current={current_cf} recommended={recommended_cf} "
        f"action={action} objective={outcome.best_objective}"
    )

    return SpecialtyResult(
        specialty=group.specialty,
        included_count=len(cohort),
        excluded_count=len(excluded),
        current_cf=current_cf,
        recommended_cf=recommended_cf,
        cf_change_pct=cf_change_pct,
        current_cf_percentile=current_cf_pct,
        recommended_cf_percentile=recommended_cf_pct,
        cf_domain=domain,
        search_state=outcome.state,
        search_iterations=outcome.iterations,
        objective_value=outcome.best_objective,
        suggested_error_metric=recommend_error_metric(len(cohort), settings.objective),
        baseline_metrics=baseline_metrics,
        modeled_metrics=modeled_metrics,
        spend_impact=spend_impact,
        total_incentive=total_incentive,
        action=action,
        status=status,
        constraints_hit=constraints,
        governance=gov_flags,
        policy_check=cf_policy,
        effective_rate_flag=rate_flag,
        meets_alignment_target=abs(modeled_metrics.gap) <= governance.alignment_tolerance,
        flags=flags,
        notes=notes,
        key_messages=key_messages,
        explanation=build_explanation(
            action,
            status,
            baseline_metrics,
            constraints,
            current_cf,
            recommended_cf,
            len(cohort),
            governance,
            recommended_cf_percentile=recommended_cf_pct,
            cf_curve=cf_curve,
            infeasible=outcome.state == "infeasible",
        ),
        high_risk_count=sum(1 for c in contexts if c.risk_level == "high"),
        medium_risk_count=sum(1 for c in contexts if c.risk_level == "medium"),
        providers=contexts,
    )


# =============================================================================
# Run orchestration
# =============================================================================


def iter_optimizer(prepared: PreparedRun) -> Iterator[SpecialtyProgress]:
    """Yield one SpecialtyProgress per specialty, in specialty order."""
    total = len(prepared.groups)
    for index, group in enumerate(prepared.groups):
        result = optimize_specialty(group, prepared.settings, prepared.config)
        yield SpecialtyProgress(
            specialty_index=index,
            total_specialties=total,
            specialty_name=group.specialty,
            result=result,
        )


def _dedupe(messages) -> List[str]:
    return list(dict.fromkeys(messages))


def assemble_run_result(
    prepared: PreparedRun, results: Sequence[SpecialtyResult]
) -> OptimizerRunResult:
    """Summary, exclusion audit and budget check for a completed run.

    Counts and the audit cover only providers in the run's scope, and
    providers_included + providers_excluded always equals that scope.
    """
    members = {id(m.decision): m for g in prepared.groups for m in g.members}
    analyzed = {id(m.decision) for m in prepared.analyzed()}
    excluded = []
    not_analyzable = 0
    for d in prepared.scoped:
        if id(d) in analyzed:
            continue
        member = members.get(id(d))
        reasons = member.audit_reasons if member is not None else list(d.reasons)
        if d.included:
            not_analyzable += 1
            if "not_analyzable" not in reasons:
                reasons.append("not_analyzable")
        excluded.append(
            ExcludedProvider(
                provider_id=d.provider.key,
                provider_name=d.provider.provider_name,
                specialty=(d.provider.specialty or "").strip(),
                reasons=reasons,
            )
        )
    if not_analyzable:
        logger.warning(f"{not_analyzable} included provider(s) could not be analyzed")

    governance_counts = Counter()
    for r in results:
        for name in ("underpay_risk", "cf_below_25", "within_policy_band", "fmv_check_suggested"):
            if getattr(r.governance, name):
                governance_counts[name] += 1

    total_incentive = math.fsum(r.total_incentive for r in results)
    summary = OptimizerRunSummary(
        specialties_analyzed=len(results),
        providers_included=len(analyzed),
        providers_excluded=len(excluded),
        infeasible_count=sum(1 for r in results if r.infeasible),
        not_analyzable_count=not_analyzable,
        meeting_alignment_count=sum(
            1 for r in results if r.meets_alignment_target and r.action != "NO_RECOMMENDATION"
        ),
        cf_above_policy_count=sum(1 for r in results if r.policy_check != "ok"),
        effective_rate_above_90_count=sum(1 for r in results if r.effective_rate_flag),
        total_spend_impact=math.fsum(r.spend_impact for r in results),
        total_incentive=total_incentive,
        action_counts=dict(sorted(Counter(r.action for r in results).items())),
        status_counts=dict(sorted(Counter(r.status for r in results).items())),
        governance_counts=dict(sorted(governance_counts.items())),
        key_messages=_dedupe(msg for r in results for msg in r.key_messages),
        top_exclusion_reasons=[
            ExclusionReasonCount(
                reason=reason, label=EXCLUSION_REASON_LABELS.get(reason, reason), count=count
            )
            for reason, count in top_exclusion_reasons(excluded)
        ],
    )

    budget = None
    if prepared.settings.budget_cap_dollars is not None:
        budget = reconcile_budget(total_incentive, prepared.settings.budget_cap_dollars)
        if budget.status == "over":
            logger.warning(
                f"Modeled incentive ${total_incentive:,.0f} exceeds budget cap by "
                f"${budget.delta_dollars:,.0f}"
            )

    return OptimizerRunResult(
        summary=summary, by_specialty=list(results), excluded=excluded, budget=budget
    )


def run_optimizer(
    providers: Sequence[ProviderRecord],
    market_rows: Sequence[MarketRecord],
    settings: Optional[OptimizerSettings] = None,
    synonym_map: Optional[Mapping[str, str]] = None,
    specialty_filter: Optional[str] = None,
    on_progress: Optional[Callable[[SpecialtyProgress], None]] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> Optional[OptimizerRunResult]:
    """Run the optimizer for every matched specialty.

    Args:
        providers: Provider roster
        market_rows: Market benchmark table
        settings: Optimizer settings (defaults when omitted)
        synonym_map: Specialty synonyms
        specialty_filter: Restrict to one market specialty label
        on_progress: Called after each specialty completes
        cancel_token: Checked between specialties

    Returns:
        OptimizerRunResult, or None if cancelled

    Raises:
        OptimizerConfigError: if settings fail validation
    """
    prepared = prepare_run(providers, market_rows, settings, synonym_map, specialty_filter)
    if cancel_token is not None and cancel_token.cancelled:
        return None
    results = []
    for progress in iter_optimizer(prepared):
        results.append(progress.result)
        if on_progress is not None:
            on_progress(progress)
        if cancel_token is not None and cancel_token.cancelled:
            logger.debug(f"Optimizer cancelled after specialty {progress.specialty_index}")
            return None
    return assemble_run_result(prepared, results)
