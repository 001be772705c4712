"""optimizer - Per-specialty conversion factor optimization.

Scope:
- Settings with defaults resolved at construction (settings.py)
- Eligibility filtering and exclusion audit (eligibility.py)
- Baseline and modeled TCC composition (compensation.py)
- Bounded CF search and objective evaluation (search.py, engine.py)
- Governance flags and traffic-light status (governance.py)
- Budget reconciliation, reporting only (budget.py)
- CF percentile sweeps without search (sweep.py)
- Imputed $/wRVU versus market by specialty (imputed.py)
- Side-by-side comparison of two runs (compare.py)

Constraints:
- Pure computation: no file I/O, no display formatting
- Results are immutable and contain no timestamps; identical inputs
  reproduce identical results
- Per-row data problems exclude the provider with a reason; only
  misconfiguration (invalid settings, empty sweep) raises

Usage:
    from provcomp.sdk.optimizer import OptimizerSettings, run_optimizer, run_sweep

    result = run_optimizer(providers, market_rows, OptimizerSettings())
    for spec in result.by_specialty:
        print(spec.specialty, spec.action, spec.recommended_cf)

    sweep = run_sweep(providers, market_rows, None, percentiles=[25, 40, 50])
"""

from .settings import (
    OptimizerSettings,
    ObjectiveSettings,
    ExclusionRules,
    CFBounds,
    ComponentInclusion,
    PayLayer,
    GovernanceSettings,
    SearchSettings,
    OptimizerConfigError,
    validate_optimizer_settings,
    recommend_error_metric,
)

from .eligibility import (
    EXCLUSION_REASON_LABELS,
    EligibilityResult,
    ProviderEligibility,
    exclusion_reasons,
    filter_providers,
    top_exclusion_reasons,
)

from .compensation import (
    CompositionConfig,
    TCCBreakdown,
    clinical_base,
    clinical_fte,
    compose_tcc,
    compose_tcc_breakdown,
    total_wrvus,
    wrvu_incentive,
)

from .search import SearchOutcome, bounded_search, candidate_domain

from .governance import (
    GovernanceFlags,
    effective_rate_flag,
    evaluate_governance,
    evaluate_status,
    policy_check,
)

from .budget import BudgetReconciliation, reconcile_budget

from .results import (
    ExcludedProvider,
    Explanation,
    KeyMetrics,
    OptimizerRunResult,
    OptimizerRunSummary,
    ProviderContext,
    SpecialtyResult,
)

from .engine import (
    CancellationToken,
    PreparedRun,
    SpecialtyProgress,
    assemble_run_result,
    iter_optimizer,
    prepare_run,
    run_optimizer,
)

from .sweep import SweepConfigError, SweepResult, SweepRow, iter_sweep, run_sweep

from .imputed import ImputedVsMarketResult, ImputedVsMarketRow, compute_imputed_vs_market

from .compare import (
    OptimizerComparison,
    SpecialtyComparisonRow,
    compare_optimizer_runs,
    settings_differences,
)

__all__ = [
    # Settings
    "OptimizerSettings",
    "ObjectiveSettings",
    "ExclusionRules",
    "CFBounds",
    "ComponentInclusion",
    "PayLayer",
    "GovernanceSettings",
    "SearchSettings",
    "OptimizerConfigError",
    "validate_optimizer_settings",
    "recommend_error_metric",
    # Eligibility
    "EXCLUSION_REASON_LABELS",
    "EligibilityResult",
    "ProviderEligibility",
    "exclusion_reasons",
    "filter_providers",
    "top_exclusion_reasons",
    # Composition
    "CompositionConfig",
    "TCCBreakdown",
    "clinical_base",
    "clinical_fte",
    "compose_tcc",
    "compose_tcc_breakdown",
    "total_wrvus",
    "wrvu_incentive",
    # Search
    "SearchOutcome",
    "bounded_search",
    "candidate_domain",
    # Governance / budget
    "GovernanceFlags",
    "evaluate_governance",
    "evaluate_status",
    "effective_rate_flag",
    "policy_check",
    "BudgetReconciliation",
    "reconcile_budget",
    # Results
    "ExcludedProvider",
    "Explanation",
    "KeyMetrics",
    "OptimizerRunResult",
    "OptimizerRunSummary",
    "ProviderContext",
    "SpecialtyResult",
    # Engine
    "CancellationToken",
    "PreparedRun",
    "SpecialtyProgress",
    "assemble_run_result",
    "iter_optimizer",
    "prepare_run",
    "run_optimizer",
    # Sweep
    "SweepConfigError",
    "SweepResult",
    "SweepRow",
    "iter_sweep",
    "run_sweep",
    # Imputed vs market
    "ImputedVsMarketResult",
    "ImputedVsMarketRow",
    "compute_imputed_vs_market",
    # Comparison
    "OptimizerComparison",
    "SpecialtyComparisonRow",
    "compare_optimizer_runs",
    "settings_differences",
]
