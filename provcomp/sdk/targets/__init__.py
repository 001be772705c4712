"""targets - Specialty productivity targets.

Scope:
- Group wRVU target per specialty at 1.0 clinical FTE (engine.py)
  - wrvu_percentile: market wRVU at a percentile
  - pay_per_wrvu: market TCC at a percentile / market CF at a percentile
  - manual: configured value, optionally overridden per specialty
- Provider targets scaled by clinical FTE and ramp factor
- Percent-to-target bands and Below/At/Above status
- Planning incentive estimate at a planning CF
- Side-by-side comparison of two to four runs (compare.py)

Constraints:
- Shares matching, eligibility and composition with optimizer/
- Planning incentive is for budgeting only; it never changes CF results

Usage:
    from provcomp.sdk.targets import ProductivityTargetSettings, run_productivity_targets

    result = run_productivity_targets(providers, market_rows, ProductivityTargetSettings())
    for spec in result.by_specialty:
        print(spec.specialty, spec.group_target_wrvu, spec.summary.band_counts)
"""

from .schemas import (
    BAND_LABELS,
    ProductivityTargetRunResult,
    ProductivityTargetSettings,
    ProviderTargetResult,
    SpecialtyTargetResult,
    SpecialtyTargetRule,
    SpecialtyTargetSummary,
    TargetConfigError,
)

from .engine import (
    band_for,
    effective_rule,
    group_target_wrvu,
    planning_cf,
    run_productivity_targets,
    status_for,
    summarize_specialty,
    validate_target_settings,
)

from .compare import TargetComparison, compare_target_runs

__all__ = [
    # Schemas
    "BAND_LABELS",
    "ProductivityTargetRunResult",
    "ProductivityTargetSettings",
    "ProviderTargetResult",
    "SpecialtyTargetResult",
    "SpecialtyTargetRule",
    "SpecialtyTargetSummary",
    "TargetConfigError",
    # Engine
    "band_for",
    "effective_rule",
    "group_target_wrvu",
    "planning_cf",
    "run_productivity_targets",
    "status_for",
    "summarize_specialty",
    "validate_target_settings",
    # Comparison
    "TargetComparison",
    "compare_target_runs",
]
