"""prov-comp SDK - Provider compensation modeling against market benchmarks."""

from .config import (
    get_config_dir,
    get_settings_path,
    load_settings,
    save_settings,
    get_setting,
    set_setting,
    get_profile_path,
    load_profile,
    save_profile,
    init_profile,
    load_optimizer_settings,
    load_target_settings,
    load_synonym_map,
    ConfigNotFoundError,
    ConfigValidationError,
    ProfileNotFoundError,
)

from .datasets import (
    DatasetError,
    load_market,
    load_optimizer_result,
    load_providers,
    load_target_result,
)

from .schemas import (
    MarketRecord,
    PayComponentItem,
    PercentilePoints,
    ProviderRecord,
)

from .interpolation import (
    BenchmarkCurve,
    PercentileResult,
    percentile_of_value,
    value_at_percentile,
)

from .specialty_match import (
    MarketMatch,
    match_market_row,
    normalize_specialty_key,
    specialty_similarity,
    suggest_specialty_mappings,
)

from .optimizer import (
    CancellationToken,
    ImputedVsMarketResult,
    OptimizerComparison,
    OptimizerConfigError,
    OptimizerRunResult,
    OptimizerSettings,
    SweepConfigError,
    SweepResult,
    compare_optimizer_runs,
    compute_imputed_vs_market,
    filter_providers,
    reconcile_budget,
    run_optimizer,
    run_sweep,
)

from .targets import (
    ProductivityTargetRunResult,
    ProductivityTargetSettings,
    TargetComparison,
    TargetConfigError,
    compare_target_runs,
    run_productivity_targets,
)

__all__ = [
    # Config
    "get_config_dir",
    "get_settings_path",
    "load_settings",
    "save_settings",
    "get_setting",
    "set_setting",
    "get_profile_path",
    "load_profile",
    "save_profile",
    "init_profile",
    "load_optimizer_settings",
    "load_target_settings",
    "load_synonym_map",
    "ConfigNotFoundError",
    "ConfigValidationError",
    "ProfileNotFoundError",
    # Datasets
    "DatasetError",
    "load_market",
    "load_providers",
    "load_optimizer_result",
    "load_target_result",
    # Schemas
    "MarketRecord",
    "PayComponentItem",
    "PercentilePoints",
    "ProviderRecord",
    # Interpolation
    "BenchmarkCurve",
    "PercentileResult",
    "percentile_of_value",
    "value_at_percentile",
    # Specialty matching
    "MarketMatch",
    "match_market_row",
    "normalize_specialty_key",
    "specialty_similarity",
    "suggest_specialty_mappings",
    # Optimizer
    "CancellationToken",
    "ImputedVsMarketResult",
    "OptimizerComparison",
    "OptimizerConfigError",
    "OptimizerRunResult",
    "OptimizerSettings",
    "SweepConfigError",
    "SweepResult",
    "compare_optimizer_runs",
    "compute_imputed_vs_market",
    "filter_providers",
    "reconcile_budget",
    "run_optimizer",
    "run_sweep",
    # Targets
    "ProductivityTargetRunResult",
    "ProductivityTargetSettings",
    "TargetComparison",
    "TargetConfigError",
    "compare_target_runs",
    "run_productivity_targets",
]
