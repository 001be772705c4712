"""Total cash compensation (TCC) composition.

Baseline TCC is clinical base plus the enabled fixed components and layers.
Modeled TCC adds the work RVU incentive earned at a candidate conversion
factor: max(0, wRVUs x CF - clinical base). Amounts flagged
normalize_for_fte are treated as per-1.0-FTE figures and scaled by the
provider's clinical FTE. Missing or non-finite inputs contribute zero.
"""

from dataclasses import dataclass, field
from typing import Dict, Literal, Mapping, Optional, Tuple

from ..numeric import num, safe_div
from ..schemas import ProviderRecord
from .settings import (
    ComponentInclusion,
    OptimizerSettings,
    PayLayer,
    QualitySource,
)


TCCMode = Literal["baseline", "modeled"]


# =============================================================================
# Provider-level derived quantities
# =============================================================================


def clinical_fte(provider: ProviderRecord) -> float:
    """Clinical FTE: clinical_fte when present (even 0), else total_fte."""
    if provider.clinical_fte is not None:
        return max(0.0, num(provider.clinical_fte))
    return max(0.0, num(provider.total_fte))


def base_salary(provider: ProviderRecord) -> float:
    """Sum of itemized base components when any is positive, else base_salary."""
    if any(num(c.amount) > 0 for c in provider.base_pay_components):
        return sum(num(c.amount) for c in provider.base_pay_components)
    return num(provider.base_salary)


def clinical_base(provider: ProviderRecord) -> float:
    """Clinical share of base salary.

    An explicit clinical_fte_salary wins. Otherwise base salary is scaled by
    clinical/total FTE when total FTE is known and positive.
    """
    if provider.clinical_fte_salary is not None:
        return num(provider.clinical_fte_salary)
    base = base_salary(provider)
    total = num(provider.total_fte)
    if total <= 0 or provider.clinical_fte is None:
        return base
    return base * safe_div(num(provider.clinical_fte), total, default=1.0)


def total_wrvus(provider: ProviderRecord) -> float:
    """Reported total wRVUs, else primary + secondary."""
    total = num(provider.total_wrvus)
    if total > 0:
        return total
    return num(provider.work_rvus) + num(provider.outside_wrvus)


def growth_factor(wrvu_growth_pct: float) -> float:
    return 1.0 + num(wrvu_growth_pct) / 100.0


def effective_wrvus(provider: ProviderRecord, wrvu_growth_pct: float = 0.0) -> float:
    """Total wRVUs scaled by the run's growth assumption."""
    return total_wrvus(provider) * growth_factor(wrvu_growth_pct)


def wrvu_incentive(base: float, wrvus: float, cf: float) -> float:
    """Productivity incentive above the base-equivalent threshold.

    Threshold wRVUs = base / CF; incentive = (wRVUs - threshold) x CF, floored at 0.
    """
    if num(cf) <= 0:
        return 0.0
    return max(0.0, num(wrvus) * num(cf) - num(base))


# =============================================================================
# Composition
# =============================================================================


@dataclass(frozen=True)
class CompositionConfig:
    """Resolved inputs for TCC composition, built once per run."""

    inclusion: Mapping[str, ComponentInclusion] = field(default_factory=dict)
    quality_source: QualitySource = "from_file"
    quality_override_pct: float = 0.0
    layers: Tuple[PayLayer, ...] = ()

    @classmethod
    def from_settings(cls, settings: OptimizerSettings) -> "CompositionConfig":
        return cls(
            inclusion=dict(settings.component_inclusion),
            quality_source=settings.quality_source,
            quality_override_pct=settings.quality_override_pct,
            layers=tuple(settings.additional_layers),
        )

    def component(self, component_id: str) -> ComponentInclusion:
        return self.inclusion.get(component_id, ComponentInclusion(included=False))


@dataclass(frozen=True)
class TCCBreakdown:
    """Itemized TCC for one provider."""

    clinical_base: float = 0.0
    quality: float = 0.0
    work_rvu_incentive: float = 0.0
    other_incentives: float = 0.0
    non_clinical: float = 0.0
    layers: Dict[str, float] = field(default_factory=dict)

    @property
    def total(self) -> float:
        return (
            self.clinical_base
            + self.quality
            + self.work_rvu_incentive
            + self.other_incentives
            + self.non_clinical
            + sum(self.layers.values())
        )


def _scaled(amount: float, normalize: bool, cfte: float) -> float:
    return amount * cfte if normalize else amount


def _quality_dollars(
    provider: ProviderRecord, config: CompositionConfig, base: float, cfte: float
) -> float:
    option = config.component("quality")
    if not option.included:
        return 0.0
    if config.quality_source == "override_pct_of_base":
        return base * num(config.quality_override_pct) / 100.0
    return _scaled(num(provider.quality_payments), option.normalize_for_fte, cfte)


def _optional_component(
    config: CompositionConfig, component_id: str, amount: Optional[float], cfte: float
) -> float:
    option = config.component(component_id)
    if not option.included:
        return 0.0
    return _scaled(num(amount), option.normalize_for_fte, cfte)


def layer_amount(layer: PayLayer, provider: ProviderRecord, base: float, cfte: float) -> float:
    """Dollar amount contributed by one additional layer."""
    if layer.type == "percent_of_base":
        return base * num(layer.value) / 100.0
    if layer.type == "dollar_per_cfte":
        return num(layer.value) * cfte
    if layer.type == "flat_dollar":
        return _scaled(num(layer.value), layer.normalize_for_fte, cfte)
    # from_field
    return _scaled(num(provider.field_value(layer.field or "")), layer.normalize_for_fte, cfte)


def compose_tcc_breakdown(
    provider: ProviderRecord,
    config: CompositionConfig,
    mode: TCCMode = "baseline",
    cf: float = 0.0,
    wrvus: Optional[float] = None,
) -> TCCBreakdown:
    """Itemize baseline or modeled TCC.

    Args:
        provider: Provider record
        config: Resolved composition config
        mode: "baseline" (no productivity incentive) or "modeled"
        cf: Conversion factor for the modeled incentive
        wrvus: Effective wRVUs (defaults to the record's total wRVUs)

    Returns:
        TCCBreakdown with every contribution finite
    """
    cfte = clinical_fte(provider)
    base = clinical_base(provider)
    if wrvus is None:
        wrvus = total_wrvus(provider)

    incentive = 0.0
    if mode == "modeled" and config.component("work_rvu_incentive").included:
        incentive = wrvu_incentive(base, wrvus, cf)

    layers: Dict[str, float] = {}
    for layer in config.layers:
        layers[layer.name] = layers.get(layer.name, 0.0) + layer_amount(layer, provider, base, cfte)

    return TCCBreakdown(
        clinical_base=base,
        quality=_quality_dollars(provider, config, base, cfte),
        work_rvu_incentive=incentive,
        other_incentives=_optional_component(config, "other_incentives", provider.other_incentives, cfte),
        non_clinical=_optional_component(config, "non_clinical", provider.non_clinical_pay, cfte),
        layers=layers,
    )


def compose_tcc(
    provider: ProviderRecord,
    config: CompositionConfig,
    mode: TCCMode = "baseline",
    cf: float = 0.0,
    wrvus: Optional[float] = None,
) -> float:
    """Total cash compensation in dollars (see compose_tcc_breakdown)."""
    return num(compose_tcc_breakdown(provider, config, mode=mode, cf=cf, wrvus=wrvus).total)
