"""Core input schemas for provider compensation modeling.

These models describe the records the engine consumes: provider roster rows,
market benchmark rows and the four-point percentile tables they carry. All
models are immutable; the engine never mutates a caller's record.

Example:
    >>> provider = ProviderRecord(
    ...     provider_id="P1",
    ...     specialty="Cardiology",
    ...     clinical_fte=1.0,
    ...     base_salary=150000,
    ...     work_rvus=4600,
    ...     current_cf=45.0,
    ... )
    >>> provider.key
    'P1'
"""

from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


ProductivityModel = Literal["base", "productivity"]

# Benchmark percentiles published by market surveys.
BENCHMARK_PERCENTILES: Tuple[float, ...] = (25.0, 50.0, 75.0, 90.0)


class PayComponentItem(BaseModel):
    """One itemized base pay component (e.g., clinical salary, call coverage)."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(..., description="Component label")
    amount: float = Field(0.0, description="Annual dollars")


class ProviderRecord(BaseModel):
    """A single provider on the roster."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    # Identity
    provider_id: Optional[str] = Field(None, description="Stable provider identifier")
    provider_name: Optional[str] = Field(None, description="Display name")
    specialty: Optional[str] = Field(None, description="Free-text specialty")
    division: Optional[str] = Field(None, description="Division or department")
    provider_type: Optional[str] = Field(
        None, description="Role/type (e.g., 'Physician', 'APP')"
    )

    # Time-equivalent shares
    total_fte: Optional[float] = Field(None, ge=0, description="Total FTE")
    clinical_fte: Optional[float] = Field(None, ge=0, description="Clinical FTE")
    admin_fte: Optional[float] = Field(None, ge=0, description="Administrative FTE")
    research_fte: Optional[float] = Field(None, ge=0, description="Research FTE")
    teaching_fte: Optional[float] = Field(None, ge=0, description="Teaching FTE")

    # Productivity
    work_rvus: Optional[float] = Field(None, description="Primary work RVUs")
    outside_wrvus: Optional[float] = Field(
        None, description="Secondary work RVUs (outside or PCH)"
    )
    total_wrvus: Optional[float] = Field(
        None, description="Total work RVUs when reported directly"
    )

    # Pay
    base_salary: Optional[float] = Field(None, description="Annual base salary")
    base_pay_components: List[PayComponentItem] = Field(
        default_factory=list, description="Itemized base pay components"
    )
    clinical_fte_salary: Optional[float] = Field(
        None, description="Explicit clinical base salary (overrides FTE scaling)"
    )
    non_clinical_pay: Optional[float] = Field(
        None, description="Non-clinical stipends (admin, research, teaching)"
    )
    quality_payments: Optional[float] = Field(None, description="Quality/value payments")
    other_incentives: Optional[float] = Field(None, description="Other incentive pay")
    current_cf: Optional[float] = Field(
        None, description="Current conversion factor ($/wRVU)"
    )

    # Flags
    productivity_model: Optional[ProductivityModel] = Field(
        None, description="Compensation model for this provider"
    )
    loa: bool = Field(False, description="Leave of absence during the period")

    custom_fields: Dict[str, float] = Field(
        default_factory=dict, description="Extra numeric columns for from-field layers"
    )

    @field_validator("productivity_model", mode="before")
    @classmethod
    def normalize_productivity_model(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
            return v or None
        return v

    @property
    def key(self) -> str:
        """Stable key for audit output: provider_id, else name."""
        return self.provider_id or self.provider_name or ""

    def field_value(self, name: str) -> Optional[float]:
        """Look up a numeric attribute by name, falling back to custom_fields."""
        if name in self.custom_fields:
            return self.custom_fields[name]
        if name in type(self).model_fields and name != "custom_fields":
            value = getattr(self, name)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return float(value)
        return None


class PercentilePoints(BaseModel):
    """Four benchmark values (25th/50th/75th/90th) for one dimension."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    p25: Optional[float] = None
    p50: Optional[float] = None
    p75: Optional[float] = None
    p90: Optional[float] = None

    def as_pairs(self) -> List[Tuple[float, Optional[float]]]:
        """(percentile, value) pairs in percentile order."""
        return list(zip(BENCHMARK_PERCENTILES, (self.p25, self.p50, self.p75, self.p90)))


class MarketRecord(BaseModel):
    """Market benchmark row for one specialty."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    specialty: str = Field(..., description="Market specialty label")
    provider_type: Optional[str] = Field(None, description="Role/type of the survey row")
    region: Optional[str] = Field(None, description="Survey region")

    tcc_25: Optional[float] = None
    tcc_50: Optional[float] = None
    tcc_75: Optional[float] = None
    tcc_90: Optional[float] = None
    wrvu_25: Optional[float] = None
    wrvu_50: Optional[float] = None
    wrvu_75: Optional[float] = None
    wrvu_90: Optional[float] = None
    cf_25: Optional[float] = None
    cf_50: Optional[float] = None
    cf_75: Optional[float] = None
    cf_90: Optional[float] = None

    @property
    def tcc(self) -> PercentilePoints:
        return PercentilePoints(p25=self.tcc_25, p50=self.tcc_50, p75=self.tcc_75, p90=self.tcc_90)

    @property
    def wrvu(self) -> PercentilePoints:
        return PercentilePoints(
            p25=self.wrvu_25, p50=self.wrvu_50, p75=self.wrvu_75, p90=self.wrvu_90
        )

    @property
    def cf(self) -> PercentilePoints:
        return PercentilePoints(p25=self.cf_25, p50=self.cf_50, p75=self.cf_75, p90=self.cf_90)
