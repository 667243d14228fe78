"""Canonical pricing configuration.

Every raw document (legacy flat or nested) is translated into this shape by
:mod:`fieldquote.services.config_normalizer` before calculation code sees it.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class OptionRate(BaseModel):
    """One pricing shape for the primary deliverable: ``base + rate × units``."""

    base_charge: Decimal = Decimal("0")
    per_unit_rate: Decimal = Decimal("0")
    label: Optional[str] = None


class VolumeTier(BaseModel):
    # 0 disables threshold-based eligibility (only an explicit flag enables it)
    threshold: Decimal = Decimal("0")
    rates: Dict[str, Decimal] = Field(default_factory=dict)  # install frequency -> per-unit rate
    default_frequency: str = "weekly"


class SpecialItemRate(BaseModel):
    per_visit_rate: Decimal = Decimal("0")
    install_rate: Decimal = Decimal("0")
    label: Optional[str] = None


class InstallationRates(BaseModel):
    condition_multipliers: Dict[str, Decimal] = Field(default_factory=dict)
    per_unit_rate: Decimal = Decimal("0")


class ContractBounds(BaseModel):
    min_months: int = 2
    max_months: int = 36
    default_months: int = 12

    @model_validator(mode="after")
    def order_bounds(self) -> "ContractBounds":
        if self.max_months < self.min_months:
            self.min_months, self.max_months = self.max_months, self.min_months
        self.default_months = min(max(self.default_months, self.min_months), self.max_months)
        return self


class RateCategory(BaseModel):
    multiplier: Decimal = Decimal("1")
    commission_rate: Optional[str] = None


class ServiceVariant(BaseModel):
    per_unit_rate: Decimal = Decimal("0")
    minimum_charge: Decimal = Decimal("0")
    label: Optional[str] = None


class FrequencyMeta(BaseModel):
    monthly_multiplier: Optional[Decimal] = None
    first_month_extra_multiplier: Optional[Decimal] = None
    cycle_months: Optional[Decimal] = None
    annual_multiplier: Optional[Decimal] = None


class PricingConfig(BaseModel):
    service_id: str
    version: str = "static"
    label: Optional[str] = None

    options: Dict[str, OptionRate] = Field(default_factory=dict)
    volume_tier: VolumeTier = Field(default_factory=VolumeTier)
    special_items: Dict[str, SpecialItemRate] = Field(default_factory=dict)
    installation: InstallationRates = Field(default_factory=InstallationRates)
    minimum_charge_per_visit: Decimal = Decimal("0")

    contract: ContractBounds = Field(default_factory=ContractBounds)
    rate_categories: Dict[str, RateCategory] = Field(default_factory=dict)
    default_rate_category: Optional[str] = None
    variants: Dict[str, ServiceVariant] = Field(default_factory=dict)
    default_variant: Optional[str] = None

    default_frequency: str = "weekly"
    allowed_frequencies: List[str] = Field(default_factory=list)
    frequency_metadata: Dict[str, FrequencyMeta] = Field(default_factory=dict)
