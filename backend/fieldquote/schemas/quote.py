from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..utils.numbers import is_numeric, round_half_up, to_decimal, to_quantity

_TRUTHY = {"1", "true", "yes", "on", "y"}


def _coerce_flag(v: Any) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, str):
        return v.strip().lower() in _TRUTHY
    return to_decimal(v) != 0


def _coerce_names(v: Any) -> List[str]:
    if v is None:
        return []
    if isinstance(v, str):
        return [s.strip() for s in v.split(",") if s.strip()]
    if isinstance(v, (list, tuple, set, frozenset)):
        return [str(s).strip() for s in v if str(s).strip()]
    return []


class QuoteInput(BaseModel):
    """Operator-entered values for one service line.

    Every numeric field is clamped to ``>= 0`` and unreadable values become
    0, so any payload the form can produce is quotable.
    """

    units: Decimal = Decimal("0")  # drains, pods, fixtures, square feet...
    volume_units: Decimal = Decimal("0")  # subset of units on the volume/install tier
    condition_units: Decimal = Decimal("0")  # subset affected by the facility condition; 0 = all
    install_units: Decimal = Decimal("0")  # units installed on a new install; 0 = all
    special_items: Dict[str, Decimal] = Field(default_factory=dict)
    one_time_items: List[str] = Field(default_factory=list)
    waived_installs: List[str] = Field(default_factory=list)

    all_inclusive: bool = False
    needs_plumbing: bool = False
    is_new_install: bool = False
    forced_option: Optional[str] = None
    volume_tier: Optional[bool] = None  # None = threshold decides

    frequency: Optional[str] = None
    install_frequency: Optional[str] = None
    rate_category: Optional[str] = None
    service_variant: Optional[str] = None
    contract_months: Optional[int] = None
    facility_condition: str = "normal"

    @field_validator("units", "volume_units", "condition_units", "install_units", mode="before")
    def coerce_quantity(cls, v: Any) -> Decimal:
        return to_quantity(v)

    @field_validator("special_items", mode="before")
    def coerce_item_counts(cls, v: Any) -> Dict[str, Decimal]:
        if not isinstance(v, dict):
            return {}
        return {str(k): to_quantity(n) for k, n in v.items()}

    @field_validator("one_time_items", "waived_installs", mode="before")
    def coerce_name_list(cls, v: Any) -> List[str]:
        return _coerce_names(v)

    @field_validator("all_inclusive", "needs_plumbing", "is_new_install", mode="before")
    def coerce_flag(cls, v: Any) -> bool:
        return _coerce_flag(v)

    @field_validator("volume_tier", mode="before")
    def coerce_optional_flag(cls, v: Any) -> Optional[bool]:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return _coerce_flag(v)

    @field_validator("contract_months", mode="before")
    def coerce_months(cls, v: Any) -> Optional[int]:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return round_half_up(to_quantity(v))

    @field_validator(
        "forced_option",
        "frequency",
        "install_frequency",
        "rate_category",
        "service_variant",
        mode="before",
    )
    def blank_to_none(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        text = str(v).strip()
        return text or None

    @field_validator("facility_condition", mode="before")
    def default_condition(cls, v: Any) -> str:
        text = str(v).strip().lower() if v is not None else ""
        return text or "normal"

    def item_count(self, key: str) -> Decimal:
        return self.special_items.get(key, Decimal("0"))


class QuoteLine(BaseModel):
    key: str
    label: str
    kind: str  # service | install | one_time
    quantity: Decimal
    amount: Decimal


class FieldValue(BaseModel):
    computed: Decimal
    effective: Decimal
    overridden: bool = False


class QuoteResult(BaseModel):
    service_id: str
    config_version: str

    per_visit: Decimal
    first_visit: Decimal
    first_month: Decimal
    monthly_recurring: Decimal
    contract_total: Decimal
    installation_total: Decimal

    frequency: str
    frequency_class: str  # month | visit
    contract_months: int
    chosen_option: Optional[str] = None
    rate_category: Optional[str] = None
    service_variant: Optional[str] = None
    volume_tier_applied: bool = False
    minimum_charge: Decimal = Decimal("0")
    minimum_charge_applied: bool = False

    lines: List[QuoteLine] = Field(default_factory=list)
    field_values: Dict[str, FieldValue] = Field(default_factory=dict)
    notes: List[str] = Field(default_factory=list)

    def effective(self, field: str) -> Optional[Decimal]:
        value = self.field_values.get(field)
        return value.effective if value is not None else None


class ChangeRecord(BaseModel):
    product_key: str
    field_type: str
    field_display_name: str
    original_value: Decimal
    new_value: Decimal
    change_amount: Decimal
    change_percentage: Decimal
    quantity: Decimal = Decimal("1")
    frequency: str = ""
    timestamp: datetime


class QuoteRequest(BaseModel):
    input: QuoteInput = Field(default_factory=QuoteInput)
    overrides: Dict[str, Optional[Decimal]] = Field(default_factory=dict)
    # override names whose values were not numbers; blank still means "clear"
    invalid_overrides: List[str] = Field(default_factory=list, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def split_overrides(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        raw = data.get("overrides")
        cleaned: Dict[str, Optional[Decimal]] = {}
        invalid: List[str] = []
        for key, value in (raw.items() if isinstance(raw, dict) else ()):
            if value is None or (isinstance(value, str) and not value.strip()):
                cleaned[str(key)] = None
            elif is_numeric(value):
                cleaned[str(key)] = to_quantity(value)
            else:
                invalid.append(str(key))
        return {**data, "overrides": cleaned, "invalid_overrides": invalid}
