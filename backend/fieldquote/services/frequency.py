"""Billing frequency conversion.

Maps a frequency key to the multipliers the contract math needs and decides
whether the frequency bills by calendar month or by discrete visit. Values
come from the resolved config's ``frequency_metadata``; anything missing is
taken from the static table below (weekly ≈ 52 / 12 = 4.33 visits a month).
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Optional

from ..schemas.pricing_config import FrequencyMeta

logger = logging.getLogger(__name__)


class FrequencyClass(str, enum.Enum):
    MONTH = "month"
    VISIT = "visit"


FREQUENCY_KEYS = (
    "oneTime",
    "weekly",
    "biweekly",
    "twicePerMonth",
    "monthly",
    "bimonthly",
    "quarterly",
    "biannual",
    "annual",
)

MONTH_BASED = frozenset({"weekly", "biweekly", "twicePerMonth", "monthly"})

# key -> (monthly multiplier, annual multiplier, cycle months)
_FALLBACK: dict[str, tuple[Decimal, Decimal, Optional[Decimal]]] = {
    "oneTime": (Decimal("0"), Decimal("1"), None),
    "weekly": (Decimal("4.33"), Decimal("52"), None),
    "biweekly": (Decimal("2.165"), Decimal("26"), None),
    "twicePerMonth": (Decimal("2"), Decimal("24"), None),
    "monthly": (Decimal("1"), Decimal("12"), Decimal("1")),
    "bimonthly": (Decimal("0.5"), Decimal("6"), Decimal("2")),
    "quarterly": (Decimal("0.333"), Decimal("4"), Decimal("3")),
    "biannual": (Decimal("0.167"), Decimal("2"), Decimal("6")),
    "annual": (Decimal("0.083"), Decimal("1"), Decimal("12")),
}

_ALIASES = {key.lower(): key for key in FREQUENCY_KEYS}
_ALIASES.update(
    {
        "once": "oneTime",
        "onetimeservice": "oneTime",
        "everyotherweek": "biweekly",
        "2xmonth": "twicePerMonth",
        "2xpermonth": "twicePerMonth",
        "twiceamonth": "twicePerMonth",
        "semimonthly": "twicePerMonth",
        "everytwomonths": "bimonthly",
        "every2months": "bimonthly",
        "semiannual": "biannual",
        "semiannually": "biannual",
        "yearly": "annual",
        "annually": "annual",
    }
)


def normalize_frequency_key(raw: Optional[str]) -> Optional[str]:
    """Return the canonical key for loose spellings, or None if unknown.

    ``"Twice Per Month"``, ``"bi-weekly"`` and ``"one_time"`` all resolve.
    """
    if not raw:
        return None
    compact = re.sub(r"[\s_\-/×]+", "", str(raw)).lower()
    return _ALIASES.get(compact)


@dataclass(frozen=True)
class FrequencySpec:
    key: str
    monthly_multiplier: Decimal
    annual_multiplier: Decimal
    cycle_months: Optional[Decimal]
    first_month_extra_multiplier: Decimal
    billing: FrequencyClass

    @property
    def is_one_time(self) -> bool:
        return self.key == "oneTime"

    @property
    def is_month_based(self) -> bool:
        return self.billing is FrequencyClass.MONTH


def classify(key: str) -> FrequencyClass:
    return FrequencyClass.MONTH if key in MONTH_BASED else FrequencyClass.VISIT


class FrequencyConverter:
    """Resolve frequency keys against a config's metadata table."""

    def __init__(
        self,
        metadata: Optional[Mapping[str, FrequencyMeta]] = None,
        *,
        default_frequency: str = "weekly",
    ) -> None:
        self._metadata = dict(metadata or {})
        self._default = normalize_frequency_key(default_frequency) or "weekly"

    @property
    def default_key(self) -> str:
        return self._default

    def resolve_key(self, raw: Optional[str]) -> tuple[str, bool]:
        """Return ``(key, recognized)``; unknown input maps to the default."""
        key = normalize_frequency_key(raw)
        if key is None:
            if raw:
                logger.debug("Unknown frequency %r; using %s", raw, self._default)
            return self._default, raw is None or not str(raw).strip()
        return key, True

    def convert(self, raw: Optional[str]) -> FrequencySpec:
        key, _ = self.resolve_key(raw)
        monthly, annual, cycle = _FALLBACK[key]
        meta = self._metadata.get(key)

        if meta is not None:
            if meta.cycle_months is not None and meta.cycle_months > 0:
                cycle = meta.cycle_months
                if meta.monthly_multiplier is None:
                    monthly = Decimal("1") / cycle
                if meta.annual_multiplier is None:
                    annual = Decimal("12") / cycle
            if meta.monthly_multiplier is not None:
                monthly = meta.monthly_multiplier
            if meta.annual_multiplier is not None:
                annual = meta.annual_multiplier

        extra = monthly - Decimal("1")
        if meta is not None and meta.first_month_extra_multiplier is not None:
            extra = meta.first_month_extra_multiplier

        return FrequencySpec(
            key=key,
            monthly_multiplier=monthly,
            annual_multiplier=annual,
            cycle_months=cycle,
            first_month_extra_multiplier=max(extra, Decimal("0")),
            billing=classify(key),
        )
