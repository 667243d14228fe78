"""Pricing-strategy descriptors.

A :class:`PricingStrategy` tells the generic quote calculator what a service
sells: its two pricing options, which special items it carries, whether a
volume tier exists, which forced option waives installation, and how the
first visit is billed. It also owns the service's static default rate
schedule and the raw-document field map used by the config normalizer.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from ..services.override_graph import OverrideGraph


class FirstVisitRule(str, enum.Enum):
    # First visit = installation + service lines an install does not cover.
    INSTALL_REPLACES_COVERED = "install_replaces_covered"
    # First visit = installation only (service starts on the second visit).
    INSTALL_ONLY = "install_only"


@dataclass(frozen=True)
class OptionSpec:
    key: str
    label: str


@dataclass(frozen=True)
class SpecialItemSpec:
    key: str
    label: str
    # QuoteInput flag that must be set for the item to bill (e.g. needs_plumbing)
    gate: Optional[str] = None
    allow_one_time: bool = False


PRIMARY_INPUTS = frozenset(
    {"units", "volume_units", "volume_tier", "all_inclusive", "forced_option", "service_variant"}
)
CONDITION_INPUTS = frozenset({"facility_condition", "condition_units", "is_new_install"})

TOTAL_FIELDS = (
    "per_visit",
    "installation",
    "first_visit",
    "first_month",
    "monthly_recurring",
    "contract_total",
)


@dataclass(frozen=True)
class PricingStrategy:
    service_id: str
    label: str
    options: Tuple[OptionSpec, ...]
    default_config: Mapping[str, Any]
    unit_label: str = "unit"
    special_items: Tuple[SpecialItemSpec, ...] = ()
    volume_tier: bool = False
    # Forcing this option turns the volume tier off
    volume_blocking_option: Optional[str] = None
    # Forcing this option waives the condition-based installation
    install_waiver_option: Optional[str] = None
    condition_install_requires_new_install: bool = False
    per_unit_install: bool = False
    # Option whose per-unit rate and minimum come from the selected variant
    variant_option: Optional[str] = None
    first_visit_rule: FirstVisitRule = FirstVisitRule.INSTALL_REPLACES_COVERED
    # raw document path (dotted, legacy flat or nested) -> canonical path
    field_map: Mapping[str, str] = field(default_factory=dict)
    display_names: Mapping[str, str] = field(default_factory=dict)

    @property
    def option_keys(self) -> Tuple[str, ...]:
        return tuple(o.key for o in self.options)

    def item(self, key: str) -> Optional[SpecialItemSpec]:
        for spec in self.special_items:
            if spec.key == key:
                return spec
        return None

    def item_fields(self, spec: SpecialItemSpec) -> Tuple[str, ...]:
        """Override fields that belong to one special item."""
        names = [f"{spec.key}_rate", f"{spec.key}_service", f"{spec.key}_install_rate", f"{spec.key}_install"]
        if spec.allow_one_time:
            names.append(f"{spec.key}_one_time")
        return tuple(names)

    def display_name(self, field_name: str) -> str:
        if field_name in self.display_names:
            return self.display_names[field_name]
        return field_name.replace("_", " ").title()

    def build_override_graph(self) -> OverrideGraph:
        """Declare every override-eligible field with its input and field deps."""
        inputs: Dict[str, FrozenSet[str]] = {}
        upstream: Dict[str, FrozenSet[str]] = {}

        option_rates = []
        for opt in self.options:
            for suffix in ("base_charge", "per_unit_rate"):
                name = f"{opt.key}_{suffix}"
                option_rates.append(name)
                inputs[name] = PRIMARY_INPUTS
        inputs["primary_service"] = PRIMARY_INPUTS
        upstream["primary_service"] = frozenset(option_rates)

        service_lines = ["primary_service"]
        install_lines = ["condition_install"]
        one_time_lines = []

        if self.volume_tier:
            volume_inputs = PRIMARY_INPUTS | {"install_frequency"}
            inputs["volume_rate"] = volume_inputs
            inputs["volume_service"] = volume_inputs
            upstream["volume_service"] = frozenset({"volume_rate"})
            service_lines.append("volume_service")

        for spec in self.special_items:
            deps = {f"special_items.{spec.key}"}
            if spec.gate:
                deps.add(spec.gate)
            if spec.allow_one_time:
                deps.add("one_time_items")
            item_inputs = frozenset(deps)
            inputs[f"{spec.key}_rate"] = item_inputs
            inputs[f"{spec.key}_service"] = item_inputs
            upstream[f"{spec.key}_service"] = frozenset({f"{spec.key}_rate"})
            service_lines.append(f"{spec.key}_service")
            if spec.allow_one_time:
                inputs[f"{spec.key}_one_time"] = item_inputs
                upstream[f"{spec.key}_one_time"] = frozenset({f"{spec.key}_rate"})
                one_time_lines.append(f"{spec.key}_one_time")
            install_inputs = item_inputs | {"waived_installs"}
            inputs[f"{spec.key}_install_rate"] = install_inputs
            inputs[f"{spec.key}_install"] = install_inputs
            upstream[f"{spec.key}_install"] = frozenset({f"{spec.key}_install_rate"})
            install_lines.append(f"{spec.key}_install")

        inputs["condition_multiplier"] = PRIMARY_INPUTS | CONDITION_INPUTS
        inputs["condition_install"] = PRIMARY_INPUTS | CONDITION_INPUTS
        upstream["condition_install"] = frozenset(option_rates + ["condition_multiplier"])

        if self.per_unit_install:
            unit_inputs = frozenset({"units", "is_new_install", "install_units"})
            inputs["unit_install_rate"] = unit_inputs
            inputs["unit_install"] = unit_inputs
            upstream["unit_install"] = frozenset({"unit_install_rate"})
            install_lines.append("unit_install")

        inputs["minimum_charge"] = frozenset({"service_variant"})
        inputs["rate_multiplier"] = frozenset({"rate_category"})

        inputs["per_visit"] = frozenset({"rate_category"})
        upstream["per_visit"] = frozenset(service_lines + ["minimum_charge", "rate_multiplier"])
        inputs["installation"] = frozenset()
        upstream["installation"] = frozenset(install_lines)
        inputs["first_visit"] = frozenset()
        upstream["first_visit"] = frozenset(["per_visit", "installation", "rate_multiplier"] + service_lines + one_time_lines)
        inputs["monthly_recurring"] = frozenset({"frequency"})
        upstream["monthly_recurring"] = frozenset({"per_visit"})
        inputs["first_month"] = frozenset({"frequency"})
        upstream["first_month"] = frozenset({"first_visit", "per_visit"})
        inputs["contract_total"] = frozenset({"frequency", "contract_months"})
        upstream["contract_total"] = frozenset({"first_visit", "per_visit", "first_month", "monthly_recurring"})

        return OverrideGraph(inputs=inputs, upstream=upstream)
