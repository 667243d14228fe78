"""SaniPod feminine hygiene units.

Pods bill at ``$8 / pod`` or ``$3 / pod + $40``, whichever is cheaper. Extra
bags bill per bag, either every visit or once on the first visit. New
installs cost a flat amount per pod, and the first visit of a new install
carries only the installation (service starts on the following visit).
"""

from .base import FirstVisitRule, OptionSpec, PricingStrategy, SpecialItemSpec

DEFAULT_CONFIG = {
    "label": "SaniPod",
    "options": {
        "per_unit": {"base_charge": "0", "per_unit_rate": "8", "label": "$8 / pod"},
        "base_plus_unit": {"base_charge": "40", "per_unit_rate": "3", "label": "$3 / pod + $40"},
    },
    "special_items": {
        "extra_bags": {"per_visit_rate": "2", "install_rate": "0", "label": "Extra bags"},
    },
    "installation": {"per_unit_rate": "25"},
    "minimum_charge_per_visit": "0",
    "contract": {"min_months": 2, "max_months": 36, "default_months": 12},
    "rate_categories": {
        "redRate": {"multiplier": "1", "commission_rate": "20%"},
        "greenRate": {"multiplier": "1.3", "commission_rate": "25%"},
    },
    "default_rate_category": "redRate",
    "default_frequency": "weekly",
}

FIELD_MAP = {
    "altWeeklyRatePerUnit": "options.per_unit.per_unit_rate",
    "weeklyRatePerUnit": "options.base_plus_unit.per_unit_rate",
    "standaloneExtraWeeklyCharge": "options.base_plus_unit.base_charge",
    "extraBagPrice": "special_items.extra_bags.per_visit_rate",
    "installChargePerUnit": "installation.per_unit_rate",
    "pricing.altWeeklyRatePerUnit": "options.per_unit.per_unit_rate",
    "pricing.weeklyRatePerUnit": "options.base_plus_unit.per_unit_rate",
    "pricing.standaloneExtraWeeklyCharge": "options.base_plus_unit.base_charge",
    "pricing.extraBagPrice": "special_items.extra_bags.per_visit_rate",
    "installation.chargePerUnit": "installation.per_unit_rate",
}

STRATEGY = PricingStrategy(
    service_id="sanipod",
    label="SaniPod",
    unit_label="pod",
    options=(
        OptionSpec("per_unit", "Per-pod rate"),
        OptionSpec("base_plus_unit", "Per-pod rate plus account charge"),
    ),
    special_items=(SpecialItemSpec("extra_bags", "Extra bags", allow_one_time=True),),
    per_unit_install=True,
    first_visit_rule=FirstVisitRule.INSTALL_ONLY,
    default_config=DEFAULT_CONFIG,
    field_map=FIELD_MAP,
    display_names={
        "per_unit_per_unit_rate": "Alt Weekly Rate Per Unit",
        "base_plus_unit_per_unit_rate": "Weekly Rate Per Unit",
        "base_plus_unit_base_charge": "Standalone Extra Weekly Charge",
        "extra_bags_rate": "Extra Bag Price",
        "unit_install_rate": "Install Charge Per Unit",
    },
)
