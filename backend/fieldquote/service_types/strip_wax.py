"""Strip & wax floor care, priced by square foot.

The selected variant supplies both the per-square-foot rate and the minimum
charge for a visit.
"""

from .base import FirstVisitRule, OptionSpec, PricingStrategy

DEFAULT_CONFIG = {
    "label": "Strip & Wax",
    "options": {"area": {"base_charge": "0", "per_unit_rate": "0.75", "label": "Per square foot"}},
    "variants": {
        "standardFull": {
            "per_unit_rate": "0.75",
            "minimum_charge": "550",
            "label": "Standard - full strip + sealant",
        },
        "noSealant": {
            "per_unit_rate": "0.70",
            "minimum_charge": "550",
            "label": "No sealant - 4th coat free / discount",
        },
        "wellMaintained": {
            "per_unit_rate": "0.40",
            "minimum_charge": "400",
            "label": "Well maintained - partial strip",
        },
    },
    "default_variant": "standardFull",
    "contract": {"min_months": 2, "max_months": 36, "default_months": 12},
    "rate_categories": {
        "redRate": {"multiplier": "1", "commission_rate": "20%"},
        "greenRate": {"multiplier": "1.3", "commission_rate": "25%"},
    },
    "default_rate_category": "redRate",
    "default_frequency": "weekly",
}

STRATEGY = PricingStrategy(
    service_id="stripWax",
    label="Strip & Wax",
    unit_label="sq ft",
    options=(OptionSpec("area", "Per square foot"),),
    variant_option="area",
    first_visit_rule=FirstVisitRule.INSTALL_REPLACES_COVERED,
    default_config=DEFAULT_CONFIG,
    display_names={
        "area_per_unit_rate": "Rate Per Sq Ft",
        "minimum_charge": "Minimum Charge",
    },
)
