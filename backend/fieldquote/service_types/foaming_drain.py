"""Foaming drain treatment.

Standard drains bill at a flat per-drain rate or ``base + per-drain``,
whichever is cheaper. Accounts with ten or more drains may move drains onto
the install program, billed per drain at the rate for the chosen install
frequency. Grease traps and green drains carry their own weekly and one-time
install rates; the plumbing add-on bills only when plumbing work is needed.
A filthy facility pays three times the standard weekly cost of the affected
drains as a one-time installation, waived when the flat per-drain rate is
forced for the whole account.
"""

from .base import FirstVisitRule, OptionSpec, PricingStrategy, SpecialItemSpec

DEFAULT_CONFIG = {
    "label": "Foaming Drain",
    "options": {
        "standard": {"base_charge": "0", "per_unit_rate": "10", "label": "$10 / drain"},
        "alternate": {"base_charge": "20", "per_unit_rate": "4", "label": "$20 + $4 / drain"},
    },
    "volume_tier": {
        "threshold": "10",
        "rates": {"weekly": "20", "bimonthly": "10"},
        "default_frequency": "weekly",
    },
    "special_items": {
        "grease_trap": {"per_visit_rate": "125", "install_rate": "300", "label": "Grease trap"},
        "green_drain": {"per_visit_rate": "5", "install_rate": "100", "label": "Green drain"},
        "plumbing": {"per_visit_rate": "10", "install_rate": "0", "label": "Plumbing add-on"},
    },
    "installation": {"condition_multipliers": {"filthy": "3"}},
    "minimum_charge_per_visit": "50",
    "contract": {"min_months": 2, "max_months": 36, "default_months": 12},
    "default_frequency": "weekly",
    "allowed_frequencies": [
        "weekly",
        "biweekly",
        "twicePerMonth",
        "monthly",
        "bimonthly",
        "quarterly",
        "biannual",
        "annual",
    ],
}

FIELD_MAP = {
    # nested documents
    "standardPricing.standardDrainRate": "options.standard.per_unit_rate",
    "standardPricing.alternateBaseCharge": "options.alternate.base_charge",
    "standardPricing.alternateExtraPerDrain": "options.alternate.per_unit_rate",
    "volumePricing.minimumDrains": "volume_tier.threshold",
    "volumePricing.weeklyRatePerDrain": "volume_tier.rates.weekly",
    "volumePricing.bimonthlyRatePerDrain": "volume_tier.rates.bimonthly",
    "greaseTrapPricing.weeklyRatePerTrap": "special_items.grease_trap.per_visit_rate",
    "greaseTrapPricing.installPerTrap": "special_items.grease_trap.install_rate",
    "greenDrainPricing.weeklyRatePerDrain": "special_items.green_drain.per_visit_rate",
    "greenDrainPricing.installPerDrain": "special_items.green_drain.install_rate",
    "addOns.plumbingWeeklyAddonPerDrain": "special_items.plumbing.per_visit_rate",
    "installationMultipliers.filthyMultiplier": "installation.condition_multipliers.filthy",
    # legacy flat documents
    "standardDrainRate": "options.standard.per_unit_rate",
    "altBaseCharge": "options.alternate.base_charge",
    "altExtraPerDrain": "options.alternate.per_unit_rate",
    "volumeWeeklyRate": "volume_tier.rates.weekly",
    "volumeBimonthlyRate": "volume_tier.rates.bimonthly",
    "greaseWeeklyRate": "special_items.grease_trap.per_visit_rate",
    "greaseInstallRate": "special_items.grease_trap.install_rate",
    "greenWeeklyRate": "special_items.green_drain.per_visit_rate",
    "greenInstallRate": "special_items.green_drain.install_rate",
    "plumbingAddonRate": "special_items.plumbing.per_visit_rate",
    "filthyMultiplier": "installation.condition_multipliers.filthy",
}

STRATEGY = PricingStrategy(
    service_id="foamingDrain",
    label="Foaming Drain",
    unit_label="drain",
    options=(
        OptionSpec("standard", "Standard per-drain rate"),
        OptionSpec("alternate", "Base charge plus per-drain rate"),
    ),
    special_items=(
        SpecialItemSpec("grease_trap", "Grease trap"),
        SpecialItemSpec("green_drain", "Green drain"),
        SpecialItemSpec("plumbing", "Plumbing add-on", gate="needs_plumbing"),
    ),
    volume_tier=True,
    volume_blocking_option="standard",
    install_waiver_option="standard",
    first_visit_rule=FirstVisitRule.INSTALL_REPLACES_COVERED,
    default_config=DEFAULT_CONFIG,
    field_map=FIELD_MAP,
    display_names={
        "standard_per_unit_rate": "Standard Drain Rate",
        "alternate_base_charge": "Alternate Base Charge",
        "alternate_per_unit_rate": "Alternate Extra Per Drain",
        "volume_rate": "Install Program Rate",
        "condition_multiplier": "Filthy Multiplier",
        "per_visit": "Weekly Service",
    },
)
