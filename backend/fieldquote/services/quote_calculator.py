"""Tiered quote calculation.

``calculate`` is a pure function of the operator input, the resolved config
and the override set. The strategy descriptor decides which tiers and items
exist for a service; everything else is shared:

1. units on the volume tier bill at the tier rate for the install frequency
2. the remaining billable units take the cheaper pricing option (or the
   forced one)
3. special items add their own per-visit lines, optionally gated by a flag
   or moved onto the first visit as one-time charges
4. a nonzero subtotal is floored at the minimum, then the rate-category
   multiplier applies
5. installation combines the facility-condition surcharge, per-unit new
   install charges and each special item's install rate
6. the first visit replaces the service an install already covers
7. the frequency and contract term turn per-visit pricing into monthly and
   contract totals

Every rate, line and total is passed through the override set before the
next step reads it. Amounts are rounded to cents only on the result.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Tuple

from ..schemas.pricing_config import OptionRate, PricingConfig, SpecialItemRate
from ..schemas.quote import FieldValue, QuoteInput, QuoteLine, QuoteResult
from ..service_types.base import FirstVisitRule, PricingStrategy
from ..utils.numbers import ZERO, money
from .contract import accumulate
from .frequency import FrequencyConverter, normalize_frequency_key

logger = logging.getLogger(__name__)

ONE = Decimal("1")


class _FieldBook:
    """Resolves each field through the override set and remembers both values."""

    def __init__(self, overrides: Optional[Mapping[str, Optional[Decimal]]]):
        self.overrides = {k: v for k, v in (overrides or {}).items() if v is not None}
        self.values: Dict[str, Tuple[Decimal, Decimal, bool]] = {}
        self.amounts: set = set()

    def resolve(self, field: str, computed: Decimal, *, amount: bool = True) -> Decimal:
        effective = self.overrides.get(field, computed)
        self.values[field] = (computed, effective, field in self.overrides)
        if amount:
            self.amounts.add(field)
        return effective

    def rate(self, field: str, computed: Decimal) -> Decimal:
        return self.resolve(field, computed, amount=False)

    def as_field_values(self) -> Dict[str, FieldValue]:
        out = {}
        for field, (computed, effective, overridden) in self.values.items():
            if field in self.amounts:
                computed, effective = money(computed), money(effective)
            out[field] = FieldValue(computed=computed, effective=effective, overridden=overridden)
        return out


def _pick_key(requested: Optional[str], available: Mapping[str, object], default: Optional[str]) -> Optional[str]:
    if requested and requested in available:
        return requested
    if default and default in available:
        return default
    return next(iter(available), None)


def calculate(
    strategy: PricingStrategy,
    quote_input: QuoteInput,
    config: PricingConfig,
    overrides: Optional[Mapping[str, Optional[Decimal]]] = None,
) -> QuoteResult:
    inp = quote_input
    book = _FieldBook(overrides)
    notes: List[str] = []
    lines: List[QuoteLine] = []

    # -- selections ----------------------------------------------------------
    variant_key = None
    minimum = config.minimum_charge_per_visit
    variant_rate: Optional[Decimal] = None
    if strategy.variant_option and config.variants:
        variant_key = _pick_key(inp.service_variant, config.variants, config.default_variant)
        if inp.service_variant and inp.service_variant != variant_key:
            notes.append(f"Unknown variant '{inp.service_variant}'; using {variant_key}")
        variant = config.variants[variant_key]
        variant_rate = variant.per_unit_rate
        minimum = variant.minimum_charge

    category_key = None
    multiplier = ONE
    if config.rate_categories:
        category_key = _pick_key(inp.rate_category, config.rate_categories, config.default_rate_category)
        if inp.rate_category and inp.rate_category != category_key:
            notes.append(f"Unknown rate category '{inp.rate_category}'; using {category_key}")
        multiplier = config.rate_categories[category_key].multiplier
    multiplier = book.rate("rate_multiplier", multiplier)

    forced = inp.forced_option
    if forced and forced not in strategy.option_keys:
        notes.append(f"Unknown pricing option '{forced}'; choosing the cheaper option")
        forced = None

    rates: Dict[str, Tuple[Decimal, Decimal]] = {}
    for opt in strategy.options:
        configured = config.options.get(opt.key) or OptionRate()
        per_unit = configured.per_unit_rate
        if opt.key == strategy.variant_option and variant_rate is not None:
            per_unit = variant_rate
        rates[opt.key] = (
            book.rate(f"{opt.key}_base_charge", configured.base_charge),
            book.rate(f"{opt.key}_per_unit_rate", per_unit),
        )

    # -- volume tier ---------------------------------------------------------
    units = inp.units
    volume_units = ZERO
    volume_applied = False
    if strategy.volume_tier:
        tier = config.volume_tier
        if inp.volume_tier is not None:
            eligible = inp.volume_tier
        else:
            eligible = tier.threshold > ZERO and units >= tier.threshold
        if eligible and inp.all_inclusive:
            notes.append("Volume pricing not available on all-inclusive accounts")
            eligible = False
        if eligible and forced and forced == strategy.volume_blocking_option:
            notes.append(f"Volume pricing disabled by forced {forced} option")
            eligible = False
        if eligible:
            volume_units = min(inp.volume_units, units)

        install_key = normalize_frequency_key(inp.install_frequency)
        if install_key not in tier.rates:
            if inp.install_frequency and volume_units > ZERO:
                notes.append(f"No volume rate for '{inp.install_frequency}'; using {tier.default_frequency}")
            install_key = tier.default_frequency
        volume_rate = book.rate("volume_rate", tier.rates.get(install_key, ZERO))
        volume_line = book.resolve("volume_service", volume_rate * volume_units)
        volume_applied = volume_units > ZERO
        if volume_applied:
            notes.append(f"Volume pricing applied to {volume_units} {strategy.unit_label}(s)")
            lines.append(QuoteLine(key="volume_service", label="Volume tier", kind="service", quantity=volume_units, amount=money(volume_line)))
    else:
        volume_line = ZERO

    # -- primary option ------------------------------------------------------
    billable = ZERO if inp.all_inclusive else units - volume_units
    if inp.all_inclusive and units > ZERO:
        notes.append("All-inclusive: standard units bundled at no charge")

    totals = {key: base + per_unit * billable for key, (base, per_unit) in rates.items()}
    chosen: Optional[str] = None
    if billable > ZERO:
        if forced:
            chosen = forced
            notes.append(f"Forced {forced} pricing option")
        else:
            # first listed option wins ties
            chosen = min(strategy.option_keys, key=lambda k: totals[k])
            if chosen != strategy.option_keys[0]:
                notes.append(f"{chosen} option is cheaper")
    primary = book.resolve("primary_service", totals[chosen] if chosen else ZERO)
    if chosen:
        lines.append(QuoteLine(key="primary_service", label=strategy.label, kind="service", quantity=billable, amount=money(primary)))

    # -- special items -------------------------------------------------------
    item_lines: Dict[str, Decimal] = {}
    item_installs: Dict[str, Decimal] = {}
    one_time_total = ZERO
    for spec in strategy.special_items:
        configured = config.special_items.get(spec.key) or SpecialItemRate()
        count = inp.item_count(spec.key)
        if spec.gate and not getattr(inp, spec.gate, False):
            count = ZERO
        label = configured.label or spec.label
        rate = book.rate(f"{spec.key}_rate", configured.per_visit_rate)
        one_time = spec.allow_one_time and spec.key in inp.one_time_items
        if one_time:
            item_lines[spec.key] = book.resolve(f"{spec.key}_service", ZERO)
            charge = book.resolve(f"{spec.key}_one_time", rate * count)
            one_time_total += charge
            if charge:
                lines.append(QuoteLine(key=f"{spec.key}_one_time", label=label, kind="one_time", quantity=count, amount=money(charge)))
        else:
            item_lines[spec.key] = book.resolve(f"{spec.key}_service", rate * count)
            if spec.allow_one_time:
                book.resolve(f"{spec.key}_one_time", ZERO)
            if item_lines[spec.key]:
                lines.append(QuoteLine(key=f"{spec.key}_service", label=label, kind="service", quantity=count, amount=money(item_lines[spec.key])))

        install_rate = book.rate(f"{spec.key}_install_rate", configured.install_rate)
        waived = spec.key in inp.waived_installs
        item_installs[spec.key] = book.resolve(f"{spec.key}_install", ZERO if waived else install_rate * count)
        if waived and install_rate * count > ZERO:
            notes.append(f"{label} installation waived")
        if item_installs[spec.key]:
            lines.append(QuoteLine(key=f"{spec.key}_install", label=f"{label} install", kind="install", quantity=count, amount=money(item_installs[spec.key])))

    # -- per-visit total -----------------------------------------------------
    raw_service = primary + volume_line + sum(item_lines.values(), ZERO)
    minimum = book.rate("minimum_charge", minimum)
    minimum_applied = ZERO < raw_service < minimum
    floored = max(raw_service, minimum) if raw_service > ZERO else ZERO
    if minimum_applied:
        notes.append(f"Minimum charge of {money(minimum)} applied")
    if multiplier != ONE and floored > ZERO:
        notes.append(f"Rate multiplier {multiplier} applied")
    per_visit = book.resolve("per_visit", floored * multiplier)

    # -- installation --------------------------------------------------------
    condition_mult = config.installation.condition_multipliers.get(inp.facility_condition, ZERO)
    condition_mult = book.rate("condition_multiplier", condition_mult)
    condition_cost = ZERO
    if chosen and condition_mult > ZERO:
        waived = bool(strategy.install_waiver_option) and forced == strategy.install_waiver_option
        applies = inp.is_new_install or not strategy.condition_install_requires_new_install
        if waived:
            notes.append(f"{inp.facility_condition.title()} installation waived by forced {forced} option")
        elif applies:
            affected = min(inp.condition_units, billable) if inp.condition_units > ZERO else billable
            base, per_unit = rates[chosen]
            condition_cost = (base + per_unit * affected) * condition_mult
    condition_install = book.resolve("condition_install", condition_cost)
    if condition_install:
        lines.append(QuoteLine(key="condition_install", label=f"{inp.facility_condition.title()} installation", kind="install", quantity=ONE, amount=money(condition_install)))

    install_parts = [condition_install] + list(item_installs.values())
    if strategy.per_unit_install:
        unit_rate = book.rate("unit_install_rate", config.installation.per_unit_rate)
        installed = (inp.install_units or units) if inp.is_new_install else ZERO
        unit_install = book.resolve("unit_install", unit_rate * installed)
        install_parts.append(unit_install)
        if unit_install:
            lines.append(QuoteLine(key="unit_install", label="New install", kind="install", quantity=installed, amount=money(unit_install)))
    installation = book.resolve("installation", sum(install_parts, ZERO))

    # -- first visit ---------------------------------------------------------
    has_one_time = installation > ZERO or one_time_total > ZERO
    if not has_one_time:
        first_visit_computed = per_visit
    elif installation <= ZERO:
        first_visit_computed = per_visit + one_time_total
    elif strategy.first_visit_rule is FirstVisitRule.INSTALL_ONLY:
        first_visit_computed = installation + one_time_total
        notes.append("First visit covers installation only")
    else:
        uncovered = volume_line
        if condition_install <= ZERO:
            uncovered += primary
        for key, amount in item_lines.items():
            if item_installs[key] <= ZERO:
                uncovered += amount
        first_visit_computed = installation + uncovered * multiplier + one_time_total
    first_visit = book.resolve("first_visit", first_visit_computed)

    # -- frequency & term ----------------------------------------------------
    converter = FrequencyConverter(config.frequency_metadata, default_frequency=config.default_frequency)
    frequency_key, recognized = converter.resolve_key(inp.frequency)
    if not recognized:
        notes.append(f"Unknown frequency '{inp.frequency}'; using {frequency_key}")
    if config.allowed_frequencies and frequency_key not in config.allowed_frequencies:
        notes.append(f"{frequency_key} is not offered; using {converter.default_key}")
        frequency_key = converter.default_key
    frequency = converter.convert(frequency_key)

    bounds = config.contract
    months = inp.contract_months or bounds.default_months
    clamped = min(max(months, bounds.min_months), bounds.max_months)
    if clamped != months:
        notes.append(f"Contract length {months} months clamped to {clamped}")

    figures = accumulate(
        frequency,
        per_visit,
        first_visit,
        clamped,
        has_one_time_charges=has_one_time,
        resolve=book.resolve,
    )

    logger.debug(
        "Quoted %s: per_visit=%s first_visit=%s contract=%s",
        strategy.service_id,
        per_visit,
        first_visit,
        figures.contract_total,
    )

    return QuoteResult(
        service_id=strategy.service_id,
        config_version=config.version,
        per_visit=money(per_visit),
        first_visit=money(first_visit),
        first_month=money(figures.first_month),
        monthly_recurring=money(figures.monthly_recurring),
        contract_total=money(figures.contract_total),
        installation_total=money(installation),
        frequency=frequency.key,
        frequency_class=frequency.billing.value,
        contract_months=clamped,
        chosen_option=chosen,
        rate_category=category_key,
        service_variant=variant_key,
        volume_tier_applied=volume_applied,
        minimum_charge=money(minimum),
        minimum_charge_applied=minimum_applied,
        lines=lines,
        field_values=book.as_field_values(),
        notes=notes,
    )


class QuoteCalculator:
    """Binds :func:`calculate` to one service's strategy."""

    def __init__(self, strategy: PricingStrategy):
        self.strategy = strategy

    def calculate(
        self,
        quote_input: QuoteInput,
        config: PricingConfig,
        overrides: Optional[Mapping[str, Optional[Decimal]]] = None,
    ) -> QuoteResult:
        return calculate(self.strategy, quote_input, config, overrides)
