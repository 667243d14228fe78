from decimal import Decimal

from fieldquote.schemas.quote import QuoteInput
from fieldquote.service_types import get_strategy
from fieldquote.services.config_normalizer import build_config
from fieldquote.services.quote_calculator import QuoteCalculator, calculate

FOAMING = get_strategy("foamingDrain")
SANIPOD = get_strategy("sanipod")
STRIP_WAX = get_strategy("stripWax")


def _quote(strategy, overrides=None, config=None, **fields):
    config = config or build_config(strategy)
    return calculate(strategy, QuoteInput(**fields), config, overrides)


def test_cheaper_alternate_option_weekly_contract():
    config = build_config(FOAMING, {"minimum_charge_per_visit": "0"})
    result = _quote(FOAMING, config=config, units=5, frequency="weekly")

    assert result.chosen_option == "alternate"
    assert result.per_visit == Decimal("40.00")
    assert result.installation_total == Decimal("0.00")
    assert result.first_visit == Decimal("40.00")
    assert result.monthly_recurring == Decimal("173.20")
    assert result.first_month == Decimal("173.20")
    assert result.contract_months == 12
    assert result.contract_total == Decimal("2078.40")
    assert result.frequency_class == "month"


def test_volume_tier_bills_all_units_at_install_rate():
    result = _quote(FOAMING, units=12, volume_units=12, frequency="weekly", install_frequency="weekly")

    assert result.volume_tier_applied
    assert result.chosen_option is None
    assert result.per_visit == Decimal("240.00")
    assert result.installation_total == Decimal("0.00")
    assert result.first_visit == Decimal("240.00")
    assert [line.key for line in result.lines] == ["volume_service"]


def test_volume_tier_rate_follows_install_frequency():
    result = _quote(FOAMING, units=12, volume_units=12, install_frequency="bimonthly")
    assert result.per_visit == Decimal("120.00")
    assert result.effective("volume_rate") == Decimal("10")


def test_volume_tier_below_threshold_needs_explicit_flag():
    below = _quote(FOAMING, units=8, volume_units=8)
    assert not below.volume_tier_applied
    assert below.chosen_option == "alternate"

    forced_on = _quote(FOAMING, units=8, volume_units=8, volume_tier=True)
    assert forced_on.volume_tier_applied
    assert forced_on.per_visit == Decimal("160.00")

    forced_off = _quote(FOAMING, units=12, volume_units=12, volume_tier=False)
    assert not forced_off.volume_tier_applied


def test_volume_tier_blocked_by_forced_standard_and_all_inclusive():
    forced = _quote(FOAMING, units=12, volume_units=12, forced_option="standard")
    assert not forced.volume_tier_applied
    assert forced.chosen_option == "standard"
    assert forced.per_visit == Decimal("120.00")

    bundled = _quote(FOAMING, units=12, volume_units=12, all_inclusive=True)
    assert not bundled.volume_tier_applied
    assert bundled.per_visit == Decimal("0.00")


def test_partial_volume_leaves_remaining_units_on_options():
    result = _quote(FOAMING, units=12, volume_units=10)
    # 10 × $20 volume + 2 drains at the cheaper of $20 vs $28
    assert result.per_visit == Decimal("220.00")
    assert result.chosen_option == "standard"


def test_cheaper_option_selected_for_pods():
    result = _quote(SANIPOD, units=5)
    assert result.chosen_option == "per_unit"
    assert result.per_visit == Decimal("40.00")


def test_option_tie_goes_to_first_listed():
    config = build_config(FOAMING, {"minimum_charge_per_visit": "0"})
    # 5 × 10 = 50 and 20 + 6 × 5 = 50
    config.options["alternate"].per_unit_rate = Decimal("6")
    result = calculate(FOAMING, QuoteInput(units=5), config)
    assert result.chosen_option == "standard"


def test_unknown_forced_option_falls_back_with_note():
    result = _quote(SANIPOD, units=5, forced_option="premium")
    assert result.chosen_option == "per_unit"
    assert any("premium" in note for note in result.notes)


def test_minimum_charge_applies_only_to_positive_totals():
    floored = _quote(FOAMING, units=3)
    assert floored.chosen_option == "standard"
    assert floored.per_visit == Decimal("50.00")
    assert floored.minimum_charge_applied
    assert floored.field_values["per_visit"].computed == Decimal("50.00")

    empty = _quote(FOAMING, units=0)
    assert empty.per_visit == Decimal("0.00")
    assert not empty.minimum_charge_applied
    assert empty.contract_total == Decimal("0.00")


def test_filthy_installation_replaces_first_standard_visit():
    result = _quote(FOAMING, units=4, facility_condition="Filthy", frequency="weekly")

    assert result.chosen_option == "alternate"
    assert result.per_visit == Decimal("50.00")
    # (20 + 4 × 4) × 3
    assert result.installation_total == Decimal("108.00")
    assert result.first_visit == Decimal("108.00")
    assert result.first_month == Decimal("274.50")
    assert result.monthly_recurring == Decimal("216.50")
    assert result.contract_total == Decimal("2656.00")


def test_filthy_installation_covers_only_affected_drains():
    result = _quote(FOAMING, units=10, condition_units=2, facility_condition="filthy")
    # cheaper option for 10 drains is alternate (60); 2 affected drains cost 28
    assert result.installation_total == Decimal("84.00")


def test_forced_standard_waives_filthy_installation():
    result = _quote(FOAMING, units=4, facility_condition="filthy", forced_option="standard")
    assert result.installation_total == Decimal("0.00")
    assert result.first_visit == result.per_visit
    assert any("waived" in note for note in result.notes)


def test_special_item_installs_cover_their_own_first_service():
    result = _quote(FOAMING, units=0, special_items={"grease_trap": 2})
    assert result.per_visit == Decimal("250.00")
    assert result.installation_total == Decimal("600.00")
    assert result.first_visit == Decimal("600.00")


def test_waived_item_install():
    result = _quote(FOAMING, special_items={"grease_trap": 1}, waived_installs="grease_trap")
    assert result.installation_total == Decimal("0.00")
    assert result.first_visit == Decimal("125.00")


def test_plumbing_addon_requires_flag():
    off = _quote(FOAMING, special_items={"plumbing": 3})
    assert off.per_visit == Decimal("0.00")

    on = _quote(FOAMING, special_items={"plumbing": 3}, needs_plumbing=True)
    assert on.per_visit == Decimal("50.00")
    assert on.field_values["plumbing_service"].effective == Decimal("30.00")


def test_new_pod_install_bills_installation_only_on_first_visit():
    result = _quote(SANIPOD, units=4, is_new_install=True, frequency="weekly")
    assert result.per_visit == Decimal("32.00")
    assert result.installation_total == Decimal("100.00")
    assert result.first_visit == Decimal("100.00")
    assert result.monthly_recurring == Decimal("138.56")
    assert result.first_month == Decimal("206.56")


def test_one_time_extra_bags_move_to_first_visit():
    result = _quote(SANIPOD, units=4, special_items={"extra_bags": 10}, one_time_items=["extra_bags"])
    assert result.per_visit == Decimal("32.00")
    assert result.first_visit == Decimal("52.00")

    recurring = _quote(SANIPOD, units=4, special_items={"extra_bags": 10})
    assert recurring.per_visit == Decimal("52.00")
    assert recurring.first_visit == Decimal("52.00")


def test_rate_category_multiplier():
    result = _quote(SANIPOD, units=4, rate_category="greenRate")
    assert result.rate_category == "greenRate"
    assert result.per_visit == Decimal("41.60")

    unknown = _quote(SANIPOD, units=4, rate_category="purple")
    assert unknown.rate_category == "redRate"
    assert unknown.per_visit == Decimal("32.00")
    assert any("purple" in note for note in unknown.notes)


def test_strip_wax_variants_and_minimums():
    full = _quote(STRIP_WAX, units=1000)
    assert full.service_variant == "standardFull"
    assert full.per_visit == Decimal("750.00")

    green = _quote(STRIP_WAX, units=1000, rate_category="greenRate")
    assert green.per_visit == Decimal("975.00")

    small = _quote(STRIP_WAX, units=500, service_variant="wellMaintained", rate_category="greenRate")
    # 500 × 0.40 = 200, floored to the variant minimum of 400, then × 1.3
    assert small.minimum_charge == Decimal("400.00")
    assert small.minimum_charge_applied
    assert small.per_visit == Decimal("520.00")

    unknown = _quote(STRIP_WAX, units=1000, service_variant="bogus")
    assert unknown.service_variant == "standardFull"
    assert any("bogus" in note for note in unknown.notes)


def test_visit_based_contract():
    result = _quote(STRIP_WAX, units=1000, frequency="quarterly")
    assert result.frequency_class == "visit"
    assert result.first_month == Decimal("750.00")
    assert result.monthly_recurring == Decimal("249.75")
    assert result.contract_total == Decimal("3000.00")


def test_bimonthly_visit_count():
    result = _quote(FOAMING, units=5, frequency="bimonthly", contract_months=12)
    assert result.per_visit == Decimal("50.00")
    assert result.contract_total == Decimal("300.00")


def test_contract_months_are_clamped():
    long = _quote(FOAMING, units=5, contract_months=48)
    assert long.contract_months == 36
    assert any("clamped" in note for note in long.notes)

    short = _quote(FOAMING, units=5, contract_months=1)
    assert short.contract_months == 2

    default = _quote(FOAMING, units=5, contract_months=0)
    assert default.contract_months == 12


def test_unknown_or_disallowed_frequency_uses_default():
    unknown = _quote(FOAMING, units=5, frequency="fortnightly")
    assert unknown.frequency == "weekly"
    assert any("fortnightly" in note for note in unknown.notes)

    # one-time service is not offered for foaming drains
    disallowed = _quote(FOAMING, units=5, frequency="one-time")
    assert disallowed.frequency == "weekly"


def test_invalid_quantities_quote_as_zero():
    result = _quote(FOAMING, units="abc", volume_units=-4, special_items={"grease_trap": "NaN"})
    assert result.per_visit == Decimal("0.00")
    assert result.contract_total == Decimal("0.00")


def test_overrides_flow_downstream():
    config = build_config(FOAMING, {"minimum_charge_per_visit": "0"})

    rate = _quote(FOAMING, {"alternate_per_unit_rate": Decimal("2")}, config=config, units=5)
    assert rate.per_visit == Decimal("30.00")
    assert rate.monthly_recurring == Decimal("129.90")

    total = _quote(FOAMING, {"per_visit": Decimal("100")}, config=config, units=5)
    assert total.per_visit == Decimal("100.00")
    assert total.monthly_recurring == Decimal("433.00")
    value = total.field_values["per_visit"]
    assert value.computed == Decimal("40.00")
    assert value.effective == Decimal("100.00")
    assert value.overridden

    contract = _quote(FOAMING, {"contract_total": Decimal("999")}, config=config, units=5)
    assert contract.contract_total == Decimal("999.00")


def test_cleared_override_is_distinct_from_zero():
    config = build_config(FOAMING, {"minimum_charge_per_visit": "0"})
    cleared = _quote(FOAMING, {"per_visit": None}, config=config, units=5)
    assert cleared.per_visit == Decimal("40.00")
    assert not cleared.field_values["per_visit"].overridden

    zero = _quote(FOAMING, {"per_visit": Decimal("0")}, config=config, units=5)
    assert zero.per_visit == Decimal("0.00")
    assert zero.monthly_recurring == Decimal("0.00")


def test_installation_override_feeds_first_visit():
    result = _quote(FOAMING, {"grease_trap_install_rate": Decimal("250")}, special_items={"grease_trap": 1})
    assert result.installation_total == Decimal("250.00")
    assert result.first_visit == Decimal("250.00")


def test_calculation_is_pure():
    config = build_config(FOAMING)
    inp = QuoteInput(units=7, facility_condition="filthy", special_items={"green_drain": 2})
    calculator = QuoteCalculator(FOAMING)
    first = calculator.calculate(inp, config, {"per_visit": Decimal("90")})
    second = calculator.calculate(inp, config, {"per_visit": Decimal("90")})
    assert first == second
    assert inp.units == Decimal("7")
