from decimal import Decimal

import pytest

from fieldquote.schemas.pricing_config import FrequencyMeta
from fieldquote.services.frequency import (
    FrequencyClass,
    FrequencyConverter,
    classify,
    normalize_frequency_key,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("weekly", "weekly"),
        ("Twice Per Month", "twicePerMonth"),
        ("bi-weekly", "biweekly"),
        ("one_time", "oneTime"),
        ("ONE-TIME", "oneTime"),
        ("Every Two Months", "bimonthly"),
        ("semi-annual", "biannual"),
        ("fortnightly", None),
        ("", None),
        (None, None),
    ],
)
def test_normalize_frequency_key(raw, expected):
    assert normalize_frequency_key(raw) == expected


def test_frequency_classes():
    for key in ("weekly", "biweekly", "twicePerMonth", "monthly"):
        assert classify(key) is FrequencyClass.MONTH
    for key in ("oneTime", "bimonthly", "quarterly", "biannual", "annual"):
        assert classify(key) is FrequencyClass.VISIT


def test_static_fallbacks():
    conv = FrequencyConverter()
    weekly = conv.convert("weekly")
    assert weekly.monthly_multiplier == Decimal("4.33")
    assert weekly.annual_multiplier == Decimal("52")
    assert weekly.first_month_extra_multiplier == Decimal("3.33")
    assert weekly.is_month_based

    quarterly = conv.convert("quarterly")
    assert quarterly.monthly_multiplier == Decimal("0.333")
    assert quarterly.cycle_months == Decimal("3")
    assert not quarterly.is_month_based

    assert conv.convert("oneTime").is_one_time
    assert conv.convert("biweekly").monthly_multiplier == Decimal("2.165")


def test_extra_multiplier_never_negative():
    conv = FrequencyConverter()
    assert conv.convert("monthly").first_month_extra_multiplier == Decimal("0")
    assert conv.convert("bimonthly").first_month_extra_multiplier == Decimal("0")


def test_cycle_metadata_derives_multipliers():
    conv = FrequencyConverter({"quarterly": FrequencyMeta(cycle_months=Decimal("4"))})
    spec = conv.convert("quarterly")
    assert spec.cycle_months == Decimal("4")
    assert spec.monthly_multiplier == Decimal("0.25")
    assert spec.annual_multiplier == Decimal("3")


def test_metadata_overrides_fallbacks():
    conv = FrequencyConverter(
        {
            "weekly": FrequencyMeta(
                monthly_multiplier=Decimal("4.5"),
                first_month_extra_multiplier=Decimal("3"),
            )
        }
    )
    spec = conv.convert("weekly")
    assert spec.monthly_multiplier == Decimal("4.5")
    assert spec.first_month_extra_multiplier == Decimal("3")


def test_unknown_frequency_uses_default():
    conv = FrequencyConverter(default_frequency="monthly")
    assert conv.resolve_key("fortnightly") == ("monthly", False)
    assert conv.resolve_key(None) == ("monthly", True)
    assert conv.convert("fortnightly").key == "monthly"
    assert conv.convert("fortnightly").is_month_based


def test_invalid_default_falls_back_to_weekly():
    assert FrequencyConverter(default_frequency="sometimes").default_key == "weekly"
