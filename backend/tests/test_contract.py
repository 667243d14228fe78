from decimal import Decimal

from fieldquote.services.contract import accumulate, visit_count
from fieldquote.services.frequency import FrequencyConverter

conv = FrequencyConverter()


def test_month_based_without_one_time_charges():
    figures = accumulate(
        conv.convert("weekly"), Decimal("40"), Decimal("40"), 12, has_one_time_charges=False
    )
    assert figures.monthly_recurring == Decimal("173.20")
    assert figures.first_month == Decimal("173.20")
    assert figures.contract_total == Decimal("2078.40")


def test_month_based_first_month_carries_first_visit():
    figures = accumulate(
        conv.convert("weekly"), Decimal("50"), Decimal("158"), 12, has_one_time_charges=True
    )
    assert figures.monthly_recurring == Decimal("216.50")
    # 158 + 50 × (4.33 − 1)
    assert figures.first_month == Decimal("324.50")
    assert figures.contract_total == Decimal("2706.00")


def test_visit_based_counts_visits_in_term():
    quarterly = conv.convert("quarterly")
    plain = accumulate(quarterly, Decimal("100"), Decimal("100"), 12, has_one_time_charges=False)
    assert plain.visits == 4
    assert plain.contract_total == Decimal("400")
    assert plain.first_month == Decimal("100")
    assert plain.monthly_recurring == Decimal("33.300")

    with_install = accumulate(quarterly, Decimal("100"), Decimal("250"), 12, has_one_time_charges=True)
    assert with_install.contract_total == Decimal("550")


def test_one_time_service():
    figures = accumulate(conv.convert("oneTime"), Decimal("80"), Decimal("120"), 12, has_one_time_charges=True)
    assert figures.monthly_recurring == Decimal("0")
    assert figures.first_month == Decimal("120")
    assert figures.contract_total == Decimal("120")


def test_visit_count_rounds_half_up_with_floor_of_one():
    assert visit_count(12, Decimal("2")) == 6
    assert visit_count(7, Decimal("2")) == 4
    assert visit_count(1, Decimal("12")) == 1
    assert visit_count(13, Decimal("12")) == 1
    assert visit_count(18, Decimal("12")) == 2


def test_overrides_cascade_into_contract_total():
    def resolve(field, computed):
        return Decimal("100") if field == "monthly_recurring" else computed

    figures = accumulate(
        conv.convert("weekly"), Decimal("40"), Decimal("40"), 12, has_one_time_charges=False, resolve=resolve
    )
    assert figures.first_month == Decimal("100")
    assert figures.contract_total == Decimal("1200")

    def total_override(field, computed):
        return Decimal("999") if field == "contract_total" else computed

    figures = accumulate(
        conv.convert("weekly"), Decimal("40"), Decimal("40"), 12, has_one_time_charges=False, resolve=total_override
    )
    assert figures.contract_total == Decimal("999")
