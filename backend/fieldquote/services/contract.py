"""Project per-visit pricing over a contract term.

Month-based frequencies bill a recurring month (``per_visit × visits per
month``); the first month swaps one regular visit for the first visit when
the first visit carries one-time charges. Visit-based frequencies count the
visits that fall inside the term instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Optional

from ..utils.numbers import ZERO, round_half_up
from .frequency import FrequencySpec

Resolve = Callable[[str, Decimal], Decimal]


@dataclass(frozen=True)
class ContractFigures:
    monthly_recurring: Decimal
    first_month: Decimal
    contract_total: Decimal
    visits: Optional[int] = None


def _computed(field: str, value: Decimal) -> Decimal:
    return value


def visit_count(months: int, cycle_months: Optional[Decimal]) -> int:
    """Visits inside ``months`` for a visit-based cycle, never fewer than one."""
    if not cycle_months or cycle_months <= 0:
        return max(months, 1)
    return max(round_half_up(Decimal(months) / cycle_months), 1)


def accumulate(
    spec: FrequencySpec,
    per_visit: Decimal,
    first_visit: Decimal,
    months: int,
    *,
    has_one_time_charges: bool,
    resolve: Resolve = _computed,
) -> ContractFigures:
    """Return recurring, first-month and contract totals (unrounded).

    ``resolve(field, computed)`` lets overrides on ``monthly_recurring`` and
    ``first_month`` flow into the contract total, and a ``contract_total``
    override replace it.
    """
    if spec.is_one_time:
        recurring = resolve("monthly_recurring", ZERO)
        first_month = resolve("first_month", first_visit)
        total = resolve("contract_total", first_month)
        return ContractFigures(recurring, first_month, total, visits=1)

    recurring = resolve("monthly_recurring", per_visit * spec.monthly_multiplier)

    if spec.is_month_based:
        if has_one_time_charges:
            computed_first = first_visit + per_visit * spec.first_month_extra_multiplier
        else:
            computed_first = recurring
        first_month = resolve("first_month", computed_first)
        total = first_month + recurring * (months - 1)
        return ContractFigures(recurring, first_month, resolve("contract_total", total))

    visits = visit_count(months, spec.cycle_months)
    # Without one-time charges the first visit is a regular visit, so this
    # is simply visits × per_visit.
    first_month = resolve("first_month", first_visit)
    total = first_month + per_visit * (visits - 1)
    return ContractFigures(recurring, first_month, resolve("contract_total", total), visits=visits)
