"""One quote being edited.

A session owns the operator input, the override tracker and a handle on the
resolved config for one service. ``quote()`` recomputes only when the input,
the config object or the override set changed since the last call.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from fieldquote.core.config import settings
from ..schemas.pricing_config import PricingConfig
from ..schemas.quote import ChangeRecord, QuoteInput, QuoteResult
from ..service_types import get_strategy
from ..utils.numbers import is_numeric, to_quantity
from .config_resolver import ConfigResolver
from .errors import InvalidOverrideError
from .override_tracker import ChangeSink, OverrideTracker
from .quote_calculator import calculate

logger = logging.getLogger(__name__)


class SharedQuoteContext:
    """Agreement-wide values shared by every service on the same quote."""

    def __init__(self, contract_months: Optional[int] = None):
        self.contract_months = contract_months or settings.DEFAULT_CONTRACT_MONTHS


class QuoteSession:
    def __init__(
        self,
        service_id: str,
        resolver: ConfigResolver,
        *,
        quote_input: Optional[QuoteInput] = None,
        context: Optional[SharedQuoteContext] = None,
    ):
        self.strategy = get_strategy(service_id)
        self.resolver = resolver
        self.context = context
        self.tracker = OverrideTracker(
            self.strategy.service_id,
            self.strategy.build_override_graph(),
            self.strategy.display_names,
        )
        self._input = quote_input or QuoteInput()
        self._explicit_months = self._input.contract_months is not None
        self._config: Optional[PricingConfig] = None
        self._memo: Optional[Tuple[PricingConfig, str, Tuple, QuoteResult]] = None

    @property
    def service_id(self) -> str:
        return self.strategy.service_id

    @property
    def input(self) -> QuoteInput:
        return self._input

    @property
    def config(self) -> PricingConfig:
        if self._config is None:
            self.load()
        return self._config  # type: ignore[return-value]

    def effective_input(self) -> QuoteInput:
        """The input as quoted, with the shared contract length adopted if unset."""
        if self.context is not None and not self._explicit_months:
            return self._input.model_copy(update={"contract_months": self.context.contract_months})
        return self._input

    # -- config ----------------------------------------------------------

    def load(self) -> PricingConfig:
        self._config = self.resolver.get_active_config(self.service_id)
        self._record_baselines()
        return self._config

    def refresh(self, *, force: bool = False) -> PricingConfig:
        """Re-fetch the config.

        A forced refresh starts the quote over: overrides, baselines and
        unsaved change records are dropped. Otherwise overrides survive.
        """
        if force:
            self.tracker.reset()
        self._config = self.resolver.refresh(self.service_id)
        self._record_baselines()
        return self._config

    async def refresh_async(self, *, force: bool = False) -> PricingConfig:
        if force:
            self.tracker.reset()
        self._config = await self.resolver.resolve_async(self.service_id)
        self._record_baselines()
        return self._config

    def _record_baselines(self) -> None:
        if self.tracker.baselines or self._config is None:
            return
        result = calculate(self.strategy, self.effective_input(), self._config, None)
        self.tracker.record_baselines({f: v.computed for f, v in result.field_values.items()})

    # -- edits -----------------------------------------------------------

    def update_input(self, **changes: Any) -> List[str]:
        """Apply input changes; returns the overrides cleared by them."""
        unknown = set(changes) - set(QuoteInput.model_fields)
        if unknown:
            raise AttributeError(f"QuoteInput has no field(s) {sorted(unknown)}")
        updated = QuoteInput.model_validate({**self._input.model_dump(), **changes})
        cleared: List[str] = []
        for name in changes:
            before, after = getattr(self._input, name), getattr(updated, name)
            if name == "special_items":
                for key in set(before) | set(after):
                    if before.get(key, Decimal("0")) != after.get(key, Decimal("0")):
                        cleared += self.tracker.input_changed(f"special_items.{key}")
            elif before != after:
                cleared += self.tracker.input_changed(name)
        if "contract_months" in changes:
            self._explicit_months = updated.contract_months is not None
        self._input = updated
        return cleared

    def set_override(self, field: str, value: Any) -> List[str]:
        if self._config is None:
            self.load()
        if value is None or (isinstance(value, str) and not value.strip()):
            amount = None
        elif is_numeric(value):
            amount = to_quantity(value)
        else:
            raise InvalidOverrideError(field, value)
        return self.tracker.set_override(field, amount)

    def clear_override(self, field: str) -> None:
        self.tracker.clear_override(field)

    # -- results ---------------------------------------------------------

    def quote(self) -> QuoteResult:
        config = self.config
        inp = self.effective_input()
        overrides = self.tracker.overrides
        key = inp.model_dump_json()
        override_key = tuple(sorted(overrides.items()))
        if self._memo is not None:
            memo_config, memo_key, memo_overrides, memo_result = self._memo
            if memo_config is config and memo_key == key and memo_overrides == override_key:
                return memo_result
        result = calculate(self.strategy, inp, config, overrides)
        self._memo = (config, key, override_key, result)
        return result

    def pending_changes(self) -> List[ChangeRecord]:
        result = self.quote()
        return self.tracker.pending_changes(
            quantity=self._input.units, frequency=result.frequency, quantities=self._item_quantities()
        )

    def save(self, sink: ChangeSink) -> int:
        """Emit the change log and end the edit; nothing is dropped if the sink fails."""
        result = self.quote()
        count = self.tracker.flush(
            sink, quantity=self._input.units, frequency=result.frequency, quantities=self._item_quantities()
        )
        self.cancel()
        return count

    def _item_quantities(self) -> Dict[str, Decimal]:
        counts: Dict[str, Decimal] = {}
        for spec in self.strategy.special_items:
            count = self._input.special_items.get(spec.key, Decimal("0"))
            for field in self.strategy.item_fields(spec):
                counts[field] = count
        return counts

    def cancel(self) -> None:
        self.tracker.reset()
        self._memo = None
        self._record_baselines()


def open_sessions(
    service_ids: List[str],
    resolver: ConfigResolver,
    context: Optional[SharedQuoteContext] = None,
) -> Dict[str, QuoteSession]:
    context = context or SharedQuoteContext()
    return {sid: QuoteSession(sid, resolver, context=context) for sid in service_ids}
