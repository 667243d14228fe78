"""Manual overrides layered on computed quote values.

An override replaces one computed field until it is cleared, or until an
input it depends on changes. Baselines are the values in effect when the
session first resolved its config; audit records compare against them, so
editing a field three times and back again leaves nothing to log.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Sequence

from ..schemas.quote import ChangeRecord
from ..utils.numbers import ZERO, money
from .override_graph import OverrideGraph

logger = logging.getLogger(__name__)


class ChangeSink(Protocol):
    def emit(self, records: Sequence[ChangeRecord]) -> None: ...


class CollectingChangeSink:
    """Keeps every emitted batch in memory."""

    def __init__(self) -> None:
        self.batches: List[List[ChangeRecord]] = []

    def emit(self, records: Sequence[ChangeRecord]) -> None:
        self.batches.append(list(records))

    @property
    def records(self) -> List[ChangeRecord]:
        return [r for batch in self.batches for r in batch]


class LoggingChangeSink:
    """Writes each change as a structured log line."""

    def __init__(self, logger_name: str = "fieldquote.audit") -> None:
        self._logger = logging.getLogger(logger_name)

    def emit(self, records: Sequence[ChangeRecord]) -> None:
        for record in records:
            self._logger.info("price override", extra={"change": record.model_dump(mode="json")})


class _PendingChange:
    __slots__ = ("field", "original", "new", "changed_at")

    def __init__(self, field: str, original: Decimal, new: Decimal, changed_at: datetime):
        self.field = field
        self.original = original
        self.new = new
        self.changed_at = changed_at


class OverrideTracker:
    def __init__(self, service_id: str, graph: OverrideGraph, display_names: Optional[Mapping[str, str]] = None):
        self.service_id = service_id
        self.graph = graph
        self._display_names = dict(display_names or {})
        self._overrides: Dict[str, Decimal] = {}
        self._baselines: Dict[str, Decimal] = {}
        self._pending: Dict[str, _PendingChange] = {}

    # -- overrides -------------------------------------------------------

    @property
    def overrides(self) -> Dict[str, Decimal]:
        return dict(self._overrides)

    def is_overridden(self, field: str) -> bool:
        return field in self._overrides

    def set_override(self, field: str, value: Optional[Decimal]) -> List[str]:
        """Set (or with ``None`` clear) an override.

        Overrides computed from ``field`` are cleared since they were entered
        against the old value. Returns the fields cleared as a side effect.
        """
        if field not in self.graph:
            raise KeyError(f"{field} is not an overridable field for {self.service_id}")
        if value is None:
            self.clear_override(field)
            return []
        self._overrides[field] = value
        cleared = self._clear(self.graph.downstream([field]))
        if field in self._baselines:
            self.log_change(field, value)
        return cleared

    def clear_override(self, field: str) -> None:
        self._overrides.pop(field, None)
        self._pending.pop(field, None)

    def effective_value(self, field: str, computed: Decimal) -> Decimal:
        return self._overrides.get(field, computed)

    def input_changed(self, name: str) -> List[str]:
        """Drop overrides that depend on the changed input ``name``."""
        cleared = self._clear(self.graph.invalidated_by_input(name))
        if cleared:
            logger.debug("%s changed; cleared overrides %s", name, cleared)
        return cleared

    def _clear(self, fields: Iterable[str]) -> List[str]:
        cleared = sorted(f for f in fields if f in self._overrides)
        for f in cleared:
            del self._overrides[f]
            self._pending.pop(f, None)
        return cleared

    # -- baselines & audit -----------------------------------------------

    @property
    def baselines(self) -> Dict[str, Decimal]:
        return dict(self._baselines)

    def record_baselines(self, values: Mapping[str, Decimal]) -> None:
        for field, value in values.items():
            if field in self.graph and field not in self._baselines:
                self._baselines[field] = value

    def log_change(self, field: str, new_value: Decimal) -> None:
        baseline = self._baselines.get(field)
        if baseline is None:
            return
        if new_value == baseline:
            self._pending.pop(field, None)
            return
        self._pending[field] = _PendingChange(field, baseline, new_value, datetime.now(timezone.utc))

    def pending_changes(
        self,
        *,
        quantity: Decimal = Decimal("1"),
        frequency: str = "",
        quantities: Optional[Mapping[str, Decimal]] = None,
    ) -> List[ChangeRecord]:
        """Records for every pending change.

        ``quantities`` gives per-field counts (an item's fields count that
        item); fields missing from it use ``quantity``.
        """
        quantities = quantities or {}
        return [
            self._to_record(p, quantities.get(p.field, quantity), frequency)
            for p in self._pending.values()
        ]

    def flush(
        self,
        sink: ChangeSink,
        *,
        quantity: Decimal = Decimal("1"),
        frequency: str = "",
        quantities: Optional[Mapping[str, Decimal]] = None,
    ) -> int:
        """Emit pending changes; they are cleared only if the sink accepts them."""
        records = self.pending_changes(quantity=quantity, frequency=frequency, quantities=quantities)
        if not records:
            return 0
        sink.emit(records)
        self._pending.clear()
        logger.info("Logged %d price overrides for %s", len(records), self.service_id)
        return len(records)

    def reset(self) -> None:
        self._overrides.clear()
        self._baselines.clear()
        self._pending.clear()

    def _to_record(self, change: _PendingChange, quantity: Decimal, frequency: str) -> ChangeRecord:
        delta = change.new - change.original
        pct = money(delta / change.original * 100) if change.original != ZERO else ZERO
        return ChangeRecord(
            product_key=f"{self.service_id}_{change.field}",
            field_type=change.field,
            field_display_name=self._display_names.get(change.field)
            or change.field.replace("_", " ").title(),
            original_value=change.original,
            new_value=change.new,
            change_amount=delta,
            change_percentage=pct,
            quantity=quantity,
            frequency=frequency,
            timestamp=change.changed_at,
        )
