"""Translate raw ServiceConfig documents into the canonical config shape.

Remote documents have been stored in several shapes over time: flat legacy
records (``standardDrainRate``), nested records (``standardPricing.
standardDrainRate``), and canonical snake_case documents written back by this
service. All of them are reduced here to a *partial* canonical dict holding
only the leaves that were present and well-formed, so a missing or malformed
leaf never hides the value another source can supply.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

from pydantic import ValidationError

from ..schemas.pricing_config import PricingConfig
from ..service_types.base import PricingStrategy
from ..utils.numbers import is_numeric, to_decimal
from .frequency import FREQUENCY_KEYS, normalize_frequency_key

logger = logging.getLogger(__name__)

# Leaves kept as text; every other leaf must be numeric.
TEXT_LEAVES = frozenset(
    {
        "label",
        "version",
        "default_frequency",
        "default_variant",
        "default_rate_category",
        "commission_rate",
    }
)
CANONICAL_SECTIONS = frozenset(PricingConfig.model_fields) - {"service_id"}

# Generic raw -> canonical paths understood for every service.
GENERIC_FIELDS = {
    "contract.minMonths": "contract.min_months",
    "contract.maxMonths": "contract.max_months",
    "contract.defaultMonths": "contract.default_months",
    "minContractMonths": "contract.min_months",
    "maxContractMonths": "contract.max_months",
    "defaultContractMonths": "contract.default_months",
    "minimumChargePerVisit": "minimum_charge_per_visit",
    "minimumCharge": "minimum_charge_per_visit",
}
INTEGER_PATHS = frozenset({"contract.min_months", "contract.max_months", "contract.default_months"})

_META_FIELDS = {
    "monthlyRecurringMultiplier": "monthly_multiplier",
    "monthlyMultiplier": "monthly_multiplier",
    "firstMonthExtraMultiplier": "first_month_extra_multiplier",
    "cycleMonths": "cycle_months",
    "annualMultiplier": "annual_multiplier",
}
_RATE_CATEGORY_SHORTCUTS = {"redRateMultiplier": "redRate", "greenRateMultiplier": "greenRate"}


def flatten(node: Mapping[str, Any], prefix: str = "") -> Iterator[Tuple[str, Any]]:
    """Yield ``(dotted.path, leaf)`` for every non-mapping leaf."""
    for key, value in node.items():
        path = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            yield from flatten(value, path)
        else:
            yield path, value


def set_path(target: Dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    node = target
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value


def deep_merge(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> Dict[str, Any]:
    """Return ``base`` with ``overlay`` laid on top, mapping by mapping."""
    merged = copy.deepcopy(dict(base))
    for key, value in overlay.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _numeric_leaf(value: Any, path: str) -> Optional[str]:
    if not is_numeric(value):
        return None
    amount = to_decimal(value)
    if path in INTEGER_PATHS:
        return str(int(amount))
    return str(amount)


def _clean_canonical(node: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    cleaned: Dict[str, Any] = {}
    for key, value in node.items():
        path = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            child = _clean_canonical(value, path)
            if child:
                cleaned[key] = child
        elif key == "allowed_frequencies":
            keys = _frequency_list(value)
            if keys:
                cleaned[key] = keys
        elif key in TEXT_LEAVES:
            if isinstance(value, str) and value.strip():
                cleaned[key] = value.strip()
        else:
            leaf = _numeric_leaf(value, path)
            if leaf is not None:
                cleaned[key] = leaf
            else:
                logger.debug("Dropping malformed config leaf %s=%r", path, value)
    return cleaned


def _frequency_list(value: Any) -> list:
    if not isinstance(value, (list, tuple)):
        return []
    keys = []
    for raw in value:
        key = normalize_frequency_key(raw)
        if key is not None and key not in keys:
            keys.append(key)
    return keys


def unwrap_document(payload: Any) -> Optional[Dict[str, Any]]:
    """Peel ``{data: ...}``, list and ``{config: ...}`` envelopes off a response."""
    node = payload
    for _ in range(4):
        if isinstance(node, list):
            node = node[0] if node else None
        elif isinstance(node, Mapping) and isinstance(node.get("data"), (Mapping, list)):
            node = node["data"]
        else:
            break
    if not isinstance(node, Mapping):
        return None
    document = dict(node)
    config = document.get("config")
    if isinstance(config, Mapping):
        inner = dict(config)
        version = document.get("version") or document.get("updatedAt")
        if version is not None and "version" not in inner:
            inner["version"] = str(version)
        return inner
    return document


def _translate_frequency_metadata(raw: Mapping[str, Any], out: Dict[str, Any]) -> None:
    for section in ("billingConversions", "frequencyMetadata"):
        table = raw.get(section)
        if not isinstance(table, Mapping):
            continue
        for freq, meta in table.items():
            key = normalize_frequency_key(freq)
            if key is None or not isinstance(meta, Mapping):
                continue
            for raw_name, canonical in _META_FIELDS.items():
                if raw_name not in meta:
                    continue
                leaf = _numeric_leaf(meta[raw_name], "")
                if leaf is not None:
                    set_path(out, f"frequency_metadata.{key}.{canonical}", leaf)

    weeks = raw.get("weeksPerMonth")
    if weeks is not None and is_numeric(weeks) and to_decimal(weeks) > 0:
        # An explicit frequencyMetadata entry wins over the account-wide setting
        weekly = out.setdefault("frequency_metadata", {}).setdefault("weekly", {})
        weekly.setdefault("monthly_multiplier", str(to_decimal(weeks)))


def _translate_rate_categories(raw: Mapping[str, Any], out: Dict[str, Any]) -> None:
    table = raw.get("rateCategories")
    if isinstance(table, Mapping):
        for name, entry in table.items():
            if not isinstance(entry, Mapping):
                continue
            if "multiplier" in entry:
                leaf = _numeric_leaf(entry["multiplier"], "")
                if leaf is not None:
                    set_path(out, f"rate_categories.{name}.multiplier", leaf)
            commission = entry.get("commissionRate")
            if isinstance(commission, str) and commission.strip():
                set_path(out, f"rate_categories.{name}.commission_rate", commission.strip())
    for raw_name, category in _RATE_CATEGORY_SHORTCUTS.items():
        if raw_name in raw:
            leaf = _numeric_leaf(raw[raw_name], "")
            if leaf is not None:
                set_path(out, f"rate_categories.{category}.multiplier", leaf)


def _translate_variants(raw: Mapping[str, Any], out: Dict[str, Any]) -> None:
    table = raw.get("variants")
    if not isinstance(table, Mapping):
        return
    names = {"ratePerSqFt": "per_unit_rate", "ratePerUnit": "per_unit_rate", "minCharge": "minimum_charge"}
    for name, entry in table.items():
        if not isinstance(entry, Mapping):
            continue
        for raw_name, canonical in names.items():
            if raw_name in entry:
                leaf = _numeric_leaf(entry[raw_name], "")
                if leaf is not None:
                    set_path(out, f"variants.{name}.{canonical}", leaf)
        label = entry.get("label")
        if isinstance(label, str) and label.strip():
            set_path(out, f"variants.{name}.label", label.strip())


def normalize_document(strategy: PricingStrategy, raw: Any) -> Dict[str, Any]:
    """Return the partial canonical dict carried by ``raw``.

    Never raises for malformed content; anything unusable is dropped.
    """
    document = unwrap_document(raw)
    if document is None:
        return {}

    out: Dict[str, Any] = {}

    canonical = {k: v for k, v in document.items() if k in CANONICAL_SECTIONS}
    if canonical:
        out = _clean_canonical(canonical)

    for path, value in flatten(document):
        target = strategy.field_map.get(path) or GENERIC_FIELDS.get(path)
        if target is None:
            continue
        leaf = _numeric_leaf(value, target)
        if leaf is None:
            logger.debug("Dropping malformed %s leaf %s=%r", strategy.service_id, path, value)
            continue
        set_path(out, target, leaf)

    _translate_frequency_metadata(document, out)
    _translate_rate_categories(document, out)
    _translate_variants(document, out)

    for raw_name, canonical_name in (
        ("defaultFrequency", "default_frequency"),
        ("defaultVariant", "default_variant"),
        ("defaultRateCategory", "default_rate_category"),
    ):
        value = document.get(raw_name)
        if isinstance(value, str) and value.strip():
            out[canonical_name] = value.strip()
    if "allowedFrequencies" in document:
        keys = _frequency_list(document["allowedFrequencies"])
        if keys:
            out["allowed_frequencies"] = keys

    if "default_frequency" in out:
        key = normalize_frequency_key(out["default_frequency"])
        if key is None:
            out.pop("default_frequency")
        else:
            out["default_frequency"] = key

    return out


def build_config(strategy: PricingStrategy, *layers: Mapping[str, Any]) -> PricingConfig:
    """Merge ``layers`` (lowest priority first) over the static defaults."""
    merged: Dict[str, Any] = copy.deepcopy(dict(strategy.default_config))
    for layer in layers:
        if layer:
            merged = deep_merge(merged, layer)
    merged["service_id"] = strategy.service_id
    if not merged.get("version"):
        merged["version"] = "static"
    if merged.get("default_frequency") not in FREQUENCY_KEYS:
        merged["default_frequency"] = "weekly"

    for _ in range(_MAX_REPAIRS):
        try:
            return PricingConfig.model_validate(merged)
        except ValidationError as exc:
            for error in exc.errors():
                logger.warning(
                    "Dropping invalid %s config field %s: %s",
                    strategy.service_id,
                    ".".join(str(p) for p in error["loc"]),
                    error["msg"],
                )
                _restore_path(merged, strategy.default_config, error["loc"])
    logger.warning("Falling back to static %s config", strategy.service_id)
    return PricingConfig.model_validate(
        {**copy.deepcopy(dict(strategy.default_config)), "service_id": strategy.service_id}
    )


_MAX_REPAIRS = 5


def _restore_path(target: Dict[str, Any], defaults: Mapping[str, Any], loc: Tuple[Any, ...]) -> None:
    """Put the static default back at the invalid location, or drop it if there is none."""
    node: Any = target
    default: Any = defaults
    for i, part in enumerate(loc):
        if not isinstance(node, dict) or part not in node:
            return
        default = default.get(part) if isinstance(default, Mapping) else None
        if i == len(loc) - 1 or not isinstance(node[part], dict):
            if default is None:
                node.pop(part)
            else:
                node[part] = copy.deepcopy(default)
            return
        node = node[part]
