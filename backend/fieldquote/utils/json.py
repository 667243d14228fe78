from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

import orjson


def _default(o: Any):
    # Decimals keep their exact text so cached rate schedules round-trip
    # without float drift.
    if isinstance(o, Decimal):
        return str(o)
    if isinstance(o, (datetime, date)):
        return o.isoformat()
    raise TypeError(f"Type is not JSON serializable: {type(o).__name__}")


def dumps_bytes(obj: Any) -> bytes:
    return orjson.dumps(obj, option=orjson.OPT_NON_STR_KEYS, default=_default)


def loads(data: str | bytes) -> Any:
    return orjson.loads(data)
