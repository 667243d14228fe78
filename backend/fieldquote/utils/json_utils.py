from typing import Any
from .json import dumps_bytes as _json_dumps


def dumps(obj: Any) -> str:
    """Serialize obj to a compact JSON string (UTF‑8), with Decimal support."""
    return _json_dumps(obj).decode("utf-8")
