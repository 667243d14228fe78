"""Logging setup.

- LOG_LEVEL (default: INFO): root logger level; the process env wins over
  the value loaded from ``.env``.
"""

from __future__ import annotations

import logging
import os

from pythonjsonlogger.json import JsonFormatter

from .config import settings


def setup_logging() -> None:
    """Configure structured JSON logging."""
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter("%(levelname)s %(name)s %(message)s"))
    root = logging.getLogger()
    root.handlers = [handler]
    level_name = (os.getenv("LOG_LEVEL") or getattr(settings, "LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    root.setLevel(level)
    # httpx logs every request line at INFO; only surface it when debugging
    logging.getLogger("httpx").setLevel(level if level <= logging.DEBUG else max(level, logging.WARNING))
