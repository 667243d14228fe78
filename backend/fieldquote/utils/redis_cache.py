import logging
import os
import random
from typing import Any, Optional

import redis

from fieldquote.core.config import settings
from .json import loads
from .json_utils import dumps

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None


class _NullRedis:
    """No-op Redis client used when Redis is disabled or unavailable.

    Methods mirror the minimal surface used in this codebase so callers can
    proceed without needing try/except around get_redis_client().
    """

    def get(self, key: str):
        return None

    def setex(self, key: str, expire: int, value: str):
        return None

    def scan_iter(self, pattern: str):
        return iter(())

    def delete(self, key: str):
        return 0

    def close(self):
        return None


def get_redis_client() -> redis.Redis:
    global _redis_client
    if _redis_client is None:
        url = (getattr(settings, "REDIS_URL", "") or "").strip()
        # Allow disabling via empty/none/disabled/false
        if not url or url.lower() in {"none", "disabled", "false", "0"}:
            _redis_client = _NullRedis()  # type: ignore[assignment]
            return _redis_client
        try:
            # Quoting must stay responsive when Redis is slow; a timed-out
            # read is just a cache miss.
            try:
                conn_to = float(os.getenv("REDIS_CONNECT_TIMEOUT", "0.5"))
            except ValueError:
                conn_to = 0.5
            try:
                read_to = float(os.getenv("REDIS_SOCKET_TIMEOUT", "0.5"))
            except ValueError:
                read_to = 0.5
            _redis_client = redis.from_url(
                url,
                decode_responses=True,
                socket_connect_timeout=conn_to,
                socket_timeout=read_to,
            )
        except (redis.exceptions.RedisError, ValueError) as exc:
            logger.warning("Redis client unavailable, caching disabled: %s", exc)
            _redis_client = _NullRedis()  # type: ignore[assignment]
    return _redis_client


def close_redis_client() -> None:
    global _redis_client
    if _redis_client is not None:
        try:
            _redis_client.close()
        except redis.exceptions.RedisError as exc:
            logger.warning("Error closing Redis client: %s", exc)
    _redis_client = None


PRICING_CONFIG_KEY_PREFIX = "pricing_config"


def _apply_jitter(expire: int) -> int:
    """Return a TTL with a small random jitter to prevent cache stampedes."""
    return expire + random.randint(0, max(1, expire // 10))


def _config_key(session_id: str, service_id: str) -> str:
    return f"{PRICING_CONFIG_KEY_PREFIX}:{session_id}:{service_id}"


def get_cached_service_config(session_id: str, service_id: str) -> dict[str, Any] | None:
    """Return the cached canonical config document for a session, if any."""
    client = get_redis_client()
    key = _config_key(session_id, service_id)
    try:
        data = client.get(key)
    except redis.exceptions.RedisError as exc:
        logger.warning("Redis unavailable: %s", exc)
        return None
    if not data:
        return None
    try:
        payload = loads(data)
    except ValueError as exc:
        # Treat malformed payloads as cache misses.
        logger.warning("Could not decode pricing config cache for key %s: %s", key, exc)
        return None
    return payload if isinstance(payload, dict) else None


def cache_service_config(
    session_id: str,
    service_id: str,
    document: dict[str, Any],
    *,
    expire: int | None = None,
) -> None:
    """Store the canonical config document for a session."""
    client = get_redis_client()
    ttl = expire if expire is not None else int(getattr(settings, "CONFIG_CACHE_TTL", 3600))
    try:
        client.setex(_config_key(session_id, service_id), _apply_jitter(ttl), dumps(document))
    except redis.exceptions.RedisError as exc:
        logger.warning("Could not cache pricing config: %s", exc)
    return None


def invalidate_service_config(session_id: str, service_id: str | None = None) -> None:
    """Drop one service's cached config, or every service's for the session."""
    client = get_redis_client()
    try:
        if service_id is not None:
            client.delete(_config_key(session_id, service_id))
            return None
        for key in client.scan_iter(f"{PRICING_CONFIG_KEY_PREFIX}:{session_id}:*"):
            client.delete(key)
    except redis.exceptions.RedisError as exc:
        logger.warning("Could not clear pricing config cache: %s", exc)
    return None
