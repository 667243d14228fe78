"""Resolve the effective pricing config for a service.

Per field, the live remote document wins over the session cache, which wins
over the compiled static defaults. Resolution never fails because the remote
source is down or a document is malformed: the warning is logged and the
lower layers fill in.

Each fetch takes a generation ticket. Only the newest ticket for a service
may settle its result into the session, so a slow fetch that finishes after
a newer one is discarded.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fieldquote.core.config import settings
from ..schemas.pricing_config import PricingConfig
from ..service_types import get_strategy
from ..utils import redis_cache
from .config_normalizer import build_config, deep_merge, normalize_document
from .config_source import ConfigSource, HttpConfigSource
from .errors import ConfigUnavailableError

logger = logging.getLogger(__name__)


class ConfigResolver:
    def __init__(
        self,
        session_id: Optional[str] = None,
        source: Optional[ConfigSource] = None,
        *,
        fetch_enabled: Optional[bool] = None,
    ):
        self.session_id = session_id or settings.DEFAULT_SESSION_ID
        self.source: ConfigSource = source if source is not None else HttpConfigSource()
        self.fetch_enabled = settings.CONFIG_FETCH_ENABLED if fetch_enabled is None else fetch_enabled
        self._configs: Dict[str, PricingConfig] = {}
        # last merged cache+remote layer per service; stands in when redis misses
        self._layers: Dict[str, Dict[str, Any]] = {}
        self._tickets: Dict[str, int] = {}

    def get_active_config(self, service_id: str) -> PricingConfig:
        """Return the session's config, resolving it on first use."""
        get_strategy(service_id)
        current = self._configs.get(service_id)
        if current is not None:
            return current
        return self.resolve(service_id)

    def cached(self, service_id: str) -> Optional[PricingConfig]:
        return self._configs.get(service_id)

    def issue_ticket(self, service_id: str) -> int:
        ticket = self._tickets.get(service_id, 0) + 1
        self._tickets[service_id] = ticket
        return ticket

    def is_current(self, service_id: str, ticket: int) -> bool:
        return self._tickets.get(service_id) == ticket

    def resolve(self, service_id: str) -> PricingConfig:
        """Fetch the remote document (when enabled) and settle a fresh config."""
        get_strategy(service_id)
        ticket = self.issue_ticket(service_id)
        raw = None
        if self.fetch_enabled:
            try:
                raw = self.source.fetch(service_id)
            except ConfigUnavailableError as exc:
                logger.warning("Using cached/static pricing for %s: %s", service_id, exc)
        return self.settle(service_id, ticket, raw)

    async def resolve_async(self, service_id: str) -> PricingConfig:
        get_strategy(service_id)
        ticket = self.issue_ticket(service_id)
        raw = None
        if self.fetch_enabled:
            try:
                raw = await self.source.fetch_async(service_id)
            except ConfigUnavailableError as exc:
                logger.warning("Using cached/static pricing for %s: %s", service_id, exc)
        return self.settle(service_id, ticket, raw)

    def refresh(self, service_id: str) -> PricingConfig:
        """Re-fetch regardless of what the session already holds."""
        self._configs.pop(service_id, None)
        return self.resolve(service_id)

    def settle(self, service_id: str, ticket: int, raw: Any) -> PricingConfig:
        """Merge a fetched document into the session if ``ticket`` is still current."""
        strategy = get_strategy(service_id)
        if not self.is_current(service_id, ticket):
            logger.info("Discarding stale config fetch for %s (ticket %s)", service_id, ticket)
            current = self._configs.get(service_id)
            if current is not None:
                return current
            return build_config(strategy, self._cached_layer(service_id))

        cached = self._cached_layer(service_id)
        remote = normalize_document(strategy, raw) if raw is not None else {}
        if raw is not None and not remote:
            logger.warning("Remote config for %s had no usable fields", service_id)

        config = build_config(strategy, cached, remote)
        if remote:
            layer = deep_merge(cached, remote)
            self._layers[service_id] = layer
            redis_cache.cache_service_config(self.session_id, service_id, layer)
        self._configs[service_id] = config
        logger.debug("Resolved %s config version %s", service_id, config.version)
        return config

    def invalidate(self, service_id: Optional[str] = None) -> None:
        if service_id is None:
            self._configs.clear()
            self._layers.clear()
        else:
            self._configs.pop(service_id, None)
            self._layers.pop(service_id, None)
        redis_cache.invalidate_service_config(self.session_id, service_id)

    def _cached_layer(self, service_id: str) -> Dict[str, Any]:
        cached = redis_cache.get_cached_service_config(self.session_id, service_id)
        if cached:
            return cached
        return self._layers.get(service_id, {})
