import logging
from typing import Any, Dict, Optional, Protocol

import httpx

from fieldquote.core.config import settings
from .errors import ConfigUnavailableError

logger = logging.getLogger(__name__)

ACTIVE_CONFIG_PATH = "/api/service-configs/active"


class ConfigSource(Protocol):
    def fetch(self, service_id: str) -> Any: ...

    async def fetch_async(self, service_id: str) -> Any: ...


class HttpConfigSource:
    """Reads the active ServiceConfig document for a service over HTTP."""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = (base_url if base_url is not None else settings.CONFIG_API_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.CONFIG_API_TIMEOUT

    @property
    def url(self) -> str:
        return f"{self.base_url}{ACTIVE_CONFIG_PATH}"

    def fetch(self, service_id: str) -> Any:
        try:
            resp = httpx.get(self.url, params={"serviceId": service_id}, timeout=self.timeout)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise ConfigUnavailableError(f"Config service unreachable for {service_id}: {exc}") from exc
        return _decode(resp, service_id)

    async def fetch_async(self, service_id: str) -> Any:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as http:
                resp = await http.get(self.url, params={"serviceId": service_id})
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise ConfigUnavailableError(f"Config service unreachable for {service_id}: {exc}") from exc
        return _decode(resp, service_id)


class StaticConfigSource:
    """In-memory source keyed by service id; used offline and in tests."""

    def __init__(self, documents: Optional[Dict[str, Any]] = None):
        self.documents: Dict[str, Any] = dict(documents or {})
        self.calls = 0

    def fetch(self, service_id: str) -> Any:
        self.calls += 1
        if service_id not in self.documents:
            raise ConfigUnavailableError(f"No active config for {service_id}")
        return self.documents[service_id]

    async def fetch_async(self, service_id: str) -> Any:
        return self.fetch(service_id)


def _decode(resp: httpx.Response, service_id: str) -> Any:
    try:
        data = resp.json()
    except ValueError as exc:
        raise ConfigUnavailableError(f"Invalid config response for {service_id}") from exc
    if not data:
        raise ConfigUnavailableError(f"Empty config response for {service_id}")
    return data
