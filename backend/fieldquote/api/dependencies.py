from typing import Optional

from ..core.config import settings
from ..service_types import PricingStrategy, get_strategy
from ..services.config_resolver import ConfigResolver
from ..services.errors import UnknownServiceError
from ..utils import engine_error_response

_resolver: Optional[ConfigResolver] = None


def get_resolver() -> ConfigResolver:
    """Process-wide resolver for the stateless HTTP API."""
    global _resolver
    if _resolver is None:
        _resolver = ConfigResolver(settings.DEFAULT_SESSION_ID)
    return _resolver


def reset_resolver() -> None:
    global _resolver
    _resolver = None


def strategy_or_404(service_id: str) -> PricingStrategy:
    try:
        return get_strategy(service_id)
    except UnknownServiceError as exc:
        raise engine_error_response(exc)
