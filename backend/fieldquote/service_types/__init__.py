from typing import Dict

from ..services.errors import UnknownServiceError
from . import foaming_drain, sanipod, strip_wax
from .base import FirstVisitRule, OptionSpec, PricingStrategy, SpecialItemSpec

STRATEGIES: Dict[str, PricingStrategy] = {
    s.service_id: s for s in (foaming_drain.STRATEGY, sanipod.STRATEGY, strip_wax.STRATEGY)
}


def get_strategy(service_id: str) -> PricingStrategy:
    try:
        return STRATEGIES[service_id]
    except KeyError:
        raise UnknownServiceError(service_id) from None


__all__ = [
    "STRATEGIES",
    "get_strategy",
    "FirstVisitRule",
    "OptionSpec",
    "PricingStrategy",
    "SpecialItemSpec",
]
