from typing import Any, Dict, List

from fastapi import APIRouter, Depends, status

from ..schemas.pricing_config import PricingConfig
from ..schemas.quote import ChangeRecord, QuoteRequest, QuoteResult
from ..service_types import STRATEGIES, PricingStrategy
from ..services.config_resolver import ConfigResolver
from ..services.quote_calculator import calculate
from ..services.quote_session import QuoteSession
from ..utils import error_response
from .dependencies import get_resolver, strategy_or_404

router = APIRouter(tags=["quotes"])


def _summary(strategy: PricingStrategy) -> Dict[str, Any]:
    return {
        "service_id": strategy.service_id,
        "label": strategy.label,
        "unit_label": strategy.unit_label,
        "options": [{"key": o.key, "label": o.label} for o in strategy.options],
        "special_items": [s.key for s in strategy.special_items],
        "volume_tier": strategy.volume_tier,
        "override_fields": sorted(strategy.build_override_graph().fields),
    }


def _check_override_fields(strategy: PricingStrategy, body: QuoteRequest) -> None:
    graph = strategy.build_override_graph()
    unknown = {name: "unknown_field" for name in body.overrides if name not in graph}
    if unknown:
        raise error_response("Unknown override fields", unknown)
    if body.invalid_overrides:
        raise error_response(
            "Override values must be numbers",
            {name: "invalid_number" for name in body.invalid_overrides},
        )


@router.get("/services")
def list_services() -> List[Dict[str, Any]]:
    return [_summary(s) for s in STRATEGIES.values()]


@router.get("/services/{service_id}/config", response_model=PricingConfig)
def read_config(service_id: str, resolver: ConfigResolver = Depends(get_resolver)):
    strategy_or_404(service_id)
    return resolver.get_active_config(service_id)


@router.post("/services/{service_id}/config/refresh", response_model=PricingConfig)
def refresh_config(service_id: str, resolver: ConfigResolver = Depends(get_resolver)):
    strategy_or_404(service_id)
    return resolver.refresh(service_id)


@router.post("/services/{service_id}/quote", response_model=QuoteResult)
def create_quote(
    service_id: str,
    body: QuoteRequest,
    resolver: ConfigResolver = Depends(get_resolver),
):
    strategy = strategy_or_404(service_id)
    _check_override_fields(strategy, body)
    config = resolver.get_active_config(service_id)
    return calculate(strategy, body.input, config, body.overrides)


@router.post(
    "/services/{service_id}/quote/changes",
    response_model=List[ChangeRecord],
    status_code=status.HTTP_200_OK,
)
def preview_changes(
    service_id: str,
    body: QuoteRequest,
    resolver: ConfigResolver = Depends(get_resolver),
):
    """Change records the overrides would log against the resolved baseline."""
    strategy = strategy_or_404(service_id)
    _check_override_fields(strategy, body)
    session = QuoteSession(service_id, resolver, quote_input=body.input)
    session.load()
    for field, value in body.overrides.items():
        if value is not None:
            session.tracker.log_change(field, value)
    return session.pending_changes()
