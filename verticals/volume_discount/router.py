"""Volume discount API router: function runs + configuration metafield.

Demonstrates the standard router pattern:
- Run endpoints that evaluate a platform function input
- Configuration read/write through the shop-scoped repository
- Shop isolation via middleware
- Repository injection via FastAPI Depends
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Request

from api.middleware import get_current_shop
from core.observability.otel_setup import (
    create_evaluation_span,
    end_evaluation_span,
    fail_evaluation_span,
)
from patterns.domain_config import DiscountLimits
from verticals.volume_discount import renderer
from verticals.volume_discount.config import resolve
from verticals.volume_discount.models.domain import Configuration
from verticals.volume_discount.models.schemas import (
    ConfigurationUpdate,
    ConfigurationView,
    OrderDiscountView,
)
from verticals.volume_discount.repository import (
    ConfigurationRepository,
    get_configuration_repository,
)
from verticals.volume_discount.rules import run, run_legacy

logger = logging.getLogger(__name__)

router = APIRouter()


def _tracer(request: Request):
    return getattr(request.app.state, "tracer", None)


def _limits(request: Request) -> Optional[DiscountLimits]:
    settings = getattr(request.app.state, "settings", None)
    return settings.limits if settings is not None else None


def _line_count(payload: Any) -> int:
    try:
        return len(payload["cart"]["lines"])
    except (KeyError, TypeError):
        return 0


def _has_metafield(payload: Any, owner: str) -> bool:
    try:
        return payload[owner]["metafield"]["value"] is not None
    except (KeyError, TypeError):
        return False


def _view(config: Configuration, stored: bool) -> ConfigurationView:
    order = None
    if config.order_rule is not None:
        order = OrderDiscountView(
            percentage_off=config.order_rule.percentage_off,
            minimum_subtotal=config.order_rule.minimum_subtotal,
            excluded_products=list(config.order_rule.excluded_products),
        )
    return ConfigurationView(
        minimum_quantity=config.minimum_quantity,
        percentage_off=config.percentage_off,
        eligible_products=list(config.eligible_products),
        quantity_policy=config.quantity_policy,
        order_discount=order,
        stored=stored,
    )


# ============================================================================
# Run Endpoints
# ============================================================================

def _traced_run(request: Request, result_format: str, evaluate, payload: Any, stored, count_key: str):
    shop = get_current_shop()
    span = create_evaluation_span(_tracer(request), shop, result_format, _line_count(payload))
    try:
        result = evaluate(payload, configuration=stored, limits=_limits(request))
    except Exception as exc:
        fail_evaluation_span(span, exc)
        raise
    count = len(result[count_key])
    end_evaluation_span(span, count)
    logger.info("Function run (%s) for %s: %d %s", result_format, shop, count, count_key)
    return result


@router.post("/run")
async def run_function(
    request: Request,
    payload: Any = Body(...),
    repo: ConfigurationRepository = Depends(get_configuration_repository),
):
    """Evaluate a cart-lines discount function input.

    The configuration comes from the input's metafield; when the input
    carries none, the shop's stored configuration is used.
    """
    stored = None
    if not _has_metafield(payload, "discount"):
        stored = repo.load(get_current_shop())
    return _traced_run(request, renderer.OPERATIONS, run, payload, stored, "operations")


@router.post("/run/legacy")
async def run_legacy_function(
    request: Request,
    payload: Any = Body(...),
    repo: ConfigurationRepository = Depends(get_configuration_repository),
):
    """Evaluate a legacy discount function input."""
    stored = None
    if not _has_metafield(payload, "discountNode"):
        stored = repo.load(get_current_shop())
    return _traced_run(request, renderer.LEGACY, run_legacy, payload, stored, "discounts")


# ============================================================================
# Configuration Endpoints
# ============================================================================

@router.get("/config", response_model=ConfigurationView, response_model_by_alias=True)
async def get_configuration(
    repo: ConfigurationRepository = Depends(get_configuration_repository),
):
    """Return the shop's configuration, resolved with defaults."""
    blob = repo.load(get_current_shop())
    return _view(resolve(blob), stored=blob is not None)


@router.put("/config", response_model=ConfigurationView, response_model_by_alias=True)
async def put_configuration(
    request: ConfigurationUpdate,
    repo: ConfigurationRepository = Depends(get_configuration_repository),
):
    """Validate and store the shop's configuration blob."""
    shop = get_current_shop()
    blob = request.to_blob()
    repo.save(shop, blob)
    logger.info("Stored discount configuration for %s", shop)
    return _view(resolve(blob), stored=True)


@router.delete("/config", status_code=204)
async def delete_configuration(
    repo: ConfigurationRepository = Depends(get_configuration_repository),
):
    """Remove the shop's stored configuration."""
    repo.clear(get_current_shop())
