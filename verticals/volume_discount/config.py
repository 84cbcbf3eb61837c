"""Configuration resolver for the volume discount function.

Turns the raw metafield blob into a fully populated Configuration.
Resolution never raises: a missing or broken blob resolves to defaults,
and each field falls back to its own default when missing or mistyped.

Range checks are left to the engine so that an out-of-range value
disables the discount as a whole instead of being silently replaced.
"""

import json
import logging
from decimal import Decimal
from typing import Annotated, Any, Mapping, Optional, Union

from pydantic import Field, TypeAdapter, ValidationError

from patterns.domain_config import DiscountLimits, ServiceSettings
from verticals.volume_discount.models.domain import (
    Configuration,
    OrderRule,
    QuantityPolicy,
)

logger = logging.getLogger(__name__)

RawConfiguration = Union[str, bytes, Mapping[str, Any], None]

# Accepted keys per field, in priority order. The later names are the
# ones written by older versions of the admin screens.
QUANTITY_KEYS = ("minimumQuantity", "quantity", "minQty")
PERCENTAGE_KEYS = ("percentageOff", "percentage", "percentOff")
PRODUCTS_KEYS = ("eligibleProducts", "productIds", "products")
POLICY_KEYS = ("quantityPolicy",)
ORDER_RULE_KEYS = ("orderDiscount",)

_INT = TypeAdapter(int)
_DECIMAL = TypeAdapter(Annotated[Decimal, Field(allow_inf_nan=False)])
_IDS = TypeAdapter(list[str])
_POLICY = TypeAdapter(QuantityPolicy)

_MISSING = object()

# Process settings; callers may pass their own limits
settings = ServiceSettings.from_env()


def resolve(raw: RawConfiguration, *, limits: Optional[DiscountLimits] = None) -> Configuration:
    """Resolve a raw configuration blob.

    Args:
        raw: JSON text/bytes, an already decoded mapping, or None.
        limits: Source of the default percentage and quantity.

    Returns:
        A Configuration; never raises.
    """
    limits = limits or settings.limits
    data = _load(raw)
    if data is None:
        return Configuration(
            minimum_quantity=limits.default_minimum_quantity,
            percentage_off=limits.default_percentage,
        )

    return Configuration(
        minimum_quantity=_decode(
            _INT, _pick(data, QUANTITY_KEYS), limits.default_minimum_quantity, "minimumQuantity"
        ),
        percentage_off=_decode(
            _DECIMAL, _pick(data, PERCENTAGE_KEYS), limits.default_percentage, "percentageOff"
        ),
        eligible_products=_unique(
            _decode(_IDS, _pick(data, PRODUCTS_KEYS), [], "eligibleProducts")
        ),
        quantity_policy=_decode(
            _POLICY, _pick(data, POLICY_KEYS), QuantityPolicy.AGGREGATE, "quantityPolicy"
        ),
        order_rule=_resolve_order_rule(_pick(data, ORDER_RULE_KEYS)),
    )


def _load(raw: RawConfiguration) -> Optional[Mapping[str, Any]]:
    if raw is None:
        return None
    if isinstance(raw, Mapping):
        return raw
    if isinstance(raw, (str, bytes)):
        if not raw.strip():
            return None
        try:
            decoded = json.loads(raw)
        except ValueError:
            logger.warning("Configuration is not valid JSON; using defaults")
            return None
        if isinstance(decoded, dict):
            return decoded
        logger.warning("Configuration JSON is a %s, not an object; using defaults",
                       type(decoded).__name__)
        return None
    logger.warning("Unsupported configuration type %s; using defaults", type(raw).__name__)
    return None


def _pick(data: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return _MISSING


def _decode(adapter: TypeAdapter, value: Any, default: Any, name: str) -> Any:
    if value is _MISSING:
        return default
    # bool is an int subclass; a checkbox value is never a number here
    if isinstance(value, bool):
        logger.debug("Field %s is a boolean; using default %r", name, default)
        return default
    try:
        return adapter.validate_python(value)
    except ValidationError:
        logger.debug("Field %s has invalid value %r; using default %r", name, value, default)
        return default


def _unique(ids: list[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(ids))


def _resolve_order_rule(value: Any) -> Optional[OrderRule]:
    if value is _MISSING:
        return None
    if not isinstance(value, Mapping):
        logger.debug("orderDiscount is not an object; order rule disabled")
        return None

    percentage = _decode(_DECIMAL, _pick(value, PERCENTAGE_KEYS), None, "orderDiscount.percentageOff")
    if percentage is None:
        logger.debug("orderDiscount has no usable percentage; order rule disabled")
        return None

    return OrderRule(
        percentage_off=percentage,
        minimum_subtotal=_decode(
            _DECIMAL, _pick(value, ("minimumSubtotal",)), Decimal("0"), "orderDiscount.minimumSubtotal"
        ),
        excluded_products=_unique(
            _decode(_IDS, _pick(value, ("excludedProducts",)), [], "orderDiscount.excludedProducts")
        ),
    )
