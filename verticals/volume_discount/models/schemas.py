"""Pydantic schemas for host payloads and admin requests.

The run input mirrors the platform's discount function input. Cart lines
are decoded one at a time so a single malformed line is dropped instead
of failing the whole payload.
"""

import logging
from decimal import Decimal
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from verticals.volume_discount.models.domain import (
    CartLine,
    CartSnapshot,
    DiscountClass,
    Merchandise,
    OtherMerchandise,
    ProductVariant,
    QuantityPolicy,
)

logger = logging.getLogger(__name__)


class _HostModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# Run input
# ---------------------------------------------------------------------------

class Money(_HostModel):
    amount: Decimal = Decimal("0")


class Cost(_HostModel):
    subtotal_amount: Money = Field(default_factory=Money, alias="subtotalAmount")


class ProductRef(_HostModel):
    id: str


class ProductVariantIn(_HostModel):
    typename: Literal["ProductVariant"] = Field(alias="__typename")
    id: str
    product: ProductRef


class CartLineIn(_HostModel):
    id: str
    quantity: int
    merchandise: Optional[dict[str, Any]] = None
    cost: Cost = Field(default_factory=Cost)


class CartIn(_HostModel):
    lines: list[Any] = Field(default_factory=list)
    cost: Cost = Field(default_factory=Cost)


class Metafield(_HostModel):
    value: Optional[str] = None


class DiscountIn(_HostModel):
    discount_classes: list[str] = Field(default_factory=list, alias="discountClasses")
    metafield: Optional[Metafield] = None


class DiscountNodeIn(_HostModel):
    metafield: Optional[Metafield] = None


class RunInput(_HostModel):
    """Current discount function input (cart lines + discount classes)."""

    cart: CartIn
    discount: DiscountIn = Field(default_factory=DiscountIn)

    @property
    def configuration_value(self) -> Optional[str]:
        return self.discount.metafield.value if self.discount.metafield else None

    @property
    def granted_classes(self) -> frozenset[DiscountClass]:
        granted = set()
        for name in self.discount.discount_classes:
            try:
                granted.add(DiscountClass(str(name).upper()))
            except ValueError:
                logger.debug("Ignoring unsupported discount class %r", name)
        return frozenset(granted)

    def to_snapshot(self) -> CartSnapshot:
        return _build_snapshot(self.cart)


class LegacyRunInput(_HostModel):
    """Legacy function input: configuration on the discount node."""

    cart: CartIn
    discount_node: DiscountNodeIn = Field(default_factory=DiscountNodeIn, alias="discountNode")

    @property
    def configuration_value(self) -> Optional[str]:
        return self.discount_node.metafield.value if self.discount_node.metafield else None

    def to_snapshot(self) -> CartSnapshot:
        return _build_snapshot(self.cart)


def decode_merchandise(raw: Optional[dict[str, Any]]) -> Optional[Merchandise]:
    """Decode a merchandise descriptor; anything but a full variant is 'other'."""
    if raw is None:
        return None
    try:
        variant = ProductVariantIn.model_validate(raw)
    except ValidationError:
        typename = raw.get("__typename") if isinstance(raw, dict) else None
        return OtherMerchandise(typename=str(typename or ""), id=_opt_str(raw, "id"))
    return ProductVariant(id=variant.id, product_id=variant.product.id)


def _opt_str(raw: Any, key: str) -> Optional[str]:
    value = raw.get(key) if isinstance(raw, dict) else None
    return value if isinstance(value, str) else None


def _build_snapshot(cart: CartIn) -> CartSnapshot:
    lines = []
    for index, raw_line in enumerate(cart.lines):
        try:
            line = CartLineIn.model_validate(raw_line)
        except ValidationError as exc:
            logger.warning(
                "Skipping malformed cart line %d: %d validation error(s)",
                index,
                exc.error_count(),
            )
            continue
        lines.append(
            CartLine(
                id=line.id,
                quantity=line.quantity,
                merchandise=decode_merchandise(line.merchandise),
                subtotal=line.cost.subtotal_amount.amount,
            )
        )
    return CartSnapshot(lines=tuple(lines), subtotal=cart.cost.subtotal_amount.amount)


# ---------------------------------------------------------------------------
# Admin request models
# ---------------------------------------------------------------------------

class OrderDiscountUpdate(_HostModel):
    percentage_off: Decimal = Field(..., ge=1, le=80, decimal_places=4, alias="percentageOff")
    minimum_subtotal: Decimal = Field(Decimal("0"), ge=0, alias="minimumSubtotal")
    excluded_products: list[str] = Field(default_factory=list, alias="excludedProducts")


class ConfigurationUpdate(_HostModel):
    """Merchant-facing configuration form, validated to the UI range."""

    minimum_quantity: int = Field(1, ge=1, alias="minimumQuantity")
    percentage_off: Decimal = Field(Decimal("10"), ge=1, le=80, decimal_places=4, alias="percentageOff")
    eligible_products: list[str] = Field(default_factory=list, alias="eligibleProducts")
    quantity_policy: QuantityPolicy = Field(QuantityPolicy.AGGREGATE, alias="quantityPolicy")
    order_discount: Optional[OrderDiscountUpdate] = Field(None, alias="orderDiscount")

    def to_blob(self) -> str:
        """Serialize to the JSON stored in the configuration metafield."""
        return self.model_dump_json(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------

class OrderDiscountView(_HostModel):
    percentage_off: Decimal = Field(alias="percentageOff")
    minimum_subtotal: Decimal = Field(alias="minimumSubtotal")
    excluded_products: list[str] = Field(alias="excludedProducts")


class ConfigurationView(_HostModel):
    minimum_quantity: int = Field(alias="minimumQuantity")
    percentage_off: Decimal = Field(alias="percentageOff")
    eligible_products: list[str] = Field(alias="eligibleProducts")
    quantity_policy: QuantityPolicy = Field(alias="quantityPolicy")
    order_discount: Optional[OrderDiscountView] = Field(None, alias="orderDiscount")
    stored: bool = False
