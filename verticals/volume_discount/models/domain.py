"""Domain types for discount evaluation.

Everything here is immutable. A CartSnapshot is handed to the engine
once per evaluation and the directives it returns belong to the caller.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Union


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class DiscountClass(str, Enum):
    """Discount classes the host may grant for an evaluation."""

    ORDER = "ORDER"
    PRODUCT = "PRODUCT"


class DirectiveKind(str, Enum):
    ORDER = "order"
    PRODUCT = "product"


class SelectionStrategy(str, Enum):
    """How the host picks among candidates of the same class."""

    FIRST = "FIRST"


class QuantityPolicy(str, Enum):
    """How line quantities are compared with the minimum quantity.

    AGGREGATE sums quantities across all eligible lines. PER_LINE checks
    each eligible line on its own and only targets the lines that pass.
    """

    AGGREGATE = "aggregate"
    PER_LINE = "per_line"


class TargetGranularity(str, Enum):
    CART_LINE = "cart_line"
    PRODUCT_VARIANT = "product_variant"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OrderRule:
    """Order-wide percentage discount above a subtotal threshold."""

    percentage_off: Decimal
    minimum_subtotal: Decimal = Decimal("0")
    excluded_products: tuple[str, ...] = ()


@dataclass(frozen=True)
class Configuration:
    """Merchant rule set after resolution. Always fully populated."""

    minimum_quantity: int = 1
    percentage_off: Decimal = Decimal("10")
    eligible_products: tuple[str, ...] = ()
    quantity_policy: QuantityPolicy = QuantityPolicy.AGGREGATE
    order_rule: OrderRule | None = None


# ---------------------------------------------------------------------------
# Cart snapshot
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProductVariant:
    id: str
    product_id: str


@dataclass(frozen=True)
class OtherMerchandise:
    """Merchandise that is not a product variant (custom products etc.)."""

    typename: str = ""
    id: str | None = None


Merchandise = Union[ProductVariant, OtherMerchandise]


@dataclass(frozen=True)
class CartLine:
    id: str
    quantity: int
    merchandise: Merchandise | None = None
    subtotal: Decimal = Decimal("0")

    @property
    def product_id(self) -> str | None:
        if isinstance(self.merchandise, ProductVariant):
            return self.merchandise.product_id
        return None


@dataclass(frozen=True)
class CartSnapshot:
    lines: tuple[CartLine, ...] = ()
    subtotal: Decimal = Decimal("0")

    @property
    def is_empty(self) -> bool:
        return not self.lines


# ---------------------------------------------------------------------------
# Directives
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CartLineTarget:
    id: str


@dataclass(frozen=True)
class ProductVariantTarget:
    id: str


@dataclass(frozen=True)
class OrderSubtotalTarget:
    excluded_line_ids: tuple[str, ...] = ()


DirectiveTarget = Union[CartLineTarget, ProductVariantTarget, OrderSubtotalTarget]


@dataclass(frozen=True)
class DiscountDirective:
    """A single discount the host should apply."""

    kind: DirectiveKind
    targets: tuple[DirectiveTarget, ...]
    value: Decimal
    message: str
    selection_strategy: SelectionStrategy = SelectionStrategy.FIRST
