"""Result renderers for the volume discount vertical.

Registers two host formats with the template engine:
- "operations": current cart-lines discounts API
- "legacy": discountApplicationStrategy result (product variants only)
"""

from typing import Any, Dict, Sequence

from core.engine.template_engine import fmt_decimal, fmt_number, register_renderer
from verticals.volume_discount.models.domain import (
    CartLineTarget,
    DirectiveKind,
    DiscountDirective,
    OrderSubtotalTarget,
    ProductVariantTarget,
    SelectionStrategy,
)

OPERATIONS = "operations"
LEGACY = "legacy"


def _render_target(target) -> Dict[str, Any]:
    if isinstance(target, CartLineTarget):
        return {"cartLine": {"id": target.id}}
    if isinstance(target, ProductVariantTarget):
        return {"productVariant": {"id": target.id}}
    if isinstance(target, OrderSubtotalTarget):
        return {"orderSubtotal": {"excludedCartLineIds": list(target.excluded_line_ids)}}
    raise TypeError(f"Unsupported directive target: {type(target).__name__}")


def _render_candidate(directive: DiscountDirective) -> Dict[str, Any]:
    return {
        "message": directive.message,
        "targets": [_render_target(t) for t in directive.targets],
        "value": {"percentage": {"value": fmt_number(directive.value)}},
    }


def render_operations(directives: Sequence[DiscountDirective]) -> Dict[str, Any]:
    """Render directives as cart-lines discount operations."""
    operations = []
    for directive in directives:
        key = (
            "orderDiscountsAdd"
            if directive.kind == DirectiveKind.ORDER
            else "productDiscountsAdd"
        )
        operations.append({
            key: {
                "candidates": [_render_candidate(directive)],
                "selectionStrategy": directive.selection_strategy.value,
            }
        })
    return {"operations": operations}


def render_legacy(directives: Sequence[DiscountDirective]) -> Dict[str, Any]:
    """Render directives in the legacy function result shape.

    The legacy API has no order class, so order directives are dropped.
    Percentages are sent as decimal strings.
    """
    discounts = []
    strategy = SelectionStrategy.FIRST
    for directive in directives:
        if directive.kind != DirectiveKind.PRODUCT:
            continue
        strategy = directive.selection_strategy
        discounts.append({
            "message": directive.message,
            "targets": [_render_target(t) for t in directive.targets],
            "value": {"percentage": {"value": fmt_decimal(directive.value)}},
        })
    return {
        "discountApplicationStrategy": strategy.value,
        "discounts": discounts,
    }


# Auto-register on import
register_renderer(OPERATIONS, render_operations)
register_renderer(LEGACY, render_legacy)
