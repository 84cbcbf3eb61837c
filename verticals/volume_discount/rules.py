"""Volume discount evaluation: pure functions.

evaluate() is the engine: (cart snapshot, configuration, granted classes)
-> list of DiscountDirective. It never raises on bad input and keeps no
state between calls; every anomaly degrades to "no discount".

run() and run_legacy() are the host entry points: they decode the raw
function input, resolve the configuration, evaluate, and render.
"""

import logging
from typing import Any, Iterable, Mapping, Optional

from pydantic import ValidationError

from core.engine.template_engine import TemplateEngine, fmt_decimal
from patterns.domain_config import DiscountLimits
from patterns.rules_engine import (
    RuleSetResult,
    check_discount_classes,
    check_minimum_quantity,
    check_minimum_subtotal,
    check_order_subtotal,
    check_percentage_range,
    check_quantity_threshold,
    evaluate_rules,
)
from verticals.volume_discount import renderer
from verticals.volume_discount.config import resolve, settings
from verticals.volume_discount.models.domain import (
    CartLine,
    CartLineTarget,
    CartSnapshot,
    Configuration,
    DirectiveKind,
    DiscountClass,
    DiscountDirective,
    OrderRule,
    OrderSubtotalTarget,
    ProductVariant,
    ProductVariantTarget,
    QuantityPolicy,
    SelectionStrategy,
    TargetGranularity,
)
from verticals.volume_discount.models.schemas import LegacyRunInput, RunInput

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

def product_message(config: Configuration) -> str:
    return f"{fmt_decimal(config.percentage_off)}% off (buy {config.minimum_quantity}+)"


def order_message(rule: OrderRule) -> str:
    return f"{fmt_decimal(rule.percentage_off)}% off order"


# ---------------------------------------------------------------------------
# Eligibility
# ---------------------------------------------------------------------------

def eligible_lines(cart: CartSnapshot, eligible_products: Iterable[str] = ()) -> tuple[CartLine, ...]:
    """Lines that may receive the product discount.

    A line is a candidate when its merchandise is a product variant with a
    positive quantity. A non-empty product set further restricts candidates
    to lines of those products.
    """
    allowed = frozenset(eligible_products)
    return tuple(
        line
        for line in cart.lines
        if isinstance(line.merchandise, ProductVariant)
        and line.quantity > 0
        and (not allowed or line.merchandise.product_id in allowed)
    )


def qualifying_lines(
    candidates: tuple[CartLine, ...],
    minimum_quantity: int,
    policy: QuantityPolicy = QuantityPolicy.AGGREGATE,
) -> tuple[CartLine, ...]:
    """Apply the quantity threshold to eligible lines.

    AGGREGATE: all candidates qualify once their summed quantity reaches
    the minimum; otherwise none do.
    PER_LINE: each candidate qualifies on its own quantity.
    """
    if policy == QuantityPolicy.PER_LINE:
        return tuple(
            line for line in candidates
            if check_quantity_threshold(line.quantity, minimum_quantity).passed
        )

    total = sum(line.quantity for line in candidates)
    result = check_quantity_threshold(total, minimum_quantity)
    if not result.passed:
        logger.debug("No product discount: %s", result.message)
        return ()
    return candidates


def _line_targets(lines: tuple[CartLine, ...], granularity: TargetGranularity) -> tuple:
    if granularity == TargetGranularity.PRODUCT_VARIANT:
        variant_ids = dict.fromkeys(line.merchandise.id for line in lines)
        return tuple(ProductVariantTarget(id=v) for v in variant_ids)
    return tuple(CartLineTarget(id=line.id) for line in lines)


# ---------------------------------------------------------------------------
# Directive construction
# ---------------------------------------------------------------------------

def _product_directive(
    cart: CartSnapshot,
    config: Configuration,
    granularity: TargetGranularity,
) -> Optional[DiscountDirective]:
    candidates = eligible_lines(cart, config.eligible_products)
    if not candidates:
        logger.debug("No product discount: no eligible lines")
        return None

    lines = qualifying_lines(candidates, config.minimum_quantity, config.quantity_policy)
    if not lines:
        return None

    return DiscountDirective(
        kind=DirectiveKind.PRODUCT,
        targets=_line_targets(lines, granularity),
        value=config.percentage_off,
        message=product_message(config),
        selection_strategy=SelectionStrategy.FIRST,
    )


def _order_directive(cart: CartSnapshot, rule: OrderRule) -> Optional[DiscountDirective]:
    result = check_order_subtotal(cart.subtotal, rule.minimum_subtotal)
    if not result.passed:
        logger.debug("No order discount: %s", result.message)
        return None

    excluded = frozenset(rule.excluded_products)
    excluded_ids = tuple(
        line.id for line in cart.lines
        if excluded and line.product_id in excluded
    )

    return DiscountDirective(
        kind=DirectiveKind.ORDER,
        targets=(OrderSubtotalTarget(excluded_line_ids=excluded_ids),),
        value=rule.percentage_off,
        message=order_message(rule),
        selection_strategy=SelectionStrategy.FIRST,
    )


def validate_configuration(
    config: Configuration,
    granted_classes: Iterable[DiscountClass],
    limits: DiscountLimits,
) -> RuleSetResult:
    """Check ranges and grants once, before anything is constructed."""
    checks = [
        check_percentage_range(config.percentage_off, limits.max_percentage),
        check_minimum_quantity(config.minimum_quantity),
        check_discount_classes(frozenset(granted_classes)),
    ]
    if config.order_rule is not None:
        checks.append(check_percentage_range(
            config.order_rule.percentage_off,
            limits.max_percentage,
            rule_name="order_percentage_range",
        ))
        checks.append(check_minimum_subtotal(config.order_rule.minimum_subtotal))
    return evaluate_rules(*checks)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

def evaluate(
    cart: CartSnapshot,
    config: Configuration,
    granted_classes: Iterable[DiscountClass],
    *,
    granularity: TargetGranularity = TargetGranularity.CART_LINE,
    limits: Optional[DiscountLimits] = None,
) -> list[DiscountDirective]:
    """Evaluate a cart against a resolved configuration.

    Returns product directive first, then order directive; each only when
    its class is granted and its rule applies. Any invalid input yields an
    empty list.
    """
    if cart.is_empty:
        return []

    limits = limits or settings.limits
    granted = frozenset(granted_classes)

    validation = validate_configuration(config, granted, limits)
    if not validation.all_passed:
        for failed in validation.failed:
            logger.debug("Configuration rejected by %s: %s", failed.rule_name, failed.message)
        return []

    directives: list[DiscountDirective] = []

    if DiscountClass.PRODUCT in granted:
        directive = _product_directive(cart, config, granularity)
        if directive is not None:
            directives.append(directive)

    if DiscountClass.ORDER in granted and config.order_rule is not None:
        directive = _order_directive(cart, config.order_rule)
        if directive is not None:
            directives.append(directive)

    return directives


# ---------------------------------------------------------------------------
# Host entry points
# ---------------------------------------------------------------------------

def run(
    payload: Mapping[str, Any],
    *,
    configuration: Any = None,
    limits: Optional[DiscountLimits] = None,
) -> dict[str, Any]:
    """Evaluate a raw function input and render the operations result.

    ``configuration`` overrides the blob carried in the input.
    """
    try:
        run_input = RunInput.model_validate(payload)
    except ValidationError as exc:
        logger.warning("Undecodable run input (%d errors); no discount", exc.error_count())
        return TemplateEngine.render(renderer.OPERATIONS, [])

    raw = configuration if configuration is not None else run_input.configuration_value
    directives = evaluate(
        run_input.to_snapshot(),
        resolve(raw, limits=limits),
        run_input.granted_classes,
        limits=limits,
    )
    return TemplateEngine.render(renderer.OPERATIONS, directives)


def run_legacy(
    payload: Mapping[str, Any],
    *,
    configuration: Any = None,
    limits: Optional[DiscountLimits] = None,
) -> dict[str, Any]:
    """Evaluate a legacy function input (product class only, variant targets)."""
    try:
        run_input = LegacyRunInput.model_validate(payload)
    except ValidationError as exc:
        logger.warning("Undecodable legacy run input (%d errors); no discount", exc.error_count())
        return TemplateEngine.render(renderer.LEGACY, [])

    raw = configuration if configuration is not None else run_input.configuration_value
    directives = evaluate(
        run_input.to_snapshot(),
        resolve(raw, limits=limits),
        {DiscountClass.PRODUCT},
        granularity=TargetGranularity.PRODUCT_VARIANT,
        limits=limits,
    )
    return TemplateEngine.render(renderer.LEGACY, directives)


__all__ = [
    "eligible_lines",
    "evaluate",
    "order_message",
    "product_message",
    "qualifying_lines",
    "run",
    "run_legacy",
    "validate_configuration",
]
