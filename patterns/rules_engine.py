"""Pure-function rules engine pattern.

Rules are stateless functions: (values) -> RuleResult.
No database, no side effects. This makes them:
- Trivially testable (pure input/output)
- Composable (chain multiple rules)
- Auditable (deterministic, explainable)

Domain: gating a volume discount on percentage range, quantity
thresholds, granted discount classes, and order subtotal.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Collection


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class RuleResult:
    """Outcome of a single rule evaluation."""

    passed: bool
    rule_name: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class RuleSetResult:
    """Aggregate outcome of multiple rules."""

    all_passed: bool
    results: list[RuleResult]
    failed: list[RuleResult] = field(default_factory=list)

    def __post_init__(self):
        self.failed = [r for r in self.results if not r.passed]
        self.all_passed = len(self.failed) == 0


# ---------------------------------------------------------------------------
# Discount rules
# ---------------------------------------------------------------------------

# Finer percentages cannot be represented by the host
MAX_PERCENTAGE_PLACES = 4


def check_percentage_range(
    percentage: Decimal,
    max_percentage: Decimal = Decimal("80"),
    rule_name: str = "percentage_range",
) -> RuleResult:
    """Percentage must lie in (0, max_percentage] with at most 4 decimal places.

    A non-finite cap fails the check instead of raising.
    """
    passed = (
        _is_finite(percentage)
        and _is_finite(max_percentage)
        and Decimal("0") < percentage <= max_percentage
        and _decimal_places(percentage) <= MAX_PERCENTAGE_PLACES
    )

    return RuleResult(
        passed=passed,
        rule_name=rule_name,
        message=(
            f"{percentage}% is within range"
            if passed
            else f"{percentage}% outside (0, {max_percentage}] "
                 f"or finer than {MAX_PERCENTAGE_PLACES} places"
        ),
        details={"percentage": percentage, "max_percentage": max_percentage},
    )


def check_minimum_quantity(minimum_quantity: int) -> RuleResult:
    """The configured threshold must be a positive integer."""
    passed = minimum_quantity > 0

    return RuleResult(
        passed=passed,
        rule_name="minimum_quantity",
        message=(
            f"Minimum quantity {minimum_quantity}"
            if passed
            else f"Minimum quantity {minimum_quantity} must be positive"
        ),
        details={"minimum_quantity": minimum_quantity},
    )


def check_discount_classes(granted: Collection[Any]) -> RuleResult:
    """At least one discount class must be granted by the host."""
    passed = len(granted) > 0

    return RuleResult(
        passed=passed,
        rule_name="discount_classes",
        message="Discount classes granted" if passed else "No discount classes granted",
        details={"granted": sorted(str(getattr(c, "value", c)) for c in granted)},
    )


def check_minimum_subtotal(minimum_subtotal: Decimal) -> RuleResult:
    """An order rule threshold cannot be negative."""
    passed = _is_finite(minimum_subtotal) and minimum_subtotal >= 0

    return RuleResult(
        passed=passed,
        rule_name="minimum_subtotal",
        message=(
            f"Minimum subtotal {minimum_subtotal}"
            if passed
            else f"Minimum subtotal {minimum_subtotal} is negative"
        ),
        details={"minimum_subtotal": minimum_subtotal},
    )


def check_quantity_threshold(quantity: int, minimum_quantity: int) -> RuleResult:
    """Check whether a quantity reaches the configured threshold."""
    passed = quantity >= minimum_quantity

    return RuleResult(
        passed=passed,
        rule_name="quantity_threshold",
        message=(
            f"Quantity {quantity} meets minimum {minimum_quantity}"
            if passed
            else f"Quantity {quantity} below minimum {minimum_quantity}"
        ),
        details={"quantity": quantity, "minimum_quantity": minimum_quantity},
    )


def check_order_subtotal(subtotal: Decimal, minimum_subtotal: Decimal) -> RuleResult:
    """Order subtotal must be strictly greater than the rule's minimum."""
    passed = _is_finite(subtotal) and _is_finite(minimum_subtotal) and subtotal > minimum_subtotal

    return RuleResult(
        passed=passed,
        rule_name="order_subtotal",
        message=(
            f"Subtotal {subtotal} exceeds {minimum_subtotal}"
            if passed
            else f"Subtotal {subtotal} does not exceed {minimum_subtotal}"
        ),
        details={"subtotal": subtotal, "minimum_subtotal": minimum_subtotal},
    )


def _is_finite(value: Any) -> bool:
    # NaN raises on ordered comparison
    return not isinstance(value, Decimal) or value.is_finite()


def _decimal_places(value: Any) -> int:
    """Significant fractional digits, read from the digit tuple without rounding."""
    if not isinstance(value, Decimal):
        return 0
    _, digits, exponent = value.as_tuple()
    trailing_zeros = len(digits) - len("".join(map(str, digits)).rstrip("0"))
    return max(0, -(exponent + trailing_zeros))


# ---------------------------------------------------------------------------
# Rule composition
# ---------------------------------------------------------------------------

def evaluate_rules(*rules: RuleResult) -> RuleSetResult:
    """Compose multiple rule results into a single aggregate.

    Example::

        result = evaluate_rules(
            check_percentage_range(config.percentage_off),
            check_minimum_quantity(config.minimum_quantity),
        )
        if not result.all_passed:
            return []
    """
    return RuleSetResult(
        all_passed=all(r.passed for r in rules),
        results=list(rules),
    )
