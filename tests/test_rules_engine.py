"""Test the pure rule checks."""
from decimal import Decimal

import pytest
from patterns.rules_engine import (
    check_discount_classes,
    check_minimum_quantity,
    check_minimum_subtotal,
    check_order_subtotal,
    check_percentage_range,
    check_quantity_threshold,
    evaluate_rules,
)


@pytest.mark.parametrize("pct,passed", [
    (Decimal("0"), False),
    (Decimal("0.5"), True),
    (Decimal("1"), True),
    (Decimal("80"), True),
    (Decimal("80.01"), False),
    (Decimal("-5"), False),
    (Decimal("NaN"), False),
])
def test_percentage_range(pct, passed):
    assert check_percentage_range(pct).passed is passed


def test_percentage_range_custom_max():
    assert check_percentage_range(Decimal("60"), max_percentage=Decimal("50")).passed is False
    result = check_percentage_range(Decimal("60"), rule_name="order_percentage_range")
    assert result.rule_name == "order_percentage_range"


def test_minimum_quantity():
    assert check_minimum_quantity(1).passed
    assert not check_minimum_quantity(0).passed
    assert "must be positive" in check_minimum_quantity(-2).message


def test_discount_classes():
    assert check_discount_classes({"PRODUCT"}).passed
    result = check_discount_classes(set())
    assert not result.passed
    assert result.details["granted"] == []


def test_quantity_threshold():
    assert check_quantity_threshold(2, 2).passed
    result = check_quantity_threshold(1, 2)
    assert not result.passed
    assert result.message == "Quantity 1 below minimum 2"


def test_order_subtotal_is_strict():
    assert check_order_subtotal(Decimal("2.01"), Decimal("2.00")).passed
    assert not check_order_subtotal(Decimal("2.00"), Decimal("2.00")).passed


def test_minimum_subtotal():
    assert check_minimum_subtotal(Decimal("0")).passed
    assert not check_minimum_subtotal(Decimal("-1")).passed


def test_evaluate_rules_collects_failures():
    result = evaluate_rules(
        check_percentage_range(Decimal("90")),
        check_minimum_quantity(2),
        check_discount_classes(set()),
    )
    assert not result.all_passed
    assert [r.rule_name for r in result.failed] == ["percentage_range", "discount_classes"]


def test_evaluate_rules_all_pass():
    result = evaluate_rules(check_minimum_quantity(1), check_quantity_threshold(3, 1))
    assert result.all_passed
    assert result.failed == []


def test_percentage_range_with_non_finite_cap():
    result = check_percentage_range(Decimal("10"), max_percentage=Decimal("NaN"))
    assert result.passed is False


@pytest.mark.parametrize("pct,passed", [
    (Decimal("12.5000"), True),
    (Decimal("0.0001"), True),
    (Decimal("0.00001"), False),
    (Decimal("1e-400"), False),
    (Decimal("1e-99999999"), False),
    (Decimal("1e99999999"), False),
    (Decimal("1E+1"), True),
])
def test_percentage_range_precision(pct, passed):
    assert check_percentage_range(pct).passed is passed
