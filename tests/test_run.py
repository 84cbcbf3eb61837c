"""Test host entry points, input decoding, and result rendering."""
import json
from decimal import Decimal

import pytest
from core.engine.template_engine import TemplateEngine, fmt_decimal, fmt_number
from verticals.volume_discount.models.domain import DiscountClass, OtherMerchandise, ProductVariant
from verticals.volume_discount.models.schemas import ConfigurationUpdate, RunInput
from verticals.volume_discount.rules import run, run_legacy


def cart_line(line_id, product_id, quantity, variant_id=None, amount="10.0"):
    return {
        "id": line_id,
        "quantity": quantity,
        "merchandise": {
            "__typename": "ProductVariant",
            "id": variant_id or f"gid://shopify/ProductVariant/{line_id}",
            "product": {"id": product_id},
        },
        "cost": {"subtotalAmount": {"amount": amount}},
    }


def run_input(lines, configuration=None, classes=("PRODUCT",), subtotal="30.0"):
    discount = {"discountClasses": list(classes)}
    if configuration is not None:
        discount["metafield"] = {"value": json.dumps(configuration)}
    return {
        "cart": {"lines": lines, "cost": {"subtotalAmount": {"amount": subtotal}}},
        "discount": discount,
    }


# ---------------------------------------------------------------------------
# Input decoding
# ---------------------------------------------------------------------------

def test_run_input_snapshot():
    payload = run_input([cart_line("L1", "P1", 3, amount="12.50")])
    snapshot = RunInput.model_validate(payload).to_snapshot()
    assert snapshot.subtotal == Decimal("30.0")
    assert snapshot.lines[0].quantity == 3
    assert snapshot.lines[0].subtotal == Decimal("12.50")
    assert snapshot.lines[0].merchandise == ProductVariant(
        id="gid://shopify/ProductVariant/L1", product_id="P1"
    )


def test_custom_merchandise_decodes_as_other():
    raw_line = {"id": "L1", "quantity": 1, "merchandise": {"__typename": "CustomProduct"}}
    snapshot = RunInput.model_validate(run_input([raw_line])).to_snapshot()
    assert snapshot.lines[0].merchandise == OtherMerchandise(typename="CustomProduct")


def test_variant_without_product_decodes_as_other():
    raw_line = {"id": "L1", "quantity": 1,
                "merchandise": {"__typename": "ProductVariant", "id": "V1"}}
    snapshot = RunInput.model_validate(run_input([raw_line])).to_snapshot()
    assert isinstance(snapshot.lines[0].merchandise, OtherMerchandise)


def test_malformed_lines_are_skipped():
    lines = [
        {"quantity": 2},
        {"id": "L2", "quantity": "many"},
        "not a line",
        cart_line("L4", "P1", 1),
    ]
    snapshot = RunInput.model_validate(run_input(lines)).to_snapshot()
    assert [l.id for l in snapshot.lines] == ["L4"]


def test_granted_classes_ignore_unknown_names():
    payload = run_input([], classes=("product", "SHIPPING", "ORDER"))
    granted = RunInput.model_validate(payload).granted_classes
    assert granted == frozenset({DiscountClass.PRODUCT, DiscountClass.ORDER})


# ---------------------------------------------------------------------------
# run()
# ---------------------------------------------------------------------------

def test_run_product_operation():
    payload = run_input(
        [cart_line("L1", "P1", 3)],
        {"minimumQuantity": 2, "percentageOff": 10, "eligibleProducts": []},
    )
    assert run(payload) == {
        "operations": [
            {
                "productDiscountsAdd": {
                    "candidates": [
                        {
                            "message": "10% off (buy 2+)",
                            "targets": [{"cartLine": {"id": "L1"}}],
                            "value": {"percentage": {"value": 10}},
                        }
                    ],
                    "selectionStrategy": "FIRST",
                }
            }
        ]
    }


def test_run_with_product_and_order_operations():
    payload = run_input(
        [cart_line("L1", "P1", 2), cart_line("L2", "P2", 1)],
        {
            "minimumQuantity": 2,
            "percentageOff": 12.5,
            "orderDiscount": {"percentageOff": 40, "minimumSubtotal": "2.0",
                              "excludedProducts": ["P2"]},
        },
        classes=("PRODUCT", "ORDER"),
    )
    operations = run(payload)["operations"]
    assert list(operations[0]) == ["productDiscountsAdd"]
    assert operations[0]["productDiscountsAdd"]["candidates"][0]["value"] == {
        "percentage": {"value": 12.5}
    }
    assert operations[1] == {
        "orderDiscountsAdd": {
            "candidates": [
                {
                    "message": "40% off order",
                    "targets": [{"orderSubtotal": {"excludedCartLineIds": ["L2"]}}],
                    "value": {"percentage": {"value": 40}},
                }
            ],
            "selectionStrategy": "FIRST",
        }
    }


def test_run_threshold_not_met():
    payload = run_input(
        [cart_line("L1", "P1", 1), cart_line("L2", "P2", 5)],
        {"minimumQuantity": 2, "percentageOff": 10, "eligibleProducts": ["P1"]},
    )
    assert run(payload) == {"operations": []}


def test_run_without_metafield_uses_defaults():
    assert len(run(run_input([cart_line("L1", "P1", 1)]))["operations"]) == 1


def test_run_configuration_override():
    payload = run_input([cart_line("L1", "P1", 1)], {"percentageOff": 10})
    assert run(payload, configuration='{"percentageOff": 90}') == {"operations": []}


@pytest.mark.parametrize("payload", [None, [], {"cart": "nope"}, {"discount": {}}])
def test_run_undecodable_input(payload):
    assert run(payload) == {"operations": []}


def test_run_empty_cart():
    assert run(run_input([], {"percentageOff": 10})) == {"operations": []}


# ---------------------------------------------------------------------------
# run_legacy()
# ---------------------------------------------------------------------------

def legacy_input(lines, configuration=None):
    payload = {"cart": {"lines": lines}}
    if configuration is not None:
        payload["discountNode"] = {"metafield": {"value": json.dumps(configuration)}}
    return payload


def test_run_legacy_variant_targets():
    payload = legacy_input(
        [cart_line("L1", "P1", 1, variant_id="V1"), cart_line("L2", "P1", 1, variant_id="V2")],
        {"quantity": 2, "percentage": 40, "productIds": ["P1"]},
    )
    assert run_legacy(payload) == {
        "discountApplicationStrategy": "FIRST",
        "discounts": [
            {
                "message": "40% off (buy 2+)",
                "targets": [{"productVariant": {"id": "V1"}}, {"productVariant": {"id": "V2"}}],
                "value": {"percentage": {"value": "40"}},
            }
        ],
    }


def test_run_legacy_ignores_order_rule():
    payload = legacy_input(
        [cart_line("L1", "P1", 1)],
        {"minimumQuantity": 5, "orderDiscount": {"percentageOff": 40}},
    )
    assert run_legacy(payload) == {"discountApplicationStrategy": "FIRST", "discounts": []}


def test_run_legacy_undecodable_input():
    assert run_legacy("garbage") == {"discountApplicationStrategy": "FIRST", "discounts": []}


# ---------------------------------------------------------------------------
# Template engine
# ---------------------------------------------------------------------------

def test_formatters():
    assert fmt_decimal(Decimal("10")) == "10"
    assert fmt_decimal(Decimal("12.50")) == "12.5"
    assert fmt_decimal(Decimal("0.00")) == "0"
    assert fmt_decimal(7) == "7"
    assert fmt_number(Decimal("10.00")) == 10
    assert fmt_number(Decimal("12.5")) == 12.5


def test_formatters_bound_extreme_exponents():
    assert fmt_decimal(Decimal("1e-400")) == "1E-400"
    assert fmt_decimal(Decimal("1e99999999")) == "1E+99999999"
    assert fmt_decimal(Decimal("0.0001")) == "0.0001"


@pytest.mark.parametrize("value", ["1e-400", "1e99999999", "NaN", "Infinity"])
def test_fmt_number_refuses_unrenderable_values(value):
    with pytest.raises(ValueError, match="Cannot render number"):
        fmt_number(Decimal(value))


def test_run_tiny_percentage_is_not_rendered_as_zero():
    payload = run_input([cart_line("L1", "P1", 3)], {"minimumQuantity": 1, "percentageOff": "1e-400"})
    assert run(payload) == {"operations": []}


def test_registered_formats():
    assert {"operations", "legacy"} <= set(TemplateEngine.list_formats())


def test_unknown_format():
    with pytest.raises(ValueError, match="Unknown result format"):
        TemplateEngine.render("xml", [])


# ---------------------------------------------------------------------------
# Admin form
# ---------------------------------------------------------------------------

def test_configuration_update_blob_round_trips_through_resolver():
    from verticals.volume_discount.config import resolve

    form = ConfigurationUpdate.model_validate({
        "minimumQuantity": 3, "percentageOff": 25, "eligibleProducts": ["P1"],
    })
    config = resolve(form.to_blob())
    assert config.minimum_quantity == 3
    assert config.percentage_off == Decimal("25")
    assert config.eligible_products == ("P1",)


@pytest.mark.parametrize("pct", [0, 0.5, 81, "12.34567"])
def test_configuration_update_enforces_admin_range(pct):
    from pydantic import ValidationError

    with pytest.raises(ValidationError):
        ConfigurationUpdate.model_validate({"percentageOff": pct})
