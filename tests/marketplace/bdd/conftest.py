"""Shared BDD fixtures and step definitions for the Marketplace domain."""

import pytest
from marketplace.carrier import set_carrier
from marketplace.carrier.fake_adapter import FakeCarrier
from marketplace.order.order import Order
from marketplace.order.placement import place_order
from marketplace.order.status_control import AssignShipment, OverrideLineStatus, process_line_command
from marketplace.pricing.cart_line import CartLine
from protean import current_domain
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then, when

SHIPPING = {
    "name": "Asha Rao",
    "phone": "9800000000",
    "address": "12 Lake Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "pin": "560038",
}


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


@pytest.fixture()
def carrier():
    fake = FakeCarrier()
    set_carrier(fake)
    return fake


# ---------------------------------------------------------------------------
# Given steps — Orders
# ---------------------------------------------------------------------------
def _place_pending_order():
    line = CartLine(
        product_id="prod-bdd",
        vendor_id="vend-bdd",
        product_code="BDD",
        quantity=1,
        unit_selling_price=500.0,
        unit_mrp=550.0,
    )
    order_id = place_order("user-bdd", [line], SHIPPING, "pay-bdd")
    return {"order_id": order_id, "secret_order_id": f"{order_id}BDD"}


@given("a placed order with a pending line", target_fixture="placed")
def placed_order():
    return _place_pending_order()


@given(parsers.cfparse('a placed order with a line shipped as "{shipment_id}"'), target_fixture="placed")
def shipped_order(shipment_id, carrier):
    placed = _place_pending_order()
    process_line_command(
        AssignShipment(
            order_id=placed["order_id"],
            secret_order_id=placed["secret_order_id"],
            shipment_id=shipment_id,
        )
    )
    return placed


def _override(placed, status):
    process_line_command(
        OverrideLineStatus(
            order_id=placed["order_id"],
            secret_order_id=placed["secret_order_id"],
            status=status,
        )
    )


@given(parsers.cfparse('an admin sets the line status to "{status}"'))
def admin_sets_status(placed, status):
    _override(placed, status)


@when(parsers.cfparse('an admin sets the line status to "{status}"'))
def admin_overrides_status(placed, status):
    _override(placed, status)


# ---------------------------------------------------------------------------
# Then steps — Orders (shared, plain assertions)
# ---------------------------------------------------------------------------
def current_line(placed):
    order = current_domain.repository_for(Order).get(placed["order_id"])
    return order.line(placed["secret_order_id"])


@then(parsers.cfparse('the line status is "{status}"'))
def line_status_is(placed, status):
    assert current_line(placed).status == status


@then("the action fails with a validation error")
def action_fails(error):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)


@then(parsers.cfparse('the line updated date is "{updated_date}"'))
def line_updated_date_is(placed, updated_date):
    assert current_line(placed).updated_date == updated_date


@then(parsers.cfparse("the line has {count:d} tracking entry"))
def line_tracking_entries(placed, count):
    assert len(current_line(placed).history()) == count
