"""Shared BDD fixtures and step definitions for the Ordering domain."""

import pytest
from ordering.order.workflow import ItemRequest
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then
from shared.errors import (
    BusinessRuleError,
    ConflictError,
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    UnavailableError,
)

# Map error names used in feature files to exception classes
_ERROR_CLASSES = {
    "ValidationError": ValidationError,
    "NotFoundError": NotFoundError,
    "InsufficientStockError": InsufficientStockError,
    "BusinessRuleError": BusinessRuleError,
    "InvalidStateError": InvalidStateError,
    "ConflictError": ConflictError,
    "UnavailableError": UnavailableError,
}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def cart():
    """Item requests collected by Given steps before the order is placed."""
    return []


@pytest.fixture()
def error():
    """Container for the exception raised by a When step."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('the customer wants {quantity:d} of "{product_id}"'))
def _(cart, quantity, product_id):
    cart.append(ItemRequest(product_id=product_id, quantity=quantity))


@given("a pending order was placed", target_fixture="order")
def _(placed_order):
    return placed_order


@given(parsers.cfparse('the order moved to "{status}"'), target_fixture="order")
def _(workflow, order, status):
    return workflow.change_status(order["id"], status)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the order subtotal is {amount:f}"))
def _(order, amount):
    assert order["sub_total"] == amount


@then(parsers.cfparse("the order tax is {amount:f}"))
def _(order, amount):
    assert order["tax_amount"] == amount


@then(parsers.cfparse("the order shipping cost is {amount:f}"))
def _(order, amount):
    assert order["shipping_cost"] == amount


@then(parsers.cfparse("the order total is {amount:f}"))
def _(order, amount):
    assert order["total_amount"] == amount


@then(parsers.cfparse('the order status is "{status}"'))
def _(workflow, order, status):
    assert workflow.get_order(order["id"])["status"] == status


@then(parsers.cfparse("the operation fails with {error_name}"))
def _(error, error_name):
    assert error["exc"] is not None, f"Expected {error_name} but nothing was raised"
    assert isinstance(error["exc"], _ERROR_CLASSES[error_name])
