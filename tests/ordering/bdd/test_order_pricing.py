"""BDD tests for order pricing."""

from ordering.order.workflow import ItemRequest
from protean.exceptions import ValidationError
from pytest_bdd import parsers, scenarios, when
from shared.errors import OrderflowError

scenarios("features/order_pricing.feature")


def capture(error, call):
    try:
        return call()
    except (OrderflowError, ValidationError) as exc:
        error["exc"] = exc
        return None


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("the order is placed", target_fixture="order")
def _(workflow, cart, error):
    return capture(error, lambda: workflow.create_order(customer_id="cust-001", items=cart))


@when(parsers.cfparse("the widget quantity is changed to {quantity:d}"), target_fixture="order")
def _(workflow, order, quantity):
    items = [
        ItemRequest(
            product_id=item["product_id"],
            quantity=quantity if item["product_id"] == "prod-001" else item["quantity"],
            id=item["id"],
        )
        for item in order["items"]
    ]
    return workflow.update_order(order["id"], items=items)
