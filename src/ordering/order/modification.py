"""Order modification: command and handler.

Only Pending orders can be modified. A single UpdateOrder may replace
the item list, change shipping details and notes, and move the status
out of Pending (to Confirmed or Cancelled).
"""

import json

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order
from ordering.order.repository import load_order
from ordering.order.state_machine import OrderAction, assert_permitted

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class UpdateOrder:
    order_id = Identifier(required=True)
    items = Text()  # JSON: list of priced line dicts; omitted = keep items
    status = String(max_length=20)
    reason = String(max_length=500)
    updated_by = String(max_length=100)
    shipping_address = String(max_length=255)
    shipping_city = String(max_length=100)
    shipping_zip_code = String(max_length=20)
    shipping_country = String(max_length=100)
    notes = String(max_length=500)
    expected_revision = Integer()


@ordering.command_handler(part_of=Order)
class UpdateOrderHandler:
    @handle(UpdateOrder)
    def update_order(self, command):
        order = load_order(command.order_id)
        order.check_revision(command.expected_revision)
        # Any patch, even a status-only one, requires a Pending order
        assert_permitted(order.status, OrderAction.MODIFY)

        if command.items is not None:
            items_data = json.loads(command.items) if isinstance(command.items, str) else command.items
            order.update_items(items_data)

        order.update_details(
            shipping_address=command.shipping_address,
            shipping_city=command.shipping_city,
            shipping_zip_code=command.shipping_zip_code,
            shipping_country=command.shipping_country,
            notes=command.notes,
        )

        if command.status and command.status != order.status:
            order.change_status(command.status, reason=command.reason, changed_by=command.updated_by)

        current_domain.repository_for(Order).add(order)

        logger.info(
            "order_updated",
            order_id=str(order.id),
            status=order.status,
            revision=order.revision,
            total_amount=order.total_amount,
        )
        return str(order.id)
