"""Order creation: command and handler.

The command carries lines that were already validated against the
product catalogue (see ``ordering.order.workflow``): each line holds the
product snapshot (name, sku, unit price) taken at order time.
"""

import json

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.numbering import generate_order_number
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class CreateOrder:
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of priced line dicts
    shipping_address = String(max_length=255)
    shipping_city = String(max_length=100)
    shipping_zip_code = String(max_length=20)
    shipping_country = String(max_length=100)
    notes = String(max_length=500)


@ordering.command_handler(part_of=Order)
class CreateOrderHandler:
    @handle(CreateOrder)
    def create_order(self, command):
        repo = current_domain.repository_for(Order)
        items_data = json.loads(command.items) if isinstance(command.items, str) else command.items

        order = Order.create(
            customer_id=command.customer_id,
            order_number=generate_order_number(repo.order_number_exists),
            items_data=items_data,
            shipping_address=command.shipping_address,
            shipping_city=command.shipping_city,
            shipping_zip_code=command.shipping_zip_code,
            shipping_country=command.shipping_country,
            notes=command.notes,
        )

        repo.add(order)

        logger.info(
            "order_created",
            order_id=str(order.id),
            order_number=order.order_number,
            customer_id=str(order.customer_id),
            total_amount=order.total_amount,
        )
        return str(order.id)
