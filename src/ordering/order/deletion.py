"""Order deletion: command and handler. Restricted to Pending orders."""

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order
from ordering.order.repository import load_order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class DeleteOrder:
    order_id = Identifier(required=True)


@ordering.command_handler(part_of=Order)
class DeleteOrderHandler:
    @handle(DeleteOrder)
    def delete_order(self, command):
        order = load_order(command.order_id)
        order.mark_deleted()

        current_domain.repository_for(Order).remove(order)

        logger.info("order_deleted", order_id=str(order.id), order_number=order.order_number)
