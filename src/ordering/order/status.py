"""Order status changes beyond Pending: command and handler."""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order
from ordering.order.repository import load_order
from ordering.order.state_machine import OrderStatus

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class ChangeOrderStatus:
    """Move an order to the next lifecycle state (e.g. Confirmed -> Processing)."""

    order_id = Identifier(required=True)
    status = String(required=True, choices=OrderStatus)
    reason = String(max_length=500)
    changed_by = String(max_length=100)
    expected_revision = Integer()


@ordering.command_handler(part_of=Order)
class ChangeOrderStatusHandler:
    @handle(ChangeOrderStatus)
    def change_status(self, command):
        order = load_order(command.order_id)
        order.check_revision(command.expected_revision)

        previous = order.change_status(command.status, reason=command.reason, changed_by=command.changed_by)

        current_domain.repository_for(Order).add(order)

        logger.info(
            "order_status_changed",
            order_id=str(order.id),
            previous_status=previous.value,
            new_status=order.status,
            reason=command.reason,
        )
        return str(order.id)
