"""Order lifecycle table.

Every status check in the Ordering context goes through this module:
transitions are looked up in ``TRANSITIONS`` and status-gated actions
(modifying items, deleting) in ``PERMITTED_ACTIONS``. Nothing else
branches on the status value.
"""

from enum import Enum

from protean.exceptions import ValidationError

from shared.errors import InvalidStateError


class OrderStatus(Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class OrderAction(Enum):
    MODIFY = "modify"
    DELETE = "delete"


TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

PERMITTED_ACTIONS: dict[OrderStatus, frozenset[OrderAction]] = {
    OrderStatus.PENDING: frozenset({OrderAction.MODIFY, OrderAction.DELETE}),
    OrderStatus.CONFIRMED: frozenset(),
    OrderStatus.PROCESSING: frozenset(),
    OrderStatus.SHIPPED: frozenset(),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def as_status(value) -> OrderStatus:
    """Coerce a stored or user-supplied value to ``OrderStatus``."""
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        valid = ", ".join(s.value for s in OrderStatus)
        raise ValidationError({"status": [f"Unknown order status '{value}'. Expected one of: {valid}"]}) from None


def is_terminal(status) -> bool:
    return not TRANSITIONS[as_status(status)]


def can_transition(current, target) -> bool:
    return as_status(target) in TRANSITIONS[as_status(current)]


def assert_transition(current, target) -> OrderStatus:
    """Return the target status, or raise InvalidStateError if the move is illegal."""
    current, target = as_status(current), as_status(target)
    if target not in TRANSITIONS[current]:
        raise InvalidStateError(current.value, target.value)
    return target


def assert_permitted(current, action: OrderAction) -> None:
    current = as_status(current)
    if action not in PERMITTED_ACTIONS[current]:
        raise InvalidStateError(
            current.value,
            message=f"Cannot {action.value} an order in status {current.value}; only Pending orders allow it",
        )
