"""Cross-domain event contracts for Ordering domain events.

These classes define the event shape for consumption by other domains
(the Catalogue stock ledger keeps product stock in line with them). They
are registered as external events via domain.register_external_event()
with matching type strings so Protean can map broker messages back to
event objects.

The source-of-truth events are in src/ordering/order/events.py. Each
contract carries the ``__type__`` Ordering stamps on the original, so
``@handle`` methods in a consuming domain resolve without the contract
being registered as one of that domain's own events.

Ordering publishes every committed order event to the ``orders`` broker
stream. ``routing_key`` keeps the topic naming consumers bind to.
"""

import json

from protean.core.event import BaseEvent
from protean.fields import DateTime, Float, Identifier, Integer, String, Text

ORDERS_STREAM = "orders"


class OrderCreated(BaseEvent):
    """A new order was placed in Pending status. Stock should be decremented per line."""

    __version__ = "v1"
    __type__ = "Ordering.OrderCreated.v1"
    routing_key = "orders.created"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON list of item dicts
    sub_total = Float(required=True)
    tax_amount = Float(required=True)
    shipping_cost = Float(required=True)
    total_amount = Float(required=True)
    created_at = DateTime(required=True)


class OrderItemsUpdated(BaseEvent):
    """The lines of a Pending order changed. Stock moves by the per-product difference."""

    __version__ = "v1"
    __type__ = "Ordering.OrderItemsUpdated.v1"
    routing_key = "orders.items.updated"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    previous_items = Text(required=True)  # JSON list of item dicts before the change
    items = Text(required=True)  # JSON list of item dicts after the change
    sub_total = Float(required=True)
    tax_amount = Float(required=True)
    shipping_cost = Float(required=True)
    total_amount = Float(required=True)
    revision = Integer(required=True)
    updated_at = DateTime(required=True)


class OrderStatusUpdated(BaseEvent):
    """An order moved along its lifecycle. Cancellation restocks the lines."""

    __version__ = "v1"
    __type__ = "Ordering.OrderStatusUpdated.v1"
    routing_key = "orders.status.updated"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    items = Text(required=True)  # JSON list of the order's lines at the time of the change
    previous_status = String(required=True)
    new_status = String(required=True)
    reason = String()
    changed_by = String()
    changed_at = DateTime(required=True)


class OrderDeleted(BaseEvent):
    """A Pending order was removed. Its lines are returned to stock."""

    __version__ = "v1"
    __type__ = "Ordering.OrderDeleted.v1"
    routing_key = "orders.deleted"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    items = Text(required=True)
    deleted_at = DateTime(required=True)


CONTRACTS = {cls.__type__: cls for cls in (OrderCreated, OrderItemsUpdated, OrderStatusUpdated, OrderDeleted)}


def routing_key_for(event_type: str) -> str:
    """Topic for a published Ordering event type, e.g. ``orders.created``."""
    try:
        return CONTRACTS[event_type].routing_key
    except KeyError:
        raise ValueError(f"Unknown ordering event type: {event_type}") from None


def from_message(message: dict) -> BaseEvent:
    """Rebuild the contract event from a broker message published by Ordering."""
    try:
        event_cls = CONTRACTS[message["type"]]
    except KeyError:
        raise ValueError(f"Unknown ordering event type: {message.get('type')}") from None

    data = message.get("data") or {}
    if isinstance(data, str):
        data = json.loads(data)
    return event_cls(**{name: value for name, value in data.items() if not name.startswith("_")})


def item_lines(items) -> list[dict]:
    """Decode the JSON ``items`` field of an ordering event."""
    if not items:
        return []
    return json.loads(items) if isinstance(items, str) else list(items)
