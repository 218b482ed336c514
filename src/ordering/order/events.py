"""Domain events raised by the Order aggregate.

Every event reaches the outbox in the same transaction as the order
itself and is published to the ``orders`` broker stream. The shapes are
mirrored for other domains in ``shared.events.ordering``.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderCreated:
    """A new order was placed in Pending status."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON list of item dicts
    sub_total = Float(required=True)
    tax_amount = Float(required=True)
    shipping_cost = Float(required=True)
    total_amount = Float(required=True)
    created_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderItemsUpdated:
    """The item list of a Pending order was replaced and totals recomputed."""

    __version__ = "v1"

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


@ordering.event(part_of="Order")
class OrderStatusUpdated:
    __version__ = "v1"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    items = Text(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    reason = String()
    changed_by = String()
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderDeleted:
    """A Pending order was removed together with its items."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    items = Text(required=True)
    deleted_at = DateTime(required=True)
