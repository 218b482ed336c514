"""Inbound cross-domain event handler: Catalogue keeps stock in line with Ordering.

- OrderCreated: decrement stock per line;
- OrderItemsUpdated: move stock by the per-product difference between
  the previous and the new lines;
- OrderStatusUpdated: restock the lines when the new status is
  Cancelled, otherwise only log;
- OrderDeleted: restock the lines of the deleted Pending order.

Each reaction runs one AdjustStock per product with the reference
``<order_id>:<reaction>``, so a redelivered event skips the products it
already moved and finishes the rest.

Order events arrive on the ``orders`` broker stream.
``OrderEventsSubscriber`` keeps the ``orders.#`` routing keys and hands
each one to ``StockLedger``. Any exception propagates, so the broker
re-delivers the message (or the Ordering outbox retries the publish).

Cross-domain events are imported from shared.events.ordering and
registered as external events via catalogue.register_external_event().
"""

from collections import Counter

import structlog
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from catalogue.domain import catalogue
from catalogue.product.product import Product
from catalogue.stock.adjustment import AdjustStock
from shared.events.ordering import (
    ORDERS_STREAM,
    OrderCreated,
    OrderDeleted,
    OrderItemsUpdated,
    OrderStatusUpdated,
    from_message,
    item_lines,
)
from shared.messaging.topics import topic_matches

logger = structlog.get_logger(__name__)

BINDING = "orders.#"

# Register external events so Protean can deserialize them
catalogue.register_external_event(OrderCreated, OrderCreated.__type__)
catalogue.register_external_event(OrderItemsUpdated, OrderItemsUpdated.__type__)
catalogue.register_external_event(OrderStatusUpdated, OrderStatusUpdated.__type__)
catalogue.register_external_event(OrderDeleted, OrderDeleted.__type__)


def _quantities(items) -> Counter:
    totals = Counter()
    for line in item_lines(items):
        totals[str(line["product_id"])] += int(line["quantity"])
    return totals


def _apply(event, reaction: str, deltas: dict[str, int]) -> None:
    reference = f"{event.order_id}:{reaction}"
    for product_id, delta in sorted(deltas.items()):
        if delta == 0:
            continue
        current_domain.process(
            AdjustStock(
                product_id=product_id,
                quantity_delta=delta,
                reason=f"Order {event.order_number} {reaction.split(':')[0]}",
                reference=reference,
                allow_negative=True,
            ),
            asynchronous=False,
        )


@catalogue.event_handler(part_of=Product, stream_category="ordering::order")
class StockLedger:
    """Reacts to Ordering events by adjusting product stock."""

    @handle(OrderCreated)
    def on_order_created(self, event: OrderCreated) -> None:
        _apply(event, "created", {pid: -qty for pid, qty in _quantities(event.items).items()})

    @handle(OrderItemsUpdated)
    def on_order_items_updated(self, event: OrderItemsUpdated) -> None:
        before, after = _quantities(event.previous_items), _quantities(event.items)
        deltas = {pid: before[pid] - after[pid] for pid in before.keys() | after.keys()}
        _apply(event, f"items:{event.revision}", deltas)

    @handle(OrderStatusUpdated)
    def on_order_status_updated(self, event: OrderStatusUpdated) -> None:
        if event.new_status == "Cancelled":
            _apply(event, "cancelled", dict(_quantities(event.items)))
            return

        logger.info(
            "order_status_observed",
            order_id=str(event.order_id),
            previous_status=event.previous_status,
            new_status=event.new_status,
        )

    @handle(OrderDeleted)
    def on_order_deleted(self, event: OrderDeleted) -> None:
        _apply(event, "deleted", dict(_quantities(event.items)))


@catalogue.subscriber(stream=ORDERS_STREAM, broker="default")
class OrderEventsSubscriber:
    """Feeds order events from the broker into the stock ledger."""

    def __call__(self, message: dict) -> None:
        routing_key = message.get("routing_key") or ""
        if not topic_matches(BINDING, routing_key):
            logger.info("order_event_ignored", type=message.get("type"), routing_key=routing_key)
            return

        with catalogue.domain_context():
            try:
                event = from_message(message)
            except ValueError:
                logger.info("order_event_ignored", type=message.get("type"), routing_key=routing_key)
                return

            logger.info(
                "order_event_received",
                type=message.get("type"),
                message_id=message.get("id"),
                order_id=str(event.order_id),
                order_number=event.order_number,
            )
            StockLedger._handle(event)
