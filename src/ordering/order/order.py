"""Order aggregate: order header, line items and status history.

The Order is a standard CQRS aggregate (not event sourced): it is stored
as current state so Pending orders can be hard-deleted and listed with
filters. Monetary totals are never set directly; every mutation of the
item list goes through ``_apply_totals`` which recomputes them with
``ordering.pricing.compute_totals``.

Status-gated behaviour is delegated to ``ordering.order.state_machine``:
only Pending orders can have their items changed or be deleted, and
status changes follow its transition table.
"""

import json
from datetime import UTC, datetime

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from ordering.config import get_settings
from ordering.domain import ordering
from ordering.order.events import OrderCreated, OrderDeleted, OrderItemsUpdated, OrderStatusUpdated
from ordering.order.state_machine import (
    OrderAction,
    OrderStatus,
    as_status,
    assert_permitted,
    assert_transition,
)
from ordering.pricing import PricingPolicy, compute_totals, line_total, to_money
from shared.errors import ConflictError


@ordering.entity(part_of="Order")
class OrderItem:
    product_id = Identifier(required=True)
    product_name = String(max_length=255)  # Snapshot at order time
    product_sku = String(max_length=50)  # Snapshot at order time
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)  # Snapshot, not the live price
    discount = Float(default=0.0, min_value=0.0)
    total_price = Float(default=0.0)
    notes = String(max_length=500)

    def to_line(self) -> dict:
        return {
            "id": str(self.id),
            "product_id": str(self.product_id),
            "product_name": self.product_name,
            "product_sku": self.product_sku,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "discount": self.discount or 0.0,
            "total_price": self.total_price,
            "notes": self.notes,
        }


@ordering.entity(part_of="Order")
class StatusChange:
    previous_status = String(max_length=20)  # None for the initial entry
    new_status = String(required=True, max_length=20)
    reason = String(max_length=500)
    changed_by = String(max_length=100)
    changed_at = DateTime(required=True)


def _new_item(line: dict) -> OrderItem:
    discount = line.get("discount") or 0.0
    return OrderItem(
        product_id=line["product_id"],
        product_name=line.get("product_name"),
        product_sku=line.get("product_sku"),
        quantity=line["quantity"],
        unit_price=line["unit_price"],
        discount=discount,
        total_price=float(line_total(line["quantity"], line["unit_price"], discount)),
        notes=line.get("notes"),
    )


@ordering.aggregate
class Order:
    customer_id = Identifier(required=True)
    order_number = String(required=True, max_length=40, unique=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    order_date = DateTime(required=True)
    items = HasMany(OrderItem)
    status_history = HasMany(StatusChange)
    sub_total = Float(default=0.0)
    tax_amount = Float(default=0.0)
    shipping_cost = Float(default=0.0)
    total_amount = Float(default=0.0)
    shipping_address = String(max_length=255)
    shipping_city = String(max_length=100)
    shipping_zip_code = String(max_length=20)
    shipping_country = String(max_length=100)
    notes = String(max_length=500)
    revision = Integer(default=0)  # Bumped on every mutation, used for optimistic checks
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_must_equal_its_components(self):
        expected = to_money(self.sub_total) + to_money(self.tax_amount) + to_money(self.shipping_cost)
        if to_money(self.total_amount) != expected:
            raise ValidationError({"total_amount": ["Total must equal subtotal + tax + shipping"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        customer_id,
        order_number,
        items_data,
        shipping_address=None,
        shipping_city=None,
        shipping_zip_code=None,
        shipping_country=None,
        notes=None,
        pricing: PricingPolicy | None = None,
    ):
        if not items_data:
            raise ValidationError({"items": ["An order must contain at least one item"]})

        now = datetime.now(UTC)
        order = cls(
            customer_id=customer_id,
            order_number=order_number,
            status=OrderStatus.PENDING.value,
            order_date=now,
            shipping_address=shipping_address,
            shipping_city=shipping_city,
            shipping_zip_code=shipping_zip_code,
            shipping_country=shipping_country,
            notes=notes,
            revision=1,
            created_at=now,
            updated_at=now,
        )

        with atomic_change(order):
            for line in items_data:
                order.add_items(_new_item(line))
            order.add_status_history(
                StatusChange(new_status=OrderStatus.PENDING.value, reason="Order placed", changed_at=now)
            )
            order._apply_totals(pricing)

        order.raise_(
            OrderCreated(
                order_id=str(order.id),
                order_number=order.order_number,
                customer_id=str(customer_id),
                items=json.dumps(order.item_lines()),
                sub_total=order.sub_total,
                tax_amount=order.tax_amount,
                shipping_cost=order.shipping_cost,
                total_amount=order.total_amount,
                created_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def current_status(self) -> OrderStatus:
        return as_status(self.status)

    def item_lines(self) -> list[dict]:
        return [item.to_line() for item in self.items]

    def check_revision(self, expected_revision: int | None) -> None:
        """Raise ConflictError when the caller saw an older revision."""
        if expected_revision is not None and expected_revision != self.revision:
            raise ConflictError(
                f"Order {self.id} was modified concurrently",
                order_id=str(self.id),
                expected_revision=expected_revision,
                current_revision=self.revision,
            )

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def update_items(self, items_data, pricing: PricingPolicy | None = None):
        """Replace the item list with ``items_data``.

        Lines carrying an ``id`` update the matching item, lines without
        one are added, and existing items missing from ``items_data`` are
        removed. The name/sku/price snapshot of an existing item is kept
        unless the line points it at a different product.
        """
        assert_permitted(self.status, OrderAction.MODIFY)
        if not items_data:
            raise ValidationError({"items": ["An order must contain at least one item"]})

        existing = {str(item.id): item for item in self.items}
        kept_ids = set()
        for line in items_data:
            item_id = line.get("id")
            if item_id is None:
                continue
            if str(item_id) not in existing:
                raise ValidationError({"items": [f"Item {item_id} does not belong to order {self.id}"]})
            kept_ids.add(str(item_id))

        previous_lines = self.item_lines()
        now = datetime.now(UTC)

        with atomic_change(self):
            for line in items_data:
                if line.get("id") is None:
                    self.add_items(_new_item(line))
                    continue

                item = existing[str(line["id"])]
                if str(item.product_id) != str(line["product_id"]):
                    item.product_id = line["product_id"]
                    item.product_name = line.get("product_name")
                    item.product_sku = line.get("product_sku")
                    item.unit_price = line["unit_price"]
                item.quantity = line["quantity"]
                item.discount = line.get("discount") or 0.0
                if "notes" in line:
                    item.notes = line["notes"]
                item.total_price = float(line_total(item.quantity, item.unit_price, item.discount))
                # Every add/remove drops the cached item list, so edits must be registered
                self.add_items(item)

            for item_id, item in existing.items():
                if item_id not in kept_ids:
                    self.remove_items(item)

            self._apply_totals(pricing)
            self._touch(now)

        self.raise_(
            OrderItemsUpdated(
                order_id=str(self.id),
                order_number=self.order_number,
                previous_items=json.dumps(previous_lines),
                items=json.dumps(self.item_lines()),
                sub_total=self.sub_total,
                tax_amount=self.tax_amount,
                shipping_cost=self.shipping_cost,
                total_amount=self.total_amount,
                revision=self.revision,
                updated_at=now,
            )
        )

    def update_details(self, shipping_address=None, shipping_city=None, shipping_zip_code=None, shipping_country=None, notes=None):
        """Update shipping fields and notes. Only given values are changed."""
        assert_permitted(self.status, OrderAction.MODIFY)
        changes = {
            "shipping_address": shipping_address,
            "shipping_city": shipping_city,
            "shipping_zip_code": shipping_zip_code,
            "shipping_country": shipping_country,
            "notes": notes,
        }
        changes = {field: value for field, value in changes.items() if value is not None}
        if not changes:
            return

        with atomic_change(self):
            for field, value in changes.items():
                setattr(self, field, value)
            self._touch(datetime.now(UTC))

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def change_status(self, new_status, reason=None, changed_by=None) -> OrderStatus:
        """Move the order along the lifecycle table and return the previous status."""
        previous = self.current_status
        target = assert_transition(previous, new_status)
        now = datetime.now(UTC)

        with atomic_change(self):
            self.status = target.value
            self.add_status_history(
                StatusChange(
                    previous_status=previous.value,
                    new_status=target.value,
                    reason=reason,
                    changed_by=changed_by,
                    changed_at=now,
                )
            )
            self._touch(now)

        self.raise_(
            OrderStatusUpdated(
                order_id=str(self.id),
                order_number=self.order_number,
                items=json.dumps(self.item_lines()),
                previous_status=previous.value,
                new_status=target.value,
                reason=reason,
                changed_by=changed_by,
                changed_at=now,
            )
        )
        return previous

    def mark_deleted(self):
        """Check the order may be deleted and record the deletion event."""
        assert_permitted(self.status, OrderAction.DELETE)
        self.raise_(
            OrderDeleted(
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                items=json.dumps(self.item_lines()),
                deleted_at=datetime.now(UTC),
            )
        )

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    def _apply_totals(self, pricing: PricingPolicy | None = None):
        totals = compute_totals(self.items, pricing or get_settings().pricing)
        for field, value in totals.as_floats().items():
            setattr(self, field, value)

    def _touch(self, now: datetime):
        self.revision = (self.revision or 0) + 1
        self.updated_at = now
