"""Product aggregate with its stock ledger.

Every stock change is recorded as a StockMovement carrying the stock
before and after. Movements triggered by order events carry a
``reference`` (``<order_id>:<reaction>``); a reference is applied at most
once, which makes redelivered events harmless.

Stock may go below zero when orders are consumed after a concurrent
order already took the last units; ``LowStockDetected`` and the
oversold report surface those products for reconciliation.
"""

import re
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Integer, String, Text

from catalogue.domain import catalogue
from catalogue.product.events import LowStockDetected, ProductAdded, StockAdjusted
from shared.errors import InsufficientStockError

_SKU_PATTERN = re.compile(r"^[A-Za-z0-9]+(-[A-Za-z0-9]+)*$")


class MovementType(Enum):
    IN = "In"
    OUT = "Out"


@catalogue.entity(part_of="Product")
class StockMovement:
    movement_type = String(required=True, choices=MovementType)
    quantity = Integer(required=True, min_value=1)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
    reason = String(max_length=255)
    reference = String(max_length=255)
    occurred_at = DateTime(required=True)


@catalogue.aggregate
class Product:
    """Product aggregate root."""

    name = String(required=True, max_length=200)
    sku = String(required=True, max_length=50, unique=True)
    description = Text()
    price = Float(required=True, min_value=0.0)
    stock = Integer(default=0)
    minimum_stock = Integer(default=0, min_value=0)
    is_active = Boolean(default=True)
    movements = HasMany(StockMovement)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def sku_must_be_well_formed(self):
        if self.sku and not _SKU_PATTERN.match(self.sku):
            raise ValidationError({"sku": ["SKU must be alphanumeric words separated by single hyphens"]})

    @classmethod
    def create(cls, name, sku, price, stock=0, minimum_stock=0, description=None, is_active=True):
        if stock is None or stock < 0:
            raise ValidationError({"stock": ["Initial stock must not be negative"]})

        now = datetime.now(UTC)
        product = cls(
            name=name,
            sku=sku,
            description=description,
            price=price,
            stock=stock,
            minimum_stock=minimum_stock or 0,
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductAdded(
                product_id=str(product.id),
                sku=sku,
                name=name,
                price=price,
                stock=stock,
                created_at=now,
            )
        )
        return product

    # -------------------------------------------------------------------
    # Stock ledger
    # -------------------------------------------------------------------
    @property
    def is_oversold(self) -> bool:
        return self.stock < 0

    def has_applied(self, reference: str | None) -> bool:
        return reference is not None and any(m.reference == reference for m in self.movements)

    def adjust_stock(self, quantity_delta: int, reason=None, reference=None, allow_negative=False) -> bool:
        """Move stock by ``quantity_delta`` and record the movement.

        Returns False without changing anything when ``reference`` was
        already applied. Manual adjustments may not take stock below zero;
        order-driven ones pass ``allow_negative``.
        """
        if not quantity_delta:
            raise ValidationError({"quantity_delta": ["Stock adjustment must be non-zero"]})
        if self.has_applied(reference):
            return False

        previous = self.stock
        new_stock = previous + quantity_delta
        if new_stock < 0 and not allow_negative:
            raise InsufficientStockError(str(self.id), previous, -quantity_delta)

        now = datetime.now(UTC)
        with atomic_change(self):
            self.stock = new_stock
            self.add_movements(
                StockMovement(
                    movement_type=(MovementType.IN if quantity_delta > 0 else MovementType.OUT).value,
                    quantity=abs(quantity_delta),
                    previous_stock=previous,
                    new_stock=new_stock,
                    reason=reason,
                    reference=reference,
                    occurred_at=now,
                )
            )
            self.updated_at = now

        self.raise_(
            StockAdjusted(
                product_id=str(self.id),
                quantity_delta=quantity_delta,
                previous_stock=previous,
                new_stock=new_stock,
                reason=reason,
                reference=reference,
                adjusted_at=now,
            )
        )

        if quantity_delta < 0 and new_stock <= self.minimum_stock:
            self.raise_(
                LowStockDetected(
                    product_id=str(self.id),
                    sku=self.sku,
                    current_stock=new_stock,
                    minimum_stock=self.minimum_stock,
                    detected_at=now,
                )
            )
        return True
