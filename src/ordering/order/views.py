"""Read models returned by the order workflow and the HTTP API."""

import math
from dataclasses import dataclass

from ordering.order.order import Order


def _iso(value):
    return value.isoformat() if value is not None else None


def order_view(order: Order) -> dict:
    return {
        "id": str(order.id),
        "order_number": order.order_number,
        "customer_id": str(order.customer_id),
        "status": order.status,
        "order_date": _iso(order.order_date),
        "sub_total": order.sub_total,
        "tax_amount": order.tax_amount,
        "shipping_cost": order.shipping_cost,
        "total_amount": order.total_amount,
        "shipping": {
            "address": order.shipping_address,
            "city": order.shipping_city,
            "zip_code": order.shipping_zip_code,
            "country": order.shipping_country,
        },
        "notes": order.notes,
        "revision": order.revision,
        "items": order.item_lines(),
        "status_history": [
            {
                "previous_status": change.previous_status,
                "new_status": change.new_status,
                "reason": change.reason,
                "changed_by": change.changed_by,
                "changed_at": _iso(change.changed_at),
            }
            for change in sorted(order.status_history, key=lambda c: c.changed_at)
        ],
        "created_at": _iso(order.created_at),
        "updated_at": _iso(order.updated_at),
    }


@dataclass(frozen=True)
class Page:
    items: list
    total_count: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size) if self.page_size else 0

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    def to_dict(self) -> dict:
        return {
            "items": self.items,
            "total_count": self.total_count,
            "page": self.page,
            "page_size": self.page_size,
            "total_pages": self.total_pages,
            "has_previous": self.has_previous,
            "has_next": self.has_next,
        }
