"""Repository for the Order aggregate."""

from datetime import datetime

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order
from shared.errors import NotFoundError


def load_order(order_id) -> Order:
    """Fetch an order or raise ``NotFoundError``."""
    try:
        return current_domain.repository_for(Order).get(str(order_id))
    except ObjectNotFoundError:
        raise NotFoundError("Order", str(order_id)) from None


@ordering.repository(part_of=Order)
class OrderRepository:
    def order_number_exists(self, order_number: str) -> bool:
        return bool(self._dao.query.filter(order_number=order_number).all().items)

    def search(
        self,
        customer_id: str | None = None,
        status: str | None = None,
        order_number: str | None = None,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[Order], int]:
        """Filter orders, newest first. Returns one page and the total match count."""
        filters = {}
        if customer_id:
            filters["customer_id"] = customer_id
        if status:
            filters["status"] = status
        if order_number:
            filters["order_number"] = order_number
        if from_date:
            filters["order_date__gte"] = from_date
        if to_date:
            filters["order_date__lte"] = to_date

        query = self._dao.query.filter(**filters) if filters else self._dao.query
        result = query.order_by("-order_date").offset(offset).limit(limit).all()
        return list(result.items), result.total

    def remove(self, order: Order) -> None:
        """Hard-delete the order together with its items and history."""
        for item in list(order.items):
            order.remove_items(item)
        for change in list(order.status_history):
            order.remove_status_history(change)
        self.add(order)
        self._dao.delete(order)
