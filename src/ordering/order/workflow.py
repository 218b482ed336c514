"""Order workflow: validates requests against the collaborators and runs the order commands.

``OrderWorkflow`` is the application service in front of the Order
commands. For every write it:

1. validates the request shape before any I/O (``ValidationError``);
2. asks the product catalog for current name/sku/price/stock of every
   requested product, with a deadline (``NotFoundError``,
   ``InsufficientStockError``, ``UnavailableError``);
3. hands priced, snapshotted lines to the matching Protean command,
   whose handler persists the order, and Protean writes its events to
   the outbox in the same unit of work;
4. after commit, publishes the outbox. Publishing is best effort here;
   whatever is held or fails stays in the outbox for the engine's
   outbox processor, and never fails the operation that produced it.

Update, status change and delete hold the per-order lock from load to
commit, so concurrent writers on the same order run one after another.
Product data is never cached between calls.
"""

import json
from dataclasses import dataclass
from datetime import datetime

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from ordering.config import OrderingSettings, get_settings
from ordering.gateway import get_customer_directory, get_product_catalog
from ordering.gateway.port import CustomerDirectory, ProductCatalog, ProductSnapshot
from ordering.order.creation import CreateOrder
from ordering.order.deletion import DeleteOrder
from ordering.order.locking import order_lock
from ordering.order.modification import UpdateOrder
from ordering.order.order import Order
from ordering.order.repository import load_order
from ordering.order.state_machine import OrderAction, as_status, assert_permitted
from ordering.order.status import ChangeOrderStatus
from ordering.order.views import Page, order_view
from ordering.outbox.publisher import publish_pending
from shared.errors import BusinessRuleError, InsufficientStockError, NotFoundError, UnavailableError

logger = structlog.get_logger(__name__)

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10


@dataclass(frozen=True)
class ItemRequest:
    product_id: str
    quantity: int
    discount: float = 0.0
    notes: str | None = None
    id: str | None = None  # Existing item id, only meaningful on update


@dataclass(frozen=True)
class ShippingInfo:
    address: str | None = None
    city: str | None = None
    zip_code: str | None = None
    country: str | None = None


class OrderWorkflow:
    def __init__(
        self,
        catalog: ProductCatalog | None = None,
        customers: CustomerDirectory | None = None,
        settings: OrderingSettings | None = None,
    ):
        self._catalog = catalog
        self._customers = customers
        self._settings = settings

    @property
    def settings(self) -> OrderingSettings:
        return self._settings or get_settings()

    @property
    def catalog(self) -> ProductCatalog:
        return self._catalog or get_product_catalog()

    @property
    def customers(self) -> CustomerDirectory:
        return self._customers or get_customer_directory()

    # -------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------
    def create_order(
        self,
        customer_id: str,
        items: list[ItemRequest],
        shipping: ShippingInfo | None = None,
        notes: str | None = None,
        timeout: float | None = None,
    ) -> dict:
        """Validate, price and persist a new Pending order. Returns its read model."""
        if not customer_id:
            raise ValidationError({"customer_id": ["Customer id is required"]})
        self._validate_items(items)
        self._validate_notes(notes)
        items = _merge_duplicate_products(items)
        self._validate_items(items)

        self._check_customer(customer_id, timeout)
        products = self._resolve_products([item.product_id for item in items], timeout)

        for item in items:
            product = products[item.product_id]
            self._assert_orderable(product)
            if product.stock < item.quantity:
                raise InsufficientStockError(product.id, product.stock, item.quantity)

        shipping = shipping or ShippingInfo()
        command = CreateOrder(
            customer_id=customer_id,
            items=json.dumps([_priced_line(item, products[item.product_id]) for item in items]),
            shipping_address=shipping.address,
            shipping_city=shipping.city,
            shipping_zip_code=shipping.zip_code,
            shipping_country=shipping.country,
            notes=notes,
        )
        order_id = current_domain.process(command, asynchronous=False)

        self._publish_committed()
        return self.get_order(order_id)

    def update_order(
        self,
        order_id: str,
        items: list[ItemRequest] | None = None,
        status: str | None = None,
        reason: str | None = None,
        updated_by: str | None = None,
        shipping: ShippingInfo | None = None,
        notes: str | None = None,
        expected_revision: int | None = None,
        timeout: float | None = None,
    ) -> dict:
        """Apply a patch to a Pending order. Returns the updated read model.

        Item names and prices of lines that keep their product stay as
        snapshotted at order time; only new lines take current values.
        """
        if items is not None:
            self._validate_items(items)
            items = _merge_duplicate_products(items)
            self._validate_items(items)
        self._validate_notes(notes)
        if status is not None:
            status = as_status(status).value

        with order_lock(order_id):
            order = load_order(order_id)
            order.check_revision(expected_revision)
            assert_permitted(order.status, OrderAction.MODIFY)

            lines = None
            if items is not None:
                products = self._resolve_products([item.product_id for item in items], timeout)
                self._check_additional_stock(order, items, products)
                lines = [_priced_line(item, products[item.product_id]) for item in items]

            shipping = shipping or ShippingInfo()
            command = UpdateOrder(
                order_id=order_id,
                items=json.dumps(lines) if lines is not None else None,
                status=status,
                reason=reason,
                updated_by=updated_by,
                shipping_address=shipping.address,
                shipping_city=shipping.city,
                shipping_zip_code=shipping.zip_code,
                shipping_country=shipping.country,
                notes=notes,
                expected_revision=expected_revision,
            )
            current_domain.process(command, asynchronous=False)

        self._publish_committed()
        return self.get_order(order_id)

    def change_status(
        self,
        order_id: str,
        status: str,
        reason: str | None = None,
        changed_by: str | None = None,
        expected_revision: int | None = None,
    ) -> dict:
        """Move an order along the lifecycle (e.g. Confirmed -> Processing)."""
        status = as_status(status).value
        with order_lock(order_id):
            current_domain.process(
                ChangeOrderStatus(
                    order_id=order_id,
                    status=status,
                    reason=reason,
                    changed_by=changed_by,
                    expected_revision=expected_revision,
                ),
                asynchronous=False,
            )

        self._publish_committed()
        return self.get_order(order_id)

    def delete_order(self, order_id: str) -> None:
        """Hard-delete a Pending order and its items."""
        with order_lock(order_id):
            order = load_order(order_id)
            assert_permitted(order.status, OrderAction.DELETE)
            current_domain.process(DeleteOrder(order_id=order_id), asynchronous=False)

        self._publish_committed()

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def get_order(self, order_id: str) -> dict:
        return order_view(load_order(order_id))

    def list_orders(
        self,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        customer_id: str | None = None,
        status: str | None = None,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
        order_number: str | None = None,
    ) -> Page:
        if page < 1:
            raise ValidationError({"page": ["Page must be 1 or greater"]})
        if page_size < 1:
            raise ValidationError({"page_size": ["Page size must be 1 or greater"]})
        page_size = min(page_size, MAX_PAGE_SIZE)
        if from_date and to_date and from_date > to_date:
            raise ValidationError({"from_date": ["from_date must not be after to_date"]})
        if status is not None:
            status = as_status(status).value

        orders, total = current_domain.repository_for(Order).search(
            customer_id=customer_id,
            status=status,
            order_number=order_number,
            from_date=from_date,
            to_date=to_date,
            offset=(page - 1) * page_size,
            limit=page_size,
        )
        return Page(items=[order_view(o) for o in orders], total_count=total, page=page, page_size=page_size)

    # -------------------------------------------------------------------
    # Validation and collaborator calls
    # -------------------------------------------------------------------
    def _validate_items(self, items: list[ItemRequest]) -> None:
        settings = self.settings
        if not items:
            raise ValidationError({"items": ["At least one item is required"]})
        if len(items) > settings.max_items:
            raise ValidationError({"items": [f"An order cannot contain more than {settings.max_items} items"]})

        errors = []
        for index, item in enumerate(items):
            if not item.product_id:
                errors.append(f"items[{index}]: product_id is required")
            if not isinstance(item.quantity, int) or not 1 <= item.quantity <= settings.max_quantity:
                errors.append(f"items[{index}]: quantity must be between 1 and {settings.max_quantity}")
            if item.discount is not None and item.discount < 0:
                errors.append(f"items[{index}]: discount must not be negative")
            if item.notes and len(item.notes) > settings.max_notes_length:
                errors.append(f"items[{index}]: notes cannot exceed {settings.max_notes_length} characters")
        if errors:
            raise ValidationError({"items": errors})

    def _validate_notes(self, notes: str | None) -> None:
        limit = self.settings.max_notes_length
        if notes and len(notes) > limit:
            raise ValidationError({"notes": [f"Notes cannot exceed {limit} characters"]})

    def _timeout(self, timeout: float | None) -> float:
        return timeout if timeout is not None else self.settings.product_timeout

    def _check_customer(self, customer_id: str, timeout: float | None) -> None:
        mode = self.settings.customer_check
        if mode == "off":
            return

        try:
            exists = self.customers.customer_exists(customer_id, self._timeout(timeout))
        except UnavailableError as exc:
            if mode == "fail_open":
                logger.warning("customer_check_skipped", customer_id=customer_id, error=exc.message)
                return
            raise

        if not exists:
            raise NotFoundError("Customer", customer_id)

    def _resolve_products(self, product_ids: list[str], timeout: float | None) -> dict[str, ProductSnapshot]:
        wanted = list(dict.fromkeys(product_ids))
        snapshots = self.catalog.get_products_batch(wanted, self._timeout(timeout))
        by_id = {p.id: p for p in snapshots}

        missing = [pid for pid in wanted if pid not in by_id]
        if missing:
            raise NotFoundError("Product", ", ".join(missing), message=f"Products not found: {', '.join(missing)}")
        return by_id

    @staticmethod
    def _assert_orderable(product: ProductSnapshot) -> None:
        if not product.is_active:
            raise BusinessRuleError(f"Product {product.id} is not available for ordering", product_id=product.id)

    def _check_additional_stock(self, order: Order, items: list[ItemRequest], products) -> None:
        """Only quantity added on top of what the order already holds needs stock."""
        held: dict[str, int] = {}
        for existing in order.items:
            held[str(existing.product_id)] = held.get(str(existing.product_id), 0) + existing.quantity

        for item in items:
            product = products[item.product_id]
            additional = item.quantity - held.get(item.product_id, 0)
            if additional > 0:
                self._assert_orderable(product)
                if product.stock < additional:
                    raise InsufficientStockError(product.id, product.stock, additional)

    def _publish_committed(self) -> None:
        # The order is committed at this point; a publishing problem must not fail it
        try:
            publish_pending()
        except Exception:
            logger.exception("outbox_publish_failed")


def _priced_line(item: ItemRequest, product: ProductSnapshot) -> dict:
    line = {
        "product_id": product.id,
        "product_name": product.name,
        "product_sku": product.sku,
        "quantity": item.quantity,
        "unit_price": product.price,
        "discount": item.discount or 0.0,
        "notes": item.notes,
    }
    if item.id:
        line["id"] = item.id
    return line


def _merge_duplicate_products(items: list[ItemRequest]) -> list[ItemRequest]:
    """Collapse repeated products into one line, summing quantity and discount.

    The merged line keeps the existing item id any of its lines carried.
    Two different existing items for the same product cannot be merged.
    """
    merged: dict[str, ItemRequest] = {}
    for item in items:
        current = merged.get(item.product_id)
        if current is None:
            merged[item.product_id] = item
            continue

        if current.id and item.id and str(current.id) != str(item.id):
            raise ValidationError(
                {"items": [f"Product {item.product_id} appears on items {current.id} and {item.id}"]}
            )
        merged[item.product_id] = ItemRequest(
            product_id=item.product_id,
            quantity=current.quantity + item.quantity,
            discount=(current.discount or 0.0) + (item.discount or 0.0),
            notes=current.notes or item.notes,
            id=current.id or item.id,
        )
    return list(merged.values())
