"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer), separate from
internal Protean commands. Bounds that depend on configuration (item
count, quantity ceiling, notes length) are enforced by the workflow.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from ordering.order.workflow import ItemRequest, ShippingInfo


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class ShippingSchema(BaseModel):
    address: str | None = Field(default=None, max_length=255)
    city: str | None = Field(default=None, max_length=100)
    zip_code: str | None = Field(default=None, max_length=20)
    country: str | None = Field(default=None, max_length=100)

    def to_shipping_info(self) -> ShippingInfo:
        return ShippingInfo(address=self.address, city=self.city, zip_code=self.zip_code, country=self.country)


class OrderItemSchema(BaseModel):
    id: str | None = None
    product_id: str = Field(min_length=1)
    quantity: int = Field(ge=1)
    discount: float = Field(default=0.0, ge=0)
    notes: str | None = None

    def to_item_request(self) -> ItemRequest:
        return ItemRequest(
            product_id=self.product_id,
            quantity=self.quantity,
            discount=self.discount,
            notes=self.notes,
            id=self.id,
        )


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class CreateOrderRequest(BaseModel):
    customer_id: str = Field(min_length=1)
    items: list[OrderItemSchema] = Field(min_length=1)
    shipping: ShippingSchema | None = None
    notes: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "cust-001",
                    "items": [
                        {"product_id": "prod-001", "quantity": 3},
                        {"product_id": "prod-002", "quantity": 1},
                    ],
                    "shipping": {"address": "1 Main St", "city": "Springfield", "zip_code": "12345", "country": "US"},
                }
            ]
        }
    }


class UpdateOrderRequest(BaseModel):
    items: list[OrderItemSchema] | None = None
    status: str | None = None
    reason: str | None = Field(default=None, max_length=500)
    updated_by: str | None = Field(default=None, max_length=100)
    shipping: ShippingSchema | None = None
    notes: str | None = None
    expected_revision: int | None = None


class ChangeStatusRequest(BaseModel):
    status: str
    reason: str | None = Field(default=None, max_length=500)
    changed_by: str | None = Field(default=None, max_length=100)
    expected_revision: int | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class OrderItemResponse(BaseModel):
    id: str
    product_id: str
    product_name: str | None = None
    product_sku: str | None = None
    quantity: int
    unit_price: float
    discount: float
    total_price: float
    notes: str | None = None


class StatusChangeResponse(BaseModel):
    previous_status: str | None = None
    new_status: str
    reason: str | None = None
    changed_by: str | None = None
    changed_at: datetime


class OrderResponse(BaseModel):
    id: str
    order_number: str
    customer_id: str
    status: str
    order_date: datetime
    sub_total: float
    tax_amount: float
    shipping_cost: float
    total_amount: float
    shipping: ShippingSchema
    notes: str | None = None
    revision: int
    items: list[OrderItemResponse]
    status_history: list[StatusChangeResponse]
    created_at: datetime | None = None
    updated_at: datetime | None = None


class OrderPageResponse(BaseModel):
    items: list[OrderResponse]
    total_count: int
    page: int
    page_size: int
    total_pages: int
    has_previous: bool
    has_next: bool
