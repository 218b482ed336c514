"""FastAPI endpoints for the Ordering domain.

Routes are plain functions: the workflow blocks on catalog calls and on
the per-order lock, so FastAPI runs them in its threadpool.
"""

from datetime import datetime

from fastapi import APIRouter, Query, Response

from ordering.api.schemas import (
    ChangeStatusRequest,
    CreateOrderRequest,
    OrderPageResponse,
    OrderResponse,
    UpdateOrderRequest,
)
from ordering.order.workflow import DEFAULT_PAGE_SIZE, OrderWorkflow

order_router = APIRouter(prefix="/orders", tags=["orders"])

workflow = OrderWorkflow()


@order_router.post("", status_code=201, response_model=OrderResponse)
def create_order(body: CreateOrderRequest) -> OrderResponse:
    order = workflow.create_order(
        customer_id=body.customer_id,
        items=[item.to_item_request() for item in body.items],
        shipping=body.shipping.to_shipping_info() if body.shipping else None,
        notes=body.notes,
    )
    return OrderResponse(**order)


@order_router.get("", response_model=OrderPageResponse)
def list_orders(
    page: int = Query(default=1),
    page_size: int = Query(default=DEFAULT_PAGE_SIZE),
    customer_id: str | None = None,
    status: str | None = None,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    order_number: str | None = None,
) -> OrderPageResponse:
    result = workflow.list_orders(
        page=page,
        page_size=page_size,
        customer_id=customer_id,
        status=status,
        from_date=from_date,
        to_date=to_date,
        order_number=order_number,
    )
    return OrderPageResponse(**result.to_dict())


@order_router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: str) -> OrderResponse:
    return OrderResponse(**workflow.get_order(order_id))


@order_router.put("/{order_id}", response_model=OrderResponse)
def update_order(order_id: str, body: UpdateOrderRequest) -> OrderResponse:
    order = workflow.update_order(
        order_id,
        items=[item.to_item_request() for item in body.items] if body.items is not None else None,
        status=body.status,
        reason=body.reason,
        updated_by=body.updated_by,
        shipping=body.shipping.to_shipping_info() if body.shipping else None,
        notes=body.notes,
        expected_revision=body.expected_revision,
    )
    return OrderResponse(**order)


@order_router.put("/{order_id}/status", response_model=OrderResponse)
def change_order_status(order_id: str, body: ChangeStatusRequest) -> OrderResponse:
    order = workflow.change_status(
        order_id,
        status=body.status,
        reason=body.reason,
        changed_by=body.changed_by,
        expected_revision=body.expected_revision,
    )
    return OrderResponse(**order)


@order_router.delete("/{order_id}", status_code=204)
def delete_order(order_id: str) -> Response:
    workflow.delete_order(order_id)
    return Response(status_code=204)
