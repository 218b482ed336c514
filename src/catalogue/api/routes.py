"""FastAPI endpoints for the Catalogue domain."""

from fastapi import APIRouter
from protean.utils.globals import current_domain

from catalogue.api.schemas import (
    AdjustStockRequest,
    AdjustStockResponse,
    CreateProductRequest,
    ProductBatchRequest,
    ProductBatchResponse,
    ProductIdResponse,
    ProductResponse,
)
from catalogue.product.creation import CreateProduct
from catalogue.product.lookup import find_products, oversold_products, product_view
from catalogue.stock.adjustment import AdjustStock
from shared.errors import NotFoundError

product_router = APIRouter(prefix="/products", tags=["products"])


def _get_product(product_id: str):
    found = find_products([product_id])
    if not found:
        raise NotFoundError("Product", product_id)
    return found[0]


@product_router.post("", status_code=201, response_model=ProductIdResponse)
def create_product(body: CreateProductRequest) -> ProductIdResponse:
    command = CreateProduct(
        name=body.name,
        sku=body.sku,
        description=body.description,
        price=body.price,
        stock=body.stock,
        minimum_stock=body.minimum_stock,
        is_active=body.is_active,
    )
    result = current_domain.process(command, asynchronous=False)
    return ProductIdResponse(product_id=result)


@product_router.post("/batch", response_model=ProductBatchResponse)
def get_products_batch(body: ProductBatchRequest) -> ProductBatchResponse:
    """Return the products that exist among the requested ids."""
    products = find_products(body.product_ids)
    return ProductBatchResponse(products=[ProductResponse(**product_view(p)) for p in products])


@product_router.get("/oversold", response_model=list[ProductResponse])
def list_oversold_products() -> list[ProductResponse]:
    return [ProductResponse(**product_view(p)) for p in oversold_products()]


@product_router.get("/{product_id}", response_model=ProductResponse)
def get_product(product_id: str) -> ProductResponse:
    return ProductResponse(**product_view(_get_product(product_id)))


@product_router.post("/{product_id}/stock", response_model=AdjustStockResponse)
def adjust_stock(product_id: str, body: AdjustStockRequest) -> AdjustStockResponse:
    _get_product(product_id)
    applied = current_domain.process(
        AdjustStock(
            product_id=product_id,
            quantity_delta=body.quantity_delta,
            reason=body.reason or "Manual adjustment",
            reference=body.reference,
        ),
        asynchronous=False,
    )
    return AdjustStockResponse(applied=applied, stock=_get_product(product_id).stock)
