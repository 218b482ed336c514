"""Pydantic request/response schemas for the Catalogue API."""

from pydantic import BaseModel, Field


class CreateProductRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    sku: str = Field(min_length=1, max_length=50)
    description: str | None = None
    price: float = Field(ge=0)
    stock: int = Field(default=0, ge=0)
    minimum_stock: int = Field(default=0, ge=0)
    is_active: bool = True

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Mechanical Keyboard",
                    "sku": "KB-MECH-001",
                    "price": 89.99,
                    "stock": 25,
                    "minimum_stock": 5,
                }
            ]
        }
    }


class ProductIdResponse(BaseModel):
    product_id: str


class ProductResponse(BaseModel):
    id: str
    name: str
    sku: str
    price: float
    stock: int
    minimum_stock: int
    is_active: bool


class ProductBatchRequest(BaseModel):
    product_ids: list[str] = Field(min_length=1, max_length=100)


class ProductBatchResponse(BaseModel):
    products: list[ProductResponse]


class AdjustStockRequest(BaseModel):
    quantity_delta: int
    reason: str | None = Field(default=None, max_length=255)
    reference: str | None = Field(default=None, max_length=255)


class AdjustStockResponse(BaseModel):
    applied: bool
    stock: int
