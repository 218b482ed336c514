"""Domain events for the Product aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from catalogue.domain import catalogue


@catalogue.event(part_of="Product")
class ProductAdded:
    """A new product was added to the catalogue."""

    __version__ = "v1"

    product_id = Identifier(required=True)
    sku = String(required=True)
    name = String(required=True)
    price = Float(required=True)
    stock = Integer(required=True)
    created_at = DateTime(required=True)


@catalogue.event(part_of="Product")
class StockAdjusted:
    """Stock moved by ``quantity_delta``; negative values are decrements."""

    __version__ = "v1"

    product_id = Identifier(required=True)
    quantity_delta = Integer(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
    reason = String()
    reference = String()
    adjusted_at = DateTime(required=True)


@catalogue.event(part_of="Product")
class LowStockDetected:
    """Stock fell to or below the product's minimum level (possibly below zero)."""

    __version__ = "v1"

    product_id = Identifier(required=True)
    sku = String(required=True)
    current_stock = Integer(required=True)
    minimum_stock = Integer(required=True)
    detected_at = DateTime(required=True)
