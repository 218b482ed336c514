"""Product creation: command and handler."""

from protean import handle
from protean.fields import Boolean, Float, Integer, String, Text
from protean.utils.globals import current_domain

from catalogue.domain import catalogue
from catalogue.product.product import Product


@catalogue.command(part_of="Product")
class CreateProduct:
    name = String(required=True, max_length=200)
    sku = String(required=True, max_length=50)
    description = Text()
    price = Float(required=True, min_value=0.0)
    stock = Integer(default=0)
    minimum_stock = Integer(default=0)
    is_active = Boolean(default=True)


@catalogue.command_handler(part_of=Product)
class CreateProductHandler:
    @handle(CreateProduct)
    def create_product(self, command):
        product = Product.create(
            name=command.name,
            sku=command.sku,
            price=command.price,
            stock=command.stock,
            minimum_stock=command.minimum_stock,
            description=command.description,
            is_active=command.is_active,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)
