"""Stock adjustment: command and handler."""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, Identifier, Integer, String
from protean.utils.globals import current_domain

from catalogue.domain import catalogue
from catalogue.product.product import Product
from shared.errors import NotFoundError

logger = structlog.get_logger(__name__)


@catalogue.command(part_of="Product")
class AdjustStock:
    product_id = Identifier(required=True)
    quantity_delta = Integer(required=True)
    reason = String(max_length=255)
    reference = String(max_length=255)
    allow_negative = Boolean(default=False)


@catalogue.command_handler(part_of=Product)
class AdjustStockHandler:
    @handle(AdjustStock)
    def adjust_stock(self, command):
        repo = current_domain.repository_for(Product)
        try:
            product = repo.get(command.product_id)
        except ObjectNotFoundError:
            raise NotFoundError("Product", str(command.product_id)) from None

        applied = product.adjust_stock(
            command.quantity_delta,
            reason=command.reason,
            reference=command.reference,
            allow_negative=bool(command.allow_negative),
        )
        if not applied:
            logger.info("stock_adjustment_skipped", product_id=str(product.id), reference=command.reference)
            return False

        repo.add(product)

        logger.info(
            "stock_adjusted",
            product_id=str(product.id),
            quantity_delta=command.quantity_delta,
            new_stock=product.stock,
            reference=command.reference,
        )
        if product.stock <= product.minimum_stock:
            logger.warning(
                "low_stock",
                product_id=str(product.id),
                sku=product.sku,
                stock=product.stock,
                minimum_stock=product.minimum_stock,
                oversold=product.is_oversold,
            )
        return True
