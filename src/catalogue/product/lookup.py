"""Read-side helpers over the Product repository."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from catalogue.product.product import Product


def find_products(product_ids) -> list[Product]:
    """Return the products that exist among ``product_ids``, in request order."""
    repo = current_domain.repository_for(Product)
    found = []
    for product_id in dict.fromkeys(str(pid) for pid in product_ids):
        try:
            found.append(repo.get(product_id))
        except ObjectNotFoundError:
            continue
    return found


def oversold_products() -> list[Product]:
    """Products whose stock went below zero and need reconciliation."""
    repo = current_domain.repository_for(Product)
    return sorted(repo._dao.query.filter(stock__lt=0).all().items, key=lambda p: p.stock)


def product_view(product: Product) -> dict:
    return {
        "id": str(product.id),
        "name": product.name,
        "sku": product.sku,
        "price": product.price,
        "stock": product.stock,
        "minimum_stock": product.minimum_stock,
        "is_active": product.is_active,
    }
