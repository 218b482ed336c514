"""In-process product catalog backed by the Catalogue domain.

Used when Ordering and Catalogue run in the same process. Reads go
through the Catalogue repository inside a Catalogue domain context, so
they never enlist in an Ordering unit of work.
"""

from ordering.gateway.port import ProductCatalog, ProductSnapshot


class CatalogueProductCatalog(ProductCatalog):
    def get_products_batch(self, product_ids: list[str], timeout: float) -> list[ProductSnapshot]:
        # Local repository reads do not block on the network, so timeout is unused
        from catalogue.domain import catalogue
        from catalogue.product.lookup import find_products

        with catalogue.domain_context():
            return [
                ProductSnapshot(
                    id=str(product.id),
                    name=product.name,
                    sku=product.sku,
                    price=product.price,
                    stock=product.stock,
                    is_active=product.is_active,
                )
                for product in find_products(product_ids)
            ]
