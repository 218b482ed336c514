"""Fake collaborators for development and testing.

FakeProductCatalog serves a fixed product table and records every lookup;
setting ``unavailable`` makes it behave like a timed-out service.
StaticCustomerDirectory answers from a set of known ids (or accepts
everyone when no set is given).
"""

from ordering.gateway.port import CustomerDirectory, ProductCatalog, ProductSnapshot
from shared.errors import UnavailableError


class FakeProductCatalog(ProductCatalog):
    def __init__(self, products: list[ProductSnapshot] | None = None):
        self.products = {p.id: p for p in products or []}
        self.calls: list[tuple[list[str], float]] = []
        self.unavailable = False

    def add(self, product: ProductSnapshot) -> None:
        self.products[product.id] = product

    def get_products_batch(self, product_ids: list[str], timeout: float) -> list[ProductSnapshot]:
        self.calls.append((list(product_ids), timeout))
        if self.unavailable:
            raise UnavailableError("product service", f"timed out after {timeout}s")
        return [self.products[pid] for pid in dict.fromkeys(product_ids) if pid in self.products]


class StaticCustomerDirectory(CustomerDirectory):
    def __init__(self, known_ids: set[str] | None = None):
        self.known_ids = known_ids
        self.unavailable = False

    def customer_exists(self, customer_id: str, timeout: float) -> bool:
        if self.unavailable:
            raise UnavailableError("customer service", f"timed out after {timeout}s")
        return self.known_ids is None or customer_id in self.known_ids
