"""Collaborator ports (abstract interfaces) used by the order workflow.

The workflow depends only on these contracts, so the in-process
catalogue adapter, the HTTP adapters and the test fakes are
interchangeable.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ProductSnapshot:
    """Product data as seen by the order workflow at lookup time."""

    id: str
    name: str
    sku: str
    price: float
    stock: int
    is_active: bool = True


class ProductCatalog(ABC):
    """Product lookup collaborator (``GetProductsBatch``)."""

    @abstractmethod
    def get_products_batch(self, product_ids: list[str], timeout: float) -> list[ProductSnapshot]:
        """Return the products that exist among ``product_ids``.

        Missing ids are simply absent from the result. Implementations
        must give up after ``timeout`` seconds with ``UnavailableError``.
        """
        ...


class CustomerDirectory(ABC):
    """Customer existence check collaborator."""

    @abstractmethod
    def customer_exists(self, customer_id: str, timeout: float) -> bool:
        """Raise ``UnavailableError`` when the directory cannot answer."""
        ...
