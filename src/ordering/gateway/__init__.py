"""Collaborator factory for the order workflow.

Provides get_/set_/reset_ helpers for the two collaborators:
- ProductCatalog: HttpProductCatalog when PRODUCT_SERVICE_URL is set,
  otherwise the in-process CatalogueProductCatalog
- CustomerDirectory: HttpCustomerDirectory when CUSTOMER_SERVICE_URL is
  set, otherwise StaticCustomerDirectory (accepts every customer)
"""

from ordering.config import get_settings
from ordering.gateway.catalogue_adapter import CatalogueProductCatalog
from ordering.gateway.fake_adapter import StaticCustomerDirectory
from ordering.gateway.http_adapter import HttpCustomerDirectory, HttpProductCatalog
from ordering.gateway.port import CustomerDirectory, ProductCatalog

_current_catalog: ProductCatalog | None = None
_current_directory: CustomerDirectory | None = None


def get_product_catalog() -> ProductCatalog:
    global _current_catalog
    if _current_catalog is None:
        url = get_settings().product_service_url
        _current_catalog = HttpProductCatalog(url) if url else CatalogueProductCatalog()
    return _current_catalog


def set_product_catalog(catalog: ProductCatalog) -> None:
    """Override the active product catalog (useful for tests)."""
    global _current_catalog
    _current_catalog = catalog


def reset_product_catalog() -> None:
    global _current_catalog
    _current_catalog = None


def get_customer_directory() -> CustomerDirectory:
    global _current_directory
    if _current_directory is None:
        url = get_settings().customer_service_url
        _current_directory = HttpCustomerDirectory(url) if url else StaticCustomerDirectory()
    return _current_directory


def set_customer_directory(directory: CustomerDirectory) -> None:
    """Override the active customer directory (useful for tests)."""
    global _current_directory
    _current_directory = directory


def reset_customer_directory() -> None:
    global _current_directory
    _current_directory = None
