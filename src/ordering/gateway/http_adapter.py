"""HTTP adapters for the Product and Customer services (httpx).

Every call carries the caller's deadline as the httpx timeout. Timeouts,
transport errors and 5xx answers all surface as ``UnavailableError`` so
the workflow fails fast instead of hanging.
"""

import httpx
import structlog

from ordering.gateway.port import CustomerDirectory, ProductCatalog, ProductSnapshot
from shared.errors import UnavailableError

logger = structlog.get_logger(__name__)


class _HttpCollaborator:
    name = "service"

    def __init__(self, base_url: str, client: httpx.Client | None = None):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client()

    def _request(self, method: str, path: str, timeout: float, **kwargs) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            response = self._client.request(method, url, timeout=timeout, **kwargs)
        except httpx.TimeoutException as exc:
            logger.warning("collaborator_timeout", collaborator=self.name, url=url, timeout=timeout)
            raise UnavailableError(self.name, f"timed out after {timeout}s") from exc
        except httpx.HTTPError as exc:
            logger.warning("collaborator_unreachable", collaborator=self.name, url=url, error=str(exc))
            raise UnavailableError(self.name, str(exc)) from exc

        if response.status_code >= 500:
            logger.warning("collaborator_error", collaborator=self.name, url=url, status=response.status_code)
            raise UnavailableError(self.name, f"HTTP {response.status_code}")
        return response

    def close(self) -> None:
        self._client.close()


class HttpProductCatalog(_HttpCollaborator, ProductCatalog):
    name = "product service"

    def get_products_batch(self, product_ids: list[str], timeout: float) -> list[ProductSnapshot]:
        response = self._request("POST", "/products/batch", timeout, json={"product_ids": list(product_ids)})
        if response.status_code != 200:
            raise UnavailableError(self.name, f"unexpected HTTP {response.status_code}")

        return [
            ProductSnapshot(
                id=str(p["id"]),
                name=p["name"],
                sku=p["sku"],
                price=float(p["price"]),
                stock=int(p["stock"]),
                is_active=p.get("is_active", True),
            )
            for p in response.json()["products"]
        ]


class HttpCustomerDirectory(_HttpCollaborator, CustomerDirectory):
    name = "customer service"

    def customer_exists(self, customer_id: str, timeout: float) -> bool:
        response = self._request("GET", f"/customers/{customer_id}", timeout)
        if response.status_code == 404:
            return False
        if response.status_code != 200:
            raise UnavailableError(self.name, f"unexpected HTTP {response.status_code}")
        return True
