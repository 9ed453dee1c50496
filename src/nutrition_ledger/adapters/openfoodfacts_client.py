"""Open Food Facts product API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

_FOUND = 1


class ProductClient(Protocol):
    """Interface for barcode product lookups."""

    async def get_product(self, code: str) -> dict[str, object] | None:
        """Return the raw product for a barcode, or None when unknown."""


@dataclass
class HttpxOpenFoodFactsClient(ProductClient):
    """HTTPX-backed Open Food Facts client."""

    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str) -> "HttpxOpenFoodFactsClient":
        """Create an Open Food Facts client with a managed httpx session."""
        return cls(base_url=base_url.rstrip("/"), http_client=httpx.AsyncClient())

    async def get_product(self, code: str) -> dict[str, object] | None:
        """Fetch a product by barcode."""
        url = f"{self.base_url}/product/{code}.json"
        response = await self.http_client.get(url, timeout=15)
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        response.raise_for_status()
        payload = response.json()
        product = payload.get("product")
        if payload.get("status") != _FOUND or not isinstance(product, dict):
            return None
        return product

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
