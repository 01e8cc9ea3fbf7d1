from __future__ import annotations

import logging
import os
from typing import Literal, Optional, Protocol, Union
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from storefront.env import env_float
from storefront.models import Product

logger = logging.getLogger("storefront.product-loader")

PRODUCT_API_BASE_URL = (os.getenv("PRODUCT_API_BASE_URL") or "http://127.0.0.1:8080").rstrip("/")

PRODUCT_API_TIMEOUT_S = env_float("PRODUCT_API_TIMEOUT_S", 10.0)


class NotFound(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["not_found"] = "not_found"
    identifier: str
    message: str = "Not found"


class TransportError(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["transport_error"] = "transport_error"
    identifier: str
    message: str = "Failed to load product"
    detail: Optional[str] = None


LoadResult = Union[Product, NotFound, TransportError]


class ProductLoader(Protocol):
    async def load(self, identifier: str) -> LoadResult: ...


class HttpProductLoader(ProductLoader):
    """Fetches `GET {base_url}/api/product/{handle}`.

    Never raises and never retries: every failure becomes a typed outcome.
    """

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = (base_url or PRODUCT_API_BASE_URL).rstrip("/")
        self._timeout_s = PRODUCT_API_TIMEOUT_S if timeout_s is None else timeout_s
        self._transport = transport

    def _url(self, identifier: str) -> str:
        return f"{self._base_url}/api/product/{quote(identifier, safe='')}"

    async def load(self, identifier: str) -> LoadResult:
        url = self._url(identifier)
        try:
            async with httpx.AsyncClient(timeout=self._timeout_s, transport=self._transport) as client:
                res = await client.get(url)
        except httpx.HTTPError as exc:
            logger.warning("product_load_failed handle=%s err=%r", identifier, exc)
            return TransportError(identifier=identifier, detail=str(exc) or type(exc).__name__)

        if res.status_code == 404:
            logger.info("product_load_not_found handle=%s", identifier)
            return NotFound(identifier=identifier)

        if res.status_code >= 400:
            logger.warning("product_load_failed handle=%s status=%s body=%s", identifier, res.status_code, res.text[:500])
            return TransportError(identifier=identifier, detail=f"status={res.status_code}")

        try:
            data = res.json()
        except Exception as exc:
            logger.warning("product_load_parse_failed handle=%s err=%s", identifier, exc)
            return TransportError(identifier=identifier, detail="invalid_json")

        if not isinstance(data, dict):
            return TransportError(identifier=identifier, detail="unexpected_payload")
        if data.get("error") and "id" not in data:
            return TransportError(identifier=identifier, detail=str(data.get("error")))

        try:
            return Product.model_validate(data)
        except ValidationError as exc:
            logger.warning("product_load_invalid handle=%s errors=%s", identifier, exc.error_count())
            return TransportError(identifier=identifier, detail="invalid_product")
