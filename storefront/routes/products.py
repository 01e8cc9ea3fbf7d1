from __future__ import annotations

import logging
import os

import httpx
from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from storefront.models import dump_wire
from storefront.services import catalog

logger = logging.getLogger("storefront.routes.products")

router = APIRouter()

STOREFRONT_COLLECTION_HANDLE = (os.getenv("STOREFRONT_COLLECTION_HANDLE") or "all").strip() or "all"


def _upstream_error(exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=502, content={"error": "Upstream catalog error", "detail": str(exc)[:500]})


@router.get("/product/{handle}")
async def product_by_handle(handle: str):
    try:
        product = await catalog.get_product_by_handle(handle)
    except (catalog.CatalogError, httpx.HTTPError, ValidationError) as exc:
        logger.warning("product_lookup_failed handle=%s err=%s", handle, exc)
        return _upstream_error(exc)

    if product is None:
        return JSONResponse(status_code=404, content={"error": "Not found"})

    return dump_wire(product)


@router.get("/collections")
async def collections():
    try:
        items = await catalog.get_collections()
    except (catalog.CatalogError, httpx.HTTPError, ValidationError) as exc:
        logger.warning("collections_lookup_failed err=%s", exc)
        return _upstream_error(exc)
    return [dump_wire(c) for c in items]


@router.get("/collections/{handle}/products")
async def collection_products(handle: str):
    try:
        cards = await catalog.get_products_from_collection(handle)
    except (catalog.CatalogError, httpx.HTTPError, ValidationError) as exc:
        logger.warning("collection_lookup_failed handle=%s err=%s", handle, exc)
        return _upstream_error(exc)
    return [dump_wire(card) for card in cards]


@router.get("/grid")
async def default_grid():
    return await collection_products(STOREFRONT_COLLECTION_HANDLE)
