from __future__ import annotations

import os

from fastapi import APIRouter

from storefront.services import catalog

router = APIRouter()


@router.get("/healthz")
def healthz():
    return {
        "ok": True,
        "service": "storefront-quickview",
        "commit_sha": os.getenv("GIT_SHA"),
        "environment": os.getenv("ENVIRONMENT"),
        "catalog_configured": bool(catalog.SHOPIFY_STORE_DOMAIN),
    }
