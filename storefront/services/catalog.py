from __future__ import annotations

import json
import logging
import os
from typing import Any, Optional

import httpx

from storefront.env import env_float
from storefront.models import CollectionLite, Product, ProductCard

logger = logging.getLogger("storefront.catalog")

SHOPIFY_STORE_DOMAIN = (os.getenv("SHOPIFY_STORE_DOMAIN") or "").strip().replace("https://", "").rstrip("/")
SHOPIFY_STOREFRONT_TOKEN = (os.getenv("SHOPIFY_STOREFRONT_TOKEN") or "").strip() or None
SHOPIFY_API_VERSION = (os.getenv("SHOPIFY_API_VERSION") or "2025-01").strip()
CATALOG_TIMEOUT_S = env_float("CATALOG_TIMEOUT_S", 10.0)


class CatalogError(Exception):
    pass


COLLECTIONS_QUERY = """
query GetCollections {
  collections(first: 20) {
    nodes {
      title
      handle
    }
  }
}
"""

PRODUCTS_FROM_COLLECTION_QUERY = """
query ProductsFromCollection($handle: String!) {
  collection(handle: $handle) {
    products(first: 12) {
      nodes {
        id
        handle
        title
        featuredImage {
          url
          altText
          width
          height
        }
        priceRange {
          minVariantPrice {
            amount
            currencyCode
          }
        }
      }
    }
  }
}
"""

PRODUCT_BY_HANDLE_QUERY = """
query ProductByHandle($handle: String!) {
  product(handle: $handle) {
    id
    handle
    title
    description
    featuredImage {
      url
      altText
    }
    images(first: 10) {
      nodes {
        url
        altText
      }
    }
    options {
      name
      values
    }
    variants(first: 30) {
      nodes {
        id
        availableForSale
        selectedOptions {
          name
          value
        }
        image {
          url
          altText
        }
        price {
          amount
          currencyCode
        }
      }
    }
  }
}
"""


def _endpoint() -> str:
    if not SHOPIFY_STORE_DOMAIN:
        raise CatalogError("SHOPIFY_STORE_DOMAIN is not configured")
    return f"https://{SHOPIFY_STORE_DOMAIN}/api/{SHOPIFY_API_VERSION}/graphql.json"


async def storefront_query(
    query: str,
    variables: Optional[dict[str, Any]] = None,
    *,
    timeout_s: float = CATALOG_TIMEOUT_S,
) -> dict[str, Any]:
    headers = {"Content-Type": "application/json"}
    if SHOPIFY_STOREFRONT_TOKEN:
        headers["X-Shopify-Storefront-Access-Token"] = SHOPIFY_STOREFRONT_TOKEN

    async with httpx.AsyncClient(timeout=timeout_s) as client:
        res = await client.post(_endpoint(), headers=headers, json={"query": query, "variables": variables or {}})

    try:
        body = res.json()
    except Exception:
        body = {"raw": res.text}

    if res.status_code >= 400:
        raise httpx.HTTPStatusError("Storefront API returned error", request=res.request, response=res)

    if not isinstance(body, dict):
        raise CatalogError("Unexpected Storefront API payload")
    if body.get("errors"):
        raise CatalogError(f"Shopify GraphQL error: {json.dumps(body['errors'], ensure_ascii=False)}")
    data = body.get("data")
    if not isinstance(data, dict):
        raise CatalogError("No data returned from Shopify")
    return data


async def get_collections() -> list[CollectionLite]:
    data = await storefront_query(COLLECTIONS_QUERY)
    nodes = ((data.get("collections") or {}).get("nodes")) or []
    return [CollectionLite.model_validate(n) for n in nodes]


async def get_products_from_collection(handle: str) -> list[ProductCard]:
    data = await storefront_query(PRODUCTS_FROM_COLLECTION_QUERY, {"handle": handle})
    collection = data.get("collection")
    if not isinstance(collection, dict):
        logger.info("catalog_collection_missing handle=%s", handle)
        return []
    nodes = ((collection.get("products") or {}).get("nodes")) or []
    return [ProductCard.model_validate(n) for n in nodes]


async def get_product_by_handle(handle: str) -> Optional[Product]:
    data = await storefront_query(PRODUCT_BY_HANDLE_QUERY, {"handle": handle})
    product = data.get("product")
    if not isinstance(product, dict):
        return None
    return Product.model_validate(product)
