from __future__ import annotations

from pathlib import Path
import sys
import unittest
from typing import Optional
from unittest.mock import patch

import httpx
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from storefront.main import create_app
from storefront.models import CollectionLite, Product, ProductCard
from storefront.services.catalog import CatalogError
from storefront.services.product_loader import HttpProductLoader, NotFound

TEE = Product.model_validate(
    {
        "id": "gid://shopify/Product/1",
        "handle": "tee",
        "title": "Tee",
        "description": "Soft cotton tee.",
        "images": {"nodes": [{"url": "https://cdn.example.com/tee.jpg", "altText": "Tee"}]},
        "options": [{"name": "Size", "values": ["S"]}],
        "variants": {
            "nodes": [
                {
                    "id": "gid://shopify/ProductVariant/11",
                    "availableForSale": True,
                    "selectedOptions": [{"name": "Size", "value": "S"}],
                    "price": {"amount": "19.00", "currencyCode": "EUR"},
                }
            ]
        },
    }
)


async def _fake_get_product_by_handle(handle: str) -> Optional[Product]:
    return TEE if handle == "tee" else None


class TestProductRoute(unittest.TestCase):
    def test_known_handle_returns_product(self) -> None:
        app = create_app()
        with patch("storefront.services.catalog.get_product_by_handle", new=_fake_get_product_by_handle):
            with TestClient(app) as client:
                res = client.get("/api/product/tee")

        self.assertEqual(res.status_code, 200)
        data = res.json()
        self.assertEqual(data["handle"], "tee")
        self.assertEqual(data["images"][0]["url"], "https://cdn.example.com/tee.jpg")
        self.assertTrue(data["variants"][0]["availableForSale"])
        self.assertEqual(data["variants"][0]["price"], {"amount": "19.00", "currencyCode": "EUR"})

    def test_missing_handle_returns_404_payload(self) -> None:
        app = create_app()
        with patch("storefront.services.catalog.get_product_by_handle", new=_fake_get_product_by_handle):
            with TestClient(app) as client:
                res = client.get("/api/product/unknown")

        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.json(), {"error": "Not found"})

    def test_catalog_failure_returns_502(self) -> None:
        app = create_app()

        async def boom(handle: str) -> Optional[Product]:
            _ = handle
            raise CatalogError("Shopify GraphQL error: throttled")

        with patch("storefront.services.catalog.get_product_by_handle", new=boom):
            with TestClient(app) as client:
                res = client.get("/api/product/tee")

        self.assertEqual(res.status_code, 502)
        self.assertIn("error", res.json())


class TestCollectionRoutes(unittest.TestCase):
    def test_collection_products_are_cards(self) -> None:
        app = create_app()
        captured: list[str] = []

        async def fake_products(handle: str) -> list[ProductCard]:
            captured.append(handle)
            return [
                ProductCard.model_validate(
                    {
                        "id": "gid://shopify/Product/1",
                        "handle": "tee",
                        "title": "Tee",
                        "priceRange": {"minVariantPrice": {"amount": "19.00", "currencyCode": "EUR"}},
                    }
                )
            ]

        with patch("storefront.services.catalog.get_products_from_collection", new=fake_products):
            with TestClient(app) as client:
                res = client.get("/api/collections/summer/products")
                grid_res = client.get("/api/grid")

        self.assertEqual(res.status_code, 200)
        cards = res.json()
        self.assertEqual(cards[0]["priceRange"]["minVariantPrice"]["currencyCode"], "EUR")
        self.assertIsNone(cards[0]["featuredImage"])
        self.assertEqual(grid_res.status_code, 200)
        self.assertEqual(captured, ["summer", "all"])

    def test_collections_listing(self) -> None:
        app = create_app()

        async def fake_collections() -> list[CollectionLite]:
            return [CollectionLite(title="All", handle="all")]

        with patch("storefront.services.catalog.get_collections", new=fake_collections):
            with TestClient(app) as client:
                res = client.get("/api/collections")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json(), [{"title": "All", "handle": "all"}])

    def test_healthz(self) -> None:
        with TestClient(create_app()) as client:
            res = client.get("/healthz")
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.json()["ok"])


class TestLoaderAgainstRoute(unittest.IsolatedAsyncioTestCase):
    async def test_loader_reads_route_output(self) -> None:
        app = create_app()
        loader = HttpProductLoader(base_url="http://storefront.test", transport=httpx.ASGITransport(app=app))

        with patch("storefront.services.catalog.get_product_by_handle", new=_fake_get_product_by_handle):
            product = await loader.load("tee")
            missing = await loader.load("unknown")

        self.assertEqual(product, TEE)
        self.assertIsInstance(missing, NotFound)


if __name__ == "__main__":
    unittest.main()
