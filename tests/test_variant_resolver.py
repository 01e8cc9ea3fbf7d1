from __future__ import annotations

import itertools
from pathlib import Path
import sys
import unittest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from storefront.models import Product
from storefront.quickview.resolver import availability_matrix, is_value_available, resolve


def _variant(vid: str, color: str, size: str, sellable: bool) -> dict[str, object]:
    return {
        "id": vid,
        "availableForSale": sellable,
        "selectedOptions": [{"name": "Color", "value": color}, {"name": "Size", "value": size}],
        "price": {"amount": "25.00", "currencyCode": "USD"},
    }


def _tee() -> Product:
    return Product.model_validate(
        {
            "id": "gid://shopify/Product/1",
            "handle": "tee",
            "title": "Tee",
            "options": [
                {"name": "Color", "values": ["Red", "Blue"]},
                {"name": "Size", "values": ["S", "M"]},
            ],
            "variants": {
                "nodes": [
                    _variant("v-red-s", "Red", "S", True),
                    _variant("v-red-m", "Red", "M", False),
                    _variant("v-blue-s", "Blue", "S", True),
                ]
            },
        }
    )


class TestResolve(unittest.TestCase):
    def setUp(self) -> None:
        self.product = _tee()

    def test_complete_selection_returns_matching_variant(self) -> None:
        for variant in self.product.variants:
            variant_selection = variant.option_map()
            resolved = resolve(self.product.options, self.product.variants, variant_selection)
            self.assertIsNotNone(resolved)
            assert resolved is not None
            self.assertEqual(resolved.id, variant.id)

    def test_unsellable_variant_still_resolves(self) -> None:
        resolved = resolve(self.product.options, self.product.variants, {"Color": "Red", "Size": "M"})
        self.assertIsNotNone(resolved)
        assert resolved is not None
        self.assertFalse(resolved.available_for_sale)

    def test_partial_selection_never_resolves_even_when_unique(self) -> None:
        # Blue only exists in size S, but Size is still unpicked.
        self.assertIsNone(resolve(self.product.options, self.product.variants, {"Color": "Blue"}))
        self.assertIsNone(resolve(self.product.options, self.product.variants, {}))

    def test_missing_combination_returns_none(self) -> None:
        self.assertIsNone(resolve(self.product.options, self.product.variants, {"Color": "Blue", "Size": "M"}))

    def test_empty_variants(self) -> None:
        selection = {"Color": "Red", "Size": "S"}
        self.assertIsNone(resolve(self.product.options, [], selection))
        self.assertFalse(is_value_available(self.product.options, [], {}, "Color", "Red"))

    def test_single_value_option_must_still_be_picked(self) -> None:
        product = Product.model_validate(
            {
                "id": "p2",
                "handle": "mug",
                "options": [{"name": "Title", "values": ["Default Title"]}],
                "variants": [
                    {
                        "id": "v1",
                        "availableForSale": True,
                        "selectedOptions": [{"name": "Title", "value": "Default Title"}],
                    }
                ],
            }
        )
        self.assertIsNone(resolve(product.options, product.variants, {}))
        resolved = resolve(product.options, product.variants, {"Title": "Default Title"})
        self.assertIsNotNone(resolved)

    def test_does_not_mutate_selection(self) -> None:
        selection = {"Color": "Red"}
        is_value_available(self.product.options, self.product.variants, selection, "Size", "S")
        self.assertEqual(selection, {"Color": "Red"})


class TestAvailability(unittest.TestCase):
    def setUp(self) -> None:
        self.product = _tee()

    def _available(self, selection: dict[str, str], option: str, value: str) -> bool:
        return is_value_available(self.product.options, self.product.variants, selection, option, value)

    def test_red_narrows_sizes_to_sellable_ones(self) -> None:
        self.assertTrue(self._available({"Color": "Red"}, "Size", "S"))
        self.assertFalse(self._available({"Color": "Red"}, "Size", "M"))

    def test_unselected_options_are_wildcards(self) -> None:
        self.assertTrue(self._available({}, "Color", "Blue"))
        self.assertTrue(self._available({}, "Size", "S"))
        self.assertFalse(self._available({}, "Size", "M"))

    def test_candidate_replaces_existing_pick_for_same_option(self) -> None:
        self.assertTrue(self._available({"Color": "Red", "Size": "S"}, "Color", "Blue"))

    def test_monotonic_under_consistent_extension(self) -> None:
        choices = [(o.name, v) for o in self.product.options for v in o.values]
        bases: list[dict[str, str]] = [{}] + [{name: value} for name, value in choices]
        for base in bases:
            for extra_option, extra_value in choices:
                if extra_option in base:
                    continue
                extended = {**base, extra_option: extra_value}
                for option, value in choices:
                    if option in extended:
                        continue
                    if self._available(extended, option, value):
                        self.assertTrue(self._available(base, option, value), (extended, option, value))

    def test_matrix_keeps_schema_order(self) -> None:
        matrix = availability_matrix(self.product.options, self.product.variants, {"Color": "Red"})
        self.assertEqual(matrix["Size"], [("S", True), ("M", False)])
        self.assertEqual([v for v, _ in matrix["Color"]], ["Red", "Blue"])

    def test_matrix_does_not_deduplicate_values(self) -> None:
        product = self.product.model_copy(
            update={"options": [self.product.options[0], self.product.options[1].model_copy(update={"values": ["S", "S"]})]}
        )
        matrix = availability_matrix(product.options, product.variants, {})
        self.assertEqual(matrix["Size"], [("S", True), ("S", True)])

    def test_every_complete_selection(self) -> None:
        names = self.product.option_names()
        values = [o.values for o in self.product.options]
        existing = {tuple(sorted(v.option_map().items())) for v in self.product.variants}
        for combo in itertools.product(*values):
            selection = dict(zip(names, combo))
            resolved = resolve(self.product.options, self.product.variants, selection)
            self.assertEqual(resolved is not None, tuple(sorted(selection.items())) in existing)


if __name__ == "__main__":
    unittest.main()
