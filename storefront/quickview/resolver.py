from __future__ import annotations

from typing import Mapping, Optional, Sequence

from storefront.models import ProductOption, Variant


def _is_complete(options: Sequence[ProductOption], selections: Mapping[str, str]) -> bool:
    return all(selections.get(option.name) for option in options)


def resolve(
    options: Sequence[ProductOption],
    variants: Sequence[Variant],
    selections: Mapping[str, str],
) -> Optional[Variant]:
    """Return the variant matching a complete selection.

    Partial selections never resolve, even when they already narrow the
    matrix down to a single variant. Returns None when no variant carries
    the selected combination.
    """
    if not options or not _is_complete(options, selections):
        return None

    for variant in variants:
        values = variant.option_map()
        if all(values.get(option.name) == selections[option.name] for option in options):
            return variant
    return None


def is_value_available(
    options: Sequence[ProductOption],
    variants: Sequence[Variant],
    selections: Mapping[str, str],
    option_name: str,
    candidate_value: str,
) -> bool:
    """Whether picking `candidate_value` still leaves a sellable variant.

    Options without a selection act as wildcards.
    """
    hypothetical = {**selections, option_name: candidate_value}

    for variant in variants:
        if not variant.available_for_sale:
            continue
        if all(
            not hypothetical.get(selected.name) or hypothetical[selected.name] == selected.value
            for selected in variant.selected_options
        ):
            return True
    return False


def availability_matrix(
    options: Sequence[ProductOption],
    variants: Sequence[Variant],
    selections: Mapping[str, str],
) -> dict[str, list[tuple[str, bool]]]:
    """Availability of every listed value, in schema order."""
    matrix: dict[str, list[tuple[str, bool]]] = {}
    for option in options:
        matrix[option.name] = [
            (value, is_value_available(options, variants, selections, option.name, value))
            for value in option.values
        ]
    return matrix
