from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from storefront.models import CtaPhase, Product, Variant
from storefront.quickview.resolver import availability_matrix, resolve
from storefront.quickview.session import SessionSnapshot

PRICE_PLACEHOLDER = "Select options to see price"

_CTA_LABELS: dict[str, str] = {
    "idle": "Add to bag",
    "pending": "Adding…",
    "confirmed": "Added",
}


class OptionValueView(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str
    selected: bool
    enabled: bool


class OptionGroupView(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    values: list[OptionValueView] = Field(default_factory=list)


class CtaView(BaseModel):
    model_config = ConfigDict(frozen=True)

    phase: CtaPhase
    label: str
    enabled: bool


class QuickView(BaseModel):
    model_config = ConfigDict(frozen=True)

    visible: bool
    heading: str
    loading: bool
    error: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    price_label: Optional[str] = None
    variant_id: Optional[str] = None
    options: list[OptionGroupView] = Field(default_factory=list)
    cta: Optional[CtaView] = None


def _image_url(product: Product, variant: Optional[Variant]) -> Optional[str]:
    if variant is not None and variant.image is not None:
        return variant.image.url
    if product.featured_image is not None:
        return product.featured_image.url
    if product.media:
        return product.media[0].url
    return None


def project(snapshot: SessionSnapshot) -> QuickView:
    """Derive everything the overlay renders from one session snapshot."""
    heading = f"Quick View • {snapshot.target}" if snapshot.target else "Quick View"
    loading = snapshot.load_state == "loading"
    product = snapshot.product

    if not snapshot.is_open:
        return QuickView(visible=False, heading=heading, loading=False)

    if snapshot.load_state == "failed" or product is None:
        return QuickView(
            visible=True,
            heading=heading,
            loading=loading,
            error=snapshot.error if snapshot.load_state == "failed" else None,
        )

    variant = resolve(product.options, product.variants, snapshot.selections)
    matrix = availability_matrix(product.options, product.variants, snapshot.selections)
    groups = [
        OptionGroupView(
            name=option.name,
            values=[
                OptionValueView(
                    value=value,
                    selected=snapshot.selections.get(option.name) == value,
                    enabled=enabled,
                )
                for value, enabled in matrix.get(option.name, [])
            ],
        )
        for option in product.options
    ]

    sellable = variant is not None and variant.available_for_sale
    return QuickView(
        visible=True,
        heading=heading,
        loading=False,
        title=product.title,
        description=product.description,
        image_url=_image_url(product, variant),
        price_label=variant.price.label() if variant is not None and variant.price is not None else PRICE_PLACEHOLDER,
        variant_id=variant.id if variant is not None else None,
        options=groups,
        cta=CtaView(
            phase=snapshot.cta_phase,
            label=_CTA_LABELS[snapshot.cta_phase],
            enabled=sellable and snapshot.cta_phase == "idle",
        ),
    )
