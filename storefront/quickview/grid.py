from __future__ import annotations

from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict

from storefront.models import ProductCard
from storefront.quickview.session import QuickViewSession


class GridRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    handle: str
    title: str
    price_label: str
    image_url: Optional[str] = None
    image_alt: Optional[str] = None


class ProductGrid:
    def __init__(self, cards: Sequence[ProductCard], session: QuickViewSession) -> None:
        self._cards = list(cards)
        self._session = session
        self.active_handle: Optional[str] = None
        session.add_close_listener(self._on_session_closed)

    @property
    def session(self) -> QuickViewSession:
        return self._session

    def rows(self) -> list[GridRow]:
        rows: list[GridRow] = []
        for card in self._cards:
            image = card.featured_image
            rows.append(
                GridRow(
                    id=card.id,
                    handle=card.handle,
                    title=card.title,
                    price_label=card.price_range.min_variant_price.label(),
                    image_url=image.url if image else None,
                    image_alt=(image.alt_text or card.title) if image else None,
                )
            )
        return rows

    def quick_view(self, handle: str) -> None:
        self.active_handle = handle
        self._session.open(handle)

    def close(self) -> None:
        self._session.close()

    def _on_session_closed(self) -> None:
        self.active_handle = None
