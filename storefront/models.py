from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


LoadState = Literal["idle", "loading", "loaded", "failed"]
CtaPhase = Literal["idle", "pending", "confirmed"]


def _unwrap_nodes(value: Any) -> Any:
    # GraphQL connections arrive as {"nodes": [...]}
    if isinstance(value, dict) and "nodes" in value:
        return value.get("nodes") or []
    if value is None:
        return []
    return value


class _WireModel(BaseModel):
    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class Image(_WireModel):
    url: str
    alt_text: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None


class Money(_WireModel):
    amount: str
    currency_code: str

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_as_str(cls, value: Any) -> Any:
        if isinstance(value, (int, float)):
            return str(value)
        return value

    def label(self) -> str:
        return f"{self.amount} {self.currency_code}"


class ProductOption(_WireModel):
    name: str
    values: list[str] = Field(default_factory=list)


class SelectedOption(_WireModel):
    name: str
    value: str


class Variant(_WireModel):
    id: str
    available_for_sale: bool = False
    selected_options: list[SelectedOption] = Field(default_factory=list)
    image: Optional[Image] = None
    price: Optional[Money] = None

    def option_map(self) -> dict[str, str]:
        return {o.name: o.value for o in self.selected_options}


class Product(_WireModel):
    id: str
    handle: str
    title: str = ""
    description: str = ""
    media: list[Image] = Field(default_factory=list, alias="images")
    featured_image: Optional[Image] = None
    options: list[ProductOption] = Field(default_factory=list)
    variants: list[Variant] = Field(default_factory=list)

    @field_validator("media", "variants", mode="before")
    @classmethod
    def _connection_nodes(cls, value: Any) -> Any:
        return _unwrap_nodes(value)

    @field_validator("options", mode="before")
    @classmethod
    def _options_list(cls, value: Any) -> Any:
        return [] if value is None else value

    def option_names(self) -> list[str]:
        return [o.name for o in self.options]

    def find_option(self, name: str) -> Optional[ProductOption]:
        for option in self.options:
            if option.name == name:
                return option
        return None


class PriceRange(_WireModel):
    min_variant_price: Money


class ProductCard(_WireModel):
    id: str
    handle: str
    title: str = ""
    featured_image: Optional[Image] = None
    price_range: PriceRange


class CollectionLite(_WireModel):
    title: str
    handle: str


def dump_wire(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)
