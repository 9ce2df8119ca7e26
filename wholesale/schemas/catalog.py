from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict


class VariantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    size: str
    bar_code: Optional[str] = None
    stock: int
    reserved_stock: int
    available_stock: int


class ProductGroupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    reference: str
    description: Optional[str] = None
    brand: Optional[str] = None
    section: Optional[str] = None
    product_line: Optional[str] = None
    image_url: Optional[str] = None
    retail_price: Optional[Decimal] = None
    wholesale_price: Optional[Decimal] = None
    in_stock: bool
    variants: list[VariantResponse]


class PriceRangeSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    min: Decimal
    max: Decimal


class FilterOptionsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    brands: list[str]
    sections: list[str]
    product_lines: list[str]
    price_range: PriceRangeSchema


class CatalogResponse(BaseModel):
    items: list[ProductGroupResponse]
    total: int
    page: int
    per_page: int
    pages: int
    has_next: bool
    has_prev: bool
    filter_options: FilterOptionsResponse
    active_filters: int
