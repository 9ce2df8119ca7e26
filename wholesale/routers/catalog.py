# wholesale/routers/catalog.py
"""
Storefront catalog: product groups with search, facet filters and pagination.

The variant list comes from `CatalogCache`, which the stock event bus
invalidates whenever a transaction changes product rows.
"""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from wholesale.core.config import Settings
from wholesale.core.db import get_db
from wholesale.core.dependencies import get_catalog_cache, get_settings_dep
from wholesale.core.exceptions import WholesaleValidationError
from wholesale.schemas.catalog import CatalogResponse, FilterOptionsResponse, ProductGroupResponse
from wholesale.services.catalog import (
    CatalogCache,
    Filters,
    PriceRange,
    build_catalog_view,
    extract_filter_options,
)

router = APIRouter(prefix="/catalog", tags=["catalog"])


def _group_response(group) -> ProductGroupResponse:
    return ProductGroupResponse(
        reference=group.reference,
        description=group.description,
        brand=group.brand,
        section=group.section,
        product_line=group.product_line,
        image_url=group.image_url,
        retail_price=group.retail_price,
        wholesale_price=group.wholesale_price,
        in_stock=group.in_stock,
        variants=[
            {
                "id": v.id,
                "size": v.size,
                "bar_code": v.bar_code,
                "stock": v.stock,
                "reserved_stock": v.reserved_stock,
                "available_stock": v.available_stock,
            }
            for v in group.variants
        ],
    )


@router.get("", response_model=CatalogResponse, summary="Browse the catalog")
def get_catalog(
    search: Optional[str] = Query(None, description="Matches description, brand, reference, section, line"),
    brands: list[str] = Query(default=[]),
    sections: list[str] = Query(default=[]),
    product_lines: list[str] = Query(default=[]),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    in_stock_only: bool = False,
    page: int = Query(1, ge=1),
    per_page: Optional[int] = Query(None, ge=1, le=500),
    db: Session = Depends(get_db),
    cache: CatalogCache = Depends(get_catalog_cache),
    settings: Settings = Depends(get_settings_dep),
):
    variants = cache.get(db)
    options = extract_filter_options(variants)
    price_range = PriceRange(
        min=min_price if min_price is not None else options.price_range.min,
        max=max_price if max_price is not None else options.price_range.max,
    )
    if price_range.min > price_range.max:
        raise WholesaleValidationError("min_price must be less than or equal to max_price", code="INVALID_PRICE_RANGE")

    filters = Filters(
        brands=tuple(dict.fromkeys(brands)),
        sections=tuple(dict.fromkeys(sections)),
        product_lines=tuple(dict.fromkeys(product_lines)),
        price_range=price_range,
        in_stock_only=in_stock_only,
    )
    view = build_catalog_view(
        variants,
        search_term=search,
        filters=filters,
        page=page,
        per_page=per_page or settings.PRODUCTS_PER_PAGE,
    )
    return CatalogResponse(
        items=[_group_response(g) for g in view.page.items],
        total=view.page.total,
        page=view.page.page,
        per_page=view.page.per_page,
        pages=view.page.pages,
        has_next=view.page.has_next,
        has_prev=view.page.has_prev,
        filter_options=FilterOptionsResponse.model_validate(view.options),
        active_filters=view.active_filters,
    )


@router.get("/filters", response_model=FilterOptionsResponse, summary="Facet values for the filter panel")
def get_filter_options(
    db: Session = Depends(get_db),
    cache: CatalogCache = Depends(get_catalog_cache),
):
    return FilterOptionsResponse.model_validate(extract_filter_options(cache.get(db)))
