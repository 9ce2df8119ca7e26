# wholesale/services/catalog.py
"""
Catalog read side: variant snapshots, grouping by reference, facets, and the
filter/search/paginate pipeline.

All functions here are pure over `VariantSnapshot` lists; `CatalogCache` is the
only piece that touches the database.
"""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Iterable, Literal, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from wholesale.core.logging import get_logger
from wholesale.models import Product
from wholesale.services.stock_events import StockChanged, StockEventBus, stock_events

logger = get_logger(__name__)

PRODUCTS_PER_PAGE = 50
PRICE_FLOOR = Decimal("0")
PRICE_CEILING = Decimal("1000000")

FilterKind = Literal["brands", "sections", "product_lines"]


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class VariantSnapshot:
    """A detached copy of one product row, safe to keep after the session closes."""

    id: int
    reference: str
    size: str
    description: Optional[str] = None
    brand: Optional[str] = None
    section: Optional[str] = None
    product_line: Optional[str] = None
    bar_code: Optional[str] = None
    image_url: Optional[str] = None
    retail_price: Optional[Decimal] = None
    wholesale_price: Optional[Decimal] = None
    stock: int = 0
    reserved_stock: int = 0

    @property
    def available_stock(self) -> int:
        return max(0, self.stock - self.reserved_stock)

    @classmethod
    def from_product(cls, product: Product) -> "VariantSnapshot":
        return cls(
            id=product.id,
            reference=product.reference,
            size=product.size,
            description=product.description,
            brand=product.brand,
            section=product.section,
            product_line=product.product_line,
            bar_code=product.bar_code,
            image_url=product.image_url,
            retail_price=product.retail_price,
            wholesale_price=product.wholesale_price,
            stock=int(product.stock or 0),
            reserved_stock=int(product.reserved_stock or 0),
        )


@dataclass
class ProductGroup:
    reference: str
    description: Optional[str]
    brand: Optional[str]
    section: Optional[str]
    product_line: Optional[str]
    image_url: Optional[str]
    retail_price: Optional[Decimal]
    wholesale_price: Optional[Decimal]
    variants: list[VariantSnapshot] = field(default_factory=list)

    @property
    def in_stock(self) -> bool:
        return any(v.available_stock > 0 for v in self.variants)


@dataclass(frozen=True)
class PriceRange:
    min: Decimal = PRICE_FLOOR
    max: Decimal = PRICE_CEILING

    def contains(self, price: Decimal) -> bool:
        return self.min <= price <= self.max


@dataclass(frozen=True)
class FilterOptions:
    brands: list[str]
    sections: list[str]
    product_lines: list[str]
    price_range: PriceRange


@dataclass(frozen=True)
class Filters:
    brands: tuple[str, ...] = ()
    sections: tuple[str, ...] = ()
    product_lines: tuple[str, ...] = ()
    price_range: PriceRange = PriceRange()
    in_stock_only: bool = False


@dataclass
class Page:
    items: list[ProductGroup]
    total: int
    page: int
    per_page: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.per_page) if self.per_page else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1


# ---------------------------------------------------------------------------
# Grouping and facets
# ---------------------------------------------------------------------------
def group_products_by_reference(variants: Iterable[VariantSnapshot]) -> list[ProductGroup]:
    """Group variants by reference; display fields come from the first variant seen."""
    groups: dict[str, ProductGroup] = {}
    for v in variants:
        group = groups.get(v.reference)
        if group is None:
            group = ProductGroup(
                reference=v.reference,
                description=v.description,
                brand=v.brand,
                section=v.section,
                product_line=v.product_line,
                image_url=v.image_url,
                retail_price=v.retail_price,
                wholesale_price=v.wholesale_price,
            )
            groups[v.reference] = group
        group.variants.append(v)
    return list(groups.values())


def extract_filter_options(variants: Sequence[VariantSnapshot]) -> FilterOptions:
    brands = sorted({v.brand for v in variants if v.brand})
    sections = sorted({v.section for v in variants if v.section})
    product_lines = sorted({v.product_line for v in variants if v.product_line})
    # zero prices are ignored like missing ones; the range always spans [0, 1_000_000]
    prices = [v.wholesale_price for v in variants if v.wholesale_price]
    return FilterOptions(
        brands=brands,
        sections=sections,
        product_lines=product_lines,
        price_range=PriceRange(min=min([*prices, PRICE_FLOOR]), max=max([*prices, PRICE_CEILING])),
    )


def default_filters(options: Optional[FilterOptions] = None) -> Filters:
    return Filters(price_range=options.price_range if options else PriceRange())


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------
def _contains(value: Optional[str], needle: str) -> bool:
    return bool(value) and needle in value.lower()


def matches_search(group: ProductGroup, search_term: str) -> bool:
    needle = search_term.lower()
    return (
        _contains(group.description, needle)
        or _contains(group.brand, needle)
        or _contains(group.reference, needle)
        or _contains(group.section, needle)
        or _contains(group.product_line, needle)
    )


def apply_filters(
    groups: Iterable[ProductGroup],
    search_term: Optional[str],
    filters: Filters,
) -> list[ProductGroup]:
    """
    Conjunctive filter. Empty brand/section/line selections pass everything;
    a missing wholesale price counts as 0 for the price range.
    """
    term = (search_term or "").strip()
    out: list[ProductGroup] = []
    for group in groups:
        if term and not matches_search(group, term):
            continue
        if filters.brands and group.brand not in filters.brands:
            continue
        if filters.sections and group.section not in filters.sections:
            continue
        if filters.product_lines and group.product_line not in filters.product_lines:
            continue
        if not filters.price_range.contains(group.wholesale_price or Decimal("0")):
            continue
        if filters.in_stock_only and not group.in_stock:
            continue
        out.append(group)
    return out


def active_filters_count(filters: Filters) -> int:
    # the price range is never counted, even when narrowed
    return (
        len(filters.brands)
        + len(filters.sections)
        + len(filters.product_lines)
        + (1 if filters.in_stock_only else 0)
    )


def toggle_filter(filters: Filters, kind: FilterKind, value: str) -> Filters:
    current: tuple[str, ...] = getattr(filters, kind)
    if value in current:
        updated = tuple(v for v in current if v != value)
    else:
        updated = (*current, value)
    return replace(filters, **{kind: updated})


def toggle_in_stock_only(filters: Filters) -> Filters:
    return replace(filters, in_stock_only=not filters.in_stock_only)


def update_price_range(filters: Filters, min_price: Decimal, max_price: Decimal) -> Filters:
    if min_price > max_price:
        raise ValueError("min_price must be <= max_price")
    return replace(filters, price_range=PriceRange(min=min_price, max=max_price))


def clear_filters(options: Optional[FilterOptions] = None) -> Filters:
    return default_filters(options)


def paginate(groups: Sequence[ProductGroup], page: int = 1, per_page: int = PRODUCTS_PER_PAGE) -> Page:
    page = max(1, page)
    start = (page - 1) * per_page
    return Page(items=list(groups[start : start + per_page]), total=len(groups), page=page, per_page=per_page)


@dataclass
class CatalogView:
    page: Page
    options: FilterOptions
    filters: Filters
    active_filters: int


def build_catalog_view(
    variants: Sequence[VariantSnapshot],
    *,
    search_term: Optional[str] = None,
    filters: Optional[Filters] = None,
    page: int = 1,
    per_page: int = PRODUCTS_PER_PAGE,
) -> CatalogView:
    """Group, filter and paginate a catalog snapshot in one call."""
    options = extract_filter_options(variants)
    filters = filters or default_filters(options)
    filtered = apply_filters(group_products_by_reference(variants), search_term, filters)
    return CatalogView(
        page=paginate(filtered, page, per_page),
        options=options,
        filters=filters,
        active_filters=active_filters_count(filters),
    )


# ---------------------------------------------------------------------------
# Catalog cache
# ---------------------------------------------------------------------------
class CatalogCache:
    """Holds the last fetched variant list; any stock event invalidates it."""

    def __init__(self, bus: Optional[StockEventBus] = None) -> None:
        self._bus = bus or stock_events
        self._variants: Optional[list[VariantSnapshot]] = None
        self._lock = threading.Lock()
        self._generation = 0
        self._unsubscribe = self._bus.subscribe(self._on_stock_changed)
        self.refreshes = 0

    def _on_stock_changed(self, evt: StockChanged) -> None:
        logger.debug("catalog_cache_invalidated", product_ids=sorted(evt.product_ids))
        self.invalidate()

    @property
    def is_stale(self) -> bool:
        return self._variants is None

    def invalidate(self) -> None:
        with self._lock:
            self._variants = None
            self._generation += 1

    def get(self, session: Session) -> list[VariantSnapshot]:
        with self._lock:
            if self._variants is not None:
                return self._variants
            generation = self._generation
        rows = session.scalars(select(Product).order_by(Product.reference, Product.id)).all()
        variants = [VariantSnapshot.from_product(p) for p in rows]
        with self._lock:
            # an invalidation during the fetch means these rows may already be stale
            if generation == self._generation:
                self._variants = variants
            self.refreshes += 1
        return variants

    def close(self) -> None:
        self._unsubscribe()
