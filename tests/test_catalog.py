from decimal import Decimal

import pytest

from wholesale.services.catalog import (
    CatalogCache,
    Filters,
    PriceRange,
    VariantSnapshot,
    active_filters_count,
    apply_filters,
    build_catalog_view,
    clear_filters,
    extract_filter_options,
    group_products_by_reference,
    paginate,
    toggle_filter,
    toggle_in_stock_only,
    update_price_range,
)
from wholesale.services.stock_events import StockChanged, StockEventBus


def _v(pid, reference, size="M", brand=None, section=None, line=None, price=None, stock=5, reserved=0, desc=None):
    return VariantSnapshot(
        id=pid,
        reference=reference,
        size=size,
        description=desc,
        brand=brand,
        section=section,
        product_line=line,
        wholesale_price=Decimal(price) if price is not None else None,
        stock=stock,
        reserved_stock=reserved,
    )


@pytest.fixture
def variants():
    return [
        _v(1, "SHIRT-1", "S", brand="Acme", section="Men", line="Summer", price="1500", stock=0, desc="Linen shirt"),
        _v(2, "SHIRT-1", "M", brand="Acme", section="Men", line="Summer", price="1500", stock=4),
        _v(3, "DRESS-9", "S", brand="Bloom", section="Women", line="Evening", price="9000", stock=2),
        _v(4, "SOCK-3", "U", brand="Acme", section="Kids", price=None, stock=0),
    ]


class TestGrouping:
    """Variants collapse into product groups by reference."""

    def test_groups_preserve_first_seen_order(self, variants):
        groups = group_products_by_reference(variants)

        assert [g.reference for g in groups] == ["SHIRT-1", "DRESS-9", "SOCK-3"]
        assert [v.size for v in groups[0].variants] == ["S", "M"]

    def test_group_in_stock_when_any_variant_available(self, variants):
        groups = {g.reference: g for g in group_products_by_reference(variants)}

        assert groups["SHIRT-1"].in_stock is True
        assert groups["SOCK-3"].in_stock is False

    def test_reserved_units_count_against_availability(self):
        groups = group_products_by_reference([_v(1, "A", stock=3, reserved=3)])
        assert groups[0].in_stock is False


class TestFilterOptions:
    """Facet values and the price range."""

    def test_distinct_sorted_facets(self, variants):
        options = extract_filter_options(variants)

        assert options.brands == ["Acme", "Bloom"]
        assert options.sections == ["Kids", "Men", "Women"]
        assert options.product_lines == ["Evening", "Summer"]

    def test_price_range_always_spans_defaults(self, variants):
        options = extract_filter_options(variants)

        assert options.price_range.min == Decimal("0")
        assert options.price_range.max == Decimal("1000000")

    def test_price_range_grows_past_ceiling(self):
        options = extract_filter_options([_v(1, "A", price="2500000")])
        assert options.price_range.max == Decimal("2500000")


class TestApplyFilters:
    """Conjunctive filtering of product groups."""

    def test_search_is_case_insensitive_across_fields(self, variants):
        groups = group_products_by_reference(variants)

        assert [g.reference for g in apply_filters(groups, "LINEN", Filters())] == ["SHIRT-1"]
        assert [g.reference for g in apply_filters(groups, "bloom", Filters())] == ["DRESS-9"]
        assert [g.reference for g in apply_filters(groups, "sock", Filters())] == ["SOCK-3"]

    def test_empty_selection_passes_everything(self, variants):
        groups = group_products_by_reference(variants)
        assert len(apply_filters(groups, "", Filters())) == 3

    def test_brand_and_in_stock_combine(self, variants):
        groups = group_products_by_reference(variants)
        filters = Filters(brands=("Acme",), in_stock_only=True)

        assert [g.reference for g in apply_filters(groups, None, filters)] == ["SHIRT-1"]

    def test_missing_price_counts_as_zero(self, variants):
        groups = group_products_by_reference(variants)
        filters = Filters(price_range=PriceRange(min=Decimal("1"), max=Decimal("1000000")))

        assert "SOCK-3" not in [g.reference for g in apply_filters(groups, None, filters)]

    def test_price_range_is_inclusive(self, variants):
        groups = group_products_by_reference(variants)
        filters = Filters(price_range=PriceRange(min=Decimal("1500"), max=Decimal("9000")))

        assert [g.reference for g in apply_filters(groups, None, filters)] == ["SHIRT-1", "DRESS-9"]

    @pytest.mark.parametrize("brand", ["Acme", "Bloom"])
    def test_brand_toggle_and_search_clear_commute(self, variants, brand):
        groups = group_products_by_reference(variants)
        start = ("linen", Filters())

        def select_brand(state):
            return state[0], toggle_filter(state[1], "brands", brand)

        def clear_search(state):
            return "", state[1]

        brand_then_clear = clear_search(select_brand(start))
        clear_then_brand = select_brand(clear_search(start))

        assert brand_then_clear == clear_then_brand
        assert {g.reference for g in apply_filters(groups, *brand_then_clear)} == {
            g.reference for g in apply_filters(groups, *clear_then_brand)
        }

    def test_filters_compose_with_search(self, variants):
        groups = group_products_by_reference(variants)
        filters = Filters(brands=("Acme",))

        stepwise = apply_filters(apply_filters(groups, None, filters), "shirt", Filters())
        reversed_steps = apply_filters(apply_filters(groups, "shirt", Filters()), None, filters)

        assert [g.reference for g in stepwise] == [g.reference for g in reversed_steps] == ["SHIRT-1"]
        assert [g.reference for g in apply_filters(groups, "shirt", filters)] == ["SHIRT-1"]


class TestFilterState:
    """Toggling, counting and clearing filters."""

    def test_toggle_adds_then_removes_preserving_order(self):
        filters = toggle_filter(Filters(), "brands", "Bloom")
        filters = toggle_filter(filters, "brands", "Acme")
        assert filters.brands == ("Bloom", "Acme")

        filters = toggle_filter(filters, "brands", "Bloom")
        assert filters.brands == ("Acme",)

    def test_active_count_ignores_price_range(self):
        filters = Filters(
            brands=("Acme",),
            sections=("Men", "Women"),
            price_range=PriceRange(min=Decimal("10"), max=Decimal("20")),
        )
        assert active_filters_count(filters) == 3
        assert active_filters_count(toggle_in_stock_only(filters)) == 4

    def test_update_price_range_rejects_inverted_bounds(self):
        with pytest.raises(ValueError):
            update_price_range(Filters(), Decimal("10"), Decimal("5"))

    def test_clear_resets_to_option_range(self, variants):
        options = extract_filter_options(variants)
        filters = clear_filters(options)

        assert filters == Filters(price_range=options.price_range)
        assert active_filters_count(filters) == 0


class TestPagination:
    """Fixed-size pages over filtered groups."""

    def test_pages_and_navigation(self):
        groups = group_products_by_reference([_v(i, f"R{i:03d}") for i in range(120)])
        page = paginate(groups, page=3, per_page=50)

        assert page.total == 120
        assert page.pages == 3
        assert len(page.items) == 20
        assert page.has_prev and not page.has_next

    def test_page_below_one_clamps(self):
        page = paginate([], page=0)
        assert page.page == 1
        assert page.pages == 0

    def test_build_catalog_view(self, variants):
        view = build_catalog_view(variants, search_term="acme", page=1, per_page=1)

        assert view.page.total == 2
        assert [g.reference for g in view.page.items] == ["SHIRT-1"]
        assert view.page.has_next
        assert view.active_filters == 0


class TestCatalogCache:
    """The cached variant list is dropped on every stock event."""

    def test_reuses_list_until_invalidated(self, db, make_product):
        make_product(reference="A", size="S")
        bus = StockEventBus()
        cache = CatalogCache(bus)

        first = cache.get(db)
        assert cache.get(db) is first
        assert cache.refreshes == 1

        bus.publish(StockChanged(product_ids=frozenset({first[0].id})))
        assert cache.is_stale
        cache.get(db)
        assert cache.refreshes == 2
        cache.close()
        assert len(bus) == 0

    def test_commit_touching_products_invalidates_default_bus(self, db, make_product):
        product = make_product(reference="B", size="M", stock=3)
        cache = CatalogCache()
        try:
            cache.get(db)
            assert not cache.is_stale

            product.stock = 7
            db.commit()

            assert cache.is_stale
            assert cache.get(db)[0].stock == 7
        finally:
            cache.close()

    def test_rollback_publishes_nothing(self, db, make_product):
        product = make_product(reference="C", size="M", stock=3)
        cache = CatalogCache()
        try:
            cache.get(db)
            product.stock = 9
            db.flush()
            db.rollback()

            assert not cache.is_stale
        finally:
            cache.close()
