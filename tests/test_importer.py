from decimal import Decimal

import pytest
from sqlalchemy import select

from wholesale.core.exceptions import MissingRequiredMapping
from wholesale.models import Product
from wholesale.services.importer import ImportResult, ProductImporter
from wholesale.utils.spreadsheet import SheetData

HEADERS = ["Ref", "Size", "Brand", "Price", "Qty", "EAN"]
MAPPING = {
    "reference": "Ref",
    "size": "Size",
    "brand": "Brand",
    "wholesale_price": "Price",
    "stock": "Qty",
    "bar_code": "EAN",
}


def _sheet(*rows):
    return SheetData(headers=list(HEADERS), rows=[list(r) for r in rows])


def _products(db):
    db.expire_all()
    return {(p.reference, p.size): p for p in db.scalars(select(Product))}


class TestImportInsert:
    """New rows become products."""

    def test_inserts_new_variants(self, db):
        result = ProductImporter(db).run(
            _sheet(
                ["SHIRT-1", "M", "Acme", "₦1,500", "12", ""],
                ["SHIRT-1", "L", "Acme", "1500", "4.0", ""],
            ),
            MAPPING,
        )

        assert (result.success, result.updated, result.skipped) == (2, 0, 0)
        assert result.completed
        products = _products(db)
        assert products[("SHIRT-1", "M")].wholesale_price == Decimal("1500.00")
        assert products[("SHIRT-1", "L")].stock == 4
        assert result.message == "Import completed! 2 new, 0 updated, 0 skipped, 0 merged by barcode."

    def test_rows_missing_key_fields_are_reported(self, db):
        result = ProductImporter(db).run(
            _sheet(["", "M", "", "", "", ""], ["REF", "", "", "", "", ""], ["OK", "S", "", "", "", ""]),
            MAPPING,
        )

        assert result.success == 1
        assert result.errors == ["Row 2: Missing reference", "Row 3: Missing size"]

    def test_mapping_without_size_is_refused(self, db):
        with pytest.raises(MissingRequiredMapping) as exc:
            ProductImporter(db).run(_sheet(["A", "M", "", "", "", ""]), {"reference": "Ref", "size": "not_mapped"})
        assert exc.value.missing == ["size"]

    def test_duplicate_key_in_file_is_rejected(self, db):
        result = ProductImporter(db).run(
            _sheet(["A", "M", "", "", "1", ""], ["a", "m", "", "", "2", ""]),
            MAPPING,
        )

        assert result.success == 1
        assert result.errors == ["Row 3: Duplicate of row 2 (a/m)"]

    def test_inserts_commit_in_batches(self, db):
        rows = [[f"R{i}", "U", "", "", "1", ""] for i in range(7)]
        result = ProductImporter(db, batch_size=3).run(_sheet(*rows), MAPPING)

        assert result.success == 7
        assert len(_products(db)) == 7


class TestBarcodeMerge:
    """Rows sharing a barcode are folded together."""

    def test_same_variant_sums_stock(self, db):
        result = ProductImporter(db).run(
            _sheet(["A", "M", "", "", "3", "111"], ["A", "M", "", "", "5", "111"]),
            MAPPING,
        )

        assert result.merged == 1
        assert result.success == 1
        assert _products(db)[("A", "M")].stock == 8

    def test_barcode_on_different_variant_is_rejected(self, db):
        result = ProductImporter(db).run(
            _sheet(["A", "M", "", "", "3", "111"], ["B", "S", "", "", "5", "111"]),
            MAPPING,
        )

        assert result.success == 1
        assert result.errors == ["Row 3: Bar code 111 is used by A/M (row 2)"]

    def test_barcode_owned_by_catalog_product(self, db, make_product):
        make_product(reference="OLD", size="M", bar_code="999")
        result = ProductImporter(db).run(_sheet(["NEW", "M", "", "", "1", "999"]), MAPPING)

        assert result.success == 0
        assert result.errors == ["Row 2: Bar code 999 already belongs to another product"]


class TestImportModes:
    """Existing variants are skipped or updated."""

    def test_skip_mode_leaves_existing(self, db, make_product):
        make_product(reference="A", size="M", stock=1)
        result = ProductImporter(db).run(_sheet(["A", "M", "", "", "9", ""]), MAPPING, mode="skip")

        assert result.skipped == 1
        assert _products(db)[("A", "M")].stock == 1

    def test_update_mode_overwrites_changed(self, db, make_product):
        make_product(reference="A", size="M", stock=1, wholesale_price="10")
        result = ProductImporter(db).run(_sheet(["a", "m", "Acme", "20", "9", ""]), MAPPING, mode="update")

        assert result.updated == 1
        product = _products(db)[("a", "m")]
        assert product.stock == 9
        assert product.wholesale_price == Decimal("20.00")
        assert product.brand == "Acme"

    def test_update_mode_skips_unchanged(self, db, make_product):
        make_product(reference="A", size="M", stock=4, wholesale_price="10")
        result = ProductImporter(db).run(_sheet(["A", "M", "", "10", "4", ""]), MAPPING, mode="update")

        assert (result.updated, result.skipped) == (0, 1)

    def test_stock_changed_since_snapshot_is_not_overwritten(self, db, make_product, monkeypatch):
        product = make_product(reference="A", size="M", stock=4)
        importer = ProductImporter(db)
        taken = importer._snapshot()

        # a sale lands between the snapshot and the write
        product.stock = 2
        db.commit()
        monkeypatch.setattr(importer, "_snapshot", lambda: taken)

        result = importer.run(_sheet(["A", "M", "", "", "10", ""]), MAPPING, mode="update")

        assert result.updated == 0
        assert result.errors == ["Row 2: A/M changed during import, not updated"]
        assert _products(db)[("A", "M")].stock == 2

    def test_reimporting_same_file_in_skip_mode_changes_nothing(self, db):
        sheet = _sheet(
            ["A", "M", "Acme", "10", "3", "111"],
            ["A", "M", "Acme", "10", "5", "111"],
            ["B", "S", "Acme", "20", "2", ""],
        )
        first = ProductImporter(db).run(sheet, MAPPING, mode="skip")
        before = {key: (p.stock, p.wholesale_price) for key, p in _products(db).items()}

        second = ProductImporter(db).run(sheet, MAPPING, mode="skip")

        assert (first.success, first.merged) == (2, 1)
        assert (second.success, second.updated, second.skipped, second.merged) == (0, 0, 2, 1)
        assert second.errors == []
        assert {key: (p.stock, p.wholesale_price) for key, p in _products(db).items()} == before


class TestImportResult:
    def test_incomplete_message(self):
        result = ImportResult(success=3, updated=1, completed=False)
        assert result.message.startswith("Import stopped after 3 new and 1 updated products.")
        assert result.to_dict()["completed"] is False
