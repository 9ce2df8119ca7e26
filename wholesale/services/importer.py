# wholesale/services/importer.py
"""
Bulk product import from a parsed spreadsheet.

Pipeline: map columns -> coerce rows -> merge rows sharing a barcode -> upsert
against a catalog snapshot taken once at the start. Inserts go in batches;
each batch and each update commits on its own, so a failure stops the run but
keeps earlier work.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Literal, Mapping, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wholesale.core.config import get_settings
from wholesale.core.exceptions import ImportRowError, MissingRequiredMapping
from wholesale.core.logging import get_logger
from wholesale.models import Product
from wholesale.services.stock_events import mark_stock_changed
from wholesale.utils.spreadsheet import (
    IMPORT_FIELDS,
    SheetData,
    clean_mapping,
    clean_price,
    clean_stock,
    missing_required,
)

logger = get_logger(__name__)

ImportMode = Literal["skip", "update"]

_TEXT_FIELDS = ("brand", "section", "product_line", "description", "bar_code", "image_url")


@dataclass
class ImportedVariant:
    row: int
    reference: str
    size: str
    stock: int = 0
    brand: Optional[str] = None
    section: Optional[str] = None
    product_line: Optional[str] = None
    description: Optional[str] = None
    bar_code: Optional[str] = None
    image_url: Optional[str] = None
    retail_price: Optional[Decimal] = None
    wholesale_price: Optional[Decimal] = None

    @property
    def key(self) -> str:
        return f"{self.reference.lower()}_{self.size.lower()}"

    def values(self) -> dict:
        """Column values to write; unset optional fields are left out."""
        data = {"reference": self.reference, "size": self.size, "stock": self.stock}
        for name in _TEXT_FIELDS + ("retail_price", "wholesale_price"):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        return data


@dataclass
class _Snapshot:
    id: int
    stock: int
    retail_price: Optional[Decimal]
    wholesale_price: Optional[Decimal]
    bar_code: Optional[str]


@dataclass
class ImportResult:
    success: int = 0
    updated: int = 0
    skipped: int = 0
    merged: int = 0
    errors: list[str] = field(default_factory=list)
    completed: bool = True

    @property
    def message(self) -> str:
        if not self.completed:
            return (
                f"Import stopped after {self.success} new and {self.updated} updated products. "
                "See errors for details."
            )
        return (
            f"Import completed! {self.success} new, {self.updated} updated, "
            f"{self.skipped} skipped, {self.merged} merged by barcode."
        )

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "updated": self.updated,
            "skipped": self.skipped,
            "merged": self.merged,
            "errors": list(self.errors),
            "completed": self.completed,
            "message": self.message,
        }


class ProductImporter:
    def __init__(self, session: Session, batch_size: Optional[int] = None) -> None:
        self.session = session
        self.batch_size = batch_size or get_settings().IMPORT_BATCH_SIZE

    # ------------------------------------------------------------ row parsing
    def parse_rows(
        self, sheet: SheetData, mapping: Mapping[str, str], result: ImportResult
    ) -> list[ImportedVariant]:
        columns = {key: sheet.column_index(header) for key, header in mapping.items() if key in IMPORT_FIELDS}

        def cell(row: list[str], key: str) -> str:
            idx = columns.get(key)
            if idx is None or idx >= len(row):
                return ""
            return (row[idx] or "").strip()

        variants: list[ImportedVariant] = []
        for i, row in enumerate(sheet.rows):
            row_number = i + 2
            reference, size = cell(row, "reference"), cell(row, "size")
            if not reference:
                result.errors.append(str(ImportRowError(f"Row {row_number}: Missing reference", row_number)))
                continue
            if not size:
                result.errors.append(str(ImportRowError(f"Row {row_number}: Missing size", row_number)))
                continue

            variant = ImportedVariant(row=row_number, reference=reference, size=size)
            if "stock" in columns:
                variant.stock = clean_stock(cell(row, "stock"))
            for key in ("retail_price", "wholesale_price"):
                if key in columns:
                    setattr(variant, key, clean_price(cell(row, key)))
            for key in _TEXT_FIELDS:
                if key in columns:
                    setattr(variant, key, cell(row, key) or None)
            variants.append(variant)
        return variants

    def merge_by_barcode(
        self,
        variants: list[ImportedVariant],
        result: ImportResult,
        known_barcodes: Optional[Mapping[str, str]] = None,
    ) -> list[ImportedVariant]:
        """
        Fold rows sharing a barcode into the first one, summing stock.

        A barcode that already belongs to a different reference/size (earlier in
        the file or in the catalog) rejects the row instead of merging it.
        """
        known_barcodes = known_barcodes or {}
        merged: list[ImportedVariant] = []
        by_barcode: dict[str, ImportedVariant] = {}

        for variant in variants:
            if not variant.bar_code:
                merged.append(variant)
                continue

            owner_key = known_barcodes.get(variant.bar_code)
            if owner_key is not None and owner_key != variant.key:
                result.errors.append(
                    str(
                        ImportRowError(
                            f"Row {variant.row}: Bar code {variant.bar_code} already belongs to another product",
                            variant.row,
                        )
                    )
                )
                continue

            first = by_barcode.get(variant.bar_code)
            if first is None:
                by_barcode[variant.bar_code] = variant
                merged.append(variant)
            elif first.key != variant.key:
                result.errors.append(
                    str(
                        ImportRowError(
                            f"Row {variant.row}: Bar code {variant.bar_code} is used by "
                            f"{first.reference}/{first.size} (row {first.row})",
                            variant.row,
                        )
                    )
                )
            else:
                first.stock += variant.stock
                result.merged += 1
        return merged

    # --------------------------------------------------------------- snapshot
    def _snapshot(self) -> dict[str, _Snapshot]:
        rows = self.session.execute(
            select(
                Product.id,
                Product.reference,
                Product.size,
                Product.stock,
                Product.retail_price,
                Product.wholesale_price,
                Product.bar_code,
            )
        ).all()
        return {
            f"{r.reference.lower()}_{r.size.lower()}": _Snapshot(
                id=r.id,
                stock=r.stock,
                retail_price=r.retail_price,
                wholesale_price=r.wholesale_price,
                bar_code=r.bar_code,
            )
            for r in rows
        }

    @staticmethod
    def _has_changes(variant: ImportedVariant, existing: _Snapshot) -> bool:
        if variant.stock != existing.stock:
            return True
        if variant.wholesale_price is not None and variant.wholesale_price != existing.wholesale_price:
            return True
        if variant.retail_price is not None and variant.retail_price != existing.retail_price:
            return True
        return False

    # -------------------------------------------------------------------- run
    def run(self, sheet: SheetData, mapping: Mapping[str, str], mode: ImportMode = "skip") -> ImportResult:
        mapping = clean_mapping(mapping)
        missing = missing_required(mapping)
        if missing:
            raise MissingRequiredMapping(missing)

        result = ImportResult()
        snapshot = self._snapshot()
        known_barcodes = {s.bar_code: key for key, s in snapshot.items() if s.bar_code}

        variants = self.parse_rows(sheet, mapping, result)
        variants = self.merge_by_barcode(variants, result, known_barcodes)

        to_insert: list[ImportedVariant] = []
        to_update: list[tuple[ImportedVariant, _Snapshot]] = []
        pending_keys: dict[str, int] = {}

        for variant in variants:
            if variant.key in pending_keys:
                result.errors.append(
                    f"Row {variant.row}: Duplicate of row {pending_keys[variant.key]} "
                    f"({variant.reference}/{variant.size})"
                )
                continue
            pending_keys[variant.key] = variant.row

            existing = snapshot.get(variant.key)
            if existing is None:
                to_insert.append(variant)
            elif mode == "skip" or not self._has_changes(variant, existing):
                result.skipped += 1
            else:
                to_update.append((variant, existing))

        logger.info(
            "product_import_planned",
            rows=len(sheet.rows),
            inserts=len(to_insert),
            updates=len(to_update),
            skipped=result.skipped,
            merged=result.merged,
            mode=mode,
        )

        if self._insert(to_insert, result):
            self._update(to_update, result)

        logger.info(
            "product_import_finished",
            success=result.success,
            updated=result.updated,
            skipped=result.skipped,
            merged=result.merged,
            errors=len(result.errors),
            completed=result.completed,
        )
        return result

    def _stop(self, result: ImportResult, message: str, error: SQLAlchemyError) -> bool:
        self.session.rollback()
        logger.error("product_import_stopped", error=str(error), success=result.success, updated=result.updated)
        result.errors.append(message)
        result.completed = False
        return False

    def _insert(self, variants: list[ImportedVariant], result: ImportResult) -> bool:
        for start in range(0, len(variants), self.batch_size):
            batch = variants[start : start + self.batch_size]
            try:
                self.session.add_all([Product(**v.values()) for v in batch])
                self.session.commit()
            except SQLAlchemyError as e:
                first, last = batch[0].row, batch[-1].row
                return self._stop(result, f"Rows {first}-{last}: Failed to insert batch ({e.__class__.__name__})", e)
            result.success += len(batch)
        return True

    def _update(self, pairs: list[tuple[ImportedVariant, _Snapshot]], result: ImportResult) -> bool:
        for variant, existing in pairs:
            stmt = (
                update(Product)
                .where(Product.id == existing.id, Product.stock == existing.stock)
                .values(**variant.values())
                .execution_options(synchronize_session=False)
            )
            try:
                affected = self.session.execute(stmt).rowcount
                if not affected:
                    self.session.rollback()
                    result.errors.append(
                        f"Row {variant.row}: {variant.reference}/{variant.size} changed during import, not updated"
                    )
                    continue
                mark_stock_changed(self.session, [existing.id])
                self.session.commit()
            except SQLAlchemyError as e:
                return self._stop(result, f"Row {variant.row}: Failed to update product ({e.__class__.__name__})", e)
            result.updated += 1
        return True
