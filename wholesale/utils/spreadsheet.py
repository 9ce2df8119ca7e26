"""
Spreadsheet reading and column mapping for product imports.
"""

from __future__ import annotations

import io
import re
import zipfile
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

import pandas as pd

from wholesale.core.exceptions import WholesaleValidationError
from wholesale.core.logging import get_logger

logger = get_logger(__name__)

NOT_MAPPED = "not_mapped"
PREVIEW_ROWS = 5

# importable product fields, in display order
IMPORT_FIELDS: tuple[str, ...] = (
    "reference",
    "size",
    "brand",
    "section",
    "product_line",
    "description",
    "bar_code",
    "retail_price",
    "wholesale_price",
    "stock",
    "image_url",
)
REQUIRED_FIELDS: tuple[str, ...] = ("reference", "size")

# extra header fragments that map to a field besides the field name itself
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "product_line": ("productline", "line"),
    "bar_code": ("barcode",),
    "retail_price": ("retailprice", "retail"),
    "wholesale_price": ("wholesaleprice", "wholesale"),
    "image_url": ("image", "url"),
}

EXCEL_EXTENSIONS = (".xlsx", ".xls")

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_PRICE_JUNK = re.compile(r"[₦,\s]")
_PRICE_NON_NUMERIC = re.compile(r"[^\d.-]")
_LEADING_NUMBER = re.compile(r"^-?(\d+\.?\d*|\.\d+)")
_WHOLE_NUMBER = re.compile(r"^(\d+)\.0*$")


@dataclass
class SheetData:
    headers: list[str]
    rows: list[list[str]] = field(default_factory=list)

    @property
    def preview(self) -> list[list[str]]:
        return self.rows[:PREVIEW_ROWS]

    def column_index(self, header: Optional[str]) -> Optional[int]:
        if not header or header == NOT_MAPPED:
            return None
        try:
            return self.headers.index(header)
        except ValueError:
            return None


def _load_frame(filename: str, content: bytes) -> pd.DataFrame:
    options: dict[str, Any] = {"header": None, "dtype": str, "keep_default_na": False}
    buffer = io.BytesIO(content)
    if filename.lower().endswith(EXCEL_EXTENSIONS):
        return pd.read_excel(buffer, sheet_name=0, **options)
    return pd.read_csv(buffer, skip_blank_lines=True, **options)


def read_spreadsheet(filename: str, content: bytes) -> SheetData:
    """Parse a CSV or Excel upload into trimmed string cells."""
    try:
        df = _load_frame(filename or "", content)
    except pd.errors.EmptyDataError:
        df = pd.DataFrame()
    except (pd.errors.ParserError, ValueError, zipfile.BadZipFile, UnicodeDecodeError) as e:
        logger.warning("spreadsheet_parse_failed", filename=filename, error=str(e))
        raise WholesaleValidationError(
            "Error parsing file. Please check the file format.", code="SPREADSHEET_PARSE_ERROR"
        ) from e

    df = df.fillna("")
    records = [[str(cell).strip() for cell in row] for row in df.itertuples(index=False, name=None)]
    if len(records) < 2:
        raise WholesaleValidationError(
            "File must contain at least a header row and one data row", code="SPREADSHEET_TOO_SHORT"
        )

    headers = records[0]
    rows = [row for row in records[1:] if any(cell != "" for cell in row)]
    if not rows:
        raise WholesaleValidationError(
            "File must contain at least a header row and one data row", code="SPREADSHEET_TOO_SHORT"
        )

    logger.info("spreadsheet_loaded", filename=filename, columns=len(headers), rows=len(rows))
    return SheetData(headers=headers, rows=rows)


def normalize_header(value: str) -> str:
    return _NON_ALNUM.sub("", (value or "").lower())


def auto_map_columns(headers: list[str]) -> dict[str, str]:
    """Guess field -> header from header names; a later header wins for the same field."""
    mapping: dict[str, str] = {}
    for header in headers:
        normalized = normalize_header(header)
        if not normalized:
            continue
        for field_key in IMPORT_FIELDS:
            fragments = (normalize_header(field_key),) + FIELD_ALIASES.get(field_key, ())
            if any(fragment in normalized for fragment in fragments):
                mapping[field_key] = header
    return mapping


def clean_mapping(mapping: Optional[Mapping[str, Any]]) -> dict[str, str]:
    """Drop unknown fields and unset (`not_mapped` / empty) entries."""
    out: dict[str, str] = {}
    for key, header in (mapping or {}).items():
        if key in IMPORT_FIELDS and isinstance(header, str) and header and header != NOT_MAPPED:
            out[key] = header
    return out


def missing_required(mapping: Mapping[str, str]) -> list[str]:
    return [f for f in REQUIRED_FIELDS if not mapping.get(f)]


def clean_price(value: Optional[str]) -> Optional[Decimal]:
    """'₦1,250.50' -> Decimal('1250.50'); unparseable or negative -> None."""
    if not value:
        return None
    cleaned = _PRICE_NON_NUMERIC.sub("", _PRICE_JUNK.sub("", value))
    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return None
    try:
        price = Decimal(match.group(0))
    except InvalidOperation:
        return None
    return price if price >= 0 else None


def clean_stock(value: Optional[str]) -> int:
    """Digits only; anything unparseable counts as 0."""
    if not value:
        return 0
    value = value.strip()
    whole = _WHOLE_NUMBER.match(value)
    if whole:
        return int(whole.group(1))
    digits = re.sub(r"[^\d]", "", value)
    return int(digits) if digits else 0
