# wholesale/routers/imports.py
"""Bulk product import from CSV / Excel uploads."""

import json
from typing import Literal, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from wholesale.core.dependencies import get_product_importer
from wholesale.core.exceptions import WholesaleValidationError
from wholesale.core.logging import get_logger
from wholesale.schemas import ImportPreviewResponse, ImportResultResponse
from wholesale.services.importer import ProductImporter
from wholesale.utils.spreadsheet import IMPORT_FIELDS, auto_map_columns, read_spreadsheet

logger = get_logger(__name__)

router = APIRouter(prefix="/imports", tags=["imports"])


def _parse_mapping(raw: Optional[str]) -> Optional[dict]:
    if not raw:
        return None
    try:
        mapping = json.loads(raw)
    except json.JSONDecodeError as e:
        raise WholesaleValidationError("Column mapping must be a JSON object", code="INVALID_MAPPING") from e
    if not isinstance(mapping, dict):
        raise WholesaleValidationError("Column mapping must be a JSON object", code="INVALID_MAPPING")
    return mapping


@router.post("/preview", response_model=ImportPreviewResponse, summary="Headers, suggested mapping, first rows")
def preview_import(file: UploadFile = File(...)):
    sheet = read_spreadsheet(file.filename or "", file.file.read())
    mapping = auto_map_columns(sheet.headers)
    return ImportPreviewResponse(
        headers=sheet.headers,
        mapping={key: mapping.get(key) for key in IMPORT_FIELDS},
        rows=sheet.preview,
        total_rows=len(sheet.rows),
    )


@router.post("/products", response_model=ImportResultResponse, summary="Import product variants")
def import_products(
    file: UploadFile = File(...),
    mode: Literal["skip", "update"] = Form("skip"),
    mapping: Optional[str] = Form(None, description="JSON object field -> header; 'not_mapped' leaves a field unset"),
    importer: ProductImporter = Depends(get_product_importer),
):
    sheet = read_spreadsheet(file.filename or "", file.file.read())
    column_mapping = _parse_mapping(mapping)
    if column_mapping is None:
        column_mapping = auto_map_columns(sheet.headers)

    logger.info("product_import_started", filename=file.filename, rows=len(sheet.rows), mode=mode)
    return importer.run(sheet, column_mapping, mode=mode).to_dict()
