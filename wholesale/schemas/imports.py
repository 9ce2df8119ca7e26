from typing import Optional

from pydantic import BaseModel, Field


class ImportResultResponse(BaseModel):
    success: int = Field(0, description="Rows inserted")
    updated: int = 0
    skipped: int = 0
    merged: int = Field(0, description="Rows folded into another row with the same barcode")
    errors: list[str] = Field(default_factory=list)
    completed: bool = True
    message: str


class ImportPreviewResponse(BaseModel):
    headers: list[str]
    mapping: dict[str, Optional[str]] = Field(..., description="field -> header, None when unmapped")
    rows: list[list[str]]
    total_rows: int
