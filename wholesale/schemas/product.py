from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from wholesale.schemas.base import TimestampedSchema


class ProductBase(BaseModel):
    reference: str = Field(..., min_length=1, max_length=128)
    size: str = Field(..., min_length=1, max_length=64)
    description: Optional[str] = None
    brand: Optional[str] = Field(None, max_length=255)
    section: Optional[str] = Field(None, max_length=255)
    product_line: Optional[str] = Field(None, max_length=255)
    bar_code: Optional[str] = Field(None, max_length=64)
    image_url: Optional[str] = Field(None, max_length=1024)
    retail_price: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)
    wholesale_price: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)

    @field_validator("reference", "size")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class ProductCreate(ProductBase):
    stock: int = Field(0, ge=0)


class ProductUpdate(BaseModel):
    reference: Optional[str] = Field(None, min_length=1, max_length=128)
    size: Optional[str] = Field(None, min_length=1, max_length=64)
    description: Optional[str] = None
    brand: Optional[str] = Field(None, max_length=255)
    section: Optional[str] = Field(None, max_length=255)
    product_line: Optional[str] = Field(None, max_length=255)
    bar_code: Optional[str] = Field(None, max_length=64)
    image_url: Optional[str] = Field(None, max_length=1024)
    retail_price: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)
    wholesale_price: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)
    stock: Optional[int] = Field(None, ge=0)


class ProductResponse(ProductBase, TimestampedSchema):
    id: int
    stock: int
    reserved_stock: int
    available_stock: int

    model_config = ConfigDict(from_attributes=True)
