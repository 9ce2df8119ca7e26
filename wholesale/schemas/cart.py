from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class CartItemAdd(BaseModel):
    product_id: int
    quantity: int = Field(..., description="Units to add; must be greater than zero")


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., description="New line quantity; 0 removes the line")


class CartItemResponse(BaseModel):
    product_id: int
    reference: str
    size: str
    description: Optional[str] = None
    wholesale_price: Decimal
    quantity: int
    stock: int
    line_total: Decimal


class CartResponse(BaseModel):
    cart_id: str
    items: list[CartItemResponse]
    total_amount: Decimal
    item_count: int
