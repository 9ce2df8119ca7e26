# wholesale/models/product.py
from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, Index, Integer, Numeric, String, Text, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from wholesale.models.base import BaseModel

if TYPE_CHECKING:
    from wholesale.models.order import OrderItem


class Product(BaseModel):
    """
    One sellable variant: a (reference, size) pair.

    Variants sharing a `reference` form a product group in the catalog.
    `reserved_stock` counts units held by open carts under the eager policy.
    """

    __tablename__ = "products"

    reference: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    size: Mapped[str] = mapped_column(String(64), nullable=False)

    description: Mapped[Optional[str]] = mapped_column(Text)
    brand: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    section: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    product_line: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    bar_code: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(1024))

    retail_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2))
    wholesale_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2))

    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    reserved_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))

    order_items: Mapped[list["OrderItem"]] = relationship(back_populates="product")

    __table_args__ = (
        UniqueConstraint("reference", "size", name="uq_products_reference_size"),
        CheckConstraint("stock >= 0", name="stock_non_negative"),
        CheckConstraint("reserved_stock >= 0", name="reserved_stock_non_negative"),
        CheckConstraint("wholesale_price IS NULL OR wholesale_price >= 0", name="wholesale_price_non_negative"),
        CheckConstraint("retail_price IS NULL OR retail_price >= 0", name="retail_price_non_negative"),
        Index("ix_products_stock_reserved", "stock", "reserved_stock"),
    )

    @validates("reference", "size")
    def _validate_key_part(self, key: str, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError(f"{key} must be non-empty")
        return v

    @property
    def available_stock(self) -> int:
        return max(0, int(self.stock or 0) - int(self.reserved_stock or 0))

    @property
    def catalog_key(self) -> str:
        return f"{self.reference.lower()}_{self.size.lower()}"

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Product id={self.id} {self.reference}/{self.size} stock={self.stock} reserved={self.reserved_stock}>"
