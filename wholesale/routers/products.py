# wholesale/routers/products.py
"""Product variant administration (admin panel)."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from wholesale.core.db import get_db
from wholesale.core.dependencies import Pagination, get_pagination
from wholesale.core.exceptions import conflict, not_found
from wholesale.core.logging import get_logger
from wholesale.models import Product
from wholesale.schemas import PaginatedResponse, ProductCreate, ProductResponse, ProductUpdate

logger = get_logger(__name__)

router = APIRouter(prefix="/products", tags=["products"])


def _get_or_404(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if product is None:
        raise not_found(f"Product {product_id} not found")
    return product


@router.get("", response_model=PaginatedResponse[ProductResponse], summary="List product variants")
def list_products(
    search: Optional[str] = Query(None, description="Reference, description or bar code contains"),
    pagination: Pagination = Depends(get_pagination),
    db: Session = Depends(get_db),
):
    stmt = select(Product)
    if search:
        s = f"%{search.strip()}%"
        stmt = stmt.where(or_(Product.reference.ilike(s), Product.description.ilike(s), Product.bar_code.ilike(s)))

    total = db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
    items = db.scalars(
        stmt.order_by(Product.reference, Product.id).offset(pagination.offset).limit(pagination.limit)
    ).all()
    return PaginatedResponse[ProductResponse].create(
        items=[ProductResponse.model_validate(p) for p in items],
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
    )


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED, summary="Create a variant")
def create_product(payload: ProductCreate, db: Session = Depends(get_db)):
    product = Product(**payload.model_dump())
    db.add(product)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise conflict(f"Product {payload.reference}/{payload.size} already exists") from e
    db.refresh(product)
    logger.info("product_created", product_id=product.id, reference=product.reference, size=product.size)
    return product


@router.get("/{product_id}", response_model=ProductResponse, summary="Get a variant")
def get_product(product_id: int, db: Session = Depends(get_db)):
    return _get_or_404(db, product_id)


@router.patch("/{product_id}", response_model=ProductResponse, summary="Update a variant")
def update_product(product_id: int, payload: ProductUpdate, db: Session = Depends(get_db)):
    product = _get_or_404(db, product_id)
    changes = payload.model_dump(exclude_unset=True)
    for key, value in changes.items():
        setattr(product, key, value)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise conflict("Product update violates a unique constraint") from e
    db.refresh(product)
    logger.info("product_updated", product_id=product_id, fields=sorted(changes))
    return product


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a variant")
def delete_product(product_id: int, db: Session = Depends(get_db)):
    product = _get_or_404(db, product_id)
    db.delete(product)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise conflict("Product is referenced by existing orders and cannot be deleted") from e
    logger.info("product_deleted", product_id=product_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
