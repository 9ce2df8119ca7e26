# wholesale/core/dependencies.py
from __future__ import annotations

"""
FastAPI dependencies:
- Settings and the configured reservation policy
- Process-wide objects kept on `app.state` (cart registry, email service, catalog cache)
- Per-request services (carts, orders, imports)
- Pagination
"""

from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from wholesale.core.config import Settings
from wholesale.core.db import get_db
from wholesale.services.cart import CartRegistry, CartService
from wholesale.services.catalog import CatalogCache
from wholesale.services.email_service import EmailService
from wholesale.services.importer import ProductImporter
from wholesale.services.orders import OrderService
from wholesale.services.reservation import ReservationPolicy, get_reservation_policy


def get_settings_dep(request: Request) -> Settings:
    """Settings the app was built with (`create_app(settings)`), not the process-wide default."""
    return request.app.state.settings


def get_reservation_policy_dep(settings: Settings = Depends(get_settings_dep)) -> ReservationPolicy:
    return get_reservation_policy(settings.RESERVATION_POLICY)


# ------------------------------------------------------------------------------
# Application-scoped objects
# ------------------------------------------------------------------------------
def get_cart_registry(request: Request) -> CartRegistry:
    return request.app.state.cart_registry


def get_email_service(request: Request) -> EmailService:
    return request.app.state.email_service


def get_catalog_cache(request: Request) -> CatalogCache:
    return request.app.state.catalog_cache


# ------------------------------------------------------------------------------
# Request-scoped services
# ------------------------------------------------------------------------------
def get_cart_service(
    db: Session = Depends(get_db),
    policy: ReservationPolicy = Depends(get_reservation_policy_dep),
) -> CartService:
    return CartService(db, policy)


def get_order_service(
    db: Session = Depends(get_db),
    policy: ReservationPolicy = Depends(get_reservation_policy_dep),
    email_service: EmailService = Depends(get_email_service),
) -> OrderService:
    return OrderService(db, policy, email_service)


def get_product_importer(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
) -> ProductImporter:
    return ProductImporter(db, batch_size=settings.IMPORT_BATCH_SIZE)


# ------------------------------------------------------------------------------
# Pagination
# ------------------------------------------------------------------------------
@dataclass
class Pagination:
    page: int = 1
    per_page: int = 50
    max_per_page: int = 200

    def __post_init__(self):
        self.page = max(1, int(self.page or 1))
        p = int(self.per_page or 50)
        self.per_page = min(self.max_per_page, max(1, p))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    @property
    def limit(self) -> int:
        return self.per_page


def get_pagination(page: int = 1, per_page: int = 50) -> Pagination:
    return Pagination(page=page, per_page=per_page)
