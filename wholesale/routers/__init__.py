"""HTTP routers."""

from wholesale.routers import carts, catalog, customers, imports, notifications, orders, products

__all__ = ["carts", "catalog", "customers", "imports", "notifications", "orders", "products"]
