"""ORM models. Importing this package registers every table on `Base.metadata`."""

from wholesale.models.base import Base, BaseModel, utc_now
from wholesale.models.customer import Customer
from wholesale.models.order import ALLOWED_TRANSITIONS, Order, OrderItem, OrderStatus
from wholesale.models.product import Product

__all__ = [
    "Base",
    "BaseModel",
    "utc_now",
    "Customer",
    "Order",
    "OrderItem",
    "OrderStatus",
    "ALLOWED_TRANSITIONS",
    "Product",
]
