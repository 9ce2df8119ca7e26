"""Pydantic request/response schemas."""

from wholesale.schemas.base import BaseSchema, PaginatedResponse, TimestampedSchema
from wholesale.schemas.cart import CartItemAdd, CartItemResponse, CartItemUpdate, CartResponse
from wholesale.schemas.catalog import CatalogResponse, FilterOptionsResponse, ProductGroupResponse
from wholesale.schemas.customer import CustomerCreate, CustomerInfo, CustomerLink, CustomerResponse
from wholesale.schemas.imports import ImportPreviewResponse, ImportResultResponse
from wholesale.schemas.notifications import (
    EmailTestRequest,
    NotificationItem,
    NotificationOrder,
    NotificationPayload,
    NotificationResponse,
)
from wholesale.schemas.order import (
    CheckoutRequest,
    DispatchResultSchema,
    OrderItemResponse,
    OrderItemsUpdate,
    OrderResponse,
    OrderStatusUpdate,
    OrderSubmissionResponse,
)
from wholesale.schemas.product import ProductCreate, ProductResponse, ProductUpdate

__all__ = [
    "BaseSchema",
    "PaginatedResponse",
    "TimestampedSchema",
    "CartItemAdd",
    "CartItemResponse",
    "CartItemUpdate",
    "CartResponse",
    "CatalogResponse",
    "FilterOptionsResponse",
    "ProductGroupResponse",
    "CustomerCreate",
    "CustomerInfo",
    "CustomerLink",
    "CustomerResponse",
    "ImportPreviewResponse",
    "ImportResultResponse",
    "EmailTestRequest",
    "NotificationItem",
    "NotificationOrder",
    "NotificationPayload",
    "NotificationResponse",
    "CheckoutRequest",
    "DispatchResultSchema",
    "OrderItemResponse",
    "OrderItemsUpdate",
    "OrderResponse",
    "OrderStatusUpdate",
    "OrderSubmissionResponse",
    "ProductCreate",
    "ProductResponse",
    "ProductUpdate",
]
