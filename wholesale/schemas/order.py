from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from wholesale.models import Order, OrderItem, OrderStatus
from wholesale.schemas.base import BaseSchema
from wholesale.schemas.customer import CustomerInfo


class CheckoutRequest(BaseModel):
    """Either inline contact details or the id of a registered customer."""

    customer: Optional[CustomerInfo] = None
    customer_id: Optional[str] = None


class OrderItemResponse(BaseSchema):
    id: int
    product_id: int
    reference: Optional[str] = None
    size: Optional[str] = None
    description: Optional[str] = None
    quantity: int
    unit_price: Decimal
    total_price: Decimal

    @classmethod
    def from_item(cls, item: OrderItem) -> "OrderItemResponse":
        product = item.product
        return cls(
            id=item.id,
            product_id=item.product_id,
            reference=product.reference if product else None,
            size=product.size if product else None,
            description=product.description if product else None,
            quantity=item.quantity,
            unit_price=item.unit_price,
            total_price=item.total_price,
        )


class OrderResponse(BaseSchema):
    id: int
    customer_id: Optional[str] = None
    customer_name: str
    customer_email: str
    customer_company: Optional[str] = None
    customer_phone: Optional[str] = None
    total_amount: Decimal
    status: OrderStatus
    created_at: datetime
    updated_at: datetime
    items: list[OrderItemResponse] = Field(default_factory=list)

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            customer_id=order.customer_id,
            customer_name=order.customer_name,
            customer_email=order.customer_email,
            customer_company=order.customer_company,
            customer_phone=order.customer_phone,
            total_amount=order.total_amount,
            status=order.status,
            created_at=order.created_at,
            updated_at=order.updated_at,
            items=[OrderItemResponse.from_item(i) for i in order.items],
        )


class DispatchResultSchema(BaseModel):
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class OrderSubmissionResponse(BaseModel):
    order: OrderResponse
    warnings: list[str] = Field(default_factory=list)
    notifications: dict[str, DispatchResultSchema] = Field(default_factory=dict)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderItemsUpdate(BaseModel):
    quantities: dict[int, int] = Field(..., min_length=1, description="order item id -> new quantity")
