from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from pydantic import AliasChoices, BaseModel, Field

from wholesale.models.base import CENTS
from wholesale.schemas.customer import CustomerInfo


class NotificationOrder(BaseModel):
    id: Union[int, str]
    created_at: datetime
    total_amount: Decimal
    status: str = "pending"


class NotificationItem(BaseModel):
    description: Optional[str] = None
    reference: Optional[str] = None
    size: Optional[str] = None
    quantity: int = Field(..., ge=0)
    unit_price: Decimal = Field(
        default=Decimal("0"), validation_alias=AliasChoices("unit_price", "wholesale_price")
    )

    @property
    def line_total(self) -> Decimal:
        return (self.unit_price * self.quantity).quantize(CENTS)


class NotificationPayload(BaseModel):
    order: NotificationOrder
    customer: CustomerInfo
    items: list[NotificationItem]


class NotificationResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    emailId: Optional[str] = None


class EmailTestRequest(BaseModel):
    to: str = Field(..., min_length=3)
