# wholesale/routers/orders.py
"""Order administration: listing, status transitions and quantity edits."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from wholesale.core.dependencies import get_order_service
from wholesale.models import OrderStatus
from wholesale.schemas import OrderItemsUpdate, OrderResponse, OrderStatusUpdate
from wholesale.services.orders import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("", response_model=list[OrderResponse], summary="Orders, newest first")
def list_orders(
    status: Optional[OrderStatus] = Query(None),
    customer_id: Optional[str] = Query(None),
    orders: OrderService = Depends(get_order_service),
):
    return [OrderResponse.from_order(o) for o in orders.list_orders(status=status, customer_id=customer_id)]


@router.get("/{order_id}", response_model=OrderResponse, summary="Order detail")
def get_order(order_id: int, orders: OrderService = Depends(get_order_service)):
    return OrderResponse.from_order(orders.get_order(order_id))


@router.patch("/{order_id}/status", response_model=OrderResponse, summary="Move an order to a new status")
def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    orders: OrderService = Depends(get_order_service),
):
    return OrderResponse.from_order(orders.update_status(order_id, OrderStatus(payload.status)))


@router.patch("/{order_id}/items", response_model=OrderResponse, summary="Change item quantities of a pending order")
def update_order_items(
    order_id: int,
    payload: OrderItemsUpdate,
    orders: OrderService = Depends(get_order_service),
):
    return OrderResponse.from_order(orders.edit_order_items(order_id, payload.quantities))
