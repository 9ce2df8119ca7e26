# wholesale/routers/carts.py
"""
Shopping carts.

Carts live in process memory (`CartRegistry`); every change is checked against
live stock and, under the eager policy, moves the variant's reservation.
"""

from fastapi import APIRouter, Depends, status

from wholesale.core.dependencies import get_cart_registry, get_cart_service, get_order_service
from wholesale.schemas import (
    CartItemAdd,
    CartItemUpdate,
    CartResponse,
    CheckoutRequest,
    DispatchResultSchema,
    OrderResponse,
    OrderSubmissionResponse,
)
from wholesale.services.cart import CartRegistry, CartService
from wholesale.services.orders import OrderService

router = APIRouter(prefix="/carts", tags=["carts"])


@router.post("", response_model=CartResponse, status_code=status.HTTP_201_CREATED, summary="Open a cart")
def create_cart(registry: CartRegistry = Depends(get_cart_registry)):
    return registry.create().to_dict()


@router.get("/{cart_id}", response_model=CartResponse, summary="Cart contents and total")
def get_cart(cart_id: str, registry: CartRegistry = Depends(get_cart_registry)):
    return registry.get(cart_id).to_dict()


@router.post("/{cart_id}/items", response_model=CartResponse, summary="Add units of a variant")
def add_item(
    cart_id: str,
    payload: CartItemAdd,
    registry: CartRegistry = Depends(get_cart_registry),
    carts: CartService = Depends(get_cart_service),
):
    cart = registry.get(cart_id)
    carts.add(cart, payload.product_id, payload.quantity)
    return cart.to_dict()


@router.patch("/{cart_id}/items/{product_id}", response_model=CartResponse, summary="Set a line quantity")
def update_item(
    cart_id: str,
    product_id: int,
    payload: CartItemUpdate,
    registry: CartRegistry = Depends(get_cart_registry),
    carts: CartService = Depends(get_cart_service),
):
    cart = registry.get(cart_id)
    carts.update(cart, product_id, payload.quantity)
    return cart.to_dict()


@router.delete("/{cart_id}/items/{product_id}", response_model=CartResponse, summary="Remove a line")
def remove_item(
    cart_id: str,
    product_id: int,
    registry: CartRegistry = Depends(get_cart_registry),
    carts: CartService = Depends(get_cart_service),
):
    cart = registry.get(cart_id)
    carts.remove(cart, product_id)
    return cart.to_dict()


@router.delete("/{cart_id}", response_model=CartResponse, summary="Clear the cart")
def clear_cart(
    cart_id: str,
    registry: CartRegistry = Depends(get_cart_registry),
    carts: CartService = Depends(get_cart_service),
):
    cart = registry.get(cart_id)
    carts.clear(cart)
    return cart.to_dict()


@router.post(
    "/{cart_id}/checkout",
    response_model=OrderSubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit the cart as an order",
)
def checkout(
    cart_id: str,
    payload: CheckoutRequest,
    registry: CartRegistry = Depends(get_cart_registry),
    orders: OrderService = Depends(get_order_service),
):
    cart = registry.get(cart_id)
    result = orders.submit(cart, customer=payload.customer, customer_id=payload.customer_id)
    return OrderSubmissionResponse(
        order=OrderResponse.from_order(result.order),
        warnings=result.warnings,
        notifications={k: DispatchResultSchema(**v.to_dict()) for k, v in result.notifications.items()},
    )
