# wholesale/routers/customers.py
"""Registered customers, their orders and personal storefront links."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from wholesale.core.config import Settings
from wholesale.core.db import get_db
from wholesale.core.dependencies import get_order_service, get_settings_dep
from wholesale.schemas import CustomerCreate, CustomerLink, CustomerResponse, OrderResponse
from wholesale.services import customers as customer_service
from wholesale.services.orders import OrderService

router = APIRouter(prefix="/customers", tags=["customers"])


@router.get("", response_model=list[CustomerResponse], summary="Customers, newest first")
def list_customers(db: Session = Depends(get_db)):
    return customer_service.list_customers(db)


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED, summary="Register or update")
def register_customer(payload: CustomerCreate, db: Session = Depends(get_db)):
    return customer_service.register_customer(
        db,
        customer_id=payload.id,
        business_name=payload.business_name,
        contact_name=payload.contact_name,
        email=str(payload.email),
        phone=payload.phone,
    )


@router.get("/{customer_id}", response_model=CustomerResponse, summary="Get a customer")
def get_customer(customer_id: str, db: Session = Depends(get_db)):
    return customer_service.get_customer(db, customer_id)


@router.get("/{customer_id}/orders", response_model=list[OrderResponse], summary="A customer's orders")
def get_customer_orders(
    customer_id: str,
    db: Session = Depends(get_db),
    orders: OrderService = Depends(get_order_service),
):
    customer_service.get_customer(db, customer_id)
    return [OrderResponse.from_order(o) for o in orders.list_orders(customer_id=customer_id)]


@router.get("/{customer_id}/link", response_model=CustomerLink, summary="Shareable storefront link")
def get_customer_link(
    customer_id: str,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
):
    customer = customer_service.get_customer(db, customer_id)
    return CustomerLink(customer_id=customer.id, url=customer_service.customer_link(customer.id, settings))
