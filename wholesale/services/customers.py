# wholesale/services/customers.py
"""Registered wholesale customers and their shareable storefront links."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wholesale.core.config import Settings, get_settings
from wholesale.core.exceptions import NotFoundError, PersistenceError, WholesaleValidationError
from wholesale.core.logging import get_logger
from wholesale.models import Customer
from wholesale.schemas.customer import CustomerInfo

logger = get_logger(__name__)


def register_customer(
    session: Session,
    customer_id: str,
    business_name: str,
    contact_name: str,
    email: str,
    phone: Optional[str] = None,
) -> Customer:
    """Create or update a customer by id."""
    customer_id = (customer_id or "").strip()
    missing = [
        label
        for label, value in (
            ("customer id", customer_id),
            ("business name", business_name),
            ("contact name", contact_name),
            ("email", email),
        )
        if not (value or "").strip()
    ]
    if missing:
        raise WholesaleValidationError(
            f"Please fill in: {', '.join(missing)}", code="CUSTOMER_FIELDS_REQUIRED", extra={"missing": missing}
        )

    customer = session.get(Customer, customer_id)
    created = customer is None
    if created:
        customer = Customer(id=customer_id)
        session.add(customer)
    customer.business_name = business_name
    customer.contact_name = contact_name
    customer.email = email
    customer.phone = (phone or "").strip() or None

    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error("customer_save_failed", customer_id=customer_id, error=str(e))
        raise PersistenceError("Failed to save customer", code="CUSTOMER_SAVE_FAILED") from e

    session.refresh(customer)
    logger.info("customer_registered" if created else "customer_updated", customer_id=customer_id)
    return customer


def get_customer(session: Session, customer_id: str) -> Customer:
    customer = session.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError(f"Customer {customer_id} not found", code="CUSTOMER_NOT_FOUND")
    return customer


def list_customers(session: Session) -> list[Customer]:
    stmt = select(Customer).order_by(Customer.created_at.desc(), Customer.id)
    return list(session.scalars(stmt))


def customer_link(customer_id: str, settings: Optional[Settings] = None) -> str:
    settings = settings or get_settings()
    return f"{settings.FRONTEND_URL}/customer/{customer_id}"


def customer_info(customer: Customer) -> CustomerInfo:
    """Contact details of a registered customer in the shape orders use."""
    return CustomerInfo(
        name=customer.contact_name,
        email=customer.email,
        company=customer.business_name,
        phone=customer.phone,
        customer_id=customer.id,
    )
