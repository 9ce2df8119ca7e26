"""
Payload handling for the standalone notification endpoints.

The storefront posts ``{order, customer, items}`` after an order is saved. Customer
keys arrive under several historic names and are collapsed by `CustomerInfo`.
"""

from __future__ import annotations

from typing import Any, Literal

from fastapi import status
from pydantic import ValidationError as PydanticValidationError

from wholesale.core.exceptions import DispatchError, WholesaleValidationError
from wholesale.core.logging import get_logger
from wholesale.schemas.notifications import NotificationPayload
from wholesale.services.email_service import DispatchResult, EmailService

logger = get_logger(__name__)

NotificationKind = Literal["customer_confirmation", "admin_notification"]

_CONTACT_KEYS = (
    "email",
    "customer_email",
    "name",
    "contact_name",
    "customer_name",
    "business_name",
    "customer_company",
)


def _bad_request(message: str, code: str = "INVALID_NOTIFICATION_PAYLOAD") -> WholesaleValidationError:
    return WholesaleValidationError(message, code=code, http_status=status.HTTP_400_BAD_REQUEST)


def parse_notification_payload(raw: Any, *, require_email: bool = False) -> NotificationPayload:
    """Validate a raw JSON body; every failure is a 400 with a readable message."""
    if not isinstance(raw, dict):
        raise _bad_request("Missing order, customer, or items data")

    order, customer, items = raw.get("order"), raw.get("customer"), raw.get("items")
    if not order or not customer or items is None:
        raise _bad_request("Missing order, customer, or items data")
    if not isinstance(order, dict) or not isinstance(customer, dict):
        raise _bad_request("Missing order, customer, or items data")

    if not order.get("id") or not order.get("created_at") or order.get("total_amount") is None:
        raise _bad_request("Missing essential order details (id, created_at, total_amount)")
    if not any(customer.get(key) for key in _CONTACT_KEYS):
        raise _bad_request("Customer contact information (email or name) is required")
    if not isinstance(items, list):
        raise _bad_request("Items must be an array")

    try:
        payload = NotificationPayload.model_validate(raw)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        raise _bad_request(f"Invalid {location}: {first.get('msg')}") from e

    if require_email and not payload.customer.email:
        raise _bad_request("Customer email is required")
    return payload


def dispatch_notification(service: EmailService, kind: NotificationKind, payload: NotificationPayload) -> DispatchResult:
    """Send one notification; a failed send raises `DispatchError` (HTTP 500)."""
    if kind == "customer_confirmation":
        result = service.send_customer_confirmation(payload.order, payload.customer, payload.items)
        prefix = "Failed to send confirmation"
    else:
        result = service.send_admin_notification(payload.order, payload.customer, payload.items)
        prefix = "Failed to send admin notification"

    if not result.success:
        logger.warning("notification_failed", kind=kind, order_id=payload.order.id, error=result.error)
        raise DispatchError(
            f"{prefix}: {result.error}",
            code="NOTIFICATION_FAILED",
            http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    logger.info("notification_sent", kind=kind, order_id=payload.order.id, message_id=result.message_id)
    return result
