# wholesale/routers/notifications.py
"""
Email endpoints.

`legacy_router` keeps the storefront's original paths
(`/api/send-customer-confirmation`, `/api/send-order-notification`); `router`
carries the diagnostics under the versioned API.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends

from wholesale.core.dependencies import get_email_service
from wholesale.core.exceptions import DispatchError
from wholesale.schemas import EmailTestRequest, NotificationResponse
from wholesale.services.email_service import EmailService
from wholesale.services.notifications import dispatch_notification, parse_notification_payload

router = APIRouter(prefix="/notifications", tags=["notifications"])
legacy_router = APIRouter(prefix="/api", tags=["notifications"])


@legacy_router.post("/send-customer-confirmation", response_model=NotificationResponse)
def send_customer_confirmation(
    body: Any = Body(...),
    email_service: EmailService = Depends(get_email_service),
):
    payload = parse_notification_payload(body, require_email=True)
    result = dispatch_notification(email_service, "customer_confirmation", payload)
    return NotificationResponse(success=True, message="Customer confirmation sent", emailId=result.message_id)


@legacy_router.post("/send-order-notification", response_model=NotificationResponse)
def send_order_notification(
    body: Any = Body(...),
    email_service: EmailService = Depends(get_email_service),
):
    payload = parse_notification_payload(body)
    result = dispatch_notification(email_service, "admin_notification", payload)
    return NotificationResponse(success=True, message="Admin notification sent", emailId=result.message_id)


@router.get("/diagnostics", summary="Which email settings are configured")
def email_diagnostics(email_service: EmailService = Depends(get_email_service)):
    return email_service.diagnostics()


@router.post("/test", response_model=NotificationResponse, summary="Send a test email")
def send_test_email(payload: EmailTestRequest, email_service: EmailService = Depends(get_email_service)):
    result = email_service.send_test_email(payload.to)
    if not result.success:
        raise DispatchError(f"Failed to send test email: {result.error}", code="TEST_EMAIL_FAILED")
    return NotificationResponse(success=True, message=f"Test email sent to {payload.to}", emailId=result.message_id)
