"""
Email service for order notifications.

Bodies are rendered from jinja2 templates; delivery goes through the transport
selected by EMAIL_BACKEND (SMTP or the Resend HTTP API). Every public send method
returns a `DispatchResult` and never raises: a failed email must not undo an order.
"""

from __future__ import annotations

import os
import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Any, Callable, Optional, Sequence

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from wholesale.core.config import Settings, get_settings
from wholesale.core.exceptions import DispatchError
from wholesale.core.logging import get_logger
from wholesale.schemas.customer import CustomerInfo
from wholesale.schemas.notifications import NotificationItem, NotificationOrder

logger = get_logger(__name__)

TEMPLATE_DIR = os.path.join(os.path.dirname(__file__), "..", "templates", "email")


@dataclass
class DispatchResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "message_id": self.message_id, "error": self.error}


@dataclass
class OutgoingEmail:
    to: list[str]
    subject: str
    html: str
    text: str
    sender: str


# ---------------------------------------------------------------------------
# Transports
# ---------------------------------------------------------------------------
class EmailTransport(ABC):
    name: str = ""

    @abstractmethod
    def send(self, message: OutgoingEmail) -> Optional[str]:
        """Deliver `message`; returns the provider message id when there is one."""


class SMTPTransport(EmailTransport):
    name = "smtp"

    def __init__(self, settings: Settings) -> None:
        self.host = settings.SMTP_HOST
        self.port = settings.SMTP_PORT
        self.user = settings.SMTP_USER
        self.password = settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_TLS
        self.timeout = settings.EMAIL_TIMEOUT_SECONDS

    def send(self, message: OutgoingEmail) -> Optional[str]:
        if not self.host:
            raise DispatchError("SMTP_HOST is not configured", code="EMAIL_NOT_CONFIGURED")

        msg = EmailMessage()
        msg["From"] = message.sender
        msg["To"] = ", ".join(message.to)
        msg["Subject"] = message.subject
        msg["Message-ID"] = make_msgid()
        msg.set_content(message.text)
        msg.add_alternative(message.html, subtype="html")

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            if self.use_tls:
                server.starttls()
            if self.user and self.password:
                server.login(self.user, self.password)
            server.send_message(msg, to_addrs=message.to)
        return msg["Message-ID"]


class ResendTransport(EmailTransport):
    name = "resend"

    def __init__(self, settings: Settings, client: Optional[httpx.Client] = None) -> None:
        self.api_key = settings.RESEND_API_KEY
        self.api_url = settings.RESEND_API_URL
        self.timeout = settings.EMAIL_TIMEOUT_SECONDS
        self._client = client

    def send(self, message: OutgoingEmail) -> Optional[str]:
        if not self.api_key:
            raise DispatchError("RESEND_API_KEY is not configured", code="EMAIL_NOT_CONFIGURED")

        payload = {
            "from": message.sender,
            "to": message.to,
            "subject": message.subject,
            "html": message.html,
            "text": message.text,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if self._client is not None:
            resp = self._client.post(self.api_url, json=payload, headers=headers, timeout=self.timeout)
        else:
            with httpx.Client(timeout=self.timeout) as client:
                resp = client.post(self.api_url, json=payload, headers=headers)

        if resp.status_code >= 400:
            try:
                detail = resp.json().get("message") or resp.text
            except ValueError:
                detail = resp.text
            raise DispatchError(f"Resend API error {resp.status_code}: {detail}", code="EMAIL_PROVIDER_ERROR")
        try:
            data = resp.json()
        except ValueError as e:
            raise DispatchError(
                f"Resend API returned a non-JSON response ({resp.status_code})", code="EMAIL_PROVIDER_ERROR"
            ) from e
        return data.get("id") if isinstance(data, dict) else None


def build_transport(settings: Settings) -> EmailTransport:
    if settings.EMAIL_BACKEND == "smtp":
        return SMTPTransport(settings)
    return ResendTransport(settings)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------
def format_money(amount: Decimal | float | int, symbol: str = "") -> str:
    value = Decimal(str(amount))
    text = f"{value:,.2f}"
    if text.endswith(".00"):
        text = text[:-3]
    return f"{symbol}{text}"


def _format_date(value: datetime) -> str:
    return value.strftime("%d %b %Y, %H:%M")


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------
class EmailService:
    """Service for sending order emails."""

    def __init__(self, settings: Optional[Settings] = None, transport: Optional[EmailTransport] = None):
        self.settings = settings or get_settings()
        self.transport = transport or build_transport(self.settings)
        self.from_email = self.settings.EMAIL_FROM
        self.currency = self.settings.CURRENCY_SYMBOL

        self.jinja_env = Environment(
            loader=FileSystemLoader(TEMPLATE_DIR),
            autoescape=select_autoescape(["html"]),
        )
        self.jinja_env.filters["money"] = lambda v: format_money(v, self.currency)
        self.jinja_env.filters["datetime"] = _format_date

    def render(self, template_name: str, **context: Any) -> str:
        return self.jinja_env.get_template(template_name).render(**context)

    def _compose(
        self,
        to_email: str,
        subject: str,
        template_name: str,
        context: dict[str, Any],
        text_lines: Callable[[], list[str]],
    ) -> DispatchResult:
        """Render both bodies, then send; a rendering failure is returned like a send failure."""
        try:
            html_body = self.render(template_name, **context)
            text_body = "\n".join(text_lines())
        except Exception as e:
            logger.exception("email_render_failed", template=template_name, subject=subject)
            return DispatchResult(success=False, error=f"{type(e).__name__}: {e}")
        return self.send_email(to_email, subject, html_body, text_body)

    def send_email(self, to_email: str | Sequence[str], subject: str, html_body: str, text_body: str) -> DispatchResult:
        """Send one email; failures are logged and returned, not raised."""
        recipients = [to_email] if isinstance(to_email, str) else list(to_email)
        message = OutgoingEmail(
            to=recipients, subject=subject, html=html_body, text=text_body, sender=self.from_email
        )
        try:
            message_id = self.transport.send(message)
        except DispatchError as e:
            logger.error("email_send_failed", to=recipients, subject=subject, error=e.message)
            return DispatchResult(success=False, error=e.message)
        except (smtplib.SMTPException, httpx.HTTPError, OSError) as e:
            logger.error("email_send_failed", to=recipients, subject=subject, error=str(e))
            return DispatchResult(success=False, error=f"{type(e).__name__}: {e}")
        except Exception as e:
            logger.exception("email_send_crashed", to=recipients, subject=subject)
            return DispatchResult(success=False, error=f"{type(e).__name__}: {e}")

        logger.info("email_sent", to=recipients, subject=subject, transport=self.transport.name, message_id=message_id)
        return DispatchResult(success=True, message_id=message_id)

    # ------------------------------------------------------------------ orders
    def _context(
        self, order: NotificationOrder, customer: CustomerInfo, items: Sequence[NotificationItem]
    ) -> dict[str, Any]:
        return {
            "order": order,
            "customer": customer,
            "items": items,
            "unit_count": sum(i.quantity for i in items),
            "currency": self.currency,
        }

    def _text_lines(self, order: NotificationOrder, items: Sequence[NotificationItem]) -> list[str]:
        lines = [
            f"- {i.description or i.reference} ({i.reference} / {i.size}) x{i.quantity} = "
            f"{format_money(i.line_total, self.currency)}"
            for i in items
        ]
        lines.append(f"Total: {format_money(order.total_amount, self.currency)}")
        return lines

    def send_customer_confirmation(
        self, order: NotificationOrder, customer: CustomerInfo, items: Sequence[NotificationItem]
    ) -> DispatchResult:
        if not customer.email:
            return DispatchResult(success=False, error="Customer email is missing")

        subject = f"✅ Order Confirmation #{order.id} - {format_money(order.total_amount, self.currency)}"
        return self._compose(
            customer.email,
            subject,
            "customer_confirmation.html",
            self._context(order, customer, items),
            lambda: [
                f"Dear {customer.name or 'customer'},",
                "",
                f"Thank you for your order #{order.id}. We have received it and will process it shortly.",
                "",
                *self._text_lines(order, items),
            ],
        )

    def send_admin_notification(
        self, order: NotificationOrder, customer: CustomerInfo, items: Sequence[NotificationItem]
    ) -> DispatchResult:
        recipient = self.settings.ADMIN_EMAIL_RECIPIENT
        if not recipient:
            logger.error("admin_recipient_not_configured", order_id=order.id)
            return DispatchResult(success=False, error="Admin email recipient is not configured.")

        subject = (
            f"🚨 NEW ORDER #{order.id} - {format_money(order.total_amount, self.currency)} "
            f"from {customer.display_name}"
        )
        return self._compose(
            recipient,
            subject,
            "admin_notification.html",
            self._context(order, customer, items),
            lambda: [
                f"New order #{order.id} placed on {_format_date(order.created_at)}",
                f"Customer: {customer.name or '-'} <{customer.email or '-'}>",
                f"Company: {customer.company or '-'}",
                f"Phone: {customer.phone or '-'}",
                "",
                *self._text_lines(order, items),
            ],
        )

    def send_test_email(self, to_email: str) -> DispatchResult:
        return self._compose(
            to_email,
            f"{self.settings.APP_NAME} email test",
            "test_email.html",
            {"app_name": self.settings.APP_NAME, "backend": self.transport.name},
            lambda: [f"This is a test email from {self.settings.APP_NAME} via {self.transport.name}."],
        )

    # ------------------------------------------------------------- diagnostics
    def diagnostics(self) -> dict[str, Any]:
        """Which email settings are present; secrets are reported as set/unset only."""
        s = self.settings
        checks = {
            "EMAIL_BACKEND": s.EMAIL_BACKEND,
            "EMAIL_FROM": s.EMAIL_FROM,
            "ADMIN_EMAIL_RECIPIENT": bool(s.ADMIN_EMAIL_RECIPIENT),
            "RESEND_API_KEY": bool(s.RESEND_API_KEY),
            "SMTP_HOST": bool(s.SMTP_HOST),
            "SMTP_USER": bool(s.SMTP_USER),
        }
        problems = []
        if not s.email_transport_configured():
            problems.append(
                "RESEND_API_KEY is not set" if s.EMAIL_BACKEND == "resend" else "SMTP_HOST is not set"
            )
        if not s.ADMIN_EMAIL_RECIPIENT:
            problems.append("ADMIN_EMAIL_RECIPIENT is not set")
        return {"ok": not problems, "backend": self.transport.name, "checks": checks, "problems": problems}
