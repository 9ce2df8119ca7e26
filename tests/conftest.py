# tests/conftest.py
"""
Pytest fixtures.

- In-memory SQLite (StaticPool) per test, schema created from the models.
- `get_db` is overridden so the app and the test share one database.
- `RecordingTransport` stands in for SMTP/Resend and keeps every outgoing email.
- `make_product` factory for catalog rows.
"""

from __future__ import annotations

import os

# environment first: settings are read once at import time
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CREATE_TABLES_ON_STARTUP"] = "false"
os.environ["LOG_FORMAT"] = "console"
os.environ["EMAIL_BACKEND"] = "resend"
os.environ["RESEND_API_KEY"] = "re_test_key"
os.environ["ADMIN_EMAIL_RECIPIENT"] = "admin@example.com"
os.environ["FRONTEND_URL"] = "https://shop.example.com/"

from collections.abc import Iterator
from decimal import Decimal
from typing import Any, Callable, Optional

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from wholesale.core.config import Settings, get_settings
from wholesale.core.db import build_engine, build_session_factory, get_db, init_db
from wholesale.core.exceptions import DispatchError
from wholesale.main import create_app
from wholesale.models import Product
from wholesale.services.email_service import EmailService, EmailTransport, OutgoingEmail


class RecordingTransport(EmailTransport):
    """Keeps sent messages in memory; `fail_with` makes every send fail."""

    name = "recording"

    def __init__(self) -> None:
        self.sent: list[OutgoingEmail] = []
        self.fail_with: Optional[str] = None

    def send(self, message: OutgoingEmail) -> Optional[str]:
        if self.fail_with:
            raise DispatchError(self.fail_with, code="EMAIL_PROVIDER_ERROR")
        self.sent.append(message)
        return f"msg_{len(self.sent)}"

    def subjects(self) -> list[str]:
        return [m.subject for m in self.sent]


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def engine() -> Iterator[Engine]:
    eng = build_engine("sqlite://")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def email_service(settings, transport) -> EmailService:
    return EmailService(settings, transport=transport)


@pytest.fixture
def make_app(settings, session_factory, transport) -> Callable[..., FastAPI]:
    """App factory sharing the test database; defaults to the recording email service."""

    def _make(app_settings: Optional[Settings] = None, service: Optional[EmailService] = None) -> FastAPI:
        app_settings = app_settings or settings
        service = service or EmailService(app_settings, transport=transport)
        application = create_app(app_settings, email_service=service)

        def _get_test_db() -> Iterator[Session]:
            session = session_factory()
            try:
                yield session
            finally:
                session.close()

        application.dependency_overrides[get_db] = _get_test_db
        return application

    return _make


@pytest.fixture
def app(make_app, email_service):
    return make_app(service=email_service)


@pytest.fixture
def client(app) -> Iterator[TestClient]:
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_product(db) -> Callable[..., Product]:
    def _make(
        reference: str = "REF-1",
        size: str = "M",
        stock: int = 10,
        wholesale_price: Any = "100.00",
        **extra: Any,
    ) -> Product:
        product = Product(
            reference=reference,
            size=size,
            stock=stock,
            wholesale_price=Decimal(str(wholesale_price)) if wholesale_price is not None else None,
            **extra,
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make
