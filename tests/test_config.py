import pytest
from pydantic import ValidationError

from wholesale.core.config import Settings, get_settings


def test_get_settings():
    """Test settings configuration"""
    settings = get_settings()

    assert settings.API_V1_STR == "/api/v1"
    assert settings.APP_NAME == "Wholesale Orders"
    assert settings.ENVIRONMENT == "test"
    assert settings.RESERVATION_POLICY == "optimistic"
    assert settings.SMTP_PORT == 587


def test_settings_singleton():
    """Test that get_settings returns the same instance"""
    assert get_settings() is get_settings()


def test_frontend_url_trailing_slash_is_stripped():
    assert get_settings().FRONTEND_URL == "https://shop.example.com"


def test_email_transport_configured_follows_backend():
    assert Settings(EMAIL_BACKEND="resend", RESEND_API_KEY="re_x").email_transport_configured()
    assert not Settings(EMAIL_BACKEND="smtp", SMTP_HOST=None).email_transport_configured()
    assert Settings(EMAIL_BACKEND="smtp", SMTP_HOST="mail.example.com").email_transport_configured()


def test_secrets_are_masked():
    dumped = Settings(RESEND_API_KEY="re_1234567890", SMTP_PASSWORD="pw").dump_settings_safe()

    assert dumped["RESEND_API_KEY"] == "re_***890"
    assert dumped["SMTP_PASSWORD"] == "***"
    assert dumped["APP_NAME"] == "Wholesale Orders"


def test_unknown_reservation_policy_rejected():
    with pytest.raises(ValidationError):
        Settings(RESERVATION_POLICY="lazy")


def test_cors_origins_split():
    assert Settings(CORS_ORIGINS="https://a.example, https://b.example").cors_origins == [
        "https://a.example",
        "https://b.example",
    ]
