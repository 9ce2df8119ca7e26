# wholesale/core/config.py
from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ================================
# HELPERS
# ================================
def _mask_secret(val: Optional[str]) -> Optional[str]:
    if val is None:
        return None
    s = str(val)
    if not s:
        return s
    if len(s) <= 6:
        return "***"
    return s[:3] + "***" + s[-3:]


def _is_secret_key_name(key: str) -> bool:
    lk = key.lower()
    if any(s in lk for s in ("secret", "password", "token")):
        return True
    return "key" in lk and "public" not in lk


# ================================
# APPLICATION SETTINGS (Pydantic v2)
# ================================
class Settings(BaseSettings):
    """
    Settings for the wholesale storefront.

    - Values come from the environment and an optional `.env` file.
    - The reservation policy and the email transport are chosen here, per deployment.
    - `dump_settings_safe()` masks secrets for logs and diagnostics.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    # ---- basics
    APP_NAME: str = Field(default="Wholesale Orders", description="Application name")
    VERSION: str = Field(default="0.1.0", description="Application version")
    ENVIRONMENT: str = Field(default="development", description="development|production|test")
    DEBUG: bool = Field(default=False, description="Debug mode")
    API_V1_STR: str = Field(default="/api/v1", description="API v1 prefix")
    FRONTEND_URL: str = Field(default="http://localhost:3000", description="Storefront origin for customer links")
    CORS_ORIGINS: str = Field(default="*", description="Comma separated list of allowed origins")

    # ---- database
    DATABASE_URL: str = Field(default="sqlite:///./wholesale.db", description="SQLAlchemy database URL")
    SQL_ECHO: bool = Field(default=False, description="Echo SQL statements")
    CREATE_TABLES_ON_STARTUP: bool = Field(
        default=True, description="Run metadata.create_all at startup (disable when Alembic manages the schema)"
    )

    # ---- storefront behaviour
    RESERVATION_POLICY: Literal["optimistic", "eager"] = Field(
        default="optimistic", description="How cart lines hold stock before checkout"
    )
    PRODUCTS_PER_PAGE: int = Field(default=50, ge=1, le=500, description="Catalog page size")
    IMPORT_BATCH_SIZE: int = Field(default=100, ge=1, description="Rows per insert batch during bulk import")
    CURRENCY_SYMBOL: str = Field(default="₦", description="Currency symbol used in emails")

    # ---- logging
    LOG_LEVEL: str = Field(default="INFO", description="Root log level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="console", description="structlog renderer")

    # ---- email
    EMAIL_BACKEND: Literal["smtp", "resend"] = Field(default="resend", description="Notification transport")
    EMAIL_FROM: str = Field(
        default="Wholesale System <onboarding@resend.dev>", description="From header for outgoing mail"
    )
    ADMIN_EMAIL_RECIPIENT: Optional[str] = Field(default=None, description="Where new-order notifications go")
    RESEND_API_KEY: Optional[str] = Field(default=None, description="Resend API key")
    RESEND_API_URL: str = Field(default="https://api.resend.com/emails", description="Resend endpoint")
    SMTP_HOST: Optional[str] = Field(default=None, description="SMTP host")
    SMTP_PORT: int = Field(default=587, description="SMTP port")
    SMTP_USER: Optional[str] = Field(default=None, description="SMTP username")
    SMTP_PASSWORD: Optional[str] = Field(default=None, description="SMTP password")
    SMTP_TLS: bool = Field(default=True, description="Use STARTTLS")
    EMAIL_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0, description="Network timeout for email delivery")

    @field_validator("ENVIRONMENT")
    @classmethod
    def _normalize_environment(cls, v: str) -> str:
        return (v or "development").strip().lower()

    @field_validator("LOG_LEVEL")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        return (v or "INFO").strip().upper()

    @field_validator("FRONTEND_URL")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    # ---- derived
    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()] or ["*"]

    def email_transport_configured(self) -> bool:
        if self.EMAIL_BACKEND == "resend":
            return bool(self.RESEND_API_KEY)
        return bool(self.SMTP_HOST)

    def dump_settings_safe(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for key, value in self.model_dump().items():
            out[key] = _mask_secret(value) if _is_secret_key_name(key) and value is not None else value
        return out


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()

__all__ = ["Settings", "get_settings", "settings"]
