# wholesale/core/logging.py
"""
Centralized logging for the wholesale storefront.

Features:
- Stdlib logging (dictConfig) + structlog (JSON in production, dev console otherwise).
- Sensitive fields redaction.
- Request context (request_id, client_ip) via contextvars.
- ASGI middleware for request context & access logs.

Env knobs (through Settings):
  LOG_LEVEL=INFO
  LOG_FORMAT=json|console
  ENVIRONMENT=production|development|test
"""

from __future__ import annotations

import logging
import logging.config
import sys
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Any, Dict, Optional, Tuple

import structlog

from wholesale.core.config import settings

# ---------- Context vars ----------
_ctx_request_id: ContextVar[str] = ContextVar("request_id", default="")
_ctx_client_ip: ContextVar[str] = ContextVar("client_ip", default="")

_CONFIGURED = False

# ---------- Secrets redaction ----------
_SECRET_KEYS = ("secret", "password", "token", "api_key", "authorization")


def _mask_secret_value(v: Any) -> Any:
    s = str(v)
    if len(s) <= 6:
        return "***"
    return s[:3] + "***" + s[-3:]


def redact_secrets(data: Any) -> Any:
    if isinstance(data, dict):
        out: Dict[str, Any] = {}
        for k, v in data.items():
            lk = str(k).lower()
            if any(x in lk for x in _SECRET_KEYS):
                out[k] = _mask_secret_value(v)
            else:
                out[k] = redact_secrets(v)
        return out
    if isinstance(data, list):
        return [redact_secrets(v) for v in data]
    if isinstance(data, tuple):
        return tuple(redact_secrets(v) for v in data)
    return data


# ---------- structlog processors ----------
def _inject_context(_, __, event_dict):
    rid = _ctx_request_id.get()
    cip = _ctx_client_ip.get()
    if rid:
        event_dict.setdefault("request_id", rid)
    if cip:
        event_dict.setdefault("client_ip", cip)
    return event_dict


def _redact_processor(_, __, event_dict):
    return redact_secrets(event_dict)


def _add_app(_, __, event_dict):
    event_dict["app"] = settings.APP_NAME
    event_dict["version"] = settings.VERSION
    return event_dict


# ---------- Stdlib dictConfig ----------
def _build_stdlib_dict_config() -> dict:
    level = settings.LOG_LEVEL
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {"format": "%(message)s"},
        },
        "handlers": {
            "console": {
                "level": level,
                "class": "logging.StreamHandler",
                "formatter": "plain",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "": {"handlers": ["console"], "level": level, "propagate": False},
            "uvicorn": {"handlers": ["console"], "level": "INFO", "propagate": False},
            "uvicorn.error": {"handlers": ["console"], "level": "INFO", "propagate": False},
            "uvicorn.access": {"handlers": ["console"], "level": "WARNING", "propagate": False},
            "sqlalchemy.engine": {
                "handlers": ["console"],
                "level": "INFO" if settings.SQL_ECHO else "WARNING",
                "propagate": False,
            },
        },
    }


# ---------- structlog configure ----------
def _configure_structlog() -> None:
    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        _inject_context,
        _redact_processor,
        _add_app,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    renderer = (
        structlog.processors.JSONRenderer()
        if settings.LOG_FORMAT == "json" or settings.is_production
        else structlog.dev.ConsoleRenderer()
    )
    processors.append(renderer)

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


# ---------- Public API ----------
def setup_logging() -> None:
    """
    Configure stdlib logging and structlog once per process.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    logging.config.dictConfig(_build_stdlib_dict_config())
    _configure_structlog()
    _CONFIGURED = True

    lg = get_logger(__name__)
    lg.info("logging_initialized", level=settings.LOG_LEVEL, format=settings.LOG_FORMAT)
    lg.debug("settings", **settings.dump_settings_safe())


def get_logger(name: str):
    return structlog.get_logger(name)


# ---------- Context helpers ----------
@contextmanager
def bound_context(request_id: Optional[str] = None, client_ip: Optional[str] = None):
    tokens: list[Tuple[ContextVar[str], Token]] = []
    if request_id is not None:
        tokens.append((_ctx_request_id, _ctx_request_id.set(request_id)))
    if client_ip is not None:
        tokens.append((_ctx_client_ip, _ctx_client_ip.set(client_ip)))
    try:
        yield
    finally:
        for var, tok in reversed(tokens):
            var.reset(tok)


# ---------- ASGI middleware ----------
class LoggingContextMiddleware:
    """
    - Generates/reads X-Request-ID
    - Binds request context
    - Logs end of request with duration and status
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            return await self.app(scope, receive, send)

        headers = {k.decode().lower(): v.decode() for k, v in scope.get("headers", [])}
        request_id = headers.get("x-request-id") or str(uuid.uuid4())
        client = scope.get("client") or ("", 0)
        client_ip = client[0] if isinstance(client, (list, tuple)) and client else ""
        path = scope.get("path", "")
        method = scope.get("method", "")

        start = time.perf_counter()
        status_code_holder = {"code": 500}

        async def _send(message):
            if message["type"] == "http.response.start":
                status_code_holder["code"] = message.get("status", 200)
                raw_headers = list(message.get("headers", []))
                raw_headers.append((b"x-request-id", request_id.encode()))
                message["headers"] = raw_headers
            await send(message)

        with bound_context(request_id=request_id, client_ip=client_ip):
            lg = get_logger("http")
            try:
                await self.app(scope, receive, _send)
            finally:
                dur_ms = (time.perf_counter() - start) * 1000.0
                lg.info(
                    "request_end",
                    method=method,
                    path=path,
                    status=status_code_holder["code"],
                    duration_ms=round(dur_ms, 2),
                )


def log_startup_summary() -> None:
    get_logger("startup").info(
        "startup_summary",
        environment=settings.ENVIRONMENT,
        debug=settings.DEBUG,
        version=settings.VERSION,
        reservation_policy=settings.RESERVATION_POLICY,
        email_backend=settings.EMAIL_BACKEND,
        python=sys.version.split()[0],
    )


__all__ = [
    "setup_logging",
    "get_logger",
    "bound_context",
    "LoggingContextMiddleware",
    "log_startup_summary",
    "redact_secrets",
]
