# wholesale/core/exceptions.py
from __future__ import annotations

"""
Unified exceptions & handlers for the wholesale storefront.

- Domain exceptions (validation, stock, persistence, dispatch, import rows)
- HTTP shortcuts (not_found, conflict)
- Global FastAPI handlers with structured logging via wholesale.core.logging
- RFC 7807-style JSON body (problem+json-compatible fields)
- IntegrityError parsing (duplicate/foreign key/not null/check) for PG/SQLite
"""

import re
from typing import Any, Dict, Mapping, Optional, Tuple

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from wholesale.core.logging import bound_context, get_logger, redact_secrets

logger = get_logger(__name__)

# -----------------------------------------------------------------------------
# Domain exceptions
# -----------------------------------------------------------------------------


class WholesaleException(Exception):
    """Base domain exception."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        *,
        extra: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        http_status: Optional[int] = None,
    ):
        self.message = message
        self.code = code
        self.extra = extra or {}
        self.headers = headers or {}
        self.http_status = http_status
        super().__init__(self.message)


class WholesaleValidationError(WholesaleException):
    """Missing or malformed input."""


class InvalidQuantity(WholesaleValidationError):
    """A cart quantity that is zero or negative."""

    def __init__(self, message: str = "Quantity must be greater than zero.", **kwargs: Any):
        kwargs.setdefault("code", "INVALID_QUANTITY")
        super().__init__(message, **kwargs)


class MissingRequiredMapping(WholesaleValidationError):
    """An import column mapping without reference or size."""

    def __init__(self, missing: list[str]):
        labels = ", ".join(missing)
        super().__init__(
            f"Please map required fields: {labels}",
            code="MISSING_REQUIRED_MAPPING",
            extra={"missing": missing},
        )
        self.missing = missing


class InsufficientStock(WholesaleException):
    """Requested quantity exceeds what is available for a variant."""

    def __init__(
        self,
        message: str,
        *,
        product_id: Optional[int] = None,
        available: Optional[int] = None,
        remaining: Optional[int] = None,
    ):
        extra = {"product_id": product_id, "available": available, "remaining": remaining}
        super().__init__(
            message,
            code="INSUFFICIENT_STOCK",
            extra={k: v for k, v in extra.items() if v is not None},
        )
        self.product_id = product_id
        self.available = available
        self.remaining = remaining


class NotFoundError(WholesaleException):
    """Resource not found errors."""


class ConflictError(WholesaleException):
    """Resource conflict errors (illegal transitions, stale writes)."""


class PersistenceError(WholesaleException):
    """A database write failed; the unit of work was rolled back."""


class DispatchError(WholesaleException):
    """A notification could not be delivered."""


class ImportRowError(WholesaleException):
    """A single import row that could not be applied. Collected, not raised."""

    def __init__(self, message: str, row: Optional[int] = None):
        super().__init__(message, code="IMPORT_ROW_ERROR", extra={"row": row} if row else None)
        self.row = row

    def __str__(self) -> str:
        return self.message


# -----------------------------------------------------------------------------
# HTTP shortcuts
# -----------------------------------------------------------------------------


def http_error(status_code: int, detail: str, headers: Optional[Dict[str, str]] = None) -> HTTPException:
    return HTTPException(status_code=status_code, detail=detail, headers=headers)


def not_found(detail: str = "Not found") -> HTTPException:
    return http_error(status.HTTP_404_NOT_FOUND, detail)


def conflict(detail: str = "Conflict") -> HTTPException:
    return http_error(status.HTTP_409_CONFLICT, detail)


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def _problem_json(
    title: str,
    detail: str,
    status_code: int,
    code: Optional[str] = None,
    instance: Optional[str] = None,
    extras: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """RFC 7807 inspired body (application/problem+json compatible)."""
    body: Dict[str, Any] = {
        "type": f"https://httpstatuses.com/{status_code}",
        "title": title,
        "status": status_code,
        "detail": detail,
        "code": code,
    }
    if instance:
        body["instance"] = instance
    if extras:
        body["extra"] = redact_secrets(extras)
    return {k: v for k, v in body.items() if v is not None}


def _extract_request_id(headers: Mapping[str, str]) -> str:
    return headers.get("x-request-id", "") or ""


def _json_problem_response(
    status_code: int,
    content: Dict[str, Any],
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=content,
        headers=headers or {},
        media_type="application/problem+json",
    )


_DUP_RE = re.compile(r"duplicate key|unique constraint|unique violation", re.IGNORECASE)
_FK_RE = re.compile(r"foreign key", re.IGNORECASE)
_NOTNULL_RE = re.compile(r"not null", re.IGNORECASE)
_CHECK_RE = re.compile(r"check constraint", re.IGNORECASE)


def _parse_integrity_error(exc: IntegrityError) -> Tuple[str, str]:
    text = str(getattr(exc, "orig", exc))
    if _DUP_RE.search(text):
        return ("A record with this value already exists", "DUPLICATE_VALUE")
    if _FK_RE.search(text):
        return ("Referenced record does not exist or is still in use", "FOREIGN_KEY_ERROR")
    if _NOTNULL_RE.search(text):
        return ("Required field is missing", "REQUIRED_FIELD")
    if _CHECK_RE.search(text):
        return ("Invalid value provided", "INVALID_VALUE")
    return ("A database constraint was violated", "INTEGRITY_ERROR")


def status_for(exc: WholesaleException) -> Tuple[int, str]:
    """Map a domain exception to (http status, title)."""
    if isinstance(exc, NotFoundError):
        return exc.http_status or status.HTTP_404_NOT_FOUND, "Resource not found"
    if isinstance(exc, (ConflictError, InsufficientStock)):
        title = "Insufficient stock" if isinstance(exc, InsufficientStock) else "Conflict"
        return exc.http_status or status.HTTP_409_CONFLICT, title
    if isinstance(exc, DispatchError):
        return exc.http_status or status.HTTP_502_BAD_GATEWAY, "Notification delivery failed"
    if isinstance(exc, PersistenceError):
        return exc.http_status or status.HTTP_500_INTERNAL_SERVER_ERROR, "Database error"
    if isinstance(exc, WholesaleValidationError):
        return exc.http_status or status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation error"
    return exc.http_status or status.HTTP_400_BAD_REQUEST, "Bad request"


# -----------------------------------------------------------------------------
# Exception Handlers (FastAPI)
# -----------------------------------------------------------------------------


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    rid = _extract_request_id(request.headers)
    with bound_context(request_id=rid or None):
        logger.error("unhandled_exception", exc_info=exc, path=request.url.path, method=request.method)

    body = _problem_json(
        title="Internal server error",
        detail="An unexpected error occurred. Please try again later.",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code="INTERNAL_ERROR",
        instance=str(request.url),
    )
    return _json_problem_response(status.HTTP_500_INTERNAL_SERVER_ERROR, body)


async def wholesale_exception_handler(request: Request, exc: WholesaleException) -> JSONResponse:
    sc, title = status_for(exc)
    rid = _extract_request_id(request.headers)
    with bound_context(request_id=rid or None):
        log = logger.error if sc >= 500 else logger.warning
        log(
            "domain_exception",
            exception_type=type(exc).__name__,
            message=exc.message,
            code=exc.code,
            path=request.url.path,
            method=request.method,
            extra=exc.extra,
        )

    body = _problem_json(
        title=title,
        detail=exc.message,
        status_code=sc,
        code=exc.code,
        instance=str(request.url),
        extras=exc.extra,
    )
    return _json_problem_response(sc, body, headers=exc.headers)


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    msg, code = _parse_integrity_error(exc)
    logger.warning(
        "db_integrity_error",
        error=str(getattr(exc, "orig", exc)),
        path=request.url.path,
        method=request.method,
        code=code,
    )
    body = _problem_json(
        title="Integrity error",
        detail=msg,
        status_code=status.HTTP_409_CONFLICT,
        code=code,
        instance=str(request.url),
    )
    return _json_problem_response(status.HTTP_409_CONFLICT, body)


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errs = exc.errors()
    logger.warning("request_validation_error", path=request.url.path, method=request.method, errors=errs)
    body = _problem_json(
        title="Validation error",
        detail="Request validation failed",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        code="REQUEST_VALIDATION_ERROR",
        instance=str(request.url),
        extras={"errors": _jsonable_errors(errs)},
    )
    return _json_problem_response(status.HTTP_422_UNPROCESSABLE_ENTITY, body)


def _jsonable_errors(errs: Any) -> list[dict[str, Any]]:
    out = []
    for err in errs or []:
        out.append({"loc": list(err.get("loc", ())), "msg": str(err.get("msg", "")), "type": err.get("type")})
    return out


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    logger.info("http_exception", status_code=exc.status_code, detail=exc.detail, path=request.url.path)
    body = _problem_json(
        title=f"HTTP {exc.status_code}",
        detail=str(exc.detail),
        status_code=exc.status_code,
        code=f"HTTP_{exc.status_code}",
        instance=str(request.url),
    )
    return _json_problem_response(exc.status_code, body, headers=exc.headers or {})


async def operational_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
    logger.error("db_operational_error", exc_info=exc, path=request.url.path, method=request.method)
    body = _problem_json(
        title="Database unavailable",
        detail="Database is temporarily unavailable. Please retry later.",
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        code="DB_UNAVAILABLE",
        instance=str(request.url),
    )
    return _json_problem_response(status.HTTP_503_SERVICE_UNAVAILABLE, body)


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("db_error", exc_info=exc, path=request.url.path, method=request.method)
    body = _problem_json(
        title="Database error",
        detail="Database operation failed",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code="DB_ERROR",
        instance=str(request.url),
    )
    return _json_problem_response(status.HTTP_500_INTERNAL_SERVER_ERROR, body)


# -----------------------------------------------------------------------------
# Registration
# -----------------------------------------------------------------------------


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to a FastAPI app."""
    app.add_exception_handler(WholesaleException, wholesale_exception_handler)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(OperationalError, operational_error_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)

    app.add_exception_handler(Exception, global_exception_handler)


__all__ = [
    "WholesaleException",
    "WholesaleValidationError",
    "InvalidQuantity",
    "MissingRequiredMapping",
    "InsufficientStock",
    "NotFoundError",
    "ConflictError",
    "PersistenceError",
    "DispatchError",
    "ImportRowError",
    "http_error",
    "not_found",
    "conflict",
    "status_for",
    "register_exception_handlers",
]
