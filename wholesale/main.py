from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from wholesale.core.config import Settings, get_settings
from wholesale.core.db import dispose_engine, health_check_db, init_db
from wholesale.core.exceptions import register_exception_handlers
from wholesale.core.logging import LoggingContextMiddleware, get_logger, log_startup_summary, setup_logging
from wholesale.routers import carts, catalog, customers, imports, notifications, orders, products
from wholesale.services.cart import CartRegistry
from wholesale.services.catalog import CatalogCache
from wholesale.services.email_service import EmailService

logger = get_logger(__name__)


# ======================================================================================
# LIFESPAN (startup -> yield -> shutdown)
# ======================================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    setup_logging()
    log_startup_summary()

    if settings.CREATE_TABLES_ON_STARTUP:
        init_db()
        logger.info("db_tables_ensured")
    if not settings.email_transport_configured():
        logger.warning("email_transport_not_configured", backend=settings.EMAIL_BACKEND)

    try:
        yield
    finally:
        app.state.catalog_cache.close()
        dispose_engine()
        logger.info("application_shutdown_complete")


# ======================================================================================
# APP FACTORY
# ======================================================================================
def create_app(settings: Optional[Settings] = None, email_service: Optional[EmailService] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.cart_registry = CartRegistry()
    app.state.catalog_cache = CatalogCache()
    app.state.email_service = email_service or EmailService(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
        max_age=86400,
    )
    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(LoggingContextMiddleware)

    register_exception_handlers(app)

    for module in (catalog, products, carts, orders, customers, imports, notifications):
        app.include_router(module.router, prefix=settings.API_V1_STR)
    app.include_router(notifications.legacy_router)

    @app.get("/")
    def root() -> dict[str, Any]:
        return {"message": f"{settings.APP_NAME} API is running", "version": settings.VERSION}

    @app.get("/health")
    def health() -> dict[str, Any]:
        db_ok = health_check_db()
        return {
            "status": "healthy" if db_ok else "degraded",
            "version": settings.VERSION,
            "environment": settings.ENVIRONMENT,
            "checks": {
                "database": {"ok": db_ok},
                "email": {"ok": settings.email_transport_configured(), "backend": settings.EMAIL_BACKEND},
            },
        }

    return app


app = create_app()
