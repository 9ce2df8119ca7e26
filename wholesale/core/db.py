# wholesale/core/db.py
"""
Database engine and session management.

- Lazy engine creation (no connections at import time).
- SQLite gets `check_same_thread=False`, foreign keys ON, and a StaticPool for `:memory:`.
- Utilities: get_engine(), get_session_factory(), get_db(),
  init_db(), dispose_engine(), health_check_db().
"""

from __future__ import annotations

from typing import Iterator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from wholesale.core.config import settings
from wholesale.core.logging import get_logger

logger = get_logger(__name__)

_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker[Session]] = None


def _is_sqlite(url: str) -> bool:
    return make_url(url).get_backend_name() == "sqlite"


def _engine_options(url: str) -> dict:
    opts: dict = {"echo": settings.SQL_ECHO, "future": True}
    if _is_sqlite(url):
        opts["connect_args"] = {"check_same_thread": False}
        database = make_url(url).database
        if not database or database == ":memory:":
            opts["poolclass"] = StaticPool
    else:
        opts["pool_pre_ping"] = True
    return opts


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, _connection_record):  # noqa: ANN001
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(url: Optional[str] = None) -> Engine:
    """Create a configured engine for `url` (defaults to DATABASE_URL)."""
    url = url or settings.DATABASE_URL
    engine = create_engine(url, **_engine_options(url))
    if _is_sqlite(url):
        _enable_sqlite_foreign_keys(engine)
    return engine


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=True, class_=Session)


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = build_engine()
        logger.info("db_engine_created", backend=_engine.url.get_backend_name())
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = build_session_factory(get_engine())
    return _SessionLocal


def get_db() -> Iterator[Session]:
    """FastAPI dependency: one session per request."""
    session = get_session_factory()()
    try:
        yield session
    finally:
        session.close()



def init_db(engine: Optional[Engine] = None) -> None:
    """Create all tables (development and tests; production uses Alembic)."""
    from wholesale.models import Base

    Base.metadata.create_all(bind=engine or get_engine())


def dispose_engine() -> None:
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


def health_check_db() -> bool:
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.warning("db_health_check_failed", error=str(e))
        return False


__all__ = [
    "build_engine",
    "build_session_factory",
    "get_engine",
    "get_session_factory",
    "get_db",
    "init_db",
    "dispose_engine",
    "health_check_db",
]
