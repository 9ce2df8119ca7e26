from __future__ import annotations

import logging
import os
import sys
from logging.config import fileConfig
from pathlib import Path
from typing import Any

from sqlalchemy.engine import Connection
from sqlalchemy.engine.url import make_url

from alembic import context

# =============================================================================
# Project root on sys.path
# =============================================================================
THIS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = THIS_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")


# =============================================================================
# Database URL
# =============================================================================
def get_database_url() -> str:
    """
    Priority:
      1) ALEMBIC_DATABASE_URL
      2) wholesale.core.config.Settings.DATABASE_URL (env / .env)
      3) sqlalchemy.url from alembic.ini
    """
    url = (os.getenv("ALEMBIC_DATABASE_URL") or "").strip()
    if url:
        return url

    from wholesale.core.config import get_settings

    url = (get_settings().DATABASE_URL or "").strip()
    if url:
        return url

    url = (config.get_main_option("sqlalchemy.url") or "").strip()
    if url:
        return url

    raise RuntimeError("DATABASE_URL is not set. Set env var DATABASE_URL, e.g. sqlite:///./wholesale.db")


DATABASE_URL = get_database_url()
config.set_main_option("sqlalchemy.url", DATABASE_URL)

# =============================================================================
# Model metadata
# =============================================================================
from wholesale.models import Base  # noqa: E402

target_metadata = Base.metadata


def process_revision_directives(context_: Any, revision: Any, directives: list[Any]) -> None:
    """Skip empty revisions under --autogenerate."""
    if getattr(config.cmd_opts, "autogenerate", False):
        script = directives[0]
        if script.upgrade_ops.is_empty():
            directives[:] = []
            logger.info("No schema changes detected; skipping empty revision.")


def _detect_sqlite(url: str) -> bool:
    return make_url(url).get_backend_name().startswith("sqlite")


def make_context_kwargs(connection: Connection) -> dict[str, Any]:
    return dict(
        connection=connection,
        target_metadata=target_metadata,
        process_revision_directives=process_revision_directives,
        compare_type=True,
        compare_server_default=True,
        render_as_batch=_detect_sqlite(str(connection.engine.url)),
    )


# =============================================================================
# Offline / online
# =============================================================================
def run_migrations_offline() -> None:
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        process_revision_directives=process_revision_directives,
        literal_binds=True,
        compare_type=True,
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    from wholesale.core.db import build_engine

    engine = build_engine(config.get_main_option("sqlalchemy.url"))
    try:
        with engine.connect() as connection:
            logger.info("Connected to database: %s", connection.engine.url.render_as_string(hide_password=True))
            context.configure(**make_context_kwargs(connection))
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
