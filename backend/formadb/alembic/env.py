# backend/formadb/alembic/env.py
"""
Alembic environment for formadb.

Run from backend/ (`alembic upgrade head`). Online migrations reuse the
application's write engine; offline (`--sql`) runs need a URL from
alembic.ini or DATABASE_WRITE_URL / DATABASE_URL.
"""

from __future__ import annotations

import os
import sys
from logging.config import fileConfig

from alembic import context

# backend/ must be importable so `formadb` resolves when alembic is run from anywhere.
BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

from formadb.database import Base, write_engine  # noqa: E402
from formadb.apps.accounts import models as accounts_models  # noqa: F401, E402
from formadb.apps.training import models as training_models  # noqa: F401, E402

target_metadata = Base.metadata


def _offline_url() -> str:
    configured = (config.get_main_option("sqlalchemy.url") or "").strip()
    if configured and not configured.startswith("driver://"):
        return configured
    from_env = (os.getenv("DATABASE_WRITE_URL") or os.getenv("DATABASE_URL") or "").strip()
    if not from_env:
        raise RuntimeError(
            "No database URL for offline migrations: set sqlalchemy.url in "
            "alembic.ini or DATABASE_WRITE_URL / DATABASE_URL."
        )
    return from_env


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def run_migrations_offline() -> None:
    url = _offline_url()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        render_as_batch=_is_sqlite(url),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    with write_engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            # SQLite cannot ALTER most constraints in place.
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
