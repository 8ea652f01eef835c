"""Alembic environment for the deferred billing schema (sync driver).

The application talks to PostgreSQL through asyncpg; migrations run on a
plain psycopg2 engine so revisions stay ordinary synchronous scripts.
"""

from logging.config import fileConfig
import os
from pathlib import Path

from dotenv import load_dotenv

# backend/.env, the same file pydantic-settings reads when run from backend/
load_dotenv(Path(__file__).parent.parent / ".env")

from sqlalchemy import create_engine, pool
from sqlalchemy.engine import make_url

from alembic import context

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Revisions are hand-written; the models are not imported because that would
# build the async engine and require the billing settings.
target_metadata = None

ASYNC_DRIVERS = {"postgresql+asyncpg": "postgresql+psycopg2"}


def get_url() -> str:
    """Resolve the migration URL.

    ``alembic -x url=...`` wins over DATABASE_URL, which wins over
    ``sqlalchemy.url`` in alembic.ini. Async drivers are swapped for their
    sync counterpart.
    """
    url = (
        context.get_x_argument(as_dictionary=True).get("url")
        or os.getenv("DATABASE_URL")
        or config.get_main_option("sqlalchemy.url")
    )
    if not url:
        raise RuntimeError(
            "No database URL: set DATABASE_URL or pass -x url=postgresql://..."
        )

    parsed = make_url(url)
    sync_driver = ASYNC_DRIVERS.get(parsed.drivername)
    if sync_driver:
        parsed = parsed.set(drivername=sync_driver)
    if not parsed.drivername.startswith("postgresql"):
        raise RuntimeError(
            f"Migrations target PostgreSQL (servicestatus enum, JSONB); got {parsed.drivername}"
        )
    return parsed.render_as_string(hide_password=False)


def run_migrations_offline() -> None:
    """Emit SQL for review instead of executing it."""
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply revisions; each one runs in its own transaction."""
    connectable = create_engine(get_url(), poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            transaction_per_migration=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
