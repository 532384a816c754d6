"""
Migrations for the playground store (users, projects, files).

Run from backend/ with DATABASE_URL set:
    alembic upgrade head

  • The URL is read through get_settings(), the same Settings the store
    uses, so a postgresql+asyncpg or sqlite+aiosqlite URL works for both.
  • target_metadata is Base.metadata with the three model modules
    imported, so `alembic revision --autogenerate` sees every table.
  • SQLite cannot ALTER most constraints in place; migrations on it run in
    batch mode (copy-and-move) via render_as_batch.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection, make_url
from sqlalchemy.ext.asyncio import async_engine_from_config

from playground_store.core.config import get_settings
from playground_store.core.database import Base

# Import all models so Base.metadata is fully populated
import playground_store.models.user  # noqa: F401
import playground_store.models.project  # noqa: F401
import playground_store.models.file  # noqa: F401

config = context.config
# ConfigParser interpolates "%", which may appear in URL-encoded passwords
config.set_main_option("sqlalchemy.url", get_settings().DATABASE_URL.replace("%", "%%"))

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _is_sqlite(url: str) -> bool:
    return make_url(url).get_backend_name() == "sqlite"


def _run(**configure_kwargs) -> None:  # type: ignore[no-untyped-def]
    context.configure(target_metadata=target_metadata, **configure_kwargs)
    with context.begin_transaction():
        context.run_migrations()


# ── Offline: emit SQL for the configured dialect ────────────
def run_migrations_offline() -> None:
    url = config.get_main_option("sqlalchemy.url")
    _run(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=_is_sqlite(url),
    )


# ── Online: async engine, sync migration body ───────────────
def _run_with_connection(connection: Connection) -> None:
    _run(connection=connection, render_as_batch=connection.dialect.name == "sqlite")


async def run_async_migrations() -> None:
    engine = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_with_connection)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
