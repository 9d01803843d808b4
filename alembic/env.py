from __future__ import annotations

import asyncio
import os
import sys
from logging.config import fileConfig
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from alembic import context
from sqlalchemy import MetaData, pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

# Migrations run from the repository root, next to the boxoffice package
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# Registers events, ticket_holders and registry_state on Base.metadata
__import__("boxoffice.models")
settings = __import__("boxoffice.core.settings", fromlist=["settings"]).settings
ModelBase = __import__("boxoffice.core.database_manager", fromlist=["Base"]).Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# libpq options that asyncpg rejects as connect() keywords
_LIBPQ_ONLY_ARGS = {"sslmode", "channel_binding"}


def _async_url(url: str) -> str:
    """Same driver mapping as DB_URL, minus libpq-only query options."""
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    parsed = urlparse(url)
    if not parsed.query:
        return url
    query = [
        (k, v)
        for k, v in parse_qsl(parsed.query, keep_blank_values=True)
        if k.lower() not in _LIBPQ_ONLY_ARGS
    ]
    return urlunparse(parsed._replace(query=urlencode(query)))


# `alembic -x dburl=...` wins over alembic.ini, which wins over DB_URL
x_args = context.get_x_argument(as_dictionary=True)
override_url = x_args.get("dburl") if isinstance(x_args, dict) else None
if override_url:
    config.set_main_option("sqlalchemy.url", _async_url(str(override_url)))
elif not config.get_main_option("sqlalchemy.url"):
    config.set_main_option("sqlalchemy.url", _async_url(settings.database.database_url))


def get_target_metadata() -> MetaData:
    return ModelBase.metadata


def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=get_target_metadata(),
        # SQLite cannot ALTER most constraints in place
        render_as_batch=True,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=get_target_metadata(),
        render_as_batch=True,
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_async_engine(
        config.get_main_option("sqlalchemy.url"), poolclass=pool.NullPool
    )

    async with engine.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
