# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Alembic environment for the CoachLMS schema.

The target database comes from DB_* settings unless DATABASE_URL is set.
Online runs go through the asyncpg engine; offline runs (--sql) only
render SQL and use the driver-less URL.

Usage:
    alembic upgrade head
    alembic upgrade head --sql > schema.sql
    alembic revision --autogenerate -m "add fee discounts"
"""

import asyncio
import os
from logging.config import fileConfig
from typing import Any, Optional

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from src.core.config import get_settings
from src.infrastructure.database.models import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def database_url(sync: bool = False) -> str:
    override: Optional[str] = os.environ.get("DATABASE_URL")
    if override:
        return override
    database = get_settings().database
    return database.sync_url if sync else database.url


def skip_empty_revisions(context_: Any, revision: Any, directives: list[Any]) -> None:
    """Drop autogenerated revisions that contain no operations."""
    if getattr(config.cmd_opts, "autogenerate", False) and directives[0].upgrade_ops.is_empty():
        directives[:] = []


def configure(**kwargs: Any) -> None:
    context.configure(
        target_metadata=Base.metadata,
        compare_type=True,
        compare_server_default=True,
        process_revision_directives=skip_empty_revisions,
        **kwargs,
    )


def run_migrations_offline() -> None:
    configure(
        url=database_url(sync=True),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_on_connection(connection: Connection) -> None:
    configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    section = config.get_section(config.config_ini_section) or {}
    section["sqlalchemy.url"] = database_url()
    engine = async_engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    async with engine.connect() as connection:
        await connection.run_sync(_run_on_connection)
    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
