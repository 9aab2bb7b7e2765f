# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for PostgreSQL.

This package provides the async engine and sessions, the ORM models, and
the alembic migration environment.

Example:
    from src.infrastructure.database import Database

    database = Database(settings.database)
    async with database.session() as db:
        result = await db.execute(select(FeeReceipt))
"""

from src.infrastructure.database.connection import Database, DatabaseError

__all__ = [
    "Database",
    "DatabaseError",
]
