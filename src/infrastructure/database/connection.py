# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Async engine and session factory.

A Database object is created once at startup from DatabaseSettings and
passed to whatever opens sessions. There is no module-level engine.

Example:
    database = Database(settings.database, echo=settings.debug)

    async with database.session() as db:
        service = FeeReceiptService(db, clock)
        result = await service.get_receipt(receipt_id, actor)

    await database.dispose()
"""

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.utils.logging import get_logger

if TYPE_CHECKING:
    from src.core.config.settings import DatabaseSettings

logger = get_logger(__name__)

# Seconds; connections older than this are replaced on checkout.
POOL_RECYCLE = 1800


class DatabaseError(Exception):
    """Raised when the engine cannot be created.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying SQLAlchemy error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class Database:
    """Connection pool plus the session factory bound to it.

    Sessions use expire_on_commit=False: services commit explicitly and
    then build responses from the committed ORM objects.

    Attributes:
        engine: Async engine owning the pool.
    """

    def __init__(self, settings: "DatabaseSettings", echo: bool = False) -> None:
        try:
            self.engine: AsyncEngine = create_async_engine(
                settings.url,
                pool_size=settings.pool_size,
                max_overflow=settings.max_overflow,
                pool_pre_ping=True,
                pool_recycle=POOL_RECYCLE,
                echo=echo,
            )
        except SQLAlchemyError as e:
            raise DatabaseError("Failed to create database engine", e) from e

        self._sessionmaker = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.info("Database engine created", host=settings.host, database=settings.database)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Open a session for one unit of work.

        Anything left uncommitted when the block raises is rolled back;
        the session is always closed.
        """
        async with self._sessionmaker() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    async def ping(self) -> bool:
        """Return True if a trivial query succeeds."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.warning("Database ping failed", error=str(e))
            return False
        return True

    async def dispose(self) -> None:
        """Close every pooled connection."""
        await self.engine.dispose()
        logger.info("Database engine disposed")
