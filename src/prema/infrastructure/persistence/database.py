"""Async engine and sessions for the local client storage."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from prema.config.settings import StorageSettings
from prema.infrastructure.persistence.models import Base

logger = logging.getLogger(__name__)


class Database:
    """Owns the async engine for the key-value storage file."""

    def __init__(self, settings: StorageSettings) -> None:
        self.settings = settings
        self.is_sqlite = settings.url.startswith("sqlite")

        connect_args: dict[str, Any] = {}
        if self.is_sqlite:
            # Chat polling and a filter save can hit the file at once; wait for the
            # lock instead of failing with "database is locked".
            connect_args = {"check_same_thread": False, "timeout": 15}

        self._engine = create_async_engine(
            settings.url, echo=settings.echo, connect_args=connect_args
        )
        self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False)

        if self.is_sqlite:

            @event.listens_for(self._engine.sync_engine, "connect")
            def _sqlite_pragmas(dbapi_conn: Any, _connection_record: Any) -> None:
                cursor = dbapi_conn.cursor()
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.execute("PRAGMA synchronous=NORMAL")
                cursor.close()

    @asynccontextmanager
    async def session_scope(self) -> AsyncGenerator[AsyncSession, None]:
        """One transaction: committed on success, rolled back and re-raised on error."""
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_tables(self) -> None:
        """Create the storage table if it does not exist yet."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.debug("Client storage tables ensured")

    async def drop_tables(self) -> None:
        """Drop the storage table (tests only)."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def close(self) -> None:
        """Dispose of the engine and its connections."""
        await self._engine.dispose()
