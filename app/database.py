"""Database utilities for the CineTrack service."""

from __future__ import annotations

import logging
from typing import Sequence

from sqlalchemy import MetaData, Table
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base shared by the local store and the document collection."""

    metadata = MetaData()


class Database:
    """Async engine plus session factory for one storage backend.

    The local key-value store and the remote document collection are separate
    databases; each creates only the tables it owns.
    """

    def __init__(self, database_url: str):
        self._url = make_url(database_url)
        self._engine: AsyncEngine = create_async_engine(database_url, future=True)
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self._engine, expire_on_commit=False
        )

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def display_url(self) -> str:
        """Connection URL with any password masked, for log output."""

        return self._url.render_as_string(hide_password=True)

    async def create_all(self, tables: Sequence[Table] | None = None) -> None:
        """Create ``tables`` (default: every mapped table) if missing."""

        async with self._engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all, tables=tables)
        logger.info("Database ready at %s", self.display_url)

    async def dispose(self) -> None:
        await self._engine.dispose()
