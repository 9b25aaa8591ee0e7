"""Async database engine and session management."""
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from clinic_ops.config.logging_config import get_logger
from clinic_ops.storage.models import Base

logger = get_logger(__name__)


class Database:
    """Owns one async engine and hands out sessions bound to it."""

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.engine = create_async_engine(url, echo=echo)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def init_db(self) -> None:
        """Create all tables that do not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured", url=self.engine.url.render_as_string(hide_password=True))

    async def dispose(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def get_db(self) -> AsyncIterator[AsyncSession]:
        """
        Yield a session that commits on success and rolls back on error.

        Usage:
            async with database.get_db() as session:
                ...
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
