"""Database handle with an explicit lifecycle.

The engine and session factory are owned by a ``Database`` instance that
the application builds on startup and closes on shutdown, instead of living
at module level::

    db = Database.from_settings(get_settings())
    await db.init()
    ...
    await db.close()
"""

from typing import Any, Optional

from libs.common.config import Settings
from libs.common.logging import get_logger
from libs.db.base import Base
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

logger = get_logger(__name__)


def _engine_options(url: str, settings: Optional[Settings]) -> dict[str, Any]:
    if url.startswith("sqlite"):
        options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or "mode=memory" in url:
            # One shared connection, otherwise every session sees an empty DB
            options["poolclass"] = StaticPool
        return options

    options = {"pool_pre_ping": True}
    if settings is not None:
        options.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
        )
    return options


class Database:
    def __init__(self, url: str, *, echo: bool = False, **engine_options: Any):
        self.url = url
        self.engine: AsyncEngine = create_async_engine(
            url, echo=echo, future=True, **engine_options
        )
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        self._closed = False

    @classmethod
    def from_url(cls, url: str, settings: Optional[Settings] = None) -> "Database":
        return cls(url, **_engine_options(url, settings))

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls.from_url(settings.DATABASE_URL, settings)

    async def init(self, create_schema: bool = False) -> None:
        """Verify connectivity and optionally create missing tables."""
        async with self.engine.begin() as conn:
            if create_schema:
                await conn.run_sync(Base.metadata.create_all)
        logger.info("Database ready (%s)", self.engine.url.get_backend_name())

    def session(self) -> AsyncSession:
        return self.session_factory()

    async def close(self) -> None:
        if self._closed:
            return
        await self.engine.dispose()
        self._closed = True
        logger.info("Database connections closed")
