"""
Database configuration and session management.
Uses SQLAlchemy 2.0 with async support.

The engine is owned by a Database handle that the application opens at
startup and disposes at shutdown; request handlers receive sessions through
the get_db dependency.
"""
from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ballot.config import settings


class Database:
    """Async engine and session factory with an explicit lifecycle."""

    def __init__(self, url: Optional[str] = None, **engine_kwargs):
        """
        Initialize the handle without connecting.

        Args:
            url: Async database URL (defaults to settings.database_url)
            **engine_kwargs: Extra create_async_engine arguments
        """
        self.url = url or settings.database_url
        self.engine_kwargs = engine_kwargs
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    def _default_engine_kwargs(self) -> dict:
        kwargs = {"echo": settings.debug, "pool_pre_ping": True}
        if self.url.startswith("postgresql"):
            kwargs.update(
                pool_size=settings.database_pool_size,
                max_overflow=10,
                connect_args={
                    "server_settings": {
                        "statement_timeout": str(settings.database_statement_timeout_ms),
                    },
                },
            )
        return kwargs

    def connect(self) -> None:
        """Create the engine and session factory."""
        kwargs = self._default_engine_kwargs()
        kwargs.update(self.engine_kwargs)
        self.engine = create_async_engine(self.url, **kwargs)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def disconnect(self) -> None:
        """Dispose the engine and its connection pool."""
        if self.engine is not None:
            await self.engine.dispose()
        self.engine = None
        self.session_factory = None

    def session(self) -> AsyncSession:
        """Open a new session. Callers own its lifetime."""
        if self.session_factory is None:
            raise RuntimeError("Database is not connected")
        return self.session_factory()


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting async database sessions.

    One session per request, committed on success, rolled back on error and
    always closed.

    Yields:
        AsyncSession: Database session
    """
    database: Database = request.app.state.database
    async with database.session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
