"""
Database session management with async support.

Provides connection pooling and session factory for PostgreSQL (asyncpg),
with a single shared connection for SQLite (aiosqlite) development databases.
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from samgov_intel.core.config import get_settings
from samgov_intel.core.logging import get_logger

logger = get_logger(__name__)

# Global engine instance
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _engine_kwargs(db_url: str) -> dict[str, Any]:
    settings = get_settings()
    if db_url.startswith("sqlite"):
        # One shared connection avoids "database is locked" under concurrent sessions
        return {
            "echo": settings.database_echo,
            "connect_args": {"timeout": 30, "check_same_thread": False},
            "poolclass": StaticPool,
        }

    connect_args: dict[str, Any] = {
        "server_settings": {"application_name": settings.app_name},
    }
    if settings.database_ssl:
        connect_args["ssl"] = True
    return {
        "echo": settings.database_echo,
        "pool_size": settings.database_pool_size,
        "max_overflow": settings.database_max_overflow,
        "pool_timeout": settings.database_pool_timeout,
        "pool_pre_ping": True,  # Verify connections before use
        "pool_recycle": 300,    # Recycle connections after 5 minutes
        "connect_args": connect_args,
    }


def create_engine(db_url: str) -> AsyncEngine:
    """
    Build an async engine for ``db_url``.

    For SQLite the driver's implicit transaction handling is replaced by an
    explicit BEGIN so that SAVEPOINTs (used by the opportunity upsert) nest
    correctly.
    """
    engine = create_async_engine(db_url, **_engine_kwargs(db_url))

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine.sync_engine, "connect")
        def _disable_implicit_begin(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine.sync_engine, "begin")
        def _emit_begin(conn):
            conn.exec_driver_sql("BEGIN")

    return engine


def get_engine() -> AsyncEngine:
    """
    Get or create the async database engine.

    Returns:
        AsyncEngine: SQLAlchemy async engine
    """
    global _engine

    if _engine is None:
        settings = get_settings()

        # asyncpg uses the ssl connect arg instead of sslmode
        db_url = settings.database_url.replace("?sslmode=require", "")
        _engine = create_engine(db_url)

        logger.info(
            "Database engine created",
            driver=_engine.dialect.driver,
            environment=settings.environment,
        )

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Get async session factory.

    Returns:
        async_sessionmaker: Factory for creating async sessions
    """
    global _session_factory

    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that provides a database session.

    Yields:
        AsyncSession: Database session

    Example:
        @router.get("/opportunities")
        async def list_items(db: AsyncSession = Depends(get_db)):
            result = await db.execute(select(Opportunity))
            return result.scalars().all()
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def close_db() -> None:
    """Close the database engine and all connections."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("Database engine closed")
