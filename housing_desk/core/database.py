"""
Async Database Session Management
SQLAlchemy 2.0 Async with connection pooling.
"""
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from housing_desk.core.config import settings


def _engine_options() -> dict[str, Any]:
    """Pool options for the configured backend."""
    if settings.is_sqlite:
        # In-memory SQLite must share a single connection
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": True,  # Verify connections before use
        "pool_recycle": 3600,  # Recycle connections after 1 hour
    }


engine: AsyncEngine = create_async_engine(
    settings.async_database_url,
    echo=settings.db_echo,
    **_engine_options(),
)

# Session factory
async_session_maker = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that yields an async database session.
    Use with FastAPI's Depends() for dependency injection.
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()



async def init_db() -> None:
    """Initialize database tables."""
    from housing_desk.core.models import Base
    from housing_desk.modules import load_models

    load_models()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()
