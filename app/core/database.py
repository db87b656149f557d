from typing import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.models.base import Base

# Database URL from settings
SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL


def build_engine_options(url: str) -> dict:
    """Pool options per backend; SQLite gets a single shared connection"""
    if url.startswith("sqlite"):
        return {
            "echo": settings.DB_ECHO,
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    return {
        "echo": settings.DB_ECHO,
        "pool_pre_ping": True,                     # Connection health check
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": 30,
        "pool_recycle": 1800,                      # Recycle connections after 30 minutes
    }


engine = create_async_engine(SQLALCHEMY_DATABASE_URL, **build_engine_options(SQLALCHEMY_DATABASE_URL))

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,    # Don't expire objects after commit
    autoflush=False            # Explicit flush management
)


# FastAPI dependency for database sessions
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides an async database session.
    Usage: db: AsyncSession = Depends(get_db)
    """
    session = AsyncSessionLocal()
    try:
        yield session
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


# Context manager for background tasks and scripts
@asynccontextmanager
async def get_db_context(session_factory=None) -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for database sessions outside of request context.
    Usage: async with get_db_context() as session:
    """
    session = (session_factory or AsyncSessionLocal)()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def init_db() -> None:
    """Create database tables"""
    import app.models  # noqa: F401  registers every model with the metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def reset_db() -> None:
    """Reset database by dropping and recreating all tables"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await init_db()


async def close_db() -> None:
    """Close database connections"""
    await engine.dispose()
