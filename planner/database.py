"""
Database engine and session management.

Week plans live in one table; PostgreSQL (asyncpg) in production, any
SQLAlchemy async URL (e.g. ``sqlite+aiosqlite``) for local runs and tests.
"""
from sqlalchemy import func, select, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from typing import Any, AsyncGenerator, Dict
import logging

from planner.config import settings

logger = logging.getLogger(__name__)


def _connect_args(url: str) -> Dict[str, Any]:
    """Driver-specific connection arguments."""
    backend = make_url(url).get_backend_name()
    if backend == "postgresql":
        return {"server_settings": {"application_name": "lesson-planner"}}
    return {}


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    pool_pre_ping=True,
    poolclass=NullPool,
    connect_args=_connect_args(settings.DATABASE_URL),
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding one session per request.

    Routers commit explicitly after a successful write; anything still
    pending when the request ends is committed here, and rolled back on error.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error(f"Database session error: {e}")
            raise


async def ping(session: AsyncSession) -> bool:
    """True when the database answers a trivial query."""
    try:
        await session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database ping failed: {e}")
        return False


async def init_db() -> None:
    """
    Create the ``week_plans`` table if needed and log how many weeks are stored.
    """
    from planner.models.database_models import WeekPlan

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            stored = (await conn.execute(select(func.count()).select_from(WeekPlan))).scalar_one()
        logger.info("Database ready: %d week(s) stored", stored)
    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        raise


async def close_db() -> None:
    """Dispose of the engine's connections."""
    await engine.dispose()
    logger.info("Database connections closed")
