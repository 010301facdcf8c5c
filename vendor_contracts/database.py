from functools import lru_cache

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import text
from vendor_contracts.config import settings
import structlog

logger = structlog.get_logger()


class Base(DeclarativeBase):
    pass


def _get_db_url() -> str:
    """Strip sslmode from URL since asyncpg uses connect_args for SSL."""
    url = settings.DATABASE_URL
    url = url.replace("?sslmode=require", "").replace("&sslmode=require", "")
    return url


def _is_postgres(url: str) -> bool:
    return url.startswith("postgresql")


@lru_cache()
def get_engine() -> AsyncEngine:
    url = _get_db_url()
    if not _is_postgres(url):
        # SQLite (local development and tests) has no pool tuning or SSL
        return create_async_engine(url, echo=settings.DEBUG)
    return create_async_engine(
        url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=30,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
        echo=settings.DEBUG,
        connect_args={"ssl": "require"},
    )


@lru_cache()
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        get_engine(), class_=AsyncSession, expire_on_commit=False
    )


async def get_db():
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db():
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
        if not _is_postgres(_get_db_url()):
            # Postgres schemas are managed by Alembic
            await conn.run_sync(Base.metadata.create_all)
        logger.info("db_connected")


async def close_db():
    await get_engine().dispose()
    logger.info("db_disconnected")
