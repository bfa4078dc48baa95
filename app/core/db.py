import asyncio
import logging
import re
from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import get_settings
from app.models.base import Base

logger = logging.getLogger(__name__)

settings = get_settings()

# Neon/libpq-only query parameter that psycopg's async connect rejects
CHANNEL_BINDING_PARAM = re.compile(r"[&?]channel_binding=[^&]*")


def get_async_database_url(url: str) -> str:
    """Map postgres:// and sqlite:// URLs onto their async drivers (psycopg, aiosqlite)."""
    for prefix, driver in (
        ("postgresql://", "postgresql+psycopg://"),
        ("postgres://", "postgresql+psycopg://"),
        ("sqlite://", "sqlite+aiosqlite://"),
    ):
        if url.startswith(prefix):
            url = driver + url[len(prefix):]
            break

    if "channel_binding=" in url:
        url = CHANNEL_BINDING_PARAM.sub("", url).replace("?&", "?").rstrip("?")
    return url


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine; pool tuning only applies to PostgreSQL."""
    database_url = get_async_database_url(url)
    engine_kwargs = {"future": True, "echo": echo}
    if database_url.startswith("postgresql"):
        engine_kwargs.update(
            pool_pre_ping=True,
            pool_recycle=3600,
            pool_timeout=10,
            max_overflow=10,
            connect_args={"connect_timeout": 10},
        )
    return create_async_engine(database_url, **engine_kwargs)


logger.info("[DB] Creating database engine for %s", get_async_database_url(settings.database_url).split("@")[0].split("://")[0])
engine: AsyncEngine = build_engine(settings.database_url, echo=settings.debug)

AsyncSessionFactory = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session; services commit their own units of work."""
    async with AsyncSessionFactory() as session:
        yield session


async def init_database() -> None:
    """
    create_all for the provisioning tables.

    Deployments that run Alembic already have the schema; a failure here is
    logged and startup continues.
    """
    logger.info("[DB] Ensuring provisioning tables exist...")
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("[DB] Tables ready")
    except Exception as e:
        logger.warning("[DB] create_all skipped: %s", e)


async def check_database_connection(timeout: float = 10.0) -> bool:
    """Round-trip a SELECT 1; False on error or after timeout seconds."""

    async def _ping():
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    try:
        await asyncio.wait_for(_ping(), timeout=timeout)
        logger.info("[DB] Database reachable")
        return True
    except asyncio.TimeoutError:
        logger.error("[DB] Database did not answer within %ss", timeout)
        return False
    except Exception as e:
        logger.error("[DB] Database unreachable: %s: %s", type(e).__name__, e)
        return False
