"""
Database engine and session factory (SQLAlchemy async, asyncpg driver)
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool
from core.config import settings, SERVICE_NAME
import logging

logger = logging.getLogger(__name__)


def _connect_args() -> dict:
    # Tags our sessions in pg_stat_activity, where the COPY runs show up
    if settings.DATABASE_URL.startswith("postgresql+asyncpg"):
        return {"server_settings": {"application_name": SERVICE_NAME}}
    return {}


# Import jobs, the COPY progress sampler and request handlers each open their
# own short-lived session, so sessions are never shared across tasks.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.ENVIRONMENT == "development",
    poolclass=NullPool,
    connect_args=_connect_args(),
    future=True
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)


async def dispose_engine():
    """Close engine connections on shutdown"""
    await engine.dispose()
    logger.info("Database engine disposed")
