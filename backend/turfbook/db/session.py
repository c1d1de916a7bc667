"""
Async engine and per-request session management.

Services flush but never commit: the request's session is one transaction.
State-changing endpoints commit it themselves before building the response;
code after `yield` may run once the response is already on the wire, so it
only rolls back. Any exception, including a failed COMMIT, rolls the whole
transaction back and nothing partial is ever persisted.
"""

from typing import AsyncGenerator

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from turfbook.core.config import get_settings
from turfbook.core.exceptions import StorageUnavailableError
from turfbook.core.logging import get_logger
from turfbook.core.metrics import storage_errors

logger = get_logger(__name__)
settings = get_settings()


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
        "pool_pre_ping": True,
    }


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    **_engine_kwargs(settings.DATABASE_URL),
)
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one transaction per request. Uncommitted work is discarded."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except (OperationalError, InterfaceError) as e:
            await session.rollback()
            storage_errors.inc()
            logger.error("storage_unavailable", error=str(e.orig) if e.orig else str(e))
            raise StorageUnavailableError() from e
        except Exception:
            await session.rollback()
            raise
