"""Async database engine for the issuance record store.

Records are written from background tasks that outlive the request, so
there is no per-request session dependency: the store opens a short
session from ``async_session_factory`` for every operation.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from anonauth.core.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=settings.environment == "development",
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def dispose_engine() -> None:
    """Close pooled connections (application shutdown)."""
    await engine.dispose()
