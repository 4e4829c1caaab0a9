"""
Async engine and session factory wiring.
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from recruitment_status_sync.config import Settings, get_settings
from recruitment_status_sync.db.models import Base

logger = logging.getLogger(__name__)


def create_engine(settings: Settings | None = None, **engine_kwargs: Any) -> AsyncEngine:
    """
    Create the async engine for the configured database.

    Args:
        settings: Settings to read the URL from; defaults to the cached settings.
        **engine_kwargs: Extra keyword arguments for ``create_async_engine``.

    Returns:
        AsyncEngine bound to ``settings.database_url``.
    """
    settings = settings or get_settings()
    return create_async_engine(
        settings.database_url,
        echo=settings.database_echo,
        **engine_kwargs,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Build a session factory whose objects stay usable after commit."""
    return async_sessionmaker(engine, expire_on_commit=False)


async def init_models(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    logger.info("Creating recruitment tables")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
