"""
Async database engine lifecycle.

One engine per process, built lazily from application settings.
The schema is created at application start-up.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from app.core.config import settings
from app.infrastructure.exchange.tables import metadata

logger = logging.getLogger(__name__)

_engine: Optional[AsyncEngine] = None


def get_engine() -> AsyncEngine:
    """Return the process-wide async engine, creating it on first use."""
    global _engine
    if _engine is None:
        _engine = create_async_engine(settings.database_url, pool_pre_ping=True)
        logger.info("Created database engine for %s", _engine.url.render_as_string())
    return _engine


async def init_schema(engine: AsyncEngine) -> None:
    """Create wallet and ledger tables if they do not exist."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)


async def dispose_engine() -> None:
    """Close every pooled connection of the process-wide engine."""
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None
