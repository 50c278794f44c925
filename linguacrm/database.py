"""Async engine and session factory for the record database.

The engine is built on first use, inside the event loop that will drive
it, and torn down by ``close_database()`` at the end of each CLI command.
"""

from pathlib import Path
from typing import Any, Optional

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from linguacrm.config import settings
from linguacrm.logging_config import get_logger
from linguacrm.models.base import Base

logger = get_logger(__name__)

_engine: Optional[AsyncEngine] = None
_async_session_maker: Optional[async_sessionmaker[AsyncSession]] = None


def _engine_options(database_url: str) -> dict[str, Any]:
    url = make_url(database_url)
    in_memory = url.database in (None, "", ":memory:")
    if url.get_backend_name() == "sqlite" and not in_memory:
        # SQLite creates the file but not its directory
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    # Tests run each case in a fresh event loop; pooled connections would
    # outlive theirs
    if settings.testing:
        return {"poolclass": NullPool}
    return {"pool_pre_ping": True}


def get_engine() -> AsyncEngine:
    """The process-wide engine for ``settings.database_url``."""
    global _engine
    if _engine is None:
        _engine = create_async_engine(
            settings.database_url, **_engine_options(settings.database_url)
        )
    return _engine


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    global _async_session_maker
    if _async_session_maker is None:
        _async_session_maker = async_sessionmaker(
            get_engine(), class_=AsyncSession, expire_on_commit=False
        )
    return _async_session_maker


async def create_tables(engine: AsyncEngine | None = None) -> None:
    """Create the record, user and preference tables that do not exist yet."""
    # Importing the package registers every table on Base.metadata
    import linguacrm.models  # noqa: F401

    async with (engine or get_engine()).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def check_database_connection() -> bool:
    """True if a trivial query succeeds against the database."""
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Database unreachable", error=str(e))
        return False
    return True


async def close_database() -> None:
    """Dispose of the engine; the next call to get_engine() builds a new one."""
    global _engine, _async_session_maker
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _async_session_maker = None
