"""Database engine, async session factory and transaction guard."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache
from pathlib import Path

from sqlalchemy import event, exc
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import AsyncAdaptedQueuePool

from clinic_ledger.config import get_settings
from clinic_ledger.core.errors import LedgerError, StorageError, StoreBusyError
from clinic_ledger.core.models import Base

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str, pool_timeout: float = 5.0) -> AsyncEngine:
    """Create an engine whose pool holds exactly one live connection.

    Writers are serialized by the pool: a second caller waits up to
    ``pool_timeout`` seconds for the connection and then fails.
    """
    engine = create_async_engine(
        url,
        poolclass=AsyncAdaptedQueuePool,
        pool_size=1,
        max_overflow=0,
        pool_timeout=pool_timeout,
        pool_pre_ping=True,
        echo=False,
    )
    if url.startswith("sqlite"):
        database = make_url(url).database
        if database and database != ":memory:":
            Path(database).parent.mkdir(parents=True, exist_ok=True)
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@lru_cache
def _get_engine() -> AsyncEngine:
    settings = get_settings()
    return build_engine(settings.database_url, settings.pool_timeout)


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return build_session_factory(_get_engine())


@asynccontextmanager
async def transaction(factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    """Run the enclosed block as one all-or-nothing transaction.

    Commits when the block exits normally and rolls back on any exception,
    including cancellation. SQLAlchemy failures surface as ``StorageError``
    (``StoreBusyError`` when the pooled connection could not be acquired).
    """
    try:
        async with factory() as session:
            async with session.begin():
                yield session
    except exc.TimeoutError as e:
        logger.warning("Database busy, gave up waiting for connection: %s", e)
        raise StoreBusyError("database is busy, try again later") from e
    except LedgerError:
        raise
    except exc.SQLAlchemyError as e:
        logger.error("Transaction rolled back: %s", e)
        raise StorageError("storage operation failed") from e


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create all tables (schema migrations are managed elsewhere)."""
    engine = engine or _get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready")
