"""Async engine/session helpers and store-level error handling."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from brand_analytics.core.config import settings
from brand_analytics.core.exceptions import TransientStoreError

logger = logging.getLogger(__name__)

_TRANSIENT_ERRORS = (OperationalError, InterfaceError, DisconnectionError, TimeoutError)


def make_engine(url: str | None = None, **kwargs) -> AsyncEngine:
    """Create an async engine. Callers own it and must dispose it."""
    options = {"echo": False, "pool_pre_ping": True}
    options.update(kwargs)
    return create_async_engine(url or settings.postgres_url, **options)


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def dialect_name(db: AsyncSession) -> str:
    return db.get_bind().dialect.name


def insert_for(db: AsyncSession):
    """Return the dialect-specific ``insert`` supporting ``ON CONFLICT``.

    PostgreSQL in production; SQLite for local test databases.
    """
    dialect = dialect_name(db)
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"ON CONFLICT upserts are not supported for dialect {dialect!r}")


@contextmanager
def translate_store_errors(action: str) -> Iterator[None]:
    """Re-raise connectivity/timeout failures as TransientStoreError."""
    try:
        yield
    except _TRANSIENT_ERRORS as exc:
        logger.warning("Store unavailable during %s: %s", action, exc)
        raise TransientStoreError(f"{action} failed: {exc}") from exc
