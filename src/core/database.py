"""Async engine, session factory and the request-scoped session dependency."""

import logging
from collections.abc import AsyncIterator
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from .config import settings

logger = logging.getLogger(__name__)

ASYNC_DRIVERS = {
    "postgresql": "asyncpg",
    "mysql": "asyncmy",
    "sqlite": "aiosqlite",
}
# Scheme spellings that name one of the dialects above.
DIALECT_ALIASES = {"postgres": "postgresql"}


def resolve_async_database_url(raw_url: str) -> str:
    """Return DATABASE_URL rewritten to the async driver of its dialect.

    ``postgresql://`` and ``postgres://`` map to asyncpg, ``mysql://`` to asyncmy
    and ``sqlite://`` to aiosqlite. A URL already naming the async driver is
    returned unchanged; any other dialect raises ``ValueError``.
    """
    url = make_url(raw_url)
    dialect, _, driver = url.drivername.lower().partition("+")
    dialect = DIALECT_ALIASES.get(dialect, dialect)
    async_driver = ASYNC_DRIVERS.get(dialect)
    if async_driver is None:
        raise ValueError(
            f"Unsupported database dialect '{url.drivername}'. "
            "MediBook supports PostgreSQL (asyncpg), MySQL (asyncmy) "
            "and SQLite (aiosqlite, for development and tests)."
        )
    if driver == async_driver:
        return raw_url

    target = f"{dialect}+{async_driver}"
    logger.debug("Rewriting database driver %s to %s", url.drivername, target)
    return url.set(drivername=target).render_as_string(hide_password=False)


def _engine_options(database_url: str) -> dict[str, Any]:
    options: dict[str, Any] = {"echo": settings.debug}
    if make_url(database_url).get_backend_name() != "sqlite":
        options["pool_pre_ping"] = True
    return options


class Base(DeclarativeBase):
    """Declarative base shared by every module's models."""


DATABASE_URL = resolve_async_database_url(settings.database_url)

engine = create_async_engine(DATABASE_URL, **_engine_options(DATABASE_URL))
AsyncSessionLocal = async_sessionmaker(
    engine,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncIterator[AsyncSession]:
    """Yield one session per request; uncommitted work is rolled back on error."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
