from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import event, text
from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from .models import TRACKER_SCHEMA, metadata


logger = logging.getLogger(__name__)


def _default_database_url() -> URL:
    """
    Build the async URL from DB_* parts. A URL object keeps special characters
    in the password intact.
    """
    return URL.create(
        drivername="postgresql+asyncpg",
        username=os.getenv("DB_USER", "postgres"),
        password=os.getenv("DB_PASSWORD", "postgres"),
        host=os.getenv("DB_HOST", "localhost"),
        port=int(os.getenv("DB_PORT", "5432")),
        database=os.getenv("DB_NAME", "postgres"),
    )


def _resolve_database_url() -> URL:
    """
    Respect DATABASE_URL if provided. A sync PostgreSQL URL is upgraded to
    asyncpg; any other driver is used as given.
    """
    env_url = os.getenv("DATABASE_URL")
    if not env_url:
        return _default_database_url()
    url = make_url(env_url)
    if url.drivername in ("postgres", "postgresql", "postgresql+psycopg2"):
        url = url.set(drivername="postgresql+asyncpg")
    return url


DATABASE_URL: URL = _resolve_database_url()

_IS_SQLITE = DATABASE_URL.get_backend_name() == "sqlite"

if _IS_SQLITE:
    # aiosqlite connections are bound to the loop that opened them.
    engine: AsyncEngine = create_async_engine(DATABASE_URL, echo=False, poolclass=NullPool)
else:
    engine = create_async_engine(DATABASE_URL, echo=False, pool_pre_ping=True)


if _IS_SQLITE:

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, _record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


async_session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
    class_=AsyncSession,
)


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    async with async_session_factory() as session:
        yield session


async def initialize_schema() -> None:
    async with engine.begin() as conn:
        if TRACKER_SCHEMA and conn.dialect.name == "postgresql":
            await conn.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{TRACKER_SCHEMA}"'))
        await conn.run_sync(metadata.create_all, checkfirst=True)
    logger.info("database schema ready (%s)", DATABASE_URL.get_backend_name())


async def drop_schema() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all, checkfirst=True)


async def ping() -> None:
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
