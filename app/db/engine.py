"""PostgreSQL access for the document store.

With DATABASE_URL set, one async engine (asyncpg driver) and a session
factory back PgDocumentStore.  Without it both stay None and the app runs
on InMemoryDocumentStore, which is what tests and local dev use.

Every statement runs under a server-side timeout so a stuck query fails
the request instead of holding a pooled connection indefinitely.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.core.config import SETTINGS

logger = logging.getLogger(__name__)

STATEMENT_TIMEOUT_MS = 5000


class Base(DeclarativeBase):
    """Declarative base; the items table is its only model."""


if SETTINGS.database_url:
    engine = create_async_engine(
        SETTINGS.database_url,
        pool_size=5,
        max_overflow=10,
        pool_timeout=10,
        pool_pre_ping=True,
        connect_args={"server_settings": {"statement_timeout": str(STATEMENT_TIMEOUT_MS)}},
    )
    async_session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
else:
    engine = None
    async_session_factory = None


@asynccontextmanager
async def lifespan_db():
    """Dispose of the engine's pool on shutdown; no-op without a database."""
    if engine is None:
        logger.info("DATABASE_URL not set, lesson data lives in memory")
        yield
        return

    logger.info("Document store on %s", engine.url.render_as_string(hide_password=True))
    try:
        yield
    finally:
        await engine.dispose()
        logger.info("Database pool disposed")
