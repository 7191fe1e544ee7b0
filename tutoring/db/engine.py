"""Async SQLAlchemy engine and session factory.

When DATABASE_URL is configured, create_app() calls ``create_db()`` to get:
- an async engine for PostgreSQL via asyncpg
- an async session factory used by PgUnitOfWork

When DATABASE_URL is None the app runs on the in-memory store instead.
Nothing here connects at import time; the engine is owned by the
application lifespan and disposed on shutdown.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from tutoring.core.config import Settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all table models."""


@dataclass(frozen=True, slots=True)
class Database:
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]

    async def ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))


def create_db(settings: Settings) -> Database:
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL is not configured")
    engine = create_async_engine(
        settings.database_url,
        echo=settings.is_dev,  # log SQL in dev only
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
    )
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    return Database(engine=engine, session_factory=session_factory)


@asynccontextmanager
async def lifespan_db(db: Database | None) -> AsyncGenerator[None, None]:
    """Startup/shutdown hook for the database engine."""
    if db is None:
        logger.info("No DATABASE_URL configured: using in-memory repositories")
        yield
        return

    logger.info("Database engine created: %s", db.engine.url)
    try:
        yield
    finally:
        await db.engine.dispose()
        logger.info("Database engine disposed")
