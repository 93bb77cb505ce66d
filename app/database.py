"""
Scotch — Database engine and sessions

``build_engine(settings)`` picks one of two strategies:

* **Cloud SQL** when ``CLOUD_SQL_USE_UNIX_SOCKET`` is on and an instance
  connection name is configured.  Connections come from the Cloud SQL
  Python Connector (``cloudsql`` extra) with IAM authentication.
* **URL** otherwise, from ``DATABASE_URL``.  Postgres URLs get the pool
  settings; other dialects (the SQLite test database) keep their defaults.

The module-level ``engine`` and ``async_session_factory`` are built once at
import.  Likes and matches rely on table constraints for pair uniqueness,
so nothing here coordinates writers.
"""

from __future__ import annotations

import logging
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import Settings, get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for the users, likes and matches tables."""


def normalise_database_url(url: str) -> str:
    """Add the asyncpg driver to a bare ``postgresql://`` URL."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def pool_options(settings: Settings) -> dict:
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": 30,
        "pool_recycle": 1800,
        "pool_pre_ping": True,
    }


def uses_cloud_sql(settings: Settings) -> bool:
    return bool(
        settings.CLOUD_SQL_USE_UNIX_SOCKET and settings.CLOUD_SQL_INSTANCE_CONNECTION
    )


def _cloud_sql_engine(settings: Settings) -> AsyncEngine:
    from google.cloud.sql.connector import Connector

    connector = Connector()

    async def connect():
        return await connector.connect_async(
            settings.CLOUD_SQL_INSTANCE_CONNECTION,
            "asyncpg",
            user=settings.DB_USER,
            password=settings.DB_PASSWORD,
            db=settings.DB_NAME,
            enable_iam_auth=True,
        )

    logger.info("Using Cloud SQL instance %s", settings.CLOUD_SQL_INSTANCE_CONNECTION)
    return create_async_engine(
        "postgresql+asyncpg://",
        async_creator=connect,
        echo=settings.LOG_LEVEL == "DEBUG",
        **pool_options(settings),
    )


def _url_engine(settings: Settings) -> AsyncEngine:
    url = normalise_database_url(settings.DATABASE_URL)
    options = pool_options(settings) if url.startswith("postgresql") else {}

    logger.info("Using DATABASE_URL (%s)", url.split("://", 1)[0])
    return create_async_engine(url, echo=settings.LOG_LEVEL == "DEBUG", **options)


def build_engine(settings: Settings) -> AsyncEngine:
    if uses_cloud_sql(settings):
        return _cloud_sql_engine(settings)
    return _url_engine(settings)


engine = build_engine(get_settings())

async_session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session.

    The relationship service commits its own units of work; whatever a
    route leaves pending is committed here, or rolled back if the request
    failed.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
