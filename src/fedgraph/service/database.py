"""
Database session handling for fedgraph services.

Paginated relation loaders and entity resolvers read through the request's
AsyncSession. This module owns the process-wide engine behind those
sessions:

- configure_database() binds the engine to a FedgraphConfig
- get_session() is the FastAPI dependency handing one session per request
- init_db() / close_db() are the lifespan hooks of create_service_app()

Usage:
    config = load_config() or FedgraphConfig()
    configure_database(config)
    await init_db(metadata=MyBase.metadata)
"""

from __future__ import annotations

import logging
from typing import AsyncGenerator, Optional

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from ..core.config import FedgraphConfig


logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Default declarative base; init_db() creates its tables unless given other metadata."""
    pass


_engine: Optional[AsyncEngine] = None
_session_maker: Optional[async_sessionmaker[AsyncSession]] = None


def configure_database(config: FedgraphConfig) -> AsyncEngine:
    """
    Create the engine and session factory for `config`.

    An engine configured earlier is replaced without being disposed; call
    close_db() first when switching databases at runtime.
    """
    global _engine, _session_maker
    _engine = create_async_engine(config.database_url, echo=config.sql_echo)
    # Loaded relation pages must stay readable after the request commits
    _session_maker = async_sessionmaker(_engine, class_=AsyncSession, expire_on_commit=False)
    logger.info(f"Database engine configured for {_engine.url.render_as_string(hide_password=True)}")
    return _engine


def get_engine(config: Optional[FedgraphConfig] = None) -> AsyncEngine:
    """Return the configured engine, configuring it from `config` on first use."""
    if _engine is None:
        return configure_database(config or FedgraphConfig())
    return _engine


def get_session_maker(config: Optional[FedgraphConfig] = None) -> async_sessionmaker[AsyncSession]:
    get_engine(config)
    return _session_maker


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding the request session; rolls back if the request raises."""
    async with get_session_maker()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_db(
    config: Optional[FedgraphConfig] = None,
    metadata: Optional[MetaData] = None,
):
    """Create the tables of `metadata` (Base.metadata by default)."""
    metadata = metadata if metadata is not None else Base.metadata
    async with get_engine(config).begin() as conn:
        await conn.run_sync(metadata.create_all)
    logger.info(f"Database initialized ({len(metadata.tables)} tables)")


async def close_db():
    """Dispose the engine; the next get_engine() call configures a new one."""
    global _engine, _session_maker
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_maker = None
    logger.info("Database engine disposed")
