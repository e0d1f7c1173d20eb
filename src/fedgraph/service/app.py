"""
Service app factory for fedgraph services.

Creates a pre-configured FastAPI application with:
- CORS middleware
- Health check endpoint
- Lifecycle hooks for database
- The GraphQL router for a federated schema
- Logging filter to suppress noisy healthcheck logs
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..federation.schema import FederatedSchema
from .database import close_db, get_session, init_db
from .router import create_graphql_router


class HealthcheckLogFilter(logging.Filter):
    """Filter out noisy healthcheck and SDL endpoint logs."""

    FILTERED_PATHS = ("/__sdl", "/health")

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        for path in self.FILTERED_PATHS:
            if f'"{path}' in message or f" {path} " in message:
                return False
        return True


def _setup_logging_filter():
    """Add filter to uvicorn access logger to suppress healthcheck logs."""
    uvicorn_access = logging.getLogger("uvicorn.access")
    uvicorn_access.addFilter(HealthcheckLogFilter())


def create_service_app(
    service_name: str,
    schema: FederatedSchema,
    *,
    graphql_path: str = "/graphql",
    session_dependency: Callable = get_session,
    on_startup: Optional[Callable] = None,
    on_shutdown: Optional[Callable] = None,
    init_database: bool = True,
) -> FastAPI:
    """
    Create a FastAPI app for a fedgraph service.

    Args:
        service_name: Name of the service (used in title and health check)
        schema: Federated schema to serve
        graphql_path: URL path of the GraphQL endpoint
        session_dependency: FastAPI dependency yielding the request session
        on_startup: Additional startup hook
        on_shutdown: Additional shutdown hook
        init_database: Whether to initialize database on startup

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        _setup_logging_filter()
        if init_database:
            await init_db(schema.config)
        if on_startup:
            await on_startup() if asyncio.iscoroutinefunction(on_startup) else on_startup()

        yield

        # Shutdown
        if on_shutdown:
            await on_shutdown() if asyncio.iscoroutinefunction(on_shutdown) else on_shutdown()
        if init_database:
            await close_db()

    app = FastAPI(
        title=f"{service_name.replace('_', ' ').title()} Service",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        return {"status": "ok", "service": service_name}

    app.include_router(
        create_graphql_router(schema, path=graphql_path, session_dependency=session_dependency)
    )

    return app
