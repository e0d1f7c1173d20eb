"""
Service module - utilities for serving a federated schema.

Provides:
- create_service_app: Factory for creating FastAPI service apps
- create_graphql_router: Factory for the GraphQL HTTP routes
- Database utilities (Base, configure_database, get_session, init_db)
"""

from __future__ import annotations

from .app import create_service_app
from .database import Base, close_db, configure_database, get_engine, get_session, init_db
from .router import GraphQLRequest, create_graphql_router

__all__ = [
    # App factory
    "create_service_app",
    # Router
    "create_graphql_router",
    "GraphQLRequest",
    # Database
    "Base",
    "configure_database",
    "get_session",
    "init_db",
    "close_db",
    "get_engine",
]
