"""
Fedgraph - federated GraphQL subgraphs with batched, paginated relations.

Provides:
- Entity resolution for `_entities` with single and batched resolvers
- `@paginate` list fields backed by merged SQLAlchemy relation queries
- A FastAPI app factory serving the schema

Usage:
    from fedgraph import EntityResolverRegistry, build_federated_schema, create_service_app

    registry = EntityResolverRegistry()
    registry.register_batched("Product", load_products)

    schema = build_federated_schema(SDL, registry)
    app = create_service_app("products", schema)
"""

from __future__ import annotations

from .core import (
    DataFetchError,
    EntityDef,
    EntityNotFoundError,
    EntityResolutionError,
    FedgraphConfig,
    FedgraphError,
    KeySet,
    PaginatedField,
    PaginationConfig,
    PaginationError,
    PaginationType,
    SchemaConfigError,
    load_config,
)
from .federation import (
    BatchedResolver,
    EntityResolutionEngine,
    EntityResolverRegistry,
    FederatedSchema,
    SingleResolver,
    build_federated_schema,
)
from .loaders import PaginatedModelsLoader, SQLAlchemyRelationProvider, extract_count, load_count
from .pagination import Connection, LengthAwarePage, PaginationArgs, SimplePage
from .runtime import ExecutionContext
from .service import (
    Base,
    close_db,
    configure_database,
    create_graphql_router,
    create_service_app,
    get_session,
    init_db,
)

__version__ = "0.1.0"

__all__ = [
    # Config
    "FedgraphConfig",
    "PaginationConfig",
    "load_config",
    # Definitions
    "KeySet",
    "EntityDef",
    "PaginationType",
    "PaginatedField",
    # Errors
    "FedgraphError",
    "SchemaConfigError",
    "EntityResolutionError",
    "EntityNotFoundError",
    "PaginationError",
    "DataFetchError",
    # Federation
    "EntityResolverRegistry",
    "SingleResolver",
    "BatchedResolver",
    "EntityResolutionEngine",
    "FederatedSchema",
    "build_federated_schema",
    # Pagination
    "PaginationArgs",
    "LengthAwarePage",
    "SimplePage",
    "Connection",
    # Loaders
    "PaginatedModelsLoader",
    "SQLAlchemyRelationProvider",
    "load_count",
    "extract_count",
    # Runtime
    "ExecutionContext",
    # Service utilities
    "create_service_app",
    "create_graphql_router",
    "Base",
    "configure_database",
    "get_session",
    "init_db",
    "close_db",
]
