"""
Core module - definitions, configuration, and errors.
"""

from __future__ import annotations

from .config import FedgraphConfig, PaginationConfig, load_config
from .defs import EntityDef, KeySet, PaginatedField, PaginationType
from .errors import (
    DataFetchError,
    EntityNotFoundError,
    EntityResolutionError,
    FedgraphError,
    PaginationError,
    SchemaConfigError,
)

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
]
