"""
Federation module - entity resolution and the federated schema builder.
"""

from __future__ import annotations

from .engine import EntityResolutionEngine, ResolutionGroup
from .keys import satisfies, select_key_set
from .registry import BatchedResolver, EntityResolverRegistry, ResolverCapability, SingleResolver
from .schema import FederatedSchema, build_federated_schema, collect_entities

__all__ = [
    # Keys
    "satisfies",
    "select_key_set",
    # Registry
    "EntityResolverRegistry",
    "SingleResolver",
    "BatchedResolver",
    "ResolverCapability",
    # Engine
    "EntityResolutionEngine",
    "ResolutionGroup",
    # Schema
    "FederatedSchema",
    "build_federated_schema",
    "collect_entities",
]
