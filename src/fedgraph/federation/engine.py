"""
Entity resolution engine - resolves `_entities` representations.

Handles:
- Validating typenames and key sets per representation
- Grouping representations by typename
- Dispatching to single or batched resolvers
- Reassembling results in the original representation order

Failures are scoped to the position of the failing representation. The
result list always has the same length and order as the input.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence, Union

from ..core.defs import EntityDef
from ..core.errors import DataFetchError, EntityResolutionError
from .keys import select_key_set
from .registry import BatchedResolver, EntityResolverRegistry, Representation, SingleResolver


logger = logging.getLogger(__name__)


EntityResult = Union[Any, EntityResolutionError, None]


@dataclass
class ResolutionGroup:
    """Representations sharing one typename, with their original positions."""
    typename: str
    indices: list[int] = field(default_factory=list)
    representations: list[Representation] = field(default_factory=list)

    def add(self, index: int, representation: Representation) -> None:
        self.indices.append(index)
        self.representations.append(representation)


class EntityResolutionEngine:
    """
    Resolves a list of representations to entities.

    Usage:
        engine = EntityResolutionEngine(entities, registry)
        results = await engine.resolve([
            {"__typename": "Product", "upc": "1"},
            {"__typename": "Review", "id": 7},
        ])
    """

    def __init__(
        self,
        entities: Mapping[str, EntityDef],
        registry: EntityResolverRegistry,
    ):
        """
        Initialize engine.

        Args:
            entities: Declared entity types keyed by typename
            registry: Registered entity resolvers
        """
        self.entities = entities
        self.registry = registry

    async def resolve(
        self,
        representations: Sequence[Representation],
        context: Any = None,
    ) -> list[EntityResult]:
        """
        Resolve representations in order.

        Args:
            representations: Ordered representations, each with `__typename`
            context: Request context handed to resolvers registered with pass_context

        Returns:
            List of the same length: an entity, None, or an
            EntityResolutionError at each position
        """
        results: list[EntityResult] = [None] * len(representations)
        groups = self._group(representations, results)

        for group in groups.values():
            group_results = await self._resolve_group(group, context)
            # Scatter back to the original positions
            for index, result in zip(group.indices, group_results):
                if isinstance(result, EntityResolutionError):
                    result = result.at(index, group.typename)
                    logger.warning(f"Representation {index} ({group.typename}) failed: {result.message}")
                results[index] = result

        return results

    def _group(
        self,
        representations: Sequence[Representation],
        results: list[EntityResult],
    ) -> dict[str, ResolutionGroup]:
        """
        Validate representations and group the valid ones by typename.

        Invalid representations get their error written into `results`.
        """
        groups: dict[str, ResolutionGroup] = {}

        for index, representation in enumerate(representations):
            typename = representation.get("__typename") if isinstance(representation, Mapping) else None
            entity = self.entities.get(typename) if isinstance(typename, str) else None
            if entity is None:
                error = EntityResolutionError.unknown_typename(str(typename)).at(index)
                logger.warning(f"Representation {index} failed: {error.message}")
                results[index] = error
                continue

            try:
                select_key_set(representation, entity.key_sets)
            except EntityResolutionError as e:
                error = e.at(index, typename)
                logger.warning(f"Representation {index} ({typename}) failed: {error.message}")
                results[index] = error
                continue

            if typename not in groups:
                groups[typename] = ResolutionGroup(typename=typename)
            groups[typename].add(index, representation)

        return groups

    async def _resolve_group(self, group: ResolutionGroup, context: Any) -> list[EntityResult]:
        """Resolve one typename group, returning results aligned with group.indices."""
        try:
            capability = self.registry.lookup(group.typename)
        except EntityResolutionError as e:
            return [e for _ in group.indices]

        if isinstance(capability, BatchedResolver):
            return await self._resolve_batched(group, capability, context)
        return await self._resolve_single(group, capability, context)

    async def _resolve_single(
        self,
        group: ResolutionGroup,
        capability: SingleResolver,
        context: Any,
    ) -> list[EntityResult]:
        logger.debug(f"Resolving {len(group.indices)} {group.typename} representation(s) one by one")
        results: list[EntityResult] = []
        for representation in group.representations:
            try:
                results.append(await capability(representation, context))
            except DataFetchError:
                raise
            except EntityResolutionError as e:
                results.append(e)
            except Exception as e:
                results.append(EntityResolutionError(str(e), typename=group.typename))
        return results

    async def _resolve_batched(
        self,
        group: ResolutionGroup,
        capability: BatchedResolver,
        context: Any,
    ) -> list[EntityResult]:
        logger.debug(f"Resolving {len(group.indices)} {group.typename} representation(s) in one batch")
        try:
            entities = await capability(list(group.representations), context)
        except DataFetchError:
            raise
        except Exception as e:
            if isinstance(e, EntityResolutionError):
                error = e
            else:
                error = EntityResolutionError(str(e), typename=group.typename)
            return [error for _ in group.indices]

        entities = list(entities) if entities is not None else []
        if len(entities) != len(group.indices):
            error = EntityResolutionError(
                f"Batched resolver for type \"{group.typename}\" returned {len(entities)} "
                f"entities for {len(group.indices)} representations.",
                typename=group.typename,
            )
            return [error for _ in group.indices]

        return entities
