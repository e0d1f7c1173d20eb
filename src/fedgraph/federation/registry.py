"""
Entity resolver registry - maps typenames to resolution capabilities.

A capability is chosen explicitly at registration time:

- SingleResolver: called once per representation, returns one entity
- BatchedResolver: called once per typename with every representation of
  that type, returns a positionally aligned list

With `pass_context=True` the request ExecutionContext is passed as a second
argument, which gives resolvers access to the request session.

Usage:
    registry = EntityResolverRegistry()

    @registry.single("Product")
    async def resolve_product(representation):
        return await load_product(representation["upc"])

    @registry.batched("Review", pass_context=True)
    async def resolve_reviews(representations, context):
        ids = [int(r["id"]) for r in representations]
        rows = await context.get_session().execute(select(Review).where(Review.id.in_(ids)))
        by_id = {review.id: review for review in rows.scalars()}
        return [by_id.get(i) for i in ids]
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence, Union

from ..core.errors import EntityResolutionError


logger = logging.getLogger(__name__)


Representation = Mapping[str, Any]

# (representation[, context]) -> entity
SingleResolveFn = Callable[..., Union[Any, Awaitable[Any]]]
# (representations[, context]) -> entities
BatchedResolveFn = Callable[
    ...,
    Union[Sequence[Optional[Any]], Awaitable[Sequence[Optional[Any]]]],
]


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


@dataclass(frozen=True)
class SingleResolver:
    """Resolves one representation per call."""
    fn: SingleResolveFn
    pass_context: bool = False

    async def __call__(self, representation: Representation, context: Any = None) -> Any:
        if self.pass_context:
            return await _maybe_await(self.fn(representation, context))
        return await _maybe_await(self.fn(representation))


@dataclass(frozen=True)
class BatchedResolver:
    """Resolves every representation of one typename in a single call."""
    fn: BatchedResolveFn
    pass_context: bool = False

    async def __call__(
        self,
        representations: list[Representation],
        context: Any = None,
    ) -> Sequence[Optional[Any]]:
        if self.pass_context:
            return await _maybe_await(self.fn(representations, context))
        return await _maybe_await(self.fn(representations))


ResolverCapability = Union[SingleResolver, BatchedResolver]


class EntityResolverRegistry:
    """
    Registry of entity resolvers keyed by typename.

    Registration happens while the schema is built; lookups at request time
    never mutate the registry.
    """

    def __init__(self):
        self._resolvers: dict[str, ResolverCapability] = {}

    def register(self, typename: str, capability: ResolverCapability) -> None:
        """Register a capability. The last registration for a typename wins."""
        if not isinstance(capability, (SingleResolver, BatchedResolver)):
            raise TypeError(
                f"Expected SingleResolver or BatchedResolver for {typename!r}, "
                f"got {type(capability).__name__}"
            )
        if typename in self._resolvers:
            logger.debug(f"Overriding entity resolver for {typename}")
        self._resolvers[typename] = capability

    def register_single(self, typename: str, fn: SingleResolveFn, pass_context: bool = False) -> None:
        self.register(typename, SingleResolver(fn, pass_context))

    def register_batched(self, typename: str, fn: BatchedResolveFn, pass_context: bool = False) -> None:
        self.register(typename, BatchedResolver(fn, pass_context))

    def single(self, typename: str, pass_context: bool = False) -> Callable[[SingleResolveFn], SingleResolveFn]:
        """Decorator form of register_single."""
        def decorator(fn: SingleResolveFn) -> SingleResolveFn:
            self.register_single(typename, fn, pass_context)
            return fn
        return decorator

    def batched(self, typename: str, pass_context: bool = False) -> Callable[[BatchedResolveFn], BatchedResolveFn]:
        """Decorator form of register_batched."""
        def decorator(fn: BatchedResolveFn) -> BatchedResolveFn:
            self.register_batched(typename, fn, pass_context)
            return fn
        return decorator

    def lookup(self, typename: str) -> ResolverCapability:
        """
        Get the capability registered for a typename.

        Raises:
            EntityResolutionError: nothing registered for the typename
        """
        capability = self._resolvers.get(typename)
        if capability is None:
            raise EntityResolutionError.missing_resolver(typename)
        return capability

    def typenames(self) -> list[str]:
        return list(self._resolvers)

    def __contains__(self, typename: object) -> bool:
        return typename in self._resolvers

    def __len__(self) -> int:
        return len(self._resolvers)
