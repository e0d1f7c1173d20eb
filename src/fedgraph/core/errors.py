"""
Custom exceptions for fedgraph.
"""

from __future__ import annotations

from typing import Optional


class FedgraphError(Exception):
    """Base exception for all fedgraph errors."""
    pass


class SchemaConfigError(FedgraphError):
    """Raised when schema declarations or configuration are invalid."""
    pass


class EntityResolutionError(FedgraphError):
    """
    Raised (or returned) when a single representation cannot be resolved.

    Scoped to one position of the `_entities` representations list, so
    sibling representations keep resolving.
    """

    def __init__(
        self,
        message: str,
        typename: Optional[str] = None,
        index: Optional[int] = None,
    ):
        self.message = message
        self.typename = typename
        self.index = index
        super().__init__(message)

    @staticmethod
    def unknown_typename_message(typename: str) -> str:
        return f'Unknown type: "{typename}".'

    @staticmethod
    def missing_resolver_message(typename: str) -> str:
        return f'No entity resolver found for type "{typename}".'

    UNSATISFIED_KEYS_MESSAGE = "Representation does not satisfy any set of uniquely identifying keys."

    @classmethod
    def unknown_typename(cls, typename: str) -> "EntityResolutionError":
        return cls(cls.unknown_typename_message(typename), typename=typename)

    @classmethod
    def missing_resolver(cls, typename: str) -> "EntityResolutionError":
        return cls(cls.missing_resolver_message(typename), typename=typename)

    @classmethod
    def unsatisfied_keys(cls, typename: Optional[str] = None) -> "EntityResolutionError":
        return cls(cls.UNSATISFIED_KEYS_MESSAGE, typename=typename)

    def at(self, index: int, typename: Optional[str] = None) -> "EntityResolutionError":
        """
        Return a copy of this error bound to a representation position.

        The copy does not call `__init__`, so subclasses with their own
        constructor signature are copied unchanged. `typename` fills in a
        missing typename.
        """
        bound = type(self).__new__(type(self), *self.args)
        bound.__dict__.update(self.__dict__)
        bound.message = getattr(self, "message", str(self))
        bound.typename = getattr(self, "typename", None) or typename
        bound.index = index
        return bound


class EntityNotFoundError(EntityResolutionError):
    """Raised by single-item resolvers when no entity matches the representation."""
    pass


class PaginationError(FedgraphError):
    """Raised when client pagination arguments are invalid."""
    pass


class DataFetchError(FedgraphError):
    """Raised when the relational store fails. Fatal for the whole operation."""

    def __init__(self, message: str, relation: Optional[str] = None):
        self.relation = relation
        super().__init__(f"Data fetch failed{f' for relation {relation}' if relation else ''}: {message}")
