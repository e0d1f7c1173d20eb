"""
Core dataclass definitions for fedgraph.

These describe what a schema author declared: entity keys, external
fields and the pagination style of relation fields.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from .errors import SchemaConfigError


_FIELD_SET_TOKEN = re.compile(r"[_A-Za-z][_0-9A-Za-z]*|[{}]")


@dataclass(frozen=True)
class KeySet:
    """
    One set of fields that uniquely identifies an entity.

    Declared as `@key(fields: "sku region")`. Nested selections such as
    `"id owner { id }"` keep only the top-level names, so `owner` must be
    present on the representation.
    """
    fields: tuple[str, ...]

    @classmethod
    def parse(cls, fields: str) -> "KeySet":
        names: list[str] = []
        depth = 0
        for token in _FIELD_SET_TOKEN.findall(fields):
            if token == "{":
                depth += 1
            elif token == "}":
                depth -= 1
                if depth < 0:
                    raise SchemaConfigError(f"Unbalanced braces in key fields: {fields!r}")
            elif depth == 0:
                names.append(token)
        if depth != 0:
            raise SchemaConfigError(f"Unbalanced braces in key fields: {fields!r}")
        if not names:
            raise SchemaConfigError(f"Key fields must not be empty: {fields!r}")
        return cls(fields=tuple(names))

    def is_satisfied_by(self, representation: Mapping[str, Any]) -> bool:
        """True if every field is present with a non-null value."""
        return all(representation.get(name) is not None for name in self.fields)

    def __str__(self) -> str:
        return " ".join(self.fields)


@dataclass
class EntityDef:
    """An entity type declared with one or more `@key` directives."""
    typename: str
    key_sets: list[KeySet] = field(default_factory=list)
    external_fields: set[str] = field(default_factory=set)
    resolvable: bool = True


class PaginationType(enum.Enum):
    """Pagination style of a paginated field."""
    PAGINATOR = "PAGINATOR"
    SIMPLE = "SIMPLE"
    CONNECTION = "CONNECTION"

    @classmethod
    def parse(cls, value: str) -> "PaginationType":
        try:
            return cls(value.upper())
        except ValueError:
            valid = ", ".join(member.value for member in cls)
            raise SchemaConfigError(f"Unknown pagination type {value!r}, expected one of: {valid}")

    def is_connection(self) -> bool:
        return self is PaginationType.CONNECTION

    def is_simple(self) -> bool:
        return self is PaginationType.SIMPLE


@dataclass
class PaginatedField:
    """A field that was transformed into a paginated field."""
    parent_type: str
    name: str
    type: PaginationType
    node_type: str
    wrapper_type: str
    default_count: Optional[int] = None
    max_count: Optional[int] = None
