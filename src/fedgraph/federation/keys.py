"""
Key selection for entity representations.

A representation identifies an entity by `__typename` plus the fields of
one of the type's `@key` declarations. Key sets are tried in declaration
order and the first fully satisfied one wins.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from ..core.defs import KeySet
from ..core.errors import EntityResolutionError


def satisfies(representation: Mapping[str, Any], key_sets: Sequence[KeySet]) -> bool:
    """True if at least one key set is satisfied by the representation."""
    return any(key_set.is_satisfied_by(representation) for key_set in key_sets)


def select_key_set(
    representation: Mapping[str, Any],
    key_sets: Sequence[KeySet],
) -> KeySet:
    """
    Pick the first key set whose fields are all present and non-null.

    Raises:
        EntityResolutionError: no declared key set is satisfied
    """
    for key_set in key_sets:
        if key_set.is_satisfied_by(representation):
            return key_set
    raise EntityResolutionError.unsatisfied_keys(representation.get("__typename"))
