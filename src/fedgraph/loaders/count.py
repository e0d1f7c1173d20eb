"""
Counting pass for paginated relations.

The total number of related rows per parent is counted before any page
window is applied and stored on the parent's instance state, so page
wrappers report the full count rather than the size of one page.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from sqlalchemy import Select, inspect as sa_inspect

from .provider import ParentKey, RelationalQueryProvider


logger = logging.getLogger(__name__)


def _count_key(relation: str) -> tuple[str, str]:
    return ("count", relation)


async def load_count(
    provider: RelationalQueryProvider,
    queries: Sequence[tuple[Any, Select]],
) -> dict[ParentKey, int]:
    """
    Count related rows for each parent and store the totals.

    Args:
        provider: Provider for the relation being counted
        queries: (parent, decorated relation query) pairs, before paging

    Returns:
        Dict mapping parent key to its total
    """
    counts = await provider.count_related(queries)
    totals: dict[ParentKey, int] = {}
    for parent, _ in queries:
        key = provider.parent_key(parent)
        totals[key] = counts.get(key, 0)
        sa_inspect(parent).info[_count_key(provider.relation)] = totals[key]
    logger.debug(f"Counted {provider.relation} for {len(queries)} parent(s)")
    return totals


def extract_count(parent: Any, relation: str) -> int:
    """Stored related row count of a parent, 0 if it was never counted."""
    return sa_inspect(parent).info.get(_count_key(relation), 0)
