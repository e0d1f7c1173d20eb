"""
Page wrappers returned by paginated fields.

- LengthAwarePage: one page plus the total count (PAGINATOR)
- SimplePage: one page without a total (SIMPLE)
- Connection: Relay-style edges and pageInfo built from a LengthAwarePage
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Optional

from .args import encode_cursor


@dataclass
class LengthAwarePage:
    """
    One page of items with the full item count.

    `total` comes from a separate counting pass and is independent of how
    many items this page holds.
    """
    items: list[Any]
    total: int
    per_page: int
    current_page: int = 1

    @property
    def count(self) -> int:
        """Number of items on this page."""
        return len(self.items)

    @property
    def offset(self) -> int:
        if self.per_page < 0:
            return 0
        return (self.current_page - 1) * self.per_page

    @property
    def first_item(self) -> Optional[int]:
        """1-based index of the first item on this page."""
        if not self.items:
            return None
        return self.offset + 1

    @property
    def last_item(self) -> Optional[int]:
        """1-based index of the last item on this page."""
        if not self.items:
            return None
        return self.offset + self.count

    @property
    def last_page(self) -> int:
        if self.per_page <= 0:
            return 1
        return max(math.ceil(self.total / self.per_page), 1)

    @property
    def has_more_pages(self) -> bool:
        return self.current_page < self.last_page

    def paginator_info(self) -> dict[str, Any]:
        """Metadata for the `PaginatorInfo` GraphQL type."""
        return {
            "count": self.count,
            "currentPage": self.current_page,
            "firstItem": self.first_item,
            "lastItem": self.last_item,
            "hasMorePages": self.has_more_pages,
            "lastPage": self.last_page,
            "perPage": self.per_page,
            "total": self.total,
        }

    def __iter__(self):
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


@dataclass
class SimplePage:
    """One page of items without a total count."""
    items: list[Any]
    per_page: int
    current_page: int = 1
    has_more: bool = False

    @classmethod
    def from_page(cls, page: LengthAwarePage) -> "SimplePage":
        return cls(
            items=list(page.items),
            per_page=page.per_page,
            current_page=page.current_page,
            has_more=page.has_more_pages,
        )

    @property
    def count(self) -> int:
        return len(self.items)

    def paginator_info(self) -> dict[str, Any]:
        """Metadata for the `SimplePaginatorInfo` GraphQL type."""
        offset = 0 if self.per_page < 0 else (self.current_page - 1) * self.per_page
        return {
            "count": self.count,
            "currentPage": self.current_page,
            "firstItem": offset + 1 if self.items else None,
            "lastItem": offset + self.count if self.items else None,
            "hasMorePages": self.has_more,
            "perPage": self.per_page,
        }


@dataclass
class Edge:
    node: Any
    cursor: str


@dataclass
class Connection:
    """Relay-style connection over one LengthAwarePage."""
    edges: list[Edge] = field(default_factory=list)
    page_info: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_page(cls, page: LengthAwarePage) -> "Connection":
        edges = [
            Edge(node=item, cursor=encode_cursor(page.offset + position))
            for position, item in enumerate(page.items)
        ]
        page_info = {
            "hasNextPage": page.has_more_pages,
            "hasPreviousPage": page.current_page > 1,
            "startCursor": edges[0].cursor if edges else None,
            "endCursor": edges[-1].cursor if edges else None,
            "total": page.total,
            "count": page.count,
            "currentPage": page.current_page,
            "lastPage": page.last_page,
        }
        return cls(edges=edges, page_info=page_info)
