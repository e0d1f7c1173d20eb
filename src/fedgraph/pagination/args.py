"""
Pagination arguments extracted from GraphQL field arguments.

Offset paginators take `first` and `page`; connections take `first` and an
opaque `after` cursor that encodes the zero-based offset of the last item
the client has seen.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ..core.defs import PaginationType
from ..core.errors import PaginationError


CURSOR_PREFIX = "arrayconnection:"


def encode_cursor(offset: int) -> str:
    """Encode a zero-based item offset as an opaque cursor."""
    return base64.b64encode(f"{CURSOR_PREFIX}{offset}".encode()).decode()


def decode_cursor(cursor: str) -> int:
    """
    Decode a cursor created by encode_cursor.

    Raises:
        PaginationError: the cursor is malformed
    """
    try:
        decoded = base64.b64decode(cursor.encode(), validate=True).decode()
    except (binascii.Error, UnicodeDecodeError):
        raise PaginationError(f"Invalid cursor: {cursor!r}")
    if not decoded.startswith(CURSOR_PREFIX):
        raise PaginationError(f"Invalid cursor: {cursor!r}")
    try:
        return int(decoded[len(CURSOR_PREFIX):])
    except ValueError:
        raise PaginationError(f"Invalid cursor: {cursor!r}")


@dataclass(frozen=True)
class PaginationArgs:
    """
    Page window requested by a client.

    A negative `first` means "no pagination": every row is fetched. It is
    rejected when a maximum count is configured.
    """
    page: int
    first: int
    type: PaginationType = PaginationType.PAGINATOR

    @property
    def unbounded(self) -> bool:
        return self.first < 0

    @property
    def offset(self) -> int:
        if self.unbounded:
            return 0
        return (self.page - 1) * self.first

    @classmethod
    def extract(
        cls,
        args: Mapping[str, Any],
        pagination_type: PaginationType = PaginationType.PAGINATOR,
        max_count: Optional[int] = None,
    ) -> "PaginationArgs":
        """
        Build pagination args from resolved GraphQL field arguments.

        Args:
            args: Field arguments (`first`, plus `page` or `after`)
            pagination_type: Style of the paginated field
            max_count: Maximum allowed `first`, if configured

        Raises:
            PaginationError: arguments are out of range
        """
        first = args.get("first")
        if first is None:
            raise PaginationError("The `first` argument is required.")
        first = int(first)

        if pagination_type.is_connection():
            after = args.get("after")
            page = cls._page_from_cursor(after, first) if after else 1
        else:
            page = args.get("page")
            page = 1 if page is None else int(page)

        if first == 0:
            raise PaginationError("Requested page size for `first` must be non-zero.")
        if page < 1:
            raise PaginationError(f"Requested page must be at least 1, got {page}.")
        if max_count is not None and (first > max_count or first < 0):
            raise PaginationError(
                f"Maximum number of {max_count} requested items exceeded, got {first}. "
                "Fetch smaller chunks."
            )

        return cls(page=page, first=first, type=pagination_type)

    @staticmethod
    def _page_from_cursor(after: str, first: int) -> int:
        if first <= 0:
            return 1
        # The cursor points at the last item already seen
        return decode_cursor(after) // first + 2
