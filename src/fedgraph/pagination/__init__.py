"""
Pagination module - @paginate schema rewriting, arguments, and page shapes.
"""

from __future__ import annotations

from .args import PaginationArgs, decode_cursor, encode_cursor
from .manipulator import PaginationManipulator, apply_pagination_directives
from .paginator import Connection, Edge, LengthAwarePage, SimplePage

__all__ = [
    "PaginationArgs",
    "encode_cursor",
    "decode_cursor",
    "PaginationManipulator",
    "apply_pagination_directives",
    "LengthAwarePage",
    "SimplePage",
    "Connection",
    "Edge",
]
