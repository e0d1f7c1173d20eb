"""
Loaders module - batched relation counting and paginated relation loading.
"""

from __future__ import annotations

from .count import extract_count, load_count
from .paginated import PaginatedModelsLoader, no_decoration
from .provider import RelatedRow, RelationalQueryProvider, SQLAlchemyRelationProvider

__all__ = [
    "RelatedRow",
    "RelationalQueryProvider",
    "SQLAlchemyRelationProvider",
    "load_count",
    "extract_count",
    "PaginatedModelsLoader",
    "no_decoration",
]
