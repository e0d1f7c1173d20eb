"""
Utility functions for fedgraph.

Includes:
- Case conversion (camelCase <-> snake_case) between GraphQL field names
  and Python attribute names
- Pluralization of type names
"""

from __future__ import annotations

import re


# Pre-compiled regex patterns for better performance
_CAMEL_TO_SNAKE_PATTERN = re.compile(r'([a-z0-9])([A-Z])')
_SNAKE_TO_CAMEL_PATTERN = re.compile(r'_([a-z])')


def to_snake_case(name: str) -> str:
    """
    Convert camelCase to snake_case.

    Examples:
        paginatorInfo -> paginator_info
        hasMorePages -> has_more_pages
        HTTPResponse -> http_response
    """
    # Handle consecutive uppercase (HTTP -> http)
    result = re.sub(r'([A-Z]+)([A-Z][a-z])', r'\1_\2', name)
    result = _CAMEL_TO_SNAKE_PATTERN.sub(r'\1_\2', result)
    return result.lower()


def to_camel_case(name: str) -> str:
    """
    Convert snake_case to camelCase.

    Examples:
        paginator_info -> paginatorInfo
        has_more_pages -> hasMorePages
    """
    def replace_underscore(match):
        return match.group(1).upper()

    return _SNAKE_TO_CAMEL_PATTERN.sub(replace_underscore, name)


def pluralize(name: str) -> str:
    """
    Pluralize a PascalCase type name for generated wrapper types.

    Examples:
        Post -> Posts
        Category -> Categories
        Box -> Boxes
        Day -> Days
    """
    lower = name.lower()
    if lower.endswith("y") and len(lower) > 1 and lower[-2] not in "aeiou":
        return name[:-1] + "ies"
    if lower.endswith(("s", "x", "z", "ch", "sh")):
        return name + "es"
    return name + "s"
