"""
Runtime module - request-scoped execution state.
"""

from __future__ import annotations

from .context import ExecutionContext

__all__ = [
    "ExecutionContext",
]
