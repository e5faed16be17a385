"""
Runtime module - execution context and generated handlers.
"""

from __future__ import annotations

from .context import ConnectionHandle, ExecutionContext
from .handlers import generate_handlers, make_handler, operation_names

__all__ = [
    "ConnectionHandle",
    "ExecutionContext",
    "generate_handlers",
    "make_handler",
    "operation_names",
]
