"""
API module - FastAPI endpoints.
"""

from __future__ import annotations

from .router import (
    create_graph_app,
    create_graph_router,
    get_context,
    get_graph,
    router,
    set_graph,
)

__all__ = [
    "router",
    "set_graph",
    "get_graph",
    "get_context",
    "create_graph_router",
    "create_graph_app",
]
