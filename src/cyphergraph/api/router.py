"""
FastAPI router for CypherGraph.

Endpoints:
- GET /__graph - Returns the type graph
- POST / - Dispatches query and mutation operations to the handler registry

Request format:

    {
        "query": {
            "people": {"where": {"name__startswith": "A"}, "fields": ["id", "name"]}
        },
        "mutation": {
            "createPeople": {"input": [{"name": "Ada"}], "fields": ["id"]}
        }
    }

Response: {"people": <result>, "createPeople": <result>}

The Authorization header is passed to handlers as context.credentials.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException
from pydantic import BaseModel, Field

from ..core.errors import (
    GraphConfigError,
    MissingConnectionError,
    SchemaMismatchError,
    UnauthorizedError,
)
from ..core.selection import SelectionTree
from ..graph import CypherGraph
from ..runtime.context import ExecutionContext

logger = logging.getLogger(__name__)


# Create router
router = APIRouter()

# Global instance (set by create_graph_router)
_graph: Optional[CypherGraph] = None


# Request body namespaces -> registry namespaces
NAMESPACES = {"query": "Query", "mutation": "Mutation"}


class OperationRequest(BaseModel):
    """Body of POST /."""
    query: dict[str, dict[str, Any]] = Field(default_factory=dict)
    mutation: dict[str, dict[str, Any]] = Field(default_factory=dict)


def set_graph(graph: CypherGraph):
    """Set the CypherGraph served by the API."""
    global _graph
    _graph = graph


def get_graph() -> CypherGraph:
    """Get the CypherGraph served by the API."""
    if _graph is None:
        raise RuntimeError("Graph not initialized. Call set_graph() first.")
    return _graph


async def get_context(
    authorization: Optional[str] = Header(None),
    graph: CypherGraph = Depends(get_graph),
) -> ExecutionContext:
    """Build the execution context for one request."""
    return graph.context(authorization)


@router.get("/__graph")
async def get_graph_endpoint(graph: CypherGraph = Depends(get_graph)) -> dict:
    """
    Return the type graph (JSON).

    Used by clients for query building and form generation.
    """
    return graph.graph.to_dict()


@router.post("/")
async def execute_request(
    body: OperationRequest,
    graph: CypherGraph = Depends(get_graph),
    context: ExecutionContext = Depends(get_context),
) -> dict[str, Any]:
    """
    Run every requested operation, queries first, in request order.

    Unknown operations are rejected before anything runs.
    """
    operations = []
    for key, namespace in NAMESPACES.items():
        for name, selection in getattr(body, key).items():
            if graph.registry.get(namespace, name) is None:
                raise HTTPException(
                    status_code=404,
                    detail={"error": f"Unknown {key} operation '{name}'"},
                )
            operations.append((namespace, name, selection))

    response: dict[str, Any] = {}
    for namespace, name, selection in operations:
        response[name] = await _execute_operation(graph, namespace, name, selection, context)
    return response


async def _execute_operation(
    graph: CypherGraph,
    namespace: str,
    name: str,
    selection: dict[str, Any],
    context: ExecutionContext,
) -> Any:
    """Execute a single operation, mapping core errors to HTTP errors."""
    try:
        tree = SelectionTree.from_dict(name, selection)
    except ValueError as e:
        raise HTTPException(status_code=400, detail={"error": str(e)})

    try:
        return await graph.execute(namespace, name, tree, context)

    except SchemaMismatchError as e:
        raise HTTPException(status_code=400, detail={"error": str(e)})
    except UnauthorizedError as e:
        raise HTTPException(status_code=401, detail={"error": str(e)})
    except MissingConnectionError as e:
        logger.error(f"{namespace}.{name}: {e}")
        raise HTTPException(status_code=503, detail={"error": str(e)})
    except GraphConfigError as e:
        raise HTTPException(status_code=404, detail={"error": str(e)})


def create_graph_router(graph: CypherGraph) -> APIRouter:
    """
    Create a configured CypherGraph API router.

    Args:
        graph: The CypherGraph to serve

    Returns:
        Configured FastAPI router
    """
    set_graph(graph)
    return router


def create_graph_app(graph: CypherGraph, *, title: str = "CypherGraph") -> FastAPI:
    """Create a FastAPI application with the CypherGraph router included."""
    app = FastAPI(
        title=title,
        description="CypherGraph - typed operations compiled to Cypher",
        version="1.0.0",
    )
    app.include_router(create_graph_router(graph))

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app
