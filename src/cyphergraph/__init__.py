"""
CypherGraph - typed graph operations compiled to parameterized Cypher.

Provides:
- Type graph definitions with entity, field and relationship auth rules
- Translation of read/create/update/delete selections into Cypher
- Composition of generated handlers with custom overrides, every handler
  wrapped to receive a derived authorization parameter

Usage:
    from cyphergraph import CypherGraph
    from fastapi import FastAPI

    app = FastAPI()
    cg = CypherGraph({"entities": {...}}, driver=session)
    app.include_router(cg.router())
"""

from __future__ import annotations

from .config import AuthConfig, CypherGraphConfig, load_config
from .core import (
    AuthRule,
    CompilationError,
    CompilationResult,
    compile_type_graph,
    CypherGraphError,
    EntityDef,
    FieldDef,
    GraphConfigError,
    MissingConnectionError,
    RelationDef,
    resolve_selection,
    SchemaMismatchError,
    SelectionTree,
    TypeGraph,
    TypeGraphCompiler,
    UnauthorizedError,
)
from .iam import AuthParam, AuthParamDeriver
from .translate import (
    CompiledQuery,
    translate_create,
    translate_delete,
    translate_read,
    translate_update,
)
from .runtime import ExecutionContext, generate_handlers
from .resolvers import HandlerRegistry, compose, wrap
from .graph import CypherGraph
from .api import create_graph_app, create_graph_router, router

__version__ = "0.1.0"

__all__ = [
    # Config
    "AuthConfig",
    "CypherGraphConfig",
    "load_config",
    # Core definitions
    "AuthRule",
    "FieldDef",
    "RelationDef",
    "EntityDef",
    "TypeGraph",
    # Errors
    "CypherGraphError",
    "GraphConfigError",
    "MissingConnectionError",
    "UnauthorizedError",
    "SchemaMismatchError",
    # Compiler
    "TypeGraphCompiler",
    "CompilationResult",
    "CompilationError",
    "compile_type_graph",
    # Selection
    "SelectionTree",
    "resolve_selection",
    # IAM
    "AuthParam",
    "AuthParamDeriver",
    # Translation
    "CompiledQuery",
    "translate_read",
    "translate_create",
    "translate_update",
    "translate_delete",
    # Runtime
    "ExecutionContext",
    "generate_handlers",
    # Resolvers
    "HandlerRegistry",
    "compose",
    "wrap",
    # Facade
    "CypherGraph",
    # API
    "router",
    "create_graph_router",
    "create_graph_app",
]
