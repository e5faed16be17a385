"""
Core module - type graph definitions, compilation, and selections.
"""

from __future__ import annotations

from .compiler import CompilationError, CompilationResult, TypeGraphCompiler, compile_type_graph
from .defs import AuthRule, EntityDef, FieldDef, RelationDef, TypeGraph
from .errors import (
    CypherGraphError,
    GraphConfigError,
    MissingConnectionError,
    SchemaMismatchError,
    UnauthorizedError,
)
from .selection import SelectionTree, resolve_selection

__all__ = [
    # Definitions
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
]
