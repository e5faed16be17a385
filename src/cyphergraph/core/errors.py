"""
Custom exceptions for the cyphergraph system.
"""

from __future__ import annotations

from typing import Optional


class CypherGraphError(Exception):
    """Base exception for all cyphergraph errors."""
    pass


class GraphConfigError(CypherGraphError):
    """Raised when the type graph or handler composition input is invalid."""

    def __init__(self, message: str, errors: Optional[list[str]] = None):
        self.errors = errors or []
        super().__init__(message)


class MissingConnectionError(CypherGraphError):
    """Raised when a handler is invoked without a connection handle in its context."""

    def __init__(self, message: str = "context.driver missing"):
        super().__init__(message)


class UnauthorizedError(CypherGraphError):
    """Raised when supplied credentials cannot be verified."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class SchemaMismatchError(CypherGraphError):
    """Raised when a selection references something the type graph does not define."""

    def __init__(self, entity: str, message: str):
        self.entity = entity
        super().__init__(f"[{entity}] {message}")
