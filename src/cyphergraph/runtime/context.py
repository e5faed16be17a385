"""
Execution context for handler invocation.

Contains everything a handler needs during one request.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional, Protocol, runtime_checkable

from ..core.defs import TypeGraph
from ..iam.param import AuthParam


@runtime_checkable
class ConnectionHandle(Protocol):
    """
    Opaque store capability supplied by the caller.

    Sessions of the official neo4j driver satisfy this shape.
    """

    def run(self, query: str, parameters: Optional[dict[str, Any]] = None) -> Any:
        ...


@dataclass(frozen=True)
class ExecutionContext:
    """
    Context passed to every handler.

    Contains:
    - driver: Connection handle the compiled query is forwarded to
    - credentials: Raw Authorization value supplied by the caller
    - claims: Claims already verified upstream (bypasses verification)
    - graph: The type graph
    - auth: Derived authorization parameter, set by the wrapping layer
    - extra: Anything else the execution engine carries

    Instances are never mutated; augmentation returns a new context.
    """
    driver: Optional[ConnectionHandle] = None
    credentials: Optional[str] = None
    claims: Optional[Mapping[str, Any]] = None
    graph: Optional[TypeGraph] = None
    auth: Optional[AuthParam] = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ExecutionContext":
        """
        Build a context from a plain mapping.

        Credentials are taken from "credentials", "authorization", or an
        Authorization entry in "headers"; unknown keys go to extra.
        """
        known = {"driver", "credentials", "authorization", "headers", "claims", "graph", "auth"}
        credentials = data.get("credentials") or data.get("authorization")
        headers = data.get("headers")
        if credentials is None and isinstance(headers, Mapping):
            credentials = next(
                (value for key, value in headers.items() if key.lower() == "authorization"),
                None,
            )

        return cls(
            driver=data.get("driver"),
            credentials=credentials,
            claims=data.get("claims"),
            graph=data.get("graph"),
            auth=data.get("auth"),
            extra={key: value for key, value in data.items() if key not in known},
        )

    @classmethod
    def coerce(cls, context: Any) -> "ExecutionContext":
        """Accept an ExecutionContext, a mapping, or None."""
        if isinstance(context, ExecutionContext):
            return context
        if context is None:
            return cls()
        if isinstance(context, Mapping):
            return cls.from_mapping(context)
        raise TypeError(f"Unsupported execution context type: {type(context).__name__}")

    def with_auth(self, auth: AuthParam) -> "ExecutionContext":
        return replace(self, auth=auth)

    def with_graph(self, graph: TypeGraph) -> "ExecutionContext":
        return replace(self, graph=graph)
