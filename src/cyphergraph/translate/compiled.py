"""
Compiled query types shared by the four operation compilers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ..core.defs import TypeGraph
from ..core.errors import GraphConfigError, SchemaMismatchError
from ..iam.param import AuthParam


AUTH_PARAM = "auth"


@dataclass(frozen=True)
class CompiledQuery:
    """
    Query text plus its parameter map.

    The parameter map never contains the authorization parameter itself;
    bind_auth() adds it exactly when the text references it.
    """
    text: str
    params: dict[str, Any]
    auth_dependent: bool = False

    def bind_auth(self, auth: Optional[AuthParam]) -> dict[str, Any]:
        """Parameters ready for execution, with `auth` populated if referenced."""
        params = dict(self.params)
        if self.auth_dependent:
            params[AUTH_PARAM] = (auth or AuthParam.unauthenticated()).to_param()
        return params

    def __iter__(self):
        # Allows `text, params = compiled`
        yield self.text
        yield self.params


@dataclass
class CompileState:
    """Mutable accumulator used while compiling a single query."""
    graph: TypeGraph
    params: dict[str, Any] = field(default_factory=dict)
    auth_dependent: bool = False

    def param(self, name: str, value: Any) -> str:
        """
        Register a parameter and return its reference in query text.

        A name already taken gets a numeric suffix (this_limit, this_limit_1),
        so a filter on a field called `limit` and the LIMIT value stay apart.
        """
        unique = name
        suffix = 1
        while unique in self.params:
            unique = f"{name}_{suffix}"
            suffix += 1
        self.params[unique] = value
        return f"${unique}"

    def auth_ref(self, path: Optional[str] = None) -> str:
        """Reference into the authorization parameter; marks the query auth-dependent."""
        self.auth_dependent = True
        if path is None:
            return f"${AUTH_PARAM}"
        return f"${AUTH_PARAM}.{path}"

    def build(self, lines: list[str]) -> CompiledQuery:
        return CompiledQuery(
            text="\n".join(lines),
            params=self.params,
            auth_dependent=self.auth_dependent,
        )


def require_graph(context: Any) -> TypeGraph:
    """Get the type graph carried by the execution context."""
    graph = getattr(context, "graph", None)
    if graph is None:
        raise GraphConfigError("Execution context carries no type graph")
    return graph


def check_args(entity_name: str, selection: Any, allowed: set[str]) -> None:
    """Fail on any argument the operation does not understand."""
    unknown = set(selection.args) - allowed
    if unknown:
        raise SchemaMismatchError(entity_name, f"unknown arguments {sorted(unknown)} on '{selection.name}'")
