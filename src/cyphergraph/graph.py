"""
CypherGraph - main entry point tying the type graph, generated handlers,
deriver and handler registry together.

Usage:
    from cyphergraph import CypherGraph, AuthConfig

    cg = CypherGraph(
        {
            "entities": {
                "Person": {
                    "keys": ["id"],
                    "fields": {"id": {"type": "ID", "autogenerate": True}, "name": "String"},
                },
            },
        },
        resolvers={"Query": {"me": me_handler}},
        auth=AuthConfig(secret="change-me"),
        driver=neo4j_session,
    )

    people = await cg.execute("Query", "people", {"fields": ["name"]}, cg.context("Bearer ..."))

    app = cg.app
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Union

from .config import AuthConfig, CypherGraphConfig, load_config
from .core.compiler import compile_type_graph
from .core.defs import TypeGraph
from .core.errors import GraphConfigError
from .iam.param import AuthParamDeriver
from .resolvers import HandlerRegistry, compose
from .runtime.context import ConnectionHandle, ExecutionContext
from .runtime.handlers import generate_handlers

logger = logging.getLogger(__name__)


class CypherGraph:
    """
    Builds everything needed to serve a type graph.

    Features:
    - Compiles a dictionary definition into a TypeGraph (or takes one as is)
    - Generates read/create/update/delete handlers for every entity
    - Merges caller handlers over the generated ones and wraps them all
    - Provides a FastAPI app exposing the registry
    """

    def __init__(
        self,
        type_defs: Union[TypeGraph, Mapping[str, Any]],
        *,
        resolvers: Optional[Mapping[str, Any]] = None,
        auth: Optional[AuthConfig] = None,
        driver: Optional[ConnectionHandle] = None,
        deriver: Optional[Callable[[ExecutionContext], Any]] = None,
        title: str = "CypherGraph",
    ):
        """
        Initialize the graph.

        Args:
            type_defs: TypeGraph or dictionary definition ({"entities": {...}})
            resolvers: Custom handlers merged over the generated ones
            auth: Credential verification settings
            driver: Default connection handle for contexts built by context()
            deriver: Replaces the default AuthParamDeriver(auth)
            title: FastAPI app title
        """
        self.graph = type_defs if isinstance(type_defs, TypeGraph) else compile_type_graph(type_defs)
        self.auth_config = auth or AuthConfig()
        self.deriver = deriver or AuthParamDeriver(self.auth_config)
        self.driver = driver
        self.title = title

        self.generated = generate_handlers(self.graph)
        self.registry: HandlerRegistry = compose(
            resolvers,
            self.generated,
            self.graph.entity_names,
            deriver=self.deriver,
        )
        self._app = None

        logger.info(f"CypherGraph ready: {len(self.graph.entities)} entities")

    @classmethod
    def from_config(
        cls,
        config: Union[CypherGraphConfig, Path, str] = "cyphergraph.yaml",
        **kwargs: Any,
    ) -> "CypherGraph":
        """
        Build from a CypherGraphConfig or a YAML file path.

        Raises:
            GraphConfigError: if the file does not exist
        """
        if not isinstance(config, CypherGraphConfig):
            path = config
            config = load_config(path)
            if config is None:
                raise GraphConfigError(f"Config file not found: {path}")

        kwargs.setdefault("auth", config.auth)
        return cls(config.type_graph(), **kwargs)

    def context(self, credentials: Optional[str] = None, **extra: Any) -> ExecutionContext:
        """
        Build an execution context bound to this graph and its driver.

        Known keys (driver, claims) may be passed in extra; anything else is
        kept in context.extra.
        """
        driver = extra.pop("driver", self.driver)
        claims = extra.pop("claims", None)
        return ExecutionContext(
            driver=driver,
            credentials=credentials,
            claims=claims,
            graph=self.graph,
            extra=extra,
        )

    async def execute(
        self,
        namespace: str,
        name: str,
        selection: Any = None,
        context: Any = None,
        *,
        args: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """
        Run one registered handler.

        Args:
            namespace: "Query", "Mutation", "Subscription" or an entity name
            name: Operation or field name
            selection: SelectionTree, request-format mapping, or None
            context: ExecutionContext or mapping; defaults to self.context()
            args: Handler arguments merged over the selection's own

        Raises:
            GraphConfigError: if no handler is registered under that name
        """
        handler = self.registry.resolve(f"{namespace}.{name}")
        context = self._bind_context(context)

        result = handler(None, dict(args or {}), context, selection)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _bind_context(self, context: Any) -> ExecutionContext:
        if context is None:
            return self.context()
        context = ExecutionContext.coerce(context)
        if context.graph is None:
            context = context.with_graph(self.graph)
        if context.driver is None and self.driver is not None:
            context = replace(context, driver=self.driver)
        return context

    @property
    def app(self):
        """FastAPI application serving this graph (created on first access)."""
        if self._app is None:
            from .api import create_graph_app
            self._app = create_graph_app(self, title=self.title)
        return self._app

    def router(self):
        """FastAPI router serving this graph, for inclusion in an existing app."""
        from .api import create_graph_router
        return create_graph_router(self)
