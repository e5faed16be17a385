"""
Generated handlers - one per CRUD operation per entity.

For entity Person:
    Query.people          -> translate_read
    Mutation.createPeople -> translate_create
    Mutation.updatePeople -> translate_update
    Mutation.deletePeople -> translate_delete

Each handler resolves its selection, compiles the query, binds `auth` when
the text references it, and forwards (text, params) to context.driver.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable

from ..core.defs import EntityDef, TypeGraph
from ..core.selection import resolve_selection
from ..core.utils import pluralize, to_camel_case
from ..translate import translate_create, translate_delete, translate_read, translate_update
from ..translate.compiled import CompiledQuery
from .context import ExecutionContext

logger = logging.getLogger(__name__)

Translator = Callable[[EntityDef, Any, Any], CompiledQuery]


def operation_names(entity_name: str) -> dict[str, str]:
    """Generated operation names for an entity."""
    plural = pluralize(entity_name)
    return {
        "read": to_camel_case(plural),
        "create": f"create{plural}",
        "update": f"update{plural}",
        "delete": f"delete{plural}",
    }


def make_handler(graph: TypeGraph, entity: EntityDef, translate: Translator, operation: str):
    """
    Build the handler for one operation on one entity.

    Calling shape: (parent, args, context, info) -> awaitable result.
    """

    async def handler(parent: Any, args: Any, context: Any, info: Any = None) -> Any:
        context = ExecutionContext.coerce(context)
        if context.graph is None:
            context = context.with_graph(graph)

        selection = resolve_selection(info, operation, args)
        compiled = translate(entity, selection, context)
        params = compiled.bind_auth(context.auth)

        result = context.driver.run(compiled.text, params)
        if inspect.isawaitable(result):
            result = await result
        return result

    handler.__name__ = operation
    handler.__qualname__ = f"{entity.name}.{operation}"
    return handler


def generate_handlers(graph: TypeGraph) -> dict[str, dict[str, Any]]:
    """
    Generate the Query and Mutation handlers for every entity.

    Returns:
        {"Query": {...}, "Mutation": {...}} ready for compose()
    """
    queries: dict[str, Any] = {}
    mutations: dict[str, Any] = {}

    for entity in graph.entities.values():
        names = operation_names(entity.name)
        queries[names["read"]] = make_handler(graph, entity, translate_read, names["read"])
        mutations[names["create"]] = make_handler(graph, entity, translate_create, names["create"])
        mutations[names["update"]] = make_handler(graph, entity, translate_update, names["update"])
        mutations[names["delete"]] = make_handler(graph, entity, translate_delete, names["delete"])

    logger.debug(f"Generated {len(queries)} query and {len(mutations)} mutation handlers")
    return {"Query": queries, "Mutation": mutations}
