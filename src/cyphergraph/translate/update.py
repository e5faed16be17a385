"""
Update compilation.

    MATCH (this:Person)
    WHERE this.id = $this_id
    SET this.name = $this_update_name
    WITH this
    OPTIONAL MATCH (this)-[this_posts_disconnect0_rel:HAS_POST]->(this_posts_disconnect0:Post)
    WHERE this_posts_disconnect0.id = $this_posts_disconnect0_id
    WITH this, collect(this_posts_disconnect0_rel) AS this_posts_disconnect0_rels
    FOREACH(this_posts_disconnect0_rel IN this_posts_disconnect0_rels | DELETE this_posts_disconnect0_rel)
    RETURN this { .name } AS this

Only supplied fields are set. Relationship operations are given per
operation: {"connect": {"posts": [...]}, "disconnect": {...}, "create": {...}}.
Read rules of the entity and of the returned fields filter the returned
row with `WITH this WHERE ...` before RETURN.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from ..core.defs import EntityDef
from ..core.errors import SchemaMismatchError
from ..core.selection import SelectionTree
from ..core.utils import escape_name
from .auth import auth_predicates
from .compiled import CompiledQuery, CompileState, check_args, require_graph
from .nested import relation_input_lines, split_input
from .projection import build_projection
from .where import where_predicates

logger = logging.getLogger(__name__)

RELATION_OPERATIONS = ("create", "connect", "disconnect")
UPDATE_ARGS = {"where", "update", *RELATION_OPERATIONS}


def translate_update(entity: EntityDef, selection: SelectionTree, context: Any) -> CompiledQuery:
    """
    Compile a match-then-set update with optional relationship operations,
    returning the post-update projection.

    Raises:
        SchemaMismatchError: if the arguments or selection do not fit the entity
    """
    state = CompileState(graph=require_graph(context))
    var = "this"
    check_args(entity.name, selection, UPDATE_ARGS)

    props, nested = split_input(entity, selection.args.get("update") or {})
    if nested:
        raise SchemaMismatchError(
            entity.name,
            f"relationships {sorted(nested)} cannot be updated directly, use connect/disconnect/create",
        )

    predicates = where_predicates(entity, var, selection.args.get("where") or {}, state)
    predicates += auth_predicates(
        entity,
        var,
        "update",
        state,
        field_names=[*props, *selection.field_names],
    )

    set_lines = [
        f"SET {var}.{escape_name(name)} = {state.param(f'{var}_update_{name}', value)}"
        for name, value in props.items()
    ]

    guards: list[str] = []
    nested_lines = relation_input_lines(
        entity,
        _relation_operations(entity, selection.args),
        var,
        state,
        [var],
        guards,
    )
    predicates += guards

    projection = build_projection(entity, selection, var, state)
    visible = auth_predicates(entity, var, "read", state, field_names=selection.field_names)

    lines = [f"MATCH ({var}:{escape_name(entity.label)})"]
    if predicates:
        lines.append(f"WHERE {' AND '.join(predicates)}")
    lines.extend(set_lines)
    lines.extend(nested_lines)
    if visible:
        lines.append(f"WITH {var}")
        lines.append(f"WHERE {' AND '.join(visible)}")
    lines.append(f"RETURN {projection} AS {var}")

    query = state.build(lines)
    logger.debug(f"Compiled update of {entity.name}: {query.text}")
    return query


def _relation_operations(entity: EntityDef, args: Mapping[str, Any]) -> dict[str, dict[str, Any]]:
    """
    Regroup {"connect": {"posts": [...]}} into {"posts": {"connect": [...]}}.
    """
    grouped: dict[str, dict[str, Any]] = {}
    for operation in RELATION_OPERATIONS:
        per_relation = args.get(operation)
        if not per_relation:
            continue
        if not isinstance(per_relation, Mapping):
            raise SchemaMismatchError(entity.name, f"'{operation}' must map relationship names to input")
        for rel_name, items in per_relation.items():
            grouped.setdefault(rel_name, {})[operation] = items
    return grouped
