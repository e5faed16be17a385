"""
Read compilation.

    MATCH (this:Person)
    WHERE this.name = $this_name AND this.id = $auth.sub
    RETURN this { .id, .name } as this
    ORDER BY this.name ASC
    SKIP $this_offset
    LIMIT $this_limit
"""

from __future__ import annotations

import logging
from typing import Any

from ..core.defs import EntityDef
from ..core.errors import SchemaMismatchError
from ..core.selection import SelectionTree
from ..core.utils import escape_name
from .auth import auth_predicates
from .compiled import CompiledQuery, CompileState, check_args, require_graph
from .projection import build_projection
from .where import where_predicates

logger = logging.getLogger(__name__)

READ_ARGS = {"where", "order", "limit", "offset"}


def translate_read(entity: EntityDef, selection: SelectionTree, context: Any) -> CompiledQuery:
    """
    Compile a read of `entity` shaped by `selection`.

    Raises:
        SchemaMismatchError: if the selection does not fit the entity
    """
    state = CompileState(graph=require_graph(context))
    var = "this"
    check_args(entity.name, selection, READ_ARGS)

    predicates = where_predicates(entity, var, selection.args.get("where") or {}, state)
    predicates += auth_predicates(entity, var, "read", state, field_names=selection.field_names)
    projection = build_projection(entity, selection, var, state)

    lines = [f"MATCH ({var}:{escape_name(entity.label)})"]
    if predicates:
        lines.append(f"WHERE {' AND '.join(predicates)}")
    lines.append(f"RETURN {projection} as {var}")
    lines.extend(_pagination_lines(entity, selection, var, state))

    query = state.build(lines)
    logger.debug(f"Compiled read of {entity.name}: {query.text}")
    return query


def _pagination_lines(entity: EntityDef, selection: SelectionTree, var: str, state: CompileState) -> list[str]:
    lines = []
    order = selection.args.get("order")
    if order:
        lines.append(f"ORDER BY {order_clause(entity, order, var)}")

    for arg, keyword in (("offset", "SKIP"), ("limit", "LIMIT")):
        value = selection.args.get(arg)
        if value is None:
            continue
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise SchemaMismatchError(entity.name, f"'{arg}' must be a non-negative integer")
        lines.append(f"{keyword} {state.param(f'{var}_{arg}', value)}")
    return lines


def order_clause(entity: EntityDef, order: Any, var: str) -> str:
    """
    Compile order arguments.

    Input: ["-created", "name"]
    Output: "this.created DESC, this.name ASC"
    """
    if isinstance(order, str):
        order = [order]

    parts = []
    for item in order:
        direction = "ASC"
        field_name = item
        if item.startswith("-"):
            direction = "DESC"
            field_name = item[1:]

        field_def = entity.get_field(field_name)
        if field_def.computed or not field_def.sortable:
            raise SchemaMismatchError(entity.name, f"field '{field_name}' is not sortable")
        parts.append(f"{var}.{escape_name(field_name)} {direction}")
    return ", ".join(parts)
