"""
Delete compilation.

    MATCH (this:Person)
    WHERE this.id = $this_id
    OPTIONAL MATCH (this)-[this_relationships]-()
    WITH collect(DISTINCT this) AS this_nodes, collect(DISTINCT this_relationships) AS this_rels
    FOREACH(this_node IN this_nodes | DETACH DELETE this_node)
    RETURN size(this_nodes) AS nodesDeleted, size(this_rels) AS relationshipsDeleted

Returns a summary rather than a projection; when a rule fails nothing
matches and both counts are zero.
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
from .where import where_predicates

logger = logging.getLogger(__name__)

DELETE_ARGS = {"where"}
SUMMARY_FIELDS = {"nodesDeleted", "relationshipsDeleted", "__typename"}


def translate_delete(entity: EntityDef, selection: SelectionTree, context: Any) -> CompiledQuery:
    """
    Compile a match-then-delete returning deleted node and relationship counts.

    Raises:
        SchemaMismatchError: if the arguments or selection do not fit the entity
    """
    state = CompileState(graph=require_graph(context))
    var = "this"
    check_args(entity.name, selection, DELETE_ARGS)

    unknown = set(selection.field_names) - SUMMARY_FIELDS
    if unknown:
        raise SchemaMismatchError(entity.name, f"delete returns only {sorted(SUMMARY_FIELDS)}, got {sorted(unknown)}")

    predicates = where_predicates(entity, var, selection.args.get("where") or {}, state)
    predicates += auth_predicates(entity, var, "delete", state)

    lines = [f"MATCH ({var}:{escape_name(entity.label)})"]
    if predicates:
        lines.append(f"WHERE {' AND '.join(predicates)}")
    lines.extend([
        f"OPTIONAL MATCH ({var})-[{var}_relationships]-()",
        f"WITH collect(DISTINCT {var}) AS {var}_nodes, collect(DISTINCT {var}_relationships) AS {var}_rels",
        f"FOREACH({var}_node IN {var}_nodes | DETACH DELETE {var}_node)",
        f"RETURN size({var}_nodes) AS nodesDeleted, size({var}_rels) AS relationshipsDeleted",
    ])

    query = state.build(lines)
    logger.debug(f"Compiled delete of {entity.name}: {query.text}")
    return query
