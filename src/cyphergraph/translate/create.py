"""
Create compilation.

    WITH true AS authorized
    WHERE $this0_id = $auth.sub
    CALL {
    CREATE (this0:Person)
    SET this0.name = $this0_name
    SET this0.id = randomUUID()
    WITH this0
    OPTIONAL MATCH (this0_posts_connect0:Post)
    WHERE this0_posts_connect0.id = $this0_posts_connect0_id
    WITH this0, collect(this0_posts_connect0) AS this0_posts_connect0_nodes
    FOREACH(this0_posts_connect0 IN this0_posts_connect0_nodes | MERGE (this0)-[:HAS_POST]->(this0_posts_connect0))
    RETURN this0
    }
    RETURN this0 { .name } AS this0

The guard is only emitted when create rules apply; it is evaluated against
the input values before anything is written. Read rules of the entity and
of the returned fields are checked on the created nodes after the writes,
with `WITH this0, ... WHERE ...`, so the row is only returned when every
created node is readable.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from ..core.defs import EntityDef
from ..core.errors import SchemaMismatchError
from ..core.selection import SelectionTree
from .auth import auth_predicates
from .compiled import CompiledQuery, CompileState, check_args, require_graph
from .nested import as_list, create_node_lines
from .projection import build_projection

logger = logging.getLogger(__name__)

CREATE_ARGS = {"input"}


def translate_create(entity: EntityDef, selection: SelectionTree, context: Any) -> CompiledQuery:
    """
    Compile creation of one node per input item, with nested relationship
    input, returning Read-shaped projections of the created nodes.

    Raises:
        SchemaMismatchError: if the input or selection does not fit the entity
    """
    state = CompileState(graph=require_graph(context))
    check_args(entity.name, selection, CREATE_ARGS)

    inputs = as_list(selection.args.get("input"))
    if not inputs:
        raise SchemaMismatchError(entity.name, "create requires a non-empty 'input'")

    guards: list[str] = []
    blocks: list[str] = []
    variables: list[str] = []
    for index, data in enumerate(inputs):
        if not isinstance(data, Mapping):
            raise SchemaMismatchError(entity.name, "each create input must be a mapping")
        var = f"this{index}"
        variables.append(var)
        blocks.append("CALL {")
        blocks.extend(create_node_lines(entity, data, var, state, [], guards))
        blocks.append(f"RETURN {var}")
        blocks.append("}")

    projections = [f"{build_projection(entity, selection, var, state)} AS {var}" for var in variables]
    visible = [
        predicate
        for var in variables
        for predicate in auth_predicates(entity, var, "read", state, field_names=selection.field_names)
    ]

    lines: list[str] = []
    if guards:
        lines.append("WITH true AS authorized")
        lines.append(f"WHERE {' AND '.join(guards)}")
    lines.extend(blocks)
    if visible:
        lines.append(f"WITH {', '.join(variables)}")
        lines.append(f"WHERE {' AND '.join(visible)}")
    lines.append(f"RETURN {', '.join(projections)}")

    query = state.build(lines)
    logger.debug(f"Compiled create of {len(inputs)} {entity.name}: {query.text}")
    return query
