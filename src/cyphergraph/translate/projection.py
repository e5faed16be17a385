"""
Projection compilation - map projections with nested pattern comprehensions.

Selection {name, posts {title}} on Person compiles to:

    this { .name, posts: [ (this)-[:HAS_POST]->(this_posts:Post) | this_posts { .title } ] }

The projection holds exactly the requested fields, in requested order.
"""

from __future__ import annotations

import json

from ..core.defs import EntityDef, FieldDef, RelationDef
from ..core.errors import SchemaMismatchError
from ..core.selection import SelectionTree
from ..core.utils import escape_name, is_identifier
from .auth import auth_predicates
from .compiled import CompileState, check_args
from .pattern import relationship_pattern
from .where import where_predicates


NESTED_ARGS = {"where", "limit", "offset"}


def build_projection(
    entity: EntityDef,
    selection: SelectionTree,
    var: str,
    state: CompileState,
) -> str:
    """
    Compile the map projection for one node variable.

    Raises:
        SchemaMismatchError: if a requested field is not on the entity
    """
    entries = []
    for child in selection.fields:
        if not is_identifier(child.key):
            raise SchemaMismatchError(entity.name, f"invalid field or alias name '{child.key}'")
        if child.name == "__typename":
            entries.append(f"{child.key}: {json.dumps(entity.name)}")
        elif child.name in entity.fields:
            entries.append(_scalar_entry(entity, entity.fields[child.name], child, var, state))
        elif child.name in entity.relations:
            comprehension = _relation_entry(entity.relations[child.name], child, var, state)
            entries.append(f"{child.key}: {comprehension}")
        else:
            raise SchemaMismatchError(entity.name, f"field '{child.name}' not found")

    return f"{var} {{ {', '.join(entries)} }}"


def _scalar_entry(
    entity: EntityDef,
    field_def: FieldDef,
    child: SelectionTree,
    var: str,
    state: CompileState,
) -> str:
    if child.fields:
        raise SchemaMismatchError(entity.name, f"field '{child.name}' has no sub-fields")
    if child.args:
        raise SchemaMismatchError(entity.name, f"field '{child.name}' takes no arguments")

    if field_def.computed:
        return f"{child.key}: {_computed_expression(field_def, var, state)}"
    if child.key == child.name:
        return f".{escape_name(child.name)}"
    return f"{child.key}: {var}.{escape_name(child.name)}"


def _computed_expression(field_def: FieldDef, var: str, state: CompileState) -> str:
    statement = json.dumps(field_def.computed)
    bindings = f"this: {var}"
    if "$auth" in field_def.computed:
        bindings += f", auth: {state.auth_ref()}"
    call = f"apoc.cypher.runFirstColumn({statement}, {{{bindings}}}, {str(field_def.is_list).lower()})"
    return call if field_def.is_list else f"head({call})"


def _relation_entry(
    relation: RelationDef,
    child: SelectionTree,
    parent_var: str,
    state: CompileState,
) -> str:
    """Nested pattern comprehension for a requested relationship field."""
    target = state.graph.entity(relation.target)
    var = f"{parent_var}_{child.key}"

    check_args(target.name, child, NESTED_ARGS)

    predicates = where_predicates(target, var, child.args.get("where") or {}, state)
    predicates += auth_predicates(
        target,
        var,
        "read",
        state,
        field_names=child.field_names,
        extra_rules=relation.auth,
    )
    projection = build_projection(target, child, var, state)

    pattern = relationship_pattern(parent_var, relation, var, target.label)
    where = f" WHERE {' AND '.join(predicates)}" if predicates else ""
    comprehension = f"[ {pattern}{where} | {projection} ]"
    comprehension += _slice(child, var, state)

    if relation.cardinality == "one":
        return f"head({comprehension})"
    return comprehension


def _slice(child: SelectionTree, var: str, state: CompileState) -> str:
    offset = child.args.get("offset")
    limit = child.args.get("limit")
    if offset is None and limit is None:
        return ""

    for name, value in (("offset", offset), ("limit", limit)):
        if value is not None and (not isinstance(value, int) or isinstance(value, bool) or value < 0):
            raise SchemaMismatchError(child.name, f"'{name}' must be a non-negative integer")

    if offset is None:
        return f"[..{state.param(f'{var}_limit', limit)}]"
    start = state.param(f"{var}_offset", offset)
    if limit is None:
        return f"[{start}..]"
    return f"[{start}..{start} + {state.param(f'{var}_limit', limit)}]"
