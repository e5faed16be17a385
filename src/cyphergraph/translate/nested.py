"""
Nested mutation compilation - create / connect / disconnect on relationships.

Relationship input:

{
    "posts": {
        "create": [{"title": "Hello"}, {"node": {"title": "Hi"}, "edge": {"since": 2020}}],
        "connect": [{"where": {"id": "p1"}}],
        "disconnect": [{"where": {"id": "p2"}}],
    }
}

Every nested element starts with `WITH <scope>` so the variables created so
far stay bound. Connect and disconnect collect their matches before writing,
so a clause matching several nodes never multiplies the rows that follow.
Create rules are not written inline: their predicates are appended to
`guards`, which the caller evaluates before any write.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from ..core.defs import EntityDef, RelationDef
from ..core.errors import SchemaMismatchError
from ..core.utils import escape_name
from .auth import auth_predicates
from .compiled import CompileState
from .pattern import relationship_pattern
from .where import where_predicates


def as_list(value: Any) -> list:
    """Accept a single item or a list of items."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def split_input(entity: EntityDef, data: Mapping[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    """
    Split create/update input into (properties, relationship input).

    Raises:
        SchemaMismatchError: for unknown or computed fields
    """
    if not isinstance(data, Mapping):
        raise SchemaMismatchError(entity.name, "input must be a mapping")

    props: dict[str, Any] = {}
    nested: dict[str, Any] = {}
    for key, value in data.items():
        if key in entity.relations:
            nested[key] = value
            continue
        field_def = entity.get_field(key)
        if field_def.computed:
            raise SchemaMismatchError(entity.name, f"computed field '{key}' cannot be set")
        props[key] = value
    return props, nested


def create_node_lines(
    entity: EntityDef,
    data: Mapping[str, Any],
    var: str,
    state: CompileState,
    scope: list[str],
    guards: list[str],
    link: Optional[list[str]] = None,
    link_rules: tuple = (),
) -> list[str]:
    """
    CREATE one node, SET its properties, optionally MERGE it to its parent,
    then compile its own relationship input.
    """
    props, nested = split_input(entity, data)

    lines = [f"CREATE ({var}:{escape_name(entity.label)})"]
    refs: dict[str, str] = {}
    for name, value in props.items():
        refs[name] = state.param(f"{var}_{name}", value)
        lines.append(f"SET {var}.{escape_name(name)} = {refs[name]}")
    for name, field_def in entity.fields.items():
        if field_def.autogenerate and name not in props:
            lines.append(f"SET {var}.{escape_name(name)} = randomUUID()")
    if link:
        lines.extend(link)

    guards.extend(auth_predicates(
        entity,
        var,
        "create",
        state,
        field_names=list(props),
        extra_rules=link_rules,
        value_of=refs.get,
    ))

    lines.extend(relation_input_lines(
        entity,
        nested,
        var,
        state,
        scope + [var],
        guards,
        allowed=("create", "connect"),
    ))
    return lines


def relation_input_lines(
    entity: EntityDef,
    nested: Mapping[str, Any],
    var: str,
    state: CompileState,
    scope: list[str],
    guards: list[str],
    allowed: tuple[str, ...] = ("create", "connect", "disconnect"),
) -> list[str]:
    """Compile relationship input for every relationship of `var`, in input order."""
    lines: list[str] = []
    for rel_name, operations in nested.items():
        relation = entity.get_relation(rel_name)
        target = state.graph.entity(relation.target)

        if not isinstance(operations, Mapping):
            raise SchemaMismatchError(entity.name, f"relationship input '{rel_name}' must be a mapping")
        unknown = set(operations) - set(allowed)
        if unknown:
            raise SchemaMismatchError(entity.name, f"unsupported operations {sorted(unknown)} on '{rel_name}'")

        for index, item in enumerate(as_list(operations.get("create"))):
            child_var = f"{var}_{rel_name}{index}"
            node_data, edge = _split_edge(target, relation, item)
            link = _merge_lines(var, relation, child_var, edge, state)
            lines.append(f"WITH {', '.join(scope)}")
            lines.extend(create_node_lines(
                target,
                node_data,
                child_var,
                state,
                scope,
                guards,
                link=link,
                link_rules=relation.auth,
            ))

        for index, item in enumerate(as_list(operations.get("connect"))):
            lines.extend(_connect_lines(target, relation, var, f"{var}_{rel_name}_connect{index}", item, state, scope))

        for index, item in enumerate(as_list(operations.get("disconnect"))):
            lines.extend(_disconnect_lines(target, relation, var, f"{var}_{rel_name}_disconnect{index}", item, state, scope))

    return lines


def _split_edge(target: EntityDef, relation: RelationDef, item: Any) -> tuple[Mapping[str, Any], Mapping[str, Any]]:
    """Accept either plain node input or {"node": {...}, "edge": {...}}."""
    if isinstance(item, Mapping) and "node" in item and "node" not in target.fields:
        return item["node"], item.get("edge") or {}
    return item, {}


def _edge_set_lines(relation: RelationDef, rel_var: str, edge: Mapping[str, Any], state: CompileState) -> list[str]:
    if not isinstance(edge, Mapping):
        raise SchemaMismatchError(relation.target, f"edge input for '{relation.name}' must be a mapping")
    lines = []
    for name, value in edge.items():
        if name not in relation.properties:
            raise SchemaMismatchError(relation.target, f"relationship '{relation.name}' has no property '{name}'")
        lines.append(f"SET {rel_var}.{escape_name(name)} = {state.param(f'{rel_var}_{name}', value)}")
    return lines


def _merge_lines(
    var: str,
    relation: RelationDef,
    child_var: str,
    edge: Mapping[str, Any],
    state: CompileState,
) -> list[str]:
    rel_var = f"{child_var}_relationship" if edge else ""
    lines = [f"MERGE {relationship_pattern(var, relation, child_var, rel_var=rel_var)}"]
    lines.extend(_edge_set_lines(relation, rel_var, edge, state))
    return lines


def _connect_lines(
    target: EntityDef,
    relation: RelationDef,
    var: str,
    connect_var: str,
    item: Any,
    state: CompileState,
    scope: list[str],
) -> list[str]:
    """
    WITH this
    OPTIONAL MATCH (this_posts_connect0:Post)
    WHERE this_posts_connect0.id = $this_posts_connect0_id
    WITH this, collect(this_posts_connect0) AS this_posts_connect0_nodes
    FOREACH(this_posts_connect0 IN this_posts_connect0_nodes | MERGE (this)-[:HAS_POST]->(this_posts_connect0))
    """
    if not isinstance(item, Mapping) or not item.get("where"):
        raise SchemaMismatchError(target.name, f"connect on '{relation.name}' requires a 'where'")

    predicates = where_predicates(target, connect_var, item["where"], state)
    predicates += auth_predicates(target, connect_var, "connect", state, extra_rules=relation.auth)

    edge = item.get("edge") or {}
    rel_var = f"{connect_var}_relationship" if edge else ""
    merge = " ".join(
        [f"MERGE {relationship_pattern(var, relation, connect_var, rel_var=rel_var)}"]
        + _edge_set_lines(relation, rel_var, edge, state)
    )

    return [
        f"WITH {', '.join(scope)}",
        f"OPTIONAL MATCH ({connect_var}:{escape_name(target.label)})",
        f"WHERE {' AND '.join(predicates)}",
        f"WITH {', '.join(scope)}, collect({connect_var}) AS {connect_var}_nodes",
        f"FOREACH({connect_var} IN {connect_var}_nodes | {merge})",
    ]


def _disconnect_lines(
    target: EntityDef,
    relation: RelationDef,
    var: str,
    disconnect_var: str,
    item: Any,
    state: CompileState,
    scope: list[str],
) -> list[str]:
    """
    WITH this
    OPTIONAL MATCH (this)-[this_posts_disconnect0_rel:HAS_POST]->(this_posts_disconnect0:Post)
    WHERE this_posts_disconnect0.id = $this_posts_disconnect0_id
    WITH this, collect(this_posts_disconnect0_rel) AS this_posts_disconnect0_rels
    FOREACH(this_posts_disconnect0_rel IN this_posts_disconnect0_rels | DELETE this_posts_disconnect0_rel)
    """
    if not isinstance(item, Mapping):
        raise SchemaMismatchError(target.name, f"disconnect on '{relation.name}' must be a mapping")

    rel_var = f"{disconnect_var}_rel"
    predicates = where_predicates(target, disconnect_var, item.get("where") or {}, state)
    predicates += auth_predicates(target, disconnect_var, "disconnect", state, extra_rules=relation.auth)

    lines = [
        f"WITH {', '.join(scope)}",
        f"OPTIONAL MATCH {relationship_pattern(var, relation, disconnect_var, target.label, rel_var=rel_var)}",
    ]
    if predicates:
        lines.append(f"WHERE {' AND '.join(predicates)}")
    lines.extend([
        f"WITH {', '.join(scope)}, collect({rel_var}) AS {rel_var}s",
        f"FOREACH({rel_var} IN {rel_var}s | DELETE {rel_var})",
    ])
    return lines
