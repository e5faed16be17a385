"""
Authorization weaving - turns AuthRules into predicates over `$auth`.

Every predicate produced here references the authorization parameter
through CompileState.auth_ref(), which is what marks a query as
auth-dependent.
"""

from __future__ import annotations

import json
from typing import Callable, Iterable, Mapping, Optional

from ..core.defs import AuthRule, EntityDef
from ..core.utils import escape_name
from .compiled import CompileState
from .pattern import relationship_pattern


# Resolves a field name to the expression holding its value, or None when
# the value is not known (create input that omits the field)
ValueOf = Callable[[str], Optional[str]]


def collect_rules(
    entity: EntityDef,
    operation: str,
    field_names: Iterable[str] = (),
    extra_rules: Iterable[AuthRule] = (),
) -> list[AuthRule]:
    """
    Rules in scope for an operation.

    Entity rules always apply; a field rule only applies when that field is
    among field_names (requested, supplied or set).
    """
    rules = [rule for rule in extra_rules if rule.applies_to(operation)]
    rules.extend(rule for rule in entity.auth if rule.applies_to(operation))

    seen: set[str] = set()
    for name in field_names:
        if name in seen:
            continue
        seen.add(name)
        field_def = entity.fields.get(name)
        if field_def is not None:
            rules.extend(rule for rule in field_def.auth if rule.applies_to(operation))
    return rules


def auth_predicates(
    entity: EntityDef,
    var: str,
    operation: str,
    state: CompileState,
    field_names: Iterable[str] = (),
    extra_rules: Iterable[AuthRule] = (),
    value_of: Optional[ValueOf] = None,
) -> list[str]:
    """
    Predicates for every rule in scope, to be AND-combined with the
    structural predicates.
    """
    predicates = []
    for rule in collect_rules(entity, operation, field_names, extra_rules):
        predicate = rule_predicate(rule, entity, var, state, value_of)
        if predicate:
            predicates.append(predicate)
    return predicates


def rule_predicate(
    rule: AuthRule,
    entity: EntityDef,
    var: str,
    state: CompileState,
    value_of: Optional[ValueOf] = None,
) -> str:
    """All conditions of one rule, conjunctively."""
    parts = []
    if rule.is_authenticated:
        parts.append(f"{state.auth_ref('isAuthenticated')} = true")
    if rule.roles:
        roles = ", ".join(json.dumps(role) for role in rule.roles)
        parts.append(f"any(r IN [{roles}] WHERE r IN {state.auth_ref('roles')})")
    parts.extend(_allow_parts(entity, var, rule.allow, state, value_of))
    return " AND ".join(parts)


def _allow_parts(
    entity: EntityDef,
    var: str,
    allow: Mapping,
    state: CompileState,
    value_of: Optional[ValueOf],
) -> list[str]:
    parts = []
    for key, claim in allow.items():
        if isinstance(claim, Mapping):
            parts.append(_relation_allow(entity, var, key, claim, state, value_of))
            continue

        ref = value_of(key) if value_of else f"{var}.{escape_name(key)}"
        if ref is None:
            parts.append("false")
        else:
            parts.append(f"{ref} = {state.auth_ref(claim)}")
    return parts


def _relation_allow(
    entity: EntityDef,
    var: str,
    rel_name: str,
    allow: Mapping,
    state: CompileState,
    value_of: Optional[ValueOf],
) -> str:
    # Related nodes of a node that is not yet written cannot be checked
    if value_of is not None:
        return "false"

    relation = entity.get_relation(rel_name)
    target = state.graph.entity(relation.target)
    rel_var = f"{var}_{rel_name}_auth"
    inner = " AND ".join(_allow_parts(target, rel_var, allow, state, None))
    pattern = relationship_pattern(var, relation, rel_var, target.label)
    return f"any({rel_var} IN [{pattern} | {rel_var}] WHERE {inner})"
