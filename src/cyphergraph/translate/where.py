"""
Filter compilation - turns `field__op` arguments into Cypher predicates.

Input:  {"name__icontains": "ada", "age__gte": 18, "id": "1"}
Output: ["toLower(this.name) CONTAINS toLower($this_name_icontains)",
         "this.age >= $this_age_gte",
         "this.id = $this_id"]
"""

from __future__ import annotations

from typing import Any, Mapping

from ..core.defs import FILTER_OPS, EntityDef
from ..core.errors import SchemaMismatchError
from ..core.utils import escape_name
from .compiled import CompileState


# Operator templates: {prop} is the property reference, {param} the parameter
_OPERATOR_TEMPLATES = {
    "eq": "{prop} = {param}",
    "ne": "NOT {prop} = {param}",
    "in": "{prop} IN {param}",
    "not_in": "NOT {prop} IN {param}",
    "gt": "{prop} > {param}",
    "gte": "{prop} >= {param}",
    "lt": "{prop} < {param}",
    "lte": "{prop} <= {param}",
    "contains": "{prop} CONTAINS {param}",
    "icontains": "toLower({prop}) CONTAINS toLower({param})",
    "startswith": "{prop} STARTS WITH {param}",
    "endswith": "{prop} ENDS WITH {param}",
}


def parse_filter_key(key: str) -> tuple[str, str]:
    """
    Split a filter key into (field, op).

    "name__icontains" -> ("name", "icontains"); "name" -> ("name", "eq")
    """
    if "__" in key:
        field_name, op = key.rsplit("__", 1)
        return field_name, op
    return key, "eq"


def where_predicates(
    entity: EntityDef,
    var: str,
    where: Mapping[str, Any],
    state: CompileState,
) -> list[str]:
    """
    Compile filter arguments for one node variable.

    Predicates keep the order of the filter keys so the output is stable
    for identical input.

    Raises:
        SchemaMismatchError: for unknown fields or operators not allowed on a field
    """
    if not isinstance(where, Mapping):
        raise SchemaMismatchError(entity.name, "'where' must be a mapping")

    predicates: list[str] = []
    for key, value in where.items():
        field_name, op = parse_filter_key(key)

        field_def = entity.get_field(field_name)
        if field_def.computed:
            raise SchemaMismatchError(entity.name, f"computed field '{field_name}' cannot be filtered")
        if op not in FILTER_OPS:
            raise SchemaMismatchError(entity.name, f"operator '{op}' not supported")
        if op not in field_def.filters:
            raise SchemaMismatchError(
                entity.name,
                f"operator '{op}' not allowed for field '{field_name}' (allowed: {list(field_def.filters)})",
            )

        prop = f"{var}.{escape_name(field_name)}"

        if op == "eq" and value is None:
            predicates.append(f"{prop} IS NULL")
            continue

        if op == "isnull":
            if not isinstance(value, bool):
                raise SchemaMismatchError(entity.name, f"'{key}' expects a boolean")
            predicates.append(f"{prop} IS NULL" if value else f"{prop} IS NOT NULL")
            continue

        if op in ("in", "not_in") and not isinstance(value, (list, tuple)):
            raise SchemaMismatchError(entity.name, f"'{key}' expects a list")

        param_name = f"{var}_{field_name}" if op == "eq" else f"{var}_{field_name}_{op}"
        param = state.param(param_name, list(value) if isinstance(value, tuple) else value)
        predicates.append(_OPERATOR_TEMPLATES[op].format(prop=prop, param=param))

    return predicates
