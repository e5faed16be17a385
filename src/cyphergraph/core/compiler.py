"""
Type graph compiler - converts a plain definition (dict/YAML) to a TypeGraph.

Validates the whole definition and reports every problem at once.

Usage:
    from cyphergraph.core.compiler import TypeGraphCompiler

    result = TypeGraphCompiler().compile({
        "entities": {
            "Person": {
                "keys": ["id"],
                "fields": {"id": {"type": "ID", "autogenerate": True}, "name": "String"},
                "relations": {
                    "posts": {"type": "HAS_POST", "target": "Post"},
                },
                "auth": [{"operations": ["read"], "allow": {"id": "sub"}}],
            },
            ...
        }
    })
    graph = result.graph  # TypeGraph, or None with result.errors set
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from .defs import (
    FILTER_OPS,
    OPERATIONS,
    SCALAR_TYPES,
    AuthRule,
    EntityDef,
    FieldDef,
    RelationDef,
    TypeGraph,
)
from .errors import GraphConfigError
from .utils import is_identifier

logger = logging.getLogger(__name__)

# "String", "String!", "[String]", "[String!]!"
_TYPE_PATTERN = re.compile(r'^(\[)?\s*([A-Za-z_][A-Za-z0-9_]*)\s*!?\s*(\])?\s*(!)?$')
_CLAIM_PATH_PATTERN = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$')


@dataclass
class CompilationError:
    """Single compilation error."""
    entity: Optional[str]
    field: Optional[str]
    message: str

    def __str__(self) -> str:
        parts = []
        if self.entity:
            parts.append(self.entity)
        if self.field:
            parts.append(self.field)
        location = ".".join(parts) if parts else "global"
        return f"[{location}] {self.message}"


@dataclass
class CompilationResult:
    """Result of compilation."""
    success: bool
    graph: Optional[TypeGraph] = None
    errors: list[CompilationError] = field(default_factory=list)

    def error_messages(self) -> list[str]:
        """Get all error messages as strings."""
        return [str(e) for e in self.errors]


class TypeGraphCompiler:
    """
    Compiles a type graph definition into immutable definitions.

    Performs validation:
    - Entity, field and relationship type names are Cypher identifiers
    - Field types are known scalars
    - Relationship targets exist
    - Key fields exist
    - Auth rules name known operations, fields and well-formed claim paths
    """

    def __init__(self):
        self.errors: list[CompilationError] = []

    def compile(self, definition: Mapping[str, Any]) -> CompilationResult:
        """
        Compile a definition to a TypeGraph.

        Args:
            definition: Mapping with an "entities" key

        Returns:
            CompilationResult with either graph or errors
        """
        self.errors = []

        raw_entities = definition.get("entities") or {}
        if not isinstance(raw_entities, Mapping):
            self._add_error("'entities' must be a mapping")
            return CompilationResult(success=False, errors=self.errors)

        entities: dict[str, EntityDef] = {}
        for name, raw in raw_entities.items():
            entity = self._build_entity(name, raw or {})
            if entity is not None:
                entities[name] = entity

        # Relationship targets and relation-path allow rules need every entity
        for entity in entities.values():
            self._validate_relations(entity, entities)

        if self.errors:
            return CompilationResult(success=False, graph=None, errors=self.errors)

        logger.debug(f"Compiled type graph with {len(entities)} entities")
        return CompilationResult(success=True, graph=TypeGraph(entities=entities))

    def _add_error(
        self,
        message: str,
        entity: Optional[str] = None,
        field: Optional[str] = None,
    ):
        """Add a compilation error."""
        self.errors.append(CompilationError(entity=entity, field=field, message=message))

    def _build_entity(self, name: str, raw: Mapping[str, Any]) -> Optional[EntityDef]:
        if not is_identifier(name):
            self._add_error("Entity name must be an identifier", entity=name)
            return None

        fields: dict[str, FieldDef] = {}
        for field_name, raw_field in (raw.get("fields") or {}).items():
            field_def = self._build_field(name, field_name, raw_field)
            if field_def is not None:
                fields[field_name] = field_def

        relations: dict[str, RelationDef] = {}
        for rel_name, raw_rel in (raw.get("relations") or {}).items():
            if rel_name in fields:
                self._add_error("Relationship name clashes with a field", entity=name, field=rel_name)
                continue
            relation = self._build_relation(name, rel_name, raw_rel or {})
            if relation is not None:
                relations[rel_name] = relation

        keys = tuple(raw.get("keys") or ())
        for key in keys:
            if key not in fields:
                self._add_error(f"Key '{key}' not in fields", entity=name)

        auth = self._build_rules(name, None, raw.get("auth"))

        return EntityDef(
            name=name,
            fields=fields,
            relations=relations,
            auth=auth,
            keys=keys,
        )

    def _build_field(self, entity: str, name: str, raw: Any) -> Optional[FieldDef]:
        if not is_identifier(name):
            self._add_error("Field name must be an identifier", entity=entity, field=name)
            return None

        if isinstance(raw, str):
            raw = {"type": raw}
        elif not isinstance(raw, Mapping):
            self._add_error("Field definition must be a type string or mapping", entity=entity, field=name)
            return None

        match = _TYPE_PATTERN.match(str(raw.get("type", "String")))
        if not match or bool(match.group(1)) != bool(match.group(3)):
            self._add_error(f"Invalid type '{raw.get('type')}'", entity=entity, field=name)
            return None

        is_list = bool(match.group(1))
        scalar = match.group(2)
        if scalar not in SCALAR_TYPES:
            self._add_error(
                f"Invalid type '{scalar}', must be one of {SCALAR_TYPES}",
                entity=entity,
                field=name,
            )
            return None

        # Non-null marker: "String!" or "[String]!"
        type_text = str(raw.get("type", "String")).strip()
        nullable = raw.get("nullable", not type_text.endswith("!"))

        filters = tuple(raw.get("filters", FILTER_OPS))
        for op in filters:
            if op not in FILTER_OPS:
                self._add_error(f"Invalid filter operator '{op}'", entity=entity, field=name)

        computed = raw.get("computed")
        if computed is not None and not isinstance(computed, str):
            self._add_error("'computed' must be a Cypher statement", entity=entity, field=name)
            computed = None

        return FieldDef(
            name=name,
            type=scalar,
            nullable=bool(nullable),
            is_list=is_list,
            filters=() if computed else filters,
            sortable=bool(raw.get("sortable", computed is None)),
            autogenerate=bool(raw.get("autogenerate", False)),
            computed=computed,
            auth=self._build_rules(entity, name, raw.get("auth")),
        )

    def _build_relation(self, entity: str, name: str, raw: Mapping[str, Any]) -> Optional[RelationDef]:
        if not is_identifier(name):
            self._add_error("Relationship name must be an identifier", entity=entity, field=name)
            return None

        rel_type = raw.get("type")
        target = raw.get("target")
        if not rel_type or not is_identifier(str(rel_type)):
            self._add_error("Missing or invalid relationship type", entity=entity, field=name)
            return None
        if not target:
            self._add_error("Missing target", entity=entity, field=name)
            return None

        direction = str(raw.get("direction", "OUT")).upper()
        if direction not in ("OUT", "IN"):
            self._add_error(f"Invalid direction '{direction}', must be 'OUT' or 'IN'", entity=entity, field=name)

        cardinality = raw.get("cardinality", "many")
        if cardinality not in ("one", "many"):
            self._add_error(
                f"Invalid cardinality '{cardinality}', must be 'one' or 'many'",
                entity=entity,
                field=name,
            )

        properties: dict[str, FieldDef] = {}
        for prop_name, raw_prop in (raw.get("properties") or {}).items():
            prop = self._build_field(entity, prop_name, raw_prop)
            if prop is not None:
                properties[prop_name] = prop

        return RelationDef(
            name=name,
            type=str(rel_type),
            target=str(target),
            direction=direction,
            cardinality=cardinality,
            properties=properties,
            auth=self._build_rules(entity, name, raw.get("auth")),
        )

    def _build_rules(self, entity: str, field_name: Optional[str], raw: Any) -> tuple[AuthRule, ...]:
        if not raw:
            return ()
        if isinstance(raw, Mapping):
            raw = [raw]

        rules: list[AuthRule] = []
        for raw_rule in raw:
            operations = tuple(raw_rule.get("operations", OPERATIONS))
            for op in operations:
                if op not in OPERATIONS:
                    self._add_error(f"Invalid auth operation '{op}'", entity=entity, field=field_name)

            allow = raw_rule.get("allow") or {}
            if not isinstance(allow, Mapping):
                self._add_error("'allow' must be a mapping", entity=entity, field=field_name)
                allow = {}

            rules.append(AuthRule(
                operations=operations,
                is_authenticated=bool(raw_rule.get("is_authenticated", raw_rule.get("isAuthenticated", False))),
                roles=tuple(raw_rule.get("roles") or ()),
                allow=dict(allow),
            ))
        return tuple(rules)

    def _validate_relations(self, entity: EntityDef, entities: Mapping[str, EntityDef]):
        """Validate relationship targets and the allow mappings that traverse them."""
        for rel_name, relation in entity.relations.items():
            if relation.target not in entities:
                self._add_error(f"Unknown target entity '{relation.target}'", entity=entity.name, field=rel_name)

        self._validate_rules(entity, entity.auth, entities, entity.name)
        for field_def in entity.fields.values():
            self._validate_rules(entity, field_def.auth, entities, f"{entity.name}.{field_def.name}")
        for relation in entity.relations.values():
            target = entities.get(relation.target)
            if target is not None:
                self._validate_rules(target, relation.auth, entities, f"{entity.name}.{relation.name}")

    def _validate_rules(self, entity: EntityDef, rules, entities, location: str):
        for rule in rules:
            for role in rule.roles:
                if not isinstance(role, str):
                    self._add_error(f"Role '{role}' must be a string", entity=location)
            self._validate_allow(entity, rule.allow, entities, location)

    def _validate_allow(self, entity: EntityDef, allow: Mapping[str, Any], entities, location: str):
        for key, value in allow.items():
            if isinstance(value, Mapping):
                relation = entity.relations.get(key)
                target = entities.get(relation.target) if relation else None
                if target is None:
                    self._add_error(f"Allow references unknown relationship '{key}' on {entity.name}", entity=location)
                    continue
                self._validate_allow(target, value, entities, location)
                continue

            if key not in entity.fields or entity.fields[key].computed:
                self._add_error(f"Allow references unknown field '{key}' on {entity.name}", entity=location)
            if not isinstance(value, str) or not _CLAIM_PATH_PATTERN.match(value):
                self._add_error(f"Invalid claim path '{value}'", entity=location, field=key)


def compile_type_graph(definition: Mapping[str, Any]) -> TypeGraph:
    """
    Compile a type graph definition, raising on any error.

    Raises:
        GraphConfigError: listing every validation problem
    """
    result = TypeGraphCompiler().compile(definition)
    if not result.success:
        messages = result.error_messages()
        raise GraphConfigError(f"Invalid type graph: {'; '.join(messages)}", errors=messages)
    return result.graph
