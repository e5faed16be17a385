"""
Core dataclass definitions for the cyphergraph type graph.

These define the schema structure for entities, fields, relationships and
the authorization rules attached to them. Instances are immutable once the
type graph is compiled and are shared read-only with the translation engine.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal, Mapping, Optional, Union

from .errors import SchemaMismatchError


OPERATIONS = ("read", "create", "update", "delete", "connect", "disconnect")

# Filter operators understood by the translation engine (field__op keys)
FILTER_OPS = (
    "eq", "ne", "in", "not_in", "gt", "gte", "lt", "lte",
    "contains", "icontains", "startswith", "endswith", "isnull",
)

SCALAR_TYPES = ("ID", "String", "Int", "Float", "Boolean", "DateTime", "Date", "Time", "JSON")


# A claim path ("sub", "org.id") or, for relation keys, a nested allow mapping
AllowValue = Union[str, Mapping[str, Any]]


@dataclass(frozen=True)
class AuthRule:
    """
    Declarative access predicate attached to an entity, field or relationship.

    All conditions of a rule must hold:
    - is_authenticated: the caller supplied verified credentials
    - roles: the caller holds at least one of the listed roles
    - allow: every field equals the claim at the given path; a relation
      name maps to a nested allow mapping evaluated on the related node
    """
    operations: tuple[str, ...] = OPERATIONS
    is_authenticated: bool = False
    roles: tuple[str, ...] = ()
    allow: Mapping[str, AllowValue] = field(default_factory=dict)

    def applies_to(self, operation: str) -> bool:
        return operation in self.operations


@dataclass(frozen=True)
class FieldDef:
    """Definition of an entity (or relationship property) field."""
    name: str
    type: str = "String"
    nullable: bool = True
    is_list: bool = False
    filters: tuple[str, ...] = FILTER_OPS
    sortable: bool = True
    autogenerate: bool = False  # populated with randomUUID() on create
    computed: Optional[str] = None  # Cypher statement, `this` bound to the node
    auth: tuple[AuthRule, ...] = ()


@dataclass(frozen=True)
class RelationDef:
    """
    Definition of a directed, typed relationship exposed as a field.

    Example: Person.posts -> (Person)-[:HAS_POST]->(Post)
    """
    name: str
    type: str  # relationship type, e.g. "HAS_POST"
    target: str  # target entity name
    direction: Literal["OUT", "IN"] = "OUT"
    cardinality: Literal["one", "many"] = "many"
    properties: Mapping[str, FieldDef] = field(default_factory=dict)
    auth: tuple[AuthRule, ...] = ()


@dataclass(frozen=True)
class EntityDef:
    """Complete definition of a node type."""
    name: str
    fields: Mapping[str, FieldDef]
    relations: Mapping[str, RelationDef] = field(default_factory=dict)
    auth: tuple[AuthRule, ...] = ()
    keys: tuple[str, ...] = ()

    @property
    def label(self) -> str:
        return self.name

    def has_field(self, name: str) -> bool:
        return name in self.fields or name in self.relations

    def get_field(self, name: str) -> FieldDef:
        """Get a scalar or computed field, failing on anything else."""
        field_def = self.fields.get(name)
        if field_def is None:
            raise SchemaMismatchError(self.name, f"field '{name}' not found")
        return field_def

    def get_relation(self, name: str) -> RelationDef:
        relation = self.relations.get(name)
        if relation is None:
            raise SchemaMismatchError(self.name, f"relationship '{name}' not found")
        return relation


@dataclass(frozen=True)
class TypeGraph:
    """The compiled type graph: every entity by name."""
    entities: Mapping[str, EntityDef]

    @property
    def entity_names(self) -> list[str]:
        return list(self.entities)

    def entity(self, name: str) -> EntityDef:
        entity = self.entities.get(name)
        if entity is None:
            raise SchemaMismatchError(name, "entity not found")
        return entity

    def to_dict(self) -> dict[str, Any]:
        """Plain representation used by the /__graph endpoint."""
        return {"entities": {name: asdict(entity) for name, entity in self.entities.items()}}
