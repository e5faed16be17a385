"""
Pydantic models for field selection.

A SelectionTree is the caller's requested shape for one operation: the
operation (or relationship field) name, its arguments, and the ordered list
of requested child fields, each optionally carrying a nested selection.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field


# Keys of the request format that describe shape rather than arguments
_SHAPE_KEYS = {"fields", "relations", "alias", "args"}


class SelectionTree(BaseModel):
    """
    Selection node - defines what to fetch at each level.

    Example (request format):
    {
        "where": {"name__icontains": "ada"},
        "limit": 10,
        "fields": ["id", "name"],
        "relations": {
            "posts": {"where": {"published": true}, "fields": ["title"]}
        }
    }
    """
    name: str
    alias: Optional[str] = None
    args: dict[str, Any] = Field(default_factory=dict)
    fields: list[SelectionTree] = Field(default_factory=list)

    @property
    def key(self) -> str:
        """Name the value is returned under."""
        return self.alias or self.name

    @property
    def field_names(self) -> list[str]:
        return [child.name for child in self.fields]

    def with_args(self, args: Optional[Mapping[str, Any]]) -> SelectionTree:
        """Return a copy with extra arguments merged over the existing ones."""
        if not args:
            return self
        return self.model_copy(update={"args": {**self.args, **args}})

    @classmethod
    def from_dict(cls, name: str, data: Optional[Mapping[str, Any]]) -> SelectionTree:
        """
        Parse a selection from the request format.

        "fields" lists plain names or single-key mappings {name: selection};
        "relations" maps relationship names to nested selections; every
        other key is an argument.
        """
        data = data or {}
        children: list[SelectionTree] = []

        for entry in data.get("fields") or []:
            if isinstance(entry, str):
                children.append(cls(name=entry))
            elif isinstance(entry, Mapping):
                for child_name, child_data in entry.items():
                    children.append(cls.from_dict(child_name, child_data))
            else:
                raise ValueError(f"Invalid field selection entry: {entry!r}")

        for rel_name, rel_data in (data.get("relations") or {}).items():
            children.append(cls.from_dict(rel_name, rel_data))

        args = dict(data.get("args") or {})
        args.update({key: value for key, value in data.items() if key not in _SHAPE_KEYS})

        return cls(name=name, alias=data.get("alias"), args=args, fields=children)


def resolve_selection(
    info: Any,
    name: str,
    args: Optional[Mapping[str, Any]] = None,
) -> SelectionTree:
    """
    Turn the execution engine's selection info into a SelectionTree.

    Accepts a SelectionTree, a mapping in the request format, or None.
    Handler arguments are merged over the selection's own arguments.
    """
    if isinstance(info, SelectionTree):
        tree = info
    elif isinstance(info, Mapping):
        tree = SelectionTree.from_dict(name, info)
    elif info is None:
        tree = SelectionTree(name=name)
    else:
        raise TypeError(f"Cannot resolve selection from {type(info).__name__}")
    return tree.with_args(args)
