"""
Handler tree variants.

The registry is a tree of three node kinds built explicitly during
composition:
- Namespace: named children (Query, Mutation, an entity's field handlers)
- Handler: an executable request handler
- Passthrough: a top-level value that is not a request handler (custom
  scalars, directives) and is never wrapped
"""

from __future__ import annotations

import weakref
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Union

from ..core.errors import GraphConfigError


# Functions produced by the wrapping layer, by identity. Copies made with
# functools.wraps share attributes with a wrapper but are not members.
_WRAPPERS: "weakref.WeakSet[Callable[..., Any]]" = weakref.WeakSet()


def mark_wrapped(fn: Callable[..., Any]) -> Callable[..., Any]:
    _WRAPPERS.add(fn)
    return fn


def is_wrapped(fn: Any) -> bool:
    """Whether fn is a wrapper created by the wrapping layer."""
    try:
        return fn in _WRAPPERS
    except TypeError:
        # unhashable callables are never wrappers
        return False


@dataclass(frozen=True)
class Handler:
    """
    Executable leaf.

    `wrapped` marks handlers that already enforce the context contract;
    `origin` keeps the handler as supplied, before wrapping.
    """
    fn: Callable[..., Any]
    wrapped: bool = False
    origin: Optional[Callable[..., Any]] = None

    def __call__(self, *args, **kwargs):
        return self.fn(*args, **kwargs)


@dataclass(frozen=True)
class Namespace:
    """Named group of handlers or nested namespaces."""
    entries: Mapping[str, "Node"] = field(default_factory=dict)

    def __contains__(self, name: str) -> bool:
        return name in self.entries

    def __getitem__(self, name: str) -> "Node":
        return self.entries[name]

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class Passthrough:
    """Top-level value handed to the execution engine untouched."""
    value: Any


Node = Union[Handler, Namespace, Passthrough]


def build_namespace(value: Any, path: str) -> Namespace:
    """
    Build a Namespace from a plain mapping of handlers.

    Raises:
        GraphConfigError: when the value is not a mapping of callables/mappings
    """
    if isinstance(value, Namespace):
        return value
    if not isinstance(value, Mapping):
        raise GraphConfigError(f"{path}: expected a mapping of handlers, got {type(value).__name__}")
    return Namespace(entries={
        name: build_node(entry, f"{path}.{name}")
        for name, entry in value.items()
    })


def build_node(value: Any, path: str) -> Node:
    if isinstance(value, (Handler, Namespace)):
        return value
    if isinstance(value, Mapping):
        return build_namespace(value, path)
    if callable(value):
        return Handler(fn=value, wrapped=is_wrapped(value))
    raise GraphConfigError(f"{path}: expected a handler or namespace, got {type(value).__name__}")


def to_plain(node: Node) -> Any:
    """Convert a tree back to plain dicts and callables."""
    if isinstance(node, Namespace):
        return {name: to_plain(entry) for name, entry in node.entries.items()}
    if isinstance(node, Handler):
        return node.fn
    return node.value
