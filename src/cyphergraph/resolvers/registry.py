"""
Handler registry - the merged, wrapped handler tree handed to the
execution engine.

Built once at composition time and only read afterwards, so it can be
shared by any number of concurrent requests.
"""

from __future__ import annotations

from typing import Any, Callable, Iterator, Optional

from ..core.errors import GraphConfigError
from .tree import Handler, Namespace, Node, Passthrough, to_plain


class HandlerRegistry:
    """
    Read-only view over the handler tree.

    Usage:
        registry = compose(custom, generated, graph.entity_names, deriver=deriver)
        handler = registry.get("Query", "people")
        result = await handler(None, {}, context, selection)
    """

    def __init__(self, root: Namespace):
        self.root = root

    def __contains__(self, path: str) -> bool:
        return self._find(path) is not None

    @property
    def namespaces(self) -> list[str]:
        return [name for name, node in self.root.entries.items() if isinstance(node, Namespace)]

    def get(self, namespace: str, name: str) -> Optional[Callable[..., Any]]:
        """Get the executable handler at namespace.name, or None."""
        node = self._find(f"{namespace}.{name}")
        return node.fn if isinstance(node, Handler) else None

    def origin(self, namespace: str, name: str) -> Optional[Callable[..., Any]]:
        """Get the handler as it was supplied, before wrapping."""
        node = self._find(f"{namespace}.{name}")
        if not isinstance(node, Handler):
            return None
        return node.origin or node.fn

    def resolve(self, path: str) -> Callable[..., Any]:
        """
        Get the handler at a dotted path such as "Query.people".

        Raises:
            GraphConfigError: if no handler is registered at that path
        """
        node = self._find(path)
        if not isinstance(node, Handler):
            raise GraphConfigError(f"No handler registered at '{path}'")
        return node.fn

    def passthrough(self, name: str) -> Any:
        node = self.root.entries.get(name)
        return node.value if isinstance(node, Passthrough) else None

    def handlers(self) -> Iterator[tuple[str, Handler]]:
        """Iterate over (dotted path, Handler) for every leaf."""
        yield from _iter_handlers(self.root, "")

    def to_dict(self) -> dict[str, Any]:
        """Plain nested mapping for installing into an execution engine."""
        return to_plain(self.root)

    def _find(self, path: str) -> Optional[Node]:
        node: Node = self.root
        for part in path.split("."):
            if not isinstance(node, Namespace) or part not in node:
                return None
            node = node[part]
        return node


def _iter_handlers(node: Node, prefix: str) -> Iterator[tuple[str, Handler]]:
    if isinstance(node, Handler):
        yield prefix, node
    elif isinstance(node, Namespace):
        for name, entry in node.entries.items():
            yield from _iter_handlers(entry, f"{prefix}.{name}" if prefix else name)
