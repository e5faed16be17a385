"""
Composition - merge generated handlers with caller overrides, then wrap.

Merge policy, applied in order:
1. Query / Mutation: shallow merge by operation name, custom wins
2. Subscription: a custom set wholly replaces the generated one,
   otherwise the namespace is absent
3. Entity namespaces (names in entity_names): field-by-field merge,
   custom wins
4. Any other top-level key: passthrough, never wrapped

Usage:
    registry = compose(
        {"Query": {"people": custom_people}},
        generate_handlers(graph),
        graph.entity_names,
        deriver=AuthParamDeriver(config.auth),
    )
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping, Optional

from ..core.errors import GraphConfigError
from .registry import HandlerRegistry
from .tree import Namespace, Node, Passthrough, build_namespace
from .wrap import wrap

logger = logging.getLogger(__name__)


OPERATION_NAMESPACES = ("Query", "Mutation")
SUBSCRIPTION = "Subscription"


def merge_handlers(
    custom: Optional[Mapping[str, Any]],
    generated: Optional[Mapping[str, Any]],
    entity_names: Iterable[str],
) -> Namespace:
    """
    Merge the two handler sets into one unwrapped tree.

    Raises:
        GraphConfigError: on a non-mapping namespace or non-callable leaf
    """
    custom = _as_mapping(custom, "custom handlers")
    generated = _as_mapping(generated, "generated handlers")
    entity_names = set(entity_names)

    root: dict[str, Node] = {}

    for name in OPERATION_NAMESPACES:
        if name in custom or name in generated:
            root[name] = _merge_namespace(generated.get(name), custom.get(name), name)

    if custom.get(SUBSCRIPTION):
        root[SUBSCRIPTION] = build_namespace(custom[SUBSCRIPTION], SUBSCRIPTION)

    for name in sorted(entity_names):
        if name in custom or name in generated:
            root[name] = _merge_namespace(generated.get(name), custom.get(name), name)

    reserved = set(OPERATION_NAMESPACES) | {SUBSCRIPTION} | entity_names
    for source in (generated, custom):
        for name, value in source.items():
            if name not in reserved:
                root[name] = Passthrough(value)

    return Namespace(entries=root)


def compose(
    custom: Optional[Mapping[str, Any]],
    generated: Optional[Mapping[str, Any]],
    entity_names: Iterable[str],
    *,
    deriver: Callable[..., Any],
) -> HandlerRegistry:
    """Merge, then wrap every handler exactly once."""
    merged = merge_handlers(custom, generated, entity_names)
    registry = HandlerRegistry(wrap(merged, deriver))

    overrides = _count_overrides(custom, generated)
    logger.info(
        f"Composed handler registry: {len(list(registry.handlers()))} handlers, "
        f"{overrides} custom overrides, namespaces {registry.namespaces}"
    )
    return registry


def _as_mapping(value: Any, label: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise GraphConfigError(f"{label}: expected a mapping, got {type(value).__name__}")
    return value


def _merge_namespace(generated: Any, custom: Any, path: str) -> Namespace:
    base = build_namespace(generated, path) if generated is not None else Namespace()
    if custom is None:
        return base
    overrides = build_namespace(custom, path)
    return Namespace(entries={**base.entries, **overrides.entries})


def _count_overrides(custom: Optional[Mapping[str, Any]], generated: Optional[Mapping[str, Any]]) -> int:
    count = 0
    for name, value in (custom or {}).items():
        existing = (generated or {}).get(name)
        if isinstance(value, Mapping) and isinstance(existing, Mapping):
            count += len(set(value) & set(existing))
    return count
