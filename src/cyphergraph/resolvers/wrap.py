"""
Wrapping - enforce the context contract on every handler leaf.

Each wrapped handler, at call time:
1. fails with MissingConnectionError when the context has no driver
2. derives the authorization parameter exactly once
3. calls the original handler with a new context carrying it

Wrapping runs once over the final merged tree, so a handler is wrapped once
whichever side it came from. Handlers already wrapped are left as they are.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable, Union

from ..core.errors import MissingConnectionError
from ..runtime.context import ExecutionContext
from .registry import HandlerRegistry
from .tree import Handler, Namespace, Node, mark_wrapped

logger = logging.getLogger(__name__)


def wrap_handler(fn: Callable[..., Any], deriver: Callable[[ExecutionContext], Any]) -> Callable[..., Any]:
    """
    Wrap a single handler with calling shape (parent, args, context, info).

    The wrapper is synchronous: preconditions are checked before the
    handler runs, and an awaitable returned by the handler is passed back
    unchanged for the caller to await.
    """

    @functools.wraps(fn)
    def wrapper(parent, args, context, *rest, **kwargs):
        context = ExecutionContext.coerce(context)
        if context.driver is None:
            raise MissingConnectionError()

        auth = deriver(context)
        return fn(parent, args, context.with_auth(auth), *rest, **kwargs)

    return mark_wrapped(wrapper)


def wrap(tree: Union[Namespace, HandlerRegistry], deriver: Callable[[ExecutionContext], Any]):
    """
    Replace every unwrapped Handler in the tree with its wrapped form.

    Namespaces are descended into; passthrough values are left alone.
    Returns the same kind of object it was given.
    """
    if isinstance(tree, HandlerRegistry):
        return HandlerRegistry(wrap(tree.root, deriver))

    counter = {"wrapped": 0}
    result = _wrap_node(tree, deriver, counter)
    if counter["wrapped"]:
        logger.debug(f"Wrapped {counter['wrapped']} handlers")
    return result


def _wrap_node(node: Node, deriver, counter: dict[str, int]) -> Node:
    if isinstance(node, Handler):
        if node.wrapped:
            return node
        counter["wrapped"] += 1
        return Handler(fn=wrap_handler(node.fn, deriver), wrapped=True, origin=node.fn)

    if isinstance(node, Namespace):
        return Namespace(entries={
            name: _wrap_node(entry, deriver, counter)
            for name, entry in node.entries.items()
        })

    return node
