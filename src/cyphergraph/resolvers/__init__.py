"""
Resolver composition: merge generated handlers with overrides and wrap them.
"""

from .compose import compose, merge_handlers
from .registry import HandlerRegistry
from .tree import Handler, Namespace, Passthrough
from .wrap import wrap, wrap_handler

__all__ = [
    "compose",
    "merge_handlers",
    "wrap",
    "wrap_handler",
    "HandlerRegistry",
    "Handler",
    "Namespace",
    "Passthrough",
]
