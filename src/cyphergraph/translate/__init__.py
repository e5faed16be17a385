"""
Translation engine - compiles operations into Cypher text and parameters.
"""

from __future__ import annotations

from .compiled import CompiledQuery, CompileState
from .create import translate_create
from .delete import translate_delete
from .read import translate_read
from .update import translate_update

__all__ = [
    "CompiledQuery",
    "CompileState",
    "translate_create",
    "translate_read",
    "translate_update",
    "translate_delete",
]
