"""
Relationship pattern text.
"""

from __future__ import annotations

from typing import Optional

from ..core.defs import RelationDef
from ..core.utils import escape_name


def relationship_pattern(
    from_var: str,
    relation: RelationDef,
    to_var: str,
    to_label: Optional[str] = None,
    rel_var: str = "",
) -> str:
    """
    Build the path pattern for one relationship hop.

    OUT: (this)-[:HAS_POST]->(this_posts:Post)
    IN:  (this)<-[:HAS_POST]-(this_author:Person)
    """
    target = f"{to_var}:{escape_name(to_label)}" if to_label else to_var
    edge = f"[{rel_var}:{escape_name(relation.type)}]"
    if relation.direction == "IN":
        return f"({from_var})<-{edge}-({target})"
    return f"({from_var})-{edge}->({target})"
