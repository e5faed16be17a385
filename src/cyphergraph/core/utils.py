"""
Utility functions for cyphergraph.

Includes:
- Case conversion and pluralization for generated operation names
- Cypher name escaping
- Whitespace normalization for query text comparison
"""

from __future__ import annotations

import re


# =============================================================================
# Naming utilities
# =============================================================================

_SNAKE_TO_CAMEL_PATTERN = re.compile(r'_([a-z])')
_LAST_WORD_PATTERN = re.compile(r'^(.*?)([A-Z]?[a-z0-9]*)$')

_IRREGULAR_PLURALS = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "mouse": "mice",
    "goose": "geese",
    "foot": "feet",
    "tooth": "teeth",
}


def to_camel_case(name: str) -> str:
    """
    Convert snake_case or PascalCase to camelCase.

    Examples:
        owned_properties -> ownedProperties
        BlogPosts -> blogPosts
        People -> people
    """
    camel = _SNAKE_TO_CAMEL_PATTERN.sub(lambda m: m.group(1).upper(), name)
    return camel[0].lower() + camel[1:] if camel else camel


def to_pascal_case(name: str) -> str:
    """
    Convert snake_case or camelCase to PascalCase.

    Examples:
        blog_post -> BlogPost
        blogPost -> BlogPost
    """
    camel = to_camel_case(name)
    return camel[0].upper() + camel[1:] if camel else camel


def _pluralize_word(word: str) -> str:
    lower = word.lower()
    if lower in _IRREGULAR_PLURALS:
        plural = _IRREGULAR_PLURALS[lower]
        return plural[0].upper() + plural[1:] if word[:1].isupper() else plural
    if lower.endswith("y") and len(lower) > 1 and lower[-2] not in "aeiou":
        return word[:-1] + "ies"
    if lower.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    return word + "s"


def pluralize(name: str) -> str:
    """
    Pluralize the last word of a PascalCase or camelCase name.

    Examples:
        Person -> People
        BlogPost -> BlogPosts
        Category -> Categories
    """
    match = _LAST_WORD_PATTERN.match(name)
    if not match or not match.group(2):
        return _pluralize_word(name)
    return match.group(1) + _pluralize_word(match.group(2))


# =============================================================================
# Cypher text utilities
# =============================================================================

_IDENTIFIER_PATTERN = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')
_WHITESPACE_PATTERN = re.compile(r'\s+')


def is_identifier(name: str) -> bool:
    """Check whether a name can appear unquoted in Cypher text."""
    return bool(_IDENTIFIER_PATTERN.match(name))


def escape_name(name: str) -> str:
    """
    Quote a label, relationship type or property name for Cypher.

    Plain identifiers are returned unchanged so generated text stays readable.
    """
    if is_identifier(name):
        return name
    return "`" + name.replace("`", "``") + "`"


def normalize_whitespace(text: str) -> str:
    """
    Collapse every run of whitespace to a single space.

    This is the normalization applied before comparing generated query text
    against expected fixtures.
    """
    return _WHITESPACE_PATTERN.sub(" ", text).strip()
