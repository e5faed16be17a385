"""
Tests for type graph compilation and validation.
"""
from __future__ import annotations

import pytest

from cyphergraph.core.compiler import TypeGraphCompiler, compile_type_graph
from cyphergraph.core.defs import AuthRule
from cyphergraph.core.errors import GraphConfigError, SchemaMismatchError


def test_compiles_entities_fields_and_relations(graph):
    assert graph.entity_names == ["Person", "Post"]

    person = graph.entity("Person")
    assert person.keys == ("id",)
    assert person.fields["id"].autogenerate is True
    assert person.fields["postCount"].computed is not None
    assert person.fields["postCount"].sortable is False

    posts = person.relations["posts"]
    assert posts.type == "HAS_POST"
    assert posts.target == "Post"
    assert posts.direction == "OUT"
    assert posts.cardinality == "many"
    assert set(posts.properties) == {"since"}

    author = graph.entity("Post").relations["author"]
    assert author.direction == "IN"
    assert author.cardinality == "one"


def test_type_strings():
    graph = compile_type_graph({
        "entities": {
            "Thing": {
                "fields": {
                    "a": "String!",
                    "b": "[String]",
                    "c": {"type": "Int", "filters": ["eq", "gt"]},
                },
            },
        },
    })
    fields = graph.entity("Thing").fields

    assert fields["a"].nullable is False
    assert fields["b"].is_list is True
    assert fields["b"].nullable is True
    assert fields["c"].filters == ("eq", "gt")


def test_auth_rules_accept_both_spellings():
    graph = compile_type_graph({
        "entities": {
            "Thing": {
                "fields": {"id": "ID"},
                "auth": [
                    {"operations": ["read"], "isAuthenticated": True},
                    {"is_authenticated": True, "roles": ["admin"]},
                ],
            },
        },
    })
    first, second = graph.entity("Thing").auth

    assert first == AuthRule(operations=("read",), is_authenticated=True)
    assert second.is_authenticated is True
    assert second.roles == ("admin",)
    assert second.applies_to("disconnect")


def test_reports_every_error_at_once():
    result = TypeGraphCompiler().compile({
        "entities": {
            "Person": {
                "keys": ["uuid"],
                "fields": {"name": "Text", "age": {"type": "Int", "filters": ["like"]}},
                "relations": {"posts": {"type": "HAS_POST", "target": "Missing"}},
                "auth": [{"operations": ["publish"], "allow": {"nickname": "sub"}}],
            },
        },
    })

    assert result.success is False
    assert result.graph is None
    messages = result.error_messages()
    assert any("Invalid type 'Text'" in m for m in messages)
    assert any("Invalid filter operator 'like'" in m for m in messages)
    assert any("Key 'uuid' not in fields" in m for m in messages)
    assert any("Unknown target entity 'Missing'" in m for m in messages)
    assert any("Invalid auth operation 'publish'" in m for m in messages)
    assert any("unknown field 'nickname'" in m for m in messages)


def test_error_location_format():
    result = TypeGraphCompiler().compile({"entities": {"Person": {"fields": {"name": "Text"}}}})

    assert str(result.errors[0]).startswith("[Person.name] ")


def test_invalid_relationship_settings():
    result = TypeGraphCompiler().compile({
        "entities": {
            "A": {
                "fields": {"id": "ID"},
                "relations": {
                    "b": {"type": "REL", "target": "A", "direction": "sideways"},
                    "c": {"type": "REL", "target": "A", "cardinality": "several"},
                    "d": {"target": "A"},
                },
            },
        },
    })

    messages = result.error_messages()
    assert any("Invalid direction 'SIDEWAYS'" in m for m in messages)
    assert any("Invalid cardinality 'several'" in m for m in messages)
    assert any("Missing or invalid relationship type" in m for m in messages)


def test_relation_allow_validated_against_target():
    result = TypeGraphCompiler().compile({
        "entities": {
            "Person": {"fields": {"id": "ID"}},
            "Post": {
                "fields": {"id": "ID"},
                "relations": {"author": {"type": "HAS_POST", "target": "Person", "direction": "IN"}},
                "auth": [{"allow": {"author": {"email": "email"}}}],
            },
        },
    })

    assert result.success is False
    assert any("unknown field 'email' on Person" in m for m in result.error_messages())


def test_invalid_claim_path():
    result = TypeGraphCompiler().compile({
        "entities": {"Person": {"fields": {"id": "ID"}, "auth": [{"allow": {"id": "not a path"}}]}},
    })

    assert any("Invalid claim path" in m for m in result.error_messages())


def test_relationship_name_clash():
    result = TypeGraphCompiler().compile({
        "entities": {
            "Person": {
                "fields": {"posts": "String"},
                "relations": {"posts": {"type": "HAS_POST", "target": "Person"}},
            },
        },
    })

    assert any("clashes with a field" in m for m in result.error_messages())


def test_compile_type_graph_raises_with_error_list():
    with pytest.raises(GraphConfigError) as exc_info:
        compile_type_graph({"entities": {"Person": {"fields": {"name": "Text"}}}})

    assert len(exc_info.value.errors) == 1
    assert "Invalid type graph" in str(exc_info.value)


def test_entity_lookup_fails_for_unknown_names(graph):
    with pytest.raises(SchemaMismatchError):
        graph.entity("Company")
    with pytest.raises(SchemaMismatchError):
        graph.entity("Person").get_relation("friends")


def test_to_dict_is_plain(graph):
    data = graph.to_dict()

    assert data["entities"]["Person"]["relations"]["posts"]["target"] == "Post"
    assert data["entities"]["Person"]["fields"]["email"]["auth"][0]["allow"] == {"id": "sub"}
