"""
Tests for create compilation, including nested relationship input.
"""
from __future__ import annotations

import pytest

from cyphergraph.core.compiler import compile_type_graph
from cyphergraph.core.errors import SchemaMismatchError
from cyphergraph.core.selection import SelectionTree
from cyphergraph.runtime.context import ExecutionContext
from cyphergraph.translate import translate_create

from conftest import make_definition


def select(data, name="createPeople"):
    return SelectionTree.from_dict(name, data)


def test_single_create(person, context):
    query = translate_create(person, select({"input": {"name": "Ada"}, "fields": ["id", "name"]}), context)

    assert query.text == "\n".join([
        "CALL {",
        "CREATE (this0:Person)",
        "SET this0.name = $this0_name",
        "SET this0.id = randomUUID()",
        "RETURN this0",
        "}",
        "RETURN this0 { .id, .name } AS this0",
    ])
    assert query.params == {"this0_name": "Ada"}
    assert query.auth_dependent is False


def test_supplied_identity_is_not_generated(person, context):
    query = translate_create(person, select({"input": [{"id": "p-1", "name": "Ada"}], "fields": ["id"]}), context)

    assert "SET this0.id = $this0_id" in query.text
    assert "randomUUID()" not in query.text


def test_multiple_inputs_get_own_blocks(person, context):
    selection = select({"input": [{"name": "Ada"}, {"name": "Grace"}], "fields": ["name"]})

    query = translate_create(person, selection, context)

    assert query.text.count("CALL {") == 2
    assert "CREATE (this1:Person)" in query.text
    assert query.text.endswith("RETURN this0 { .name } AS this0, this1 { .name } AS this1")
    assert query.params == {"this0_name": "Ada", "this1_name": "Grace"}


def test_nested_create_and_connect(person, context):
    selection = select({
        "input": [{
            "name": "Ada",
            "posts": {
                "create": [{"title": "Hello"}],
                "connect": [{"where": {"id": "p1"}}],
            },
        }],
        "fields": ["id", "name"],
        "relations": {"posts": {"fields": ["title"]}},
    })

    query = translate_create(person, selection, context)

    assert query.text == "\n".join([
        "CALL {",
        "CREATE (this0:Person)",
        "SET this0.name = $this0_name",
        "SET this0.id = randomUUID()",
        "WITH this0",
        "CREATE (this0_posts0:Post)",
        "SET this0_posts0.title = $this0_posts0_title",
        "SET this0_posts0.id = randomUUID()",
        "MERGE (this0)-[:HAS_POST]->(this0_posts0)",
        "WITH this0",
        "OPTIONAL MATCH (this0_posts_connect0:Post)",
        "WHERE this0_posts_connect0.id = $this0_posts_connect0_id",
        "WITH this0, collect(this0_posts_connect0) AS this0_posts_connect0_nodes",
        "FOREACH(this0_posts_connect0 IN this0_posts_connect0_nodes | MERGE (this0)-[:HAS_POST]->(this0_posts_connect0))",
        "RETURN this0",
        "}",
        "RETURN this0 { .id, .name, posts: [ (this0)-[:HAS_POST]->(this0_posts:Post) | this0_posts { .title } ] } AS this0",
    ])
    assert query.params == {
        "this0_name": "Ada",
        "this0_posts0_title": "Hello",
        "this0_posts_connect0_id": "p1",
    }


def test_nested_create_with_edge_properties(person, context):
    selection = select({
        "input": {"name": "Ada", "posts": {"create": {"node": {"title": "Hi"}, "edge": {"since": 2020}}}},
        "fields": ["name"],
    })

    query = translate_create(person, selection, context)

    assert "MERGE (this0)-[this0_posts0_relationship:HAS_POST]->(this0_posts0)" in query.text
    assert "SET this0_posts0_relationship.since = $this0_posts0_relationship_since" in query.text
    assert query.params["this0_posts0_relationship_since"] == 2020


def test_connect_with_edge_properties(person, context):
    selection = select({
        "input": {"name": "Ada", "posts": {"connect": {"where": {"id": "p1"}, "edge": {"since": 2021}}}},
        "fields": ["name"],
    })

    query = translate_create(person, selection, context)

    assert (
        "FOREACH(this0_posts_connect0 IN this0_posts_connect0_nodes | "
        "MERGE (this0)-[this0_posts_connect0_relationship:HAS_POST]->(this0_posts_connect0) "
        "SET this0_posts_connect0_relationship.since = $this0_posts_connect0_relationship_since)"
    ) in query.text


def test_reverse_relationship_create(post, context):
    selection = select({"input": {"title": "Hi", "author": {"connect": {"where": {"id": "u1"}}}}, "fields": ["title"]}, name="createPosts")

    query = translate_create(post, selection, context)

    assert "MERGE (this0)<-[:HAS_POST]-(this0_author_connect0)" in query.text


def test_empty_input_fails(person, context):
    with pytest.raises(SchemaMismatchError, match="non-empty"):
        translate_create(person, select({"input": [], "fields": ["id"]}), context)


def test_unknown_input_field_fails(person, context):
    with pytest.raises(SchemaMismatchError, match="nickname"):
        translate_create(person, select({"input": {"nickname": "A"}, "fields": ["id"]}), context)


def test_computed_field_cannot_be_set(person, context):
    with pytest.raises(SchemaMismatchError, match="computed"):
        translate_create(person, select({"input": {"postCount": 3}, "fields": ["id"]}), context)


def test_connect_requires_where(person, context):
    with pytest.raises(SchemaMismatchError, match="requires a 'where'"):
        translate_create(person, select({"input": {"posts": {"connect": [{}]}}, "fields": ["id"]}), context)


def test_disconnect_not_supported_on_create(person, context):
    with pytest.raises(SchemaMismatchError, match="unsupported operations"):
        translate_create(
            person,
            select({"input": {"posts": {"disconnect": [{"where": {"id": "p1"}}]}}, "fields": ["id"]}),
            context,
        )


def test_unknown_edge_property_fails(person, context):
    with pytest.raises(SchemaMismatchError, match="no property 'weight'"):
        translate_create(
            person,
            select({"input": {"posts": {"create": {"node": {"title": "x"}, "edge": {"weight": 1}}}}, "fields": ["id"]}),
            context,
        )


class TestCreateAuthorization:

    @pytest.fixture
    def guarded(self):
        graph = compile_type_graph(make_definition(
            Person=[{"operations": ["create"], "allow": {"id": "sub"}}],
        ))
        return graph, ExecutionContext(graph=graph)

    def test_guard_checks_input_before_writing(self, guarded):
        graph, context = guarded

        query = translate_create(graph.entity("Person"), select({"input": {"id": "123", "name": "Ada"}, "fields": ["id"]}), context)

        assert query.text.startswith("WITH true AS authorized\nWHERE $this0_id = $auth.sub\nCALL {")
        assert query.auth_dependent is True

    def test_unsupplied_value_fails_closed(self, guarded):
        graph, context = guarded

        query = translate_create(graph.entity("Person"), select({"input": {"name": "Ada"}, "fields": ["id"]}), context)

        assert query.text.startswith("WITH true AS authorized\nWHERE false\nCALL {")

    def test_nested_create_rules_join_the_guard(self):
        graph = compile_type_graph(make_definition(
            Post=[{"operations": ["create"], "isAuthenticated": True}],
        ))
        context = ExecutionContext(graph=graph)

        query = translate_create(
            graph.entity("Person"),
            select({"input": {"name": "Ada", "posts": {"create": {"title": "Hi"}}}, "fields": ["name"]}),
            context,
        )

        assert query.text.startswith("WITH true AS authorized\nWHERE $auth.isAuthenticated = true\nCALL {")

    def test_connect_applies_target_connect_rules(self):
        graph = compile_type_graph(make_definition(
            Post=[{"operations": ["connect"], "roles": ["editor"]}],
        ))
        context = ExecutionContext(graph=graph)

        query = translate_create(
            graph.entity("Person"),
            select({"input": {"name": "Ada", "posts": {"connect": {"where": {"id": "p1"}}}}, "fields": ["name"]}),
            context,
        )

        assert (
            'WHERE this0_posts_connect0.id = $this0_posts_connect0_id AND any(r IN ["editor"] WHERE r IN $auth.roles)'
        ) in query.text
        assert query.auth_dependent is True

    def test_returned_fields_honour_read_rules(self, person, context):
        query = translate_create(person, select({"input": {"name": "Ada"}, "fields": ["email"]}), context)

        assert query.text == "\n".join([
            "CALL {",
            "CREATE (this0:Person)",
            "SET this0.name = $this0_name",
            "SET this0.id = randomUUID()",
            "RETURN this0",
            "}",
            "WITH this0",
            "WHERE this0.id = $auth.sub",
            "RETURN this0 { .email } AS this0",
        ])
        assert query.auth_dependent is True

    def test_read_rules_cover_every_created_node(self, person, context):
        query = translate_create(
            person,
            select({"input": [{"name": "Ada"}, {"name": "Grace"}], "fields": ["email"]}),
            context,
        )

        assert "WITH this0, this1\nWHERE this0.id = $auth.sub AND this1.id = $auth.sub\nRETURN" in query.text

    def test_unprotected_fields_are_returned_without_read_check(self, person, context):
        query = translate_create(person, select({"input": {"name": "Ada"}, "fields": ["name"]}), context)

        assert "$auth" not in query.text
