"""
Tests for generated CRUD handlers.
"""
from __future__ import annotations

import pytest

from cyphergraph.core.selection import SelectionTree
from cyphergraph.runtime.context import ExecutionContext
from cyphergraph.runtime.handlers import generate_handlers, operation_names

from conftest import AsyncFakeDriver, FakeDriver

pytestmark = pytest.mark.asyncio


async def test_operation_names():
    assert operation_names("Person") == {
        "read": "people",
        "create": "createPeople",
        "update": "updatePeople",
        "delete": "deletePeople",
    }
    assert operation_names("Category")["read"] == "categories"
    assert operation_names("BlogPost")["create"] == "createBlogPosts"


async def test_generates_four_operations_per_entity(graph):
    handlers = generate_handlers(graph)

    assert set(handlers["Query"]) == {"people", "posts"}
    assert set(handlers["Mutation"]) == {
        "createPeople", "updatePeople", "deletePeople",
        "createPosts", "updatePosts", "deletePosts",
    }


async def test_read_handler_forwards_compiled_query(graph):
    driver = FakeDriver(result=[{"name": "Ada"}])
    people = generate_handlers(graph)["Query"]["people"]

    result = await people(None, {}, ExecutionContext(driver=driver, graph=graph), {"fields": ["name"]})

    assert result == [{"name": "Ada"}]
    assert driver.calls == [("MATCH (this:Person)\nRETURN this { .name } as this", {})]


async def test_handler_arguments_merge_over_selection(graph):
    driver = FakeDriver()
    people = generate_handlers(graph)["Query"]["people"]

    await people(None, {"where": {"name": "Ada"}}, ExecutionContext(driver=driver, graph=graph), {"fields": ["id"]})

    text, params = driver.calls[0]
    assert "WHERE this.name = $this_name" in text
    assert params == {"this_name": "Ada"}


async def test_async_driver_is_awaited(graph):
    driver = AsyncFakeDriver(result={"nodesDeleted": 1, "relationshipsDeleted": 0})
    delete = generate_handlers(graph)["Mutation"]["deletePeople"]

    result = await delete(
        None,
        {"where": {"id": "1"}},
        ExecutionContext(driver=driver, graph=graph),
        SelectionTree(name="deletePeople", fields=[SelectionTree(name="nodesDeleted")]),
    )

    assert result == {"nodesDeleted": 1, "relationshipsDeleted": 0}
    assert len(driver.calls) == 1


async def test_graph_is_filled_in_when_context_has_none(graph):
    driver = FakeDriver()
    create = generate_handlers(graph)["Mutation"]["createPosts"]

    await create(None, {"input": {"title": "Hi"}}, ExecutionContext(driver=driver), {"fields": ["title"]})

    text, params = driver.calls[0]
    assert "CREATE (this0:Post)" in text
    assert params == {"this0_title": "Hi"}


async def test_auth_bound_only_when_referenced(graph):
    driver = FakeDriver()
    people = generate_handlers(graph)["Query"]["people"]
    context = ExecutionContext(driver=driver, graph=graph)

    await people(None, {}, context, {"fields": ["name"]})
    await people(None, {}, context, {"fields": ["email"]})

    assert "auth" not in driver.calls[0][1]
    assert driver.calls[1][1]["auth"] == {"isAuthenticated": False, "roles": []}
