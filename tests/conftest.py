"""
Shared fixtures: a small Person/Post type graph, recording drivers and
signed credentials.
"""
from __future__ import annotations

import copy
import time

import pytest
from jose import jwt

from cyphergraph.config import AuthConfig
from cyphergraph.core.compiler import compile_type_graph
from cyphergraph.runtime.context import ExecutionContext

SECRET = "secret"


BASE_DEFINITION = {
    "entities": {
        "Person": {
            "keys": ["id"],
            "fields": {
                "id": {"type": "ID", "autogenerate": True},
                "name": "String",
                "email": {
                    "type": "String",
                    "auth": [{"operations": ["read"], "allow": {"id": "sub"}}],
                },
                "postCount": {
                    "type": "Int",
                    "computed": "MATCH (this)-[:HAS_POST]->(p) RETURN count(p)",
                },
            },
            "relations": {
                "posts": {
                    "type": "HAS_POST",
                    "target": "Post",
                    "properties": {"since": "Int"},
                },
            },
        },
        "Post": {
            "keys": ["id"],
            "fields": {
                "id": {"type": "ID", "autogenerate": True},
                "title": "String",
                "published": "Boolean",
            },
            "relations": {
                "author": {
                    "type": "HAS_POST",
                    "target": "Person",
                    "direction": "IN",
                    "cardinality": "one",
                },
            },
        },
    }
}


def make_definition(**auth_by_entity) -> dict:
    """Copy of the base definition with entity-level auth rules attached."""
    definition = copy.deepcopy(BASE_DEFINITION)
    for entity, rules in auth_by_entity.items():
        definition["entities"][entity]["auth"] = rules
    return definition


def make_token(claims: dict, secret: str = SECRET) -> str:
    return jwt.encode(claims, secret, algorithm="HS256")


class FakeDriver:
    """Records every (query, parameters) pair and returns a fixed result."""

    def __init__(self, result=None):
        self.calls = []
        self.result = [] if result is None else result

    def run(self, query, parameters=None):
        self.calls.append((query, parameters))
        return self.result


class AsyncFakeDriver(FakeDriver):
    async def run(self, query, parameters=None):
        self.calls.append((query, parameters))
        return self.result


@pytest.fixture
def definition():
    return copy.deepcopy(BASE_DEFINITION)


@pytest.fixture
def graph(definition):
    return compile_type_graph(definition)


@pytest.fixture
def person(graph):
    return graph.entity("Person")


@pytest.fixture
def post(graph):
    return graph.entity("Post")


@pytest.fixture
def context(graph):
    return ExecutionContext(graph=graph)


@pytest.fixture
def driver():
    return FakeDriver()


@pytest.fixture
def auth_config():
    return AuthConfig(secret=SECRET)


@pytest.fixture
def token():
    return make_token({"sub": "123", "roles": ["admin"], "exp": int(time.time()) + 3600})
