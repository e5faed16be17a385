"""
Tests for authorization parameter derivation.
"""
from __future__ import annotations

import time

import pytest

from cyphergraph.config import AuthConfig
from cyphergraph.core.errors import UnauthorizedError
from cyphergraph.iam.param import AuthParam, AuthParamDeriver, extract_token
from cyphergraph.runtime.context import ExecutionContext

from conftest import SECRET, make_token


@pytest.fixture
def deriver(auth_config):
    return AuthParamDeriver(auth_config)


def test_no_credentials_is_unauthenticated(deriver):
    auth = deriver.derive(ExecutionContext())

    assert auth == AuthParam.unauthenticated()
    assert auth.to_param() == {"isAuthenticated": False, "roles": []}


def test_valid_token_is_flattened(deriver, token):
    auth = deriver.derive(ExecutionContext(credentials=f"Bearer {token}"))

    assert auth.is_authenticated is True
    assert auth.roles == ("admin",)
    param = auth.to_param()
    assert param["sub"] == "123"
    assert param["isAuthenticated"] is True
    assert param["roles"] == ["admin"]


def test_token_without_scheme_is_accepted(deriver, token):
    assert deriver(ExecutionContext(credentials=token)).claims["sub"] == "123"


def test_bad_signature_is_unauthorized(deriver):
    forged = make_token({"sub": "123"}, secret="other")

    with pytest.raises(UnauthorizedError):
        deriver.derive(ExecutionContext(credentials=f"Bearer {forged}"))


def test_expired_token_is_unauthorized(deriver):
    expired = make_token({"sub": "123", "exp": int(time.time()) - 60})

    with pytest.raises(UnauthorizedError):
        deriver.derive(ExecutionContext(credentials=f"Bearer {expired}"))


def test_malformed_token_is_unauthorized(deriver):
    with pytest.raises(UnauthorizedError):
        deriver.derive(ExecutionContext(credentials="Bearer not-a-token"))


def test_other_scheme_is_unauthorized(deriver):
    with pytest.raises(UnauthorizedError, match="Basic"):
        deriver.derive(ExecutionContext(credentials="Basic dXNlcjpwYXNz"))


def test_missing_key_is_unauthorized(token):
    with pytest.raises(UnauthorizedError, match="No verification key"):
        AuthParamDeriver(AuthConfig()).derive(ExecutionContext(credentials=f"Bearer {token}"))


def test_missing_key_without_credentials_is_fine():
    assert AuthParamDeriver().derive(ExecutionContext()).is_authenticated is False


def test_pre_verified_claims_are_trusted(deriver):
    auth = deriver.derive(ExecutionContext(claims={"sub": "9", "roles": "editor"}, credentials="garbage"))

    assert auth.is_authenticated is True
    assert auth.roles == ("editor",)
    assert auth.claims["sub"] == "9"


def test_nested_roles_claim():
    deriver = AuthParamDeriver(AuthConfig(secret=SECRET, roles_claim="realm_access.roles"))
    token = make_token({"sub": "1", "realm_access": {"roles": ["reader", "writer"]}})

    auth = deriver.derive(ExecutionContext(credentials=f"Bearer {token}"))

    assert auth.roles == ("reader", "writer")


def test_audience_and_issuer_are_checked():
    deriver = AuthParamDeriver(AuthConfig(secret=SECRET, audience="graph", issuer="https://id.example"))
    good = make_token({"sub": "1", "aud": "graph", "iss": "https://id.example"})
    wrong_audience = make_token({"sub": "1", "aud": "billing", "iss": "https://id.example"})

    assert deriver.derive(ExecutionContext(credentials=good)).claims["sub"] == "1"
    with pytest.raises(UnauthorizedError):
        deriver.derive(ExecutionContext(credentials=wrong_audience))


def test_derivation_is_deterministic(deriver, token):
    context = ExecutionContext(credentials=f"Bearer {token}")

    assert deriver.derive(context) == deriver.derive(context)


@pytest.mark.parametrize("credentials, expected", [
    (None, None),
    ("", None),
    ("   ", None),
    ("abc", "abc"),
    ("Bearer abc", "abc"),
    ("bearer abc", "abc"),
])
def test_extract_token(credentials, expected):
    assert extract_token(credentials) == expected


@pytest.mark.parametrize("credentials", ["Bearer", "bearer   "])
def test_empty_bearer_token_is_unauthorized(credentials):
    with pytest.raises(UnauthorizedError, match="Empty bearer token"):
        extract_token(credentials)


@pytest.mark.parametrize("roles", [5, True, {"admin": True}, None])
def test_non_list_roles_claim_means_no_roles(roles):
    auth = AuthParam.from_claims({"sub": "1", "roles": roles})

    assert auth.is_authenticated is True
    assert auth.roles == ()


def test_token_with_scalar_roles_claim_is_accepted(deriver):
    token = make_token({"sub": "1", "roles": 5})

    auth = deriver.derive(ExecutionContext(credentials=f"Bearer {token}"))

    assert auth.roles == ()
    assert auth.to_param()["roles"] == []
