"""
Authorization parameter derivation.

Turns the caller's credentials into the flat claim map that compiled query
text references as `$auth`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from jose import JWTError, jwt

from ..config import AuthConfig
from ..core.errors import UnauthorizedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthParam:
    """
    Verified, flattened claims of the caller.

    Never absent: unauthenticated callers get the explicit sentinel from
    AuthParam.unauthenticated() so query text can always reference $auth.
    """
    is_authenticated: bool
    roles: tuple[str, ...] = ()
    claims: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def unauthenticated(cls) -> "AuthParam":
        return cls(is_authenticated=False)

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any], roles_claim: str = "roles") -> "AuthParam":
        roles = _claim_at(claims, roles_claim)
        if isinstance(roles, str):
            roles = [roles]
        elif not isinstance(roles, (list, tuple)):
            roles = ()
        return cls(
            is_authenticated=True,
            roles=tuple(str(role) for role in roles or ()),
            claims=dict(claims),
        )

    def to_param(self) -> dict[str, Any]:
        """Parameter value bound as `auth`."""
        return {
            **self.claims,
            "isAuthenticated": self.is_authenticated,
            "roles": list(self.roles),
        }


def _claim_at(claims: Mapping[str, Any], path: str) -> Any:
    value: Any = claims
    for part in path.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(part)
    return value


def extract_token(credentials: Optional[str]) -> Optional[str]:
    """
    Get the raw token out of an Authorization value.

    "Bearer abc" and "abc" both give "abc"; blank values give None.

    Raises:
        UnauthorizedError: for an empty bearer token or any other
            authorization scheme
    """
    if credentials is None:
        return None
    credentials = credentials.strip()
    if not credentials:
        return None

    scheme, _, token = credentials.partition(" ")
    if not token:
        if scheme.lower() == "bearer":
            raise UnauthorizedError("Empty bearer token")
        return scheme
    if scheme.lower() != "bearer":
        raise UnauthorizedError(f"Unsupported authorization scheme '{scheme}'")
    return token.strip() or None


class AuthParamDeriver:
    """
    Derives the AuthParam for an execution context.

    Usage:
        deriver = AuthParamDeriver(AuthConfig(secret="..."))
        auth = deriver.derive(context)
    """

    def __init__(self, config: Optional[AuthConfig] = None):
        self.config = config or AuthConfig()

    def derive(self, context: Any) -> AuthParam:
        """
        Derive the authorization parameter.

        - Pre-verified claims on the context are trusted as-is
        - No credentials: unauthenticated sentinel, not an error
        - Credentials that fail verification: UnauthorizedError

        Raises:
            UnauthorizedError: if credentials are present but invalid
        """
        claims = getattr(context, "claims", None)
        if claims is not None:
            return AuthParam.from_claims(claims, self.config.roles_claim)

        token = extract_token(getattr(context, "credentials", None))
        if token is None:
            return AuthParam.unauthenticated()

        return AuthParam.from_claims(self.verify(token), self.config.roles_claim)

    def verify(self, token: str) -> dict[str, Any]:
        """Verify a token signature and standard claims, returning its claims."""
        if not self.config.secret:
            logger.warning("Credentials supplied but no verification key configured")
            raise UnauthorizedError("No verification key configured")

        try:
            return jwt.decode(
                token,
                self.config.secret,
                algorithms=self.config.algorithms,
                audience=self.config.audience,
                issuer=self.config.issuer,
                options={
                    "verify_aud": self.config.audience is not None,
                    "verify_iss": self.config.issuer is not None,
                },
            )
        except JWTError as e:
            logger.warning(f"Rejected credentials: {e}")
            raise UnauthorizedError(str(e)) from e

    __call__ = derive
