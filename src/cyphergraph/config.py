"""
Configuration loading for cyphergraph projects.

Example cyphergraph.yaml:

    auth:
      secret: change-me
      algorithms: [HS256]
      roles_claim: roles
    entities:
      Person:
        keys: [id]
        fields:
          id: {type: ID, autogenerate: true}
          name: String
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from .core.compiler import compile_type_graph
from .core.defs import TypeGraph


@dataclass
class AuthConfig:
    """Credential verification settings passed to the deriver at construction."""
    secret: Optional[str] = None  # HMAC secret or PEM public key
    algorithms: list[str] = field(default_factory=lambda: ["HS256"])
    audience: Optional[str] = None
    issuer: Optional[str] = None
    roles_claim: str = "roles"  # dotted path, e.g. "realm_access.roles"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AuthConfig":
        return cls(
            secret=data.get("secret"),
            algorithms=list(data.get("algorithms", ["HS256"])),
            audience=data.get("audience"),
            issuer=data.get("issuer"),
            roles_claim=data.get("roles_claim", "roles"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "secret": self.secret,
            "algorithms": self.algorithms,
            "audience": self.audience,
            "issuer": self.issuer,
            "roles_claim": self.roles_claim,
        }


@dataclass
class CypherGraphConfig:
    """Main cyphergraph configuration."""
    auth: AuthConfig
    entities: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CypherGraphConfig":
        """Create config from dictionary."""
        return cls(
            auth=AuthConfig.from_dict(data.get("auth") or {}),
            entities=dict(data.get("entities") or {}),
        )

    def type_graph(self) -> TypeGraph:
        """Compile the configured entities into a TypeGraph."""
        return compile_type_graph({"entities": self.entities})

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary for YAML serialization."""
        return {
            "auth": self.auth.to_dict(),
            "entities": self.entities,
        }

    def save(self, path: Path | str = "cyphergraph.yaml") -> None:
        """Save configuration to YAML file."""
        path = Path(path)
        content = yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)
        path.write_text(content)


def load_config(path: Path | str = "cyphergraph.yaml") -> CypherGraphConfig | None:
    """Load configuration from YAML file."""
    path = Path(path)
    if not path.exists():
        return None

    data = yaml.safe_load(path.read_text()) or {}
    return CypherGraphConfig.from_dict(data)
