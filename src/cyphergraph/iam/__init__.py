"""
IAM module - authorization parameter derivation.
"""

from __future__ import annotations

from .param import AuthParam, AuthParamDeriver, extract_token

__all__ = [
    "AuthParam",
    "AuthParamDeriver",
    "extract_token",
]
