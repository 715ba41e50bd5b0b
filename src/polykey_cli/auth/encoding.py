"""Encoding of credentials into the ``authorization`` metadata of an RPC call.

Passwords are sent as ``Basic <base64(":" + password)>`` and session tokens
as ``Bearer <token>``, matching what the agent's client service expects.
All functions here are pure.
"""

from __future__ import annotations

import base64
from typing import Optional

AuthMetadata = dict[str, str]
"""Metadata attached to an outgoing call, e.g. ``{"authorization": "Basic ..."}``."""

AUTHORIZATION_KEY = "authorization"

_BASIC_PREFIX = "Basic "
_BEARER_PREFIX = "Bearer "


def encode_auth_from_password(password: str) -> str:
    """Encode *password* as a ``Basic`` authorization value.

    The username part is always empty, so the encoded payload is
    ``":" + password``.
    """
    encoded = base64.b64encode(f":{password}".encode("utf-8")).decode("ascii")
    return f"{_BASIC_PREFIX}{encoded}"


def encode_auth_from_token(token: str) -> str:
    """Encode a session *token* as a ``Bearer`` authorization value."""
    return f"{_BEARER_PREFIX}{token}"


def decode_auth_to_token(authorization: str) -> Optional[str]:
    """Return the token of a ``Bearer`` authorization value, or ``None``."""
    if not authorization.startswith(_BEARER_PREFIX):
        return None
    token = authorization[len(_BEARER_PREFIX):].strip()
    return token or None


def password_metadata(password: str) -> AuthMetadata:
    """Build fresh :data:`AuthMetadata` carrying *password*."""
    return {AUTHORIZATION_KEY: encode_auth_from_password(password)}


def token_metadata(token: str) -> AuthMetadata:
    """Build fresh :data:`AuthMetadata` carrying a session *token*."""
    return {AUTHORIZATION_KEY: encode_auth_from_token(token)}
