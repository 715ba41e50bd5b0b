"""Argument parsers for values the agent expects in a canonical form.

Each parser takes the raw command-line string and returns the parsed value
or raises :class:`~polykey_cli.exceptions.InvalidUsageError`. The Typer
commands adapt them with :func:`polykey_cli.commands._common.typer_parser`
so that a bad value is reported as a usage error.
"""

from __future__ import annotations

import base64
import binascii
import ipaddress
import re
from typing import NamedTuple, Optional

from polykey_cli.exceptions import InvalidUsageError

NODE_ID_BYTES = 32
_NODE_ID_PREFIX = "v"

_HOSTNAME_LABEL = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$")
_SECRET_PATH = re.compile(r"^([\w-]+):([\w\-\\/.$]+)$")


def encode_node_id(raw: bytes) -> str:
    """Encode raw node id bytes as multibase base32hex (``v`` prefix, lowercase, unpadded)."""
    encoded = base64.b32hexencode(raw).decode("ascii").rstrip("=").lower()
    return f"{_NODE_ID_PREFIX}{encoded}"


def decode_node_id(value: str) -> bytes | None:
    """Decode a multibase base32hex node id, or return ``None`` if it is not one."""
    if not value.startswith(_NODE_ID_PREFIX):
        return None
    body = value[len(_NODE_ID_PREFIX):].upper()
    padded = body + "=" * (-len(body) % 8)
    try:
        raw = base64.b32hexdecode(padded)
    except (binascii.Error, ValueError):
        return None
    if len(raw) != NODE_ID_BYTES:
        return None
    return raw


def parse_node_id(value: str) -> str:
    """Validate *value* as a node id and return its canonical encoding."""
    raw = decode_node_id(value.strip())
    if raw is None:
        raise InvalidUsageError(f"Node ID must be multibase base32hex encoded public-keys: {value}")
    return encode_node_id(raw)


def parse_host(value: str) -> str:
    """Validate *value* as an IP address or DNS hostname."""
    candidate = value.strip()
    if candidate.startswith("[") and candidate.endswith("]"):
        candidate = candidate[1:-1]
    try:
        return str(ipaddress.ip_address(candidate))
    except ValueError:
        pass
    hostname = candidate.rstrip(".")
    if hostname and len(hostname) <= 253 and all(
        _HOSTNAME_LABEL.match(label) for label in hostname.split(".")
    ):
        return hostname
    raise InvalidUsageError(f"Host must be an IP address or hostname: {value}")


def parse_port(value: str) -> int:
    """Validate *value* as a port number between 0 and 65535."""
    port = parse_integer(value)
    if not 0 <= port <= 65535:
        raise InvalidUsageError(f"Port must be a number between 0 and 65535 inclusive: {value}")
    return port


def parse_integer(value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        raise InvalidUsageError(f"Invalid integer: {value}") from None


class SecretPath(NamedTuple):
    vault_name: str
    secret_name: str


def parse_secret_path(value: str) -> SecretPath:
    """Split ``<vaultName>:<secretPath>`` into its two parts."""
    match = _SECRET_PATH.match(value.strip())
    if match is None:
        raise InvalidUsageError(
            f"Secret path must be of format <vaultName>:<directoryPath>: {value}"
        )
    return SecretPath(match.group(1), match.group(2))


def parse_provider_id(value: str) -> str:
    provider_id = value.strip()
    if not provider_id:
        raise InvalidUsageError("Provider ID must not be empty")
    return provider_id


class GestaltId(NamedTuple):
    """Either a node or a digital identity; exactly one side is set."""

    node_id: Optional[str] = None
    provider_id: Optional[str] = None
    identity_id: Optional[str] = None


def parse_gestalt_id(value: str) -> GestaltId:
    """Parse a node id or a ``<providerId>:<identityId>`` pair."""
    candidate = value.strip()
    raw = decode_node_id(candidate)
    if raw is not None:
        return GestaltId(node_id=encode_node_id(raw))
    provider_id, sep, identity_id = candidate.partition(":")
    if sep and provider_id and identity_id:
        return GestaltId(provider_id=provider_id, identity_id=identity_id)
    raise InvalidUsageError(
        f"Gestalt ID must be a node ID or <providerId>:<identityId>: {value}"
    )
