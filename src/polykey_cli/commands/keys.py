"""Keys commands -- encryption with node keys and key inspection.

``encrypt`` targets either another node (its Ed25519 public key is derived
from the node id) or a public JWK file. ``decrypt`` always uses the
agent's own private key.
"""

from __future__ import annotations

import base64
import json
from pathlib import Path
from typing import Any

import typer

from polykey_cli.commands._common import agent_session, read_binary_file
from polykey_cli.exceptions import PublicJWKFileReadError
from polykey_cli.output import get_output, print_dict
from polykey_cli.parsers import decode_node_id

keys_app = typer.Typer(no_args_is_help=True, help="Manage the agent's keys.")


def public_jwk_from_node_id(raw: bytes) -> dict[str, Any]:
    """Build the Ed25519 public JWK for a node from its raw id.

    A node id is the node's Ed25519 public key, so no lookup is needed.
    """
    x = base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")
    return {
        "alg": "EdDSA",
        "kty": "OKP",
        "crv": "Ed25519",
        "x": x,
        "ext": True,
        "key_ops": ["verify"],
    }


def read_public_jwk(path: Path) -> dict[str, Any]:
    """Load and sanity-check an Ed25519 public JWK from *path*.

    Raises:
        PublicJWKFileReadError: If the file is unreadable, not JSON, or not
            an Ed25519 public key.
    """
    try:
        jwk = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise PublicJWKFileReadError() from exc
    if not isinstance(jwk, dict) or jwk.get("kty") != "OKP" or jwk.get("crv") != "Ed25519":
        raise PublicJWKFileReadError()
    x = jwk.get("x")
    if not isinstance(x, str):
        raise PublicJWKFileReadError()
    try:
        key = base64.urlsafe_b64decode(x + "=" * (-len(x) % 4))
    except ValueError as exc:
        raise PublicJWKFileReadError() from exc
    if len(key) != 32:
        raise PublicJWKFileReadError()
    return jwk


@keys_app.command("encrypt")
def keys_encrypt(
    ctx: typer.Context,
    file_path: Path = typer.Argument(help="Path to the file to encrypt."),
    node_id_or_jwk_file: str = typer.Argument(
        help="NodeId or public JWK file of the recipient."
    ),
) -> None:
    """Encrypt a file for a node, or for the holder of a public JWK.

    Example::

        pk keys encrypt ./plain.txt vrsc24a1er424epq77dtoveo93meij0pc8ig4uvs9jbeld78n9nl0
        pk keys encrypt ./plain.txt ./their-key.jwk
    """
    plain_text = read_binary_file(file_path)
    raw = decode_node_id(node_id_or_jwk_file)
    if raw is not None:
        public_jwk = public_jwk_from_node_id(raw)
    else:
        public_jwk = read_public_jwk(Path(node_id_or_jwk_file))

    with agent_session(ctx) as session:
        response = session.call("keysEncrypt", publicKeyJwk=public_jwk, data=plain_text)

    if get_output().is_json:
        print_dict({"encryptedData": response["data"]})
    else:
        print_dict({"Encrypted data:": response["data"]})


@keys_app.command("decrypt")
def keys_decrypt(
    ctx: typer.Context,
    file_path: Path = typer.Argument(help="Path to the file to decrypt."),
) -> None:
    """Decrypt a file with the agent's private key."""
    cipher_text = read_binary_file(file_path)
    with agent_session(ctx) as session:
        response = session.call("keysDecrypt", data=cipher_text)

    if get_output().is_json:
        print_dict({"decryptedData": response["data"]})
    else:
        print_dict({"Decrypted data:": response["data"]})


@keys_app.command("public")
def keys_public(ctx: typer.Context) -> None:
    """Print the agent's public key as a JWK."""
    with agent_session(ctx) as session:
        response = session.call("keysPublicKey")
    print_dict(response["publicKeyJwk"])


@keys_app.command("cert")
def keys_cert(ctx: typer.Context) -> None:
    """Print the agent's current certificate in PEM format."""
    with agent_session(ctx) as session:
        response = session.call("keysCertsGet")
    print_dict({"cert": response["cert"]})
