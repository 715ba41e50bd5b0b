"""Secrets commands -- reading and editing secrets inside vaults.

Secret paths are written ``<vaultName>:<path>``. File contents travel to
and from the agent as binary strings (one character per byte).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer

from polykey_cli.commands._common import (
    agent_session,
    binary_string_to_bytes,
    read_binary_file,
    typer_parser,
)
from polykey_cli.output import get_output, print_dict, print_list, print_raw
from polykey_cli.parsers import SecretPath, parse_secret_path

secrets_app = typer.Typer(no_args_is_help=True, help="Manage secrets in vaults.")

_SECRET_PATH_HELP = "Path to the secret, specified as <vaultName>:<directoryPath>."


def _secret_path_argument(help_text: str = _SECRET_PATH_HELP) -> Any:
    return typer.Argument(help=help_text, parser=typer_parser(parse_secret_path))


@secrets_app.command("get")
def secrets_get(
    ctx: typer.Context,
    secret_path: SecretPath = _secret_path_argument(),
) -> None:
    """Retrieve a secret from the given vault.

    The secret is written to stdout byte for byte, without a trailing
    newline, so it can be piped or redirected to a file.

    Example::

        pk secrets get myvault:passwords/db > db.txt
    """
    with agent_session(ctx) as session:
        response = session.call(
            "vaultsSecretsGet",
            nameOrId=secret_path.vault_name,
            secretName=secret_path.secret_name,
        )
    print_raw(binary_string_to_bytes(response["secretContent"]))


@secrets_app.command("list")
def secrets_list(
    ctx: typer.Context,
    vault_name: str = typer.Argument(help="Name of the vault to list secrets from."),
) -> None:
    """List all secrets in a vault."""
    with agent_session(ctx) as session:
        secrets = session.collect("vaultsSecretsList", nameOrId=vault_name)
    print_list([secret["secretName"] for secret in secrets])


@secrets_app.command("create")
def secrets_create(
    ctx: typer.Context,
    file_path: Path = typer.Argument(help="File path containing the secret to be added."),
    secret_path: SecretPath = _secret_path_argument(
        "Path to where the secret will be created, specified as <vaultName>:<directoryPath>."
    ),
) -> None:
    """Add a new secret to a vault from a local file."""
    content = read_binary_file(file_path)
    with agent_session(ctx) as session:
        session.call(
            "vaultsSecretsNew",
            nameOrId=secret_path.vault_name,
            secretName=secret_path.secret_name,
            secretContent=content,
        )


@secrets_app.command("update")
def secrets_update(
    ctx: typer.Context,
    file_path: Path = typer.Argument(help="File path containing the new secret contents."),
    secret_path: SecretPath = _secret_path_argument(),
) -> None:
    """Replace the contents of an existing secret with a local file."""
    content = read_binary_file(file_path)
    with agent_session(ctx) as session:
        session.call(
            "vaultsSecretsEdit",
            nameOrId=secret_path.vault_name,
            secretName=secret_path.secret_name,
            secretContent=content,
        )


@secrets_app.command("delete")
def secrets_delete(
    ctx: typer.Context,
    secret_path: SecretPath = _secret_path_argument(),
) -> None:
    """Delete a secret from a vault."""
    with agent_session(ctx) as session:
        session.call(
            "vaultsSecretsDelete",
            nameOrId=secret_path.vault_name,
            secretName=secret_path.secret_name,
        )


@secrets_app.command("mkdir")
def secrets_mkdir(
    ctx: typer.Context,
    secret_path: SecretPath = _secret_path_argument(
        "Path to the new directory, specified as <vaultName>:<directoryPath>."
    ),
    recursive: bool = typer.Option(
        False, "--recursive", "-r", help="Create parent directories as needed."
    ),
) -> None:
    """Create a directory inside a vault."""
    with agent_session(ctx) as session:
        session.call(
            "vaultsSecretsMkdir",
            nameOrId=secret_path.vault_name,
            dirName=secret_path.secret_name,
            recursive=recursive,
        )


@secrets_app.command("rename")
def secrets_rename(
    ctx: typer.Context,
    secret_path: SecretPath = _secret_path_argument(),
    new_name: str = typer.Argument(help="New name of the secret."),
) -> None:
    """Rename a secret within its vault."""
    with agent_session(ctx) as session:
        session.call(
            "vaultsSecretsRename",
            nameOrId=secret_path.vault_name,
            secretName=secret_path.secret_name,
            newSecretName=new_name,
        )


@secrets_app.command("dir")
def secrets_dir(
    ctx: typer.Context,
    directory: Path = typer.Argument(help="Directory of secrets to add to the vault."),
    vault_name: str = typer.Argument(help="Name of the vault to add the secrets to."),
) -> None:
    """Add every file in a directory to a vault.

    The directory is read by the agent, so the path is sent as an absolute
    path.
    """
    with agent_session(ctx) as session:
        session.call(
            "vaultsSecretsNewDir",
            nameOrId=vault_name,
            dirName=str(directory.resolve()),
        )


@secrets_app.command("stat")
def secrets_stat(
    ctx: typer.Context,
    secret_path: SecretPath = _secret_path_argument(),
) -> None:
    """Show the file system metadata of a secret."""
    with agent_session(ctx) as session:
        response = session.call(
            "vaultsSecretsStat",
            nameOrId=secret_path.vault_name,
            secretName=secret_path.secret_name,
        )

    stat = response["stat"]
    if get_output().is_json:
        print_dict(stat)
        return
    lines = [f'Stats for "{secret_path.secret_name}"']
    lines.extend(f"{key}: {value}" for key, value in stat.items())
    print_list(lines)
