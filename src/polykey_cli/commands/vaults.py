"""Vaults commands -- history, permissions and sharing."""

from __future__ import annotations

from typing import Optional

import typer

from polykey_cli.commands._common import agent_session, typer_parser
from polykey_cli.output import print_list
from polykey_cli.parsers import parse_integer

vaults_app = typer.Typer(no_args_is_help=True, help="Manage vaults.")


@vaults_app.command("log")
def vaults_log(
    ctx: typer.Context,
    vault_name: str = typer.Argument(help="Name of the vault to obtain the log from."),
    depth: Optional[int] = typer.Option(
        None, "--depth", "-d", help="The number of commits to retrieve.", parser=typer_parser(parse_integer)
    ),
    commit_id: Optional[str] = typer.Option(
        None, "--commit-id", help="Id of the commit that will be checked out."
    ),
) -> None:
    """Get the version history of a vault."""
    with agent_session(ctx) as session:
        entries = session.collect("vaultsLog", nameOrId=vault_name, depth=depth, commitId=commit_id)

    lines: list[str] = []
    for entry in entries:
        lines.append(f"commit {entry['commitId']}")
        lines.append(f"committer {entry['committer']}")
        lines.append(f"Date: {entry['timestamp']}")
        lines.append(f"{entry['message']}")
    print_list(lines)


def _vaults_permissions(ctx: typer.Context, vault_name: str) -> None:
    with agent_session(ctx) as session:
        permissions = session.collect("vaultsPermissionGet", nameOrId=vault_name)

    lines = [
        f"{permission['nodeIdEncoded']}: {', '.join(permission['vaultPermissionList'])}"
        for permission in permissions
    ]
    print_list(lines or ["No permissions were found"])


@vaults_app.command("permissions")
def vaults_permissions(
    ctx: typer.Context,
    vault_name: str = typer.Argument(help="Name or ID of the vault."),
) -> None:
    """Show the permissions other nodes have on a vault."""
    _vaults_permissions(ctx, vault_name)


@vaults_app.command("perms", hidden=True)
def vaults_perms(
    ctx: typer.Context,
    vault_name: str = typer.Argument(help="Name or ID of the vault."),
) -> None:
    """Alias for ``permissions``."""
    _vaults_permissions(ctx, vault_name)


@vaults_app.command("scan")
def vaults_scan(
    ctx: typer.Context,
    node_id: str = typer.Argument(help="Id of the node to scan."),
) -> None:
    """Scan a node to reveal the vaults it shares with this node."""
    with agent_session(ctx) as session:
        vaults = session.collect("vaultsScan", nodeIdEncoded=node_id)

    print_list(
        [
            f"{vault['vaultName']}\t\t{vault['vaultIdEncoded']}\t\t{','.join(vault['permissions'])}"
            for vault in vaults
        ]
    )
