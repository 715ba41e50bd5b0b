"""Nodes commands -- the agent's node graph.

``find`` and ``ping`` exit non-zero when the node cannot be reached so
that scripts can branch on the exit code alone.
"""

from __future__ import annotations

from typing import Any

import typer

from polykey_cli.commands._common import agent_session, typer_parser
from polykey_cli.exceptions import NodeFindFailedError, NodePingFailedError, RemoteError
from polykey_cli.output import get_output, print_dict, print_list
from polykey_cli.parsers import parse_host, parse_node_id, parse_port

nodes_app = typer.Typer(no_args_is_help=True, help="Manage the node graph.")

NODE_NOT_FOUND = "ErrorNodeGraphNodeIdNotFound"


def build_address(host: str, port: int) -> str:
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


@nodes_app.command("add")
def nodes_add(
    ctx: typer.Context,
    node_id: str = typer.Argument(help="Id of the node to add.", parser=typer_parser(parse_node_id)),
    host: str = typer.Argument(help="Address of the node.", parser=typer_parser(parse_host)),
    port: int = typer.Argument(help="Port of the node.", parser=typer_parser(parse_port)),
    force: bool = typer.Option(
        False, "--force", help="Force adding node to the node graph."
    ),
    ping: bool = typer.Option(
        True, "--ping/--no-ping", help="Ping the node before adding it."
    ),
) -> None:
    """Add a node to the node graph."""
    with agent_session(ctx) as session:
        session.call(
            "nodesAdd",
            nodeIdEncoded=node_id,
            host=host,
            port=port,
            force=force,
            ping=ping,
        )


@nodes_app.command("claim")
def nodes_claim(
    ctx: typer.Context,
    node_id: str = typer.Argument(help="Id of the node to claim.", parser=typer_parser(parse_node_id)),
    force_invite: bool = typer.Option(
        False,
        "--force-invite",
        "-f",
        help="Send a gestalt invitation instead of claiming the node.",
    ),
) -> None:
    """Claim another keynode.

    If the other node has already invited this one, a cryptolink claim is
    made; otherwise a gestalt invitation notification is sent.
    """
    with agent_session(ctx) as session:
        response = session.call("nodesClaim", nodeIdEncoded=node_id, forceInvite=force_invite)

    if response.get("success"):
        message = f"Successfully generated a cryptolink claim on Keynode with ID {node_id}"
    else:
        message = f"Successfully sent Gestalt Invite notification to Keynode with ID {node_id}"
    print_list([message])


@nodes_app.command("find")
def nodes_find(
    ctx: typer.Context,
    node_id: str = typer.Argument(help="Id of the node to find.", parser=typer_parser(parse_node_id)),
) -> None:
    """Attempt to find a node.

    Exits with status 1 when the node is not in the node graph.

    Example::

        pk --format json nodes find vrsc24a1er424epq77dtoveo93meij0pc8ig4uvs9jbeld78n9nl0
    """
    result: dict[str, Any] = {
        "success": False,
        "message": "",
        "id": node_id,
        "address": {"host": "", "port": 0},
    }
    with agent_session(ctx) as session:
        try:
            response = session.call("nodesFind", nodeIdEncoded=node_id)
        except RemoteError as exc:
            if exc.error_type != NODE_NOT_FOUND:
                raise
            result["message"] = f"Failed to find node {node_id}"
        else:
            host, port = response["nodeAddress"]
            result["success"] = True
            result["address"] = {"host": host, "port": port}
            result["message"] = f"Found node at {build_address(host, port)}"

    if get_output().is_json:
        print_dict(result)
    else:
        print_list([result["message"]])
    if not result["success"]:
        raise NodeFindFailedError(result["message"])


@nodes_app.command("ping")
def nodes_ping(
    ctx: typer.Context,
    node_id: str = typer.Argument(help="Id of the node to ping.", parser=typer_parser(parse_node_id)),
) -> None:
    """Ping a node to check if it is online."""
    with agent_session(ctx) as session:
        response = session.call("nodesPing", nodeIdEncoded=node_id)

    success = bool(response and response.get("success"))
    status = {
        "success": success,
        "message": "Node is Active." if success else "No response received",
    }
    if get_output().is_json:
        print_dict(status)
    else:
        print_list([status["message"]])
    if not success:
        raise NodePingFailedError(status["message"])


@nodes_app.command("getall")
def nodes_getall(ctx: typer.Context) -> None:
    """List every node in the node graph."""
    with agent_session(ctx) as session:
        messages = session.collect("nodesGetAll")

    if get_output().is_json:
        print_list(messages)
        return
    lines = [
        f"NodeId {message['nodeIdEncoded']}, Address {address}, bucketIndex {message['bucketIndex']}"
        for message in messages
        for address in message.get("nodeContact", {})
    ]
    print_list(lines)
