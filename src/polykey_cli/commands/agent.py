"""Agent commands -- inspect, stop, unlock and lock the running agent.

``pk agent status`` and ``pk agent stop`` consult the status file first so
that an agent which is not ``LIVE`` is reported without a network call.
``unlock`` / ``lock`` / ``lockall`` manage the session token kept in the
node path.
"""

from __future__ import annotations

import typer

from polykey_cli.auth import SessionTokenStore
from polykey_cli.commands._common import agent_session, node_path_from
from polykey_cli.config import read_status_file
from polykey_cli.exceptions import AgentNotRunningError
from polykey_cli.models import AgentStatus
from polykey_cli.output import info, print_dict, success

agent_app = typer.Typer(no_args_is_help=True, help="Agent process operations.")


def _has_remote_options(ctx: typer.Context) -> bool:
    opts = ctx.obj or {}
    return all(opts.get(key) is not None for key in ("node_id", "client_host", "client_port"))


@agent_app.command("status")
def agent_status(ctx: typer.Context) -> None:
    """Get the status of the agent.

    When the local status file shows anything other than ``LIVE`` only the
    status is printed. Otherwise the agent is asked for its details.

    Example::

        pk agent status
        pk --format json agent status
    """
    if not _has_remote_options(ctx):
        status_file = read_status_file(node_path_from(ctx))
        if status_file is None or status_file.status != AgentStatus.LIVE:
            status = status_file.status if status_file is not None else AgentStatus.DEAD
            print_dict({"status": status.value})
            return

    with agent_session(ctx) as session:
        response = session.call("agentStatus")

    data = {"status": AgentStatus.LIVE.value}
    data.update({key: value for key, value in response.items() if key != "metadata"})
    print_dict(data)


@agent_app.command("stop")
def agent_stop(ctx: typer.Context) -> None:
    """Stop the agent."""
    if not _has_remote_options(ctx):
        status_file = read_status_file(node_path_from(ctx))
        if status_file is None or status_file.status in (AgentStatus.STOPPING, AgentStatus.DEAD):
            info("Agent is already stopping or stopped")
            return
        if status_file.status == AgentStatus.STARTING:
            raise AgentNotRunningError("Agent is starting")

    with agent_session(ctx) as session:
        session.call("agentStop")
    success("Stopping agent")


@agent_app.command("unlock")
def agent_unlock(ctx: typer.Context) -> None:
    """Request a session token from the agent.

    The token returned by the agent is cached in the node path and reused
    by later commands until it expires or ``pk agent lock`` is run.
    """
    with agent_session(ctx) as session:
        session.call("agentUnlock")


@agent_app.command("lock")
def agent_lock(ctx: typer.Context) -> None:
    """Remove the cached session token for this node path."""
    SessionTokenStore(node_path_from(ctx)).clear()


@agent_app.command("lockall")
def agent_lockall(ctx: typer.Context) -> None:
    """Invalidate every session token issued by the agent, then lock locally."""
    with agent_session(ctx) as session:
        session.call("agentLockAll")
    SessionTokenStore(node_path_from(ctx)).clear()
