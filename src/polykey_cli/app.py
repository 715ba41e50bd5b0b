"""Typer application and CLI entry point for polykey_cli.

This module wires together the top-level ``pk`` Typer application and
registers the command groups (``agent``, ``identities``, ``keys``,
``nodes``, ``notifications``, ``secrets``, ``vaults``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
:class:`~polykey_cli.exceptions.PolykeyCLIError` exits with the error's
exit code; any other exception is written to a crash log under the data
directory.

See Also:
    :mod:`polykey_cli.config`: Node path and client option resolution.
    :mod:`polykey_cli.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer

from polykey_cli import __version__
from polykey_cli.config import ENV_CLIENT_HOST, ENV_CLIENT_PORT, ENV_NODE_ID, ENV_NODE_PATH
from polykey_cli.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED
from polykey_cli.output import OutputFormat


app = typer.Typer(
    name="pk",
    help="Polykey CLI: manage secrets, keys and identities through a Polykey agent.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

# ------------------------------------------------------------------ #
# Command groups
# ------------------------------------------------------------------ #

from polykey_cli.commands.agent import agent_app  # noqa: E402
from polykey_cli.commands.identities import identities_app  # noqa: E402
from polykey_cli.commands.keys import keys_app  # noqa: E402
from polykey_cli.commands.nodes import nodes_app  # noqa: E402
from polykey_cli.commands.notifications import notifications_app  # noqa: E402
from polykey_cli.commands.secrets import secrets_app  # noqa: E402
from polykey_cli.commands.vaults import vaults_app  # noqa: E402

app.add_typer(agent_app, name="agent")
app.add_typer(identities_app, name="identities")
app.add_typer(keys_app, name="keys")
app.add_typer(nodes_app, name="nodes")
app.add_typer(notifications_app, name="notifications")
app.add_typer(secrets_app, name="secrets")
app.add_typer(vaults_app, name="vaults")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"pk {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    node_path: Optional[Path] = typer.Option(
        None,
        "--node-path",
        envvar=ENV_NODE_PATH,
        help="Path to the Polykey node state. Defaults to the platform data directory.",
    ),
    node_id: Optional[str] = typer.Option(
        None, "--node-id", envvar=ENV_NODE_ID, help="Id of the agent to connect to."
    ),
    client_host: Optional[str] = typer.Option(
        None, "--client-host", envvar=ENV_CLIENT_HOST, help="Client service host of the agent."
    ),
    client_port: Optional[int] = typer.Option(
        None,
        "--client-port",
        envvar=ENV_CLIENT_PORT,
        min=0,
        max=65535,
        help="Client service port of the agent.",
    ),
    password_file: Optional[Path] = typer.Option(
        None, "--password-file", help="Path to a file containing the password."
    ),
    output_format: OutputFormat = typer.Option(
        OutputFormat.HUMAN, "--format", "-f", help="Output format."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
    no_input: bool = typer.Option(
        False, "--no-input", help="Never prompt for a password; fail instead."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~polykey_cli.output.OutputManager` from
    CLI flags and stores the agent connection options in the Typer context
    so that sub-commands can read them via ``ctx.obj``.
    """
    from polykey_cli.config import get_default_node_path
    from polykey_cli.output import OutputManager, set_output

    set_output(OutputManager(format=output_format, no_color=no_color, verbose=verbose))

    ctx.ensure_object(dict)
    ctx.obj["node_path"] = node_path or get_default_node_path()
    ctx.obj["node_id"] = node_id
    ctx.obj["client_host"] = client_host
    ctx.obj["client_port"] = client_port
    ctx.obj["password_file"] = password_file
    ctx.obj["no_input"] = no_input
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from polykey_cli.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``pk`` console script.

    Unhandled :class:`~polykey_cli.exceptions.PolykeyCLIError` instances
    cause a clean exit with the error's ``exit_code``. All other exceptions
    produce a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as exc:
        from polykey_cli.exceptions import PolykeyCLIError
        from polykey_cli.output import error

        if isinstance(exc, PolykeyCLIError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
