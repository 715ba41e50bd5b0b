"""polykey_cli -- command-line front-end for the Polykey agent.

The ``pk`` command connects to a locally or remotely running Polykey agent,
invokes a single RPC method per sub-command (agent, identities, keys, nodes,
notifications, secrets, vaults), formats the response, and exits.

Every agent call goes through :func:`polykey_cli.auth.retry_authentication`,
which transparently upgrades an unauthenticated call into an authenticated
one by prompting for the agent password when the session is attended.

Modules:
    app: Typer application and console-script entry point.
    auth: Credential resolution, auth metadata encoding, and the retry driver.
    client: JSON-RPC client for the agent.
    config: Node path resolution, client options, and password files.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes (sysexits conventions).
    output: stdout/stderr formatting system with Rich support.
    parsers: Argument parsers for node ids, hosts, ports, and secret paths.
"""

__version__ = "0.3.0"
