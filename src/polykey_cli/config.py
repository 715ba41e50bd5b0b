"""Local configuration: node paths, agent status, client options, password files.

This module handles all local state the CLI reads before contacting the
agent:

* **Directory layout** -- the platform default node path
  (:func:`get_default_node_path`) and the CLI's own data directory for crash
  logs (:func:`get_data_dir`). XDG Base Directory compliant on Linux/BSD.
* **Agent status** -- :func:`read_status_file` parses the ``status.json``
  file a running agent keeps in its node path.
* **Client options** -- :func:`resolve_client_options` merges CLI flags,
  environment variables (through Typer ``envvar=``) and the status file
  into a :class:`~polykey_cli.models.ClientOptions`.
* **Password files** -- :func:`read_password_file`.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from polykey_cli.exceptions import AgentNotRunningError, ConfigError, FileReadError
from polykey_cli.models import AgentStatus, AgentStatusFile, ClientOptions

_AGENT_NAME = "polykey"
_APP_NAME = "polykey-cli"

STATUS_FILENAME = "status.json"
TOKEN_FILENAME = "token"

ENV_NODE_PATH = "PK_NODE_PATH"
ENV_NODE_ID = "PK_NODE_ID"
ENV_CLIENT_HOST = "PK_CLIENT_HOST"
ENV_CLIENT_PORT = "PK_CLIENT_PORT"
ENV_PASSWORD = "PK_PASSWORD"
ENV_TOKEN = "PK_TOKEN"


# --- Platform path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform follows the XDG Base Directory layout (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def _platform_data_base() -> Path:
    system = platform.system()
    if system == "Darwin":
        return Path.home() / "Library" / "Application Support"
    if system == "Windows":
        local = os.environ.get("LOCALAPPDATA", "")
        return Path(local) if local else Path.home() / "AppData" / "Local"
    return _xdg_base("XDG_DATA_HOME", (".local", "share"))


def get_default_node_path() -> Path:
    """Return the platform default node path of the agent.

    On Linux/BSD: ``$XDG_DATA_HOME/polykey`` (default
    ``~/.local/share/polykey``). On macOS:
    ``~/Library/Application Support/polykey``. On Windows:
    ``%LOCALAPPDATA%/polykey``.

    The directory is not created; it belongs to the agent.
    """
    return _platform_data_base() / _AGENT_NAME


def get_data_dir() -> Path:
    """Return the CLI's own data directory (crash logs), creating it if necessary."""
    path = _platform_data_base() / _APP_NAME
    path.mkdir(parents=True, exist_ok=True)
    return path


def status_path(node_path: str | Path) -> Path:
    return Path(node_path) / STATUS_FILENAME


def token_path(node_path: str | Path) -> Path:
    return Path(node_path) / TOKEN_FILENAME


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. When *mode* is given
    the permissions are applied to the temp file before any content is
    written, so secrets are never readable by others, even momentarily.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close in finally
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Agent status ---


def read_status_file(node_path: str | Path) -> Optional[AgentStatusFile]:
    """Read the agent status file from *node_path*.

    Returns:
        The parsed :class:`~polykey_cli.models.AgentStatusFile`, or ``None``
        when no status file exists (the agent was never started there).

    Raises:
        ConfigError: If the file exists but is not valid status JSON.
    """
    path = status_path(node_path)
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return AgentStatusFile.model_validate(data)
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        raise ConfigError(f"Invalid status file at {path}: {exc}") from exc


def resolve_client_options(
    node_path: str | Path,
    node_id: Optional[str] = None,
    client_host: Optional[str] = None,
    client_port: Optional[int] = None,
) -> ClientOptions:
    """Resolve the address of the agent's client service.

    If *node_id*, *client_host* and *client_port* are all supplied they are
    used as-is (connecting to a remote agent). Otherwise the status file in
    *node_path* must report a ``LIVE`` agent, and its published values fill
    in whatever was not supplied explicitly.

    Raises:
        AgentNotRunningError: If the status file is missing or not ``LIVE``.
        ConfigError: If some option is still missing after merging.
    """
    node_path = str(node_path)
    if node_id is not None and client_host is not None and client_port is not None:
        return ClientOptions(
            node_path=node_path,
            node_id=node_id,
            client_host=client_host,
            client_port=client_port,
        )

    status = read_status_file(node_path)
    if status is None:
        raise AgentNotRunningError(f"Polykey agent is not running at {node_path}")
    if status.status != AgentStatus.LIVE:
        raise AgentNotRunningError(
            f"Polykey agent at {node_path} is {status.status.value}"
        )

    node_id = node_id if node_id is not None else status.data.node_id
    client_host = client_host if client_host is not None else status.data.client_host
    client_port = client_port if client_port is not None else status.data.client_port
    if node_id is None or client_host is None or client_port is None:
        raise ConfigError(
            "Missing client options: node id, client host and client port "
            "must be specified or published in the status file"
        )
    return ClientOptions(
        node_path=node_path,
        node_id=node_id,
        client_host=client_host,
        client_port=client_port,
    )


# --- Password files ---


def read_password_file(path: str | Path) -> str:
    """Read a password from *path*, stripping surrounding whitespace.

    Raises:
        FileReadError: If the file cannot be read.
    """
    file_path = Path(path).expanduser()
    try:
        return file_path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise FileReadError(f"Cannot read password file {file_path}: {exc}") from exc
