"""Shared plumbing for commands that talk to the agent.

Every agent-facing command follows the same sequence:

1. Resolve :class:`~polykey_cli.models.ClientOptions` from the root
   options stored in ``ctx.obj``.
2. Compute the initial auth metadata with
   :func:`~polykey_cli.auth.process_authentication`.
3. Open a :class:`~polykey_cli.client.PolykeyClient` and route each call
   through a :class:`~polykey_cli.auth.RetryDriver`.

:func:`agent_session` bundles those steps into a context manager yielding
an :class:`AgentSession`.
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, TypeVar

import typer

from polykey_cli.auth import (
    AuthMetadata,
    CredentialAvailability,
    RetryDriver,
    process_authentication,
)
from polykey_cli.auth.prompt import prompt_password
from polykey_cli.client import PolykeyClient
from polykey_cli.config import get_default_node_path, resolve_client_options
from polykey_cli.exceptions import FileReadError, InvalidUsageError
from polykey_cli.models import ClientOptions

T = TypeVar("T")


def typer_parser(parse: Callable[[str], T]) -> Callable[[str], T]:
    """Adapt a :mod:`polykey_cli.parsers` function for Typer's ``parser=``.

    :class:`~polykey_cli.exceptions.InvalidUsageError` becomes
    :class:`typer.BadParameter` so Click reports it as a usage error.
    """

    @functools.wraps(parse)
    def _wrapper(value: str) -> T:
        try:
            return parse(value)
        except InvalidUsageError as exc:
            raise typer.BadParameter(str(exc)) from exc

    return _wrapper


def _root_options(ctx: typer.Context) -> dict[str, Any]:
    ctx.ensure_object(dict)
    return ctx.obj


def node_path_from(ctx: typer.Context) -> Path:
    """Return the node path chosen on the root command, or the platform default."""
    node_path = _root_options(ctx).get("node_path")
    return Path(node_path) if node_path else get_default_node_path()


def client_options_from(ctx: typer.Context) -> ClientOptions:
    opts = _root_options(ctx)
    return resolve_client_options(
        node_path_from(ctx),
        node_id=opts.get("node_id"),
        client_host=opts.get("client_host"),
        client_port=opts.get("client_port"),
    )


def create_client(options: ClientOptions) -> PolykeyClient:
    return PolykeyClient(options)


class AgentSession:
    """An open agent client plus the retry policy for this invocation.

    Args:
        client: The open client, reused across retry attempts.
        auth: Metadata for the first attempt of every call.
        driver: Retry driver holding the credential availability snapshot.
    """

    def __init__(self, client: PolykeyClient, auth: AuthMetadata, driver: RetryDriver) -> None:
        self.client = client
        self.auth = auth
        self.driver = driver

    def run(self, fn: Callable[[AuthMetadata], T]) -> T:
        """Run *fn* under the retry driver."""
        return self.driver.run(fn, self.auth)

    def call(self, method: str, **params: Any) -> Any:
        """Invoke a unary RPC method with authentication retry."""
        return self.run(lambda auth: self.client.call(method, auth, **params))

    def collect(self, method: str, **params: Any) -> list[Any]:
        """Invoke a streaming RPC method and collect every result, with retry."""
        return self.run(lambda auth: list(self.client.stream(method, auth, **params)))


@contextmanager
def agent_session(ctx: typer.Context) -> Iterator[AgentSession]:
    """Open an :class:`AgentSession` from the root command's options."""
    opts = _root_options(ctx)
    options = client_options_from(ctx)
    auth = process_authentication(opts.get("password_file"))
    availability = CredentialAvailability.from_environ(
        can_prompt=not opts.get("no_input", False)
    )
    driver = RetryDriver(availability, prompt=prompt_password)
    with create_client(options) as client:
        yield AgentSession(client, auth, driver)


def optional_int(value: Optional[str]) -> Optional[int | str]:
    """Pass ``all`` through and parse anything else as an integer."""
    if value is None or value == "all":
        return value
    try:
        return int(value)
    except ValueError:
        raise typer.BadParameter(f"Expected a number or 'all': {value}") from None


def read_binary_file(path: Path) -> str:
    """Read *path* as a binary string: one character per byte."""
    try:
        return path.read_bytes().decode("latin-1")
    except OSError as exc:
        raise FileReadError(f"Failed to read {path}: {exc.strerror or exc}") from exc


def binary_string_to_bytes(content: str) -> bytes:
    """Turn an agent binary string back into bytes.

    Each character stands for one byte. Characters above U+00FF keep only
    their low byte.
    """
    return bytes(ord(char) & 0xFF for char in content)
