"""Shared test fixtures for polykey_cli.

Provides an isolated node path with a ``LIVE`` status file, a fake agent
served through :class:`httpx.MockTransport`, output state management and a
CLI runner. These fixtures are automatically discovered by pytest and
available to all test modules without explicit imports.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Optional, Union

import httpx
import pytest

from polykey_cli.auth.encoding import encode_auth_from_password, encode_auth_from_token
from polykey_cli.client import PolykeyClient
from polykey_cli.models import ClientOptions
from polykey_cli.output import reset_output
from polykey_cli.parsers import encode_node_id


AGENT_NODE_ID = encode_node_id(bytes(range(32)))
OTHER_NODE_ID = encode_node_id(bytes(range(32, 64)))


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager holds a Rich console bound to the sys.stderr that
    was current at creation time. When Typer's CliRunner redirects the
    streams and the test finishes, that reference becomes stale.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Environment isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep tests away from the real user environment.

    Clears every ``PK_*`` variable and points ``XDG_DATA_HOME`` at
    ``tmp_path/data`` so crash logs and default node paths stay inside the
    test's temporary directory.
    """
    for var in [
        "PK_NODE_PATH",
        "PK_NODE_ID",
        "PK_CLIENT_HOST",
        "PK_CLIENT_PORT",
        "PK_PASSWORD",
        "PK_TOKEN",
    ]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setenv("NO_COLOR", "1")
    return tmp_path


def write_status(node_path: Path, status: str = "LIVE", **data: Any) -> Path:
    """Write an agent ``status.json`` into *node_path*."""
    node_path.mkdir(parents=True, exist_ok=True)
    payload = {
        "status": status,
        "data": {
            "pid": 4242,
            "nodeId": AGENT_NODE_ID,
            "clientHost": "127.0.0.1",
            "clientPort": 1314,
            **data,
        },
    }
    path = node_path / "status.json"
    path.write_text(json.dumps(payload))
    return path


@pytest.fixture
def node_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """A node path holding a ``LIVE`` status file, exported as ``PK_NODE_PATH``."""
    path = tmp_path / "node"
    write_status(path)
    monkeypatch.setenv("PK_NODE_PATH", str(path))
    return path


@pytest.fixture
def client_options(node_path: Path) -> ClientOptions:
    return ClientOptions(
        node_path=str(node_path),
        node_id=AGENT_NODE_ID,
        client_host="127.0.0.1",
        client_port=1314,
    )


# ---------------------------------------------------------------------------
# Fake agent
# ---------------------------------------------------------------------------


class AgentError:
    """An error message the fake agent sends in place of a result."""

    def __init__(self, error_type: str, message: str = "", **data: Any) -> None:
        self.error_type = error_type
        self.message = message or error_type
        self.data = data

    def to_payload(self) -> dict[str, Any]:
        return {
            "code": -32000,
            "message": self.message,
            "data": {"type": self.error_type, **self.data},
        }


Message = Union[AgentError, Any]
Handler = Callable[[dict[str, Any]], list[Message]]


class FakeAgent:
    """In-process stand-in for the agent's JSON-RPC client service.

    Register handlers with :meth:`respond` (fixed messages) or :meth:`on`
    (a function of the request params). Every request body is recorded in
    :attr:`requests`.

    When :attr:`password` is set, calls must carry either that password or
    the current session :attr:`token`; otherwise the agent answers with
    ``ErrorClientAuthMissing`` / ``ErrorClientAuthDenied``. Successful
    authenticated calls return a refreshed ``Bearer`` token in
    ``metadata`` when :attr:`issue_tokens` is set.
    """

    def __init__(self) -> None:
        self.handlers: dict[str, Handler] = {}
        self.requests: list[dict[str, Any]] = []
        self.password: Optional[str] = None
        self.token = "session-token"
        self.issue_tokens = False

    def respond(self, method: str, *messages: Message) -> None:
        self.handlers[method] = lambda params: list(messages)

    def on(self, method: str, handler: Handler) -> None:
        self.handlers[method] = handler

    def calls(self, method: str) -> list[dict[str, Any]]:
        return [request for request in self.requests if request["method"] == method]

    def authorizations(self, method: Optional[str] = None) -> list[Optional[str]]:
        requests = self.calls(method) if method else self.requests
        return [request["params"]["metadata"].get("authorization") for request in requests]

    def _check_auth(self, params: dict[str, Any]) -> Optional[AgentError]:
        if self.password is None:
            return None
        authorization = params.get("metadata", {}).get("authorization")
        if authorization is None:
            return AgentError("ErrorClientAuthMissing", "Authorisation metadata is required")
        valid = (
            encode_auth_from_password(self.password),
            encode_auth_from_token(self.token),
        )
        if authorization not in valid:
            return AgentError("ErrorClientAuthDenied", "Incorrect password")
        return None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.requests.append(payload)
        params = payload.get("params", {})
        denial = self._check_auth(params)
        if denial is not None:
            messages: list[Message] = [denial]
        else:
            handler = self.handlers.get(payload["method"])
            if handler is None:
                messages = [AgentError("ErrorRPCHandlerMissing", f"No handler for {payload['method']}")]
            else:
                messages = handler(params)
        lines = []
        for message in messages:
            envelope: dict[str, Any] = {"jsonrpc": "2.0", "id": payload["id"]}
            if isinstance(message, AgentError):
                envelope["error"] = message.to_payload()
            else:
                if self.issue_tokens and isinstance(message, dict):
                    message = {
                        **message,
                        "metadata": {"authorization": encode_auth_from_token(self.token)},
                    }
                envelope["result"] = message
            lines.append(json.dumps(envelope))
        return httpx.Response(
            200,
            content="\n".join(lines).encode("utf-8"),
            headers={"content-type": "application/x-ndjson"},
        )


@pytest.fixture
def fake_agent(node_path: Path, monkeypatch: pytest.MonkeyPatch) -> FakeAgent:
    """A :class:`FakeAgent` wired into every command via ``create_client``."""
    agent = FakeAgent()
    transport = httpx.MockTransport(agent)

    def _create_client(options: ClientOptions) -> PolykeyClient:
        return PolykeyClient(options, transport=transport)

    monkeypatch.setattr("polykey_cli.commands._common.create_client", _create_client)
    return agent


class PromptRecorder:
    """Scripted replacement for the password prompt."""

    def __init__(self, answers: list[Optional[str]]) -> None:
        self.answers = list(answers)
        self.count = 0

    def __call__(self, *args: Any) -> Optional[str]:
        self.count += 1
        return self.answers.pop(0) if self.answers else None


@pytest.fixture
def scripted_prompt(monkeypatch: pytest.MonkeyPatch) -> Callable[..., PromptRecorder]:
    """Install a :class:`PromptRecorder` as the commands' password prompt."""

    def _install(*answers: Optional[str]) -> PromptRecorder:
        recorder = PromptRecorder(list(answers))
        monkeypatch.setattr("polykey_cli.commands._common.prompt_password", recorder)
        return recorder

    return _install


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
