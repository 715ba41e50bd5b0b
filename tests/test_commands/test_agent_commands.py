"""Tests for the ``pk agent`` command group, including end-to-end auth retry."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from conftest import AGENT_NODE_ID, FakeAgent, write_status
from polykey_cli.app import app
from polykey_cli.auth import SessionTokenStore
from polykey_cli.auth.encoding import encode_auth_from_password, encode_auth_from_token
from polykey_cli.exceptions import (
    AgentNotRunningError,
    ClientAuthDeniedError,
    ClientAuthMissingError,
    PasswordMissingError,
)


STATUS_RESPONSE = {
    "pid": 4242,
    "nodeIdEncoded": AGENT_NODE_ID,
    "clientHost": "127.0.0.1",
    "clientPort": 1314,
}


class TestStatus:
    def test_live_agent_is_queried(self, cli_runner, fake_agent: FakeAgent) -> None:
        fake_agent.respond("agentStatus", STATUS_RESPONSE)

        result = cli_runner.invoke(app, ["--format", "json", "agent", "status"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == {"status": "LIVE", **STATUS_RESPONSE}

    def test_human_format(self, cli_runner, fake_agent: FakeAgent) -> None:
        fake_agent.respond("agentStatus", STATUS_RESPONSE)

        result = cli_runner.invoke(app, ["agent", "status"])

        assert result.exit_code == 0, result.output
        lines = result.stdout.splitlines()
        assert lines[0] == "status\tLIVE"
        assert "pid\t4242" in lines

    def test_response_metadata_is_not_printed(self, cli_runner, fake_agent: FakeAgent) -> None:
        fake_agent.issue_tokens = True
        fake_agent.respond("agentStatus", STATUS_RESPONSE)

        result = cli_runner.invoke(app, ["--format", "json", "agent", "status"])

        assert "metadata" not in json.loads(result.stdout)

    def test_dead_agent_is_not_contacted(
        self, cli_runner, fake_agent: FakeAgent, node_path: Path
    ) -> None:
        write_status(node_path, "DEAD")

        result = cli_runner.invoke(app, ["agent", "status"])

        assert result.exit_code == 0, result.output
        assert result.stdout.strip() == "status\tDEAD"
        assert fake_agent.requests == []

    def test_missing_status_file_reports_dead(self, cli_runner, tmp_path: Path) -> None:
        result = cli_runner.invoke(
            app, ["--node-path", str(tmp_path / "nowhere"), "agent", "status"]
        )

        assert result.exit_code == 0, result.output
        assert result.stdout.strip() == "status\tDEAD"


class TestAuthRetry:
    def test_attended_prompts_until_accepted(
        self, cli_runner, fake_agent: FakeAgent, scripted_prompt
    ) -> None:
        fake_agent.password = "secret"
        fake_agent.respond("agentStatus", STATUS_RESPONSE)
        prompt = scripted_prompt("wrong", "secret")

        result = cli_runner.invoke(app, ["agent", "status"])

        assert result.exit_code == 0, result.output
        assert prompt.count == 2
        assert fake_agent.authorizations("agentStatus") == [
            None,
            encode_auth_from_password("wrong"),
            encode_auth_from_password("secret"),
        ]

    def test_environment_password_is_unattended(
        self, cli_runner, fake_agent: FakeAgent, scripted_prompt, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        fake_agent.password = "secret"
        monkeypatch.setenv("PK_PASSWORD", "wrong")
        prompt = scripted_prompt("secret")

        result = cli_runner.invoke(app, ["agent", "status"])

        assert isinstance(result.exception, ClientAuthDeniedError)
        assert prompt.count == 0
        assert len(fake_agent.requests) == 1

    def test_environment_token_is_unattended(
        self, cli_runner, fake_agent: FakeAgent, scripted_prompt, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        fake_agent.password = "secret"
        monkeypatch.setenv("PK_TOKEN", "stale")
        prompt = scripted_prompt("secret")

        result = cli_runner.invoke(app, ["agent", "status"])

        assert isinstance(result.exception, ClientAuthDeniedError)
        assert prompt.count == 0
        assert fake_agent.authorizations() == [encode_auth_from_token("stale")]

    def test_no_input_fails_fast(self, cli_runner, fake_agent: FakeAgent, scripted_prompt) -> None:
        fake_agent.password = "secret"
        prompt = scripted_prompt("secret")

        result = cli_runner.invoke(app, ["--no-input", "agent", "status"])

        assert isinstance(result.exception, ClientAuthMissingError)
        assert prompt.count == 0

    def test_cancelled_prompt(self, cli_runner, fake_agent: FakeAgent, scripted_prompt) -> None:
        fake_agent.password = "secret"
        scripted_prompt(None)

        result = cli_runner.invoke(app, ["agent", "status"])

        assert isinstance(result.exception, PasswordMissingError)

    def test_password_file(
        self, cli_runner, fake_agent: FakeAgent, scripted_prompt, tmp_path: Path
    ) -> None:
        fake_agent.password = "secret"
        fake_agent.respond("agentStatus", STATUS_RESPONSE)
        password_file = tmp_path / "password"
        password_file.write_text("secret\n")
        prompt = scripted_prompt()

        result = cli_runner.invoke(
            app, ["--password-file", str(password_file), "agent", "status"]
        )

        assert result.exit_code == 0, result.output
        assert prompt.count == 0
        assert fake_agent.authorizations() == [encode_auth_from_password("secret")]


class TestSessionCommands:
    def test_unlock_then_reuse_token(
        self,
        cli_runner,
        fake_agent: FakeAgent,
        node_path: Path,
        scripted_prompt,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        fake_agent.password = "secret"
        fake_agent.issue_tokens = True
        fake_agent.respond("agentUnlock", {})
        fake_agent.respond("agentStatus", STATUS_RESPONSE)
        monkeypatch.setenv("PK_PASSWORD", "secret")

        result = cli_runner.invoke(app, ["agent", "unlock"])
        assert result.exit_code == 0, result.output
        assert SessionTokenStore(node_path).read_token() == fake_agent.token

        monkeypatch.delenv("PK_PASSWORD")
        prompt = scripted_prompt()
        result = cli_runner.invoke(app, ["agent", "status"])

        assert result.exit_code == 0, result.output
        assert prompt.count == 0
        assert fake_agent.authorizations("agentStatus") == [
            encode_auth_from_token(fake_agent.token)
        ]

    def test_lock_removes_token(self, cli_runner, node_path: Path) -> None:
        store = SessionTokenStore(node_path)
        store.write_token("abc")

        result = cli_runner.invoke(app, ["agent", "lock"])

        assert result.exit_code == 0, result.output
        assert store.read_token() is None

    def test_lockall(self, cli_runner, fake_agent: FakeAgent, node_path: Path) -> None:
        store = SessionTokenStore(node_path)
        store.write_token("abc")
        fake_agent.respond("agentLockAll", {})

        result = cli_runner.invoke(app, ["agent", "lockall"])

        assert result.exit_code == 0, result.output
        assert fake_agent.authorizations("agentLockAll") == ["Bearer abc"]
        assert store.read_token() is None


class TestStop:
    def test_stop_live_agent(self, cli_runner, fake_agent: FakeAgent) -> None:
        fake_agent.respond("agentStop", {})

        result = cli_runner.invoke(app, ["agent", "stop"])

        assert result.exit_code == 0, result.output
        assert len(fake_agent.calls("agentStop")) == 1

    def test_stop_dead_agent_is_noop(
        self, cli_runner, fake_agent: FakeAgent, node_path: Path
    ) -> None:
        write_status(node_path, "DEAD")

        result = cli_runner.invoke(app, ["agent", "stop"])

        assert result.exit_code == 0, result.output
        assert fake_agent.requests == []

    def test_stop_starting_agent(self, cli_runner, fake_agent: FakeAgent, node_path: Path) -> None:
        write_status(node_path, "STARTING")

        result = cli_runner.invoke(app, ["agent", "stop"])

        assert isinstance(result.exception, AgentNotRunningError)


class TestClientOptions:
    def test_not_live_agent_is_rejected(
        self, cli_runner, fake_agent: FakeAgent, node_path: Path
    ) -> None:
        write_status(node_path, "STOPPING")

        result = cli_runner.invoke(app, ["keys", "cert"])

        assert isinstance(result.exception, AgentNotRunningError)
        assert fake_agent.requests == []

    def test_explicit_options_skip_status_file(
        self, cli_runner, fake_agent: FakeAgent, node_path: Path
    ) -> None:
        (node_path / "status.json").unlink()
        fake_agent.respond("agentStatus", STATUS_RESPONSE)

        result = cli_runner.invoke(
            app,
            [
                "--node-id",
                AGENT_NODE_ID,
                "--client-host",
                "127.0.0.1",
                "--client-port",
                "1314",
                "agent",
                "status",
            ],
        )

        assert result.exit_code == 0, result.output
        assert len(fake_agent.calls("agentStatus")) == 1
