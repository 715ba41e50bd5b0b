"""Tests for the ``pk secrets`` commands that edit vault contents."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from conftest import FakeAgent
from polykey_cli.app import app
from polykey_cli.exceptions import FileReadError


def _params(fake_agent: FakeAgent, method: str) -> dict:
    params = dict(fake_agent.calls(method)[0]["params"])
    params.pop("metadata")
    return params


class TestSecretsList:
    def test_names_one_per_line(self, cli_runner, fake_agent: FakeAgent) -> None:
        fake_agent.respond(
            "vaultsSecretsList",
            {"secretName": "MySecret1"},
            {"secretName": "dir/MySecret2"},
        )

        result = cli_runner.invoke(app, ["secrets", "list", "Vault4"])

        assert result.exit_code == 0, result.output
        assert result.stdout.splitlines() == ["MySecret1", "dir/MySecret2"]
        assert _params(fake_agent, "vaultsSecretsList") == {"nameOrId": "Vault4"}

    def test_empty_vault_json(self, cli_runner, fake_agent: FakeAgent) -> None:
        fake_agent.respond("vaultsSecretsList")

        result = cli_runner.invoke(app, ["--format", "json", "secrets", "list", "Vault4"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == []


class TestSecretsCreateAndUpdate:
    def test_create_sends_file_contents(
        self, cli_runner, fake_agent: FakeAgent, tmp_path: Path
    ) -> None:
        secret_file = tmp_path / "secret"
        secret_file.write_bytes(b"this is a secret\xff")
        fake_agent.respond("vaultsSecretsNew", {"success": True})

        result = cli_runner.invoke(app, ["secrets", "create", str(secret_file), "Vault1:MySecret"])

        assert result.exit_code == 0, result.output
        assert result.stdout == ""
        assert _params(fake_agent, "vaultsSecretsNew") == {
            "nameOrId": "Vault1",
            "secretName": "MySecret",
            "secretContent": "this is a secret\xff",
        }

    def test_update_uses_edit(self, cli_runner, fake_agent: FakeAgent, tmp_path: Path) -> None:
        secret_file = tmp_path / "secret"
        secret_file.write_text("updated-content")
        fake_agent.respond("vaultsSecretsEdit", {"success": True})

        result = cli_runner.invoke(app, ["secrets", "update", str(secret_file), "Vault7:MySecret"])

        assert result.exit_code == 0, result.output
        assert _params(fake_agent, "vaultsSecretsEdit") == {
            "nameOrId": "Vault7",
            "secretName": "MySecret",
            "secretContent": "updated-content",
        }

    def test_missing_file_is_not_sent(
        self, cli_runner, fake_agent: FakeAgent, tmp_path: Path
    ) -> None:
        result = cli_runner.invoke(
            app, ["secrets", "create", str(tmp_path / "missing"), "Vault1:MySecret"]
        )

        assert isinstance(result.exception, FileReadError)
        assert fake_agent.requests == []


class TestSecretsDeleteMkdirRename:
    def test_delete(self, cli_runner, fake_agent: FakeAgent) -> None:
        fake_agent.respond("vaultsSecretsDelete", {"success": True})

        result = cli_runner.invoke(app, ["secrets", "delete", "Vault2:MySecret"])

        assert result.exit_code == 0, result.output
        assert _params(fake_agent, "vaultsSecretsDelete") == {
            "nameOrId": "Vault2",
            "secretName": "MySecret",
        }

    @pytest.mark.parametrize("flag, recursive", [([], False), (["-r"], True)])
    def test_mkdir(
        self, cli_runner, fake_agent: FakeAgent, flag: list[str], recursive: bool
    ) -> None:
        fake_agent.respond("vaultsSecretsMkdir", {"success": True})

        result = cli_runner.invoke(app, ["secrets", "mkdir", "Vault5:dir1/dir2", *flag])

        assert result.exit_code == 0, result.output
        assert _params(fake_agent, "vaultsSecretsMkdir") == {
            "nameOrId": "Vault5",
            "dirName": "dir1/dir2",
            "recursive": recursive,
        }

    def test_rename(self, cli_runner, fake_agent: FakeAgent) -> None:
        fake_agent.respond("vaultsSecretsRename", {"success": True})

        result = cli_runner.invoke(
            app, ["secrets", "rename", "Vault6:MySecret", "MyRenamedSecret"]
        )

        assert result.exit_code == 0, result.output
        assert _params(fake_agent, "vaultsSecretsRename") == {
            "nameOrId": "Vault6",
            "secretName": "MySecret",
            "newSecretName": "MyRenamedSecret",
        }

    def test_invalid_path_is_usage_error(self, cli_runner, fake_agent: FakeAgent) -> None:
        result = cli_runner.invoke(app, ["secrets", "delete", "Vault2"])

        assert result.exit_code == 2
        assert fake_agent.requests == []


class TestSecretsDir:
    def test_sends_absolute_directory(
        self, cli_runner, fake_agent: FakeAgent, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / "secrets").mkdir()
        monkeypatch.chdir(tmp_path)
        fake_agent.respond("vaultsSecretsNewDir", {"success": True})

        result = cli_runner.invoke(app, ["secrets", "dir", "secrets", "Vault8"])

        assert result.exit_code == 0, result.output
        assert _params(fake_agent, "vaultsSecretsNewDir") == {
            "nameOrId": "Vault8",
            "dirName": str((tmp_path / "secrets").resolve()),
        }


class TestSecretsStat:
    STAT = {"nlink": 1, "blocks": 1, "blksize": 4096, "size": 18}

    def test_human(self, cli_runner, fake_agent: FakeAgent) -> None:
        fake_agent.respond("vaultsSecretsStat", {"stat": self.STAT})

        result = cli_runner.invoke(app, ["secrets", "stat", "Vault9:MySecret"])

        assert result.exit_code == 0, result.output
        assert result.stdout.splitlines() == [
            'Stats for "MySecret"',
            "nlink: 1",
            "blocks: 1",
            "blksize: 4096",
            "size: 18",
        ]

    def test_json(self, cli_runner, fake_agent: FakeAgent) -> None:
        fake_agent.respond("vaultsSecretsStat", {"stat": self.STAT})

        result = cli_runner.invoke(app, ["--format", "json", "secrets", "stat", "Vault9:MySecret"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == self.STAT
