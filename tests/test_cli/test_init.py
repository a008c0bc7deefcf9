"""Tests for `lifeos init`."""

from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from lifeos.cli.main import cli


class TestInit:
    def test_creates_config(self, tmp_path: Path) -> None:
        target = tmp_path / "data"
        result = CliRunner().invoke(cli, ["init", "--path", str(target)])

        assert result.exit_code == 0, result.output
        assert "Initialized LifeOS" in result.output
        config = json.loads((target / "config.json").read_text())
        assert config["remote_url"] is None
        assert config["debounce_ms"] == 1000
        assert (target / "locks").is_dir()

    def test_remote_options(self, tmp_path: Path) -> None:
        target = tmp_path / "data"
        result = CliRunner().invoke(
            cli,
            ["init", "--path", str(target), "--remote-url", "https://db.example.com", "--table", "life", "--debounce-ms", "250"],
        )

        assert result.exit_code == 0, result.output
        assert "LIFEOS_API_KEY" in result.output
        config = json.loads((target / "config.json").read_text())
        assert config["remote_url"] == "https://db.example.com"
        assert config["remote_table"] == "life"
        assert config["debounce_ms"] == 250

    def test_idempotent(self, tmp_path: Path) -> None:
        target = tmp_path / "data"
        runner = CliRunner()
        runner.invoke(cli, ["init", "--path", str(target), "--debounce-ms", "5"])
        result = runner.invoke(cli, ["init", "--path", str(target)])

        assert result.exit_code == 0
        assert "already initialized" in result.output
        assert json.loads((target / "config.json").read_text())["debounce_ms"] == 5

    def test_uses_lifeos_home(self, tmp_path: Path) -> None:
        result = CliRunner().invoke(cli, ["init"], env={"LIFEOS_HOME": str(tmp_path)})
        assert result.exit_code == 0, result.output
        assert (tmp_path / "config.json").is_file()

    def test_negative_debounce_rejected(self, tmp_path: Path) -> None:
        result = CliRunner().invoke(cli, ["init", "--path", str(tmp_path / "d"), "--debounce-ms", "-1"])
        assert result.exit_code != 0
        assert not (tmp_path / "d" / "config.json").exists()

    def test_commands_need_init(self, tmp_path: Path) -> None:
        result = CliRunner().invoke(cli, ["show", "--json"], env={"LIFEOS_HOME": str(tmp_path)})
        assert result.exit_code == 1
        parsed = json.loads(result.output)
        assert parsed["ok"] is False
        assert parsed["error"]["code"] == "NOT_INITIALIZED"
