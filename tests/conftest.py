"""Shared test fixtures."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from lifeos.core.schema import Document, normalize_document


@pytest.fixture()
def data_dir(tmp_path: Path) -> Path:
    """Return an empty directory to use as the LifeOS data directory."""
    path = tmp_path / "lifeos"
    path.mkdir()
    return path


@pytest.fixture()
def initialized_dir(data_dir: Path) -> Path:
    """Return a data directory with config.json already written."""
    from lifeos.core.config import default_config, serialize_config
    from lifeos.storage.fs import CONFIG_FILE, atomic_write, ensure_data_dirs

    ensure_data_dirs(data_dir)
    atomic_write(data_dir / CONFIG_FILE, serialize_config(default_config()))
    return data_dir


@pytest.fixture()
def cli_runner() -> CliRunner:
    """Return a Click CliRunner for invoking CLI commands."""
    return CliRunner()


@pytest.fixture()
def cli_env(initialized_dir: Path) -> dict[str, str]:
    """Return env dict with LIFEOS_HOME pointing to initialized_dir and no remote."""
    return {
        "LIFEOS_HOME": str(initialized_dir),
        "LIFEOS_REMOTE_URL": "",
        "LIFEOS_API_KEY": "",
        "LIFEOS_USER_ID": "",
    }


@pytest.fixture()
def invoke(cli_runner: CliRunner, cli_env: dict[str, str]):
    """Return a helper that invokes CLI commands with the right environment.

    Usage::

        result = invoke("task", "add", "Buy milk")
    """
    from lifeos.cli.main import cli

    def _invoke(*args: str, **kwargs):
        return cli_runner.invoke(cli, list(args), env=cli_env, **kwargs)

    return _invoke


@pytest.fixture()
def invoke_json(invoke):
    """Like invoke, but appends --json and parses the response.

    Returns (parsed_dict, exit_code) tuple.
    """

    def _invoke_json(*args: str) -> tuple[dict, int]:
        result = invoke(*args, "--json")
        parsed = json.loads(result.output)
        return parsed, result.exit_code

    return _invoke_json


@pytest.fixture()
def sample_doc() -> Document:
    """A small normalized document: one group, two areas, a project with a phase."""
    return normalize_document(
        {
            "areaGroups": [{"id": "g1", "title": "Life"}],
            "areas": [
                {
                    "id": "a1",
                    "title": "Work",
                    "icon": "briefcase",
                    "groupId": "g1",
                    "tasks": [{"id": "t-area", "title": "Email boss", "status": "Backlog"}],
                    "projects": [
                        {
                            "id": "p1",
                            "title": "Launch",
                            "tasks": [{"id": "t-proj", "title": "Write brief", "status": "In Progress"}],
                            "phases": [
                                {
                                    "id": "ph1",
                                    "title": "Design",
                                    "tasks": [{"id": "t-phase", "title": "Sketch logo", "status": "Done"}],
                                }
                            ],
                        }
                    ],
                },
                {"id": "a2", "title": "Health", "icon": "heart", "groupId": "g1"},
            ],
            "inbox": [{"id": "t-inbox", "title": "Buy milk", "status": "Backlog", "labels": ["errand"]}],
        }
    )
