"""CLI entry point and commands."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import click

from lifeos.core.config import default_config, serialize_config
from lifeos.storage.fs import (
    CONFIG_FILE,
    LIFEOS_HOME_ENV,
    PRIVATE_FILE_MODE,
    atomic_write,
    default_data_dir,
    ensure_data_dirs,
)

_LOG_LEVELS = {0: logging.WARNING, 1: logging.INFO}


@click.group()
@click.option("-v", "--verbose", count=True, help="Log sync activity (-vv for debug).")
def cli(verbose: int) -> None:
    """LifeOS: areas, projects, phases and tasks, cached locally and synced per user."""
    logging.basicConfig(
        level=_LOG_LEVELS.get(verbose, logging.DEBUG),
        format="%(levelname)s: %(message)s",
    )


@cli.command()
@click.option(
    "--path",
    "target_path",
    type=click.Path(file_okay=False, resolve_path=True),
    default=None,
    help=f"Data directory (defaults to ${LIFEOS_HOME_ENV} or ~/.lifeos).",
)
@click.option("--remote-url", default=None, help="Base URL of the remote document store.")
@click.option("--table", "remote_table", default=None, help="Remote table name (default: user_data).")
@click.option("--debounce-ms", type=int, default=None, help="Quiet period before a remote write.")
def init(
    target_path: str | None,
    remote_url: str | None,
    remote_table: str | None,
    debounce_ms: int | None,
) -> None:
    """Create the data directory and its config.json."""
    if target_path is not None:
        data_dir = Path(target_path)
    elif os.environ.get(LIFEOS_HOME_ENV):
        data_dir = Path(os.environ[LIFEOS_HOME_ENV])
    else:
        data_dir = default_data_dir()

    config_path = data_dir / CONFIG_FILE

    # Idempotency: an existing config is left alone
    if config_path.is_file():
        click.echo(f"LifeOS already initialized in {data_dir}")
        return

    if data_dir.exists() and not data_dir.is_dir():
        raise click.ClickException(
            f"Cannot initialize: '{data_dir}' exists but is not a directory."
        )
    if debounce_ms is not None and debounce_ms < 0:
        raise click.ClickException("--debounce-ms must be zero or positive.")

    config = default_config()
    if remote_url:
        config["remote_url"] = remote_url
    if remote_table:
        config["remote_table"] = remote_table
    if debounce_ms is not None:
        config["debounce_ms"] = debounce_ms

    ensure_data_dirs(data_dir)
    atomic_write(config_path, serialize_config(config), mode=PRIVATE_FILE_MODE)
    click.echo(f"Initialized LifeOS in {data_dir}")
    if remote_url:
        click.echo("Set LIFEOS_API_KEY and LIFEOS_USER_ID to enable remote sync.")


# ---------------------------------------------------------------------------
# Register command modules (must be after cli group is defined)
# ---------------------------------------------------------------------------
from lifeos.cli import document_cmds as _document_cmds  # noqa: E402, F401
from lifeos.cli import area_cmds as _area_cmds  # noqa: E402, F401
from lifeos.cli import project_cmds as _project_cmds  # noqa: E402, F401
from lifeos.cli import task_cmds as _task_cmds  # noqa: E402, F401

if __name__ == "__main__":
    cli()
