"""Plumbing shared by the command modules: data directory, config, output envelopes."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from pathlib import Path
from typing import NoReturn, TypeVar

import click

from lifeos.core.config import ConfigError, LifeOSConfig, apply_env_overrides, load_config
from lifeos.core.mutations import EntityNotFoundError
from lifeos.core.queries import Location, parse_location
from lifeos.session import LifeOSSession, open_session
from lifeos.storage.cache import LocalPersistenceError
from lifeos.storage.fs import CONFIG_FILE, LifeOSRootError, find_data_dir

T = TypeVar("T")


def require_data_dir(is_json: bool = False) -> Path:
    """Find the initialized data directory or exit with an error."""
    try:
        data_dir = find_data_dir()
    except LifeOSRootError as e:
        output_error(str(e), "NOT_INITIALIZED", is_json)
    if not (data_dir / CONFIG_FILE).is_file():
        output_error(
            f"No LifeOS data in {data_dir}. Run 'lifeos init' first.",
            "NOT_INITIALIZED",
            is_json,
        )
    return data_dir


def load_cli_config(data_dir: Path, is_json: bool, user: str | None = None) -> LifeOSConfig:
    """Load config.json, apply LIFEOS_* overrides and an explicit --user."""
    try:
        config = apply_env_overrides(load_config((data_dir / CONFIG_FILE).read_text()))
    except ConfigError as e:
        output_error(str(e), "CONFIG_ERROR", is_json)
    if user:
        config["user_id"] = user
    return config


def json_envelope(ok: bool, *, data: object = None, error: object = None) -> str:
    """Serialize ``{"ok", "data"|"error"}``; absent parts are left out."""
    parts = {"ok": ok, "data": data, "error": error}
    return json.dumps({k: v for k, v in parts.items() if v is not None}, sort_keys=True, indent=2) + "\n"


def output_error(message: str, code: str, is_json: bool, exit_code: int = 1) -> NoReturn:
    """Report a failed command and exit with *exit_code*.

    With ``--json`` the error envelope goes to stdout so scripts can parse it;
    otherwise a one-line message goes to stderr.
    """
    if is_json:
        click.echo(json_envelope(False, error={"code": code, "message": message}))
    else:
        click.echo(f"Error: {message}", err=True)
    raise SystemExit(exit_code)


def output_result(
    *,
    data: object,
    human_message: str,
    quiet_value: str,
    is_json: bool,
    is_quiet: bool,
) -> None:
    """Report a successful command: envelope, bare id (``--quiet``) or message."""
    if is_json:
        text = json_envelope(True, data=data)
    else:
        text = quiet_value if is_quiet else human_message
    click.echo(text)


def parse_location_or_exit(raw: str, is_json: bool) -> Location:
    try:
        return parse_location(raw)
    except ValueError as e:
        output_error(str(e), "VALIDATION_ERROR", is_json)


def common_options(f):  # noqa: ANN001, ANN201
    """Decorator adding the options every document command accepts."""
    f = click.option("--quiet", is_flag=True, help="Print only the primary ID.")(f)
    f = click.option("--json", "output_json", is_flag=True, help="Output structured JSON.")(f)
    f = click.option(
        "--user",
        default=None,
        help="User id to sync as (default: LIFEOS_USER_ID). Needs a configured remote.",
    )(f)
    return f


def run_with_session(
    fn: Callable[[LifeOSSession], T],
    *,
    is_json: bool,
    user: str | None = None,
) -> tuple[T, LifeOSSession]:
    """Open a session, sign in if a user is known, run *fn*, close with a flush.

    The sign-in happens before *fn* so the intent is applied on top of the
    remote document.  Closing flushes the debounced write so the change
    reaches the remote store before the process exits.  Sync failures are
    reported as a warning on stderr; they never fail the command.
    """
    data_dir = require_data_dir(is_json)
    config = load_cli_config(data_dir, is_json, user)

    async def _run() -> tuple[T, LifeOSSession]:
        session = open_session(data_dir, config)
        try:
            user_id = config.get("user_id")
            if user_id and session.engine is not None:
                await session.sign_in(user_id)
            result = fn(session)
        finally:
            await session.close(flush=True)
        return result, session

    try:
        result, session = asyncio.run(_run())
    except EntityNotFoundError as e:
        output_error(str(e), "NOT_FOUND", is_json)
    except ValueError as e:
        output_error(str(e), "VALIDATION_ERROR", is_json)
    except ConfigError as e:
        output_error(str(e), "CONFIG_ERROR", is_json)
    except LocalPersistenceError as e:
        output_error(str(e), "CACHE_ERROR", is_json)

    if session.last_sync_error:
        click.echo(f"Warning: sync failed: {session.last_sync_error}", err=True)
    return result, session
