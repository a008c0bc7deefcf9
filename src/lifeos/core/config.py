"""Default config generation, validation and environment overrides."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from typing import TypedDict

REMOTE_URL_ENV = "LIFEOS_REMOTE_URL"
API_KEY_ENV = "LIFEOS_API_KEY"
ACCESS_TOKEN_ENV = "LIFEOS_ACCESS_TOKEN"
USER_ID_ENV = "LIFEOS_USER_ID"


class ConfigError(Exception):
    """Raised when config.json is unreadable or holds invalid values."""


class LifeOSConfig(TypedDict, total=False):
    schema_version: int
    remote_url: str | None
    remote_table: str
    api_key: str | None
    access_token: str | None
    user_id: str | None
    debounce_ms: int
    request_timeout: float
    flush_on_close: bool


def default_config() -> LifeOSConfig:
    """Return the default configuration.

    Remote sync is off until ``remote_url`` is set.  The returned dict,
    serialized with ``serialize_config``, is the canonical default
    config.json.
    """
    return {
        "schema_version": 1,
        "remote_url": None,
        "remote_table": "user_data",
        "api_key": None,
        "debounce_ms": 1000,
        "request_timeout": 10.0,
        "flush_on_close": False,
    }


def serialize_config(config: LifeOSConfig | dict[str, object]) -> str:
    """Serialize a config dict to the canonical JSON format."""
    return json.dumps(config, sort_keys=True, indent=2) + "\n"


def load_config(raw: str) -> LifeOSConfig:
    """Parse a JSON config string, fill defaults and validate it.

    This is a pure function (no I/O).  Callers read the file and pass the
    raw string here.

    Raises:
        ConfigError: If the JSON is malformed or a value is invalid.
    """
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"config.json is not valid JSON: {exc}") from None
    if not isinstance(parsed, dict):
        raise ConfigError("config.json must contain a JSON object")

    config = default_config()
    config.update(parsed)  # type: ignore[typeddict-item]
    validate_config(config)
    return config


def validate_config(config: LifeOSConfig) -> None:
    """Raise ``ConfigError`` when a known key holds an unusable value."""
    debounce = config.get("debounce_ms")
    if not isinstance(debounce, int) or isinstance(debounce, bool) or debounce < 0:
        raise ConfigError(f"debounce_ms must be a non-negative integer, got {debounce!r}")

    timeout = config.get("request_timeout")
    if timeout is not None and (
        not isinstance(timeout, (int, float)) or isinstance(timeout, bool) or timeout <= 0
    ):
        raise ConfigError(f"request_timeout must be a positive number or null, got {timeout!r}")

    if not isinstance(config.get("flush_on_close"), bool):
        raise ConfigError("flush_on_close must be true or false")

    table = config.get("remote_table")
    if not isinstance(table, str) or not table:
        raise ConfigError("remote_table must be a non-empty string")


def apply_env_overrides(
    config: LifeOSConfig,
    environ: Mapping[str, str] | None = None,
) -> LifeOSConfig:
    """Return a copy of *config* with ``LIFEOS_*`` environment values applied.

    Secrets (API key, access token) and the signed-in user normally come
    from the environment rather than config.json.  Empty values are ignored.
    """
    env = os.environ if environ is None else environ
    result: LifeOSConfig = dict(config)  # type: ignore[assignment]
    for key, var in (
        ("remote_url", REMOTE_URL_ENV),
        ("api_key", API_KEY_ENV),
        ("access_token", ACCESS_TOKEN_ENV),
        ("user_id", USER_ID_ENV),
    ):
        value = env.get(var)
        if value:
            result[key] = value  # type: ignore[literal-required]
    return result


def debounce_seconds(config: LifeOSConfig) -> float:
    return config.get("debounce_ms", 1000) / 1000.0
