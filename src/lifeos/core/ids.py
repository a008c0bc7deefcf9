"""ULID generation and validation."""

from __future__ import annotations

import re

from ulid import ULID

# Crockford Base32 alphabet: 0-9 A-Z excluding I, L, O, U
_CROCKFORD_B32_RE = re.compile(r"^[0-9A-HJKMNP-TV-Z]{26}$", re.IGNORECASE)

ENTITY_PREFIXES: dict[str, str] = {
    "group": "grp",
    "area": "area",
    "project": "proj",
    "phase": "phase",
    "task": "task",
    "resource": "res",
    "attachment": "att",
}


def generate_id(kind: str) -> str:
    """Generate a new ``<prefix>_<ulid>`` identifier for an entity *kind*.

    Raises:
        ValueError: If *kind* is not a known entity kind.
    """
    try:
        prefix = ENTITY_PREFIXES[kind]
    except KeyError:
        raise ValueError(f"Unknown entity kind: '{kind}'") from None
    return f"{prefix}_{ULID()}"


def generate_group_id() -> str:
    return generate_id("group")


def generate_area_id() -> str:
    return generate_id("area")


def generate_project_id() -> str:
    return generate_id("project")


def generate_phase_id() -> str:
    return generate_id("phase")


def generate_task_id() -> str:
    """Generate a new task ID with the task_ prefix."""
    return generate_id("task")


def generate_resource_id() -> str:
    return generate_id("resource")


def generate_attachment_id() -> str:
    return generate_id("attachment")


def validate_id(id_str: str, expected_prefix: str) -> bool:
    """Validate a ``<prefix>_<ulid>`` identifier.

    The ULID portion must be exactly 26 characters of valid Crockford
    Base32 (0-9, A-Z excluding I, L, O, U -- case insensitive).

    Documents loaded from older clients may carry ids in other formats;
    this check is only used for ids this package generates.
    """
    if not isinstance(id_str, str) or not isinstance(expected_prefix, str):
        return False

    parts = id_str.split("_", maxsplit=1)
    if len(parts) != 2:
        return False

    prefix, ulid_part = parts
    if prefix != expected_prefix:
        return False

    return bool(_CROCKFORD_B32_RE.match(ulid_part))
