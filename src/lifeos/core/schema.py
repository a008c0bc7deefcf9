"""Document shapes, schema defaults, and the normalizer.

A document is a plain JSON-compatible dict.  Keys use the camelCase names of
the stored payload so that the local cache, the remote row and an export all
share one format.
"""

from __future__ import annotations

import copy
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any, TypedDict

from lifeos.core.ids import (
    generate_area_id,
    generate_attachment_id,
    generate_group_id,
    generate_phase_id,
    generate_project_id,
    generate_resource_id,
    generate_task_id,
)

STATUSES: tuple[str, ...] = ("Backlog", "In Progress", "Done")
PRIORITIES: tuple[str, ...] = ("P1", "P2", "P3")
ENERGIES: tuple[str, ...] = ("High", "Low")
RESOURCE_TYPES: tuple[str, ...] = ("link", "note")

DEFAULT_STATUS = "Backlog"
DEFAULT_PRIORITY = "P2"
DEFAULT_ENERGY = "Low"

# New projects get a one-week window by default.
DEFAULT_PROJECT_SPAN = timedelta(days=7)

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class Attachment(TypedDict):
    id: str
    name: str
    url: str
    type: str
    size: int
    createdAt: str


class Resource(TypedDict, total=False):
    id: str
    title: str
    content: str
    type: str
    url: str
    createdAt: str


class Task(TypedDict, total=False):
    id: str
    title: str
    description: str
    status: str
    priority: str
    energy: str
    contextTags: list[str]
    labels: list[str]
    deadline: str
    attachments: list[Attachment]
    createdAt: str


class Phase(TypedDict, total=False):
    id: str
    title: str
    description: str
    status: str
    startDate: str
    endDate: str
    tasks: list[Task]
    labels: list[str]
    attachments: list[Attachment]


class Project(TypedDict, total=False):
    id: str
    title: str
    description: str
    status: str
    startDate: str
    endDate: str
    tasks: list[Task]
    phases: list[Phase]
    resources: list[Resource]
    labels: list[str]
    attachments: list[Attachment]


class AreaGroup(TypedDict):
    id: str
    title: str


class Area(TypedDict, total=False):
    id: str
    title: str
    description: str
    icon: str
    groupId: str | None
    tasks: list[Task]
    projects: list[Project]
    resources: list[Resource]
    labels: list[str]


class Document(TypedDict):
    areaGroups: list[AreaGroup]
    areas: list[Area]
    inbox: list[Task]


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


def utc_now() -> str:
    """Return the current UTC time as an RFC 3339 string with ``Z`` suffix."""
    return datetime.now(timezone.utc).strftime(_TIMESTAMP_FORMAT)


def _format_ts(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime(_TIMESTAMP_FORMAT)


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def _dicts(value: Any) -> list[dict]:
    """Return the dict elements of *value*, or an empty list for anything else."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _fill_list(entity: dict, *keys: str) -> None:
    for key in keys:
        if not isinstance(entity.get(key), list):
            entity[key] = []


def _fill_id(entity: dict, make_id: Callable[[], str]) -> None:
    if not isinstance(entity.get("id"), str) or not entity["id"]:
        entity["id"] = make_id()


def _normalize_group(group: dict) -> AreaGroup:
    _fill_id(group, generate_group_id)
    return group  # type: ignore[return-value]


def _normalize_task(task: dict) -> Task:
    _fill_id(task, generate_task_id)
    task["description"] = task.get("description") or ""
    _fill_list(task, "labels", "attachments", "contextTags")
    return task  # type: ignore[return-value]


def _normalize_phase(phase: dict) -> Phase:
    _fill_id(phase, generate_phase_id)
    phase["status"] = phase.get("status") or DEFAULT_STATUS
    _fill_list(phase, "labels", "attachments")
    phase["tasks"] = [_normalize_task(t) for t in _dicts(phase.get("tasks"))]
    return phase  # type: ignore[return-value]


def _normalize_project(project: dict) -> Project:
    _fill_id(project, generate_project_id)
    project["status"] = project.get("status") or DEFAULT_STATUS
    _fill_list(project, "labels", "attachments", "resources")
    project["tasks"] = [_normalize_task(t) for t in _dicts(project.get("tasks"))]
    project["phases"] = [_normalize_phase(ph) for ph in _dicts(project.get("phases"))]
    return project  # type: ignore[return-value]


def _normalize_area(area: dict) -> Area:
    _fill_id(area, generate_area_id)
    area["description"] = area.get("description") or ""
    _fill_list(area, "labels", "resources")
    area["tasks"] = [_normalize_task(t) for t in _dicts(area.get("tasks"))]
    area["projects"] = [_normalize_project(p) for p in _dicts(area.get("projects"))]
    return area  # type: ignore[return-value]


def normalize_document(raw: Any) -> Document:
    """Repair an arbitrary, possibly partial structure into a valid Document.

    Missing collections are filled with empty defaults and missing scalar
    fields with their schema defaults.  A group, area, project, phase or task
    whose ``id`` is missing, empty or not a string gets a freshly generated
    one.  Keys the schema does not know about are kept as-is so that
    documents written by newer clients survive a round trip.  Anything that
    is not a dict normalizes to the empty document.

    The input is never mutated and the result shares no containers with it.
    Normalizing an already normalized document returns an equal document.
    """
    doc: dict = copy.deepcopy(raw) if isinstance(raw, dict) else {}
    doc["areaGroups"] = [_normalize_group(g) for g in _dicts(doc.get("areaGroups"))]
    doc["inbox"] = [_normalize_task(t) for t in _dicts(doc.get("inbox"))]
    doc["areas"] = [_normalize_area(a) for a in _dicts(doc.get("areas"))]
    return doc  # type: ignore[return-value]


def empty_document() -> Document:
    return {"areaGroups": [], "areas": [], "inbox": []}


def initial_document() -> Document:
    """Return the first-run document: a Work and a Health area, empty inbox.

    The two starter areas keep the fixed ids ``"1"`` and ``"2"`` that
    existing caches already carry.
    """
    return normalize_document(
        {
            "areaGroups": [],
            "areas": [
                {"id": "1", "title": "Work", "icon": "briefcase"},
                {"id": "2", "title": "Health", "icon": "heart"},
            ],
            "inbox": [],
        }
    )


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def new_group(title: str, *, group_id: str | None = None) -> AreaGroup:
    return {"id": group_id or generate_group_id(), "title": title}


def new_area(
    title: str,
    icon: str,
    group_id: str | None = None,
    *,
    area_id: str | None = None,
) -> Area:
    area: Area = {
        "id": area_id or generate_area_id(),
        "title": title,
        "icon": icon,
        "description": "",
        "tasks": [],
        "projects": [],
        "resources": [],
        "labels": [],
    }
    if group_id is not None:
        area["groupId"] = group_id
    return area


def new_project(
    title: str,
    *,
    project_id: str | None = None,
    now: datetime | None = None,
) -> Project:
    """Build a Backlog project spanning one week from *now*."""
    start = now or datetime.now(timezone.utc)
    return {
        "id": project_id or generate_project_id(),
        "title": title or "New Project",
        "description": "",
        "status": DEFAULT_STATUS,
        "startDate": _format_ts(start),
        "endDate": _format_ts(start + DEFAULT_PROJECT_SPAN),
        "tasks": [],
        "phases": [],
        "resources": [],
        "labels": [],
        "attachments": [],
    }


def new_phase(title: str, *, phase_id: str | None = None) -> Phase:
    return {
        "id": phase_id or generate_phase_id(),
        "title": title or "New Phase",
        "description": "",
        "status": DEFAULT_STATUS,
        "tasks": [],
        "labels": [],
        "attachments": [],
    }


def new_task(
    title: str,
    *,
    task_id: str | None = None,
    created_at: str | None = None,
) -> Task:
    """Build a task with schema defaults (Backlog, P2, Low energy)."""
    return {
        "id": task_id or generate_task_id(),
        "title": title or "New Task",
        "description": "",
        "status": DEFAULT_STATUS,
        "priority": DEFAULT_PRIORITY,
        "energy": DEFAULT_ENERGY,
        "contextTags": [],
        "labels": [],
        "attachments": [],
        "createdAt": created_at or utc_now(),
    }


def new_resource(
    title: str,
    content: str = "",
    resource_type: str = "note",
    url: str | None = None,
    *,
    resource_id: str | None = None,
) -> Resource:
    if resource_type not in RESOURCE_TYPES:
        valid = ", ".join(RESOURCE_TYPES)
        raise ValueError(f"Invalid resource type: '{resource_type}'. Valid types: {valid}.")
    resource: Resource = {
        "id": resource_id or generate_resource_id(),
        "title": title,
        "content": content,
        "type": resource_type,
        "createdAt": utc_now(),
    }
    if url:
        resource["url"] = url
    return resource


def new_attachment(
    name: str,
    url: str,
    mime_type: str = "application/octet-stream",
    size: int = 0,
    *,
    attachment_id: str | None = None,
) -> Attachment:
    return {
        "id": attachment_id or generate_attachment_id(),
        "name": name,
        "url": url,
        "type": mime_type,
        "size": size,
        "createdAt": utc_now(),
    }
