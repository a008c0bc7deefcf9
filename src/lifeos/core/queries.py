"""Read-only traversal of a document: task locations, search, integrity."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterator
from typing import NamedTuple

from lifeos.core.schema import ENERGIES, PRIORITIES, STATUSES, Document, Task

LOCATION_KINDS: tuple[str, ...] = ("inbox", "area", "project", "phase")


class Location(NamedTuple):
    """A task container: the inbox, or the direct task list of an area,
    project or phase identified by ``id``."""

    kind: str
    id: str | None = None

    def matches(self, other: Location) -> bool:
        if self.kind != other.kind:
            return False
        return self.kind == "inbox" or self.id == other.id


INBOX = Location("inbox")


def parse_location(raw: str) -> Location:
    """Parse ``inbox`` or ``<kind>:<id>`` into a Location.

    Raises:
        ValueError: If the kind is unknown or a non-inbox kind has no id.
    """
    kind, _, ident = raw.partition(":")
    kind = kind.strip().lower()
    if kind not in LOCATION_KINDS:
        valid = ", ".join(LOCATION_KINDS)
        raise ValueError(f"Invalid location kind: '{kind}'. Valid kinds: {valid}.")
    if kind == "inbox":
        return INBOX
    if not ident:
        raise ValueError(f"Location '{raw}' needs an id (e.g. {kind}:<id>).")
    return Location(kind, ident)


def format_location(location: Location) -> str:
    return "inbox" if location.kind == "inbox" else f"{location.kind}:{location.id}"


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------


def iter_task_lists(doc: Document) -> Iterator[tuple[Location, list[Task]]]:
    """Yield every task container in document order: inbox first, then each
    area's direct list, its projects' lists and their phases' lists."""
    yield INBOX, doc["inbox"]
    for area in doc["areas"]:
        yield Location("area", area["id"]), area["tasks"]
        for project in area["projects"]:
            yield Location("project", project["id"]), project["tasks"]
            for phase in project["phases"]:
                yield Location("phase", phase["id"]), phase["tasks"]


def iter_tasks(doc: Document) -> Iterator[tuple[Location, Task]]:
    for location, tasks in iter_task_lists(doc):
        for task in tasks:
            yield location, task


def find_task(doc: Document, task_id: str) -> tuple[Location, Task] | None:
    """Return the first ``(location, task)`` whose id is *task_id*."""
    for location, task in iter_tasks(doc):
        if task.get("id") == task_id:
            return location, task
    return None


def find_area(doc: Document, area_id: str) -> dict | None:
    for area in doc["areas"]:
        if area.get("id") == area_id:
            return area
    return None


def find_project(doc: Document, project_id: str) -> tuple[dict, dict] | None:
    """Return ``(area, project)`` for *project_id*, or None."""
    for area in doc["areas"]:
        for project in area["projects"]:
            if project.get("id") == project_id:
                return area, project
    return None


def find_phase(doc: Document, phase_id: str) -> tuple[dict, dict] | None:
    """Return ``(project, phase)`` for *phase_id*, or None."""
    for area in doc["areas"]:
        for project in area["projects"]:
            for phase in project["phases"]:
                if phase.get("id") == phase_id:
                    return project, phase
    return None


def location_exists(doc: Document, location: Location) -> bool:
    return any(location.matches(loc) for loc, _ in iter_task_lists(doc))


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


def matches_search(text: str, query: str) -> bool:
    """Case-insensitive substring test; a blank query matches any text."""
    if not query.strip():
        return True
    return query.lower() in text.lower()


def task_matches_search(task: Task, query: str) -> bool:
    """Match *query* against the title, description and labels of *task*."""
    fields = [task.get("title") or "", task.get("description") or ""]
    fields.extend(str(label) for label in task.get("labels", []))
    return any(matches_search(text, query) for text in fields)


def search_tasks(doc: Document, query: str) -> list[tuple[Location, Task]]:
    return [(loc, task) for loc, task in iter_tasks(doc) if task_matches_search(task, query)]


# ---------------------------------------------------------------------------
# Integrity
# ---------------------------------------------------------------------------


def _finding(level: str, check: str, message: str, entity_id: str | None) -> dict:
    return {"level": level, "check": check, "message": message, "id": entity_id}


def check_document(doc: Document) -> list[dict]:
    """Return integrity findings for a normalized document.

    Errors: duplicate ids within an entity kind, a task present in more
    than one location, invalid status/priority/energy values.
    Warnings: an area whose ``groupId`` names no existing group (such areas
    are treated as ungrouped).
    """
    findings: list[dict] = []

    groups = [g.get("id") for g in doc["areaGroups"]]
    areas = [a.get("id") for a in doc["areas"]]
    projects: list[str] = []
    phases: list[str] = []
    for area in doc["areas"]:
        for project in area["projects"]:
            projects.append(project.get("id"))
            phases.extend(ph.get("id") for ph in project["phases"])

    for kind, ids in (("group", groups), ("area", areas), ("project", projects), ("phase", phases)):
        for entity_id, count in sorted(Counter(ids).items(), key=lambda kv: str(kv[0])):
            if count > 1:
                findings.append(
                    _finding("error", f"duplicate_{kind}_id", f"{kind} id {entity_id} appears {count} times", entity_id)
                )

    task_locations: dict[str, list[Location]] = {}
    for location, task in iter_tasks(doc):
        task_locations.setdefault(task.get("id"), []).append(location)
        for field, valid in (("status", STATUSES), ("priority", PRIORITIES), ("energy", ENERGIES)):
            value = task.get(field)
            if value is not None and value not in valid:
                findings.append(
                    _finding(
                        "error",
                        f"invalid_{field}",
                        f"task {task.get('id')} has invalid {field} '{value}'",
                        task.get("id"),
                    )
                )

    for task_id, locations in task_locations.items():
        if len(locations) > 1:
            where = ", ".join(format_location(loc) for loc in locations)
            findings.append(
                _finding("error", "task_location", f"task {task_id} appears in {len(locations)} places: {where}", task_id)
            )

    known_groups = set(groups)
    for area in doc["areas"]:
        group_id = area.get("groupId")
        if group_id and group_id not in known_groups:
            findings.append(
                _finding(
                    "warning",
                    "dangling_group",
                    f"area {area.get('id')} references missing group {group_id}; treated as ungrouped",
                    area.get("id"),
                )
            )

    return findings
