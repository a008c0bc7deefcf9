"""Document mutations: create, update, delete, move and toggle.

Every operation takes a normalized document and returns a new one.  The
input is never modified; branches an operation does not touch are shared
between the old and new document, so callers must treat documents as
immutable values.

Tasks live in exactly one container (inbox, an area, a project or a phase)
and projects in exactly one area.  Operations that relocate an entity
remove it by search rather than by a caller-supplied origin, and refuse to
proceed when the destination does not exist, so an entity is never lost
or duplicated.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from lifeos.core.queries import (
    LOCATION_KINDS,
    Location,
    find_area,
    find_phase,
    find_project,
    find_task,
    location_exists,
)
from lifeos.core.schema import (
    Area,
    AreaGroup,
    Attachment,
    Document,
    Phase,
    Project,
    Resource,
    Task,
    new_area,
    new_group,
    new_phase,
    new_project,
    new_task,
)


class EntityNotFoundError(LookupError):
    """Raised when a create or move names a container that does not exist."""


TaskListFn = Callable[[Location, list[Task]], list[Task]]


# ---------------------------------------------------------------------------
# Structural update helpers
# ---------------------------------------------------------------------------


def _replace_by_id(items: list, entity: dict) -> list:
    """Return *items* with the element sharing *entity*'s id replaced.

    Returns the original list object when nothing matched.
    """
    if not any(item.get("id") == entity["id"] for item in items):
        return items
    return [entity if item.get("id") == entity["id"] else item for item in items]


def _remove_by_id(items: list, entity_id: str) -> list:
    if not any(item.get("id") == entity_id for item in items):
        return items
    return [item for item in items if item.get("id") != entity_id]


def _map_phase_tasks(phase: Phase, fn: TaskListFn) -> Phase:
    tasks = fn(Location("phase", phase["id"]), phase["tasks"])
    if tasks is phase["tasks"]:
        return phase
    return {**phase, "tasks": tasks}


def _map_project_tasks(project: Project, fn: TaskListFn) -> Project:
    tasks = fn(Location("project", project["id"]), project["tasks"])
    phases = [_map_phase_tasks(ph, fn) for ph in project["phases"]]
    if tasks is project["tasks"] and _same_items(phases, project["phases"]):
        return project
    return {**project, "tasks": tasks, "phases": phases}


def _map_area_tasks(area: Area, fn: TaskListFn) -> Area:
    tasks = fn(Location("area", area["id"]), area["tasks"])
    projects = [_map_project_tasks(p, fn) for p in area["projects"]]
    if tasks is area["tasks"] and _same_items(projects, area["projects"]):
        return area
    return {**area, "tasks": tasks, "projects": projects}


def _same_items(new: list, old: list) -> bool:
    return len(new) == len(old) and all(a is b for a, b in zip(new, old))


def _map_task_lists(doc: Document, fn: TaskListFn) -> Document:
    """Apply *fn* to every task container, rebuilding only changed branches.

    *fn* receives the container's Location and its task list and must
    return either the same list object (unchanged) or a new list.
    """
    inbox = fn(Location("inbox"), doc["inbox"])
    areas = [_map_area_tasks(a, fn) for a in doc["areas"]]
    if inbox is doc["inbox"] and _same_items(areas, doc["areas"]):
        return doc
    return {**doc, "inbox": inbox, "areas": areas}


def _map_areas(doc: Document, fn: Callable[[Area], Area]) -> Document:
    areas = [fn(a) for a in doc["areas"]]
    if _same_items(areas, doc["areas"]):
        return doc
    return {**doc, "areas": areas}


def _map_projects(doc: Document, fn: Callable[[Area, list[Project]], list[Project]]) -> Document:
    def _area(area: Area) -> Area:
        projects = fn(area, area["projects"])
        if projects is area["projects"]:
            return area
        return {**area, "projects": projects}

    return _map_areas(doc, _area)


def _map_phases(doc: Document, fn: Callable[[Project, list[Phase]], list[Phase]]) -> Document:
    def _projects(area: Area, projects: list[Project]) -> list[Project]:
        updated = []
        for project in projects:
            phases = fn(project, project["phases"])
            updated.append(project if phases is project["phases"] else {**project, "phases": phases})
        return projects if _same_items(updated, projects) else updated

    return _map_projects(doc, _projects)


def _check_location(location: Location) -> None:
    if location.kind not in LOCATION_KINDS:
        valid = ", ".join(LOCATION_KINDS)
        raise ValueError(f"Invalid location kind: '{location.kind}'. Valid kinds: {valid}.")


def _insert_task(doc: Document, task: Task, location: Location) -> Document:
    """Insert *task* at the front of the container named by *location*."""
    _check_location(location)
    inserted = False

    def _insert(loc: Location, tasks: list[Task]) -> list[Task]:
        nonlocal inserted
        if inserted or not location.matches(loc):
            return tasks
        inserted = True
        return [task, *tasks]

    result = _map_task_lists(doc, _insert)
    if not inserted:
        raise EntityNotFoundError(f"No {location.kind} with id '{location.id}'")
    return result


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


def create_group(doc: Document, title: str, *, group_id: str | None = None) -> Document:
    group = new_group(title, group_id=group_id)
    return {**doc, "areaGroups": [group, *doc["areaGroups"]]}


def update_group(doc: Document, group: AreaGroup) -> Document:
    groups = _replace_by_id(doc["areaGroups"], group)
    return doc if groups is doc["areaGroups"] else {**doc, "areaGroups": groups}


def delete_group(doc: Document, group_id: str) -> Document:
    """Remove a group; areas that referenced it become ungrouped."""

    def _ungroup(area: Area) -> Area:
        if area.get("groupId") != group_id:
            return area
        return {k: v for k, v in area.items() if k != "groupId"}  # type: ignore[return-value]

    result = _map_areas(doc, _ungroup)
    groups = _remove_by_id(result["areaGroups"], group_id)
    if groups is result["areaGroups"]:
        return result
    return {**result, "areaGroups": groups}


# ---------------------------------------------------------------------------
# Areas
# ---------------------------------------------------------------------------


def create_area(
    doc: Document,
    title: str,
    icon: str,
    group_id: str | None = None,
    *,
    area_id: str | None = None,
) -> Document:
    area = new_area(title, icon, group_id, area_id=area_id)
    return {**doc, "areas": [area, *doc["areas"]]}


def update_area(doc: Document, area: Area) -> Document:
    areas = _replace_by_id(doc["areas"], area)
    return doc if areas is doc["areas"] else {**doc, "areas": areas}


def delete_area(doc: Document, area_id: str) -> Document:
    areas = _remove_by_id(doc["areas"], area_id)
    return doc if areas is doc["areas"] else {**doc, "areas": areas}


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


def _insert_project(doc: Document, project: Project, area_id: str) -> Document:
    if find_area(doc, area_id) is None:
        raise EntityNotFoundError(f"No area with id '{area_id}'")
    inserted = False

    def _insert(area: Area, projects: list[Project]) -> list[Project]:
        nonlocal inserted
        if inserted or area["id"] != area_id:
            return projects
        inserted = True
        return [project, *projects]

    return _map_projects(doc, _insert)


def create_project(
    doc: Document,
    title: str,
    area_id: str,
    *,
    project_id: str | None = None,
    now: datetime | None = None,
) -> Document:
    project = new_project(title, project_id=project_id, now=now)
    return _insert_project(doc, project, area_id)


def update_project(doc: Document, project: Project) -> Document:
    return _map_projects(doc, lambda _area, projects: _replace_by_id(projects, project))


def delete_project(doc: Document, project_id: str) -> Document:
    return _map_projects(doc, lambda _area, projects: _remove_by_id(projects, project_id))


def move_project(doc: Document, project_id: str, target_area_id: str) -> Document:
    """Move a project to the front of another area's project list.

    No-op when the project does not exist.

    Raises:
        EntityNotFoundError: If the target area does not exist.
    """
    found = find_project(doc, project_id)
    if found is None:
        return doc
    if find_area(doc, target_area_id) is None:
        raise EntityNotFoundError(f"No area with id '{target_area_id}'")
    _, project = found
    return _insert_project(delete_project(doc, project_id), project, target_area_id)


# ---------------------------------------------------------------------------
# Phases
# ---------------------------------------------------------------------------


def create_phase(
    doc: Document,
    title: str,
    project_id: str,
    *,
    phase_id: str | None = None,
) -> Document:
    """Append a new phase; phases keep their declared order."""
    if find_project(doc, project_id) is None:
        raise EntityNotFoundError(f"No project with id '{project_id}'")
    phase = new_phase(title, phase_id=phase_id)
    return _map_phases(
        doc,
        lambda project, phases: [*phases, phase] if project["id"] == project_id else phases,
    )


def update_phase(doc: Document, phase: Phase) -> Document:
    return _map_phases(doc, lambda _project, phases: _replace_by_id(phases, phase))


def delete_phase(doc: Document, phase_id: str) -> Document:
    return _map_phases(doc, lambda _project, phases: _remove_by_id(phases, phase_id))


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


def create_task(
    doc: Document,
    title: str,
    location: Location,
    *,
    task_id: str | None = None,
    created_at: str | None = None,
) -> Document:
    """Create a task with schema defaults at the front of *location*.

    Raises:
        EntityNotFoundError: If *location* names a missing container.
    """
    task = new_task(title, task_id=task_id, created_at=created_at)
    return _insert_task(doc, task, location)


def update_task(doc: Document, task: Task) -> Document:
    """Replace the task with the same id wherever it lives."""
    return _map_task_lists(doc, lambda _loc, tasks: _replace_by_id(tasks, task))


def delete_task(doc: Document, task_id: str) -> Document:
    """Remove the task from every container it occupies."""
    return _map_task_lists(doc, lambda _loc, tasks: _remove_by_id(tasks, task_id))


def move_task(doc: Document, task_id: str, location: Location) -> Document:
    """Move a task to the front of *location*, wherever it currently is.

    No-op when the task does not exist.

    Raises:
        EntityNotFoundError: If *location* names a missing container.
    """
    _check_location(location)
    found = find_task(doc, task_id)
    if found is None:
        return doc
    if not location_exists(doc, location):
        raise EntityNotFoundError(f"No {location.kind} with id '{location.id}'")
    _, task = found
    return _insert_task(delete_task(doc, task_id), task, location)


def toggle_task_status(doc: Document, task_id: str) -> Document:
    """Flip a task between "Done" and "In Progress".

    Any status other than "Done" (including "Backlog") becomes "Done".
    """

    def _toggle(_loc: Location, tasks: list[Task]) -> list[Task]:
        if not any(t.get("id") == task_id for t in tasks):
            return tasks
        return [
            {**t, "status": "In Progress" if t.get("status") == "Done" else "Done"}
            if t.get("id") == task_id
            else t
            for t in tasks
        ]

    return _map_task_lists(doc, _toggle)


# ---------------------------------------------------------------------------
# Attachments and resources
# ---------------------------------------------------------------------------

ATTACHMENT_TARGETS: tuple[str, ...] = ("task", "project", "phase")
RESOURCE_TARGETS: tuple[str, ...] = ("area", "project")


def _append_attachment(entity: dict, attachment: Attachment) -> dict:
    return {**entity, "attachments": [*entity.get("attachments", []), attachment]}


def add_attachment(doc: Document, kind: str, target_id: str, attachment: Attachment) -> Document:
    """Append *attachment* to a task, project or phase.

    Raises:
        ValueError: If *kind* cannot hold attachments.
        EntityNotFoundError: If no such target exists.
    """
    if kind == "task":
        found = find_task(doc, target_id)
        if found is None:
            raise EntityNotFoundError(f"No task with id '{target_id}'")
        return update_task(doc, _append_attachment(found[1], attachment))  # type: ignore[arg-type]
    if kind == "project":
        found_project = find_project(doc, target_id)
        if found_project is None:
            raise EntityNotFoundError(f"No project with id '{target_id}'")
        return update_project(doc, _append_attachment(found_project[1], attachment))  # type: ignore[arg-type]
    if kind == "phase":
        found_phase = find_phase(doc, target_id)
        if found_phase is None:
            raise EntityNotFoundError(f"No phase with id '{target_id}'")
        return update_phase(doc, _append_attachment(found_phase[1], attachment))  # type: ignore[arg-type]
    valid = ", ".join(ATTACHMENT_TARGETS)
    raise ValueError(f"Invalid attachment target: '{kind}'. Valid targets: {valid}.")


def add_resource(doc: Document, kind: str, target_id: str, resource: Resource) -> Document:
    """Insert *resource* at the front of an area's or project's resources.

    Raises:
        ValueError: If *kind* cannot hold resources.
        EntityNotFoundError: If no such target exists.
    """
    if kind == "area":
        area = find_area(doc, target_id)
        if area is None:
            raise EntityNotFoundError(f"No area with id '{target_id}'")
        return update_area(doc, {**area, "resources": [resource, *area.get("resources", [])]})  # type: ignore[typeddict-item]
    if kind == "project":
        found = find_project(doc, target_id)
        if found is None:
            raise EntityNotFoundError(f"No project with id '{target_id}'")
        project = found[1]
        return update_project(doc, {**project, "resources": [resource, *project.get("resources", [])]})  # type: ignore[typeddict-item]
    valid = ", ".join(RESOURCE_TARGETS)
    raise ValueError(f"Invalid resource target: '{kind}'. Valid targets: {valid}.")
