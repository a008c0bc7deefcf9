"""Task, attachment and resource commands."""

from __future__ import annotations

import click

from lifeos.cli.helpers import (
    common_options,
    output_error,
    output_result,
    parse_location_or_exit,
    run_with_session,
)
from lifeos.cli.main import cli
from lifeos.core.mutations import ATTACHMENT_TARGETS, RESOURCE_TARGETS, EntityNotFoundError
from lifeos.core.queries import find_task, format_location
from lifeos.core.schema import ENERGIES, PRIORITIES, RESOURCE_TYPES, STATUSES


@cli.group()
def task() -> None:
    """Tasks in the inbox, areas, projects and phases."""


@task.command("add")
@click.argument("title")
@click.option(
    "--to",
    "target",
    default="inbox",
    show_default=True,
    help="Where to put the task: inbox, area:<id>, project:<id> or phase:<id>.",
)
@common_options
def task_add(title: str, target: str, user: str | None, output_json: bool, quiet: bool) -> None:
    """Create a task (Backlog, P2, Low energy) at the top of a list."""
    location = parse_location_or_exit(target, output_json)

    def _add(session) -> dict:  # noqa: ANN001
        task_id = session.create_task(title.strip(), location)
        return find_task(session.document, task_id)[1]

    created, _ = run_with_session(_add, is_json=output_json, user=user)
    output_result(
        data={"location": format_location(location), "task": created},
        human_message=f"Created task {created['title']} ({created['id']}) in {format_location(location)}",
        quiet_value=created["id"],
        is_json=output_json,
        is_quiet=quiet,
    )


@task.command("update")
@click.argument("task_id")
@click.option("--title", default=None, help="New title.")
@click.option("--description", default=None, help="New description.")
@click.option("--status", type=click.Choice(STATUSES), default=None, help="New status.")
@click.option("--priority", type=click.Choice(PRIORITIES), default=None, help="New priority.")
@click.option("--energy", type=click.Choice(ENERGIES), default=None, help="New energy level.")
@click.option("--deadline", default=None, help="Deadline (ISO 8601, '' to clear).")
@click.option("--label", "labels", multiple=True, help="Replace labels (repeatable).")
@click.option("--context", "context_tags", multiple=True, help="Replace context tags (repeatable).")
@common_options
def task_update(
    task_id: str,
    title: str | None,
    description: str | None,
    status: str | None,
    priority: str | None,
    energy: str | None,
    deadline: str | None,
    labels: tuple[str, ...],
    context_tags: tuple[str, ...],
    user: str | None,
    output_json: bool,
    quiet: bool,
) -> None:
    """Edit a task's fields."""

    def _update(session) -> dict:  # noqa: ANN001
        found = find_task(session.document, task_id)
        if found is None:
            raise EntityNotFoundError(f"No task with id '{task_id}'")
        updated = dict(found[1])
        for key, value in (
            ("title", title),
            ("description", description),
            ("status", status),
            ("priority", priority),
            ("energy", energy),
        ):
            if value is not None:
                updated[key] = value
        if deadline is not None:
            if deadline:
                updated["deadline"] = deadline
            else:
                updated.pop("deadline", None)
        if labels:
            updated["labels"] = list(labels)
        if context_tags:
            updated["contextTags"] = list(context_tags)
        session.update_task(updated)
        return updated

    updated, _ = run_with_session(_update, is_json=output_json, user=user)
    output_result(
        data=updated,
        human_message=f"Updated task {updated['title']} ({task_id})",
        quiet_value=task_id,
        is_json=output_json,
        is_quiet=quiet,
    )


@task.command("move")
@click.argument("task_id")
@click.argument("target")
@common_options
def task_move(task_id: str, target: str, user: str | None, output_json: bool, quiet: bool) -> None:
    """Move a task to the top of TARGET (inbox, area:<id>, project:<id>, phase:<id>)."""
    location = parse_location_or_exit(target, output_json)

    def _move(session) -> bool:  # noqa: ANN001
        if find_task(session.document, task_id) is None:
            return False
        session.move_task(task_id, location)
        return True

    moved, _ = run_with_session(_move, is_json=output_json, user=user)
    if not moved:
        output_error(f"No task with id '{task_id}'", "NOT_FOUND", output_json)
    output_result(
        data={"id": task_id, "location": format_location(location)},
        human_message=f"Moved task {task_id} to {format_location(location)}",
        quiet_value=task_id,
        is_json=output_json,
        is_quiet=quiet,
    )


@task.command("toggle")
@click.argument("task_id")
@common_options
def task_toggle(task_id: str, user: str | None, output_json: bool, quiet: bool) -> None:
    """Flip a task between Done and In Progress."""

    def _toggle(session) -> dict | None:  # noqa: ANN001
        session.toggle_task_status(task_id)
        found = find_task(session.document, task_id)
        return found[1] if found else None

    toggled, _ = run_with_session(_toggle, is_json=output_json, user=user)
    if toggled is None:
        output_error(f"No task with id '{task_id}'", "NOT_FOUND", output_json)
    output_result(
        data={"id": task_id, "status": toggled["status"]},
        human_message=f"Task {task_id} is now {toggled['status']}",
        quiet_value=toggled["status"],
        is_json=output_json,
        is_quiet=quiet,
    )


@task.command("delete")
@click.argument("task_id")
@common_options
def task_delete(task_id: str, user: str | None, output_json: bool, quiet: bool) -> None:
    """Delete a task from wherever it is."""
    run_with_session(lambda s: s.delete_task(task_id), is_json=output_json, user=user)
    output_result(
        data={"id": task_id, "deleted": True},
        human_message=f"Deleted task {task_id}",
        quiet_value=task_id,
        is_json=output_json,
        is_quiet=quiet,
    )


@task.command("attach")
@click.argument("target_id")
@click.option("--kind", type=click.Choice(ATTACHMENT_TARGETS), default="task", show_default=True)
@click.option("--name", required=True, help="File name.")
@click.option("--url", required=True, help="Where the file lives.")
@click.option("--type", "mime_type", default="application/octet-stream", show_default=True)
@click.option("--size", type=int, default=0, help="Size in bytes.")
@common_options
def task_attach(
    target_id: str,
    kind: str,
    name: str,
    url: str,
    mime_type: str,
    size: int,
    user: str | None,
    output_json: bool,
    quiet: bool,
) -> None:
    """Attach a file reference to a task, project or phase."""
    attachment_id, _ = run_with_session(
        lambda s: s.add_attachment(kind, target_id, name, url, mime_type, size),
        is_json=output_json,
        user=user,
    )
    output_result(
        data={"id": attachment_id, "kind": kind, "targetId": target_id, "name": name},
        human_message=f"Attached {name} to {kind} {target_id} ({attachment_id})",
        quiet_value=attachment_id,
        is_json=output_json,
        is_quiet=quiet,
    )


@cli.group()
def resource() -> None:
    """Links and notes kept on areas and projects."""


@resource.command("add")
@click.argument("title")
@click.option("--to", "target", required=True, help="area:<id> or project:<id>.")
@click.option("--type", "resource_type", type=click.Choice(RESOURCE_TYPES), default="note", show_default=True)
@click.option("--content", default="", help="Note text or link description.")
@click.option("--url", default=None, help="Link target.")
@common_options
def resource_add(
    title: str,
    target: str,
    resource_type: str,
    content: str,
    url: str | None,
    user: str | None,
    output_json: bool,
    quiet: bool,
) -> None:
    """Add a link or note to an area or project."""
    kind, _, target_id = target.partition(":")
    if kind not in RESOURCE_TARGETS or not target_id:
        output_error(
            f"Invalid resource target: '{target}'. Use area:<id> or project:<id>.",
            "VALIDATION_ERROR",
            output_json,
        )
    resource_id, _ = run_with_session(
        lambda s: s.add_resource(kind, target_id, title, content, resource_type, url),
        is_json=output_json,
        user=user,
    )
    output_result(
        data={"id": resource_id, "kind": kind, "targetId": target_id, "title": title},
        human_message=f"Added {resource_type} {title} to {kind} {target_id} ({resource_id})",
        quiet_value=resource_id,
        is_json=output_json,
        is_quiet=quiet,
    )
