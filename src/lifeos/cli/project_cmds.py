"""Project and phase commands."""

from __future__ import annotations

import click

from lifeos.cli.helpers import common_options, output_error, output_result, run_with_session
from lifeos.cli.main import cli
from lifeos.core.mutations import EntityNotFoundError
from lifeos.core.queries import find_phase, find_project
from lifeos.core.schema import STATUSES

_STATUS_CHOICE = click.Choice(STATUSES)


def _edit_fields(entity: dict, **fields: object) -> dict:
    updated = dict(entity)
    for key, value in fields.items():
        if value is not None:
            updated[key] = value
    return updated


@cli.group()
def project() -> None:
    """Projects inside areas."""


@project.command("add")
@click.argument("title")
@click.option("--area", "area_id", required=True, help="Area id the project belongs to.")
@common_options
def project_add(title: str, area_id: str, user: str | None, output_json: bool, quiet: bool) -> None:
    """Create a project at the top of an area."""
    project_id, _ = run_with_session(
        lambda s: s.create_project(title.strip(), area_id),
        is_json=output_json,
        user=user,
    )
    output_result(
        data={"id": project_id, "title": title.strip() or "New Project", "areaId": area_id},
        human_message=f"Created project {title.strip() or 'New Project'} ({project_id})",
        quiet_value=project_id,
        is_json=output_json,
        is_quiet=quiet,
    )


@project.command("update")
@click.argument("project_id")
@click.option("--title", default=None, help="New title.")
@click.option("--description", default=None, help="New description.")
@click.option("--status", type=_STATUS_CHOICE, default=None, help="New status.")
@click.option("--start", "start_date", default=None, help="Start date (ISO 8601).")
@click.option("--end", "end_date", default=None, help="End date (ISO 8601).")
@common_options
def project_update(
    project_id: str,
    title: str | None,
    description: str | None,
    status: str | None,
    start_date: str | None,
    end_date: str | None,
    user: str | None,
    output_json: bool,
    quiet: bool,
) -> None:
    """Edit a project's fields."""

    def _update(session) -> dict:  # noqa: ANN001
        found = find_project(session.document, project_id)
        if found is None:
            raise EntityNotFoundError(f"No project with id '{project_id}'")
        updated = _edit_fields(
            found[1],
            title=title,
            description=description,
            status=status,
            startDate=start_date,
            endDate=end_date,
        )
        session.update_project(updated)
        return updated

    updated, _ = run_with_session(_update, is_json=output_json, user=user)
    output_result(
        data={k: v for k, v in updated.items() if k not in ("tasks", "phases")},
        human_message=f"Updated project {updated['title']} ({project_id})",
        quiet_value=project_id,
        is_json=output_json,
        is_quiet=quiet,
    )


@project.command("move")
@click.argument("project_id")
@click.argument("area_id")
@common_options
def project_move(project_id: str, area_id: str, user: str | None, output_json: bool, quiet: bool) -> None:
    """Move a project to the top of another area."""

    def _move(session) -> bool:  # noqa: ANN001
        if find_project(session.document, project_id) is None:
            return False
        session.move_project(project_id, area_id)
        return True

    moved, _ = run_with_session(_move, is_json=output_json, user=user)
    if not moved:
        output_error(f"No project with id '{project_id}'", "NOT_FOUND", output_json)
    output_result(
        data={"id": project_id, "areaId": area_id},
        human_message=f"Moved project {project_id} to area {area_id}",
        quiet_value=project_id,
        is_json=output_json,
        is_quiet=quiet,
    )


@project.command("delete")
@click.argument("project_id")
@common_options
def project_delete(project_id: str, user: str | None, output_json: bool, quiet: bool) -> None:
    """Delete a project with its phases and tasks."""
    run_with_session(lambda s: s.delete_project(project_id), is_json=output_json, user=user)
    output_result(
        data={"id": project_id, "deleted": True},
        human_message=f"Deleted project {project_id}",
        quiet_value=project_id,
        is_json=output_json,
        is_quiet=quiet,
    )


@cli.group()
def phase() -> None:
    """Phases inside projects."""


@phase.command("add")
@click.argument("title")
@click.option("--project", "project_id", required=True, help="Project id the phase belongs to.")
@common_options
def phase_add(title: str, project_id: str, user: str | None, output_json: bool, quiet: bool) -> None:
    """Append a phase to a project."""
    phase_id, _ = run_with_session(
        lambda s: s.create_phase(title.strip(), project_id),
        is_json=output_json,
        user=user,
    )
    output_result(
        data={"id": phase_id, "title": title.strip() or "New Phase", "projectId": project_id},
        human_message=f"Created phase {title.strip() or 'New Phase'} ({phase_id})",
        quiet_value=phase_id,
        is_json=output_json,
        is_quiet=quiet,
    )


@phase.command("update")
@click.argument("phase_id")
@click.option("--title", default=None, help="New title.")
@click.option("--description", default=None, help="New description.")
@click.option("--status", type=_STATUS_CHOICE, default=None, help="New status.")
@common_options
def phase_update(
    phase_id: str,
    title: str | None,
    description: str | None,
    status: str | None,
    user: str | None,
    output_json: bool,
    quiet: bool,
) -> None:
    """Edit a phase's fields."""

    def _update(session) -> dict:  # noqa: ANN001
        found = find_phase(session.document, phase_id)
        if found is None:
            raise EntityNotFoundError(f"No phase with id '{phase_id}'")
        updated = _edit_fields(found[1], title=title, description=description, status=status)
        session.update_phase(updated)
        return updated

    updated, _ = run_with_session(_update, is_json=output_json, user=user)
    output_result(
        data={k: v for k, v in updated.items() if k != "tasks"},
        human_message=f"Updated phase {updated['title']} ({phase_id})",
        quiet_value=phase_id,
        is_json=output_json,
        is_quiet=quiet,
    )


@phase.command("delete")
@click.argument("phase_id")
@common_options
def phase_delete(phase_id: str, user: str | None, output_json: bool, quiet: bool) -> None:
    """Delete a phase with its tasks."""
    run_with_session(lambda s: s.delete_phase(phase_id), is_json=output_json, user=user)
    output_result(
        data={"id": phase_id, "deleted": True},
        human_message=f"Deleted phase {phase_id}",
        quiet_value=phase_id,
        is_json=output_json,
        is_quiet=quiet,
    )
