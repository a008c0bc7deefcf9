"""Group and area commands."""

from __future__ import annotations

import click

from lifeos.cli.helpers import common_options, output_error, output_result, run_with_session
from lifeos.cli.main import cli
from lifeos.core.mutations import EntityNotFoundError
from lifeos.core.queries import find_area


@cli.group()
def group() -> None:
    """Area groups."""


@group.command("add")
@click.argument("title")
@common_options
def group_add(title: str, user: str | None, output_json: bool, quiet: bool) -> None:
    """Create an area group."""
    if not title.strip():
        output_error("Group title cannot be empty.", "VALIDATION_ERROR", output_json)
    group_id, _ = run_with_session(lambda s: s.create_group(title.strip()), is_json=output_json, user=user)
    output_result(
        data={"id": group_id, "title": title.strip()},
        human_message=f"Created group {title.strip()} ({group_id})",
        quiet_value=group_id,
        is_json=output_json,
        is_quiet=quiet,
    )


@group.command("delete")
@click.argument("group_id")
@common_options
def group_delete(group_id: str, user: str | None, output_json: bool, quiet: bool) -> None:
    """Delete a group; its areas become ungrouped."""
    run_with_session(lambda s: s.delete_group(group_id), is_json=output_json, user=user)
    output_result(
        data={"id": group_id, "deleted": True},
        human_message=f"Deleted group {group_id}",
        quiet_value=group_id,
        is_json=output_json,
        is_quiet=quiet,
    )


@cli.group()
def area() -> None:
    """Areas of responsibility."""


@area.command("add")
@click.argument("title")
@click.option("--icon", default="briefcase", show_default=True, help="Icon name.")
@click.option("--group", "group_id", default=None, help="Group id to file the area under.")
@common_options
def area_add(
    title: str,
    icon: str,
    group_id: str | None,
    user: str | None,
    output_json: bool,
    quiet: bool,
) -> None:
    """Create an area."""
    if not title.strip():
        output_error("Area title cannot be empty.", "VALIDATION_ERROR", output_json)
    area_id, _ = run_with_session(
        lambda s: s.create_area(title.strip(), icon, group_id),
        is_json=output_json,
        user=user,
    )
    output_result(
        data={"id": area_id, "title": title.strip(), "icon": icon, "groupId": group_id},
        human_message=f"Created area {title.strip()} ({area_id})",
        quiet_value=area_id,
        is_json=output_json,
        is_quiet=quiet,
    )


@area.command("update")
@click.argument("area_id")
@click.option("--title", default=None, help="New title.")
@click.option("--icon", default=None, help="New icon name.")
@click.option("--description", default=None, help="New description.")
@click.option("--group", "group_id", default=None, help="Group id ('' to ungroup).")
@click.option("--label", "labels", multiple=True, help="Replace labels (repeatable).")
@common_options
def area_update(
    area_id: str,
    title: str | None,
    icon: str | None,
    description: str | None,
    group_id: str | None,
    labels: tuple[str, ...],
    user: str | None,
    output_json: bool,
    quiet: bool,
) -> None:
    """Edit an area's fields."""

    def _update(session) -> dict:  # noqa: ANN001
        current = find_area(session.document, area_id)
        if current is None:
            raise EntityNotFoundError(f"No area with id '{area_id}'")
        updated = dict(current)
        if title is not None:
            updated["title"] = title
        if icon is not None:
            updated["icon"] = icon
        if description is not None:
            updated["description"] = description
        if group_id is not None:
            if group_id:
                updated["groupId"] = group_id
            else:
                updated.pop("groupId", None)
        if labels:
            updated["labels"] = list(labels)
        session.update_area(updated)
        return updated

    updated, _ = run_with_session(_update, is_json=output_json, user=user)
    output_result(
        data={k: v for k, v in updated.items() if k not in ("tasks", "projects")},
        human_message=f"Updated area {updated['title']} ({area_id})",
        quiet_value=area_id,
        is_json=output_json,
        is_quiet=quiet,
    )


@area.command("delete")
@click.argument("area_id")
@common_options
def area_delete(area_id: str, user: str | None, output_json: bool, quiet: bool) -> None:
    """Delete an area with everything in it."""
    run_with_session(lambda s: s.delete_area(area_id), is_json=output_json, user=user)
    output_result(
        data={"id": area_id, "deleted": True},
        human_message=f"Deleted area {area_id}",
        quiet_value=area_id,
        is_json=output_json,
        is_quiet=quiet,
    )
