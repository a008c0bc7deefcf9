"""Whole-document commands: show, status, search, doctor, export, sync, reset."""

from __future__ import annotations

from pathlib import Path

import click

from lifeos.cli.helpers import (
    common_options,
    json_envelope,
    load_cli_config,
    output_error,
    output_result,
    require_data_dir,
    run_with_session,
)
from lifeos.cli.main import cli
from lifeos.core.queries import format_location
from lifeos.core.schema import Document, Task

_STATUS_MARKS = {"Backlog": "[ ]", "In Progress": "[~]", "Done": "[x]"}


def _task_line(task: Task, indent: str) -> str:
    mark = _STATUS_MARKS.get(task.get("status", ""), "[?]")
    return f"{indent}{mark} {task.get('title', '')}  {task.get('priority', '')}  ({task.get('id')})"


def render_tree(doc: Document) -> list[str]:
    """Render the document as an indented outline, grouped areas first."""
    lines = [f"Inbox ({len(doc['inbox'])})"]
    lines.extend(_task_line(t, "  ") for t in doc["inbox"])

    group_titles = {g["id"]: g["title"] for g in doc["areaGroups"]}
    for area in doc["areas"]:
        group = group_titles.get(area.get("groupId") or "")
        suffix = f"  [{group}]" if group else ""
        lines.append(f"{area.get('title')}  ({area.get('id')}){suffix}")
        lines.extend(_task_line(t, "  ") for t in area["tasks"])
        for project in area["projects"]:
            lines.append(f"  Project: {project.get('title')}  {project.get('status')}  ({project.get('id')})")
            lines.extend(_task_line(t, "    ") for t in project["tasks"])
            for phase in project["phases"]:
                lines.append(f"    Phase: {phase.get('title')}  {phase.get('status')}  ({phase.get('id')})")
                lines.extend(_task_line(t, "      ") for t in phase["tasks"])
    return lines


@cli.command()
@common_options
def show(user: str | None, output_json: bool, quiet: bool) -> None:
    """Print the current document."""
    doc, _ = run_with_session(lambda s: s.document, is_json=output_json, user=user)
    output_result(
        data=doc,
        human_message="\n".join(render_tree(doc)),
        quiet_value=str(len(doc["areas"])),
        is_json=output_json,
        is_quiet=quiet,
    )


@cli.command()
@common_options
def status(user: str | None, output_json: bool, quiet: bool) -> None:
    """Show the sync status and document counts."""
    _, session = run_with_session(lambda s: None, is_json=output_json, user=user)
    doc = session.document
    task_count = sum(1 for _ in session.search(""))
    data = {
        "sync_status": session.sync_status.value,
        "last_sync_error": session.last_sync_error,
        "remote": session.engine is not None,
        "user_id": session.user_id,
        "groups": len(doc["areaGroups"]),
        "areas": len(doc["areas"]),
        "tasks": task_count,
    }
    lines = [f"Sync: {data['sync_status']}" + ("" if data["remote"] else " (local only)")]
    if data["last_sync_error"]:
        lines.append(f"Last error: {data['last_sync_error']}")
    lines.append(f"{data['groups']} groups, {data['areas']} areas, {task_count} tasks")
    output_result(
        data=data,
        human_message="\n".join(lines),
        quiet_value=data["sync_status"],
        is_json=output_json,
        is_quiet=quiet,
    )


@cli.command()
@click.argument("query")
@common_options
def search(query: str, user: str | None, output_json: bool, quiet: bool) -> None:
    """Find tasks whose title, description or labels contain QUERY."""
    matches, _ = run_with_session(lambda s: s.search(query), is_json=output_json, user=user)
    data = [{"location": format_location(loc), "task": task} for loc, task in matches]
    if output_json:
        click.echo(json_envelope(True, data=data))
        return
    if quiet:
        for _, task in matches:
            click.echo(task["id"])
        return
    if not matches:
        click.echo("No matching tasks.")
        return
    for loc, task in matches:
        click.echo(f"{_task_line(task, '')}  in {format_location(loc)}")


@cli.command()
@click.option("--json", "output_json", is_flag=True, help="Output structured JSON.")
def doctor(output_json: bool) -> None:
    """Check the cached document for integrity problems."""
    findings, _ = run_with_session(lambda s: s.check(), is_json=output_json)
    errors = [f for f in findings if f["level"] == "error"]
    if output_json:
        click.echo(json_envelope(not errors, data={"findings": findings}))
    elif not findings:
        click.echo("No problems found.")
    else:
        for finding in findings:
            click.echo(f"{finding['level'].upper()}: {finding['message']}")
    if errors:
        raise SystemExit(1)


@cli.command()
@click.argument("destination", type=click.Path(path_type=Path), default=".")
@common_options
def export(destination: Path, user: str | None, output_json: bool, quiet: bool) -> None:
    """Write the document to DESTINATION (a file, or a directory for lifeos-data.json)."""
    path, _ = run_with_session(lambda s: s.export(destination), is_json=output_json, user=user)
    output_result(
        data={"path": str(path)},
        human_message=f"Exported to {path}",
        quiet_value=str(path),
        is_json=output_json,
        is_quiet=quiet,
    )


@cli.command()
@click.option(
    "--push",
    is_flag=True,
    help="After a successful load, upload the current document again (the remote copy when one was adopted).",
)
@common_options
def sync(push: bool, user: str | None, output_json: bool, quiet: bool) -> None:
    """Load the remote document for the user (adopting it, or seeding it)."""
    data_dir = require_data_dir(output_json)
    config = load_cli_config(data_dir, output_json, user)
    if not config.get("remote_url"):
        output_error("Remote sync is not configured (set remote_url or LIFEOS_REMOTE_URL).", "CONFIG_ERROR", output_json)
    if not config.get("user_id"):
        output_error("No user id (pass --user or set LIFEOS_USER_ID).", "VALIDATION_ERROR", output_json)

    def _sync(session) -> None:  # noqa: ANN001
        if push and session.engine is not None and session.last_error is None:
            session.engine.notify_change()

    _, session = run_with_session(_sync, is_json=output_json, user=user)
    data = {"sync_status": session.sync_status.value, "last_sync_error": session.last_sync_error}
    if session.last_sync_error:
        output_error(session.last_sync_error, "SYNC_ERROR", output_json)
    output_result(
        data=data,
        human_message=f"Synced as {session.user_id}.",
        quiet_value=data["sync_status"],
        is_json=output_json,
        is_quiet=quiet,
    )


@cli.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
@common_options
def reset(yes: bool, user: str | None, output_json: bool, quiet: bool) -> None:
    """Discard all data and start again from the starter areas."""
    if not yes and not output_json:
        click.confirm("Reset all data? This cannot be undone.", abort=True)
    run_with_session(lambda s: s.reset(), is_json=output_json, user=user)
    output_result(
        data={"reset": True},
        human_message="All data reset.",
        quiet_value="reset",
        is_json=output_json,
        is_quiet=quiet,
    )
