"""
FILE: jedi_organizer/cli/commands/projects.py
PURPOSE: Project commands (project add, ls, show, edit, complete, archive,
         hold, activate, tasks, settings, search, stats, rm)
"""

from typing import Callable, List, Optional

import typer
from rich.markup import escape

from ..main import (
    console,
    current_user_id,
    error_console,
    fail,
    parse_due,
    print_json,
    print_raw,
    project_app,
)
from ...core import service, statistics
from ...core.exceptions import JediError
from ...core.models import UNSET, Project, ProjectDraft, ProjectUpdate
from ...formatting import ProjectFormatter, TaskFormatter, format_statistics, parse_ids


def _render(projects: List[Project], title: str, json_output: bool, raw: bool) -> None:
    if json_output:
        print_json(ProjectFormatter.to_json_array(projects))
    elif raw:
        print_raw(ProjectFormatter.to_raw_lines(projects))
    else:
        if not projects:
            console.print("[dim]No projects found[/dim]")
            return
        console.print(ProjectFormatter.create_table(projects, title=title))
        console.print(f"\n[dim]Total: {len(projects)} project(s)[/dim]")


def _render_one(project: Project, message: str, json_output: bool, raw: bool) -> None:
    if json_output:
        print_json(project.to_json())
    elif raw:
        print_raw([f"{project.id}: [{project.status}] {project.title}"])
    else:
        console.print(
            f"[green]✓ {message} [bold]#{project.id}[/bold]:[/green] {escape(project.title)}"
        )


@project_app.command("add")
def project_add(
    ctx: typer.Context,
    title: str = typer.Argument(..., help="Project title"),
    description: Optional[str] = typer.Option(None, "--desc", "-d", help="Description"),
    priority: int = typer.Option(3, "--priority", "-p", help="1 (highest) to 5"),
    due: Optional[str] = typer.Option(None, "--due", help="Due date, YYYY-MM-DD[ HH:MM]"),
    status: str = typer.Option("ACTIVE", "--status", help="Initial status"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Create a new project.

    Example:
        jedi project add "Website relaunch" --priority 1 --due 2026-12-01
    """
    user_id = current_user_id(ctx)
    draft = ProjectDraft(
        title=title,
        description=description,
        priority=priority,
        due_date=parse_due(due) if due else None,
        status=status.upper(),
    )
    try:
        project = service.create_project(draft, user_id)
    except JediError as e:
        fail(e)

    if json_output:
        print_json(project.to_json())
    elif raw:
        print_raw([f"{project.id}: {project.title}"])
    else:
        console.print(
            f"[green]✓ Created project [bold]#{project.id}[/bold]:[/green] {escape(project.title)}"
        )


@project_app.command("ls")
def project_ls(
    ctx: typer.Context,
    status: Optional[str] = typer.Option(None, "--status", help="Only projects with this status"),
    active: bool = typer.Option(False, "--active", help="Only active projects"),
    high_priority: bool = typer.Option(False, "--high", help="Only priority 1-2 projects"),
    updated_days: Optional[int] = typer.Option(None, "--updated", help="Updated in the last N days"),
    new_days: Optional[int] = typer.Option(None, "--new", help="Created in the last N days"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    List your projects. Filters combine.

    Example:
        jedi project ls
        jedi project ls --active --high
        jedi project ls --updated 7 --json
    """
    user_id = current_user_id(ctx)
    try:
        views = []
        if status:
            views.append(service.list_projects_by_status(user_id, status.upper()))
        if active:
            views.append(service.list_active_projects(user_id))
        if high_priority:
            views.append(service.list_high_priority_projects(user_id))
        if updated_days is not None:
            views.append(service.list_recently_updated_projects(user_id, updated_days))
        if new_days is not None:
            views.append(service.list_new_projects(user_id, new_days))

        projects = service.list_user_projects(user_id)
        for view in views:
            keep = {p.id for p in view}
            projects = [p for p in projects if p.id in keep]
    except JediError as e:
        fail(e)

    _render(projects, "Projects", json_output, raw)


@project_app.command("show")
def project_show(
    ctx: typer.Context,
    project_id: int = typer.Argument(..., help="Project ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show full project details and settings."""
    user_id = current_user_id(ctx)
    try:
        project = service.get_project(project_id, user_id)
    except JediError as e:
        fail(e)

    if json_output:
        print_json(project.to_json())
    else:
        console.print(ProjectFormatter.create_panel(project))


@project_app.command("edit")
def project_edit(
    ctx: typer.Context,
    project_id: int = typer.Argument(..., help="Project ID"),
    title: Optional[str] = typer.Option(None, "--title", help="New title"),
    description: Optional[str] = typer.Option(None, "--desc", "-d", help="New description"),
    priority: Optional[int] = typer.Option(None, "--priority", "-p", help="New priority, 1-5"),
    due: Optional[str] = typer.Option(None, "--due", help="New due date"),
    clear_due: bool = typer.Option(False, "--clear-due", help="Remove the due date"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Change project fields. Options not given are left as they are.

    Example:
        jedi project edit 2 --priority 1
        jedi project edit 2 --clear-due
    """
    if clear_due:
        due_date = None
    else:
        due_date = parse_due(due) if due else UNSET
    update = ProjectUpdate(
        title=title if title is not None else UNSET,
        description=description if description is not None else UNSET,
        priority=priority if priority is not None else UNSET,
        due_date=due_date,
    )
    if not update.present():
        error_console.print("[yellow]Nothing to change[/yellow]")
        raise typer.Exit(1)

    user_id = current_user_id(ctx)
    try:
        project = service.update_project(project_id, user_id, update)
    except JediError as e:
        fail(e)

    _render_one(project, "Updated project", json_output, raw)


def _change_status(ctx: typer.Context, project_id: int, action: Callable, verb: str, json_output: bool, raw: bool) -> None:
    user_id = current_user_id(ctx)
    try:
        project = action(project_id, user_id)
    except JediError as e:
        fail(e)
    _render_one(project, verb, json_output, raw)


@project_app.command("complete")
def project_complete(
    ctx: typer.Context,
    project_id: int = typer.Argument(..., help="Project ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """Mark a project as completed."""
    _change_status(ctx, project_id, service.complete_project, "Completed project", json_output, raw)


@project_app.command("archive")
def project_archive(
    ctx: typer.Context,
    project_id: int = typer.Argument(..., help="Project ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """Archive a project."""
    _change_status(ctx, project_id, service.archive_project, "Archived project", json_output, raw)


@project_app.command("hold")
def project_hold(
    ctx: typer.Context,
    project_id: int = typer.Argument(..., help="Project ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """Put a project on hold."""
    _change_status(ctx, project_id, service.put_project_on_hold, "Paused project", json_output, raw)


@project_app.command("activate")
def project_activate(
    ctx: typer.Context,
    project_id: int = typer.Argument(..., help="Project ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """Make a project active again."""
    _change_status(ctx, project_id, service.reactivate_project, "Activated project", json_output, raw)


@project_app.command("tasks")
def project_tasks(
    ctx: typer.Context,
    project_id: int = typer.Argument(..., help="Project ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    List the tasks of a project.

    Example:
        jedi project tasks 2
    """
    user_id = current_user_id(ctx)
    try:
        project = service.get_project(project_id, user_id)
        tasks = service.list_project_tasks(user_id, project.id)
    except JediError as e:
        fail(e)

    if json_output:
        print_json(TaskFormatter.to_json_array(tasks))
    elif raw:
        print_raw(TaskFormatter.to_raw_lines(tasks))
    elif not tasks:
        console.print(f"[dim]No tasks in project {escape(project.title)}[/dim]")
    else:
        console.print(TaskFormatter.create_table(tasks, title=escape(project.title)))


@project_app.command("settings")
def project_settings(
    ctx: typer.Context,
    project_id: int = typer.Argument(..., help="Project ID"),
    notifications: Optional[bool] = typer.Option(
        None, "--notifications/--no-notifications", help="Project notifications"
    ),
    auto_archive: Optional[bool] = typer.Option(
        None, "--auto-archive/--no-auto-archive", help="Archive automatically when complete"
    ),
    max_daily: Optional[int] = typer.Option(
        None, "--max-daily", help="Most tasks per day taken from this project"
    ),
    weekly: Optional[bool] = typer.Option(
        None, "--weekly/--no-weekly", help="Include in weekly reflection"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Show or change project settings.

    Example:
        jedi project settings 2
        jedi project settings 2 --no-notifications --max-daily 3
    """
    changes = {}
    if notifications is not None:
        changes["notifications_enabled"] = notifications
    if auto_archive is not None:
        changes["auto_archive_when_complete"] = auto_archive
    if max_daily is not None:
        changes["max_daily_tasks_from_project"] = max_daily
    if weekly is not None:
        changes["include_in_weekly_reflection"] = weekly

    user_id = current_user_id(ctx)
    try:
        if changes:
            project = service.update_project_settings(project_id, user_id, **changes)
        else:
            project = service.get_project(project_id, user_id)
    except JediError as e:
        fail(e)

    if json_output:
        print_json(project.to_json())
    else:
        console.print(ProjectFormatter.create_panel(project))


@project_app.command("search")
def project_search(
    ctx: typer.Context,
    text: str = typer.Argument(..., help="Text to look for in titles"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """Case-insensitive project title search."""
    user_id = current_user_id(ctx)
    try:
        projects = service.search_projects(user_id, text)
    except JediError as e:
        fail(e)

    _render(projects, "Search results", json_output, raw)


@project_app.command("stats")
def project_stats(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show project counts by status, plus overdue and high-priority."""
    user_id = current_user_id(ctx)
    try:
        result = statistics.project_statistics(user_id)
    except JediError as e:
        fail(e)

    if json_output:
        print_json(result.to_json())
    else:
        console.print(format_statistics(result, "Project statistics"))


@project_app.command("rm")
def project_rm(
    ctx: typer.Context,
    project_ids: str = typer.Argument(..., help="Project ID(s) to delete (comma-separated)"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip confirmation prompt"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Delete one or more projects permanently.

    Tasks in deleted projects are kept and still carry the old project ID.

    Confirms before deleting multiple projects (use -y to skip).

    Example:
        jedi project rm 2
        jedi project rm 2,3 --yes
    """
    try:
        ids = parse_ids(project_ids)
    except ValueError:
        error_console.print(f"[red]Error:[/red] Invalid project ID list: {escape(project_ids)}")
        raise typer.Exit(1)

    user_id = current_user_id(ctx)

    if not yes and len(ids) > 1:
        console.print(f"[yellow]About to delete {len(ids)} project(s)[/yellow]")
        if not typer.confirm("Continue?", default=False):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    deleted = []
    errors = []
    for project_id in ids:
        try:
            project = service.get_project(project_id, user_id)
            service.delete_project(project_id, user_id)
            deleted.append(project)
        except JediError as e:
            errors.append(str(e))

    if json_output:
        print_json(ProjectFormatter.to_json_array(deleted))
    elif raw:
        print_raw([f"Deleted project {p.id}: {p.title}" for p in deleted])
    else:
        for project in deleted:
            console.print(f"[red]✗[/red] Deleted project {project.id}: {escape(project.title)}")

    for error in errors:
        error_console.print(f"[red]Error:[/red] {escape(error)}")
    if errors:
        raise typer.Exit(1)
