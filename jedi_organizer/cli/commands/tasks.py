"""
FILE: jedi_organizer/cli/commands/tasks.py
PURPOSE: Task commands (task add, ls, show, edit, start, done, cancel, wait,
         status, schedule, note, subtask, reflect, rm)
"""

from typing import Callable, List, Optional

import typer
from rich.markup import escape

from ..main import (
    console,
    current_user_id,
    error_console,
    fail,
    parse_day,
    parse_due,
    print_json,
    print_raw,
    task_app,
)
from ...core import service
from ...core.exceptions import JediError
from ...core.models import UNSET, Task, TaskDraft, TaskReflection, TaskUpdate
from ...formatting import TaskFormatter, parse_ids

# Fields `task edit --clear` may reset to empty
CLEARABLE_FIELDS = ("description", "context", "due_date", "scheduled_date", "project_id")


def _render(tasks: List[Task], title: str, json_output: bool, raw: bool, empty: str) -> None:
    if json_output:
        print_json(TaskFormatter.to_json_array(tasks))
    elif raw:
        print_raw(TaskFormatter.to_raw_lines(tasks))
    else:
        if not tasks:
            console.print(f"[dim]{empty}[/dim]")
            return
        console.print(TaskFormatter.create_table(tasks, title=title))
        console.print(f"\n[dim]Total: {len(tasks)} task(s)[/dim]")


def _render_one(task: Task, message: str, json_output: bool, raw: bool) -> None:
    if json_output:
        print_json(task.to_json())
    elif raw:
        print_raw([f"{task.id}: [{task.status}] {task.title}"])
    else:
        console.print(f"[green]✓ {message} [bold]#{task.id}[/bold]:[/green] {escape(task.title)}")


@task_app.command("add")
def task_add(
    ctx: typer.Context,
    title: str = typer.Argument(..., help="Task title"),
    description: Optional[str] = typer.Option(None, "--desc", "-d", help="Description"),
    task_type: str = typer.Option("ACTION", "--type", "-t", help="ACTION, WAITING_FOR, REFERENCE or SOMEDAY_MAYBE"),
    context: Optional[str] = typer.Option(None, "--context", "-c", help="Context label, e.g. @home"),
    energy: int = typer.Option(3, "--energy", "-e", help="Energy needed, 1-5"),
    due: Optional[str] = typer.Option(None, "--due", help="Due date, YYYY-MM-DD[ HH:MM]"),
    scheduled: Optional[str] = typer.Option(None, "--scheduled", "-s", help="Planned day, YYYY-MM-DD or 'today'"),
    project_id: Optional[int] = typer.Option(None, "--project", "-p", help="Project ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Create a new task.

    Example:
        jedi task add "Write report"
        jedi task add "Call plumber" --context @phone --energy 2 --scheduled today
    """
    user_id = current_user_id(ctx)
    draft = TaskDraft(
        title=title,
        description=description,
        type=task_type.upper(),
        context=context,
        energy=energy,
        due_date=parse_due(due) if due else None,
        scheduled_date=parse_day(scheduled) if scheduled else None,
        project_id=project_id,
    )
    try:
        task = service.create_task(draft, user_id)
    except JediError as e:
        fail(e)

    if json_output:
        print_json(task.to_json())
    elif raw:
        print_raw([f"{task.id}: {task.title}"])
    else:
        console.print(f"[green]✓ Created task [bold]#{task.id}[/bold]:[/green] {escape(task.title)}")


@task_app.command("ls")
def task_ls(
    ctx: typer.Context,
    status: Optional[str] = typer.Option(None, "--status", help="Only tasks with this status"),
    task_type: Optional[str] = typer.Option(None, "--type", "-t", help="Only tasks of this type"),
    context: Optional[str] = typer.Option(None, "--context", "-c", help="Only tasks with this context"),
    max_energy: Optional[int] = typer.Option(None, "--max-energy", help="Only tasks needing at most this energy"),
    project_id: Optional[int] = typer.Option(None, "--project", "-p", help="Only tasks in this project"),
    unassigned: bool = typer.Option(False, "--unassigned", help="Only tasks without a project"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    List your tasks, newest first. Filters combine.

    Example:
        jedi task ls
        jedi task ls --status TODO --max-energy 2
        jedi task ls --project 3 --json
    """
    user_id = current_user_id(ctx)
    try:
        # Each filter narrows the previous result by id
        views = []
        if status:
            views.append(service.list_tasks_by_status(user_id, status.upper()))
        if task_type:
            views.append(service.list_tasks_by_type(user_id, task_type.upper()))
        if context:
            views.append(service.list_tasks_by_context(user_id, context))
        if max_energy is not None:
            views.append(service.list_tasks_by_energy(user_id, max_energy))
        if project_id is not None:
            views.append(service.list_project_tasks(user_id, project_id))
        if unassigned:
            views.append(service.list_unassigned_tasks(user_id))

        tasks = service.list_user_tasks(user_id)
        for view in views:
            keep = {t.id for t in view}
            tasks = [t for t in tasks if t.id in keep]
    except JediError as e:
        fail(e)

    _render(tasks, "Tasks", json_output, raw, "No tasks found")


@task_app.command("show")
def task_show(
    ctx: typer.Context,
    task_id: int = typer.Argument(..., help="Task ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Show full task details: notes, subtasks and reflection.

    Example:
        jedi task show 5
    """
    user_id = current_user_id(ctx)
    try:
        task = service.get_task(task_id, user_id)
    except JediError as e:
        fail(e)

    if json_output:
        print_json(task.to_json())
    else:
        console.print(TaskFormatter.create_panel(task))


@task_app.command("edit")
def task_edit(
    ctx: typer.Context,
    task_id: int = typer.Argument(..., help="Task ID"),
    title: Optional[str] = typer.Option(None, "--title", help="New title"),
    description: Optional[str] = typer.Option(None, "--desc", "-d", help="New description"),
    task_type: Optional[str] = typer.Option(None, "--type", "-t", help="New type"),
    context: Optional[str] = typer.Option(None, "--context", "-c", help="New context"),
    energy: Optional[int] = typer.Option(None, "--energy", "-e", help="New energy, 1-5"),
    due: Optional[str] = typer.Option(None, "--due", help="New due date"),
    scheduled: Optional[str] = typer.Option(None, "--scheduled", "-s", help="New planned day"),
    project_id: Optional[int] = typer.Option(None, "--project", "-p", help="New project ID"),
    clear: List[str] = typer.Option([], "--clear", help=f"Empty a field: {', '.join(CLEARABLE_FIELDS)}"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Change task fields. Options not given are left as they are.

    Example:
        jedi task edit 5 --title "Write final report" --energy 4
        jedi task edit 5 --clear due_date --clear context
    """
    unknown = [name for name in clear if name not in CLEARABLE_FIELDS]
    if unknown:
        error_console.print(f"[red]Error:[/red] Cannot clear: {', '.join(unknown)}")
        raise typer.Exit(1)

    update = TaskUpdate(
        title=title if title is not None else UNSET,
        description=description if description is not None else UNSET,
        type=task_type.upper() if task_type else UNSET,
        context=context if context is not None else UNSET,
        energy=energy if energy is not None else UNSET,
        due_date=parse_due(due) if due else UNSET,
        scheduled_date=parse_day(scheduled) if scheduled else UNSET,
        project_id=project_id if project_id is not None else UNSET,
    )
    for name in clear:
        setattr(update, name, None)

    if not update.present():
        error_console.print("[yellow]Nothing to change[/yellow]")
        raise typer.Exit(1)

    user_id = current_user_id(ctx)
    try:
        task = service.update_task(task_id, user_id, update)
    except JediError as e:
        fail(e)

    _render_one(task, "Updated task", json_output, raw)


def _bulk(ctx: typer.Context, task_ids: str, action: Callable, verb: str, json_output: bool, raw: bool) -> None:
    """Apply a status shortcut to comma-separated task IDs."""
    try:
        ids = parse_ids(task_ids)
    except ValueError:
        error_console.print(f"[red]Error:[/red] Invalid task ID list: {escape(task_ids)}")
        raise typer.Exit(1)

    user_id = current_user_id(ctx)
    changed = []
    errors = []
    for task_id in ids:
        try:
            changed.append(action(task_id, user_id))
        except JediError as e:
            errors.append(str(e))

    if json_output:
        print_json(TaskFormatter.to_json_array(changed))
    elif raw:
        print_raw(TaskFormatter.to_raw_lines(changed))
    else:
        for task in changed:
            console.print(f"[green]✓ {verb} [bold]#{task.id}[/bold]:[/green] {escape(task.title)}")

    for error in errors:
        error_console.print(f"[red]Error:[/red] {escape(error)}")
    if errors:
        raise typer.Exit(1)


@task_app.command("start")
def task_start(
    ctx: typer.Context,
    task_ids: str = typer.Argument(..., help="Task ID(s), comma-separated"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Start working on task(s) (IN_PROGRESS).

    Example:
        jedi task start 5
        jedi task start 5,6
    """
    _bulk(ctx, task_ids, service.start_task, "Started", json_output, raw)


@task_app.command("done")
def task_done(
    ctx: typer.Context,
    task_ids: str = typer.Argument(..., help="Task ID(s), comma-separated"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Mark task(s) as completed.

    Example:
        jedi task done 5
        jedi task done 1,2,3
    """
    _bulk(ctx, task_ids, service.complete_task, "Completed", json_output, raw)


@task_app.command("cancel")
def task_cancel(
    ctx: typer.Context,
    task_ids: str = typer.Argument(..., help="Task ID(s), comma-separated"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """Cancel task(s)."""
    _bulk(ctx, task_ids, service.cancel_task, "Cancelled", json_output, raw)


@task_app.command("wait")
def task_wait(
    ctx: typer.Context,
    task_ids: str = typer.Argument(..., help="Task ID(s), comma-separated"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """Park task(s) as WAITING (blocked on someone else)."""
    _bulk(ctx, task_ids, service.wait_task, "Waiting on", json_output, raw)


@task_app.command("status")
def task_status(
    ctx: typer.Context,
    task_id: int = typer.Argument(..., help="Task ID"),
    status: str = typer.Argument(..., help="TODO, IN_PROGRESS, WAITING, COMPLETED or CANCELLED"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Move a task to any status.

    Example:
        jedi task status 5 WAITING
    """
    user_id = current_user_id(ctx)
    try:
        task = service.transition_task(task_id, user_id, status.upper())
    except JediError as e:
        fail(e)

    _render_one(task, f"Moved to {task.status}", json_output, raw)


@task_app.command("schedule")
def task_schedule(
    ctx: typer.Context,
    task_id: int = typer.Argument(..., help="Task ID"),
    day: str = typer.Argument(..., help="YYYY-MM-DD, 'today', or 'none' to unschedule"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Plan a task for a day.

    Example:
        jedi task schedule 5 today
        jedi task schedule 5 2026-11-02
        jedi task schedule 5 none
    """
    scheduled = None if day.strip().lower() == "none" else parse_day(day)
    user_id = current_user_id(ctx)
    try:
        task = service.schedule_task(task_id, user_id, scheduled)
    except JediError as e:
        fail(e)

    _render_one(task, "Scheduled task" if scheduled else "Unscheduled task", json_output, raw)


@task_app.command("note")
def task_note(
    ctx: typer.Context,
    task_id: int = typer.Argument(..., help="Task ID"),
    content: str = typer.Argument(..., help="Note text"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Append a timestamped note to a task.

    Example:
        jedi task note 5 "Waiting for Sam's numbers"
    """
    user_id = current_user_id(ctx)
    try:
        task = service.add_note(task_id, user_id, content)
    except JediError as e:
        fail(e)

    _render_one(task, "Added note to task", json_output, raw)


@task_app.command("subtask")
def task_subtask(
    ctx: typer.Context,
    task_id: int = typer.Argument(..., help="Task ID"),
    title: str = typer.Argument(..., help="Subtask title"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """Append a subtask to a task."""
    user_id = current_user_id(ctx)
    try:
        task = service.add_subtask(task_id, user_id, title)
    except JediError as e:
        fail(e)

    _render_one(task, "Added subtask to task", json_output, raw)


@task_app.command("reflect")
def task_reflect(
    ctx: typer.Context,
    task_id: int = typer.Argument(..., help="Task ID (must be completed)"),
    rating: int = typer.Option(..., "--rating", "-r", help="Satisfaction, 1-5"),
    went_well: Optional[str] = typer.Option(None, "--well", help="What went well"),
    could_improve: Optional[str] = typer.Option(None, "--improve", help="What could improve"),
    lessons: Optional[str] = typer.Option(None, "--lessons", help="Lessons learned"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Record a reflection on a completed task.

    Example:
        jedi task reflect 5 --rating 4 --well "Started early" --lessons "Block mornings"
    """
    reflection = TaskReflection(
        satisfaction_rating=rating,
        what_went_well=went_well,
        what_could_improve=could_improve,
        lessons_learned=lessons,
    )
    user_id = current_user_id(ctx)
    try:
        task = service.add_reflection(task_id, user_id, reflection)
    except JediError as e:
        fail(e)

    _render_one(task, "Reflected on task", json_output, raw)


@task_app.command("rm")
def task_rm(
    ctx: typer.Context,
    task_ids: str = typer.Argument(..., help="Task ID(s) to delete (comma-separated)"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip confirmation prompt"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Delete one or more tasks permanently.

    Confirms before deleting multiple tasks (use -y to skip).

    Example:
        jedi task rm 5
        jedi task rm 5,6,7 --yes
    """
    try:
        ids = parse_ids(task_ids)
    except ValueError:
        error_console.print(f"[red]Error:[/red] Invalid task ID list: {escape(task_ids)}")
        raise typer.Exit(1)

    user_id = current_user_id(ctx)

    if not yes and len(ids) > 1:
        console.print(f"[yellow]About to delete {len(ids)} task(s)[/yellow]")
        if not typer.confirm("Continue?", default=False):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    deleted = []
    errors = []
    for task_id in ids:
        try:
            task = service.get_task(task_id, user_id)
            service.delete_task(task_id, user_id)
            deleted.append(task)
        except JediError as e:
            errors.append(str(e))

    if json_output:
        print_json(TaskFormatter.to_json_array(deleted))
    elif raw:
        print_raw([f"Deleted task {t.id}: {t.title}" for t in deleted])
    else:
        for task in deleted:
            console.print(f"[red]✗[/red] Deleted task {task.id}: {escape(task.title)}")

    for error in errors:
        error_console.print(f"[red]Error:[/red] {escape(error)}")
    if errors:
        raise typer.Exit(1)
