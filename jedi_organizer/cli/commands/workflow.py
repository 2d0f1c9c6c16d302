"""
FILE: jedi_organizer/cli/commands/workflow.py
PURPOSE: Daily workflow commands (today, overdue, search, reflections, stats)
"""

from datetime import datetime, timedelta

import typer

from ..main import app, console, current_user_id, fail, print_json, print_raw
from ...core import service, statistics
from ...core.exceptions import JediError
from ...formatting import ProjectFormatter, TaskFormatter, format_statistics


@app.command()
def today(
    ctx: typer.Context,
    scheduled_only: bool = typer.Option(
        False, "--scheduled", help="Only tasks scheduled for today"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    List today's working set.

    Shows tasks scheduled for today plus unscheduled tasks that are TODO or
    IN_PROGRESS. Use --scheduled to see only what was planned for today.

    Example:
        jedi today
        jedi today --scheduled --json
    """
    user_id = current_user_id(ctx)
    try:
        if scheduled_only:
            tasks = service.list_todays_tasks(user_id)
        else:
            tasks = service.list_todays_actionable_tasks(user_id)
    except JediError as e:
        fail(e)

    if json_output:
        print_json(TaskFormatter.to_json_array(tasks))
    elif raw:
        print_raw(TaskFormatter.to_raw_lines(tasks))
    else:
        if not tasks:
            console.print("[dim]Nothing for today[/dim]")
            console.print("[dim]Use 'jedi task schedule <task_id> today' to plan tasks[/dim]")
            return
        console.print(TaskFormatter.create_table(tasks, title="Today"))
        console.print(f"\n[dim]Total: {len(tasks)} task(s)[/dim]")


@app.command()
def overdue(
    ctx: typer.Context,
    projects: bool = typer.Option(False, "--projects", help="Show overdue projects instead of tasks"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    List overdue tasks (or projects), most overdue first.

    Example:
        jedi overdue
        jedi overdue --projects
    """
    user_id = current_user_id(ctx)
    try:
        if projects:
            items = service.list_overdue_projects(user_id)
        else:
            items = service.list_overdue_tasks(user_id)
    except JediError as e:
        fail(e)

    formatter = ProjectFormatter if projects else TaskFormatter
    if json_output:
        print_json(formatter.to_json_array(items))
    elif raw:
        print_raw(formatter.to_raw_lines(items))
    elif not items:
        console.print("[green]Nothing overdue[/green]")
    else:
        console.print(formatter.create_table(items, title="Overdue"))


@app.command()
def search(
    ctx: typer.Context,
    text: str = typer.Argument(..., help="Text to look for in titles"),
    projects: bool = typer.Option(False, "--projects", help="Search projects instead of tasks"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Case-insensitive title search.

    Example:
        jedi search report
        jedi search launch --projects
    """
    user_id = current_user_id(ctx)
    try:
        if projects:
            items = service.search_projects(user_id, text)
        else:
            items = service.search_tasks(user_id, text)
    except JediError as e:
        fail(e)

    formatter = ProjectFormatter if projects else TaskFormatter
    if json_output:
        print_json(formatter.to_json_array(items))
    elif raw:
        print_raw(formatter.to_raw_lines(items))
    elif not items:
        console.print("[dim]No matches[/dim]")
    else:
        console.print(formatter.create_table(items, title="Search results"))


@app.command()
def reflections(
    ctx: typer.Context,
    days: int = typer.Option(7, "--days", "-n", help="Look back this many days"),
    reflected: bool = typer.Option(False, "--reflected", help="Only tasks that already have a reflection"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Review recently completed tasks.

    Lists tasks completed in the last --days days, ready for
    'jedi task reflect'. With --reflected, lists every task that has a
    reflection instead.

    Example:
        jedi reflections
        jedi reflections --days 30
        jedi reflections --reflected
    """
    user_id = current_user_id(ctx)
    try:
        if reflected:
            tasks = service.list_tasks_with_reflection(user_id)
        else:
            end = datetime.now()
            tasks = service.list_completed_tasks_for_reflection(
                user_id, end - timedelta(days=days), end
            )
    except JediError as e:
        fail(e)

    if json_output:
        print_json(TaskFormatter.to_json_array(tasks))
    elif raw:
        print_raw(TaskFormatter.to_raw_lines(tasks))
    elif not tasks:
        console.print("[dim]No completed tasks to reflect on[/dim]")
    else:
        title = "Reflected tasks" if reflected else f"Completed in the last {days} day(s)"
        console.print(TaskFormatter.create_table(tasks, title=title))


@app.command()
def stats(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Show task counts: total, per status, scheduled today and overdue.

    Example:
        jedi stats
        jedi stats --json
    """
    user_id = current_user_id(ctx)
    try:
        result = statistics.task_statistics(user_id)
    except JediError as e:
        fail(e)

    if json_output:
        print_json(result.to_json())
    else:
        console.print(format_statistics(result, "Task statistics"))
