"""
FILE: jedi_organizer/formatting.py
PURPOSE: Shared formatting utilities for CLI output
EXPORTS:
  - TaskFormatter: tables, detail panels, JSON and plain lines for tasks
  - ProjectFormatter: same for projects
  - UserFormatter: tables and detail panels for user accounts
  - format_statistics: table for TaskStatistics/ProjectStatistics
  - parse_ids: Parse comma-separated entity IDs
DEPENDENCIES:
  - rich (tables and panels)
  - json (serialization)
  - jedi_organizer.core.models, queries
NOTES:
  - Centralized formatting logic so every command renders entities alike
  - Overdue flags come from core.queries, never recomputed here
"""

import json
from dataclasses import asdict
from typing import List

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .core.models import Project, Task, User
from .core.queries import is_high_priority, is_project_overdue, is_task_overdue

STATUS_STYLES = {
    "TODO": "yellow",
    "IN_PROGRESS": "bright_magenta",
    "WAITING": "blue",
    "COMPLETED": "green",
    "CANCELLED": "dim",
    "ACTIVE": "yellow",
    "ON_HOLD": "blue",
    "ARCHIVED": "dim",
}


def _styled(status: str) -> str:
    style = STATUS_STYLES.get(status, "white")
    return f"[{style}]{status}[/{style}]"


def _short(value) -> str:
    """Render a datetime as 'YYYY-MM-DD HH:MM', a date as-is, None as '-'."""
    if value is None:
        return "-"
    if hasattr(value, "hour"):
        return value.strftime("%Y-%m-%d %H:%M")
    return value.isoformat()


class TaskFormatter:
    """Centralized task display formatting."""

    @staticmethod
    def create_table(tasks: List[Task], title: str = "Tasks") -> Table:
        table = Table(title=title, show_header=True, header_style="bold cyan")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Status")
        table.add_column("Type", style="magenta")
        table.add_column("Ctx", style="blue")
        table.add_column("E", justify="right")
        table.add_column("Scheduled", style="dim")
        table.add_column("Due")

        for task in tasks:
            due = _short(task.due_date)
            if is_task_overdue(task):
                due = f"[red]{due}[/red]"
            table.add_row(
                str(task.id),
                escape(task.title),
                _styled(task.status),
                task.type,
                escape(task.context or "-"),
                str(task.energy),
                _short(task.scheduled_date),
                due,
            )
        return table

    @staticmethod
    def create_panel(task: Task) -> Panel:
        """Full task details, including notes, subtasks and reflection."""
        lines = [
            f"[bold]{escape(task.title)}[/bold]",
            "",
            f"Status:     {_styled(task.status)}",
            f"Type:       {task.type}",
            f"Context:    {task.context or '-'}",
            f"Energy:     {task.energy}",
            f"Project:    {task.project_id if task.project_id is not None else '-'}",
            f"Scheduled:  {_short(task.scheduled_date)}",
            f"Due:        {_short(task.due_date)}" + (" [red](overdue)[/red]" if is_task_overdue(task) else ""),
            f"Created:    {_short(task.created_at)}",
            f"Updated:    {_short(task.updated_at)}",
            f"Started:    {_short(task.started_at)}",
            f"Completed:  {_short(task.completed_at)}",
        ]
        if task.description:
            lines += ["", escape(task.description)]
        if task.subtasks:
            lines += ["", "[bold]Subtasks[/bold]"]
            lines += [f"  {i}. {escape(s)}" for i, s in enumerate(task.subtasks, start=1)]
        if task.notes:
            lines += ["", "[bold]Notes[/bold]"]
            lines += [f"  [dim]{_short(n.created_at)}[/dim] {escape(n.content)}" for n in task.notes]
        if task.reflection:
            r = task.reflection
            lines += [
                "",
                "[bold]Reflection[/bold]",
                f"  Satisfaction:  {r.satisfaction_rating}/5",
                f"  Went well:     {escape(r.what_went_well or '-')}",
                f"  Could improve: {escape(r.what_could_improve or '-')}",
                f"  Lessons:       {escape(r.lessons_learned or '-')}",
            ]
        return Panel("\n".join(lines), title=f"Task #{task.id}", expand=False)

    @staticmethod
    def to_json_array(tasks: List[Task]) -> str:
        return json.dumps([t.to_dict() for t in tasks], indent=2)

    @staticmethod
    def to_raw_lines(tasks: List[Task]) -> List[str]:
        return [f"{t.id}: [{t.status}] {t.title}" for t in tasks]


class ProjectFormatter:
    """Centralized project display formatting."""

    @staticmethod
    def create_table(projects: List[Project], title: str = "Projects") -> Table:
        table = Table(title=title, show_header=True, header_style="bold cyan")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Status")
        table.add_column("P", justify="right")
        table.add_column("Due")
        table.add_column("Created", style="dim")

        for project in projects:
            due = _short(project.due_date)
            if is_project_overdue(project):
                due = f"[red]{due}[/red]"
            priority = str(project.priority)
            if is_high_priority(project):
                priority = f"[bold red]{priority}[/bold red]"
            table.add_row(
                str(project.id),
                escape(project.title),
                _styled(project.status),
                priority,
                due,
                project.created_at.date().isoformat() if project.created_at else "",
            )
        return table

    @staticmethod
    def create_panel(project: Project) -> Panel:
        s = project.settings
        lines = [
            f"[bold]{escape(project.title)}[/bold]",
            "",
            f"Status:     {_styled(project.status)}",
            f"Priority:   {project.priority}",
            f"Due:        {_short(project.due_date)}" + (" [red](overdue)[/red]" if is_project_overdue(project) else ""),
            f"Created:    {_short(project.created_at)}",
            f"Updated:    {_short(project.updated_at)}",
            f"Completed:  {_short(project.completed_at)}",
            "",
            "[bold]Settings[/bold]",
            f"  Notifications:           {s.notifications_enabled}",
            f"  Auto-archive on complete: {s.auto_archive_when_complete}",
            f"  Max daily tasks:         {s.max_daily_tasks_from_project}",
            f"  Weekly reflection:       {s.include_in_weekly_reflection}",
        ]
        if project.description:
            lines[1:1] = ["", escape(project.description)]
        return Panel("\n".join(lines), title=f"Project #{project.id}", expand=False)

    @staticmethod
    def to_json_array(projects: List[Project]) -> str:
        return json.dumps([p.to_dict() for p in projects], indent=2)

    @staticmethod
    def to_raw_lines(projects: List[Project]) -> List[str]:
        return [f"{p.id}: [{p.status}] P{p.priority} {p.title}" for p in projects]


def format_statistics(stats, title: str) -> Table:
    """Two-column table for a statistics dataclass."""
    table = Table(title=title, show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right")
    for name, value in asdict(stats).items():
        table.add_row(name.replace("_", " ").title(), str(value))
    return table


def parse_ids(id_string: str) -> List[int]:
    """
    Parse comma-separated IDs.

    Args:
        id_string: Comma-separated string of IDs (e.g., "1,2,3")

    Returns:
        List of integers

    Raises:
        ValueError: If any ID is not a valid integer
    """
    ids = [id.strip() for id in id_string.split(",")]
    return [int(id) for id in ids if id]


class UserFormatter:
    """User account display formatting."""

    @staticmethod
    def create_table(users: List[User], title: str = "Users") -> Table:
        table = Table(title=title, show_header=True, header_style="bold cyan")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Email", style="white")
        table.add_column("Name")
        table.add_column("Active")
        table.add_column("Last login", style="dim")
        for user in users:
            table.add_row(
                str(user.id),
                escape(user.email),
                escape(user.display_name or "-"),
                "[green]yes[/green]" if user.active else "[dim]no[/dim]",
                _short(user.last_login_at),
            )
        return table

    @staticmethod
    def create_panel(user: User) -> Panel:
        p = user.preferences
        lines = [
            f"[bold]{escape(user.display_name or user.email)}[/bold]",
            "",
            f"Email:       {escape(user.email)}",
            f"Active:      {user.active}",
            f"External ID: {escape(user.external_id or '-')}",
            f"Created:     {_short(user.created_at)}",
            f"Last login:  {_short(user.last_login_at)}",
            "",
            "[bold]Preferences[/bold]",
            f"  Timezone:          {escape(p.timezone)}",
            f"  Language:          {escape(p.language)}",
            f"  Notifications:     {p.notifications_enabled}",
            f"  Email notices:     {p.email_notifications}",
            f"  Max daily tasks:   {p.max_daily_tasks}",
            f"  Reminder hour:     {p.reflection_reminder_hour}",
            f"  Weekly reflection: {p.weekly_reflection_enabled}",
        ]
        return Panel("\n".join(lines), title=f"User #{user.id}", expand=False)

    @staticmethod
    def to_json_array(users: List[User]) -> str:
        return json.dumps([u.to_dict() for u in users], indent=2)
