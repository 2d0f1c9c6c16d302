"""
FILE: jedi_organizer/cli/main.py
PURPOSE: Typer-based CLI for one-shot organizer commands
EXPORTS:
  - app (Typer application), task_app, project_app, user_app
  - console / error_console (rich consoles shared by command modules)
  - current_user_id(ctx) -> int
  - parse_day(value) -> date, parse_due(value) -> datetime
  - print_json(data), print_raw(lines)
  - fail(error): report a core error on stderr and exit 1
  - main() (entry point)
DEPENDENCIES:
  - typer (CLI framework)
  - rich (formatted output)
  - jedi_organizer.config, jedi_organizer.logging_setup
  - jedi_organizer.core.users (resolving --user to an id)
NOTES:
  - Every command acts as one user: --user EMAIL, falling back to $JEDI_USER
  - The resolved user id is passed explicitly into every core call
  - All listing commands support --json and --raw flags
  - Error messages go to stderr
  - Exit codes: 0=success, 1=error
"""

import sys
import logging
from datetime import date, datetime
from typing import Iterable, NoReturn, Optional

# Fix Windows console encoding for Unicode characters
if sys.platform == "win32":
    import io
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8')
    sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding='utf-8')

import typer
from rich.console import Console
from rich.markup import escape

from ..config import load_settings
from ..core import users
from ..core.exceptions import JediError
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)

# Typer app setup
app = typer.Typer(
    name="jedi",
    help="Personal productivity organizer: tasks, projects and reflection",
    add_completion=False,
)

task_app = typer.Typer(name="task", help="Task management commands")
project_app = typer.Typer(name="project", help="Project management commands")
user_app = typer.Typer(name="user", help="User account commands")
app.add_typer(task_app, name="task")
app.add_typer(project_app, name="project")
app.add_typer(user_app, name="user")

# Rich console for formatted output
console = Console()
error_console = Console(stderr=True)

# Version
__version__ = "0.1.0"

DUE_FORMATS = ("%Y-%m-%d", "%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M")


@app.callback(invoke_without_command=True)
def default_command(
    ctx: typer.Context,
    user: Optional[str] = typer.Option(
        None, "--user", "-u", help="Act as this user (email). Defaults to $JEDI_USER"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """
    Global options. Shows help when no command is given.
    """
    settings = load_settings()
    setup_logging(logging.DEBUG if verbose else settings.log_level, settings.log_file)
    ctx.obj = {"user_email": user or settings.default_user}

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


def current_user_id(ctx: typer.Context) -> int:
    """
    Resolve the acting user's id from --user / $JEDI_USER.

    Raises:
        typer.Exit(1): No user given, or no account with that email
    """
    email = (ctx.obj or {}).get("user_email")
    if not email:
        error_console.print("[red]Error:[/red] No user selected. Use --user EMAIL or set JEDI_USER")
        raise typer.Exit(1)
    try:
        return users.get_user_by_email(email).id
    except JediError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


def parse_day(value: str) -> date:
    """Parse YYYY-MM-DD, plus the shortcut 'today'."""
    if value.strip().lower() == "today":
        return date.today()
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise typer.BadParameter(f"Invalid date '{value}' (expected YYYY-MM-DD)")


def parse_due(value: str) -> datetime:
    """Parse a due date; a bare date means the end of that day."""
    value = value.strip()
    for fmt in DUE_FORMATS:
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            continue
        if fmt == "%Y-%m-%d":
            parsed = parsed.replace(hour=23, minute=59)
        return parsed
    raise typer.BadParameter(f"Invalid due date '{value}' (expected YYYY-MM-DD[ HH:MM])")


def print_json(data: str) -> None:
    console.print_json(data)


def print_raw(lines: Iterable[str]) -> None:
    """Plain lines, no markup or highlighting (safe for titles with brackets)."""
    for line in lines:
        console.print(line, markup=False, highlight=False, soft_wrap=True)


def fail(error: Exception) -> NoReturn:
    """Report a core error on stderr and exit 1."""
    logger.debug("Command failed: %r", error)
    error_console.print(f"[red]Error:[/red] {escape(str(error))}")
    raise typer.Exit(1)


# Import command modules to register commands with the apps
# Commands are decorated with @app.command() / @task_app.command() in their modules
from .commands import (  # noqa: E402,F401
    projects,
    system,
    tasks,
    users as user_commands,
    workflow,
)


def main():
    """Main entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
