"""
FILE: jedi_organizer/cli/commands/users.py
PURPOSE: User account commands (user add, show, ls, login, deactivate,
         reactivate, prefs)
NOTES:
  - add/ls/deactivate/reactivate work on any account (local admin use);
    show/login/prefs act on the --user account
"""

import json
from typing import Optional

import typer
from rich.markup import escape

from ..main import (
    console,
    current_user_id,
    fail,
    print_json,
    print_raw,
    user_app,
)
from ...core import users
from ...core.exceptions import JediError
from ...formatting import UserFormatter


@user_app.command("add")
def user_add(
    email: str = typer.Argument(..., help="Email address"),
    first_name: Optional[str] = typer.Option(None, "--first", help="First name"),
    last_name: Optional[str] = typer.Option(None, "--last", help="Last name"),
    display_name: Optional[str] = typer.Option(None, "--display", help="Display name (default: first last)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Create a user account.

    Example:
        jedi user add luke@tatooine.org --first Luke --last Skywalker
    """
    try:
        user = users.create_user(
            email,
            first_name=first_name,
            last_name=last_name,
            display_name=display_name,
        )
    except JediError as e:
        fail(e)

    if json_output:
        print_json(user.to_json())
    elif raw:
        print_raw([f"{user.id}: {user.email}"])
    else:
        console.print(f"[green]✓ Created user [bold]#{user.id}[/bold]:[/green] {escape(user.email)}")


@user_app.command("show")
def user_show(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show the current user's account and preferences."""
    user_id = current_user_id(ctx)
    try:
        user = users.get_user(user_id)
    except JediError as e:
        fail(e)

    if json_output:
        print_json(user.to_json())
    else:
        console.print(UserFormatter.create_panel(user))


@user_app.command("ls")
def user_ls(
    inactive_days: Optional[int] = typer.Option(
        None, "--inactive", help="Users who haven't logged in for N days"
    ),
    new_days: Optional[int] = typer.Option(None, "--new", help="Users created in the last N days"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    List active users (or inactive/new ones).

    Example:
        jedi user ls
        jedi user ls --inactive 30
    """
    try:
        if inactive_days is not None:
            accounts = users.list_inactive_users(inactive_days)
        elif new_days is not None:
            accounts = users.list_new_users(new_days)
        else:
            accounts = users.list_active_users()
        total, active = users.count_users(), users.count_active_users()
    except JediError as e:
        fail(e)

    if json_output:
        print_json(UserFormatter.to_json_array(accounts))
    elif raw:
        print_raw([f"{u.id}: {u.email}" for u in accounts])
    elif not accounts:
        console.print("[dim]No users found[/dim]")
    else:
        console.print(UserFormatter.create_table(accounts))
        console.print(f"\n[dim]{active} active of {total} user(s)[/dim]")


@user_app.command("login")
def user_login(ctx: typer.Context):
    """Record a login for the current user."""
    user_id = current_user_id(ctx)
    try:
        user = users.record_login(user_id)
    except JediError as e:
        fail(e)
    console.print(f"[green]✓ Welcome back,[/green] {escape(user.display_name or user.email)}")


@user_app.command("deactivate")
def user_deactivate(
    email: str = typer.Argument(..., help="Email of the account"),
):
    """Deactivate an account (it is kept, flagged inactive)."""
    try:
        user = users.deactivate_user(users.get_user_by_email(email).id)
    except JediError as e:
        fail(e)
    console.print(f"[yellow]Deactivated[/yellow] {escape(user.email)}")


@user_app.command("reactivate")
def user_reactivate(
    email: str = typer.Argument(..., help="Email of the account"),
):
    """Reactivate a deactivated account."""
    try:
        user = users.reactivate_user(users.get_user_by_email(email).id)
    except JediError as e:
        fail(e)
    console.print(f"[green]Reactivated[/green] {escape(user.email)}")


@user_app.command("prefs")
def user_prefs(
    ctx: typer.Context,
    timezone: Optional[str] = typer.Option(None, "--timezone", help="IANA timezone name"),
    language: Optional[str] = typer.Option(None, "--language", help="Language code"),
    notifications: Optional[bool] = typer.Option(
        None, "--notifications/--no-notifications", help="In-app notifications"
    ),
    email_notifications: Optional[bool] = typer.Option(
        None, "--email-notifications/--no-email-notifications", help="Email notifications"
    ),
    max_daily_tasks: Optional[int] = typer.Option(None, "--max-daily", help="Daily task limit"),
    reminder_hour: Optional[int] = typer.Option(None, "--reminder-hour", help="Reflection reminder hour, 0-23"),
    weekly: Optional[bool] = typer.Option(
        None, "--weekly/--no-weekly", help="Weekly reflection"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Show or change the current user's preferences.

    Example:
        jedi user prefs --max-daily 6 --reminder-hour 20
    """
    changes = {
        name: value
        for name, value in (
            ("timezone", timezone),
            ("language", language),
            ("notifications_enabled", notifications),
            ("email_notifications", email_notifications),
            ("max_daily_tasks", max_daily_tasks),
            ("reflection_reminder_hour", reminder_hour),
            ("weekly_reflection_enabled", weekly),
        )
        if value is not None
    }

    user_id = current_user_id(ctx)
    try:
        if changes:
            user = users.update_preferences(user_id, **changes)
        else:
            user = users.get_user(user_id)
    except JediError as e:
        fail(e)

    if json_output:
        print_json(json.dumps(user.preferences.to_dict()))
    else:
        console.print(UserFormatter.create_panel(user))