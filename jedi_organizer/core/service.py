"""
FILE: jedi_organizer/core/service.py
PURPOSE: Business logic layer for task and project operations
EXPORTS:
  - Tasks: create_task, get_task, update_task, transition_task, start_task,
    complete_task, cancel_task, wait_task, schedule_task, add_note,
    add_subtask, add_reflection, delete_task
  - Task views: list_user_tasks, list_tasks_by_status, list_tasks_by_type,
    list_tasks_by_context, list_tasks_by_energy, list_todays_tasks,
    list_todays_actionable_tasks, list_overdue_tasks, list_project_tasks,
    list_unassigned_tasks, list_completed_tasks_for_reflection,
    list_tasks_with_reflection, search_tasks
  - Projects: create_project, get_project, update_project,
    update_project_status, complete_project, archive_project,
    put_project_on_hold, reactivate_project, update_project_settings,
    delete_project
  - Project views: list_user_projects, list_active_projects,
    list_projects_by_status, list_high_priority_projects,
    list_overdue_projects, search_projects, list_recently_updated_projects,
    list_new_projects
DEPENDENCIES:
  - jedi_organizer.core.repository (storage)
  - jedi_organizer.core.ownership (single-entity resolution)
  - jedi_organizer.core.lifecycle (state changes and validation)
  - jedi_organizer.core.exceptions
NOTES:
  - The requesting user's id is an explicit argument on every call
  - Mutations follow resolve -> lifecycle -> persist; lifecycle validates
    before mutating, so a ValidationError never leaves a partial write
  - Returns domain objects, never dicts or raw SQL results
  - No direct database access (use repository layer)
"""

from dataclasses import fields
from datetime import date, datetime, timedelta
from typing import List, Optional

from . import lifecycle, repository
from .constants import HIGH_PRIORITY_THRESHOLD, PROJECT_STATUSES, TASK_STATUSES, TASK_TYPES
from .exceptions import ValidationError
from .models import (
    Project,
    ProjectDraft,
    ProjectSettings,
    ProjectUpdate,
    Task,
    TaskDraft,
    TaskReflection,
    TaskUpdate,
)
from .ownership import resolve_project, resolve_task


def _require_user(user_id: Optional[int]) -> int:
    if user_id is None:
        raise ValidationError("MISSING_USER_ID", "A user ID is required")
    return user_id


# --- Task Management ---


def create_task(draft: TaskDraft, user_id: int) -> Task:
    """
    Create a new task owned by user_id.

    Args:
        draft: Creation payload (title required)
        user_id: Owning user

    Returns:
        Newly created Task (status TODO, created_at/updated_at set)

    Raises:
        ValidationError: Missing user id or invalid field; nothing is stored

    Notes:
        - project_id is stored as given (weak reference, not checked)
    """
    task = lifecycle.new_task(draft, user_id)
    return repository.create_task(task)


def get_task(task_id: int, user_id: int) -> Task:
    """
    Get a single task.

    Raises:
        TaskNotFoundError: Missing, or owned by another user
    """
    return resolve_task(task_id, user_id)


def update_task(task_id: int, user_id: int, update: TaskUpdate) -> Task:
    """
    Apply a partial update to a task.

    Notes:
        - Fields left UNSET are untouched, None clears optional fields
        - A status in the update goes through the same transition rules
          as transition_task()
    """
    task = resolve_task(task_id, user_id)
    lifecycle.apply_task_update(task, update)
    return repository.update_task(task)


def transition_task(task_id: int, user_id: int, status: str) -> Task:
    """Move a task to any status, applying one-shot timestamps."""
    task = resolve_task(task_id, user_id)
    lifecycle.transition_task(task, status)
    return repository.update_task(task)


def start_task(task_id: int, user_id: int) -> Task:
    """
    Move task to IN_PROGRESS.

    Notes:
        - started_at is set on the first start only
        - Starting an in-progress task again only refreshes updated_at
    """
    task = resolve_task(task_id, user_id)
    lifecycle.start_task(task)
    return repository.update_task(task)


def complete_task(task_id: int, user_id: int) -> Task:
    """
    Move task to COMPLETED.

    Notes:
        - completed_at is set on the first completion only
    """
    task = resolve_task(task_id, user_id)
    lifecycle.complete_task(task)
    return repository.update_task(task)


def cancel_task(task_id: int, user_id: int) -> Task:
    task = resolve_task(task_id, user_id)
    lifecycle.cancel_task(task)
    return repository.update_task(task)


def wait_task(task_id: int, user_id: int) -> Task:
    task = resolve_task(task_id, user_id)
    lifecycle.wait_task(task)
    return repository.update_task(task)


def schedule_task(task_id: int, user_id: int, scheduled_date: Optional[date]) -> Task:
    """Plan a task for a calendar date (None unschedules it)."""
    task = resolve_task(task_id, user_id)
    lifecycle.schedule_task(task, scheduled_date)
    return repository.update_task(task)


def add_note(task_id: int, user_id: int, content: str) -> Task:
    task = resolve_task(task_id, user_id)
    lifecycle.add_note(task, content)
    return repository.update_task(task)


def add_subtask(task_id: int, user_id: int, title: str) -> Task:
    task = resolve_task(task_id, user_id)
    lifecycle.add_subtask(task, title)
    return repository.update_task(task)


def add_reflection(task_id: int, user_id: int, reflection: TaskReflection) -> Task:
    """
    Attach a reflection to a completed task.

    Raises:
        TaskNotFoundError: Missing, or owned by another user
        ValidationError: Task isn't COMPLETED, or rating outside 1-5
    """
    task = resolve_task(task_id, user_id)
    lifecycle.attach_reflection(task, reflection)
    return repository.update_task(task)


def delete_task(task_id: int, user_id: int) -> None:
    """
    Delete a task permanently after checking ownership.

    Raises:
        TaskNotFoundError: Missing, or owned by another user
    """
    task = resolve_task(task_id, user_id)
    repository.delete_task(task.id)


# --- Task Views ---


def list_user_tasks(user_id: int) -> List[Task]:
    """All of the user's tasks, newest first."""
    return repository.list_tasks_by_user(_require_user(user_id))


def list_tasks_by_status(user_id: int, status: str) -> List[Task]:
    lifecycle.validate_choice(status, TASK_STATUSES, "INVALID_STATUS", "task status")
    return repository.list_tasks_by_status(_require_user(user_id), status)


def list_tasks_by_type(user_id: int, task_type: str) -> List[Task]:
    lifecycle.validate_choice(task_type, TASK_TYPES, "INVALID_TYPE", "task type")
    return repository.list_tasks_by_type(_require_user(user_id), task_type)


def list_tasks_by_context(user_id: int, context: str) -> List[Task]:
    return repository.list_tasks_by_context(_require_user(user_id), context)


def list_tasks_by_energy(user_id: int, max_energy: int) -> List[Task]:
    """Tasks needing at most max_energy (match work to how you feel)."""
    if isinstance(max_energy, bool) or not isinstance(max_energy, int):
        raise ValidationError("ENERGY_OUT_OF_RANGE", "Energy threshold must be an integer")
    return repository.list_tasks_by_max_energy(_require_user(user_id), max_energy)


def list_todays_tasks(user_id: int, today: Optional[date] = None) -> List[Task]:
    """Tasks scheduled for today only."""
    return repository.list_tasks_scheduled_on(_require_user(user_id), today or date.today())


def list_todays_actionable_tasks(user_id: int, today: Optional[date] = None) -> List[Task]:
    """
    Today's working set.

    Returns:
        Tasks scheduled for today (any status), plus unscheduled tasks that
        are TODO or IN_PROGRESS
    """
    return repository.list_todays_actionable_tasks(
        _require_user(user_id), today or date.today()
    )


def list_overdue_tasks(user_id: int, now: Optional[datetime] = None) -> List[Task]:
    """Tasks past their due date that aren't completed, most overdue first."""
    return repository.list_overdue_tasks(_require_user(user_id), now or datetime.now())


def list_project_tasks(user_id: int, project_id: int) -> List[Task]:
    """
    The user's tasks that reference project_id.

    Notes:
        - Does not validate that the project exists (weak reference)
    """
    return repository.list_tasks_by_project(_require_user(user_id), project_id)


def list_unassigned_tasks(user_id: int) -> List[Task]:
    return repository.list_unassigned_tasks(_require_user(user_id))


def list_completed_tasks_for_reflection(
    user_id: int, start: datetime, end: datetime
) -> List[Task]:
    """Tasks completed within [start, end], most recent first."""
    if start > end:
        raise ValidationError("INVALID_RANGE", "Start of range must not be after its end")
    return repository.list_completed_tasks_between(_require_user(user_id), start, end)


def list_tasks_with_reflection(user_id: int) -> List[Task]:
    return repository.list_tasks_with_reflection(_require_user(user_id))


def search_tasks(user_id: int, text: str) -> List[Task]:
    """Case-insensitive substring search on task titles."""
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("SEARCH_TEXT_REQUIRED", "Search text cannot be empty")
    return repository.search_tasks_by_title(_require_user(user_id), text)


# --- Project Management ---


def create_project(draft: ProjectDraft, user_id: int) -> Project:
    """
    Create a new project owned by user_id.

    Raises:
        ValidationError: Missing user id, blank title, priority outside 1-5
    """
    project = lifecycle.new_project(draft, user_id)
    return repository.create_project(project)


def get_project(project_id: int, user_id: int) -> Project:
    return resolve_project(project_id, user_id)


def update_project(project_id: int, user_id: int, update: ProjectUpdate) -> Project:
    project = resolve_project(project_id, user_id)
    lifecycle.apply_project_update(project, update)
    return repository.update_project(project)


def update_project_status(project_id: int, user_id: int, status: str) -> Project:
    """
    Move a project to any status.

    Notes:
        - completed_at is set on the first entry into COMPLETED only
    """
    project = resolve_project(project_id, user_id)
    lifecycle.transition_project(project, status)
    return repository.update_project(project)


def complete_project(project_id: int, user_id: int) -> Project:
    project = resolve_project(project_id, user_id)
    lifecycle.complete_project(project)
    return repository.update_project(project)


def archive_project(project_id: int, user_id: int) -> Project:
    project = resolve_project(project_id, user_id)
    lifecycle.archive_project(project)
    return repository.update_project(project)


def put_project_on_hold(project_id: int, user_id: int) -> Project:
    project = resolve_project(project_id, user_id)
    lifecycle.hold_project(project)
    return repository.update_project(project)


def reactivate_project(project_id: int, user_id: int) -> Project:
    project = resolve_project(project_id, user_id)
    lifecycle.activate_project(project)
    return repository.update_project(project)


def update_project_settings(project_id: int, user_id: int, **changes) -> Project:
    """
    Change individual project settings.

    Raises:
        ValidationError: Unknown setting name, non-bool flag, or
        max_daily_tasks_from_project < 1
    """
    known = {f.name: f.type for f in fields(ProjectSettings)}
    unknown = sorted(set(changes) - set(known))
    if unknown:
        raise ValidationError("UNKNOWN_SETTING", f"Unknown project setting(s): {', '.join(unknown)}")
    for name, value in changes.items():
        if known[name] is bool and not isinstance(value, bool):
            raise ValidationError("INVALID_SETTING", f"{name} must be true or false")
    if "max_daily_tasks_from_project" in changes:
        value = changes["max_daily_tasks_from_project"]
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ValidationError(
                "INVALID_SETTING", "max_daily_tasks_from_project must be a positive integer"
            )

    project = resolve_project(project_id, user_id)
    for name, value in changes.items():
        setattr(project.settings, name, value)
    lifecycle.touch(project)
    return repository.update_project(project)


def delete_project(project_id: int, user_id: int) -> None:
    """
    Delete a project permanently after checking ownership.

    Notes:
        - Tasks referencing the project keep their project_id
    """
    project = resolve_project(project_id, user_id)
    repository.delete_project(project.id)


# --- Project Views ---


def list_user_projects(user_id: int) -> List[Project]:
    return repository.list_projects_by_user(_require_user(user_id))


def list_active_projects(user_id: int) -> List[Project]:
    return repository.list_active_projects(_require_user(user_id))


def list_projects_by_status(user_id: int, status: str) -> List[Project]:
    lifecycle.validate_choice(status, PROJECT_STATUSES, "INVALID_STATUS", "project status")
    return repository.list_projects_by_status(_require_user(user_id), status)


def list_high_priority_projects(user_id: int) -> List[Project]:
    """Projects with priority 1 or 2."""
    return repository.list_high_priority_projects(
        _require_user(user_id), HIGH_PRIORITY_THRESHOLD
    )


def list_overdue_projects(user_id: int, now: Optional[datetime] = None) -> List[Project]:
    return repository.list_overdue_projects(_require_user(user_id), now or datetime.now())


def search_projects(user_id: int, text: str) -> List[Project]:
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("SEARCH_TEXT_REQUIRED", "Search text cannot be empty")
    return repository.search_projects_by_title(_require_user(user_id), text)


def _cutoff(days_back: int) -> datetime:
    if isinstance(days_back, bool) or not isinstance(days_back, int) or days_back < 0:
        raise ValidationError("INVALID_DAYS", "days_back must be a non-negative integer")
    return datetime.now() - timedelta(days=days_back)


def list_recently_updated_projects(user_id: int, days_back: int) -> List[Project]:
    return repository.list_projects_updated_after(_require_user(user_id), _cutoff(days_back))


def list_new_projects(user_id: int, days_back: int) -> List[Project]:
    return repository.list_projects_created_after(_require_user(user_id), _cutoff(days_back))
