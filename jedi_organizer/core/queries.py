"""
FILE: jedi_organizer/core/queries.py
PURPOSE: Read-only predicates behind the derived task/project views
EXPORTS:
  - is_task_overdue(task, now) -> bool
  - is_project_overdue(project, now) -> bool
  - is_scheduled_for(task, day) -> bool
  - is_actionable_today(task, today) -> bool
  - is_high_priority(project) -> bool
  - matches_title(entity, text) -> bool
  - completed_between(task, start, end) -> bool
  - filter_entities(entities, predicate) -> List
DEPENDENCIES:
  - datetime, typing (stdlib)
  - jedi_organizer.core.constants
NOTES:
  - These are the reference definitions; repository.py pushes the same
    rules down into SQL
  - Nothing here mutates an entity (updated_at is never touched)
  - "Today's actionable" = scheduled today, OR unscheduled and TODO/IN_PROGRESS.
    Tasks have no priority field, so no priority clause applies here.
"""

from datetime import date, datetime
from typing import Callable, Iterable, List, Optional, TypeVar

from .constants import (
    ACTIONABLE_STATUSES,
    HIGH_PRIORITY_THRESHOLD,
    PROJECT_COMPLETED,
    TASK_COMPLETED,
)

T = TypeVar("T")


def is_task_overdue(task, now: Optional[datetime] = None) -> bool:
    """Due date passed and the task isn't completed (cancelled still counts)."""
    now = now or datetime.now()
    return task.due_date is not None and task.due_date < now and task.status != TASK_COMPLETED


def is_project_overdue(project, now: Optional[datetime] = None) -> bool:
    now = now or datetime.now()
    return (
        project.due_date is not None
        and project.due_date < now
        and project.status != PROJECT_COMPLETED
    )


def is_scheduled_for(task, day: date) -> bool:
    return task.scheduled_date is not None and task.scheduled_date == day


def is_actionable_today(task, today: Optional[date] = None) -> bool:
    today = today or date.today()
    if task.scheduled_date is not None:
        return task.scheduled_date == today
    return task.status in ACTIONABLE_STATUSES


def is_high_priority(project) -> bool:
    return project.priority <= HIGH_PRIORITY_THRESHOLD


def matches_title(entity, text: str) -> bool:
    """Case-insensitive substring match on title."""
    return text.casefold() in (entity.title or "").casefold()


def completed_between(task, start: datetime, end: datetime) -> bool:
    return (
        task.status == TASK_COMPLETED
        and task.completed_at is not None
        and start <= task.completed_at <= end
    )


def filter_entities(entities: Iterable[T], predicate: Callable[[T], bool]) -> List[T]:
    """Keep the entities matching predicate, preserving order."""
    return [e for e in entities if predicate(e)]
