"""
FILE: jedi_organizer/core/lifecycle.py
PURPOSE: State transitions, timestamp side effects and validated mutations
EXPORTS:
  - TASK_TRANSITIONS / PROJECT_TRANSITIONS: allowed status edges
  - can_transition(table, from_status, to_status) -> bool
  - transition_task(task, status) / start / complete / cancel / wait
  - transition_project(project, status) / complete / archive / hold / activate
  - new_task(draft, user_id) -> Task, new_project(draft, user_id) -> Project
  - apply_task_update(task, update), apply_project_update(project, update)
  - set_energy, set_priority, schedule_task, add_note, add_subtask,
    attach_reflection, touch
  - validate_* helpers shared with the user service
DEPENDENCIES:
  - re, datetime (stdlib)
  - jedi_organizer.core.models, constants, exceptions
NOTES:
  - Pure in-memory operations; callers persist the result
  - Every function validates first and raises ValidationError before
    modifying anything
  - One-shot timestamps: started_at/completed_at are written on the first
    entry into their status and never overwritten afterwards
  - updated_at strictly increases on every mutation (see touch())
  - Every function takes an optional `now` so tests control the clock
"""

import re
from datetime import date, datetime, timedelta
from typing import Dict, FrozenSet, Optional

from .constants import (
    CONTEXT_MAX_LENGTH,
    CONTEXT_PATTERN,
    ENERGY_MAX,
    ENERGY_MIN,
    PRIORITY_MAX,
    PRIORITY_MIN,
    PROJECT_ACTIVE,
    PROJECT_ARCHIVED,
    PROJECT_COMPLETED,
    PROJECT_DESCRIPTION_MAX_LENGTH,
    PROJECT_ON_HOLD,
    PROJECT_STATUSES,
    RATING_MAX,
    RATING_MIN,
    TASK_CANCELLED,
    TASK_COMPLETED,
    TASK_DESCRIPTION_MAX_LENGTH,
    TASK_IN_PROGRESS,
    TASK_STATUSES,
    TASK_TODO,
    TASK_TYPES,
    TASK_WAITING,
    TITLE_MAX_LENGTH,
)
from .exceptions import ValidationError
from .models import (
    Project,
    ProjectDraft,
    ProjectSettings,
    ProjectUpdate,
    Task,
    TaskDraft,
    TaskNote,
    TaskReflection,
    TaskUpdate,
)


# Every edge is currently allowed. Guards are added by shrinking these sets;
# call sites only ever go through transition_task()/transition_project().
TASK_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    status: frozenset(TASK_STATUSES) for status in TASK_STATUSES
}
PROJECT_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    status: frozenset(PROJECT_STATUSES) for status in PROJECT_STATUSES
}

# Status -> timestamp attribute written on first entry
TASK_ENTRY_STAMPS = {
    TASK_IN_PROGRESS: "started_at",
    TASK_COMPLETED: "completed_at",
}
PROJECT_ENTRY_STAMPS = {
    PROJECT_COMPLETED: "completed_at",
}

_CONTEXT_RE = re.compile(CONTEXT_PATTERN)


def can_transition(table: Dict[str, FrozenSet[str]], from_status: str, to_status: str) -> bool:
    """Check an edge against a transition table."""
    return to_status in table.get(from_status, frozenset())


def touch(entity, now: Optional[datetime] = None) -> None:
    """
    Refresh updated_at.

    If the clock reading isn't later than the stored value (same tick, or a
    clock step backwards) the stored value is advanced by one microsecond
    instead, so updated_at is strictly increasing across mutations.
    """
    now = now or datetime.now()
    previous = entity.updated_at
    if previous is not None and now <= previous:
        now = previous + timedelta(microseconds=1)
    entity.updated_at = now


# --- Validation ---


def _require_int(value, code: str, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(code, f"{label} must be an integer")
    return value


def _require_range(value, low: int, high: int, code: str, label: str) -> int:
    value = _require_int(value, code, label)
    if value < low or value > high:
        raise ValidationError(code, f"{label} must be between {low} and {high}")
    return value


def validate_energy(energy) -> int:
    return _require_range(energy, ENERGY_MIN, ENERGY_MAX, "ENERGY_OUT_OF_RANGE", "Energy level")


def validate_priority(priority) -> int:
    return _require_range(priority, PRIORITY_MIN, PRIORITY_MAX, "PRIORITY_OUT_OF_RANGE", "Priority")


def validate_rating(rating) -> int:
    return _require_range(
        rating, RATING_MIN, RATING_MAX, "RATING_OUT_OF_RANGE", "Satisfaction rating"
    )


def validate_title(title, kind: str = "Task") -> str:
    """Trim and check a title. Returns the trimmed value."""
    if title is None or not isinstance(title, str) or not title.strip():
        raise ValidationError("TITLE_REQUIRED", f"{kind} title cannot be empty")
    title = title.strip()
    if len(title) > TITLE_MAX_LENGTH:
        raise ValidationError(
            "TITLE_TOO_LONG", f"{kind} title cannot exceed {TITLE_MAX_LENGTH} characters"
        )
    return title


def validate_description(description, max_length: int, kind: str = "Task") -> Optional[str]:
    """Trim a description; blank collapses to None."""
    if description is None:
        return None
    if not isinstance(description, str):
        raise ValidationError("INVALID_DESCRIPTION", f"{kind} description must be text")
    description = description.strip()
    if len(description) > max_length:
        raise ValidationError(
            "DESCRIPTION_TOO_LONG",
            f"{kind} description cannot exceed {max_length} characters",
        )
    return description or None


def validate_context(context) -> Optional[str]:
    if context is None:
        return None
    if not isinstance(context, str):
        raise ValidationError("CONTEXT_INVALID", "Context must be text")
    context = context.strip()
    if len(context) > CONTEXT_MAX_LENGTH:
        raise ValidationError(
            "CONTEXT_TOO_LONG", f"Context cannot exceed {CONTEXT_MAX_LENGTH} characters"
        )
    if not _CONTEXT_RE.match(context):
        raise ValidationError(
            "CONTEXT_INVALID",
            "Context can only contain letters, numbers, spaces, hyphens, underscores, and @",
        )
    return context or None


def validate_choice(value, choices, code: str, label: str) -> str:
    if value not in choices:
        raise ValidationError(
            code, f"Invalid {label} '{value}'. Must be one of: {', '.join(choices)}"
        )
    return value


def _validate_optional(value, expected_type, code: str, label: str):
    if value is None:
        return None
    # datetime is a subclass of date; a date field must not accept a datetime
    if not isinstance(value, expected_type) or (
        expected_type is date and isinstance(value, datetime)
    ):
        raise ValidationError(code, f"{label} has the wrong type")
    return value


def _validate_task_status_edge(task: Task, new_status) -> str:
    validate_choice(new_status, TASK_STATUSES, "INVALID_STATUS", "task status")
    if not can_transition(TASK_TRANSITIONS, task.status, new_status):
        raise ValidationError(
            "ILLEGAL_TRANSITION", f"Task cannot move from {task.status} to {new_status}"
        )
    return new_status


def _validate_project_status_edge(project: Project, new_status) -> str:
    validate_choice(new_status, PROJECT_STATUSES, "INVALID_STATUS", "project status")
    if not can_transition(PROJECT_TRANSITIONS, project.status, new_status):
        raise ValidationError(
            "ILLEGAL_TRANSITION", f"Project cannot move from {project.status} to {new_status}"
        )
    return new_status


def _enter(entity, new_status: str, stamps: Dict[str, str], now: datetime) -> None:
    """Set status and write its entry timestamp if it was never written."""
    stamp = stamps.get(new_status)
    if stamp and getattr(entity, stamp) is None:
        setattr(entity, stamp, now)
    entity.status = new_status


# --- Task lifecycle ---


def new_task(draft: TaskDraft, user_id: int, now: Optional[datetime] = None) -> Task:
    """
    Build a validated, unsaved Task from a creation payload.

    Raises:
        ValidationError: missing user id or any invalid field. Nothing is
        built (and therefore nothing can be persisted) on failure.
    """
    if user_id is None:
        raise ValidationError("MISSING_USER_ID", "Task must have a user ID")
    title = validate_title(draft.title)
    description = validate_description(draft.description, TASK_DESCRIPTION_MAX_LENGTH)
    task_type = validate_choice(draft.type, TASK_TYPES, "INVALID_TYPE", "task type")
    context = validate_context(draft.context)
    energy = validate_energy(draft.energy)
    due_date = _validate_optional(draft.due_date, datetime, "INVALID_DUE_DATE", "Due date")
    scheduled = _validate_optional(
        draft.scheduled_date, date, "INVALID_SCHEDULED_DATE", "Scheduled date"
    )

    now = now or datetime.now()
    return Task(
        user_id=user_id,
        title=title,
        description=description,
        project_id=draft.project_id,
        status=TASK_TODO,
        type=task_type,
        context=context,
        energy=energy,
        due_date=due_date,
        scheduled_date=scheduled,
        created_at=now,
        updated_at=now,
    )


def transition_task(task: Task, new_status: str, now: Optional[datetime] = None) -> Task:
    """
    Move a task to new_status.

    Re-entering the current status is allowed: updated_at moves forward but
    started_at/completed_at keep their first values.
    """
    _validate_task_status_edge(task, new_status)
    now = now or datetime.now()
    _enter(task, new_status, TASK_ENTRY_STAMPS, now)
    touch(task, now)
    return task


def start_task(task: Task, now: Optional[datetime] = None) -> Task:
    return transition_task(task, TASK_IN_PROGRESS, now)


def complete_task(task: Task, now: Optional[datetime] = None) -> Task:
    return transition_task(task, TASK_COMPLETED, now)


def cancel_task(task: Task, now: Optional[datetime] = None) -> Task:
    return transition_task(task, TASK_CANCELLED, now)


def wait_task(task: Task, now: Optional[datetime] = None) -> Task:
    return transition_task(task, TASK_WAITING, now)


def set_energy(task: Task, energy: int, now: Optional[datetime] = None) -> Task:
    task.energy = validate_energy(energy)
    touch(task, now)
    return task


def schedule_task(task: Task, scheduled_date: Optional[date], now: Optional[datetime] = None) -> Task:
    """Set (or clear, with None) the calendar date a task is planned for."""
    task.scheduled_date = _validate_optional(
        scheduled_date, date, "INVALID_SCHEDULED_DATE", "Scheduled date"
    )
    touch(task, now)
    return task


def add_note(task: Task, content: str, now: Optional[datetime] = None) -> Task:
    """Append a note. Notes keep insertion order."""
    if content is None or not isinstance(content, str) or not content.strip():
        raise ValidationError("NOTE_REQUIRED", "Note content cannot be empty")
    now = now or datetime.now()
    task.notes.append(TaskNote(content=content.strip(), created_at=now))
    touch(task, now)
    return task


def add_subtask(task: Task, title: str, now: Optional[datetime] = None) -> Task:
    """Append a subtask title. Subtasks keep insertion order."""
    title = validate_title(title, kind="Subtask")
    task.subtasks.append(title)
    touch(task, now)
    return task


def attach_reflection(
    task: Task, reflection: TaskReflection, now: Optional[datetime] = None
) -> Task:
    """
    Attach a reflection to a completed task.

    Raises:
        ValidationError: task isn't COMPLETED, or the rating is outside 1-5
    """
    if task.status != TASK_COMPLETED:
        raise ValidationError(
            "REFLECTION_REQUIRES_COMPLETED", "Can only add reflection to completed tasks"
        )
    validate_rating(reflection.satisfaction_rating)

    now = now or datetime.now()
    if reflection.reflected_at is None:
        reflection.reflected_at = now
    task.reflection = reflection
    touch(task, now)
    return task


def apply_task_update(task: Task, update: TaskUpdate, now: Optional[datetime] = None) -> Task:
    """
    Apply a partial update.

    Every supplied field is validated before any of them is written, so a
    rejected update leaves the task exactly as it was. Status changes go
    through the transition table and its timestamp side effects.
    """
    changes = update.present()
    clean = {}
    for name, value in changes.items():
        if name == "title":
            clean[name] = validate_title(value)
        elif name == "description":
            clean[name] = validate_description(value, TASK_DESCRIPTION_MAX_LENGTH)
        elif name == "type":
            clean[name] = validate_choice(value, TASK_TYPES, "INVALID_TYPE", "task type")
        elif name == "status":
            clean[name] = _validate_task_status_edge(task, value)
        elif name == "context":
            clean[name] = validate_context(value)
        elif name == "energy":
            clean[name] = validate_energy(value)
        elif name == "due_date":
            clean[name] = _validate_optional(value, datetime, "INVALID_DUE_DATE", "Due date")
        elif name == "scheduled_date":
            clean[name] = _validate_optional(
                value, date, "INVALID_SCHEDULED_DATE", "Scheduled date"
            )
        elif name == "project_id":
            clean[name] = _validate_optional(value, int, "INVALID_PROJECT_ID", "Project ID")

    if not clean:
        return task

    now = now or datetime.now()
    for name, value in clean.items():
        if name == "status":
            _enter(task, value, TASK_ENTRY_STAMPS, now)
        else:
            setattr(task, name, value)
    touch(task, now)
    return task


# --- Project lifecycle ---


def new_project(draft: ProjectDraft, user_id: int, now: Optional[datetime] = None) -> Project:
    """Build a validated, unsaved Project from a creation payload."""
    if user_id is None:
        raise ValidationError("MISSING_USER_ID", "Project must have a user ID")
    title = validate_title(draft.title, kind="Project")
    description = validate_description(
        draft.description, PROJECT_DESCRIPTION_MAX_LENGTH, kind="Project"
    )
    status = validate_choice(draft.status, PROJECT_STATUSES, "INVALID_STATUS", "project status")
    priority = validate_priority(draft.priority)
    due_date = _validate_optional(draft.due_date, datetime, "INVALID_DUE_DATE", "Due date")

    now = now or datetime.now()
    project = Project(
        user_id=user_id,
        title=title,
        description=description,
        priority=priority,
        due_date=due_date,
        created_at=now,
        updated_at=now,
        settings=draft.settings or ProjectSettings(),
    )
    _enter(project, status, PROJECT_ENTRY_STAMPS, now)
    return project


def transition_project(project: Project, new_status: str, now: Optional[datetime] = None) -> Project:
    _validate_project_status_edge(project, new_status)
    now = now or datetime.now()
    _enter(project, new_status, PROJECT_ENTRY_STAMPS, now)
    touch(project, now)
    return project


def complete_project(project: Project, now: Optional[datetime] = None) -> Project:
    return transition_project(project, PROJECT_COMPLETED, now)


def archive_project(project: Project, now: Optional[datetime] = None) -> Project:
    return transition_project(project, PROJECT_ARCHIVED, now)


def hold_project(project: Project, now: Optional[datetime] = None) -> Project:
    return transition_project(project, PROJECT_ON_HOLD, now)


def activate_project(project: Project, now: Optional[datetime] = None) -> Project:
    return transition_project(project, PROJECT_ACTIVE, now)


def set_priority(project: Project, priority: int, now: Optional[datetime] = None) -> Project:
    project.priority = validate_priority(priority)
    touch(project, now)
    return project


def apply_project_update(
    project: Project, update: ProjectUpdate, now: Optional[datetime] = None
) -> Project:
    """Partial project update; validate-all-then-apply like apply_task_update()."""
    changes = update.present()
    clean = {}
    for name, value in changes.items():
        if name == "title":
            clean[name] = validate_title(value, kind="Project")
        elif name == "description":
            clean[name] = validate_description(
                value, PROJECT_DESCRIPTION_MAX_LENGTH, kind="Project"
            )
        elif name == "status":
            clean[name] = _validate_project_status_edge(project, value)
        elif name == "priority":
            clean[name] = validate_priority(value)
        elif name == "due_date":
            clean[name] = _validate_optional(value, datetime, "INVALID_DUE_DATE", "Due date")

    if not clean:
        return project

    now = now or datetime.now()
    for name, value in clean.items():
        if name == "status":
            _enter(project, value, PROJECT_ENTRY_STAMPS, now)
        else:
            setattr(project, name, value)
    touch(project, now)
    return project
