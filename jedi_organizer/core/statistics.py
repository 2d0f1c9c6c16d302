"""
FILE: jedi_organizer/core/statistics.py
PURPOSE: Per-user task and project counts
EXPORTS:
  - TaskStatistics, ProjectStatistics (dataclasses)
  - task_statistics(user_id) -> TaskStatistics
  - project_statistics(user_id) -> ProjectStatistics
DEPENDENCIES:
  - jedi_organizer.core.repository (counts)
  - jedi_organizer.core.service (today/overdue/high-priority views)
NOTES:
  - Computed on demand from several independent reads; there are no stored
    counters and no snapshot across the reads, so concurrent writes can
    make the numbers briefly disagree with each other
  - todays is the number of tasks scheduled for today (list_todays_tasks)
"""

import json
from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Optional

from . import repository, service
from .constants import (
    PROJECT_ACTIVE,
    PROJECT_ARCHIVED,
    PROJECT_COMPLETED,
    PROJECT_ON_HOLD,
    TASK_COMPLETED,
    TASK_IN_PROGRESS,
    TASK_TODO,
    TASK_WAITING,
)


@dataclass
class TaskStatistics:
    total: int
    todo: int
    in_progress: int
    completed: int
    waiting: int
    todays: int
    overdue: int

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=2)


@dataclass
class ProjectStatistics:
    total: int
    active: int
    completed: int
    on_hold: int
    archived: int
    overdue: int
    high_priority: int

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=2)


def task_statistics(
    user_id: int, today: Optional[date] = None, now: Optional[datetime] = None
) -> TaskStatistics:
    """
    Count a user's tasks.

    Returns:
        TaskStatistics with the total, per-status counts (TODO, IN_PROGRESS,
        COMPLETED, WAITING), tasks scheduled today and overdue tasks
    """
    return TaskStatistics(
        total=repository.count_tasks_by_user(user_id),
        todo=repository.count_tasks_by_status(user_id, TASK_TODO),
        in_progress=repository.count_tasks_by_status(user_id, TASK_IN_PROGRESS),
        completed=repository.count_tasks_by_status(user_id, TASK_COMPLETED),
        waiting=repository.count_tasks_by_status(user_id, TASK_WAITING),
        todays=len(service.list_todays_tasks(user_id, today)),
        overdue=len(service.list_overdue_tasks(user_id, now)),
    )


def project_statistics(user_id: int, now: Optional[datetime] = None) -> ProjectStatistics:
    """Count a user's projects by status, plus overdue and high-priority ones."""
    return ProjectStatistics(
        total=repository.count_projects_by_user(user_id),
        active=repository.count_projects_by_status(user_id, PROJECT_ACTIVE),
        completed=repository.count_projects_by_status(user_id, PROJECT_COMPLETED),
        on_hold=repository.count_projects_by_status(user_id, PROJECT_ON_HOLD),
        archived=repository.count_projects_by_status(user_id, PROJECT_ARCHIVED),
        overdue=len(service.list_overdue_projects(user_id, now)),
        high_priority=len(service.list_high_priority_projects(user_id)),
    )
