"""
FILE: jedi_organizer/core/ownership.py
PURPOSE: Resolve an entity by id on behalf of a user
EXPORTS:
  - resolve_task(task_id, user_id) -> Task
  - resolve_project(project_id, user_id) -> Project
DEPENDENCIES:
  - jedi_organizer.core.repository
  - jedi_organizer.core.exceptions
NOTES:
  - A missing entity and an entity owned by someone else raise the same
    NotFoundError with the same message, so callers can't probe for ids
    belonging to other users
  - Every single-entity read and every mutation in service.py goes through
    one of these functions first
"""

from typing import Callable, Optional, Type, TypeVar

from . import repository
from .exceptions import NotFoundError, ProjectNotFoundError, TaskNotFoundError
from .models import Project, Task

E = TypeVar("E")


def _resolve(
    entity_id: int,
    user_id: int,
    load: Callable[[int], Optional[E]],
    not_found: Type[NotFoundError],
) -> E:
    entity = load(entity_id) if entity_id is not None else None
    if entity is None or user_id is None or entity.user_id != user_id:
        raise not_found(entity_id)
    return entity


def resolve_task(task_id: int, user_id: int) -> Task:
    """
    Load a task the user owns.

    Raises:
        TaskNotFoundError: absent, or owned by another user
    """
    return _resolve(task_id, user_id, repository.get_task, TaskNotFoundError)


def resolve_project(project_id: int, user_id: int) -> Project:
    """
    Load a project the user owns.

    Raises:
        ProjectNotFoundError: absent, or owned by another user
    """
    return _resolve(project_id, user_id, repository.get_project, ProjectNotFoundError)
