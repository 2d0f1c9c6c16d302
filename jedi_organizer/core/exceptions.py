"""
FILE: jedi_organizer/core/exceptions.py
PURPOSE: Custom exception classes for error handling
EXPORTS:
  - JediError (base exception)
  - NotFoundError, TaskNotFoundError, ProjectNotFoundError, UserNotFoundError
  - ValidationError
DEPENDENCIES:
  - None (stdlib only)
NOTES:
  - All exceptions inherit from JediError for easy catching
  - NotFound messages are identical whether the entity is missing or owned
    by someone else
  - Service layer raises these, the CLI catches and displays
"""


class JediError(Exception):
    """Base exception for all Jedi Organizer errors."""
    pass


class NotFoundError(JediError):
    """Entity doesn't exist or isn't visible to the requesting user."""

    entity = "Entity"

    def __init__(self, entity_id):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} {entity_id} not found")


class TaskNotFoundError(NotFoundError):
    """Task with given ID doesn't exist for this user."""

    entity = "Task"


class ProjectNotFoundError(NotFoundError):
    """Project with given ID doesn't exist for this user."""

    entity = "Project"


class UserNotFoundError(NotFoundError):
    """User with given ID (or email) doesn't exist."""

    entity = "User"


class ValidationError(JediError):
    """Input validation failed. Raised before any state is modified."""

    def __init__(self, code: str, message: str):
        self.code = code
        super().__init__(message)
