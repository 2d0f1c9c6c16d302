"""
FILE: jedi_organizer/core/repository.py
PURPOSE: Database operations and SQLite connection management
EXPORTS:
  - get_connection() -> Connection
  - init_database(conn) -> None
  - Tasks: create_task, get_task, update_task, delete_task, list_tasks_by_user,
    list_tasks_by_status, count_tasks_by_user, count_tasks_by_status,
    list_tasks_scheduled_on, list_todays_actionable_tasks, list_overdue_tasks,
    list_tasks_by_context, list_tasks_by_max_energy, list_tasks_by_type,
    list_tasks_by_project, list_unassigned_tasks, list_completed_tasks_between,
    list_tasks_with_reflection, search_tasks_by_title
  - Projects: create_project, get_project, update_project, delete_project,
    list_projects_by_user, list_projects_by_status, count_projects_by_user,
    count_projects_by_status, list_high_priority_projects,
    list_overdue_projects, search_projects_by_title,
    list_projects_updated_after, list_projects_created_after
  - Users: create_user, get_user, get_user_by_email, get_user_by_external_id,
    update_user, delete_user, list_active_users, list_users_last_login_before,
    list_users_created_after, count_users, count_active_users
DEPENDENCIES:
  - sqlite3, json, logging, pathlib, contextlib (stdlib)
  - jedi_organizer.config (database location)
  - jedi_organizer.core.models, queries, exceptions
NOTES:
  - Database stored at ~/.jedi-organizer/jedi.db unless JEDI_HOME/JEDI_DB_PATH
    say otherwise; tests monkeypatch DB_PATH/DB_DIR
  - Auto-creates directory and initializes schema on first connection
  - Returns domain objects, never raw rows
  - Every list query is scoped by user_id; ownership checks on single
    entities happen in core.ownership
  - No ownership or lifecycle rules here: rows are stored as given
  - Last writer wins: update_* rewrites the whole row
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from ..config import load_settings
from .constants import ACTIONABLE_STATUSES, PROJECT_ACTIVE, PROJECT_COMPLETED, TASK_COMPLETED
from .exceptions import ProjectNotFoundError, TaskNotFoundError, UserNotFoundError
from .models import (
    Project,
    Task,
    User,
    format_date,
    format_timestamp,
)
from .queries import filter_entities, matches_title

logger = logging.getLogger(__name__)

_settings = load_settings()

# Database file location
DB_DIR = _settings.home_dir
DB_PATH = _settings.db_path

# Schema ships inside the package
SCHEMA_PATH = Path(__file__).parent / "schema.sql"


def get_connection() -> sqlite3.Connection:
    """
    Get SQLite connection to the database.

    Creates the data directory if it doesn't exist.
    Enables row_factory for dict-like row access.
    Initializes database schema on first connection.
    """
    DB_DIR.mkdir(parents=True, exist_ok=True)
    Path(DB_PATH).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row

    init_database(conn)

    return conn


def init_database(conn: sqlite3.Connection) -> None:
    """
    Initialize database schema if tables don't exist.

    Safe to call multiple times (schema uses CREATE TABLE IF NOT EXISTS).
    """
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name='tasks'"
    )
    tables_exist = cursor.fetchone() is not None

    if not tables_exist:
        with open(SCHEMA_PATH, "r") as f:
            schema_sql = f.read()

        conn.executescript(schema_sql)
        conn.commit()
        logger.info("Initialized database schema at %s", DB_PATH)


@contextmanager
def _session() -> Iterator[sqlite3.Connection]:
    """Connection that commits on success, rolls back on error, always closes."""
    conn = get_connection()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def _fetch_all(sql: str, params=()) -> List[sqlite3.Row]:
    with _session() as conn:
        return conn.execute(sql, params).fetchall()


def _fetch_one(sql: str, params=()) -> Optional[sqlite3.Row]:
    with _session() as conn:
        return conn.execute(sql, params).fetchone()


def _count(sql: str, params=()) -> int:
    row = _fetch_one(sql, params)
    return row[0] if row else 0


# --- Task Operations ---


_TASK_COLUMNS = (
    "user_id", "project_id", "title", "description", "status", "type", "context",
    "energy", "scheduled_date", "due_date", "created_at", "updated_at",
    "started_at", "completed_at", "notes", "subtasks", "reflection",
)


def _task_params(task: Task) -> Dict[str, Any]:
    return {
        "user_id": task.user_id,
        "project_id": task.project_id,
        "title": task.title,
        "description": task.description,
        "status": task.status,
        "type": task.type,
        "context": task.context,
        "energy": task.energy,
        "scheduled_date": format_date(task.scheduled_date),
        "due_date": format_timestamp(task.due_date),
        "created_at": format_timestamp(task.created_at),
        "updated_at": format_timestamp(task.updated_at),
        "started_at": format_timestamp(task.started_at),
        "completed_at": format_timestamp(task.completed_at),
        "notes": json.dumps([n.to_dict() for n in task.notes]),
        "subtasks": json.dumps(task.subtasks),
        "reflection": json.dumps(task.reflection.to_dict()) if task.reflection else None,
    }


def _list_tasks(where: str, params=(), order: str = "created_at DESC, id DESC") -> List[Task]:
    rows = _fetch_all(f"SELECT * FROM tasks WHERE {where} ORDER BY {order}", params)
    return [Task.from_row(row) for row in rows]


def create_task(task: Task) -> Task:
    """
    Insert a new task.

    Args:
        task: Task built by the lifecycle layer (id must be None)

    Returns:
        The stored Task, with its new id
    """
    columns = ", ".join(_TASK_COLUMNS)
    placeholders = ", ".join(f":{c}" for c in _TASK_COLUMNS)
    with _session() as conn:
        cursor = conn.execute(
            f"INSERT INTO tasks ({columns}) VALUES ({placeholders})", _task_params(task)
        )
        task_id = cursor.lastrowid

    stored = get_task(task_id)
    if not stored:
        # This should never happen, but handle gracefully
        raise TaskNotFoundError(task_id)

    logger.debug("Created task %s for user %s", task_id, task.user_id)
    return stored


def get_task(task_id: int) -> Optional[Task]:
    """
    Fetch single task by ID.

    Returns:
        Task object if found, None otherwise
    """
    row = _fetch_one("SELECT * FROM tasks WHERE id = ?", (task_id,))
    return Task.from_row(row) if row else None


def update_task(task: Task) -> Task:
    """
    Write every field of an existing task.

    Raises:
        TaskNotFoundError: If the row no longer exists
    """
    assignments = ", ".join(f"{c} = :{c}" for c in _TASK_COLUMNS)
    params = _task_params(task)
    params["id"] = task.id
    with _session() as conn:
        cursor = conn.execute(f"UPDATE tasks SET {assignments} WHERE id = :id", params)
        if cursor.rowcount == 0:
            raise TaskNotFoundError(task.id)
    return task


def delete_task(task_id: int) -> None:
    """
    Delete task by ID.

    Raises:
        TaskNotFoundError: If task doesn't exist
    """
    with _session() as conn:
        cursor = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
        if cursor.rowcount == 0:
            raise TaskNotFoundError(task_id)
    logger.debug("Deleted task %s", task_id)


def list_tasks_by_user(user_id: int) -> List[Task]:
    """All of a user's tasks, newest first."""
    return _list_tasks("user_id = ?", (user_id,))


def count_tasks_by_user(user_id: int) -> int:
    return _count("SELECT COUNT(*) FROM tasks WHERE user_id = ?", (user_id,))


def list_tasks_by_status(user_id: int, status: str) -> List[Task]:
    return _list_tasks("user_id = ? AND status = ?", (user_id, status))


def count_tasks_by_status(user_id: int, status: str) -> int:
    return _count(
        "SELECT COUNT(*) FROM tasks WHERE user_id = ? AND status = ?", (user_id, status)
    )


def list_tasks_scheduled_on(user_id: int, day: date) -> List[Task]:
    return _list_tasks("user_id = ? AND scheduled_date = ?", (user_id, format_date(day)))


def list_todays_actionable_tasks(user_id: int, today: date) -> List[Task]:
    """
    Tasks scheduled for `today`, plus unscheduled tasks that are TODO or
    IN_PROGRESS. Same rule as queries.is_actionable_today().
    """
    placeholders = ", ".join("?" for _ in ACTIONABLE_STATUSES)
    return _list_tasks(
        f"user_id = ? AND (scheduled_date = ? OR "
        f"(scheduled_date IS NULL AND status IN ({placeholders})))",
        (user_id, format_date(today), *ACTIONABLE_STATUSES),
    )


def list_overdue_tasks(user_id: int, now: datetime) -> List[Task]:
    """Due before `now` and not completed, most overdue first."""
    return _list_tasks(
        "user_id = ? AND due_date IS NOT NULL AND due_date < ? AND status != ?",
        (user_id, format_timestamp(now), TASK_COMPLETED),
        order="due_date ASC, id ASC",
    )


def list_tasks_by_context(user_id: int, context: str) -> List[Task]:
    return _list_tasks("user_id = ? AND context = ?", (user_id, context))


def list_tasks_by_max_energy(user_id: int, max_energy: int) -> List[Task]:
    return _list_tasks("user_id = ? AND energy <= ?", (user_id, max_energy))


def list_tasks_by_type(user_id: int, task_type: str) -> List[Task]:
    return _list_tasks("user_id = ? AND type = ?", (user_id, task_type))


def list_tasks_by_project(user_id: int, project_id: int) -> List[Task]:
    return _list_tasks("user_id = ? AND project_id = ?", (user_id, project_id))


def list_unassigned_tasks(user_id: int) -> List[Task]:
    return _list_tasks("user_id = ? AND project_id IS NULL", (user_id,))


def list_completed_tasks_between(user_id: int, start: datetime, end: datetime) -> List[Task]:
    return _list_tasks(
        "user_id = ? AND status = ? AND completed_at IS NOT NULL "
        "AND completed_at >= ? AND completed_at <= ?",
        (user_id, TASK_COMPLETED, format_timestamp(start), format_timestamp(end)),
        order="completed_at DESC, id DESC",
    )


def list_tasks_with_reflection(user_id: int) -> List[Task]:
    return _list_tasks("user_id = ? AND reflection IS NOT NULL", (user_id,))


def search_tasks_by_title(user_id: int, text: str) -> List[Task]:
    """
    Case-insensitive substring search on title.

    Note:
        SQLite's LOWER() only folds ASCII, so matching is done in Python
        over the user's tasks.
    """
    return filter_entities(list_tasks_by_user(user_id), lambda t: matches_title(t, text))


# --- Project Operations ---


_PROJECT_COLUMNS = (
    "user_id", "title", "description", "status", "priority", "created_at",
    "updated_at", "due_date", "completed_at", "settings",
)


def _project_params(project: Project) -> Dict[str, Any]:
    return {
        "user_id": project.user_id,
        "title": project.title,
        "description": project.description,
        "status": project.status,
        "priority": project.priority,
        "created_at": format_timestamp(project.created_at),
        "updated_at": format_timestamp(project.updated_at),
        "due_date": format_timestamp(project.due_date),
        "completed_at": format_timestamp(project.completed_at),
        "settings": json.dumps(project.settings.to_dict()),
    }


def _list_projects(
    where: str, params=(), order: str = "created_at DESC, id DESC"
) -> List[Project]:
    rows = _fetch_all(f"SELECT * FROM projects WHERE {where} ORDER BY {order}", params)
    return [Project.from_row(row) for row in rows]


def create_project(project: Project) -> Project:
    """Insert a new project and return it with its id."""
    columns = ", ".join(_PROJECT_COLUMNS)
    placeholders = ", ".join(f":{c}" for c in _PROJECT_COLUMNS)
    with _session() as conn:
        cursor = conn.execute(
            f"INSERT INTO projects ({columns}) VALUES ({placeholders})",
            _project_params(project),
        )
        project_id = cursor.lastrowid

    stored = get_project(project_id)
    if not stored:
        raise ProjectNotFoundError(project_id)

    logger.debug("Created project %s for user %s", project_id, project.user_id)
    return stored


def get_project(project_id: int) -> Optional[Project]:
    """
    Fetch single project by ID.

    Returns:
        Project object if found, None otherwise
    """
    row = _fetch_one("SELECT * FROM projects WHERE id = ?", (project_id,))
    return Project.from_row(row) if row else None


def update_project(project: Project) -> Project:
    assignments = ", ".join(f"{c} = :{c}" for c in _PROJECT_COLUMNS)
    params = _project_params(project)
    params["id"] = project.id
    with _session() as conn:
        cursor = conn.execute(f"UPDATE projects SET {assignments} WHERE id = :id", params)
        if cursor.rowcount == 0:
            raise ProjectNotFoundError(project.id)
    return project


def delete_project(project_id: int) -> None:
    """
    Delete project by ID.

    Raises:
        ProjectNotFoundError: If project doesn't exist

    Note:
        Tasks keep their project_id (weak reference, no cascade).
    """
    with _session() as conn:
        cursor = conn.execute("DELETE FROM projects WHERE id = ?", (project_id,))
        if cursor.rowcount == 0:
            raise ProjectNotFoundError(project_id)
    logger.debug("Deleted project %s", project_id)


def list_projects_by_user(user_id: int) -> List[Project]:
    return _list_projects("user_id = ?", (user_id,))


def count_projects_by_user(user_id: int) -> int:
    return _count("SELECT COUNT(*) FROM projects WHERE user_id = ?", (user_id,))


def list_projects_by_status(user_id: int, status: str) -> List[Project]:
    return _list_projects("user_id = ? AND status = ?", (user_id, status))


def count_projects_by_status(user_id: int, status: str) -> int:
    return _count(
        "SELECT COUNT(*) FROM projects WHERE user_id = ? AND status = ?", (user_id, status)
    )


def list_active_projects(user_id: int) -> List[Project]:
    return list_projects_by_status(user_id, PROJECT_ACTIVE)


def list_high_priority_projects(user_id: int, max_priority: int) -> List[Project]:
    """Projects with priority <= max_priority, highest priority first."""
    return _list_projects(
        "user_id = ? AND priority <= ?",
        (user_id, max_priority),
        order="priority ASC, created_at DESC, id DESC",
    )


def list_overdue_projects(user_id: int, now: datetime) -> List[Project]:
    return _list_projects(
        "user_id = ? AND due_date IS NOT NULL AND due_date < ? AND status != ?",
        (user_id, format_timestamp(now), PROJECT_COMPLETED),
        order="due_date ASC, id ASC",
    )


def search_projects_by_title(user_id: int, text: str) -> List[Project]:
    return filter_entities(list_projects_by_user(user_id), lambda p: matches_title(p, text))


def list_projects_updated_after(user_id: int, cutoff: datetime) -> List[Project]:
    return _list_projects(
        "user_id = ? AND updated_at > ?",
        (user_id, format_timestamp(cutoff)),
        order="updated_at DESC, id DESC",
    )


def list_projects_created_after(user_id: int, cutoff: datetime) -> List[Project]:
    return _list_projects("user_id = ? AND created_at > ?", (user_id, format_timestamp(cutoff)))


# --- User Operations ---


_USER_COLUMNS = (
    "email", "first_name", "last_name", "display_name", "external_id",
    "profile_image_url", "active", "created_at", "last_login_at", "preferences",
)


def _user_params(user: User) -> Dict[str, Any]:
    return {
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "display_name": user.display_name,
        "external_id": user.external_id,
        "profile_image_url": user.profile_image_url,
        "active": 1 if user.active else 0,
        "created_at": format_timestamp(user.created_at),
        "last_login_at": format_timestamp(user.last_login_at),
        "preferences": json.dumps(user.preferences.to_dict()),
    }


def _list_users(where: str, params=(), order: str = "created_at DESC, id DESC") -> List[User]:
    rows = _fetch_all(f"SELECT * FROM users WHERE {where} ORDER BY {order}", params)
    return [User.from_row(row) for row in rows]


def create_user(user: User) -> User:
    """
    Insert a new user.

    Raises:
        sqlite3.IntegrityError: If email or external_id is already taken
    """
    columns = ", ".join(_USER_COLUMNS)
    placeholders = ", ".join(f":{c}" for c in _USER_COLUMNS)
    with _session() as conn:
        cursor = conn.execute(
            f"INSERT INTO users ({columns}) VALUES ({placeholders})", _user_params(user)
        )
        user_id = cursor.lastrowid

    stored = get_user(user_id)
    if not stored:
        raise UserNotFoundError(user_id)

    logger.info("Created user %s (%s)", user_id, user.email)
    return stored


def get_user(user_id: int) -> Optional[User]:
    row = _fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))
    return User.from_row(row) if row else None


def get_user_by_email(email: str) -> Optional[User]:
    row = _fetch_one("SELECT * FROM users WHERE email = ?", (email,))
    return User.from_row(row) if row else None


def get_user_by_external_id(external_id: str) -> Optional[User]:
    row = _fetch_one("SELECT * FROM users WHERE external_id = ?", (external_id,))
    return User.from_row(row) if row else None


def update_user(user: User) -> User:
    assignments = ", ".join(f"{c} = :{c}" for c in _USER_COLUMNS)
    params = _user_params(user)
    params["id"] = user.id
    with _session() as conn:
        cursor = conn.execute(f"UPDATE users SET {assignments} WHERE id = :id", params)
        if cursor.rowcount == 0:
            raise UserNotFoundError(user.id)
    return user


def delete_user(user_id: int) -> None:
    """
    Delete user by ID.

    Note:
        The user's tasks and projects are left in place.
    """
    with _session() as conn:
        cursor = conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
        if cursor.rowcount == 0:
            raise UserNotFoundError(user_id)
    logger.info("Deleted user %s", user_id)


def list_active_users() -> List[User]:
    return _list_users("active = 1")


def list_users_last_login_before(cutoff: datetime) -> List[User]:
    return _list_users(
        "last_login_at IS NOT NULL AND last_login_at < ?", (format_timestamp(cutoff),)
    )


def list_users_created_after(cutoff: datetime) -> List[User]:
    return _list_users("created_at > ?", (format_timestamp(cutoff),))


def count_users() -> int:
    return _count("SELECT COUNT(*) FROM users")


def count_active_users() -> int:
    return _count("SELECT COUNT(*) FROM users WHERE active = 1")
