"""
FILE: jedi_organizer/core/models.py
PURPOSE: Domain models for tasks, projects and users
EXPORTS:
  - Task, TaskNote, TaskReflection (dataclasses)
  - Project, ProjectSettings (dataclasses)
  - User, UserPreferences (dataclasses)
  - TaskDraft, ProjectDraft: creation payloads
  - TaskUpdate, ProjectUpdate, UserUpdate: partial-update payloads
  - UNSET: marker for "field not supplied" in partial updates
  - format_timestamp / parse_timestamp / format_date / parse_date
DEPENDENCIES:
  - dataclasses, datetime, json, typing (stdlib)
NOTES:
  - All entity models have from_row() for SQLite row conversion
  - All entity models have to_dict()/to_json() for serialization
  - Timestamps are naive local datetimes, stored as ISO-8601 strings
  - Nested values (notes, subtasks, reflection, settings, preferences)
    are stored as JSON documents inside their parent row
  - Models hold state only; status changes go through core.lifecycle
"""

from dataclasses import dataclass, field, fields, asdict
from datetime import date, datetime
from typing import Any, Dict, List, Optional
import json

from .constants import (
    DEFAULT_ENERGY,
    DEFAULT_PRIORITY,
    DEFAULT_PROJECT_STATUS,
    DEFAULT_TASK_STATUS,
    DEFAULT_TASK_TYPE,
)


# --- Serialization helpers ---


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Datetime -> ISO string with fixed microsecond precision (sortable as text)."""
    if value is None:
        return None
    return value.isoformat(timespec="microseconds")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


def format_date(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    return date.fromisoformat(value)


class _Unset:
    """Marker type for partial updates: the caller did not supply the field."""

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


# --- Task ---


@dataclass
class TaskNote:
    """A timestamped note appended to a task."""

    content: str
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {"content": self.content, "created_at": format_timestamp(self.created_at)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TaskNote":
        return cls(content=data["content"], created_at=parse_timestamp(data["created_at"]))


@dataclass
class TaskReflection:
    """What the user learned from a completed task."""

    satisfaction_rating: int
    what_went_well: Optional[str] = None
    what_could_improve: Optional[str] = None
    lessons_learned: Optional[str] = None
    reflected_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "what_went_well": self.what_went_well,
            "what_could_improve": self.what_could_improve,
            "lessons_learned": self.lessons_learned,
            "satisfaction_rating": self.satisfaction_rating,
            "reflected_at": format_timestamp(self.reflected_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TaskReflection":
        return cls(
            satisfaction_rating=data["satisfaction_rating"],
            what_went_well=data.get("what_went_well"),
            what_could_improve=data.get("what_could_improve"),
            lessons_learned=data.get("lessons_learned"),
            reflected_at=parse_timestamp(data.get("reflected_at")),
        )


@dataclass
class Task:
    """A unit of work owned by one user, optionally grouped under a project."""

    user_id: int
    title: str
    id: Optional[int] = None
    project_id: Optional[int] = None
    description: Optional[str] = None
    status: str = DEFAULT_TASK_STATUS
    type: str = DEFAULT_TASK_TYPE
    context: Optional[str] = None
    energy: int = DEFAULT_ENERGY
    scheduled_date: Optional[date] = None
    due_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    notes: List[TaskNote] = field(default_factory=list)
    subtasks: List[str] = field(default_factory=list)
    reflection: Optional[TaskReflection] = None

    @classmethod
    def from_row(cls, row) -> "Task":
        """Convert SQLite row to Task object."""
        reflection = json.loads(row["reflection"]) if row["reflection"] else None
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            project_id=row["project_id"],
            title=row["title"],
            description=row["description"],
            status=row["status"],
            type=row["type"],
            context=row["context"],
            energy=row["energy"],
            scheduled_date=parse_date(row["scheduled_date"]),
            due_date=parse_timestamp(row["due_date"]),
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
            started_at=parse_timestamp(row["started_at"]),
            completed_at=parse_timestamp(row["completed_at"]),
            notes=[TaskNote.from_dict(n) for n in json.loads(row["notes"] or "[]")],
            subtasks=list(json.loads(row["subtasks"] or "[]")),
            reflection=TaskReflection.from_dict(reflection) if reflection else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "project_id": self.project_id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "type": self.type,
            "context": self.context,
            "energy": self.energy,
            "scheduled_date": format_date(self.scheduled_date),
            "due_date": format_timestamp(self.due_date),
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
            "started_at": format_timestamp(self.started_at),
            "completed_at": format_timestamp(self.completed_at),
            "notes": [n.to_dict() for n in self.notes],
            "subtasks": list(self.subtasks),
            "reflection": self.reflection.to_dict() if self.reflection else None,
        }

    def to_json(self) -> str:
        """Serialize task to JSON string."""
        return json.dumps(self.to_dict(), indent=2)


# --- Project ---


@dataclass
class ProjectSettings:
    """Per-project preferences. Every field has a default."""

    notifications_enabled: bool = True
    auto_archive_when_complete: bool = False
    max_daily_tasks_from_project: int = 5
    include_in_weekly_reflection: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ProjectSettings":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (data or {}).items() if k in known})


@dataclass
class Project:
    """A group of related tasks with its own lifecycle and priority."""

    user_id: int
    title: str
    id: Optional[int] = None
    description: Optional[str] = None
    status: str = DEFAULT_PROJECT_STATUS
    priority: int = DEFAULT_PRIORITY
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    settings: ProjectSettings = field(default_factory=ProjectSettings)

    @classmethod
    def from_row(cls, row) -> "Project":
        """Convert SQLite row to Project object."""
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            description=row["description"],
            status=row["status"],
            priority=row["priority"],
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
            due_date=parse_timestamp(row["due_date"]),
            completed_at=parse_timestamp(row["completed_at"]),
            settings=ProjectSettings.from_dict(json.loads(row["settings"] or "{}")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
            "due_date": format_timestamp(self.due_date),
            "completed_at": format_timestamp(self.completed_at),
            "settings": self.settings.to_dict(),
        }

    def to_json(self) -> str:
        """Serialize project to JSON string."""
        return json.dumps(self.to_dict(), indent=2)


# --- User ---


@dataclass
class UserPreferences:
    """Per-user preferences. Every field has a default."""

    timezone: str = "UTC"
    language: str = "en"
    notifications_enabled: bool = True
    email_notifications: bool = True
    max_daily_tasks: int = 10
    reflection_reminder_hour: int = 18
    weekly_reflection_enabled: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "UserPreferences":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (data or {}).items() if k in known})


@dataclass
class User:
    """An account. external_id is the OAuth subject when signed in externally."""

    email: str
    id: Optional[int] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    display_name: Optional[str] = None
    external_id: Optional[str] = None
    profile_image_url: Optional[str] = None
    active: bool = True
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    preferences: UserPreferences = field(default_factory=UserPreferences)

    @classmethod
    def from_row(cls, row) -> "User":
        """Convert SQLite row to User object."""
        return cls(
            id=row["id"],
            email=row["email"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            display_name=row["display_name"],
            external_id=row["external_id"],
            profile_image_url=row["profile_image_url"],
            active=bool(row["active"]),
            created_at=parse_timestamp(row["created_at"]),
            last_login_at=parse_timestamp(row["last_login_at"]),
            preferences=UserPreferences.from_dict(json.loads(row["preferences"] or "{}")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "display_name": self.display_name,
            "external_id": self.external_id,
            "profile_image_url": self.profile_image_url,
            "active": self.active,
            "created_at": format_timestamp(self.created_at),
            "last_login_at": format_timestamp(self.last_login_at),
            "preferences": self.preferences.to_dict(),
        }

    def to_json(self) -> str:
        """Serialize user to JSON string."""
        return json.dumps(self.to_dict(), indent=2)


# --- Payloads ---


@dataclass
class TaskDraft:
    """Fields a caller may supply when creating a task."""

    title: str
    description: Optional[str] = None
    type: str = DEFAULT_TASK_TYPE
    context: Optional[str] = None
    energy: int = DEFAULT_ENERGY
    due_date: Optional[datetime] = None
    scheduled_date: Optional[date] = None
    project_id: Optional[int] = None


@dataclass
class ProjectDraft:
    """Fields a caller may supply when creating a project."""

    title: str
    description: Optional[str] = None
    status: str = DEFAULT_PROJECT_STATUS
    priority: int = DEFAULT_PRIORITY
    due_date: Optional[datetime] = None
    settings: Optional[ProjectSettings] = None


class _PartialUpdate:
    """Mixin for update payloads whose fields default to UNSET."""

    def present(self) -> Dict[str, Any]:
        """Fields the caller actually supplied (None included: it means clear)."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }


@dataclass
class TaskUpdate(_PartialUpdate):
    """Partial task update. UNSET leaves a field alone; None clears an optional field."""

    title: Any = UNSET
    description: Any = UNSET
    type: Any = UNSET
    status: Any = UNSET
    context: Any = UNSET
    energy: Any = UNSET
    due_date: Any = UNSET
    scheduled_date: Any = UNSET
    project_id: Any = UNSET


@dataclass
class ProjectUpdate(_PartialUpdate):
    """Partial project update. Same UNSET/None convention as TaskUpdate."""

    title: Any = UNSET
    description: Any = UNSET
    status: Any = UNSET
    priority: Any = UNSET
    due_date: Any = UNSET


@dataclass
class UserUpdate(_PartialUpdate):
    first_name: Any = UNSET
    last_name: Any = UNSET
    display_name: Any = UNSET
    profile_image_url: Any = UNSET
