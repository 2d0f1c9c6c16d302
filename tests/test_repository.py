"""
Tests for the SQLite storage layer.
"""

import sqlite3
from datetime import date, datetime, timedelta

import pytest

# Path setup handled by conftest.py
from jedi_organizer.core import repository
from jedi_organizer.core.exceptions import ProjectNotFoundError, TaskNotFoundError, UserNotFoundError
from jedi_organizer.core.models import (
    Project,
    ProjectSettings,
    Task,
    TaskNote,
    TaskReflection,
    User,
    UserPreferences,
)

NOW = datetime(2026, 4, 1, 8, 30, 15, 123456)


@pytest.fixture(autouse=True)
def temp_db(monkeypatch, tmp_path):
    """Use temporary database for all tests."""
    db_path = tmp_path / "test_jedi.db"
    monkeypatch.setattr(repository, "DB_PATH", db_path)
    monkeypatch.setattr(repository, "DB_DIR", tmp_path)
    yield db_path


def new_task(user_id=1, title="Task", **kwargs):
    kwargs.setdefault("created_at", NOW)
    kwargs.setdefault("updated_at", kwargs["created_at"])
    return repository.create_task(Task(user_id=user_id, title=title, **kwargs))


def new_project(user_id=1, title="Project", **kwargs):
    kwargs.setdefault("created_at", NOW)
    kwargs.setdefault("updated_at", kwargs["created_at"])
    return repository.create_project(Project(user_id=user_id, title=title, **kwargs))


def test_schema_created_on_first_connection(temp_db):
    conn = repository.get_connection()
    try:
        names = {
            row["name"]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        }
    finally:
        conn.close()
    assert {"tasks", "projects", "users"} <= names
    assert temp_db.exists()


def test_task_round_trip_keeps_nested_values():
    task = new_task(
        title="Write report",
        project_id=7,
        context="@office",
        energy=4,
        scheduled_date=date(2026, 4, 2),
        due_date=NOW + timedelta(days=3),
        status="COMPLETED",
        completed_at=NOW,
        notes=[TaskNote(content="first", created_at=NOW)],
        subtasks=["outline", "draft"],
        reflection=TaskReflection(satisfaction_rating=5, lessons_learned="Start early", reflected_at=NOW),
    )
    assert task.id is not None

    fetched = repository.get_task(task.id)
    assert fetched == task
    assert fetched.created_at == NOW
    assert fetched.scheduled_date == date(2026, 4, 2)
    assert fetched.notes[0].content == "first"
    assert fetched.subtasks == ["outline", "draft"]
    assert fetched.reflection.lessons_learned == "Start early"


def test_get_missing_task_returns_none():
    assert repository.get_task(99999) is None


def test_update_task_rewrites_row():
    task = new_task()
    task.title = "Renamed"
    task.updated_at = NOW + timedelta(minutes=1)
    repository.update_task(task)

    fetched = repository.get_task(task.id)
    assert fetched.title == "Renamed"
    assert fetched.updated_at == NOW + timedelta(minutes=1)


def test_update_missing_task_raises():
    with pytest.raises(TaskNotFoundError):
        repository.update_task(Task(user_id=1, title="ghost", id=424242, created_at=NOW, updated_at=NOW))


def test_delete_task():
    task = new_task()
    repository.delete_task(task.id)
    assert repository.get_task(task.id) is None

    with pytest.raises(TaskNotFoundError):
        repository.delete_task(task.id)


def test_lists_are_scoped_by_user_and_newest_first():
    first = new_task(user_id=1, title="old", created_at=NOW)
    second = new_task(user_id=1, title="new", created_at=NOW + timedelta(hours=1))
    new_task(user_id=2, title="someone else's")

    tasks = repository.list_tasks_by_user(1)
    assert [t.id for t in tasks] == [second.id, first.id]
    assert repository.count_tasks_by_user(1) == 2
    assert repository.count_tasks_by_user(2) == 1


def test_todays_actionable_query():
    today = date(2026, 4, 1)
    scheduled = new_task(title="scheduled", scheduled_date=today, status="WAITING")
    unscheduled = new_task(title="loose", status="IN_PROGRESS")
    new_task(title="waiting", status="WAITING")
    new_task(title="tomorrow", scheduled_date=today + timedelta(days=1))
    new_task(title="other user", user_id=2)

    ids = {t.id for t in repository.list_todays_actionable_tasks(1, today)}
    assert ids == {scheduled.id, unscheduled.id}


def test_overdue_query_orders_most_overdue_first():
    late = new_task(title="late", due_date=NOW - timedelta(days=1))
    later = new_task(title="later", due_date=NOW - timedelta(days=3))
    new_task(title="done", due_date=NOW - timedelta(days=5), status="COMPLETED")
    new_task(title="future", due_date=NOW + timedelta(days=1))

    overdue = repository.list_overdue_tasks(1, NOW)
    assert [t.id for t in overdue] == [later.id, late.id]


def test_predicate_filters():
    home = new_task(title="home", context="@home", energy=1, type="REFERENCE", project_id=3)
    office = new_task(title="office", context="@office", energy=4)

    assert [t.id for t in repository.list_tasks_by_context(1, "@home")] == [home.id]
    assert [t.id for t in repository.list_tasks_by_max_energy(1, 2)] == [home.id]
    assert [t.id for t in repository.list_tasks_by_type(1, "REFERENCE")] == [home.id]
    assert [t.id for t in repository.list_tasks_by_project(1, 3)] == [home.id]
    assert [t.id for t in repository.list_unassigned_tasks(1)] == [office.id]


def test_search_tasks_case_insensitive():
    match = new_task(title="Quarterly REPORT")
    new_task(title="Groceries")
    assert [t.id for t in repository.search_tasks_by_title(1, "report")] == [match.id]


def test_completed_between_and_with_reflection():
    inside = new_task(title="inside", status="COMPLETED", completed_at=NOW - timedelta(days=1))
    new_task(title="outside", status="COMPLETED", completed_at=NOW - timedelta(days=10))
    new_task(title="reopened", status="TODO", completed_at=NOW - timedelta(days=1))
    reflected = new_task(
        title="reflected",
        status="COMPLETED",
        completed_at=NOW - timedelta(days=20),
        reflection=TaskReflection(satisfaction_rating=3),
    )

    window = repository.list_completed_tasks_between(1, NOW - timedelta(days=7), NOW)
    assert [t.id for t in window] == [inside.id]
    assert [t.id for t in repository.list_tasks_with_reflection(1)] == [reflected.id]


def test_check_constraint_rejects_bad_energy():
    with pytest.raises(sqlite3.IntegrityError):
        new_task(energy=9)


# --- Projects ---


def test_project_round_trip_and_settings():
    project = new_project(
        title="Launch",
        priority=1,
        due_date=NOW + timedelta(days=30),
        settings=ProjectSettings(auto_archive_when_complete=True, max_daily_tasks_from_project=2),
    )
    fetched = repository.get_project(project.id)
    assert fetched == project
    assert fetched.settings.auto_archive_when_complete is True
    assert fetched.settings.max_daily_tasks_from_project == 2


def test_project_views():
    urgent = new_project(title="urgent", priority=1)
    high = new_project(title="high", priority=2)
    new_project(title="normal", priority=3)
    overdue = new_project(title="overdue", priority=4, due_date=NOW - timedelta(days=1))
    new_project(title="finished", due_date=NOW - timedelta(days=1), status="COMPLETED")

    assert [p.id for p in repository.list_high_priority_projects(1, 2)] == [urgent.id, high.id]
    assert [p.id for p in repository.list_overdue_projects(1, NOW)] == [overdue.id]
    assert repository.count_projects_by_user(1) == 5
    assert repository.count_projects_by_status(1, "COMPLETED") == 1
    assert len(repository.list_active_projects(1)) == 4


def test_projects_updated_and_created_after():
    old = new_project(title="old", created_at=NOW - timedelta(days=30))
    fresh = new_project(title="fresh", created_at=NOW)

    cutoff = NOW - timedelta(days=7)
    assert [p.id for p in repository.list_projects_created_after(1, cutoff)] == [fresh.id]

    old.updated_at = NOW
    repository.update_project(old)
    assert {p.id for p in repository.list_projects_updated_after(1, cutoff)} == {old.id, fresh.id}


def test_delete_project_keeps_its_tasks():
    project = new_project()
    task = new_task(project_id=project.id)
    repository.delete_project(project.id)

    assert repository.get_project(project.id) is None
    assert repository.get_task(task.id).project_id == project.id

    with pytest.raises(ProjectNotFoundError):
        repository.delete_project(project.id)


# --- Users ---


def test_user_round_trip_and_lookups():
    user = repository.create_user(
        User(
            email="leia@alderaan.org",
            first_name="Leia",
            external_id="oauth|leia",
            created_at=NOW,
            preferences=UserPreferences(timezone="Europe/Berlin", max_daily_tasks=4),
        )
    )
    assert repository.get_user(user.id) == user
    assert repository.get_user_by_email("leia@alderaan.org").id == user.id
    assert repository.get_user_by_external_id("oauth|leia").id == user.id
    assert user.preferences.timezone == "Europe/Berlin"
    assert user.preferences.max_daily_tasks == 4


def test_duplicate_email_violates_unique_constraint():
    repository.create_user(User(email="han@falcon.net", created_at=NOW))
    with pytest.raises(sqlite3.IntegrityError):
        repository.create_user(User(email="han@falcon.net", created_at=NOW))


def test_user_lists_and_counts():
    active = repository.create_user(
        User(email="a@x.org", created_at=NOW, last_login_at=NOW - timedelta(days=40))
    )
    inactive = repository.create_user(User(email="b@x.org", created_at=NOW - timedelta(days=90), active=False))

    assert [u.id for u in repository.list_active_users()] == [active.id]
    assert repository.count_users() == 2
    assert repository.count_active_users() == 1
    assert [u.id for u in repository.list_users_last_login_before(NOW - timedelta(days=30))] == [active.id]
    assert [u.id for u in repository.list_users_created_after(NOW - timedelta(days=7))] == [active.id]

    repository.delete_user(inactive.id)
    assert repository.get_user(inactive.id) is None
    with pytest.raises(UserNotFoundError):
        repository.delete_user(inactive.id)
