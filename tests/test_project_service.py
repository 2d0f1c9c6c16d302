"""
Tests for project operations in the service layer.
"""

from datetime import datetime, timedelta

import pytest

# Path setup handled by conftest.py
from jedi_organizer.core import repository, service
from jedi_organizer.core.exceptions import ProjectNotFoundError, ValidationError
from jedi_organizer.core.models import ProjectDraft, ProjectUpdate, TaskDraft

OWNER = 1
INTRUDER = 2


@pytest.fixture(autouse=True)
def temp_db(monkeypatch, tmp_path):
    """Use temporary database for all tests."""
    db_path = tmp_path / "test_jedi.db"
    monkeypatch.setattr(repository, "DB_PATH", db_path)
    monkeypatch.setattr(repository, "DB_DIR", tmp_path)
    yield db_path


def add(title="Project", user_id=OWNER, **kwargs):
    return service.create_project(ProjectDraft(title=title, **kwargs), user_id)


def test_create_project_defaults():
    project = add("Website")
    assert project.status == "ACTIVE"
    assert project.priority == 3
    assert project.created_at == project.updated_at
    assert project.settings.notifications_enabled is True


@pytest.mark.parametrize("priority", [0, 6])
def test_create_project_priority_out_of_range(priority):
    with pytest.raises(ValidationError) as exc:
        add(priority=priority)
    assert exc.value.code == "PRIORITY_OUT_OF_RANGE"
    assert service.list_user_projects(OWNER) == []


def test_completed_at_set_once_through_storage():
    project = add()
    first = service.complete_project(project.id, OWNER)
    assert first.completed_at is not None

    service.archive_project(project.id, OWNER)
    service.reactivate_project(project.id, OWNER)
    again = service.complete_project(project.id, OWNER)
    assert again.completed_at == first.completed_at
    assert again.updated_at > first.updated_at


def test_status_shortcuts():
    project = add()
    assert service.put_project_on_hold(project.id, OWNER).status == "ON_HOLD"
    assert service.reactivate_project(project.id, OWNER).status == "ACTIVE"
    assert service.archive_project(project.id, OWNER).status == "ARCHIVED"
    assert service.update_project_status(project.id, OWNER, "COMPLETED").status == "COMPLETED"
    with pytest.raises(ValidationError):
        service.update_project_status(project.id, OWNER, "DONE")


def test_update_project_is_all_or_nothing():
    project = add("Before", priority=4)
    with pytest.raises(ValidationError):
        service.update_project(project.id, OWNER, ProjectUpdate(title="After", priority=9))
    stored = service.get_project(project.id, OWNER)
    assert stored.title == "Before"
    assert stored.priority == 4

    updated = service.update_project(project.id, OWNER, ProjectUpdate(title="After", priority=1))
    assert updated.title == "After"
    assert updated.priority == 1
    assert updated.updated_at > project.updated_at


def test_update_project_settings():
    project = add()
    updated = service.update_project_settings(
        project.id, OWNER, auto_archive_when_complete=True, max_daily_tasks_from_project=2
    )
    assert updated.settings.auto_archive_when_complete is True
    assert updated.updated_at > project.updated_at

    stored = service.get_project(project.id, OWNER)
    assert stored.settings.max_daily_tasks_from_project == 2
    assert stored.settings.include_in_weekly_reflection is True

    with pytest.raises(ValidationError) as exc:
        service.update_project_settings(project.id, OWNER, colour="red")
    assert exc.value.code == "UNKNOWN_SETTING"

    with pytest.raises(ValidationError) as exc:
        service.update_project_settings(project.id, OWNER, max_daily_tasks_from_project=0)
    assert exc.value.code == "INVALID_SETTING"


@pytest.mark.parametrize(
    "changes",
    [
        {"notifications_enabled": "nope"},
        {"auto_archive_when_complete": 1},
        {"include_in_weekly_reflection": None},
        {"max_daily_tasks_from_project": True},
    ],
)
def test_update_project_settings_rejects_wrong_types(changes):
    project = add()
    with pytest.raises(ValidationError) as exc:
        service.update_project_settings(project.id, OWNER, **changes)
    assert exc.value.code == "INVALID_SETTING"
    assert service.get_project(project.id, OWNER).settings == project.settings


def test_foreign_and_missing_projects_look_the_same():
    project = add()
    with pytest.raises(ProjectNotFoundError) as foreign:
        service.get_project(project.id, INTRUDER)
    with pytest.raises(ProjectNotFoundError) as missing:
        service.get_project(123456, OWNER)
    assert str(foreign.value) == f"Project {project.id} not found"
    assert str(missing.value) == "Project 123456 not found"

    with pytest.raises(ProjectNotFoundError):
        service.complete_project(project.id, INTRUDER)
    with pytest.raises(ProjectNotFoundError):
        service.delete_project(project.id, INTRUDER)
    assert service.get_project(project.id, OWNER).status == "ACTIVE"


def test_delete_project_leaves_tasks_pointing_at_it():
    project = add()
    task = service.create_task(TaskDraft(title="Child", project_id=project.id), OWNER)

    service.delete_project(project.id, OWNER)
    with pytest.raises(ProjectNotFoundError):
        service.get_project(project.id, OWNER)
    assert service.get_task(task.id, OWNER).project_id == project.id
    assert [t.id for t in service.list_project_tasks(OWNER, project.id)] == [task.id]


def test_project_views():
    yesterday = datetime.now() - timedelta(days=1)
    top = add("Top", priority=1)
    add("Normal", priority=3)
    late = add("Late", priority=5, due_date=yesterday)
    done_late = add("Done late", due_date=yesterday)
    service.complete_project(done_late.id, OWNER)
    paused = add("Paused")
    service.put_project_on_hold(paused.id, OWNER)
    add("Other user's top", priority=1, user_id=INTRUDER)

    assert [p.id for p in service.list_high_priority_projects(OWNER)] == [top.id]
    assert [p.id for p in service.list_overdue_projects(OWNER)] == [late.id]
    assert paused.id not in {p.id for p in service.list_active_projects(OWNER)}
    assert [p.id for p in service.list_projects_by_status(OWNER, "ON_HOLD")] == [paused.id]
    assert len(service.list_user_projects(OWNER)) == 5
    assert [p.id for p in service.search_projects(OWNER, "late")] == [done_late.id, late.id]


def test_recent_project_views():
    project = add()
    assert [p.id for p in service.list_new_projects(OWNER, 1)] == [project.id]
    assert [p.id for p in service.list_recently_updated_projects(OWNER, 1)] == [project.id]

    with pytest.raises(ValidationError) as exc:
        service.list_new_projects(OWNER, -1)
    assert exc.value.code == "INVALID_DAYS"


def test_search_projects_matches_text_as_given():
    add("Death Star plans")
    moon = add("Moon base")

    assert [p.id for p in service.search_projects(OWNER, "n base")] == [moon.id]
    assert service.search_projects(OWNER, "plans ") == []
    with pytest.raises(ValidationError):
        service.search_projects(OWNER, "  ")
