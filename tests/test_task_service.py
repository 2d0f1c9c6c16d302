"""
Tests for task operations in the service layer: lifecycle through storage,
ownership scoping and the derived views.
"""

from datetime import date, datetime, timedelta

import pytest

# Path setup handled by conftest.py
from jedi_organizer.core import repository, service
from jedi_organizer.core.exceptions import TaskNotFoundError, ValidationError
from jedi_organizer.core.models import TaskDraft, TaskReflection, TaskUpdate

OWNER = 1
INTRUDER = 2


@pytest.fixture(autouse=True)
def temp_db(monkeypatch, tmp_path):
    """Use temporary database for all tests."""
    db_path = tmp_path / "test_jedi.db"
    monkeypatch.setattr(repository, "DB_PATH", db_path)
    monkeypatch.setattr(repository, "DB_DIR", tmp_path)
    yield db_path


def add(title="Task", user_id=OWNER, **kwargs):
    return service.create_task(TaskDraft(title=title, **kwargs), user_id)


def test_review_report_scenario():
    """Create, start twice, complete, reflect."""
    before = datetime.now()
    task = add("Review report", energy=3)
    assert task.status == "TODO"
    assert task.id is not None
    assert before <= task.created_at <= datetime.now()

    started = service.start_task(task.id, OWNER)
    assert started.status == "IN_PROGRESS"
    assert started.started_at is not None

    restarted = service.start_task(task.id, OWNER)
    assert restarted.started_at == started.started_at
    assert restarted.updated_at > started.updated_at

    completed = service.complete_task(task.id, OWNER)
    assert completed.status == "COMPLETED"
    assert completed.completed_at is not None

    reflected = service.add_reflection(task.id, OWNER, TaskReflection(satisfaction_rating=4))
    assert reflected.reflection.satisfaction_rating == 4

    stored = service.get_task(task.id, OWNER)
    assert stored.reflection.satisfaction_rating == 4
    assert stored.started_at == started.started_at


def test_invalid_energy_persists_nothing():
    with pytest.raises(ValidationError) as exc:
        add("Too much", energy=7)
    assert exc.value.code == "ENERGY_OUT_OF_RANGE"
    assert service.list_user_tasks(OWNER) == []


def test_create_requires_user():
    with pytest.raises(ValidationError) as exc:
        service.create_task(TaskDraft(title="orphan"), None)
    assert exc.value.code == "MISSING_USER_ID"


def test_updated_at_strictly_increases_through_storage():
    task = add()
    stamps = [task.updated_at]
    for op in (service.start_task, service.wait_task, service.start_task,
               service.complete_task, service.cancel_task):
        stamps.append(op(task.id, OWNER).updated_at)
    assert all(later > earlier for earlier, later in zip(stamps, stamps[1:]))


def test_reflection_on_todo_task_fails_then_succeeds_after_completion():
    task = add()
    with pytest.raises(ValidationError) as exc:
        service.add_reflection(task.id, OWNER, TaskReflection(satisfaction_rating=4))
    assert exc.value.code == "REFLECTION_REQUIRES_COMPLETED"
    assert service.get_task(task.id, OWNER).reflection is None

    service.complete_task(task.id, OWNER)
    task = service.add_reflection(
        task.id, OWNER, TaskReflection(satisfaction_rating=4, what_went_well="Focus")
    )
    assert task.reflection.what_went_well == "Focus"


def test_rejected_update_leaves_stored_task_unchanged():
    task = add("Original", energy=2)
    with pytest.raises(ValidationError):
        service.update_task(task.id, OWNER, TaskUpdate(title="Changed", energy=0))

    stored = service.get_task(task.id, OWNER)
    assert stored.title == "Original"
    assert stored.energy == 2
    assert stored.updated_at == task.updated_at


def test_update_task_partial_and_clear():
    task = add("Plan trip", context="@home", due_date=datetime(2030, 1, 1, 12, 0))
    updated = service.update_task(task.id, OWNER, TaskUpdate(energy=5, context=None))
    assert updated.energy == 5
    assert updated.context is None
    assert updated.due_date == datetime(2030, 1, 1, 12, 0)

    stored = service.get_task(task.id, OWNER)
    assert stored.context is None
    assert stored.energy == 5


def test_generic_transition_and_unknown_status():
    task = add()
    assert service.transition_task(task.id, OWNER, "WAITING").status == "WAITING"
    with pytest.raises(ValidationError) as exc:
        service.transition_task(task.id, OWNER, "FINISHED")
    assert exc.value.code == "INVALID_STATUS"


def test_notes_subtasks_and_schedule_persist():
    task = add()
    service.add_note(task.id, OWNER, "Called Sam")
    service.add_note(task.id, OWNER, "Sam called back")
    service.add_subtask(task.id, OWNER, "Draft email")
    service.schedule_task(task.id, OWNER, date(2026, 6, 1))

    stored = service.get_task(task.id, OWNER)
    assert [n.content for n in stored.notes] == ["Called Sam", "Sam called back"]
    assert stored.subtasks == ["Draft email"]
    assert stored.scheduled_date == date(2026, 6, 1)

    assert service.schedule_task(task.id, OWNER, None).scheduled_date is None


# --- Ownership ---


def test_foreign_and_missing_tasks_look_the_same():
    task = add()
    with pytest.raises(TaskNotFoundError) as foreign:
        service.get_task(task.id, INTRUDER)
    with pytest.raises(TaskNotFoundError) as missing:
        service.get_task(99999, OWNER)

    assert type(foreign.value) is type(missing.value)
    assert str(foreign.value) == f"Task {task.id} not found"
    assert str(missing.value) == "Task 99999 not found"


@pytest.mark.parametrize(
    "call",
    [
        lambda tid: service.start_task(tid, INTRUDER),
        lambda tid: service.complete_task(tid, INTRUDER),
        lambda tid: service.update_task(tid, INTRUDER, TaskUpdate(title="hijack")),
        lambda tid: service.add_note(tid, INTRUDER, "hi"),
        lambda tid: service.schedule_task(tid, INTRUDER, date(2026, 1, 1)),
        lambda tid: service.delete_task(tid, INTRUDER),
    ],
)
def test_mutations_by_other_user_are_not_found(call):
    task = add()
    with pytest.raises(TaskNotFoundError):
        call(task.id)

    stored = service.get_task(task.id, OWNER)
    assert stored.status == "TODO"
    assert stored.title == "Task"
    assert stored.notes == []
    assert stored.updated_at == task.updated_at


def test_delete_task():
    task = add()
    service.delete_task(task.id, OWNER)
    with pytest.raises(TaskNotFoundError):
        service.get_task(task.id, OWNER)


# --- Views ---


def test_list_user_tasks_is_scoped():
    mine = add("mine")
    add("theirs", user_id=INTRUDER)
    assert [t.id for t in service.list_user_tasks(OWNER)] == [mine.id]


def test_overdue_task_disappears_after_completion():
    yesterday = datetime.now() - timedelta(days=1)
    task = add("Pay bill", due_date=yesterday)
    assert [t.id for t in service.list_overdue_tasks(OWNER)] == [task.id]

    service.complete_task(task.id, OWNER)
    assert service.list_overdue_tasks(OWNER) == []


def test_todays_views():
    today = date(2026, 7, 14)
    planned = add("planned", scheduled_date=today)
    loose = add("loose")
    waiting = add("waiting")
    service.wait_task(waiting.id, OWNER)
    add("next week", scheduled_date=today + timedelta(days=7))

    assert [t.id for t in service.list_todays_tasks(OWNER, today)] == [planned.id]
    actionable = {t.id for t in service.list_todays_actionable_tasks(OWNER, today)}
    assert actionable == {planned.id, loose.id}


def test_filter_views():
    low = add("low", energy=1, context="@phone", type="WAITING_FOR", project_id=9)
    high = add("high", energy=5)

    assert [t.id for t in service.list_tasks_by_energy(OWNER, 2)] == [low.id]
    assert [t.id for t in service.list_tasks_by_context(OWNER, "@phone")] == [low.id]
    assert [t.id for t in service.list_tasks_by_type(OWNER, "WAITING_FOR")] == [low.id]
    assert [t.id for t in service.list_project_tasks(OWNER, 9)] == [low.id]
    assert [t.id for t in service.list_unassigned_tasks(OWNER)] == [high.id]
    assert [t.id for t in service.list_tasks_by_status(OWNER, "TODO")] == [high.id, low.id]

    with pytest.raises(ValidationError):
        service.list_tasks_by_status(OWNER, "DONE")
    with pytest.raises(ValidationError):
        service.list_tasks_by_type(OWNER, "CHORE")


def test_views_do_not_touch_updated_at():
    task = add("stable", energy=1)
    service.list_tasks_by_energy(OWNER, 3)
    service.search_tasks(OWNER, "stab")
    service.list_todays_actionable_tasks(OWNER)
    assert service.get_task(task.id, OWNER).updated_at == task.updated_at


def test_reflection_views():
    done = add("done")
    service.complete_task(done.id, OWNER)
    add("open")

    now = datetime.now()
    window = service.list_completed_tasks_for_reflection(OWNER, now - timedelta(days=1), now + timedelta(seconds=1))
    assert [t.id for t in window] == [done.id]
    assert service.list_tasks_with_reflection(OWNER) == []

    service.add_reflection(done.id, OWNER, TaskReflection(satisfaction_rating=2))
    assert [t.id for t in service.list_tasks_with_reflection(OWNER)] == [done.id]

    with pytest.raises(ValidationError) as exc:
        service.list_completed_tasks_for_reflection(OWNER, now, now - timedelta(days=1))
    assert exc.value.code == "INVALID_RANGE"


def test_search_tasks():
    hit = add("Review Report")
    add("Groceries")
    add("report for someone else", user_id=INTRUDER)

    assert [t.id for t in service.search_tasks(OWNER, "REPORT")] == [hit.id]
    with pytest.raises(ValidationError):
        service.search_tasks(OWNER, "   ")


def test_search_matches_text_as_given():
    weekly = add("Weekly report")
    add("Reports archive")

    assert [t.id for t in service.search_tasks(OWNER, " report")] == [weekly.id]
    with pytest.raises(ValidationError):
        service.search_tasks(OWNER, None)
