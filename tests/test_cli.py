"""
Tests for the jedi CLI (typer app driven through CliRunner).
"""

import json

import pytest
from typer.testing import CliRunner

# Path setup handled by conftest.py
from jedi_organizer.cli.main import app
from jedi_organizer.core import repository, users

runner = CliRunner()

LUKE = "luke@tatooine.org"
LEIA = "leia@alderaan.org"
CLEAN_ENV = {"JEDI_USER": "", "JEDI_LOG_FILE": "", "JEDI_LOG_LEVEL": ""}


@pytest.fixture(autouse=True)
def temp_db(monkeypatch, tmp_path):
    """Use temporary database for all tests."""
    db_path = tmp_path / "test_jedi.db"
    monkeypatch.setattr(repository, "DB_PATH", db_path)
    monkeypatch.setattr(repository, "DB_DIR", tmp_path)
    yield db_path


@pytest.fixture
def luke():
    return users.create_user(LUKE, first_name="Luke", last_name="Skywalker")


@pytest.fixture
def leia():
    return users.create_user(LEIA, first_name="Leia")


def jedi(*args, user=LUKE, env=None):
    """Invoke the CLI as `user` (None for no --user)."""
    argv = (["--user", user] if user else []) + list(args)
    return runner.invoke(app, argv, env={**CLEAN_ENV, **(env or {})})


def jedi_json(*args, user=LUKE):
    result = jedi(*args, "--json", user=user)
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


# --- Identity ---


def test_version():
    result = jedi("version", user=None)
    assert result.exit_code == 0
    assert "Jedi Organizer v" in result.output


def test_no_user_selected(luke):
    result = jedi("task", "ls", user=None)
    assert result.exit_code == 1
    assert "No user selected" in result.output


def test_user_from_environment(luke):
    result = jedi("task", "add", "Train", user=None, env={"JEDI_USER": LUKE})
    assert result.exit_code == 0, result.output
    assert "Created task" in result.output


def test_unknown_user():
    result = jedi("task", "ls", user="nobody@nowhere.org")
    assert result.exit_code == 1
    assert "not found" in result.output


# --- Tasks ---


def test_add_and_list_tasks(luke):
    result = jedi("task", "add", "Train", "--context", "@dagobah", "--energy", "5")
    assert result.exit_code == 0, result.output
    assert "Created task" in result.output

    tasks = jedi_json("task", "ls")
    assert len(tasks) == 1
    assert tasks[0]["title"] == "Train"
    assert tasks[0]["context"] == "@dagobah"
    assert tasks[0]["energy"] == 5
    assert tasks[0]["status"] == "TODO"
    assert tasks[0]["user_id"] == luke.id


def test_add_with_invalid_energy_stores_nothing(luke):
    result = jedi("task", "add", "Lift X-wing", "--energy", "7")
    assert result.exit_code == 1
    assert "Energy level must be between 1 and 5" in result.output
    assert jedi_json("task", "ls") == []


def test_lifecycle_through_cli(luke):
    task = jedi_json("task", "add", "Review report")
    task_id = str(task["id"])

    started = jedi_json("task", "start", task_id)[0]
    assert started["status"] == "IN_PROGRESS"
    assert started["started_at"] is not None

    again = jedi_json("task", "start", task_id)[0]
    assert again["started_at"] == started["started_at"]

    early = jedi("task", "reflect", task_id, "--rating", "4")
    assert early.exit_code == 1
    assert "completed tasks" in early.output

    done = jedi_json("task", "done", task_id)[0]
    assert done["status"] == "COMPLETED"
    assert done["completed_at"] is not None

    reflected = jedi_json("task", "reflect", task_id, "--rating", "4", "--well", "Focus")
    assert reflected["reflection"]["satisfaction_rating"] == 4
    assert reflected["reflection"]["what_went_well"] == "Focus"


def test_bulk_done_reports_missing_ids(luke):
    first = jedi_json("task", "add", "One")
    second = jedi_json("task", "add", "Two")

    result = jedi("task", "done", f"{first['id']},{second['id']},999")
    assert result.exit_code == 1
    assert "Task 999 not found" in result.output
    statuses = {t["id"]: t["status"] for t in jedi_json("task", "ls")}
    assert statuses == {first["id"]: "COMPLETED", second["id"]: "COMPLETED"}


def test_other_users_task_is_not_found(luke, leia):
    task = jedi_json("task", "add", "Secret plans", user=LEIA)

    result = jedi("task", "show", str(task["id"]))
    assert result.exit_code == 1
    assert f"Task {task['id']} not found" in result.output

    result = jedi("task", "rm", str(task["id"]), "--yes")
    assert result.exit_code == 1
    assert len(jedi_json("task", "ls", user=LEIA)) == 1


def test_edit_and_clear(luke):
    task = jedi_json("task", "add", "Pack", "--context", "@home", "--due", "2030-01-01")
    task_id = str(task["id"])
    assert task["due_date"].startswith("2030-01-01T23:59")

    edited = jedi_json("task", "edit", task_id, "--title", "Pack bags", "--clear", "context")
    assert edited["title"] == "Pack bags"
    assert edited["context"] is None
    assert edited["due_date"] is not None

    result = jedi("task", "edit", task_id)
    assert result.exit_code == 1
    assert "Nothing to change" in result.output

    result = jedi("task", "edit", task_id, "--clear", "title")
    assert result.exit_code == 1


def test_notes_subtasks_and_show(luke):
    task = jedi_json("task", "add", "Build droid")
    task_id = str(task["id"])
    jedi("task", "note", task_id, "Need parts")
    jedi("task", "subtask", task_id, "Find motivator")

    shown = jedi_json("task", "show", task_id)
    assert [n["content"] for n in shown["notes"]] == ["Need parts"]
    assert shown["subtasks"] == ["Find motivator"]

    result = jedi("task", "show", task_id)
    assert result.exit_code == 0
    assert "Need parts" in result.output
    assert "Find motivator" in result.output


def test_raw_output_keeps_brackets(luke):
    jedi("task", "add", "[urgent] Fix hyperdrive")
    result = jedi("task", "ls", "--raw")
    assert result.exit_code == 0
    assert "[TODO] [urgent] Fix hyperdrive" in result.output


def test_status_and_schedule_commands(luke):
    task = jedi_json("task", "add", "Call Han")
    task_id = str(task["id"])

    assert jedi_json("task", "status", task_id, "waiting")["status"] == "WAITING"
    assert jedi("task", "status", task_id, "DONE").exit_code == 1

    scheduled = jedi_json("task", "schedule", task_id, "2026-11-02")
    assert scheduled["scheduled_date"] == "2026-11-02"
    assert jedi_json("task", "schedule", task_id, "none")["scheduled_date"] is None


def test_ls_filters_combine(luke):
    jedi("task", "add", "Low home", "--energy", "1", "--context", "@home")
    jedi("task", "add", "High home", "--energy", "5", "--context", "@home")
    jedi("task", "add", "Low office", "--energy", "1", "--context", "@office")

    titles = [t["title"] for t in jedi_json("task", "ls", "--max-energy", "2", "--context", "@home")]
    assert titles == ["Low home"]


def test_rm_multiple(luke):
    ids = [str(jedi_json("task", "add", f"T{i}")["id"]) for i in range(3)]
    result = jedi("task", "rm", ",".join(ids[:2]), "--yes")
    assert result.exit_code == 0, result.output
    assert [t["id"] for t in jedi_json("task", "ls")] == [int(ids[2])]


# --- Workflow ---


def test_today_and_search(luke):
    jedi("task", "add", "Meditate", "--scheduled", "today")
    jedi("task", "add", "Spar")
    waiting = jedi_json("task", "add", "Await council")
    jedi("task", "wait", str(waiting["id"]))

    titles = {t["title"] for t in jedi_json("today")}
    assert titles == {"Meditate", "Spar"}
    assert [t["title"] for t in jedi_json("today", "--scheduled")] == ["Meditate"]

    found = jedi_json("search", "SPAR")
    assert [t["title"] for t in found] == ["Spar"]


def test_overdue_and_stats(luke):
    jedi("task", "add", "Late report", "--due", "2020-01-01")
    done = jedi_json("task", "add", "Old done", "--due", "2020-01-01")
    jedi("task", "done", str(done["id"]))

    overdue = jedi_json("overdue")
    assert [t["title"] for t in overdue] == ["Late report"]

    stats = jedi_json("stats")
    assert stats["total"] == 2
    assert stats["completed"] == 1
    assert stats["overdue"] == 1


def test_reflections_lists_recent_completions(luke):
    task = jedi_json("task", "add", "Finish kata")
    jedi("task", "done", str(task["id"]))
    assert [t["title"] for t in jedi_json("reflections")] == ["Finish kata"]
    assert jedi_json("reflections", "--reflected") == []


# --- Projects ---


def test_project_commands(luke):
    project = jedi_json("project", "add", "Rebellion", "--priority", "1")
    project_id = str(project["id"])
    assert project["status"] == "ACTIVE"

    jedi("task", "add", "Steal plans", "--project", project_id)
    tasks = jedi_json("project", "tasks", project_id)
    assert [t["title"] for t in tasks] == ["Steal plans"]

    assert jedi_json("project", "hold", project_id)["status"] == "ON_HOLD"
    assert jedi_json("project", "activate", project_id)["status"] == "ACTIVE"
    completed = jedi_json("project", "complete", project_id)
    assert completed["completed_at"] is not None

    stats = jedi_json("project", "stats")
    assert stats["completed"] == 1
    assert stats["high_priority"] == 1

    settings = jedi_json("project", "settings", project_id, "--no-notifications", "--max-daily", "2")
    assert settings["settings"]["notifications_enabled"] is False
    assert settings["settings"]["max_daily_tasks_from_project"] == 2


def test_project_validation_and_ownership(luke, leia):
    result = jedi("project", "add", "Too urgent", "--priority", "0")
    assert result.exit_code == 1
    assert "Priority must be between 1 and 5" in result.output

    theirs = jedi_json("project", "add", "Leia's", user=LEIA)
    result = jedi("project", "archive", str(theirs["id"]))
    assert result.exit_code == 1
    assert f"Project {theirs['id']} not found" in result.output


def test_project_ls_filters(luke):
    jedi("project", "add", "Top", "--priority", "1")
    paused = jedi_json("project", "add", "Paused", "--priority", "2")
    jedi("project", "hold", str(paused["id"]))
    jedi("project", "add", "Normal")

    assert [p["title"] for p in jedi_json("project", "ls", "--active", "--high")] == ["Top"]
    assert len(jedi_json("project", "ls")) == 3


# --- Users ---


def test_user_add_and_duplicate():
    created = jedi_json("user", "add", "Ben@Kenobi.org", "--first", "Ben", user=None)
    assert created["email"] == "ben@kenobi.org"

    result = jedi("user", "add", "ben@kenobi.org", user=None)
    assert result.exit_code == 1
    assert "already exists" in result.output


def test_user_prefs_and_login(luke):
    prefs = jedi_json("user", "prefs", "--max-daily", "4", "--reminder-hour", "21")
    assert prefs["max_daily_tasks"] == 4
    assert prefs["reflection_reminder_hour"] == 21

    result = jedi("user", "prefs", "--reminder-hour", "25")
    assert result.exit_code == 1

    result = jedi("user", "login")
    assert result.exit_code == 0
    assert users.get_user(luke.id).last_login_at is not None


def test_user_deactivate_and_list(luke, leia):
    result = jedi("user", "deactivate", LEIA, user=None)
    assert result.exit_code == 0
    active = jedi_json("user", "ls", user=None)
    assert [u["email"] for u in active] == [LUKE]

    jedi("user", "reactivate", LEIA, user=None)
    assert len(jedi_json("user", "ls", user=None)) == 2
