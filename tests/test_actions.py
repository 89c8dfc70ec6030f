"""Tests for task commands, notification actions and undo."""

from datetime import datetime

import actions
import reminder
import when_parser
from actions import (
    ActionOrchestrator, ChangeTimeRequest, SkipTodayRequest, SnoozeRequest,
    UndoEntry, UndoStack,
)
from assistant import find_task, load_important_ids, load_tasks, save_important_ids
from conftest import FakeRecognizer

NOW = datetime(2026, 1, 1, 8, 0, 30)


def _add(title="Call mom", when="2026/01/02 09:00"):
    task, errors = actions.add_task_from_text(title, when, now=NOW)
    assert errors == {}
    return task


def _scheduled_for(task_id):
    return [n for n in reminder.list_scheduled() if n["task_id"] == task_id]


# -- add --


def test_add_task_from_text_schedules_reminder(store):
    task = _add()
    assert task["when"] == "2026-01-02T09:00:00"
    assert load_tasks() == [task]
    assert _scheduled_for(task["id"])[0]["fire_at"] == "2026-01-02T09:00:00"


def test_add_requires_title(store):
    assert actions.add_task_from_text("  ", "2026/01/02 09:00", now=NOW) == (None, {"title": "Required"})


def test_add_reports_parser_error_verbatim(store):
    task, errors = actions.add_task_from_text("Call mom", "2025/02/31 10:00", now=NOW)
    assert task is None
    assert errors == {"when": "Invalid date"}
    assert load_tasks() == []


def test_add_maps_recognizer_failure_to_not_understood(store, monkeypatch):
    monkeypatch.setattr(when_parser, "_default_recognizer", FakeRecognizer(error=RuntimeError("boom")))
    task, errors = actions.add_task_from_text("Call mom", "tomorrow 9am", now=NOW)
    assert task is None
    assert errors == {"when": when_parser.ERROR_CANNOT_UNDERSTAND}


# -- important --


def test_toggle_important_adds_to_front_and_removes(store):
    save_important_ids(["a"])
    assert actions.toggle_important("b") == ["b", "a"]
    assert actions.toggle_important("a") == ["b"]
    assert load_important_ids() == ["b"]


def test_move_important(store):
    save_important_ids(["a", "b", "c"])
    assert actions.move_important("c", -1) == ["a", "c", "b"]
    assert actions.move_important("a", -1) == ["a", "c", "b"]
    assert actions.move_important("missing", 1) == ["a", "c", "b"]


# -- undo stack --


def test_undo_entries_expire():
    undo = UndoStack(window_seconds=5)
    undo.push(UndoEntry("complete", {"id": "t1"}, created_at=100.0))
    assert undo.peek(now=104.0).task["id"] == "t1"
    assert undo.peek(now=106.0) is None
    assert len(undo) == 0


def test_undo_entry_labels():
    assert UndoEntry("complete", {}).label == "Completed"
    assert UndoEntry("delete", {}).label == "Deleted"
    assert UndoEntry("change_time", {}).label == "Time changed"


def test_undo_discard():
    undo = UndoStack()
    undo.push(UndoEntry("complete", {"id": "t1"}))
    undo.push(UndoEntry("delete", {"id": "t2"}))
    undo.discard("t1")
    assert [e.task["id"] for e in undo._entries] == ["t2"]


# -- complete / delete / undo --


def test_complete_cancels_reminder_and_undo_restores(store):
    task = _add()
    undo = UndoStack()

    done = actions.complete(task["id"], undo, now=NOW)
    assert done["completed"] is True
    assert _scheduled_for(task["id"]) == []

    restored = actions.undo_last(undo, now=NOW)
    assert restored["completed"] is False
    assert find_task(task["id"])["completed"] is False
    assert len(_scheduled_for(task["id"])) == 1
    assert actions.undo_last(undo, now=NOW) is None


def test_complete_toggles_back_without_undo_entry(store):
    task = _add()
    undo = UndoStack()
    actions.complete(task["id"], undo, now=NOW)
    actions.complete(task["id"], undo, now=NOW)
    assert find_task(task["id"])["completed"] is False
    assert len(undo) == 0
    assert len(_scheduled_for(task["id"])) == 1


def test_delete_and_undo_restores_important_slot(store):
    a = _add("A")
    b = _add("B")
    c = _add("C")
    save_important_ids([a["id"], b["id"], c["id"]])
    undo = UndoStack()

    removed = actions.delete(b["id"], undo)
    assert removed["id"] == b["id"]
    assert find_task(b["id"]) is None
    assert load_important_ids() == [a["id"], c["id"]]
    assert _scheduled_for(b["id"]) == []

    actions.undo_last(undo, now=NOW)
    assert find_task(b["id"])["completed"] is False
    assert load_important_ids() == [a["id"], b["id"], c["id"]]
    assert len(_scheduled_for(b["id"])) == 1


def test_delete_missing_task(store):
    undo = UndoStack()
    assert actions.delete("missing", undo) is None
    assert len(undo) == 0


# -- notification actions --


def test_snooze_moves_task_ten_minutes_ahead(store):
    task = _add()
    outcome = ActionOrchestrator().apply(SnoozeRequest(task["id"]), now=NOW)
    assert outcome.ok
    assert find_task(task["id"])["when"] == "2026-01-01T08:10:00"
    fires = [n["fire_at"] for n in _scheduled_for(task["id"])]
    assert fires == ["2026-01-01T08:10:00"]


def test_skip_today_moves_to_same_time_tomorrow(store):
    task = _add(when="2026/01/01 09:00")
    outcome = ActionOrchestrator().apply(SkipTodayRequest(task["id"]), now=NOW)
    assert outcome.ok
    assert find_task(task["id"])["when"] == "2026-01-02T09:00:00"


def test_skip_today_is_applied_once_per_day(store):
    task = _add(when="2026/01/01 09:00")
    orchestrator = ActionOrchestrator()
    orchestrator.apply(SkipTodayRequest(task["id"]), now=NOW)
    assert orchestrator.apply(SkipTodayRequest(task["id"]), now=NOW) is None
    assert find_task(task["id"])["when"] == "2026-01-02T09:00:00"


def test_actions_on_missing_task(store):
    orchestrator = ActionOrchestrator()
    for request in (SnoozeRequest("nope"), SkipTodayRequest("nope"), ChangeTimeRequest("nope", "18:40")):
        outcome = orchestrator.apply(request, now=NOW)
        assert outcome == actions.ActionOutcome(False, "nope", "Task not found")


def test_change_time_replaces_task_and_undo_reverts(store):
    old = _add()
    other = _add("Other")
    save_important_ids([other["id"], old["id"]])
    orchestrator = ActionOrchestrator()

    request = ChangeTimeRequest(old["id"], "18:40", requested_at=1.0)
    outcome = orchestrator.apply(request, now=NOW)
    assert outcome.ok
    new_id = outcome.task_id

    new = find_task(new_id)
    assert new["title"] == "Call mom"
    assert new["when"] == "2026-01-01T18:40:00"
    assert find_task(old["id"])["completed"] is True
    assert load_important_ids() == [other["id"], new_id]
    assert _scheduled_for(old["id"]) == []
    assert len(_scheduled_for(new_id)) == 1

    # the same request delivered twice is ignored
    assert orchestrator.apply(request, now=NOW) is None

    actions.undo_last(orchestrator.undo, now=NOW)
    assert find_task(new_id) is None
    assert find_task(old["id"])["completed"] is False
    assert "completed_at" not in find_task(old["id"])
    assert load_important_ids() == [other["id"], old["id"]]
    assert _scheduled_for(new_id) == []
    assert len(_scheduled_for(old["id"])) == 1


def test_change_time_reports_parser_error(store):
    old = _add()
    outcome = ActionOrchestrator().apply(ChangeTimeRequest(old["id"], "07:00"), now=NOW)
    assert outcome == actions.ActionOutcome(False, old["id"], when_parser.ERROR_PAST)
    assert len(load_tasks()) == 1


def test_handled_requests_are_forgotten_after_a_day(store):
    orchestrator = ActionOrchestrator()
    first = SnoozeRequest("nope", requested_at=1.0)
    orchestrator.apply(first, now=NOW)
    orchestrator.apply(SnoozeRequest("nope", requested_at=2.0), now=datetime(2026, 1, 1, 20, 0))
    assert len(orchestrator._handled) == 2

    orchestrator.apply(SnoozeRequest("nope", requested_at=3.0), now=datetime(2026, 1, 2, 9, 0))
    assert first.key not in orchestrator._handled
    assert len(orchestrator._handled) == 2
