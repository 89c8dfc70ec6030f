"""Tests for task storage and date helpers."""

import json
from datetime import datetime

import pytest

import assistant
from assistant import (
    add_task, complete_task, delete_task, find_task, load_important_ids,
    load_tasks, remind_at_of, save_important_ids, uncomplete_task, update_task,
)

NOW = datetime(2026, 1, 1, 8, 0, 30)


# -- stores --


def test_missing_store_is_created_empty(store):
    assert load_tasks() == []
    assert json.loads((store["path"] / "tasks.json").read_text()) == []


def test_corrupt_store_reads_as_empty(store, capsys):
    (store["path"] / "tasks.json").write_text("{not json")
    assert load_tasks() == []
    assert "[storage] Warning" in capsys.readouterr().out


def test_add_task_persists_record(store):
    task = add_task("  Call mom ", datetime(2026, 1, 2, 9, 0, 42), now=NOW)
    assert task["title"] == "Call mom"
    assert task["when"] == "2026-01-02T09:00:00"
    assert task["completed"] is False
    assert task["created_at"] == "2026-01-01T08:00:30"
    assert load_tasks() == [task]


def test_add_task_requires_title(store):
    with pytest.raises(ValueError):
        add_task("   ", datetime(2026, 1, 2, 9, 0))


def test_complete_and_uncomplete(store):
    task = add_task("Pay rent", datetime(2026, 1, 2, 9, 0), now=NOW)
    done = complete_task(task["id"], now=NOW)
    assert done["completed"] is True
    assert done["completed_at"] == "2026-01-01T08:00:30"

    reopened = uncomplete_task(task["id"])
    assert reopened["completed"] is False
    assert "completed_at" not in reopened
    assert find_task(task["id"]) == reopened


def test_update_unknown_task_is_noop(store):
    add_task("Pay rent", datetime(2026, 1, 2, 9, 0), now=NOW)
    before = load_tasks()
    assert update_task("missing", title="x") is None
    assert load_tasks() == before


def test_delete_task(store):
    keep = add_task("Keep", datetime(2026, 1, 2, 9, 0), now=NOW)
    drop = add_task("Drop", datetime(2026, 1, 2, 10, 0), now=NOW)
    assert delete_task(drop["id"]) == drop
    assert load_tasks() == [keep]
    assert delete_task(drop["id"]) is None


def test_important_ids_drop_non_strings(store):
    (store["path"] / "important_ids.json").write_text(json.dumps(["a", 3, None, "b"]))
    assert load_important_ids() == ["a", "b"]
    save_important_ids(["c"])
    assert load_important_ids() == ["c"]


# -- remind_at_of --


def test_remind_at_of_iso():
    assert remind_at_of({"when": "2026-01-02T09:00:00"}, NOW) == datetime(2026, 1, 2, 9, 0)


def test_remind_at_of_legacy_keywords():
    assert remind_at_of({"when": "today"}, NOW) == datetime(2026, 1, 1, 8, 0)
    assert remind_at_of({"when": "tomorrow"}, NOW) == datetime(2026, 1, 2, 8, 0)


def test_remind_at_of_garbage():
    assert remind_at_of({"when": "someday"}, NOW) is None
    assert remind_at_of({}, NOW) is None


def test_day_name_short_and_format():
    # 2026-01-01 is a Thursday
    assert assistant.day_name_short(NOW) == "Thu"
    assert assistant.format_hm(NOW) == "08:00"
