# actions.py
"""
Task commands used by the UI and the notification screen.

Every command persists through `assistant` and keeps the scheduled
notifications in `reminder` in step with the task list. Destructive
commands (complete, delete, change time) leave an entry on an UndoStack
that can be reverted for a few seconds.
"""
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

import reminder
from assistant import (
    add_days, add_minutes, add_task, complete_task, delete_task, find_task,
    load_important_ids, load_tasks, new_task_id, remind_at_of, restore_task,
    round_to_minute, save_important_ids, save_tasks, to_iso, uncomplete_task,
    update_task,
)
from when_parser import ERROR_CANNOT_UNDERSTAND, ERROR_REQUIRED, parse_when

SNOOZE_MINUTES = 10
UNDO_WINDOW_SECONDS = 5
TASK_NOT_FOUND = "Task not found"
HANDLED_TTL_SECONDS = 24 * 60 * 60
UNDO_LABELS = {"complete": "Completed", "delete": "Deleted", "change_time": "Time changed"}


# ---------- Add ----------
def add_task_from_text(title: str, when_text: str, now: datetime = None) -> Tuple[Optional[dict], Dict[str, str]]:
    """Returns (task, {}) on success, or (None, {field: message})."""
    title = (title or "").strip()
    if not title:
        return None, {"title": ERROR_REQUIRED}

    try:
        parsed = parse_when(when_text, now=now)
    except Exception as e:
        print(f"[actions] Recognizer failed on {when_text!r}: {e}")
        return None, {"when": ERROR_CANNOT_UNDERSTAND}

    if not parsed.ok:
        return None, {"when": parsed.error}

    task = add_task(title, parsed.remind_at, now=now)
    reminder.schedule_task_notification(task, now=now)
    print(f"✅ Added: {title} @ {task['when']}")
    return task, {}


# ---------- Important ----------
def toggle_important(task_id: str) -> List[str]:
    order = load_important_ids()
    if task_id in order:
        order = [x for x in order if x != task_id]
    else:
        order = [task_id] + [x for x in order if x != task_id]
    save_important_ids(order)
    return order

def move_important(task_id: str, direction: int) -> List[str]:
    order = load_important_ids()
    if task_id not in order:
        return order
    idx = order.index(task_id)
    nxt = idx + direction
    if nxt < 0 or nxt >= len(order):
        return order
    order[idx], order[nxt] = order[nxt], order[idx]
    save_important_ids(order)
    return order


# ---------- Undo ----------
@dataclass
class UndoEntry:
    kind: str  # complete | delete | change_time
    task: dict
    was_important: bool = False
    important_index: Optional[int] = None
    new_task_id: Optional[str] = None
    created_at: float = field(default_factory=time.time)

    @property
    def label(self) -> str:
        return UNDO_LABELS.get(self.kind, "Completed")


class UndoStack:
    def __init__(self, window_seconds: float = UNDO_WINDOW_SECONDS):
        self.window_seconds = window_seconds
        self._entries: List[UndoEntry] = []

    def push(self, entry: UndoEntry):
        self._entries.append(entry)

    def _prune(self, now: float = None):
        now = time.time() if now is None else now
        self._entries = [e for e in self._entries if now - e.created_at <= self.window_seconds]

    def peek(self, now: float = None) -> Optional[UndoEntry]:
        self._prune(now)
        return self._entries[-1] if self._entries else None

    def pop(self, now: float = None) -> Optional[UndoEntry]:
        self._prune(now)
        return self._entries.pop() if self._entries else None

    def discard(self, task_id: str):
        self._entries = [e for e in self._entries if e.task.get("id") != task_id]

    def __len__(self):
        return len(self._entries)


def _reschedule(task: dict, now: datetime = None):
    reminder.cancel_for_task(task["id"])
    reminder.schedule_task_notification(task, now=now)

def complete(task_id: str, undo: UndoStack, now: datetime = None) -> Optional[dict]:
    """Toggle completion; only completing is undoable."""
    task = find_task(task_id)
    if task is None:
        return None

    if task.get("completed"):
        updated = uncomplete_task(task_id)
        _reschedule(updated, now)
        undo.discard(task_id)
        return updated

    reminder.cancel_for_task(task_id)
    updated = complete_task(task_id, now=now)
    undo.push(UndoEntry("complete", dict(task)))
    return updated

def delete(task_id: str, undo: UndoStack) -> Optional[dict]:
    order = load_important_ids()
    was_important = task_id in order
    important_index = order.index(task_id) if was_important else None

    reminder.cancel_for_task(task_id)
    removed = delete_task(task_id)
    if removed is None:
        return None

    if was_important:
        save_important_ids([x for x in order if x != task_id])

    undo.push(UndoEntry("delete", removed, was_important, important_index))
    return removed

def undo_last(undo: UndoStack, now: datetime = None) -> Optional[dict]:
    entry = undo.pop()
    if entry is None:
        return None

    task_id = entry.task.get("id")

    if entry.kind == "change_time":
        tasks = [t for t in load_tasks() if t.get("id") != entry.new_task_id]
        restored = {**entry.task, "completed": False}
        restored.pop("completed_at", None)
        tasks = [restored if t.get("id") == task_id else t for t in tasks]
        save_tasks(tasks)

        if entry.was_important:
            order = load_important_ids()
            if entry.new_task_id in order:
                order[order.index(entry.new_task_id)] = task_id
                save_important_ids(order)

        reminder.cancel_for_task(entry.new_task_id)
        _reschedule(restored, now)
        return restored

    if entry.kind == "complete":
        restored = uncomplete_task(task_id)
        if restored is not None:
            _reschedule(restored, now)
        return restored

    if entry.kind == "delete":
        restored = restore_task(entry.task)
        if entry.was_important:
            order = [x for x in load_important_ids() if x != task_id]
            idx = max(0, min(entry.important_index or 0, len(order)))
            order.insert(idx, task_id)
            save_important_ids(order)
        _reschedule(restored, now)
        return restored

    raise ValueError(f"Unknown undo kind: {entry.kind}")


# ---------- Notification actions ----------
@dataclass(frozen=True)
class SnoozeRequest:
    task_id: str
    minutes: int = SNOOZE_MINUTES
    requested_at: float = field(default_factory=time.time)

    @property
    def key(self) -> str:
        return f"snooze:{self.task_id}:{self.requested_at}"


@dataclass(frozen=True)
class SkipTodayRequest:
    task_id: str

    @property
    def key(self) -> str:
        return f"skip_today:{self.task_id}"


@dataclass(frozen=True)
class ChangeTimeRequest:
    task_id: str
    when_text: str
    requested_at: float = field(default_factory=time.time)

    @property
    def key(self) -> str:
        return f"change_time:{self.task_id}:{self.requested_at}"


@dataclass(frozen=True)
class ActionOutcome:
    ok: bool
    task_id: Optional[str] = None
    message: Optional[str] = None


class ActionOrchestrator:
    """Applies notification-tap requests to the task list, once per request."""

    def __init__(self, undo: UndoStack = None):
        self.undo = undo if undo is not None else UndoStack()
        self._handled: Dict[str, float] = {}  # request key -> handled at (epoch seconds)

    def _prune_handled(self, stamp: float):
        self._handled = {k: t for k, t in self._handled.items() if stamp - t < HANDLED_TTL_SECONDS}

    def apply(self, request, now: datetime = None) -> Optional[ActionOutcome]:
        stamp = (now or datetime.now()).timestamp()
        self._prune_handled(stamp)

        key = request.key
        if isinstance(request, SkipTodayRequest):
            # one skip per task per day
            key = f"{key}:{(now or datetime.now()).date().isoformat()}"
        if key in self._handled:
            return None
        self._handled[key] = stamp

        if isinstance(request, ChangeTimeRequest):
            return self._change_time(request, now)
        if isinstance(request, SkipTodayRequest):
            return self._skip_today(request, now)
        if isinstance(request, SnoozeRequest):
            return self._snooze(request, now)
        raise TypeError(f"Unsupported request: {type(request).__name__}")

    def _snooze(self, request: SnoozeRequest, now: datetime = None) -> ActionOutcome:
        task = find_task(request.task_id)
        if task is None:
            return ActionOutcome(False, request.task_id, TASK_NOT_FOUND)

        now = now or datetime.now()
        next_at = round_to_minute(add_minutes(now, request.minutes))
        updated = update_task(task["id"], when=to_iso(next_at))
        _reschedule(updated, now)
        print(f"[actions] Snoozed {task['id']} until {updated['when']}")
        return ActionOutcome(True, task["id"])

    def _skip_today(self, request: SkipTodayRequest, now: datetime = None) -> ActionOutcome:
        task = find_task(request.task_id)
        if task is None:
            return ActionOutcome(False, request.task_id, TASK_NOT_FOUND)

        remind_at = remind_at_of(task, now)
        if remind_at is None:
            return ActionOutcome(False, request.task_id, TASK_NOT_FOUND)

        next_at = round_to_minute(add_days(remind_at, 1))
        updated = update_task(task["id"], when=to_iso(next_at))
        _reschedule(updated, now)
        print(f"[actions] Skipped {task['id']} to {updated['when']}")
        return ActionOutcome(True, task["id"])

    def _change_time(self, request: ChangeTimeRequest, now: datetime = None) -> ActionOutcome:
        old = find_task(request.task_id)
        if old is None:
            return ActionOutcome(False, request.task_id, TASK_NOT_FOUND)

        try:
            parsed = parse_when(request.when_text, now=now)
        except Exception as e:
            print(f"[actions] Recognizer failed on {request.when_text!r}: {e}")
            return ActionOutcome(False, old["id"], ERROR_CANNOT_UNDERSTAND)
        if not parsed.ok:
            return ActionOutcome(False, old["id"], parsed.error)

        now = now or datetime.now()
        replacement = {
            "id": new_task_id(),
            "title": old.get("title", ""),
            "when": to_iso(parsed.remind_at),
            "completed": False,
            "created_at": to_iso(now),
        }
        tasks = [
            {**t, "completed": True, "completed_at": to_iso(now)} if t.get("id") == old["id"] else t
            for t in load_tasks()
        ]
        tasks.append(replacement)

        # the replacement inherits the old task's important slot
        order = load_important_ids()
        was_important = old["id"] in order
        important_index = order.index(old["id"]) if was_important else None
        if was_important:
            order[important_index] = replacement["id"]
            save_important_ids(order)

        reminder.cancel_for_task(old["id"])
        save_tasks(tasks)
        reminder.schedule_task_notification(replacement, now=now)

        self.undo.push(UndoEntry(
            "change_time", dict(old), was_important, important_index, replacement["id"],
        ))
        return ActionOutcome(True, replacement["id"])
