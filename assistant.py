import json
import os
import random
import time
from datetime import datetime, timedelta
from typing import List, Optional

TASKS_FILE = os.getenv("TODO_TASKS_FILE", "tasks.json")
IMPORTANT_FILE = os.getenv("TODO_IMPORTANT_FILE", "important_ids.json")

# ---------- Storage ----------
def _ensure_store(path: str):
    if not os.path.exists(path):
        with open(path, "w") as f:
            f.write("[]")

def read_json_list(path: str) -> list:
    _ensure_store(path)
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        print(f"[storage] Warning: could not read {path} ({e})")
        return []
    return data if isinstance(data, list) else []

def write_json_list(path: str, items: list):
    with open(path, "w") as f:
        json.dump(items, f, indent=4)

def load_tasks() -> List[dict]:
    return [t for t in read_json_list(TASKS_FILE) if isinstance(t, dict)]

def save_tasks(tasks: List[dict]):
    write_json_list(TASKS_FILE, tasks)

def load_important_ids() -> List[str]:
    return [x for x in read_json_list(IMPORTANT_FILE) if isinstance(x, str)]

def save_important_ids(ids: List[str]):
    write_json_list(IMPORTANT_FILE, list(ids))

# ---------- Utilities ----------
def speak(text: str):
    """Offline TTS (pyttsx3). Creates its own engine per call for reliability."""
    try:
        import pyttsx3
        engine = pyttsx3.init()
        engine.say(text)
        engine.runAndWait()
    except Exception as e:
        print(f"[speak] Warning: {e}")

def notify(title: str, message: str):
    """Desktop notification with Windows toast or plyer fallback."""
    try:
        from win10toast import ToastNotifier
        toaster = ToastNotifier()
        toaster.show_toast(title, message, duration=5, threaded=True)
        return
    except Exception:
        pass

    try:
        from plyer import notification
        notification.notify(title=title, message=message, timeout=5)
    except Exception as e:
        print(f"[notify] {title}: {message} (Notification fallback, {e})")

# ---------- Date helpers ----------
def round_to_minute(dt: datetime) -> datetime:
    return dt.replace(second=0, microsecond=0)

def add_minutes(dt: datetime, minutes: int) -> datetime:
    return dt + timedelta(minutes=minutes)

def add_days(dt: datetime, days: int) -> datetime:
    return dt + timedelta(days=days)

def to_date_key(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%d")

def format_hm(dt: datetime) -> str:
    return dt.strftime("%H:%M")

def day_name_short(dt: datetime) -> str:
    return ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")[dt.weekday()]

def to_iso(dt: datetime) -> str:
    return dt.isoformat(timespec="seconds")

def parse_iso(value) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None

def remind_at_of(task: dict, now: datetime = None) -> Optional[datetime]:
    """Resolve a task's `when` field; legacy "today"/"tomorrow" float with now."""
    when = task.get("when")
    now = now or datetime.now()
    if when == "today":
        return round_to_minute(now)
    if when == "tomorrow":
        return round_to_minute(add_days(now, 1))
    return parse_iso(when)

# ---------- Task Management ----------
def new_task_id() -> str:
    return f"{int(time.time() * 1000)}_{random.randint(0, 9999)}"

def find_task(task_id: str, tasks: List[dict] = None) -> Optional[dict]:
    tasks = load_tasks() if tasks is None else tasks
    for task in tasks:
        if str(task.get("id", "")) == task_id:
            return task
    return None

def add_task(title: str, remind_at: datetime, now: datetime = None) -> dict:
    if not title or not title.strip():
        raise ValueError("Task title cannot be empty.")
    if not isinstance(remind_at, datetime):
        raise ValueError("remind_at must be a datetime")

    now = now or datetime.now()
    task = {
        "id": new_task_id(),
        "title": title.strip(),
        "when": to_iso(round_to_minute(remind_at)),
        "completed": False,
        "created_at": to_iso(now),
    }
    tasks = load_tasks()
    tasks.append(task)
    save_tasks(tasks)
    return task

def restore_task(task: dict) -> dict:
    """Put a previously removed task back, un-completed."""
    restored = dict(task)
    restored["completed"] = False
    restored.pop("completed_at", None)
    tasks = [t for t in load_tasks() if t.get("id") != restored.get("id")]
    tasks.append(restored)
    save_tasks(tasks)
    return restored

def update_task(task_id: str, **updates) -> Optional[dict]:
    tasks = load_tasks()
    for i, task in enumerate(tasks):
        if task.get("id") == task_id:
            merged = {**task, **updates}
            # a None value removes the field
            tasks[i] = {k: v for k, v in merged.items() if v is not None}
            save_tasks(tasks)
            return tasks[i]
    return None

def delete_task(task_id: str) -> Optional[dict]:
    tasks = load_tasks()
    removed = None
    kept = []
    for task in tasks:
        if removed is None and task.get("id") == task_id:
            removed = task
        else:
            kept.append(task)
    if removed is not None:
        save_tasks(kept)
    return removed

def complete_task(task_id: str, now: datetime = None) -> Optional[dict]:
    now = now or datetime.now()
    return update_task(task_id, completed=True, completed_at=to_iso(now))

def uncomplete_task(task_id: str) -> Optional[dict]:
    return update_task(task_id, completed=False, completed_at=None)
