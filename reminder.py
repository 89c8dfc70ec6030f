# reminder.py
import os
import time
import uuid
from datetime import datetime, timedelta
from typing import List, Optional

import schedule
from assistant import (
    load_tasks, notify, parse_iso, read_json_list, remind_at_of,
    round_to_minute, speak, to_iso, write_json_list,
)

NOTIFICATIONS_FILE = os.getenv("TODO_NOTIFICATIONS_FILE", "notifications.json")
CHECK_INTERVAL_MINUTES = 1
REMINDER_TITLE = "Todo Reminder"

# ---------- Scheduled notification registry ----------
def list_scheduled() -> List[dict]:
    return [n for n in read_json_list(NOTIFICATIONS_FILE) if isinstance(n, dict)]

def _save_scheduled(items: List[dict]):
    write_json_list(NOTIFICATIONS_FILE, items)

def schedule_at(fire_at: datetime, title: str, body: str, task_id: str = None) -> str:
    notification_id = uuid.uuid4().hex
    items = list_scheduled()
    items.append({
        "id": notification_id,
        "task_id": task_id,
        "title": title,
        "body": body,
        "fire_at": to_iso(fire_at),
    })
    _save_scheduled(items)
    return notification_id

def schedule_after(seconds: int, title: str, body: str, task_id: str = None, now: datetime = None) -> str:
    now = now or datetime.now()
    return schedule_at(now + timedelta(seconds=seconds), title, body, task_id)

def cancel(notification_id: str) -> bool:
    items = list_scheduled()
    kept = [n for n in items if n.get("id") != notification_id]
    if len(kept) == len(items):
        return False
    _save_scheduled(kept)
    return True

def cancel_for_task(task_id: str) -> int:
    items = list_scheduled()
    kept = [n for n in items if n.get("task_id") != task_id]
    if len(kept) != len(items):
        _save_scheduled(kept)
    return len(items) - len(kept)

def schedule_task_notification(task: dict, now: datetime = None) -> Optional[str]:
    """Schedule the reminder for a task unless it is done or already in the past."""
    if task.get("completed"):
        return None
    now = now or datetime.now()
    remind_at = remind_at_of(task, now)
    if remind_at is None:
        return None
    if remind_at < round_to_minute(now):
        return None
    return schedule_at(remind_at, REMINDER_TITLE, task.get("title", "Task"), task.get("id"))

def cleanup_orphaned(tasks: List[dict]) -> int:
    by_id = {t.get("id"): t for t in tasks}
    items = list_scheduled()
    kept = []
    for n in items:
        task_id = n.get("task_id")
        if task_id:
            task = by_id.get(task_id)
            if task is None or task.get("completed"):
                continue
        kept.append(n)
    if len(kept) != len(items):
        _save_scheduled(kept)
    return len(items) - len(kept)

def resync_notifications(tasks: List[dict], now: datetime = None) -> int:
    """Schedule open, upcoming tasks that have no pending notification."""
    scheduled_ids = {n.get("task_id") for n in list_scheduled()}
    added = 0
    for task in tasks:
        if task.get("id") in scheduled_ids:
            continue
        if schedule_task_notification(task, now=now):
            added += 1
    return added

def next_scheduled() -> Optional[dict]:
    pending = [n for n in list_scheduled() if parse_iso(n.get("fire_at")) is not None]
    return min(pending, key=lambda n: parse_iso(n["fire_at"]), default=None)

# ---------- Delivery ----------
def check_notifications(now: datetime = None) -> List[dict]:
    now = now or datetime.now()
    items = list_scheduled()
    due, pending = [], []
    for n in items:
        fire_at = parse_iso(n.get("fire_at"))
        if fire_at is not None and fire_at <= now:
            due.append(n)
        elif fire_at is not None:
            pending.append(n)
        else:
            print(f"[reminder] Dropping malformed notification: {n.get('id')}")

    if len(pending) != len(items):
        _save_scheduled(pending)

    for n in due:
        msg = n.get("body") or "Task"
        print(f"🔔 {n.get('title', REMINDER_TITLE)}: {msg}")
        notify(n.get("title", REMINDER_TITLE), msg)
        speak(f"Reminder: {msg}")

    return due

def start_reminders():
    print("⏰ Reminder scheduler started (checks every minute).")
    speak("Reminder scheduler started.")

    removed = cleanup_orphaned(load_tasks())
    if removed:
        print(f"[reminder] Cancelled {removed} orphaned notification(s)")

    schedule.every(CHECK_INTERVAL_MINUTES).minutes.do(check_notifications)

    # Also check immediately at startup
    check_notifications()

    while True:
        schedule.run_pending()
        time.sleep(1)

if __name__ == "__main__":
    start_reminders()
