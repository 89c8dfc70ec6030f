# sections.py
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from assistant import add_days, parse_iso, remind_at_of, to_date_key

EXPIRE_DAYS = 7


@dataclass(frozen=True)
class TaskRow:
    task: dict
    remind_at: datetime
    date_key: str


@dataclass
class HomeSections:
    today_key: str
    tomorrow_key: str
    week_start_key: str
    week_end_key: str
    late: List[TaskRow] = field(default_factory=list)
    today: List[TaskRow] = field(default_factory=list)
    tomorrow: List[TaskRow] = field(default_factory=list)
    this_week_by_day: Dict[str, List[TaskRow]] = field(default_factory=dict)
    completed_today: List[dict] = field(default_factory=list)


# ---------- Week + expiry ----------
def start_of_week_sunday(d: datetime) -> datetime:
    # weekday(): Mon=0 .. Sun=6
    back = (d.weekday() + 1) % 7
    return (d - timedelta(days=back)).replace(hour=0, minute=0, second=0, microsecond=0)

def end_of_week_saturday(d: datetime) -> datetime:
    end = start_of_week_sunday(d) + timedelta(days=6)
    return end.replace(hour=23, minute=59, second=59, microsecond=999999)

def is_expired(now: datetime, remind_at: datetime) -> bool:
    return now > remind_at + timedelta(days=EXPIRE_DAYS)

def days_left_until_expire(now: datetime, remind_at: datetime) -> int:
    days_late = (now - remind_at) // timedelta(days=1)
    return max(EXPIRE_DAYS - days_late, 0)


# ---------- Bucketing ----------
def build_home_sections(tasks: List[dict], now: datetime) -> HomeSections:
    """Split tasks into the Late / Today / Tomorrow / This week / Completed views."""
    sections = HomeSections(
        today_key=to_date_key(now),
        tomorrow_key=to_date_key(add_days(now, 1)),
        week_start_key=to_date_key(start_of_week_sunday(now)),
        week_end_key=to_date_key(end_of_week_saturday(now)),
    )

    rows = []
    for task in tasks:
        remind_at = remind_at_of(task, now)
        if remind_at is None:
            continue
        rows.append(TaskRow(task, remind_at, to_date_key(remind_at)))

    visible = [r for r in rows if not r.task.get("completed") and not is_expired(now, r.remind_at)]
    visible.sort(key=lambda r: r.remind_at)

    for row in visible:
        if row.date_key < sections.today_key:
            sections.late.append(row)
        elif row.date_key == sections.today_key:
            sections.today.append(row)
        elif row.date_key == sections.tomorrow_key:
            sections.tomorrow.append(row)
        elif sections.week_start_key <= row.date_key <= sections.week_end_key:
            sections.this_week_by_day.setdefault(row.date_key, []).append(row)

    completed = []
    for task in tasks:
        if not task.get("completed"):
            continue
        done_at = parse_iso(task.get("completed_at"))
        if done_at is not None and to_date_key(done_at) == sections.today_key:
            completed.append((done_at, task))
    completed.sort(key=lambda pair: pair[0], reverse=True)
    sections.completed_today = [task for _, task in completed]

    return sections


def locate_task(sections: HomeSections, task_id: str) -> Optional[str]:
    """Name of the section a task is visible in, or None."""
    for name in ("late", "today", "tomorrow"):
        if any(r.task.get("id") == task_id for r in getattr(sections, name)):
            return name
    for day_rows in sections.this_week_by_day.values():
        if any(r.task.get("id") == task_id for r in day_rows):
            return "week"
    if any(t.get("id") == task_id for t in sections.completed_today):
        return "completed"
    return None


def important_rows(tasks: List[dict], important_ids: List[str], now: datetime) -> List[TaskRow]:
    by_id = {t.get("id"): t for t in tasks}
    rows = []
    for task_id in important_ids:
        task = by_id.get(task_id)
        if task is None or task.get("completed"):
            continue
        remind_at = remind_at_of(task, now)
        if remind_at is None:
            continue
        rows.append(TaskRow(task, remind_at, to_date_key(remind_at)))
    return rows
