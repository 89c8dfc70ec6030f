# ui.py
import threading
from datetime import datetime

import streamlit as st

import actions
import reminder
from assistant import day_name_short, find_task, format_hm, load_important_ids, load_tasks
from sections import build_home_sections, days_left_until_expire, important_rows

st.set_page_config(page_title="Todo Reminder", page_icon="📝", layout="centered")

# --- Session state ---
if "reminder_thread_started" not in st.session_state:
    st.session_state.reminder_thread_started = False
if "orchestrator" not in st.session_state:
    st.session_state.orchestrator = actions.ActionOrchestrator()
if "errors" not in st.session_state:
    st.session_state.errors = {}

orchestrator = st.session_state.orchestrator
undo = orchestrator.undo

def start_scheduler_bg():
    if not st.session_state.reminder_thread_started:
        t = threading.Thread(target=reminder.start_reminders, daemon=True)
        t.start()
        st.session_state.reminder_thread_started = True

with st.sidebar:
    st.header("⚙️ Controls")
    if st.button("▶ Start Reminder Scheduler"):
        start_scheduler_bg()
        st.success("Reminder scheduler started in the background for this session.")

    st.markdown("---")
    st.caption("Keep this page open if you rely on the scheduler here. "
               "Alternatively, run `python main.py` to keep reminders running without the browser.")

# --- Notification screen (?taskId=...) ---
def go_home():
    st.query_params.clear()
    st.rerun()

def notification_screen(task_id: str):
    st.title("🔔 Reminder")
    task = find_task(task_id)
    if task is None:
        st.write("**(Task not found)**")
        st.caption("This task may have been deleted. Tap \"Got it\" to return.")
    else:
        st.write(f"**{task.get('title') or 'Task'}**")
        st.caption(f"Task ID: {task_id}")

    if st.button("Got it", type="primary"):
        go_home()

    with st.expander("Not now"):
        c1, c2 = st.columns(2)
        with c1:
            if st.button(f"{actions.SNOOZE_MINUTES} min"):
                outcome = orchestrator.apply(actions.SnoozeRequest(task_id))
                if outcome and not outcome.ok:
                    st.toast(outcome.message)
                go_home()
        with c2:
            if st.button("Skip today"):
                outcome = orchestrator.apply(actions.SkipTodayRequest(task_id))
                if outcome and not outcome.ok:
                    st.toast(outcome.message)
                go_home()

        when_text = st.text_input("Change time", placeholder="e.g., 18:40 or tomorrow 9am")
        if st.button("Change"):
            outcome = orchestrator.apply(actions.ChangeTimeRequest(task_id, when_text))
            if outcome and not outcome.ok:
                st.error(outcome.message)
            else:
                go_home()

task_param = st.query_params.get("taskId")
if task_param and task_param.strip():
    notification_screen(task_param.strip())
    st.stop()

# --- Home ---
st.title("📝 Todo Reminder")
now = datetime.now()

with st.form("add_task", clear_on_submit=False):
    title = st.text_input("Task", placeholder="e.g., Call mom")
    when_text = st.text_input("When", placeholder="tomorrow 9am · in 5 hours · 2026/01/05 14:00")
    submitted = st.form_submit_button("➕ Add")

if submitted:
    task, errors = actions.add_task_from_text(title, when_text)
    st.session_state.errors = errors
    if task:
        st.success(f"✅ Added: {task['title']} @ {task['when']}")

for field_name, msg in st.session_state.errors.items():
    st.error(f"{field_name.capitalize()}: {msg}")

if undo.peek():
    entry = undo.peek()
    c1, c2 = st.columns([6, 2])
    c1.info(f"{entry.label}: {entry.task.get('title', '')}")
    if c2.button("↩ Undo"):
        actions.undo_last(undo)
        st.rerun()

tasks = load_tasks()
important_ids = load_important_ids()
sections = build_home_sections(tasks, now)

def task_row(row, key_prefix: str):
    task = row.task
    task_id = task["id"]
    c1, c2, c3, c4 = st.columns([6, 1, 1, 1])
    with c1:
        star = "⭐ " if task_id in important_ids else ""
        st.write(f"{star}**{task.get('title', '')}**")
        caption = f"{day_name_short(row.remind_at)} {format_hm(row.remind_at)}"
        if row.remind_at < now:
            caption += f" · expires in {days_left_until_expire(now, row.remind_at)}d"
        st.caption(caption)
    with c2:
        if st.button("✅", key=f"{key_prefix}_done_{task_id}"):
            actions.complete(task_id, undo)
            st.rerun()
    with c3:
        if st.button("⭐", key=f"{key_prefix}_imp_{task_id}"):
            actions.toggle_important(task_id)
            st.rerun()
    with c4:
        if st.button("🗑️", key=f"{key_prefix}_del_{task_id}"):
            actions.delete(task_id, undo)
            st.rerun()

important = important_rows(tasks, important_ids, now)
if important:
    st.subheader("⭐ Important")
    for row in important:
        task_id = row.task["id"]
        c1, c2, c3 = st.columns([6, 1, 1])
        c1.write(f"**{row.task.get('title', '')}** · {format_hm(row.remind_at)}")
        if c2.button("▲", key=f"up_{task_id}"):
            actions.move_important(task_id, -1)
            st.rerun()
        if c3.button("▼", key=f"down_{task_id}"):
            actions.move_important(task_id, 1)
            st.rerun()

with st.expander(f"Late ({len(sections.late)})", expanded=bool(sections.late)):
    for row in sections.late:
        task_row(row, "late")

with st.expander(f"Today ({len(sections.today)})", expanded=True):
    if not sections.today:
        st.caption("Nothing due today.")
    for row in sections.today:
        task_row(row, "today")

with st.expander(f"Tomorrow ({len(sections.tomorrow)})", expanded=True):
    for row in sections.tomorrow:
        task_row(row, "tomorrow")

week_count = sum(len(v) for v in sections.this_week_by_day.values())
with st.expander(f"This week ({week_count})"):
    for day_key in sorted(sections.this_week_by_day):
        st.markdown(f"**{day_key}**")
        for row in sections.this_week_by_day[day_key]:
            task_row(row, "week")

with st.expander(f"Completed today ({len(sections.completed_today)})"):
    for task in sections.completed_today:
        c1, c2 = st.columns([7, 1])
        c1.write(f"~~{task.get('title', '')}~~")
        if c2.button("↺", key=f"reopen_{task['id']}"):
            actions.complete(task["id"], undo)
            st.rerun()

st.markdown("---")
st.caption("Tip: try 'tomorrow 9am', 'in 5 hours', 'friday 6:30pm' or '2026/01/05 14:00'.")
