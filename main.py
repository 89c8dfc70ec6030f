# main.py
import sys
import threading
import time
from assistant import load_tasks, speak
from reminder import cleanup_orphaned, next_scheduled, resync_notifications, start_reminders

def sync_reminders() -> str:
    """Bring the notification registry in line with the task list and describe it."""
    tasks = load_tasks()
    removed = cleanup_orphaned(tasks)
    added = resync_notifications(tasks)
    upcoming = next_scheduled()
    summary = f"{len(tasks)} task(s), {added} reminder(s) restored, {removed} stale reminder(s) dropped."
    if upcoming:
        summary += f" Next: {upcoming.get('body', 'Task')} at {upcoming['fire_at']}."
    return summary

def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    print("Todo Reminder: background mode.")
    print("• You can open the UI anytime with:  streamlit run ui.py")
    print(f"• {sync_reminders()}")
    if "--sync-only" in argv:
        return

    speak("Todo Reminder started. Reminders are active.")
    t = threading.Thread(target=start_reminders, daemon=True)
    t.start()

    try:
        # CTRL+C to exit
        while True:
            time.sleep(3600)
    except KeyboardInterrupt:
        print("\nShutting down. Bye!")
        speak("Shutting down. Goodbye.")

if __name__ == "__main__":
    main()
