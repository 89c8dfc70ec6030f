import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

import assistant
import reminder


class FakeRecognizer:
    """Stands in for dateparser: returns canned candidates and records calls."""

    def __init__(self, *candidates, error=None):
        self.candidates = list(candidates)
        self.error = error
        self.calls = []

    def recognize(self, text, reference, forward=True):
        self.calls.append((text, reference, forward))
        if self.error is not None:
            raise self.error
        return list(self.candidates)


@pytest.fixture
def store(tmp_path, monkeypatch):
    """Point every JSON store at tmp_path and silence speech/toasts."""
    monkeypatch.setattr(assistant, "TASKS_FILE", str(tmp_path / "tasks.json"))
    monkeypatch.setattr(assistant, "IMPORTANT_FILE", str(tmp_path / "important_ids.json"))
    monkeypatch.setattr(reminder, "NOTIFICATIONS_FILE", str(tmp_path / "notifications.json"))
    notify = MagicMock()
    speak = MagicMock()
    monkeypatch.setattr(reminder, "notify", notify)
    monkeypatch.setattr(reminder, "speak", speak)
    return {"path": tmp_path, "notify": notify, "speak": speak}
