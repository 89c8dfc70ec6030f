# recognizer.py
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import FrozenSet, List

import dateparser
from dateparser.search import search_dates

_WEEKDAY = re.compile(
    r"\b(mon|monday|tue|tues|tuesday|wed|wednesday|thu|thur|thurs|thursday"
    r"|fri|friday|sat|saturday|sun|sunday)\b",
    re.IGNORECASE,
)
_DAY = re.compile(
    r"\b(today|tomorrow|tonight|next|this)\b|\b\d{4}[/-]\d{1,2}[/-]\d{1,2}\b",
    re.IGNORECASE,
)
_HOUR = re.compile(
    r"\d:\d{2}|(?:\b|\d)(a\.?\s*m\.?|p\.?\s*m\.?)\b"
    r"|\bin\s+\d+(\.\d+)?\s+(seconds?|minutes?|hours?)\b",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class Candidate:
    """One reading of the text as a date/time, as found by the recognizer."""
    text: str
    start: datetime
    certain: FrozenSet[str] = field(default_factory=frozenset)

    def is_certain(self, name: str) -> bool:
        return name in self.certain


def certain_fields(span: str) -> FrozenSet[str]:
    fields = set()
    if _WEEKDAY.search(span):
        fields.update(("weekday", "day"))
    if _DAY.search(span):
        fields.add("day")
    if _HOUR.search(span):
        fields.add("hour")
    return frozenset(fields)


class DateparserRecognizer:
    """
    English date/time recognition backed by dateparser.

    The whole text is resolved with dateparser.parse first; a hit there is
    one reading. Otherwise search_dates splits the text into spans, and
    each span is resolved again with dateparser.parse. The search_dates
    value is used only when that fails.
    """

    def __init__(self, languages=("en",)):
        self.languages = list(languages)

    def _parse(self, text: str, settings: dict):
        return dateparser.parse(text, languages=self.languages, settings=settings)

    def recognize(self, text: str, reference: datetime, forward: bool = True) -> List[Candidate]:
        settings = {
            "RELATIVE_BASE": reference,
            "PREFER_DATES_FROM": "future" if forward else "current_period",
            "RETURN_AS_TIMEZONE_AWARE": False,
        }
        whole = self._parse(text, settings)
        if whole is not None:
            return [Candidate(text, whole, certain_fields(text))]

        found = search_dates(text, languages=self.languages, settings=settings)
        if not found:
            return []
        return [
            Candidate(span, self._parse(span, settings) or dt, certain_fields(span))
            for span, dt in found
        ]
