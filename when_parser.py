# when_parser.py
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

ERROR_REQUIRED = "Required"
ERROR_PAST = "Time must be now or later"
ERROR_LEGACY_FORMAT = "Format is 2026/06/23 10:00"
ERROR_MONTH = "Month must be 01-12"
ERROR_DAY = "Day must be 01-31"
ERROR_HOUR = "Hour must be 00-23"
ERROR_MINUTE = "Minute must be 00-59"
ERROR_INVALID_DATE = "Invalid date"

ERROR_TIME_MISSING = (
    "Please include a time (e.g., 'tomorrow 9am' or 'tomorrow 21:00')."
)
ERROR_AMPM_REQUIRED = (
    "Please specify AM or PM (e.g., 'tomorrow 9am' or 'tomorrow 9pm')."
)
ERROR_DAY_MISSING = (
    "Please include a day and a time (e.g., 'today 9am' or 'tomorrow 9am')."
)
ERROR_CANNOT_UNDERSTAND = (
    "Couldn't understand. Examples: 'tomorrow 9am', 'in 5 hours', "
    "'2026/01/05 14:00', 'tomorrow 21:00'."
)
ERROR_AMBIGUOUS = (
    "That looks ambiguous. Please be more specific "
    "(add a day/time like 'tomorrow 9am')."
)

_STRICT_LEGACY = re.compile(r"^\d{4}/\d{2}/\d{2} \d{2}:\d{2}$")
_LEGACY = re.compile(r"^(\d{4})/(\d{2})/(\d{2})\s+(\d{2}):(\d{2})$")
_TIME_ONLY = re.compile(r"^(\d{2}):(\d{2})$")
_RELATIVE = re.compile(
    r"^\s*in\s+\d+(\.\d+)?\s+(seconds?|minutes?|hours?|days?|weeks?|months?|years?)\b",
    re.IGNORECASE,
)
# \b does not sit between a digit and a letter, so a digit may precede am/pm.
_MERIDIEM = re.compile(r"(?:\b|\d)(a\.?\s*m\.?|p\.?\s*m\.?)\b", re.IGNORECASE)
_TWO_DIGIT_CLOCK = re.compile(r"\b\d{2}:\d{2}\b")
_CLOCK = re.compile(r"\b(\d{1,2}):(\d{2})\b")
# Month names are left out so "Jan 5" is not read as a time context.
_DAY_KEYWORD = re.compile(
    r"\b(today|tomorrow|tonight|next|this|mon|monday|tue|tues|tuesday|wed|wednesday"
    r"|thu|thur|thurs|thursday|fri|friday|sat|saturday|sun|sunday)\b",
    re.IGNORECASE,
)
_AT = re.compile(r"\bat\b", re.IGNORECASE)
_BARE_NUMBER = re.compile(r"\b\d{1,2}\b")
_DATE_TOKEN = re.compile(r"\b\d{4}[/-]\d{1,2}[/-]\d{1,2}\b")


@dataclass(frozen=True)
class WhenResult:
    ok: bool
    remind_at: Optional[datetime] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, remind_at: datetime) -> "WhenResult":
        return cls(ok=True, remind_at=remind_at)

    @classmethod
    def failure(cls, error: str) -> "WhenResult":
        return cls(ok=False, error=error)


_default_recognizer = None


def _get_default_recognizer():
    global _default_recognizer
    if _default_recognizer is None:
        from recognizer import DateparserRecognizer
        _default_recognizer = DateparserRecognizer()
    return _default_recognizer


# ---------- Token helpers ----------
def _round_to_minute(dt: datetime) -> datetime:
    return dt.replace(second=0, microsecond=0)


def _normalize(raw: str) -> str:
    # "tomorrow9am" -> "tomorrow 9 am", "friday6:30am" -> "friday 6:30 am"
    s = re.sub(r"([a-zA-Z])(\d)", r"\1 \2", raw)
    s = re.sub(r"(\d)([a-zA-Z])", r"\1 \2", s)
    return re.sub(r"\s+", " ", s).strip()


def _is_relative_duration(raw: str) -> bool:
    return _RELATIVE.search(raw) is not None


def _has_meridiem(raw: str) -> bool:
    return _MERIDIEM.search(raw) is not None


def _has_two_digit_clock(raw: str) -> bool:
    return _TWO_DIGIT_CLOCK.search(raw) is not None


def _clock_hour(raw: str) -> Optional[int]:
    m = _CLOCK.search(raw)
    if not m:
        return None
    hh, mm = int(m.group(1)), int(m.group(2))
    if hh > 23 or mm > 59:
        return None
    return hh


def _has_day_keyword(raw: str) -> bool:
    return _DAY_KEYWORD.search(raw) is not None


def _bare_hour(raw: str) -> Optional[int]:
    """A bare 1-2 digit number counts as an hour only next to a day keyword or "at"."""
    if not (_has_day_keyword(raw) or _AT.search(raw)):
        return None

    for m in _BARE_NUMBER.finditer(raw):
        n = int(m.group(0))
        if n > 23:
            continue
        before = raw[m.start() - 1] if m.start() > 0 else ""
        after = raw[m.end()] if m.end() < len(raw) else ""
        # part of 2026/01/05 or 2026-01-05
        if "/" in (before, after) or "-" in (before, after):
            continue
        # part of 6:30
        if ":" in (before, after):
            continue
        return n

    return None


def _has_date_token(raw: str) -> bool:
    return _DATE_TOKEN.search(raw) is not None


def _is_certain(candidate, field: str) -> bool:
    check = getattr(candidate, "is_certain", None)
    if not callable(check):
        return False
    try:
        return bool(check(field))
    except Exception:
        return False


# ---------- Legacy format ----------
def parse_legacy_when(text: str) -> WhenResult:
    """Parse `YYYY/MM/DD HH:mm` without any recognizer involved."""
    s = (text or "").strip()
    if not s:
        return WhenResult.failure(ERROR_REQUIRED)

    m = _LEGACY.match(s)
    if not m:
        return WhenResult.failure(ERROR_LEGACY_FORMAT)

    y, mo, da, hh, mm = (int(g) for g in m.groups())

    if mo < 1 or mo > 12:
        return WhenResult.failure(ERROR_MONTH)
    if da < 1 or da > 31:
        return WhenResult.failure(ERROR_DAY)
    if hh > 23:
        return WhenResult.failure(ERROR_HOUR)
    if mm > 59:
        return WhenResult.failure(ERROR_MINUTE)

    # datetime() refuses 2025/02/31 instead of rolling it into March.
    try:
        dt = datetime(y, mo, da, hh, mm)
    except ValueError:
        return WhenResult.failure(ERROR_INVALID_DATE)

    return WhenResult.success(dt)


def parse_when_lenient(text: str, now: Optional[datetime] = None) -> WhenResult:
    """Legacy format only, plus the past-time check."""
    parsed = parse_legacy_when(text)
    if not parsed.ok:
        return parsed

    now_minute = _round_to_minute(now or datetime.now())
    if parsed.remind_at < now_minute:
        return WhenResult.failure(ERROR_PAST)
    return parsed


# ---------- Strict parser ----------
def _parse_time_only_today(raw: str, now_minute: datetime) -> Optional[WhenResult]:
    m = _TIME_ONLY.match(raw)
    if not m:
        return None

    hh, mm = int(m.group(1)), int(m.group(2))
    if hh > 23 or mm > 59:
        return WhenResult.failure(ERROR_CANNOT_UNDERSTAND)
    return WhenResult.success(now_minute.replace(hour=hh, minute=mm))


def parse_when(text: str, now: Optional[datetime] = None, recognizer=None) -> WhenResult:
    """
    Turn free text like "tomorrow 9am", "in 5 hours", "2026/06/23 10:00" or
    "friday 6:30am" into a reminder time that is not in the past.

    Rules are checked in order and the first one that decides wins: empty
    input, the legacy YYYY/MM/DD HH:mm format, a bare HH:mm meaning today,
    then the recognizer followed by time, day and AM/PM checks. Every
    successful path ends with the past-time check at minute precision.
    """
    raw_input = (text or "").strip()
    if not raw_input:
        return WhenResult.failure(ERROR_REQUIRED)

    raw = _normalize(raw_input)

    now = now or datetime.now()
    now_minute = _round_to_minute(now)

    if _STRICT_LEGACY.match(raw_input):
        legacy = parse_legacy_when(raw_input)
        if not legacy.ok:
            return legacy
        if legacy.remind_at < now_minute:
            return WhenResult.failure(ERROR_PAST)
        return legacy

    time_only = _parse_time_only_today(raw, now_minute)
    if time_only is not None:
        if not time_only.ok:
            return time_only
        if time_only.remind_at < now_minute:
            return WhenResult.failure(ERROR_PAST)
        return time_only

    recognizer = recognizer or _get_default_recognizer()
    candidates = recognizer.recognize(raw, now, forward=True)

    if not candidates:
        return WhenResult.failure(ERROR_CANNOT_UNDERSTAND)
    if len(candidates) > 1:
        return WhenResult.failure(ERROR_AMBIGUOUS)

    candidate = candidates[0]

    relative = _is_relative_duration(raw)
    has_meridiem = _has_meridiem(raw)
    has_24h = _has_two_digit_clock(raw)
    clock_hour = _clock_hour(raw)
    bare_hour = _bare_hour(raw)

    # The recognizer may keep the reference clock time when none was typed
    # ("tomorrow 9" -> tomorrow at now's hour), so its certainty is not enough.
    time_specified = relative or has_meridiem or clock_hour is not None or bare_hour is not None
    if not time_specified:
        return WhenResult.failure(ERROR_TIME_MISSING)

    day_specified = (
        relative
        or _has_day_keyword(raw)
        or _has_date_token(raw)
        or _is_certain(candidate, "weekday")
    )
    if not day_specified:
        return WhenResult.failure(ERROR_DAY_MISSING)

    if not relative and not has_meridiem and not has_24h:
        if clock_hour is not None and 1 <= clock_hour <= 12:
            return WhenResult.failure(ERROR_AMPM_REQUIRED)

        if bare_hour is not None:
            if 1 <= bare_hour <= 12:
                return WhenResult.failure(ERROR_AMPM_REQUIRED)
            # "tomorrow 21" needs minutes: "tomorrow 21:00"
            return WhenResult.failure(ERROR_TIME_MISSING)

    start = getattr(candidate, "start", None)
    if not isinstance(start, datetime):
        return WhenResult.failure(ERROR_CANNOT_UNDERSTAND)

    remind_at = _round_to_minute(start)
    if remind_at < now_minute:
        return WhenResult.failure(ERROR_PAST)

    return WhenResult.success(remind_at)
