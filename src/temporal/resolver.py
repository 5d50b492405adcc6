"""
Deterministic natural-language date/time resolution.

``TemporalResolver.resolve`` never raises: text without any date signal resolves to
tomorrow, and text without any time signal resolves to noon. Date rules are tried
in a fixed order and the first match wins:

1. relative words ("today", "tomorrow", "next week")
2. relative offsets ("3 days from now", "in five days", "a week from now")
3. weekday names, optionally prefixed by "next" (always strictly after today)
4. calendar dates ("march 13", "13th of march", "3/13", "3/13/24")
5. tomorrow

The matched date fragment is cut out of the text before looking for a time, so
"in 5 days" never reads as "at 5".
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

NUMBER_WORDS = {
    "a": 1,
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
    "ten": 10,
}

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

# Bare hours 5-11 are read as AM when any of these appear in the text, PM otherwise.
MORNING_CUES = ("gym", "workout", "exercise", "run", "morning")

DAY_PERIODS = (("morning", 9), ("afternoon", 14), ("evening", 18))
DEFAULT_HOUR = 12

_COUNT = r"\d{1,3}|one|two|three|four|five|six|seven|eight|nine|ten"

_RELATIVE_DAYS = tuple(
    (re.compile(re.escape(word), re.I), days)
    for word, days in (("today", 0), ("tomorrow", 1), ("next week", 7))
)

_OFFSETS = (
    (re.compile(rf"\b({_COUNT})\s+days?\s+from\s+now\b", re.I), 1),
    (re.compile(rf"\b({_COUNT})\s+days?\s+later\b", re.I), 1),
    (re.compile(rf"\bin\s+({_COUNT})\s+days?\b", re.I), 1),
    (re.compile(rf"\b(a|{_COUNT})\s+weeks?\s+from\s+now\b", re.I), 7),
)

_WEEKDAY = re.compile(r"\b(?:(next)\s+)?(" + "|".join(WEEKDAYS) + r")", re.I)

_MONTH = (
    r"(jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|aug(?:ust)?"
    r"|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)"
)
_DAY_OF_MONTH = re.compile(rf"\b(\d{{1,2}})(?:st|nd|rd|th)?\s+of\s+{_MONTH}\b", re.I)
_MONTH_DAY = re.compile(
    rf"\b{_MONTH}\.?\s+(\d{{1,2}})(?:st|nd|rd|th)?\b(?!\s*(?::\d|[ap]m\b))", re.I
)
_NUMERIC_DATE = re.compile(r"\b(\d{1,2})/(\d{1,2})(?:/(\d{4}|\d{2}))?\b")

_MERIDIEM_TIME = re.compile(r"\b(\d{1,2})(?::([0-5]\d))?\s*(am|pm)\b", re.I)
_NOON = re.compile(r"\bnoon\b", re.I)
_MIDNIGHT = re.compile(r"\bmidnight\b", re.I)
_CLOCK_24H = re.compile(r"(?<![:/\d])\b(1[2-9]|2[0-3]|0?[0-4]):([0-5]\d)\b")
_BARE_HOUR = re.compile(
    r"(?<![:/\d#])\b(5|6|7|8|9|10|11)(?::([0-5]\d))?\b"
    r"(?!\s*(?:[ap]m\b|min|hour|hr|day|week|month|year|%))",
    re.I,
)


def has_meridiem_time(text: str) -> bool:
    """True when the text carries an explicit "7pm"-style token."""
    return _MERIDIEM_TIME.search(text or "") is not None


def _count_value(token: str) -> Optional[int]:
    token = token.lower()
    if token.isdigit():
        return int(token)
    return NUMBER_WORDS.get(token)


def _two_digit_year(year: int) -> int:
    return year + 2000 if year < 100 else year


@dataclass(frozen=True)
class Resolution:
    when: datetime
    date_rule: str
    time_rule: str
    spans: Tuple[str, ...] = ()

    @property
    def has_date(self) -> bool:
        return self.date_rule != "default"

    @property
    def has_time(self) -> bool:
        return self.time_rule != "default"


Span = Optional[Tuple[int, int]]


class TemporalResolver:
    """Turns date/time fragments into a concrete datetime relative to ``now``."""

    def resolve(self, text: str, now: Optional[datetime] = None) -> datetime:
        return self.resolve_details(text, now).when

    def resolve_details(self, text: str, now: Optional[datetime] = None) -> Resolution:
        text = text or ""
        now = now or datetime.now()

        day, date_rule, span = self._resolve_date(text, now)
        remaining = text
        spans = []
        if span is not None:
            start, end = span
            spans.append(text[start:end])
            remaining = f"{text[:start]} {text[end:]}"

        clock, time_rule, time_span = self._resolve_time(remaining, text)
        if time_span:
            spans.append(time_span)

        resolution = Resolution(
            when=datetime.combine(day, clock),
            date_rule=date_rule,
            time_rule=time_rule,
            spans=tuple(spans),
        )
        logger.debug(
            "Resolved %r -> %s (date=%s, time=%s)", text, resolution.when, date_rule, time_rule
        )
        return resolution

    # -- dates -----------------------------------------------------------------

    def _resolve_date(self, text: str, now: datetime) -> Tuple[date, str, Span]:
        today = now.date()

        for pattern, days in _RELATIVE_DAYS:
            m = pattern.search(text)
            if m:
                return today + timedelta(days=days), "relative", m.span()

        for pattern, unit in _OFFSETS:
            m = pattern.search(text)
            if m:
                count = _count_value(m.group(1))
                if count is not None:
                    return today + timedelta(days=count * unit), "offset", m.span()

        m = _WEEKDAY.search(text)
        if m:
            target = WEEKDAYS.index(m.group(2).lower())
            ahead = (target - today.weekday()) % 7 or 7
            return today + timedelta(days=ahead), "weekday", m.span()

        found = self._calendar_date(text, today)
        if found is not None:
            return found[0], "calendar", found[1]

        return today + timedelta(days=1), "default", None

    def _calendar_date(self, text: str, today: date) -> Optional[Tuple[date, Tuple[int, int]]]:
        for m in _DAY_OF_MONTH.finditer(text):
            try:
                return date(today.year, MONTHS[m.group(2)[:3].lower()], int(m.group(1))), m.span()
            except ValueError:
                continue

        for m in _MONTH_DAY.finditer(text):
            try:
                return date(today.year, MONTHS[m.group(1)[:3].lower()], int(m.group(2))), m.span()
            except ValueError:
                continue

        for m in _NUMERIC_DATE.finditer(text):
            year = _two_digit_year(int(m.group(3))) if m.group(3) else today.year
            try:
                return date(year, int(m.group(1)), int(m.group(2))), m.span()
            except ValueError:
                continue

        return None

    # -- times -----------------------------------------------------------------

    def _resolve_time(self, remaining: str, full_text: str) -> Tuple[time, str, Optional[str]]:
        for m in _MERIDIEM_TIME.finditer(remaining):
            hour = int(m.group(1))
            if not 1 <= hour <= 12:
                continue
            hour = hour % 12 + (12 if m.group(3).lower() == "pm" else 0)
            return time(hour, int(m.group(2) or 0)), "explicit", m.group(0)

        m = _NOON.search(remaining)
        if m:
            return time(12, 0), "explicit", m.group(0)

        m = _MIDNIGHT.search(remaining)
        if m:
            return time(0, 0), "explicit", m.group(0)

        m = _CLOCK_24H.search(remaining)
        if m:
            return time(int(m.group(1)), int(m.group(2))), "explicit", m.group(0)

        m = _BARE_HOUR.search(remaining)
        if m:
            hour = int(m.group(1))
            lowered = full_text.lower()
            if not any(cue in lowered for cue in MORNING_CUES):
                hour += 12
            return time(hour, int(m.group(2) or 0)), "contextual", m.group(0)

        lowered = remaining.lower()
        for word, hour in DAY_PERIODS:
            idx = lowered.find(word)
            if idx != -1:
                return time(hour, 0), "period", remaining[idx:idx + len(word)]

        return time(DEFAULT_HOUR, 0), "default", None


_default_resolver = TemporalResolver()


def resolve(text: str, now: Optional[datetime] = None) -> datetime:
    return _default_resolver.resolve(text, now)
