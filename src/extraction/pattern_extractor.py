from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from temporal.resolver import WEEKDAYS

PRIORITY_TIERS = (
    ("urgent", ("urgent", "asap", "emergency", "!!!")),
    ("high", ("important", "high priority", "!!")),
    ("low", ("low priority", "maybe", "someday")),
)
DEFAULT_PRIORITY = "medium"

STOP_WORDS = ("at", "on", "by", "due", "for", "in")

_WEEKDAY_ALT = "|".join(WEEKDAYS)
_TEMPORAL_WORDS = (
    r"today|tomorrow|tonight|next|this|every|morning|afternoon|evening|noon|midnight|"
    + _WEEKDAY_ALT
)

_TAG = re.compile(r"#(\w+)")

# "for|in <phrase>" up to the next stop word, temporal word, time, tag or punctuation
_PROJECT = re.compile(
    r"\b(?:for|in)\s+([a-z0-9][a-z0-9 ]*?)"
    r"(?=\s+(?:" + "|".join(STOP_WORDS) + "|" + _TEMPORAL_WORDS + r")\b"
    r"|\s+\d{1,2}(?::\d{2})?\s*(?:am|pm)\b|\s*[#,.!?;:]|\s*$)",
    re.I,
)
_PROJECT_REJECT = re.compile(r"^(?:\d|the\b|a\b|an\b|(?:" + _TEMPORAL_WORDS + r")\b)", re.I)

_RECURRENCE_CUES = (
    (re.compile(r"\bevery\s+other\s+week\b|\bbi-?weekly\b", re.I), "biweekly"),
    (re.compile(r"\bevery\s+day\b|\bdaily\b", re.I), "daily"),
    (re.compile(r"\bevery\s+month\b|\bmonthly\b", re.I), "monthly"),
    (re.compile(r"\bevery\s+week\b|\bweekly\b", re.I), "weekly"),
    (re.compile(r"\bevery\s+(?:" + _WEEKDAY_ALT + r")\b", re.I), "weekly"),
)

_DURATION = re.compile(
    r"\b(\d{1,3})\s*(min(?:ute)?s?|h(?:ou)?rs?|hours?)\b|\bhalf\s+(?:an\s+)?hour\b", re.I
)

_STOP_WORD_PATTERN = re.compile(r"\b(?:" + "|".join(STOP_WORDS) + r")\b", re.I)
_TRAILING_PUNCT = ",.!?;:"


@dataclass(frozen=True)
class PatternMatch:
    priority: str
    project: Optional[str]
    tags: Tuple[str, ...]
    spans: Tuple[str, ...]
    recurrence: Optional[str] = None
    duration_min: Optional[int] = None


def _find_keyword(text: str, keywords: Iterable[str]) -> Optional[str]:
    lowered = text.lower()
    for keyword in keywords:
        idx = lowered.find(keyword)
        if idx != -1:
            return text[idx:idx + len(keyword)]
    return None


class PatternExtractor:
    """Single-pass keyword/regex extraction of priority, project, tags and cues.

    Every matched fragment is returned in ``spans`` so callers can cut it out of
    the text to build a clean title.
    """

    def extract(self, text: str) -> PatternMatch:
        text = text or ""
        spans = []

        priority, span = self._priority(text)
        if span:
            spans.append(span)

        project, span = self._project(text)
        if span:
            spans.append(span)

        tags = []
        for m in _TAG.finditer(text):
            if m.group(1) not in tags:
                tags.append(m.group(1))
            spans.append(m.group(0))

        recurrence, span = self._recurrence(text)
        if span:
            spans.append(span)

        duration, span = self._duration(text)
        if span:
            spans.append(span)

        return PatternMatch(
            priority=priority,
            project=project,
            tags=tuple(tags),
            spans=tuple(spans),
            recurrence=recurrence,
            duration_min=duration,
        )

    def _priority(self, text: str) -> Tuple[str, Optional[str]]:
        for tier, keywords in PRIORITY_TIERS:
            span = _find_keyword(text, keywords)
            if span is not None:
                return tier, span
        return DEFAULT_PRIORITY, None

    def _project(self, text: str) -> Tuple[Optional[str], Optional[str]]:
        for m in _PROJECT.finditer(text):
            phrase = m.group(1).strip()
            if not phrase or _PROJECT_REJECT.match(phrase):
                continue
            name = " ".join(word.capitalize() for word in phrase.split())
            return name, m.group(0)
        return None, None

    def _recurrence(self, text: str) -> Tuple[Optional[str], Optional[str]]:
        for pattern, frequency in _RECURRENCE_CUES:
            m = pattern.search(text)
            if m:
                return frequency, m.group(0)
        return None, None

    def _duration(self, text: str) -> Tuple[Optional[int], Optional[str]]:
        m = _DURATION.search(text)
        if not m:
            return None, None
        if m.group(1) is None:
            return 30, m.group(0)
        amount = int(m.group(1))
        if m.group(2).lower().startswith("min"):
            return amount, m.group(0)
        return amount * 60, m.group(0)


def _span_pattern(span: str) -> str:
    # "7" must not match inside "17"
    pattern = re.escape(span)
    if re.match(r"\w", span):
        pattern = r"(?<!\w)" + pattern
    if re.search(r"\w$", span):
        pattern += r"(?!\w)"
    return pattern


def clean_title(text: str, spans: Iterable[str]) -> str:
    """Strip matched spans and stop words; an empty result keeps the original text."""
    cleaned = text
    for span in spans:
        if span:
            cleaned = re.sub(_span_pattern(span), " ", cleaned, count=1, flags=re.I)
    cleaned = _STOP_WORD_PATTERN.sub(" ", cleaned)
    cleaned = re.sub(r"\s+", " ", cleaned)
    cleaned = cleaned.strip(_TRAILING_PUNCT + " ")
    return cleaned or text.strip()
