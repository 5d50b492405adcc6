"""
Decode cascade for text-completion extraction responses.

Each stage is a pure function ``(text, now) -> Optional[ExtractionResult]``; the stages
are tried in order by ``decode_response`` and the first non-None result wins. The
keyword stage never returns None, so the cascade always produces a result.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Optional, Sequence, Tuple

from calendar_assist.models import EXTRACTION_DATETIME_FORMAT, ExtractionResult, naive_local
from temporal.resolver import TemporalResolver, has_meridiem_time

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New Event"

# first matching format wins
AI_DATETIME_FORMATS = (
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M%z",
    "%m/%d/%Y %H:%M",
    "%d/%m/%Y %H:%M",
)

KEYWORD_TITLES = (
    ("lunch", "Lunch"),
    ("dinner", "Dinner"),
    ("meeting", "Meeting"),
    ("call", "Call"),
)
KEYWORD_DEFAULT_TITLE = "Event"


class DecodeStage(str, Enum):
    JSON = "json"
    STRUCTURED_TEXT = "structured_text"
    KEYWORD = "keyword"


@dataclass(frozen=True)
class Decoded:
    stage: DecodeStage
    result: ExtractionResult


def _format(dt: datetime) -> str:
    return dt.strftime(EXTRACTION_DATETIME_FORMAT)


def _one_hour_from(now: datetime) -> datetime:
    return now + timedelta(hours=1)


def parse_ai_datetime(raw: str, now: datetime) -> Optional[datetime]:
    """Parse a model-supplied datetime string; None when nothing usable was found."""
    value = (raw or "").strip()
    if not value:
        return None

    # "2025-03-14T18:00:00Z"
    candidate = value[:-1] + "+0000" if value.endswith("Z") else value
    for fmt in AI_DATETIME_FORMATS:
        try:
            parsed = datetime.strptime(candidate, fmt)
        except ValueError:
            continue
        return naive_local(parsed)

    if "tomorrow" in value.lower():
        return now + timedelta(days=1)
    return None


def _coerce_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _build(title: str, raw_datetime: str, location: str, now: datetime) -> ExtractionResult:
    when = parse_ai_datetime(raw_datetime, now) or _one_hour_from(now)
    return ExtractionResult(
        title=title or DEFAULT_TITLE,
        datetime=_format(when),
        location=location,
    )


def decode_json(text: str, now: datetime) -> Optional[ExtractionResult]:
    """Parse the outermost ``{...}`` span; prose around it is ignored."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None

    try:
        data = json.loads(text[start:end + 1])
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None

    return _build(
        _coerce_str(data.get("title")),
        _coerce_str(data.get("datetime")),
        _coerce_str(data.get("location")),
        now,
    )


_STRUCTURED_KEYS = ("title", "datetime", "location")


def decode_structured_text(text: str, now: datetime) -> Optional[ExtractionResult]:
    """Recover ``title: X`` / ``datetime: Y`` / ``location: Z`` lines."""
    found = {}
    for line in text.splitlines():
        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip().strip("{}-*\"' ").lower()
        if key in _STRUCTURED_KEYS and key not in found:
            found[key] = value.strip().rstrip(",").strip().strip("\"'")

    if "title" not in found and "datetime" not in found:
        return None

    return _build(found.get("title", ""), found.get("datetime", ""), found.get("location", ""), now)


def keyword_title(text: str) -> str:
    lowered = (text or "").lower()
    for keyword, title in KEYWORD_TITLES:
        if keyword in lowered:
            return title
    return KEYWORD_DEFAULT_TITLE


def decode_keywords(text: str, now: datetime) -> ExtractionResult:
    """Coarse title from a fixed keyword set; a time only for explicit "7pm"-style tokens."""
    if has_meridiem_time(text):
        when = TemporalResolver().resolve(text, now)
    else:
        when = _one_hour_from(now)
    return ExtractionResult(title=keyword_title(text), datetime=_format(when))


Stage = Callable[[str, datetime], Optional[ExtractionResult]]

STAGES: Tuple[Tuple[DecodeStage, Stage], ...] = (
    (DecodeStage.JSON, decode_json),
    (DecodeStage.STRUCTURED_TEXT, decode_structured_text),
)


def decode_response(
    response: str,
    now: datetime,
    source_text: Optional[str] = None,
    stages: Sequence[Tuple[DecodeStage, Stage]] = STAGES,
) -> Decoded:
    """Run the cascade; the keyword stage reads ``source_text`` (the user's words) when given."""
    response = response or ""
    for stage, decoder in stages:
        result = decoder(response, now)
        if result is not None:
            logger.info(f"Extraction decoded via {stage.value}: {result.title} @ {result.datetime}")
            return Decoded(stage=stage, result=result)

    fallback_text = source_text if source_text is not None else response
    result = decode_keywords(fallback_text, now)
    logger.info(f"Extraction fell back to keywords: {result.title} @ {result.datetime}")
    return Decoded(stage=DecodeStage.KEYWORD, result=result)


def keyword_fallback(text: str, now: datetime) -> Decoded:
    return Decoded(stage=DecodeStage.KEYWORD, result=decode_keywords(text, now))
