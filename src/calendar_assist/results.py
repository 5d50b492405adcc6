from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from calendar_assist.models import EventDraft


@dataclass(frozen=True)
class Committed:
    events: Tuple[EventDraft, ...]
    message: str = ""


@dataclass(frozen=True)
class NeedsClarification:
    question: str
    suggestion: Optional[EventDraft] = None


@dataclass(frozen=True)
class Reply:
    text: str


@dataclass(frozen=True)
class Failure:
    message: str
    hint: str = ""


AssistantResult = Union[Committed, NeedsClarification, Reply, Failure]
