from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional, Set
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


CategorySource = Literal["auto", "manual", "imported", "default"]
Priority = Literal["low", "medium", "high", "urgent"]
Frequency = Literal["daily", "weekly", "biweekly", "monthly", "custom"]

EXTRACTION_DATETIME_FORMAT = "%Y-%m-%d %H:%M"


class EventCategory(str, Enum):
    CLASS = "class"
    FRIENDS = "friends"
    SCHOOL_WORK = "school_work"
    DUE_DATE = "due_date"
    EXAM = "exam"
    PERSONAL = "personal"
    SIGNIFICANT_OTHER = "significant_other"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


def _strip_title(v: str) -> str:
    v2 = v.strip()
    if not v2:
        raise ValueError("title must not be blank")
    return v2


def naive_local(dt: Optional[datetime]) -> Optional[datetime]:
    """Offset-aware datetimes become naive local time; everything stored is naive."""
    if dt is None or dt.tzinfo is None:
        return dt
    return dt.astimezone().replace(tzinfo=None)


class RecurrenceRule(BaseModel):
    frequency: Frequency = "weekly"
    interval: int = Field(1, ge=1)
    end: Optional[datetime] = None
    # only meaningful for frequency == "custom"
    custom_pattern: Optional[str] = None


class EventDraft(BaseModel):
    """An event produced by any extraction path.

    Frozen: once a draft exists it is only changed through ``model_copy(update=...)``.
    """

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., min_length=1)
    start: datetime
    location: str = ""

    category: Optional[EventCategory] = None
    category_confidence: Optional[float] = Field(None, ge=0.0, le=1.0)
    category_source: CategorySource = "default"

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        return _strip_title(v)

    @field_validator("start")
    @classmethod
    def start_is_naive(cls, v: datetime) -> datetime:
        return naive_local(v)

    def with_prediction(self, prediction: "CategoryPrediction") -> "EventDraft":
        return self.model_copy(
            update={
                "category": prediction.category,
                "category_confidence": prediction.confidence,
                "category_source": prediction.source,
            }
        )


class TodoDraft(BaseModel):
    id: str = Field(default_factory=lambda: uuid4().hex)
    title: str = Field(..., min_length=1)
    notes: str = ""
    due: Optional[datetime] = None
    priority: Priority = "medium"
    project: Optional[str] = None
    tags: Set[str] = Field(default_factory=set)
    recurrence: Optional[RecurrenceRule] = None
    completed: bool = False

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        return _strip_title(v)

    @field_validator("due")
    @classmethod
    def due_is_naive(cls, v: Optional[datetime]) -> Optional[datetime]:
        return naive_local(v)


class ExtractionResult(BaseModel):
    """Normalized output of the AI extraction pipeline; converted to an EventDraft before use."""

    title: str = "New Event"
    datetime: str
    location: str = ""

    def to_draft(self) -> EventDraft:
        return EventDraft(
            title=self.title,
            start=datetime.strptime(self.datetime, EXTRACTION_DATETIME_FORMAT),
            location=self.location,
        )


class PendingRecurringContext(BaseModel):
    title: str
    start: datetime
    location: str = ""
    pattern: str = "weekly"


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    text: str


class CategoryPrediction(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: EventCategory
    confidence: float = Field(..., ge=0.0, le=1.0)
    source: CategorySource
    # set when an AI prediction falls under the confidence threshold
    needs_review: bool = False


class ClassificationInput(BaseModel):
    title: str
    location: Optional[str] = None
    description: Optional[str] = None
    attendees: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)

    @classmethod
    def from_event(cls, event: EventDraft) -> "ClassificationInput":
        return cls(title=event.title, location=event.location or None)
