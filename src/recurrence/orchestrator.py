"""
Multi-turn recurring-event flow.

    Idle --(recurrence keyword)--> AwaitingDuration --("<N> weeks")--> Generating --> Idle

The pending context lives on a per-conversation ``RecurrenceSession`` owned by the
caller. Any turn that is neither a recurring request nor a repeat count clears it.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional

from calendar_assist.models import EXTRACTION_DATETIME_FORMAT, EventDraft, PendingRecurringContext
from calendar_assist.results import AssistantResult, Committed, Failure, NeedsClarification
from calendar_assist.settings import AssistSettings
from classification.category_classifier import CategoryClassifier
from extraction.decoders import DecodeStage
from extraction.event_extractor import EventExtractor
from storage.event_store import EventStore
from temporal.resolver import WEEKDAYS, TemporalResolver

logger = logging.getLogger(__name__)

RECURRENCE_KEYWORDS = ("every", "each", "weekly", "daily", "monthly", "recurring", "repeating")
_RECURRENCE = re.compile(r"\b(?:" + "|".join(RECURRENCE_KEYWORDS) + r")\b", re.I)

# "6 weeks", but not "in 6 weeks" / "6 weeks from now" / "6 weeks later"
_REPEAT_COUNT = re.compile(r"(?<!\bin\s)\b(\d+)\s+weeks?\b(?!\s+(?:from\s+now|later)\b)", re.I)

APOLOGY = (
    "I'm sorry, I couldn't find the details for the recurring event. "
    "Please try creating the event again."
)


class RecurrenceState(str, Enum):
    IDLE = "idle"
    AWAITING_DURATION = "awaiting_duration"
    GENERATING = "generating"


class RecurrenceSession:
    """Single pending slot for one conversation."""

    def __init__(self):
        self.pending: Optional[PendingRecurringContext] = None
        self.generating = False

    @property
    def state(self) -> RecurrenceState:
        if self.generating:
            return RecurrenceState.GENERATING
        if self.pending is not None:
            return RecurrenceState.AWAITING_DURATION
        return RecurrenceState.IDLE

    def reset(self) -> None:
        self.pending = None
        self.generating = False


def is_recurring_request(text: str) -> bool:
    return _RECURRENCE.search(text or "") is not None


def parse_repeat_count(text: str) -> Optional[int]:
    m = _REPEAT_COUNT.search(text or "")
    return int(m.group(1)) if m else None


def determine_cadence(text: str) -> str:
    lowered = (text or "").lower()
    for day in WEEKDAYS:
        if day in lowered:
            return f"every {day.capitalize()}"
    if "daily" in lowered or "every day" in lowered:
        return "daily"
    if "weekly" in lowered or "every week" in lowered:
        return "weekly"
    if "monthly" in lowered or "every month" in lowered:
        return "monthly"
    return "weekly"


def cadence_increment(cadence: str) -> timedelta:
    # monthly is stepped weekly here; todo regeneration handles real months
    if cadence == "daily":
        return timedelta(days=1)
    return timedelta(weeks=1)


def duration_question(context: PendingRecurringContext) -> str:
    return (
        f"I can help you create a recurring {context.title} {context.pattern}. "
        "How many weeks would you like this to repeat? "
        'Please reply with a number (e.g., "4 weeks" or "8 weeks").'
    )


class RecurrenceOrchestrator:
    def __init__(
        self,
        extractor: EventExtractor,
        store: EventStore,
        classifier: Optional[CategoryClassifier] = None,
        settings: Optional[AssistSettings] = None,
        resolver: Optional[TemporalResolver] = None,
    ):
        self.extractor = extractor
        self.store = store
        self.classifier = classifier
        self.settings = settings or AssistSettings()
        self.resolver = resolver or TemporalResolver()

    async def handle(
        self,
        session: RecurrenceSession,
        text: str,
        assistant_text: str = "",
        now: Optional[datetime] = None,
    ) -> Optional[AssistantResult]:
        """Result for turns that belong to the recurring flow, None for everything else."""
        count = parse_repeat_count(text)

        if is_recurring_request(text):
            context = await self.begin(session, text, assistant_text, now)
            if count is None:
                return NeedsClarification(question=duration_question(context))
            return await self.complete(session, count)

        if count is not None:
            if session.pending is None:
                return NeedsClarification(question=APOLOGY)
            return await self.complete(session, count)

        if session.pending is not None:
            logger.info(f"Recurring setup for '{session.pending.title}' abandoned")
            session.reset()
        return None

    async def begin(
        self,
        session: RecurrenceSession,
        text: str,
        assistant_text: str = "",
        now: Optional[datetime] = None,
    ) -> PendingRecurringContext:
        now = now or datetime.now()
        decoded = await self.extractor.extract(text, assistant_text, now)
        result = decoded.result

        if decoded.stage == DecodeStage.KEYWORD:
            start = self.resolver.resolve(text, now)
        else:
            start = datetime.strptime(result.datetime, EXTRACTION_DATETIME_FORMAT)

        context = PendingRecurringContext(
            title=result.title,
            start=start,
            location=result.location,
            pattern=determine_cadence(text),
        )
        if session.pending is not None:
            logger.info(f"Replacing pending recurring context '{session.pending.title}'")
        session.pending = context
        logger.info(f"Stored recurring context: {context.title} at {context.start} ({context.pattern})")
        return context

    async def complete(self, session: RecurrenceSession, count: int) -> AssistantResult:
        context = session.pending
        if context is None:
            return NeedsClarification(question=APOLOGY)

        limit = self.settings.max_recurring_occurrences
        if not 1 <= count <= limit:
            return NeedsClarification(
                question=f"Please choose between 1 and {limit} weeks for '{context.title}'."
            )

        session.generating = True
        try:
            events = await self._generate(context, count)
        finally:
            session.reset()

        if not events:
            return Failure(
                message=f"I couldn't save any of the recurring '{context.title}' events.",
                hint="Please try again.",
            )

        message = (
            f'Created {len(events)} recurring "{context.title}" events {context.pattern}! '
            f"I've added {len(events)} events to your calendar starting "
            f"{context.start.strftime('%b %d, %Y at %I:%M %p')}."
        )
        return Committed(events=tuple(events), message=message)

    async def _generate(self, context: PendingRecurringContext, count: int) -> List[EventDraft]:
        template = EventDraft(title=context.title, start=context.start, location=context.location)
        if self.classifier is not None:
            template = await self.classifier.apply(template)

        step = cadence_increment(context.pattern)
        created = []
        for index in range(count):
            event = template.model_copy(update={"start": context.start + index * step})
            try:
                self.store.append_event(event)
            except Exception:
                # one failed write must not stop the remaining occurrences
                logger.exception(f"Failed to save occurrence {index + 1} of '{context.title}'")
                continue
            created.append(event)

        logger.info(f"Created {len(created)}/{count} occurrences of '{context.title}'")
        return created
