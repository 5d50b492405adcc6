"""
Conversation boundary: one free-text message in, one AssistantResult out.

Deterministic paths run first (recurring requests and repeat counts); everything else
goes to the chat model, whose reply decides whether an event was created, should be
suggested, or the turn is just a conversational answer.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from calendar_assist.errors import (
    AmbiguousInputError,
    AssistError,
    ConfigurationError,
    StorageError,
)
from calendar_assist.models import ChatTurn, EventDraft, TodoDraft, naive_local
from calendar_assist.results import (
    AssistantResult,
    Committed,
    Failure,
    NeedsClarification,
    Reply,
)
from calendar_assist.settings import AssistSettings
from classification.category_classifier import CategoryClassifier
from extraction.event_extractor import EMPTY_INPUT_QUESTION, EventExtractor
from extraction.todo_parser import TodoParser
from llm.llm_client import LLMClient
from recurrence.orchestrator import (
    RecurrenceOrchestrator,
    RecurrenceSession,
    is_recurring_request,
    parse_repeat_count,
)
from recurrence.rules import next_occurrence
from storage.event_store import EventStore, InMemoryEventStore
from storage.override_store import OverrideStore
from storage.todo_store import TodoStore

from api.metrics import (
    CLASSIFICATION_SOURCE_TOTAL,
    EVENTS_CREATED_TOTAL,
    TODOS_CREATED_TOTAL,
)

logger = logging.getLogger(__name__)

CREATED_PHRASES = (
    "i have scheduled",
    "i've scheduled",
    "i have added",
    "i've added",
    "i have created",
    "i've created",
    "scheduled for you",
    "added to your calendar",
    "created the event",
)
CONFIRMATION_PHRASES = ("would you like me to", "shall i", "should i")
CONFIRMATION_ACTIONS = ("schedule", "create", "add")

CONNECTION_ISSUE = "AI connection issue. Here's a quick answer:"
HELP_TEXT = (
    "I'm here to help with your calendar. You can ask me to schedule events, "
    "check your availability, or answer questions about your schedule."
)

ASSISTANT_GUIDELINES = """Your capabilities:
- Answer questions about schedules and availability
- Help users find free time slots
- CREATE calendar events directly when requested (you have full calendar access)
- Offer scheduling advice and help reschedule existing events

Event Creation Behavior:
- For clear event requests: directly create the event and confirm with one sentence
- For ambiguous requests: ask for clarification
- Avoid scheduling conflicts with existing events when possible

Response Format:
- Event creation confirmations: "I have scheduled [event] for [date] at [time]." (max 15 words)
- Schedule inquiries: brief, direct answers
- Never provide calendar summaries unless specifically requested"""


def claims_created(reply: str) -> bool:
    lowered = reply.lower()
    return any(p in lowered for p in CREATED_PHRASES)


def asks_confirmation(reply: str) -> bool:
    lowered = reply.lower()
    return any(p in lowered for p in CONFIRMATION_PHRASES) and any(
        a in lowered for a in CONFIRMATION_ACTIONS
    )


def _event_line(event: EventDraft, with_day: bool = False) -> str:
    when = event.start.strftime("%A at %I:%M %p") if with_day else event.start.strftime("%I:%M %p")
    where = f" at {event.location}" if event.location else ""
    joiner = "on" if with_day else "at"
    return f"- {event.title} {joiner} {when}{where}"


def build_calendar_context(events: List[EventDraft], now: datetime) -> str:
    today = now.date()
    tomorrow = today + timedelta(days=1)

    def _on(day):
        return [e for e in events if e.start.date() == day]

    lines = ["=== CURRENT CALENDAR DATA ==="]
    for label, day in (("TODAY", today), ("TOMORROW", tomorrow)):
        found = _on(day)
        header = f"{label} ({day.strftime('%A, %B %d')})"
        if not found:
            lines.append(f"{header}: No events scheduled")
        else:
            lines.append(f"{header}:")
            lines.extend(_event_line(e) for e in found)

    week_end = now + timedelta(days=7)
    rest_of_week = [
        e for e in events
        if now <= e.start <= week_end and e.start.date() not in (today, tomorrow)
    ]
    if rest_of_week:
        lines.append("THIS WEEK:")
        lines.extend(_event_line(e, with_day=True) for e in rest_of_week[:5])

    next_week = [e for e in events if now + timedelta(days=8) <= e.start <= now + timedelta(days=14)]
    if next_week:
        lines.append("NEXT WEEK:")
        lines.extend(_event_line(e, with_day=True) for e in next_week)

    lines.append("=== END CALENDAR DATA ===")
    return "\n".join(lines)


class AssistantSession:
    """Per-conversation state: chat history, pending recurring slot, category overrides."""

    def __init__(
        self,
        llm: Optional[LLMClient] = None,
        event_store: Optional[EventStore] = None,
        todo_store: Optional[TodoStore] = None,
        override_store: Optional[OverrideStore] = None,
        settings: Optional[AssistSettings] = None,
    ):
        self.settings = settings or AssistSettings()
        self.llm = llm or LLMClient()
        self.events = event_store or InMemoryEventStore()
        self.todos = todo_store or TodoStore(path=None)

        self.history: List[ChatTurn] = []
        self.recurrence = RecurrenceSession()

        self.extractor = EventExtractor(self.llm, settings=self.settings)
        self.classifier = CategoryClassifier(self.llm, store=override_store, settings=self.settings)
        self.orchestrator = RecurrenceOrchestrator(
            self.extractor, self.events, classifier=self.classifier, settings=self.settings
        )
        self.todo_parser = TodoParser()

    # -- chat ------------------------------------------------------------------

    def _remember(self, role: str, text: str) -> None:
        self.history.append(ChatTurn(role=role, text=text))

    def system_prompt(self, now: datetime) -> str:
        window_end = now + timedelta(days=15)
        start_of_today = datetime.combine(now.date(), datetime.min.time())
        context = build_calendar_context(self.events.list_events(start_of_today, window_end), now)
        return (
            "You are Calendar Assistant, an AI-powered scheduling helper. "
            f"Today is {now.strftime('%A, %B %d, %Y')} and the current time is {now.strftime('%I:%M %p')}.\n\n"
            f"{context}\n\n{ASSISTANT_GUIDELINES}"
        )

    async def handle_message(self, text: str, now: Optional[datetime] = None) -> AssistantResult:
        now = naive_local(now) or datetime.now()
        if not text or not text.strip():
            return NeedsClarification(question=EMPTY_INPUT_QUESTION)

        prior = self.history[-self.settings.history_window:] if self.settings.history_window > 0 else []
        self._remember("user", text)

        try:
            result = await self._respond(text, prior, now)
        except ConfigurationError as e:
            logger.warning(f"Assistant not configured: {e}")
            result = Failure(message=str(e), hint=e.hint)
        except StorageError as e:
            logger.error(f"Calendar store unavailable: {e}")
            result = Failure(message=str(e), hint=e.hint)

        self._remember("assistant", _result_text(result))
        return result

    async def _respond(self, text: str, prior: List[ChatTurn], now: datetime) -> AssistantResult:
        if (
            is_recurring_request(text)
            or parse_repeat_count(text) is not None
            or self.recurrence.pending is not None
        ):
            result = await self.orchestrator.handle(self.recurrence, text, now=now)
            if result is not None:
                if isinstance(result, Committed):
                    self._count_created(result.events)
                return result

        try:
            reply = await self.llm.generate(text, history=prior, system_prompt=self.system_prompt(now))
        except ConfigurationError:
            raise
        except AssistError as e:
            logger.warning(f"Chat request failed: {e}")
            return Reply(text=f"{CONNECTION_ISSUE} {HELP_TEXT}")

        if claims_created(reply):
            draft = await self._draft_from(text, reply, now)
            if self.settings.auto_schedule:
                return self._commit(draft, message=reply)
            return NeedsClarification(question=reply, suggestion=draft)

        if asks_confirmation(reply):
            draft = await self._draft_from(text, reply, now)
            return NeedsClarification(question=reply, suggestion=draft)

        return Reply(text=reply)

    async def _draft_from(self, text: str, reply: str, now: datetime) -> EventDraft:
        decoded = await self.extractor.extract(text, reply, now)
        draft = await self.classifier.apply(decoded.result.to_draft())
        CLASSIFICATION_SOURCE_TOTAL.labels(source=draft.category_source).inc()
        return draft

    def _commit(self, draft: EventDraft, message: str = "") -> Committed:
        self.events.append_event(draft)
        self._count_created((draft,))
        logger.info(f"Created event '{draft.title}' at {draft.start}")
        return Committed(events=(draft,), message=message or f"Added '{draft.title}' to your calendar.")

    def _count_created(self, events) -> None:
        EVENTS_CREATED_TOTAL.inc(len(events))

    async def confirm_suggestion(self, draft: EventDraft) -> Committed:
        """Commit a previously suggested draft; it is classified if it was never classified."""
        if draft.category is None:
            draft = await self.classifier.apply(draft)
        return self._commit(draft)

    # -- todos -----------------------------------------------------------------

    def add_todo(self, text: str, now: Optional[datetime] = None):
        try:
            todo = self.todo_parser.parse(text, naive_local(now))
        except AmbiguousInputError as e:
            return NeedsClarification(question=e.question)
        self.todos.add(todo)
        TODOS_CREATED_TOTAL.inc()
        return todo

    def complete_todo(self, todo_id: str) -> Tuple[Optional[TodoDraft], Optional[TodoDraft]]:
        """Mark a todo done; a recurring one gets its next instance appended."""
        done = self.todos.complete(todo_id)
        if done is None:
            return None, None
        following = next_occurrence(done)
        if following is not None:
            self.todos.add(following)
            logger.info(f"Scheduled next '{following.title}' for {following.due}")
        return done, following


def _result_text(result: AssistantResult) -> str:
    if isinstance(result, Committed):
        return result.message
    if isinstance(result, NeedsClarification):
        return result.question
    if isinstance(result, Reply):
        return result.text
    return result.message
