from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from calendar_assist.errors import AmbiguousInputError
from calendar_assist.models import RecurrenceRule, TodoDraft
from extraction.pattern_extractor import PatternExtractor, clean_title
from temporal.resolver import TemporalResolver

logger = logging.getLogger(__name__)


class TodoParser:
    """Builds a TodoDraft from one line of free text, without any AI call."""

    def __init__(
        self,
        patterns: Optional[PatternExtractor] = None,
        resolver: Optional[TemporalResolver] = None,
    ):
        self.patterns = patterns or PatternExtractor()
        self.resolver = resolver or TemporalResolver()

    def parse(self, text: str, now: Optional[datetime] = None) -> TodoDraft:
        if not text or not text.strip():
            raise AmbiguousInputError("What would you like to add to your to-do list?")

        now = now or datetime.now()
        match = self.patterns.extract(text)
        resolution = self.resolver.resolve_details(text, now)

        due = None
        if resolution.has_date:
            due = resolution.when
        elif resolution.has_time:
            # a bare time means later today
            due = datetime.combine(now.date(), resolution.when.time())

        recurrence = None
        if match.recurrence:
            recurrence = RecurrenceRule(frequency=match.recurrence)

        spans = list(match.spans) + list(resolution.spans)
        title = clean_title(text, spans)

        todo = TodoDraft(
            title=title,
            due=due,
            priority=match.priority,
            project=match.project,
            tags=set(match.tags),
            recurrence=recurrence,
        )
        logger.info(
            f"Parsed todo '{todo.title}' (priority={todo.priority}, project={todo.project}, "
            f"due={todo.due}, tags={sorted(todo.tags)})"
        )
        return todo
