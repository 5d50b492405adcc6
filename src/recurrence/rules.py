from __future__ import annotations

from datetime import datetime
from typing import Optional

from dateutil.relativedelta import relativedelta

from calendar_assist.models import RecurrenceRule, TodoDraft


def step(rule: RecurrenceRule) -> Optional[relativedelta]:
    if rule.frequency == "daily":
        return relativedelta(days=rule.interval)
    if rule.frequency == "weekly":
        return relativedelta(weeks=rule.interval)
    if rule.frequency == "biweekly":
        return relativedelta(weeks=2 * rule.interval)
    if rule.frequency == "monthly":
        return relativedelta(months=rule.interval)
    # custom patterns are free text and are not expanded
    return None


def next_due(due: datetime, rule: RecurrenceRule) -> Optional[datetime]:
    """The following due date, or None when the rule is custom or has ended."""
    delta = step(rule)
    if delta is None:
        return None
    candidate = due + delta
    if rule.end is not None and candidate > rule.end:
        return None
    return candidate


def next_occurrence(todo: TodoDraft) -> Optional[TodoDraft]:
    """Fresh, uncompleted copy of a recurring todo for its next due date."""
    if todo.recurrence is None or todo.due is None:
        return None
    due = next_due(todo.due, todo.recurrence)
    if due is None:
        return None
    return TodoDraft(
        title=todo.title,
        notes=todo.notes,
        due=due,
        priority=todo.priority,
        project=todo.project,
        tags=set(todo.tags),
        recurrence=todo.recurrence,
    )
