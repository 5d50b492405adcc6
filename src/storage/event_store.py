from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from calendar_assist.errors import StorageError
from calendar_assist.models import EventDraft, naive_local

logger = logging.getLogger(__name__)


class EventStore(ABC):
    """Narrow persistence interface the assistant core writes through."""

    @abstractmethod
    def list_events(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[EventDraft]:
        """Events with ``start <= event.start < end``; open bounds are unbounded."""
        raise NotImplementedError

    @abstractmethod
    def append_event(self, event: EventDraft) -> None:
        raise NotImplementedError


def _in_range(event: EventDraft, start: Optional[datetime], end: Optional[datetime]) -> bool:
    start, end = naive_local(start), naive_local(end)
    if start is not None and event.start < start:
        return False
    if end is not None and event.start >= end:
        return False
    return True


class InMemoryEventStore(EventStore):
    def __init__(self, events: Optional[List[EventDraft]] = None):
        self._events: List[EventDraft] = list(events or [])

    def list_events(self, start=None, end=None) -> List[EventDraft]:
        found = [e for e in self._events if _in_range(e, start, end)]
        return sorted(found, key=lambda e: e.start)

    def append_event(self, event: EventDraft) -> None:
        self._events.append(event)


class JsonEventStore(EventStore):
    """Events kept as one JSON list.

    Entries that fail validation are skipped when reading but kept in the file;
    a file that cannot be parsed at all is never overwritten.
    """

    def __init__(self, path: str = "data/events.json"):
        self.path = Path(path)

    def _read_raw(self) -> List[dict]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise StorageError(str(self.path), str(e)) from e
        if not isinstance(data, list):
            raise StorageError(str(self.path), "expected a JSON list")
        return data

    def _load(self) -> List[EventDraft]:
        try:
            raw = self._read_raw()
        except StorageError as e:
            logger.warning(f"{e}, listing no events")
            return []

        events = []
        for index, item in enumerate(raw):
            try:
                events.append(EventDraft.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping invalid event #{index} in {self.path}: {e.error_count()} error(s)")
        return events

    def list_events(self, start=None, end=None) -> List[EventDraft]:
        found = [e for e in self._load() if _in_range(e, start, end)]
        return sorted(found, key=lambda e: e.start)

    def append_event(self, event: EventDraft) -> None:
        raw = self._read_raw()
        raw.append(event.model_dump(mode="json"))
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(raw, ensure_ascii=False, indent=2), encoding="utf-8")
