import json
from datetime import datetime

import pytest

from calendar_assist.errors import StorageError
from calendar_assist.models import EventDraft
from storage.event_store import InMemoryEventStore, JsonEventStore


def _event(title, day, hour=9):
    return EventDraft(title=title, start=datetime(2026, 3, day, hour, 0))


@pytest.fixture(params=["memory", "json"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryEventStore()
    return JsonEventStore(path=str(tmp_path / "events.json"))


def test_list_is_sorted_and_half_open(store):
    store.append_event(_event("C", 12))
    store.append_event(_event("A", 10))
    store.append_event(_event("B", 11))

    assert [e.title for e in store.list_events()] == ["A", "B", "C"]
    window = store.list_events(datetime(2026, 3, 10, 9, 0), datetime(2026, 3, 12, 9, 0))
    assert [e.title for e in window] == ["A", "B"]


def test_json_store_persists_across_instances(tmp_path):
    path = str(tmp_path / "events.json")
    JsonEventStore(path=path).append_event(_event("Gym", 10).model_copy(update={"location": "Campus"}))

    events = JsonEventStore(path=path).list_events()
    assert len(events) == 1
    assert events[0].location == "Campus"


def test_json_store_corrupted_file_is_never_overwritten(tmp_path):
    p = tmp_path / "events.json"
    p.write_text("[{broken")
    store = JsonEventStore(path=str(p))

    assert store.list_events() == []
    with pytest.raises(StorageError) as exc:
        store.append_event(_event("Fresh", 10))
    assert str(p) in exc.value.hint
    assert p.read_text() == "[{broken"


def test_json_store_skips_invalid_entries_but_keeps_them(tmp_path):
    p = tmp_path / "events.json"
    p.write_text(json.dumps([
        _event("Keep me", 10).model_dump(mode="json"),
        {"title": "Odd", "start": "2026-03-11T09:00:00", "category": "unknown"},
    ]))
    store = JsonEventStore(path=str(p))

    assert [e.title for e in store.list_events()] == ["Keep me"]

    store.append_event(_event("New", 12))

    raw = json.loads(p.read_text())
    assert [item["title"] for item in raw] == ["Keep me", "Odd", "New"]
    assert raw[1]["category"] == "unknown"
    assert [e.title for e in store.list_events()] == ["Keep me", "New"]


def test_aware_window_bounds_are_compared_as_local_time(store):
    store.append_event(_event("A", 10))
    start = datetime(2026, 3, 10, 0, 0).astimezone()
    end = datetime(2026, 3, 11, 0, 0).astimezone()
    assert [e.title for e in store.list_events(start, end)] == ["A"]
