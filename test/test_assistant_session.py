import asyncio
import json
from datetime import datetime

from calendar_assist.errors import AuthMissingError, NetworkError
from calendar_assist.models import EventCategory, EventDraft
from calendar_assist.results import Committed, Failure, NeedsClarification, Reply
from calendar_assist.settings import AssistSettings
from api.assistant import (
    CONNECTION_ISSUE,
    AssistantSession,
    asks_confirmation,
    build_calendar_context,
    claims_created,
)
from extraction.event_extractor import EMPTY_INPUT_QUESTION
from llm.llm_client import LLMClient
from recurrence.orchestrator import APOLOGY

# Wednesday
NOW = datetime(2024, 3, 13, 10, 15)

DINNER = {"title": "Dinner with Sam", "datetime": "2024-03-14 19:00", "location": "Luigi's"}


def _provider(fake_provider_factory, chat, extraction=DINNER, category="friends", confidence=0.85):
    def respond(system, user):
        if system.startswith("You are Calendar Assistant"):
            if isinstance(chat, Exception):
                raise chat
            return chat
        if "Classify this event" in user:
            return json.dumps({"category": category, "confidence": confidence})
        return json.dumps(extraction)
    return fake_provider_factory(respond)


def _session(provider, event_store, **settings):
    return AssistantSession(
        llm=LLMClient(provider=provider),
        event_store=event_store,
        settings=AssistSettings(**settings),
    )


def _chat_calls(provider):
    return [c for c in provider.calls if c["system"].startswith("You are Calendar Assistant")]


def test_created_reply_commits_event(fake_provider_factory, event_store):
    provider = _provider(fake_provider_factory, "I have scheduled Dinner with Sam for tomorrow at 7:00 PM.")
    session = _session(provider, event_store)

    result = asyncio.run(session.handle_message("dinner with Sam tomorrow at 7pm at Luigi's", NOW))

    assert isinstance(result, Committed)
    event = result.events[0]
    assert event.title == "Dinner with Sam"
    assert event.start == datetime(2024, 3, 14, 19, 0)
    assert event.location == "Luigi's"
    assert event.category == EventCategory.FRIENDS
    assert event.category_source == "auto"
    assert event_store.list_events() == [event]


def test_created_reply_without_auto_schedule_is_a_suggestion(fake_provider_factory, event_store):
    provider = _provider(fake_provider_factory, "I've added dinner to your calendar.")
    session = _session(provider, event_store, auto_schedule=False)

    result = asyncio.run(session.handle_message("dinner with Sam tomorrow at 7pm", NOW))

    assert isinstance(result, NeedsClarification)
    assert result.suggestion.title == "Dinner with Sam"
    assert event_store.list_events() == []


def test_confirmation_question_then_confirm(fake_provider_factory, event_store):
    provider = _provider(fake_provider_factory, "Would you like me to schedule dinner tomorrow at 7pm?")
    session = _session(provider, event_store)

    result = asyncio.run(session.handle_message("maybe dinner with Sam tomorrow", NOW))
    assert isinstance(result, NeedsClarification)
    assert result.question.startswith("Would you like me to schedule")
    assert event_store.list_events() == []

    committed = asyncio.run(session.confirm_suggestion(result.suggestion))
    assert isinstance(committed, Committed)
    assert [e.title for e in event_store.list_events()] == ["Dinner with Sam"]


def test_confirm_unclassified_draft_classifies_it(fake_provider_factory, event_store):
    provider = _provider(fake_provider_factory, "", category="exam", confidence=0.9)
    session = _session(provider, event_store)

    committed = asyncio.run(session.confirm_suggestion(EventDraft(title="Midterm", start=NOW)))

    assert committed.events[0].category == EventCategory.EXAM


def test_plain_reply(fake_provider_factory, event_store):
    provider = _provider(fake_provider_factory, "You're free after 3pm today.")
    session = _session(provider, event_store)

    result = asyncio.run(session.handle_message("am I free this afternoon?", NOW))

    assert result == Reply(text="You're free after 3pm today.")
    assert len(provider.calls) == 1


def test_service_error_gives_connection_issue_reply(fake_provider_factory, event_store):
    provider = _provider(fake_provider_factory, NetworkError("timeout"))
    session = _session(provider, event_store)

    result = asyncio.run(session.handle_message("what's on today?", NOW))

    assert isinstance(result, Reply)
    assert result.text.startswith(CONNECTION_ISSUE)


def test_missing_key_is_a_failure_with_hint(fake_provider_factory, event_store):
    provider = _provider(fake_provider_factory, AuthMissingError("OpenRouter", "OPENROUTER_API_KEY"))
    session = _session(provider, event_store)

    result = asyncio.run(session.handle_message("what's on today?", NOW))

    assert isinstance(result, Failure)
    assert "not configured" in result.message
    assert "OPENROUTER_API_KEY" in result.hint


def test_blank_message_is_a_clarification(fake_provider_factory, event_store):
    provider = _provider(fake_provider_factory, "hi")
    session = _session(provider, event_store)

    result = asyncio.run(session.handle_message("   ", NOW))

    assert result == NeedsClarification(question=EMPTY_INPUT_QUESTION)
    assert provider.calls == []


def test_history_window(fake_provider_factory, event_store):
    provider = _provider(fake_provider_factory, "Sure.")
    session = _session(provider, event_store, history_window=2)

    for text in ("one", "two", "three"):
        asyncio.run(session.handle_message(text, NOW))

    calls = _chat_calls(provider)
    assert [len(c["history"]) for c in calls] == [0, 2, 2]
    assert [t.text for t in calls[2]["history"]] == ["two", "Sure."]
    assert len(session.history) == 6


def test_system_prompt_carries_calendar(fake_provider_factory, event_store):
    event_store.append_event(EventDraft(title="Standup", start=datetime(2024, 3, 13, 9, 0)))
    provider = _provider(fake_provider_factory, "One meeting today.")
    session = _session(provider, event_store)

    asyncio.run(session.handle_message("what's on today?", NOW))

    system = _chat_calls(provider)[0]["system"]
    assert "Today is Wednesday, March 13, 2024" in system
    assert "- Standup at 09:00 AM" in system


def test_recurring_flow_runs_before_chat(fake_provider_factory, event_store):
    extraction = {"title": "Lunch", "datetime": "2024-03-19 12:00", "location": ""}
    provider = _provider(fake_provider_factory, "chat should not run", extraction=extraction, category="personal")
    session = _session(provider, event_store)

    first = asyncio.run(session.handle_message("lunch every tuesday", NOW))
    second = asyncio.run(session.handle_message("6 weeks", NOW))

    assert isinstance(first, NeedsClarification)
    assert isinstance(second, Committed)
    assert len(event_store.list_events()) == 6
    assert _chat_calls(provider) == []
    assert session.history[-1].text == second.message


def test_repeat_count_without_context(fake_provider_factory, event_store):
    provider = _provider(fake_provider_factory, "hi")
    session = _session(provider, event_store)

    result = asyncio.run(session.handle_message("6 weeks", NOW))

    assert result == NeedsClarification(question=APOLOGY)
    assert event_store.list_events() == []


def test_abandoned_recurring_context_falls_through_to_chat(fake_provider_factory, event_store):
    extraction = {"title": "Yoga", "datetime": "2024-03-18 07:00", "location": ""}
    provider = _provider(fake_provider_factory, "Nothing else today.", extraction=extraction)
    session = _session(provider, event_store)

    asyncio.run(session.handle_message("yoga every monday", NOW))
    result = asyncio.run(session.handle_message("anything else today?", NOW))

    assert result == Reply(text="Nothing else today.")
    assert session.recurrence.pending is None


def test_todos(fake_provider_factory, event_store):
    session = _session(_provider(fake_provider_factory, "hi"), event_store)

    todo = session.add_todo("water plants every monday at 9am #home", NOW)
    assert todo.title == "water plants"
    assert session.todos.get(todo.id).title == "water plants"

    done, following = session.complete_todo(todo.id)
    assert done.completed is True
    assert following.due == datetime(2024, 3, 25, 9, 0)
    assert following.tags == {"home"}
    assert len(session.todos.list(include_completed=False)) == 1

    assert session.complete_todo("missing") == (None, None)
    assert isinstance(session.add_todo("  ", NOW), NeedsClarification)


def test_reply_heuristics():
    assert claims_created("Great, I've scheduled lunch for Friday.")
    assert not claims_created("You have lunch on Friday.")
    assert asks_confirmation("Should I add it to your calendar?")
    assert not asks_confirmation("Should be sunny tomorrow.")


def test_build_calendar_context():
    events = [
        EventDraft(title="Standup", start=datetime(2024, 3, 13, 9, 0)),
        EventDraft(title="Seminar", start=datetime(2024, 3, 14, 14, 0), location="Hall B"),
        EventDraft(title="Brunch", start=datetime(2024, 3, 16, 11, 0)),
        EventDraft(title="Dentist", start=datetime(2024, 3, 22, 10, 0)),
    ]
    lines = build_calendar_context(events, NOW).splitlines()

    assert lines == [
        "=== CURRENT CALENDAR DATA ===",
        "TODAY (Wednesday, March 13):",
        "- Standup at 09:00 AM",
        "TOMORROW (Thursday, March 14):",
        "- Seminar at 02:00 PM at Hall B",
        "THIS WEEK:",
        "- Brunch on Saturday at 11:00 AM",
        "NEXT WEEK:",
        "- Dentist on Friday at 10:00 AM",
        "=== END CALENDAR DATA ===",
    ]


def test_build_calendar_context_empty():
    text = build_calendar_context([], NOW)
    assert "TODAY (Wednesday, March 13): No events scheduled" in text
    assert "TOMORROW (Thursday, March 14): No events scheduled" in text
