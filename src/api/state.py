import os
from typing import Dict, Optional

from api.assistant import AssistantSession
from calendar_assist.settings import AssistSettings
from llm.llm_client import LLMClient
from storage.event_store import EventStore, JsonEventStore
from storage.override_store import OverrideStore
from storage.todo_store import TodoStore

EVENTS_PATH = os.getenv("EVENTS_PATH", "data/events.json")
TODOS_PATH = os.getenv("TODOS_PATH", "data/todos.json")
OVERRIDES_PATH = os.getenv("OVERRIDES_PATH", "data/category_overrides.json")

# One assistant session per conversation id; each owns its history,
# pending recurring context and override map.
sessions: Dict[str, AssistantSession] = {}

# Global instances initialized lazily (tests replace these before the first request)
settings: Optional[AssistSettings] = None
llm_client: Optional[LLMClient] = None
event_store: Optional[EventStore] = None
todo_store: Optional[TodoStore] = None
override_store: Optional[OverrideStore] = None


def get_or_create_session(session_id: str) -> AssistantSession:
    global settings, llm_client, event_store, todo_store, override_store

    if settings is None:
        settings = AssistSettings.from_env()
    if llm_client is None:
        llm_client = LLMClient()
    if event_store is None:
        event_store = JsonEventStore(EVENTS_PATH)
    if todo_store is None:
        todo_store = TodoStore(TODOS_PATH)
    if override_store is None:
        override_store = OverrideStore(OVERRIDES_PATH)

    session = sessions.get(session_id)
    if session is None:
        session = AssistantSession(
            llm=llm_client,
            event_store=event_store,
            todo_store=todo_store,
            override_store=override_store,
            settings=settings,
        )
        sessions[session_id] = session
    return session


def reset() -> None:
    global settings, llm_client, event_store, todo_store, override_store
    sessions.clear()
    settings = None
    llm_client = None
    event_store = None
    todo_store = None
    override_store = None
