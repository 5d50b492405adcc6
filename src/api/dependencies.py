from fastapi import Query

from api import state
from api.assistant import AssistantSession

DEFAULT_SESSION_ID = "default"


def get_session(session_id: str = Query(DEFAULT_SESSION_ID)) -> AssistantSession:
    return state.get_or_create_session(session_id)
