import logging
import time
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.assistant import AssistantSession
from api.dependencies import get_session
from api.metrics import REQUESTS_TOTAL, REQUEST_LATENCY_SECONDS
from calendar_assist.errors import StorageError
from calendar_assist.models import EventDraft
from calendar_assist.results import (
    AssistantResult,
    Committed,
    Failure,
    NeedsClarification,
    Reply,
)

router = APIRouter()
logger = logging.getLogger(__name__)


class MessageIn(BaseModel):
    text: str
    # reference time; defaults to server time
    now: Optional[datetime] = None


def serialize_result(result: AssistantResult) -> dict:
    if isinstance(result, Committed):
        return {
            "status": "committed",
            "message": result.message,
            "events": [e.model_dump(mode="json") for e in result.events],
        }
    if isinstance(result, NeedsClarification):
        return {
            "status": "needs_clarification",
            "question": result.question,
            "suggestion": result.suggestion.model_dump(mode="json") if result.suggestion else None,
        }
    if isinstance(result, Reply):
        return {"status": "reply", "text": result.text}
    if isinstance(result, Failure):
        return {"status": "failure", "message": result.message, "hint": result.hint}
    raise TypeError(f"Unexpected assistant result: {result!r}")


@router.post("/messages")
async def post_message(
    payload: MessageIn,
    session: AssistantSession = Depends(get_session),
) -> dict:
    start = time.time()
    logger.info(f"Received message: {payload.text[:50]}...")

    result = await session.handle_message(payload.text, now=payload.now)
    body = serialize_result(result)

    REQUESTS_TOTAL.labels(endpoint="/messages", status=body["status"]).inc()
    REQUEST_LATENCY_SECONDS.labels(endpoint="/messages").observe(time.time() - start)
    return body


@router.post("/messages/confirm")
async def confirm_suggestion(
    draft: EventDraft,
    session: AssistantSession = Depends(get_session),
) -> dict:
    start = time.time()
    try:
        result = await session.confirm_suggestion(draft)
    except StorageError as e:
        logger.error(f"Could not save confirmed event: {e}")
        result = Failure(message=str(e), hint=e.hint)
    body = serialize_result(result)

    REQUESTS_TOTAL.labels(endpoint="/messages/confirm", status=body["status"]).inc()
    REQUEST_LATENCY_SECONDS.labels(endpoint="/messages/confirm").observe(time.time() - start)
    return body
