import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from api.assistant import AssistantSession
from api.dependencies import get_session
from api.metrics import REQUESTS_TOTAL
from calendar_assist.errors import StorageError
from calendar_assist.results import NeedsClarification

router = APIRouter()
logger = logging.getLogger(__name__)


class TodoIn(BaseModel):
    text: str
    now: Optional[datetime] = None


@router.post("/todos")
async def create_todo(payload: TodoIn, session: AssistantSession = Depends(get_session)) -> dict:
    try:
        result = session.add_todo(payload.text, now=payload.now)
    except StorageError as e:
        REQUESTS_TOTAL.labels(endpoint="/todos", status="failure").inc()
        raise HTTPException(status_code=503, detail=str(e))
    if isinstance(result, NeedsClarification):
        REQUESTS_TOTAL.labels(endpoint="/todos", status="needs_clarification").inc()
        return {"status": "needs_clarification", "question": result.question}

    REQUESTS_TOTAL.labels(endpoint="/todos", status="created").inc()
    return {"status": "created", "todo": result.model_dump(mode="json")}


@router.get("/todos")
async def list_todos(include_completed: bool = False, session: AssistantSession = Depends(get_session)) -> dict:
    todos = session.todos.list(include_completed=include_completed)
    return {"todos": [t.model_dump(mode="json") for t in todos], "total": len(todos)}


@router.post("/todos/{todo_id}/complete")
async def complete_todo(todo_id: str, session: AssistantSession = Depends(get_session)) -> dict:
    try:
        done, following = session.complete_todo(todo_id)
    except StorageError as e:
        raise HTTPException(status_code=503, detail=str(e))
    if done is None:
        raise HTTPException(status_code=404, detail="Todo not found")

    REQUESTS_TOTAL.labels(endpoint="/todos/complete", status="completed").inc()
    return {
        "status": "completed",
        "todo": done.model_dump(mode="json"),
        "next": following.model_dump(mode="json") if following else None,
    }
