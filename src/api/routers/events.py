import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from api.assistant import AssistantSession
from api.dependencies import get_session
from calendar_assist.models import ClassificationInput, EventCategory

router = APIRouter()
logger = logging.getLogger(__name__)


class OverrideIn(BaseModel):
    title: str
    location: Optional[str] = None
    description: Optional[str] = None
    category: EventCategory
    apply_to_similar: bool = False


class ClassifyIn(BaseModel):
    title: str
    location: Optional[str] = None
    description: Optional[str] = None
    attendees: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)


@router.get("/events")
async def list_events(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    session: AssistantSession = Depends(get_session),
) -> dict:
    events = session.events.list_events(start, end)
    return {"events": [e.model_dump(mode="json") for e in events], "total": len(events)}


@router.post("/overrides")
async def save_override(payload: OverrideIn, session: AssistantSession = Depends(get_session)) -> dict:
    data = ClassificationInput(
        title=payload.title,
        location=payload.location,
        description=payload.description,
    )
    session.classifier.save_override(data, payload.category, apply_to_similar=payload.apply_to_similar)
    return {"status": "saved", "category": payload.category.value}


@router.post("/classify")
async def classify(payload: ClassifyIn, session: AssistantSession = Depends(get_session)) -> dict:
    prediction = await session.classifier.classify(ClassificationInput(**payload.model_dump()))
    return prediction.model_dump(mode="json")
