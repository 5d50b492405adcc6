from __future__ import annotations
import json
import re
from datetime import datetime
from typing import Sequence

from calendar_assist.models import EXTRACTION_DATETIME_FORMAT, ChatTurn
from extraction.decoders import keyword_title
from llm.providers.base import LLMProvider
from temporal.resolver import TemporalResolver

_QUOTED = re.compile(r'"([^"]*)"')


class MockProvider(LLMProvider):
    """Offline provider for demos: canned but well-formed answers, no network."""

    name = "Mock"

    async def generate(self, *, system: str, user: str, history: Sequence[ChatTurn] = ()) -> str:
        # Extraction request: echo the quoted user text back as an event
        if "Extract event" in user or "extract event" in user.lower():
            m = _QUOTED.search(user)
            text = m.group(1) if m else user
            when = TemporalResolver().resolve(text, datetime.now())
            return json.dumps({
                "title": keyword_title(text),
                "datetime": when.strftime(EXTRACTION_DATETIME_FORMAT),
                "location": "",
            })

        # Classification request: keyword matching for demo purposes
        if "Classify this event" in user:
            # only the event details, not the category list
            details = user.split("Event Details:", 1)[-1].split("Classification Rules:", 1)[0]
            lower_user = details.lower()
            category = "personal"
            if "exam" in lower_user or "quiz" in lower_user:
                category = "exam"
            elif "lecture" in lower_user or "class" in lower_user:
                category = "class"
            elif "party" in lower_user or "friend" in lower_user:
                category = "friends"
            elif "study" in lower_user or "homework" in lower_user:
                category = "school_work"

            return json.dumps({
                "category": category,
                "confidence": 0.8,
                "reasoning": "keyword match (mock provider)",
            })

        # Default: conversational answer
        return "I'm running in offline mode. I can still add events if you tell me what and when."
