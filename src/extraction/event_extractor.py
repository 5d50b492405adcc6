"""
AI-assisted event extraction.

The prompt embeds today's and tomorrow's dates so the model never has to do date
arithmetic; the reply goes through the decode cascade in ``extraction.decoders``.
Service failures degrade to the keyword stage, except configuration problems
(missing credentials, unknown provider) which propagate to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Optional, Union

from api.metrics import DECODE_STAGE_TOTAL
from calendar_assist.errors import AssistError, MalformedResponseError, TransientServiceError
from calendar_assist.models import EventDraft
from calendar_assist.results import NeedsClarification
from calendar_assist.settings import AssistSettings
from extraction.decoders import Decoded, decode_response, keyword_fallback
from extraction.prompts import (
    EXTRACTION_SYSTEM_PROMPT,
    SIMPLIFIED_SYSTEM_PROMPT,
    build_extraction_prompt,
    build_simplified_prompt,
)
from llm.llm_client import LLMClient

logger = logging.getLogger(__name__)

EMPTY_INPUT_QUESTION = "What would you like to schedule, and when?"


def _combine(user_text: str, assistant_text: str) -> str:
    return f"{user_text or ''} {assistant_text or ''}".strip()


def _counted(decoded: Decoded) -> Decoded:
    DECODE_STAGE_TOTAL.labels(stage=decoded.stage.value).inc()
    return decoded


class EventExtractor:
    def __init__(self, llm: Optional[LLMClient] = None, settings: Optional[AssistSettings] = None):
        self.llm = llm or LLMClient()
        self.settings = settings or AssistSettings()

    async def request(self, text: str, now: datetime, simplified: bool = False) -> str:
        """Raw completion for an extraction prompt; provider errors propagate."""
        if simplified:
            prompt = build_simplified_prompt(text, now)
            system_prompt = SIMPLIFIED_SYSTEM_PROMPT
        else:
            prompt = build_extraction_prompt(text, now)
            system_prompt = EXTRACTION_SYSTEM_PROMPT
        return await self.llm.generate(prompt, system_prompt=system_prompt)

    async def extract(
        self,
        user_text: str,
        assistant_text: str = "",
        now: Optional[datetime] = None,
        simplified: bool = False,
    ) -> Decoded:
        now = now or datetime.now()
        text = _combine(user_text, assistant_text)

        try:
            response = await self.request(text, now, simplified=simplified)
        except (TransientServiceError, MalformedResponseError) as e:
            logger.warning(f"AI extraction failed, using keyword fallback: {e}")
            return _counted(keyword_fallback(text, now))

        return _counted(decode_response(response, now, source_text=text))

    async def extract_event(
        self,
        user_text: str,
        assistant_text: str = "",
        now: Optional[datetime] = None,
    ) -> Union[EventDraft, NeedsClarification]:
        if not _combine(user_text, assistant_text):
            return NeedsClarification(question=EMPTY_INPUT_QUESTION)
        decoded = await self.extract(user_text, assistant_text, now)
        return decoded.result.to_draft()

    def extract_blocking(
        self,
        user_text: str,
        assistant_text: str = "",
        now: Optional[datetime] = None,
        timeout_s: Optional[float] = None,
    ) -> Decoded:
        """Bounded-wait extraction for callers that cannot await.

        Always returns within ``timeout_s`` (``settings.extraction_timeout_s`` when
        omitted, plus event-loop overhead); on timeout or any service error the
        keyword stage result is returned instead. Must not be called from inside a
        running event loop.
        """
        now = now or datetime.now()
        text = _combine(user_text, assistant_text)
        if timeout_s is None:
            timeout_s = self.settings.extraction_timeout_s

        async def _bounded() -> Decoded:
            try:
                return await asyncio.wait_for(
                    self.extract(user_text, assistant_text, now, simplified=True),
                    timeout=timeout_s,
                )
            except asyncio.TimeoutError:
                logger.warning(f"AI extraction timed out after {timeout_s}s, using keyword fallback")
            except AssistError as e:
                logger.warning(f"AI extraction unavailable, using keyword fallback: {e}")
            return _counted(keyword_fallback(text, now))

        return asyncio.run(_bounded())

    def extract_event_blocking(
        self,
        user_text: str,
        assistant_text: str = "",
        now: Optional[datetime] = None,
        timeout_s: Optional[float] = None,
    ) -> EventDraft:
        return self.extract_blocking(user_text, assistant_text, now, timeout_s).result.to_draft()
