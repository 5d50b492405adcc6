from __future__ import annotations
import logging
import os
from typing import Sequence

import httpx

from calendar_assist.errors import (
    ApiError,
    AuthMissingError,
    HttpError,
    MalformedPayloadError,
    NetworkError,
)
from calendar_assist.models import ChatTurn
from .base import LLMProvider

logger = logging.getLogger(__name__)

HISTORY_TURNS = 10


class OpenRouterProvider(LLMProvider):
    name = "OpenRouter"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = (api_key if api_key is not None else os.getenv("OPENROUTER_API_KEY", "")).strip()
        self.model = (model or os.getenv("OPENROUTER_MODEL", "anthropic/claude-3-haiku")).strip()
        self.base_url = (base_url or os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")).strip()
        self.timeout = float(os.getenv("OPENROUTER_TIMEOUT_S", "30"))
        self.transport = transport

    def _messages(self, system: str, user: str, history: Sequence[ChatTurn]) -> list[dict]:
        messages = [{"role": "system", "content": system}]
        for turn in list(history)[-HISTORY_TURNS:]:
            messages.append({"role": turn.role, "content": turn.text})
        messages.append({"role": "user", "content": user})
        return messages

    async def generate(self, *, system: str, user: str, history: Sequence[ChatTurn] = ()) -> str:
        # checked per call so a missing key only fails the request that needs it
        if not self.api_key:
            raise AuthMissingError(self.name, "OPENROUTER_API_KEY")

        url = f"{self.base_url.rstrip('/')}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": "CalendarAssistant/1.0",
            "X-Title": "CalendarAssistant",
        }
        payload = {
            "model": self.model,
            "messages": self._messages(system, user, history),
            "max_tokens": 300,
            "temperature": 0.7,
            "top_p": 0.9,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                r = await client.post(url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.warning(f"OpenRouter request failed: {e}")
            raise NetworkError(str(e)) from e

        try:
            data = r.json()
        except ValueError:
            data = None

        if isinstance(data, dict) and isinstance(data.get("error"), dict):
            message = data["error"].get("message") or "unknown error"
            raise ApiError(message)

        if r.status_code >= 400:
            raise HttpError(r.status_code, r.text)

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise MalformedPayloadError("OpenRouter response missing choices[0].message.content") from e
        if not isinstance(content, str):
            raise MalformedPayloadError("OpenRouter response content is not text")
        return content.strip()
