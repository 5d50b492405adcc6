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

HISTORY_TURNS = 5


class HuggingFaceProvider(LLMProvider):
    """Text-generation inference endpoint; conversation is flattened into one prompt string."""

    name = "Hugging Face"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = (api_key if api_key is not None else os.getenv("HUGGINGFACE_API_KEY", "")).strip()
        self.model = (model or os.getenv("HUGGINGFACE_MODEL", "microsoft/DialoGPT-medium")).strip()
        self.base_url = (
            base_url or os.getenv("HUGGINGFACE_BASE_URL", "https://api-inference.huggingface.co/models")
        ).strip()
        self.timeout = float(os.getenv("HUGGINGFACE_TIMEOUT_S", "60"))
        self.transport = transport

    def build_inputs(self, system: str, user: str, history: Sequence[ChatTurn]) -> str:
        lines = [system, ""]
        for turn in list(history)[-HISTORY_TURNS:]:
            speaker = "User" if turn.role == "user" else "Assistant"
            lines.append(f"{speaker}: {turn.text}")
        lines.append(f"User: {user}")
        lines.append("Assistant:")
        return "\n".join(lines)

    async def generate(self, *, system: str, user: str, history: Sequence[ChatTurn] = ()) -> str:
        if not self.api_key:
            raise AuthMissingError(self.name, "HUGGINGFACE_API_KEY")

        url = f"{self.base_url.rstrip('/')}/{self.model}"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "inputs": self.build_inputs(system, user, history),
            "parameters": {
                "max_length": 200,
                "temperature": 0.7,
                "do_sample": True,
                "top_p": 0.9,
                "return_full_text": False,
            },
            "options": {"wait_for_model": True},
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                r = await client.post(url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.warning(f"Hugging Face request failed: {e}")
            raise NetworkError(str(e)) from e

        try:
            data = r.json()
        except ValueError:
            data = None

        if isinstance(data, dict) and isinstance(data.get("error"), str):
            raise ApiError(data["error"])

        if r.status_code >= 400:
            raise HttpError(r.status_code, r.text)

        if isinstance(data, list) and data:
            data = data[0]
        if not isinstance(data, dict) or not isinstance(data.get("generated_text"), str):
            raise MalformedPayloadError("Hugging Face response missing generated_text")

        text = data["generated_text"].strip()
        if text.startswith("Assistant:"):
            text = text[len("Assistant:"):].strip()
        return text
