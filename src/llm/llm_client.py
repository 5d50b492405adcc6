from __future__ import annotations

import json
import logging
import os
from typing import Any, Optional, Sequence

from calendar_assist.errors import ConfigurationError
from calendar_assist.models import ChatTurn
from llm.providers.base import LLMProvider

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are a helpful calendar assistant."


def build_provider(name: Optional[str] = None) -> LLMProvider:
    """Provider selected by LLM_PROVIDER (openrouter | huggingface | mock)."""
    name = (name or os.getenv("LLM_PROVIDER", "openrouter")).strip().lower()

    if name == "openrouter":
        from llm.providers.openrouter_provider import OpenRouterProvider

        return OpenRouterProvider()
    if name == "huggingface":
        from llm.providers.huggingface_provider import HuggingFaceProvider

        return HuggingFaceProvider()
    if name == "mock":
        from llm.providers.mock_provider import MockProvider

        return MockProvider()

    raise ConfigurationError(
        f"Unknown LLM provider: {name}",
        hint="Set LLM_PROVIDER to openrouter, huggingface or mock.",
    )


def extract_json_object(text: str) -> Optional[dict[str, Any]]:
    """Outermost {...} span parsed as an object; None when absent or invalid."""
    if not text:
        return None
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        data = json.loads(text[start:end + 1])
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


class LLMClient:
    """Thin async facade over one text-completion provider.

    Errors from the provider (calendar_assist.errors) propagate unchanged; callers
    decide whether to degrade.
    """

    def __init__(self, provider: Optional[LLMProvider] = None):
        self._provider = provider

    @property
    def provider(self) -> LLMProvider:
        # built lazily so a bad LLM_PROVIDER only fails the calls that need it
        if self._provider is None:
            self._provider = build_provider()
        return self._provider

    async def generate(
        self,
        prompt: str,
        history: Sequence[ChatTurn] = (),
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    ) -> str:
        provider = self.provider
        logger.debug(f"Calling {getattr(provider, 'name', type(provider).__name__)} with {len(history)} history turns")
        text = await provider.generate(system=system_prompt, user=prompt, history=history)
        return text or ""
