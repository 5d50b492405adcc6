from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Sequence

from calendar_assist.models import ChatTurn


class LLMProvider(ABC):
    name = "provider"

    @abstractmethod
    async def generate(self, *, system: str, user: str, history: Sequence[ChatTurn] = ()) -> str:
        """
        Must return the model output as TEXT (decoding happens in the extraction/classification layer).
        Raise calendar_assist.errors types on failure.
        """
        raise NotImplementedError
