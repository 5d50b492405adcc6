import pytest

from calendar_assist.errors import AssistError
from storage.event_store import InMemoryEventStore


class FakeProvider:
    """Scripted async provider.

    ``responses`` is a single string, a list consumed in order (the last entry
    repeats), an exception to raise, or a callable ``(system, user) -> str``.
    """

    name = "Fake"

    def __init__(self, responses):
        self._responses = responses
        self.calls = []

    async def generate(self, *, system: str, user: str, history=()) -> str:
        self.calls.append({"system": system, "user": user, "history": list(history)})
        responses = self._responses
        if isinstance(responses, AssistError):
            raise responses
        if callable(responses):
            return responses(system, user)
        if isinstance(responses, list):
            item = responses.pop(0) if len(responses) > 1 else responses[0]
            if isinstance(item, AssistError):
                raise item
            return item
        return responses


@pytest.fixture
def fake_provider_factory():
    def _make(responses):
        return FakeProvider(responses)
    return _make


@pytest.fixture
def event_store():
    return InMemoryEventStore()
