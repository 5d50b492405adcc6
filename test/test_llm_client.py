import asyncio
import json

import httpx
import pytest

from calendar_assist.errors import ConfigurationError
from calendar_assist.models import ChatTurn
from llm.llm_client import LLMClient, build_provider, extract_json_object
from llm.providers.huggingface_provider import HuggingFaceProvider
from llm.providers.mock_provider import MockProvider
from llm.providers.openrouter_provider import OpenRouterProvider


def test_generate_passes_prompt_history_and_system(fake_provider_factory):
    provider = fake_provider_factory("Hello!")
    client = LLMClient(provider=provider)
    history = [ChatTurn(role="user", text="hi"), ChatTurn(role="assistant", text="hey")]

    out = asyncio.run(client.generate("what's up", history=history, system_prompt="be brief"))

    assert out == "Hello!"
    call = provider.calls[0]
    assert call["system"] == "be brief"
    assert call["user"] == "what's up"
    assert [t.text for t in call["history"]] == ["hi", "hey"]


def test_extract_json_object_ignores_surrounding_text():
    data = extract_json_object('Sure! {"category": "exam", "confidence": 0.9} Thanks.')
    assert data == {"category": "exam", "confidence": 0.9}


@pytest.mark.parametrize("text", ["", "INVALID OUTPUT", "{not json}", "[1, 2]", "} {"])
def test_extract_json_object_invalid(text):
    assert extract_json_object(text) is None


@pytest.mark.parametrize(
    "name, cls",
    [("openrouter", OpenRouterProvider), ("huggingface", HuggingFaceProvider), ("mock", MockProvider)],
)
def test_build_provider(name, cls):
    assert isinstance(build_provider(name), cls)


def test_build_provider_from_env(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "Mock")
    assert isinstance(build_provider(), MockProvider)


def test_unknown_provider_is_a_configuration_error():
    with pytest.raises(ConfigurationError) as exc:
        build_provider("carrier-pigeon")
    assert "LLM_PROVIDER" in exc.value.hint


def test_openrouter_request_shape():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "  Done.  "}}]})

    provider = OpenRouterProvider(
        api_key="sk-test",
        model="test/model",
        base_url="https://example.test/api/v1",
        transport=httpx.MockTransport(handler),
    )
    history = [ChatTurn(role="user", text=f"m{i}") for i in range(12)]

    out = asyncio.run(provider.generate(system="sys", user="hello", history=history))

    assert out == "Done."
    assert seen["url"] == "https://example.test/api/v1/chat/completions"
    assert seen["headers"]["Authorization"] == "Bearer sk-test"
    assert seen["headers"]["X-Title"] == "CalendarAssistant"
    body = seen["body"]
    assert body["model"] == "test/model"
    assert body["max_tokens"] == 300
    messages = body["messages"]
    assert messages[0] == {"role": "system", "content": "sys"}
    # last 10 history turns plus the new user message
    assert len(messages) == 12
    assert messages[1]["content"] == "m2"
    assert messages[-1] == {"role": "user", "content": "hello"}


def test_huggingface_request_shape_and_prefix_strip():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=[{"generated_text": "Assistant: Sounds good."}])

    provider = HuggingFaceProvider(
        api_key="hf-test",
        model="org/model",
        base_url="https://hf.test/models",
        transport=httpx.MockTransport(handler),
    )
    history = [ChatTurn(role="user", text="first"), ChatTurn(role="assistant", text="second")]

    out = asyncio.run(provider.generate(system="System", user="third", history=history))

    assert out == "Sounds good."
    assert seen["url"] == "https://hf.test/models/org/model"
    body = seen["body"]
    assert body["inputs"] == "System\n\nUser: first\nAssistant: second\nUser: third\nAssistant:"
    assert body["parameters"]["return_full_text"] is False
    assert body["options"] == {"wait_for_model": True}


def test_mock_provider_answers_extraction_prompts():
    out = asyncio.run(
        MockProvider().generate(system="s", user='Extract event details from this user message:\n\nTEXT: "lunch at 1pm"')
    )
    data = json.loads(out)
    assert data["title"] == "Lunch"
    assert data["datetime"].endswith("13:00")


def test_mock_provider_answers_classification_prompts():
    prompt = (
        "Classify this event into one of these categories: class, friends, exam, personal\n\n"
        'Event Details:\n- Title: "{}"\n\nClassification Rules:\n- "exam": Tests, quizzes'
    )
    mock = MockProvider()
    assert json.loads(asyncio.run(mock.generate(system="s", user=prompt.format("Midterm exam"))))["category"] == "exam"
    assert json.loads(asyncio.run(mock.generate(system="s", user=prompt.format("Dentist"))))["category"] == "personal"
