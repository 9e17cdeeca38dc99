"""Tests for the provider clients against mocked OpenAI-compatible endpoints."""
import json

import httpx
import pytest

from learnpath.agents.llm import client as client_module
from learnpath.agents.llm.groq import GroqOpenAIClient
from learnpath.agents.llm.ollama import OllamaOpenAIClient
from learnpath.agents.schemas import ValidationResult


def _completion(content: str) -> dict:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "test-model",
        "choices": [
            {"index": 0, "finish_reason": "stop", "message": {"role": "assistant", "content": content}}
        ],
    }


def test_ollama_posts_openai_style_payload():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=_completion('  {"isValid": true, "reason": "ok"}  '))

    llm = OllamaOpenAIClient(
        base_url="http://ollama:11434/v1/",
        model="llama3.1",
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )

    result = llm.generate_structured(ValidationResult, system="sys", user="usr", temperature=0.3, max_tokens=500)

    assert result == ValidationResult(is_valid=True, reason="ok")
    assert str(seen[0].url) == "http://ollama:11434/v1/chat/completions"
    body = json.loads(seen[0].content)
    assert body["model"] == "llama3.1"
    assert body["max_tokens"] == 500
    assert [m["role"] for m in body["messages"]] == ["system", "user"]


def test_ollama_raises_on_http_error():
    llm = OllamaOpenAIClient(
        base_url="http://ollama:11434/v1",
        model="llama3.1",
        http_client=httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(500))),
    )

    with pytest.raises(httpx.HTTPStatusError):
        llm.generate_text(system="s", user="u")


def test_groq_client_uses_chat_completions():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=_completion("Hello there"))

    llm = GroqOpenAIClient(
        api_key="gsk-test",
        base_url="https://api.groq.test/openai/v1",
        model="llama-3.3-70b-versatile",
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )

    assert llm.generate_text(system="s", user="u", max_tokens=50) == "Hello there"
    assert seen[0].url.path == "/openai/v1/chat/completions"
    assert seen[0].headers["Authorization"] == "Bearer gsk-test"
    assert json.loads(seen[0].content)["max_tokens"] == 50


def test_provider_selection(monkeypatch):
    monkeypatch.setattr(client_module.settings, "LLM_PROVIDER", "groq")
    assert isinstance(client_module.get_llm_client(), GroqOpenAIClient)

    monkeypatch.setattr(client_module.settings, "LLM_PROVIDER", "ollama")
    assert isinstance(client_module.get_llm_client(), OllamaOpenAIClient)
