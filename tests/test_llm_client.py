# tests/test_llm_client.py

from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import httpx
import pytest

from tasktalk.core.ports import ModelReply, ToolCall
from tasktalk.errors import ProviderError
from tasktalk.llm.client import (
    OpenAIChatModel,
    build_openai_client,
    friendly_llm_error_message,
    provider_error_from,
)
from tasktalk.llm.embeddings import OpenAIEmbedder
from tasktalk.llm.offline import OfflineChatModel


def _settings(**kw: Any) -> SimpleNamespace:
    base = dict(
        llm_api_key="sk-test",
        llm_base_url=None,
        llm_model="test-model",
        llm_temperature=0.1,
        llm_connect_timeout=1.0,
        llm_read_timeout=2.0,
        extra_headers={},
        embedding_model="test-embed",
    )
    base.update(kw)
    return SimpleNamespace(**base)


class _Completions:
    def __init__(self, response: Any = None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.kwargs: dict[str, Any] = {}

    def create(self, **kwargs: Any) -> Any:
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return self.response


def _fake_client(completions: _Completions) -> Any:
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def _response(content: Any = None, tool_calls: list[Any] | None = None) -> Any:
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message, finish_reason="stop")])


def test_complete_maps_text_reply() -> None:
    completions = _Completions(_response("hello"))
    model = OpenAIChatModel(_settings(), client=_fake_client(completions))

    reply = model.complete([{"role": "user", "content": "hi"}])

    assert reply == ModelReply(content="hello")
    assert completions.kwargs["model"] == "test-model"
    assert completions.kwargs["temperature"] == 0.1
    assert "tools" not in completions.kwargs


def test_complete_maps_tool_calls_and_sends_tools() -> None:
    tc = SimpleNamespace(id="abc", function=SimpleNamespace(name="list_tasks", arguments='{"status": "open"}'))
    no_id = SimpleNamespace(id=None, function=SimpleNamespace(name="list_tasks", arguments=None))
    completions = _Completions(_response(None, [tc, no_id]))
    model = OpenAIChatModel(_settings(extra_headers={"X-Title": "t"}), client=_fake_client(completions))

    tools = [{"type": "function", "function": {"name": "list_tasks", "parameters": {}}}]
    reply = model.complete([{"role": "user", "content": "hi"}], tools)

    assert reply.tool_calls == (
        ToolCall(id="abc", name="list_tasks", arguments='{"status": "open"}'),
        ToolCall(id="tool-call", name="list_tasks", arguments="{}"),
    )
    assert completions.kwargs["tools"] == tools
    assert completions.kwargs["extra_headers"] == {"X-Title": "t"}


def test_transport_errors_become_provider_errors() -> None:
    completions = _Completions(error=httpx.ReadTimeout("timed out"))
    model = OpenAIChatModel(_settings(), client=_fake_client(completions))

    with pytest.raises(ProviderError) as exc:
        model.complete([{"role": "user", "content": "hi"}])
    assert friendly_llm_error_message(exc.value) == "LLM network/timeout error. Try again later."


def test_empty_choices_is_a_provider_error() -> None:
    completions = _Completions(SimpleNamespace(choices=[]))
    model = OpenAIChatModel(_settings(), client=_fake_client(completions))
    with pytest.raises(ProviderError):
        model.complete([])


def test_provider_error_classification() -> None:
    class RateLimitError(Exception):
        pass

    assert "rate-limited" in provider_error_from(RateLimitError("slow down"), model="m").friendly
    assert provider_error_from(ValueError("weird"), model="m").friendly == "LLM request failed."
    assert friendly_llm_error_message(RuntimeError("  ")) == "LLM error."


def test_missing_api_key_or_model() -> None:
    with pytest.raises(ProviderError, match="API key"):
        build_openai_client(_settings(llm_api_key=""))
    with pytest.raises(ProviderError, match="model"):
        OpenAIChatModel(_settings(llm_model=" "), client=object())


def test_embedder_orders_by_index() -> None:
    data = [SimpleNamespace(index=1, embedding=[0.0, 1.0]), SimpleNamespace(index=0, embedding=[1.0, 0.0])]
    calls: list[dict[str, Any]] = []

    def create(**kwargs: Any) -> Any:
        calls.append(kwargs)
        return SimpleNamespace(data=data)

    client = SimpleNamespace(embeddings=SimpleNamespace(create=create))
    emb = OpenAIEmbedder(_settings(), client=client)

    assert emb.embed(["a", "b"]) == [[1.0, 0.0], [0.0, 1.0]]
    assert calls[0] == {"model": "test-embed", "input": ["a", "b"]}
    assert emb.embed([]) == []


def test_offline_model_echoes_last_user_message() -> None:
    reply = OfflineChatModel().complete(
        [{"role": "user", "content": "old"}, {"role": "assistant", "content": "x"}, {"role": "user", "content": "new"}]
    )
    assert reply.tool_calls == ()
    assert reply.content.endswith("You said: new")
