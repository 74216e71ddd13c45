from typing import Any

import pytest

from gitlab_ai_reviewer.infra.clients import llm as llm_module
from gitlab_ai_reviewer.infra.clients.llm import LLMClient, LLMClientConfig
from gitlab_ai_reviewer.shared.errors import LLMInvocationError


class _DummyResponse:
    def __init__(self, content: Any) -> None:
        self.content = content
        self.usage_metadata = {"input_tokens": 10, "output_tokens": 5, "total_tokens": 15}


class _DummyChatModel:
    """Stands in for a LangChain chat model and records how it was built."""

    last_init_kwargs: dict[str, Any] | None = None
    last_invoked_messages: list[Any] | None = None
    content: Any = "[]"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        _DummyChatModel.last_init_kwargs = kwargs

    def invoke(self, messages: list[Any]) -> _DummyResponse:
        _DummyChatModel.last_invoked_messages = messages
        return _DummyResponse(_DummyChatModel.content)


class _FailingChatModel:
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        pass

    def invoke(self, messages: list[Any]) -> _DummyResponse:
        raise RuntimeError("quota exceeded")


def _config(provider: str, **overrides: Any) -> LLMClientConfig:
    values = {
        "provider": provider,
        "model": "test-model",
        "timeout_seconds": 30.0,
        "max_retries": 0,
        "google_api_key": "google-key",
        "openai_api_key": "openai-key",
        "ollama_base_url": "http://localhost:11434",
        "openrouter_api_key": "openrouter-key",
        "openrouter_base_url": "https://openrouter.ai/api/v1",
    }
    values.update(overrides)
    return LLMClientConfig(**values)


@pytest.fixture(autouse=True)
def _reset_dummy() -> None:
    _DummyChatModel.last_init_kwargs = None
    _DummyChatModel.last_invoked_messages = None
    _DummyChatModel.content = "[]"


def test_gemini_requests_json_response(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(llm_module, "ChatGoogleGenerativeAI", _DummyChatModel)
    _DummyChatModel.content = ' [{"file": "a.py", "line": 1, "comment": "x"}] '

    result = LLMClient(_config("gemini")).request_review(
        [
            {"role": "system", "content": "rules"},
            {"role": "user", "content": "diffs"},
        ]
    )

    assert _DummyChatModel.last_init_kwargs["api_key"] == "google-key"
    assert _DummyChatModel.last_init_kwargs["response_mime_type"] == "application/json"
    assert result["content"] == '[{"file": "a.py", "line": 1, "comment": "x"}]'
    assert result["provider"] == "gemini"
    assert result["total_tokens"] == 15
    assert len(_DummyChatModel.last_invoked_messages) == 2


def test_openrouter_uses_chatopenai_with_base_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(llm_module, "ChatOpenAI", _DummyChatModel)

    LLMClient(_config("openrouter")).request_review(
        [{"role": "user", "content": "x"}]
    )

    assert _DummyChatModel.last_init_kwargs["base_url"] == "https://openrouter.ai/api/v1"
    assert _DummyChatModel.last_init_kwargs["api_key"] == "openrouter-key"


def test_ollama_uses_base_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(llm_module, "ChatOllama", _DummyChatModel)

    LLMClient(_config("ollama")).request_review(
        [{"role": "user", "content": "x"}]
    )

    assert _DummyChatModel.last_init_kwargs["base_url"] == "http://localhost:11434"
    assert "request_timeout" in _DummyChatModel.last_init_kwargs


def test_content_blocks_are_joined(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(llm_module, "ChatGoogleGenerativeAI", _DummyChatModel)
    _DummyChatModel.content = [{"type": "text", "text": "[]"}]

    result = LLMClient(_config("gemini")).request_review(
        [{"role": "user", "content": "x"}]
    )

    assert result["content"] == "[]"


def test_missing_api_key_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(llm_module, "ChatGoogleGenerativeAI", _DummyChatModel)

    with pytest.raises(LLMInvocationError):
        LLMClient(_config("gemini", google_api_key=None)).request_review(
            [{"role": "user", "content": "x"}]
        )


def test_invoke_failure_is_wrapped(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(llm_module, "ChatGoogleGenerativeAI", _FailingChatModel)

    with pytest.raises(LLMInvocationError):
        LLMClient(_config("gemini")).request_review(
            [{"role": "user", "content": "x"}]
        )


def test_invalid_provider_raises() -> None:
    with pytest.raises(LLMInvocationError):
        LLMClient(_config("unknown-provider"))


def test_openai_does_not_force_json_object_mode(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(llm_module, "ChatOpenAI", _DummyChatModel)

    client = LLMClient(_config("openai", model="gpt-5-mini"))
    client.request_review([{"role": "user", "content": "x"}])

    assert client.json_mode is False
    assert "response_mime_type" not in _DummyChatModel.last_init_kwargs
    assert "model_kwargs" not in _DummyChatModel.last_init_kwargs
    assert _DummyChatModel.last_init_kwargs["temperature"] == 1.0


def test_chat_model_is_built_once_per_client(monkeypatch: pytest.MonkeyPatch) -> None:
    built: list[dict[str, Any]] = []

    class _CountingChatModel(_DummyChatModel):
        def __init__(self, *args: Any, **kwargs: Any) -> None:
            super().__init__(*args, **kwargs)
            built.append(kwargs)

    monkeypatch.setattr(llm_module, "ChatGoogleGenerativeAI", _CountingChatModel)

    client = LLMClient(_config("gemini"))
    client.request_review([{"role": "user", "content": "first"}])
    client.request_review([{"role": "user", "content": "second"}])

    assert len(built) == 1
    assert client.json_mode is True


def test_system_role_maps_to_system_message(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(llm_module, "ChatGoogleGenerativeAI", _DummyChatModel)

    LLMClient(_config("gemini")).request_review(
        [
            {"role": "system", "content": "rules"},
            {"role": "user", "content": "diffs"},
        ]
    )

    system_message, user_message = _DummyChatModel.last_invoked_messages
    assert isinstance(system_message, llm_module.SystemMessage)
    assert isinstance(user_message, llm_module.HumanMessage)
    assert system_message.content == "rules"
