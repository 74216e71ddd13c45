from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from time import perf_counter
from typing import Any, Callable, Dict, List

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_ollama import ChatOllama
from langchain_openai import ChatOpenAI

from gitlab_ai_reviewer.shared.errors import LLMInvocationError
from gitlab_ai_reviewer.shared.types import ChatMessageDict, LLMReviewResult


logger = logging.getLogger(__name__)

REVIEW_TEMPERATURE = 1.0
JSON_MIME_TYPE = "application/json"
_USAGE_KEYS = ("input_tokens", "output_tokens", "total_tokens")


class LLMProvider(str, Enum):
    GEMINI = "gemini"
    OPENAI = "openai"
    OLLAMA = "ollama"
    OPENROUTER = "openrouter"


@dataclass(frozen=True)
class LLMClientConfig:
    provider: str
    model: str
    timeout_seconds: float
    max_retries: int
    google_api_key: str | None
    openai_api_key: str | None
    ollama_base_url: str
    openrouter_api_key: str | None
    openrouter_base_url: str


def _require_key(value: str | None, env_name: str, provider: LLMProvider) -> str:
    if not value:
        raise LLMInvocationError(
            f"{env_name} is not set (required when LLM_PROVIDER={provider.value})"
        )
    return value


def _gemini_model(config: LLMClientConfig, json_mode: bool) -> BaseChatModel:
    options: Dict[str, Any] = {}
    if json_mode:
        options["response_mime_type"] = JSON_MIME_TYPE
    return ChatGoogleGenerativeAI(
        model=config.model,
        api_key=_require_key(config.google_api_key, "GOOGLE_API_KEY", LLMProvider.GEMINI),
        temperature=REVIEW_TEMPERATURE,
        timeout=config.timeout_seconds,
        max_retries=config.max_retries,
        **options,
    )


def _openai_model(config: LLMClientConfig, json_mode: bool) -> BaseChatModel:
    # json_object mode only allows a top-level object, reviews are an array
    return ChatOpenAI(
        model=config.model,
        api_key=_require_key(config.openai_api_key, "OPENAI_API_KEY", LLMProvider.OPENAI),
        temperature=REVIEW_TEMPERATURE,
        timeout=config.timeout_seconds,
        max_retries=config.max_retries,
    )


def _openrouter_model(config: LLMClientConfig, json_mode: bool) -> BaseChatModel:
    return ChatOpenAI(
        model=config.model,
        api_key=_require_key(
            config.openrouter_api_key, "OPENROUTER_API_KEY", LLMProvider.OPENROUTER
        ),
        base_url=config.openrouter_base_url,
        temperature=REVIEW_TEMPERATURE,
        timeout=config.timeout_seconds,
        max_retries=config.max_retries,
    )


def _ollama_model(config: LLMClientConfig, json_mode: bool) -> BaseChatModel:
    return ChatOllama(
        model=config.model,
        base_url=config.ollama_base_url,
        temperature=REVIEW_TEMPERATURE,
        request_timeout=config.timeout_seconds,
    )


_MODEL_BUILDERS: Dict[LLMProvider, Callable[[LLMClientConfig, bool], BaseChatModel]] = {
    LLMProvider.GEMINI: _gemini_model,
    LLMProvider.OPENAI: _openai_model,
    LLMProvider.OPENROUTER: _openrouter_model,
    LLMProvider.OLLAMA: _ollama_model,
}

# providers whose native JSON mode accepts a top-level array
JSON_MODE_PROVIDERS = frozenset({LLMProvider.GEMINI})


def _to_langchain_messages(messages: List[ChatMessageDict]) -> List[BaseMessage]:
    return [
        SystemMessage(content=message["content"])
        if message.get("role") == "system"
        else HumanMessage(content=message["content"])
        for message in messages
    ]


def _text_of(content: Any) -> str:
    if isinstance(content, list):
        # content blocks
        return "".join(
            block.get("text", "") if isinstance(block, dict) else str(block)
            for block in content
        )
    return str(content)


class LLMClient:
    """Asks the configured chat model for one JSON review answer per batch.

    The chat model is built on first use and reused for later batches.
    """

    def __init__(self, config: LLMClientConfig) -> None:
        try:
            self._provider = LLMProvider(config.provider)
        except ValueError as exc:
            raise LLMInvocationError(f"Unsupported LLM provider: {config.provider}") from exc
        self._config = config
        self._chat_model: BaseChatModel | None = None

    @property
    def provider_name(self) -> str:
        return self._provider.value

    @property
    def model_name(self) -> str:
        return self._config.model

    @property
    def json_mode(self) -> bool:
        return self._provider in JSON_MODE_PROVIDERS

    def _model(self) -> BaseChatModel:
        if self._chat_model is None:
            logger.info(
                "Creating chat model: provider=%s, model=%s, json_mode=%s",
                self.provider_name,
                self.model_name,
                self.json_mode,
            )
            builder = _MODEL_BUILDERS[self._provider]
            self._chat_model = builder(self._config, self.json_mode)
        return self._chat_model

    def request_review(self, messages: List[ChatMessageDict]) -> LLMReviewResult:
        """Send the review prompt and return the raw answer text with usage stats.

        Raises ``LLMInvocationError`` when the provider is misconfigured or the
        call fails.
        """
        chat_model = self._model()

        started_at = perf_counter()
        try:
            response = chat_model.invoke(_to_langchain_messages(messages))
        except Exception as exc:  # noqa: BLE001 - external provider wrapper
            raise LLMInvocationError(
                f"{self.provider_name} review request failed: {exc}"
            ) from exc
        elapsed = perf_counter() - started_at

        result: LLMReviewResult = {
            "content": _text_of(response.content).strip(),
            "provider": self.provider_name,
            "model": self.model_name,
            "elapsed_seconds": elapsed,
        }
        usage = getattr(response, "usage_metadata", None) or {}
        for key in _USAGE_KEYS:
            if usage.get(key) is not None:
                result[key] = int(usage[key])  # type: ignore[literal-required]

        logger.info(
            "Review answer received: provider=%s, model=%s, elapsed=%.2fs, chars=%s, total_tokens=%s",
            self.provider_name,
            self.model_name,
            elapsed,
            len(result["content"]),
            result.get("total_tokens"),
        )
        return result
