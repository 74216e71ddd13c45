from __future__ import annotations

import os
from dataclasses import dataclass

from gitlab_ai_reviewer.shared.errors import ConfigurationError


DEFAULT_GITLAB_URL = "https://gitlab.com"
DEFAULT_LLM_PROVIDER = "gemini"
DEFAULT_LLM_MODEL = "gemini-2.0-flash"
SUPPORTED_LLM_PROVIDERS = {"gemini", "openai", "ollama", "openrouter"}


def _clean_optional(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _get_optional_str(name: str) -> str | None:
    return _clean_optional(os.environ.get(name))


def _get_required_str(name: str) -> str:
    value = _clean_optional(os.environ.get(name))
    if value is None:
        raise ConfigurationError(f"Missing required environment variable: {name}")
    return value


def _get_int(name: str, default: int, *, min_value: int | None = None) -> int:
    raw = _clean_optional(os.environ.get(name))
    if raw is None:
        value = default
    else:
        try:
            value = int(raw)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid integer for {name}: {raw}") from exc

    if min_value is not None and value < min_value:
        raise ConfigurationError(f"{name} must be >= {min_value}")
    return value


def _get_float(name: str, default: float, *, min_value: float | None = None) -> float:
    raw = _clean_optional(os.environ.get(name))
    if raw is None:
        value = default
    else:
        try:
            value = float(raw)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid float for {name}: {raw}") from exc

    if min_value is not None and value < min_value:
        raise ConfigurationError(f"{name} must be >= {min_value}")
    return value


@dataclass(frozen=True)
class AppSettings:
    log_level: str
    port: int

    gitlab_access_token: str
    gitlab_url: str
    gitlab_webhook_secret_token: str | None
    gitlab_request_timeout_seconds: float

    review_worker_concurrency: int
    review_max_pending_jobs: int
    review_max_diff_chars: int
    comment_post_delay_seconds: float

    llm_provider: str
    llm_model: str
    llm_timeout_seconds: float
    llm_max_retries: int
    google_api_key: str | None
    openai_api_key: str | None
    ollama_base_url: str
    openrouter_api_key: str | None
    openrouter_base_url: str

    review_system_prompt: str | None

    @property
    def gitlab_api_base_url(self) -> str:
        return f"{self.gitlab_url.rstrip('/')}/api/v4"

    @classmethod
    def from_env(cls) -> "AppSettings":
        provider = (_get_optional_str("LLM_PROVIDER") or DEFAULT_LLM_PROVIDER).lower()
        if provider not in SUPPORTED_LLM_PROVIDERS:
            raise ConfigurationError(f"Unsupported LLM_PROVIDER: {provider}")

        settings = cls(
            log_level=(_get_optional_str("LOG_LEVEL") or "INFO").upper(),
            port=_get_int("PORT", 5678, min_value=1),
            gitlab_access_token=_get_required_str("GITLAB_ACCESS_TOKEN"),
            gitlab_url=_get_optional_str("GITLAB_URL")
            or _get_optional_str("CI_SERVER_URL")
            or DEFAULT_GITLAB_URL,
            gitlab_webhook_secret_token=_get_optional_str("GITLAB_WEBHOOK_SECRET_TOKEN"),
            gitlab_request_timeout_seconds=_get_float(
                "GITLAB_REQUEST_TIMEOUT_SECONDS", 10.0, min_value=0.001
            ),
            review_worker_concurrency=_get_int("REVIEW_WORKER_CONCURRENCY", 1, min_value=1),
            review_max_pending_jobs=_get_int("REVIEW_MAX_PENDING_JOBS", 100, min_value=1),
            review_max_diff_chars=_get_int("REVIEW_MAX_DIFF_CHARS", 15000, min_value=1),
            comment_post_delay_seconds=_get_float(
                "COMMENT_POST_DELAY_SECONDS", 0.5, min_value=0.0
            ),
            llm_provider=provider,
            llm_model=_get_optional_str("LLM_MODEL") or DEFAULT_LLM_MODEL,
            llm_timeout_seconds=_get_float("LLM_TIMEOUT_SECONDS", 300.0, min_value=0.001),
            llm_max_retries=_get_int("LLM_MAX_RETRIES", 0, min_value=0),
            google_api_key=_get_optional_str("GOOGLE_API_KEY"),
            openai_api_key=_get_optional_str("OPENAI_API_KEY"),
            ollama_base_url=_get_optional_str("OLLAMA_BASE_URL")
            or "http://localhost:11434",
            openrouter_api_key=_get_optional_str("OPENROUTER_API_KEY"),
            openrouter_base_url=_get_optional_str("OPENROUTER_BASE_URL")
            or "https://openrouter.ai/api/v1",
            review_system_prompt=_get_optional_str("REVIEW_SYSTEM_PROMPT"),
        )

        if settings.llm_provider == "gemini" and not settings.google_api_key:
            raise ConfigurationError("GOOGLE_API_KEY is required when LLM_PROVIDER=gemini")
        if settings.llm_provider == "openai" and not settings.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY is required when LLM_PROVIDER=openai")
        if settings.llm_provider == "openrouter" and not settings.openrouter_api_key:
            raise ConfigurationError(
                "OPENROUTER_API_KEY is required when LLM_PROVIDER=openrouter"
            )

        return settings
