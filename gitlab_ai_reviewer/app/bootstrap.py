from __future__ import annotations

import logging

from gitlab_ai_reviewer.app.config import AppSettings
from gitlab_ai_reviewer.domains.review.chain import ReviewChain
from gitlab_ai_reviewer.domains.review.service import ReviewService
from gitlab_ai_reviewer.infra.clients.gitlab import GitLabClient, GitLabClientConfig
from gitlab_ai_reviewer.infra.clients.llm import LLMClient, LLMClientConfig


def setup_logging(log_level_name: str) -> None:
    level = getattr(logging, log_level_name.upper(), None)
    if not isinstance(level, int):
        level = logging.INFO
        logging.basicConfig(level=level)
        logging.getLogger(__name__).warning(
            "Invalid LOG_LEVEL '%s', defaulting to INFO",
            log_level_name,
        )
        return

    logging.basicConfig(level=level)


def build_gitlab_client(settings: AppSettings) -> GitLabClient:
    return GitLabClient(
        GitLabClientConfig(
            api_base_url=settings.gitlab_api_base_url,
            access_token=settings.gitlab_access_token,
            timeout_seconds=settings.gitlab_request_timeout_seconds,
        )
    )


def build_review_service(settings: AppSettings) -> ReviewService:
    llm_client = LLMClient(
        LLMClientConfig(
            provider=settings.llm_provider,
            model=settings.llm_model,
            timeout_seconds=settings.llm_timeout_seconds,
            max_retries=settings.llm_max_retries,
            google_api_key=settings.google_api_key,
            openai_api_key=settings.openai_api_key,
            ollama_base_url=settings.ollama_base_url,
            openrouter_api_key=settings.openrouter_api_key,
            openrouter_base_url=settings.openrouter_base_url,
        )
    )
    review_chain = ReviewChain(
        llm_client=llm_client,
        system_instruction=settings.review_system_prompt,
        max_diff_chars=settings.review_max_diff_chars,
    )
    return ReviewService(
        gitlab_client=build_gitlab_client(settings),
        review_chain=review_chain,
        comment_post_delay_seconds=settings.comment_post_delay_seconds,
    )
