from __future__ import annotations

import json
import logging
import re
from typing import Any, List

from pydantic import ValidationError

from gitlab_ai_reviewer.domains.review.diff_annotator import MAX_DIFF_CHARS
from gitlab_ai_reviewer.domains.review.models import InlineFinding
from gitlab_ai_reviewer.domains.review.prompt import generate_review_prompt
from gitlab_ai_reviewer.infra.clients.llm import LLMClient
from gitlab_ai_reviewer.shared.errors import LLMInvocationError
from gitlab_ai_reviewer.shared.types import GitDiffChange, ReviewComment


logger = logging.getLogger(__name__)

_CODE_FENCE_RE = re.compile(r"```json|```")


def parse_review_comments(content: str) -> List[ReviewComment]:
    """Parse the model's JSON array answer.

    Raises ``LLMInvocationError`` when the answer is not a JSON array. Array
    items that do not validate as ``InlineFinding`` are dropped one by one.
    """
    cleaned = _CODE_FENCE_RE.sub("", content).strip()
    try:
        data: Any = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise LLMInvocationError("LLM returned malformed JSON") from exc

    if not isinstance(data, list):
        raise LLMInvocationError(
            f"LLM returned {type(data).__name__} instead of a JSON array"
        )

    comments: List[ReviewComment] = []
    for item in data:
        try:
            finding = InlineFinding.model_validate(item)
        except ValidationError as exc:
            logger.warning(
                "Dropping invalid review item %r: %s",
                item,
                exc.errors(include_url=False),
            )
            continue
        comments.append(
            {"file": finding.file, "line": finding.line, "comment": finding.comment}
        )

    return comments


class ReviewChain:
    """Prompt -> LLM -> inline comments.

    Never raises: any LLM or parsing failure is logged and reported as "no
    comments" so a broken AI call cannot block the pipeline.
    """

    def __init__(
        self,
        *,
        llm_client: LLMClient,
        system_instruction: str | None,
        max_diff_chars: int = MAX_DIFF_CHARS,
    ) -> None:
        self._llm_client = llm_client
        self._system_instruction = system_instruction
        self._max_diff_chars = max_diff_chars

    def analyze(self, changes: List[GitDiffChange]) -> List[ReviewComment]:
        if not changes:
            return []

        messages = generate_review_prompt(
            changes,
            system_instruction=self._system_instruction,
            max_chars=self._max_diff_chars,
        )

        try:
            result = self._llm_client.request_review(messages)
            return parse_review_comments(result.get("content") or "")
        except Exception:  # noqa: BLE001 - AI failures degrade to no comments
            logger.exception(
                "AI review failed: provider=%s, model=%s",
                self._llm_client.provider_name,
                self._llm_client.model_name,
            )
            return []
