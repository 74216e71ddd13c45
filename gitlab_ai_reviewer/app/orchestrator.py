from __future__ import annotations

import logging
from typing import Any, Callable

from gitlab_ai_reviewer.domains.review.tasks import MergeRequestReviewTask


logger = logging.getLogger(__name__)

ALWAYS_REVIEWED_ACTIONS = {"open", "reopen"}


class WebhookOrchestrator:
    """Decides which merge_request events need a review and hands them off.

    Skipped events never reach GitLab or the LLM.
    """

    def __init__(self, *, enqueue_review: Callable[[MergeRequestReviewTask], None]) -> None:
        self._enqueue_review = enqueue_review

    @staticmethod
    def _is_code_change(action: str | None, object_attributes: dict[str, Any]) -> bool:
        if action in ALWAYS_REVIEWED_ACTIONS:
            return True
        # "update" fires for title/description edits too; only pushes carry oldrev.
        if action == "update":
            return bool(object_attributes.get("oldrev"))
        return False

    def handle_merge_request_event(self, payload: dict[str, Any]) -> bool:
        if payload.get("object_kind") != "merge_request":
            return False

        object_attributes = payload.get("object_attributes") or {}
        action = object_attributes.get("action")
        state = object_attributes.get("state")
        mr_id = object_attributes.get("iid")

        if state != "opened":
            logger.info("Skipping merge_request: mr_id=%s, state=%s", mr_id, state)
            return False

        if not self._is_code_change(action, object_attributes):
            logger.info(
                "Skipping merge_request: mr_id=%s, action=%s (no code push)",
                mr_id,
                action,
            )
            return False

        project_id = int(payload["project"]["id"])
        last_commit = object_attributes.get("last_commit") or {}
        task = MergeRequestReviewTask(
            project_id=project_id,
            merge_request_iid=int(mr_id),
            old_rev=object_attributes.get("oldrev"),
            new_rev=last_commit.get("id"),
        )
        logger.info(
            "Handling merge_request: project_id=%s, mr_id=%s, action=%s",
            project_id,
            task.merge_request_iid,
            action,
        )
        self._enqueue_review(task)
        return True
