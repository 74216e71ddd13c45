from __future__ import annotations

import logging
import time
from typing import Callable, List

from gitlab_ai_reviewer.domains.review.approvals import (
    build_re_review_notification,
    compute_re_review_status,
)
from gitlab_ai_reviewer.domains.review.chain import ReviewChain
from gitlab_ai_reviewer.domains.review.filters import filter_reviewable, normalize_diffs
from gitlab_ai_reviewer.domains.review.tasks import MergeRequestReviewTask
from gitlab_ai_reviewer.infra.clients.gitlab import GitLabClient
from gitlab_ai_reviewer.shared.types import (
    GitDiffChange,
    MergeRequestApprovalsResponse,
    MergeRequestChangesResponse,
)


logger = logging.getLogger(__name__)

DEFAULT_COMMENT_POST_DELAY_SECONDS = 0.5


class ReviewService:
    def __init__(
        self,
        *,
        gitlab_client: GitLabClient,
        review_chain: ReviewChain,
        comment_post_delay_seconds: float = DEFAULT_COMMENT_POST_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._gitlab_client = gitlab_client
        self._review_chain = review_chain
        self._comment_post_delay_seconds = comment_post_delay_seconds
        self._sleep = sleep

    def run_task(self, task: MergeRequestReviewTask) -> None:
        try:
            self.process_code_review(
                project_id=task.project_id,
                merge_request_iid=task.merge_request_iid,
                old_rev=task.old_rev,
                new_rev=task.new_rev,
            )
        except Exception:  # noqa: BLE001 - background task boundary
            logger.exception(
                "Failed to review merge_request: project_id=%s, mr_id=%s",
                task.project_id,
                task.merge_request_iid,
            )

    def process_code_review(
        self,
        *,
        project_id: int,
        merge_request_iid: int,
        old_rev: str | None,
        new_rev: str | None,
    ) -> None:
        logger.info(
            "Starting review: project_id=%s, mr_id=%s",
            project_id,
            merge_request_iid,
        )

        mr_data = self._gitlab_client.get_merge_request_changes(
            project_id=project_id,
            merge_request_iid=merge_request_iid,
        )
        approvals = self._gitlab_client.get_merge_request_approvals(
            project_id=project_id,
            merge_request_iid=merge_request_iid,
        )
        self._notify_previous_approvers(project_id, merge_request_iid, mr_data, approvals)

        versions = self._gitlab_client.get_merge_request_versions(
            project_id=project_id,
            merge_request_iid=merge_request_iid,
        )

        # A first version gets the whole changeset, not just the latest push,
        # so the first review sees full context.
        if len(versions) <= 1:
            logger.info(
                "Strategy: FULL REVIEW (first version): project_id=%s, mr_id=%s",
                project_id,
                merge_request_iid,
            )
            raw_diffs: List[GitDiffChange] = mr_data.get("changes", [])
        else:
            logger.info(
                "Strategy: INCREMENTAL REVIEW (versions=%s): %s -> %s",
                len(versions),
                old_rev,
                new_rev,
            )
            if not old_rev or not new_rev:
                logger.warning(
                    "Missing SHAs for incremental review, skipping: project_id=%s, mr_id=%s",
                    project_id,
                    merge_request_iid,
                )
                return

            comparison = self._gitlab_client.get_commit_comparison(
                project_id=project_id,
                from_sha=old_rev,
                to_sha=new_rev,
            )
            raw_diffs = comparison.get("diffs") or []

        self._review_and_post(project_id, merge_request_iid, mr_data, raw_diffs)

    def run_full_review(self, *, project_id: int, merge_request_iid: int) -> None:
        """Review the complete current changeset, as done from a CI job."""
        mr_data = self._gitlab_client.get_merge_request_changes(
            project_id=project_id,
            merge_request_iid=merge_request_iid,
        )
        self._review_and_post(
            project_id,
            merge_request_iid,
            mr_data,
            mr_data.get("changes", []),
        )

    def _notify_previous_approvers(
        self,
        project_id: int,
        merge_request_iid: int,
        mr_data: MergeRequestChangesResponse,
        approvals: MergeRequestApprovalsResponse,
    ) -> None:
        status = compute_re_review_status(mr_data, approvals)
        usernames = status["approver_usernames"]
        if not status["should_notify"] or not usernames:
            return

        logger.info("Notifying previous approvers: %s", ", ".join(usernames))
        self._gitlab_client.post_global_comment(
            project_id=project_id,
            merge_request_iid=merge_request_iid,
            body=build_re_review_notification(usernames),
        )

    def _review_and_post(
        self,
        project_id: int,
        merge_request_iid: int,
        mr_data: MergeRequestChangesResponse,
        raw_diffs: List[GitDiffChange],
    ) -> None:
        reviewable = filter_reviewable(normalize_diffs(raw_diffs))
        if not reviewable:
            logger.info(
                "No reviewable code changes found: project_id=%s, mr_id=%s",
                project_id,
                merge_request_iid,
            )
            return

        logger.info("Analyzing %s files", len(reviewable))
        comments = self._review_chain.analyze(reviewable)
        logger.info("AI generated %s comments", len(comments))

        for comment in comments:
            try:
                self._gitlab_client.post_inline_comment(
                    project_id=project_id,
                    merge_request_iid=merge_request_iid,
                    comment=comment,
                    mr_data=mr_data,
                )
            except Exception:  # noqa: BLE001 - one bad comment must not stop the batch
                logger.exception(
                    "Failed to post inline comment on %s:%s",
                    comment.get("file"),
                    comment.get("line"),
                )
            self._sleep(self._comment_post_delay_seconds)

        logger.info(
            "Review finished: project_id=%s, mr_id=%s",
            project_id,
            merge_request_iid,
        )
