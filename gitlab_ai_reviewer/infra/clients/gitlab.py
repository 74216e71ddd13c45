from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List

import requests

from gitlab_ai_reviewer.shared.errors import GitLabAPIError
from gitlab_ai_reviewer.shared.types import (
    CommitComparisonResponse,
    MergeRequestApprovalsResponse,
    MergeRequestChangesResponse,
    ReviewComment,
)


logger = logging.getLogger(__name__)

INLINE_COMMENT_PREFIX = "🤖 **AI Review:** "


@dataclass(frozen=True)
class GitLabClientConfig:
    api_base_url: str
    access_token: str
    timeout_seconds: float


class GitLabClient:
    def __init__(self, config: GitLabClientConfig) -> None:
        self._api_base_url = config.api_base_url
        self._access_token = config.access_token
        self._timeout_seconds = config.timeout_seconds

    def _headers(self) -> Dict[str, str]:
        return {"Private-Token": self._access_token}

    def _merge_request_url(self, project_id: int, merge_request_iid: int) -> str:
        return f"{self._api_base_url}/projects/{project_id}/merge_requests/{merge_request_iid}"

    def _request_json(
        self,
        *,
        method: str,
        url: str,
        params: Dict[str, Any] | None = None,
        json_payload: Dict[str, Any] | None = None,
    ) -> Any:
        try:
            response = requests.request(
                method,
                url,
                headers=self._headers(),
                params=params,
                json=json_payload,
                timeout=self._timeout_seconds,
            )
            response.raise_for_status()
            return response.json()
        except requests.HTTPError as exc:
            status_code = exc.response.status_code if exc.response is not None else None
            raise GitLabAPIError(
                f"GitLab API request failed: {method} {url} status={status_code or 'unknown'}",
                status_code=status_code,
            ) from exc
        except requests.RequestException as exc:
            raise GitLabAPIError(f"GitLab API request failed: {method} {url}") from exc
        except ValueError as exc:
            raise GitLabAPIError(
                f"GitLab API returned invalid JSON: {method} {url}"
            ) from exc

    def get_merge_request_changes(
        self,
        *,
        project_id: int,
        merge_request_iid: int,
    ) -> MergeRequestChangesResponse:
        """MR details including ``changes``, ``diff_refs`` and ``updated_at``."""
        url = f"{self._merge_request_url(project_id, merge_request_iid)}/changes"
        data = self._request_json(method="GET", url=url)
        logger.info(
            "Fetched merge_request changes: project_id=%s, mr_id=%s",
            project_id,
            merge_request_iid,
        )

        if not isinstance(data, dict) or "changes" not in data:
            raise GitLabAPIError(
                "Invalid merge request changes response: missing 'changes' field"
            )
        if not isinstance(data.get("changes"), list):
            raise GitLabAPIError(
                "Invalid merge request changes response: 'changes' must be a list"
            )
        return data  # type: ignore[return-value]

    def get_merge_request_versions(
        self,
        *,
        project_id: int,
        merge_request_iid: int,
    ) -> List[Dict[str, Any]]:
        url = f"{self._merge_request_url(project_id, merge_request_iid)}/versions"
        data = self._request_json(method="GET", url=url)
        logger.info(
            "Fetched merge_request versions: project_id=%s, mr_id=%s",
            project_id,
            merge_request_iid,
        )

        if not isinstance(data, list):
            raise GitLabAPIError("Invalid merge request versions response: expected list")
        return data

    def get_merge_request_approvals(
        self,
        *,
        project_id: int,
        merge_request_iid: int,
    ) -> MergeRequestApprovalsResponse:
        url = f"{self._merge_request_url(project_id, merge_request_iid)}/approvals"
        data = self._request_json(method="GET", url=url)
        logger.info(
            "Fetched merge_request approvals: project_id=%s, mr_id=%s",
            project_id,
            merge_request_iid,
        )

        if not isinstance(data, dict):
            raise GitLabAPIError("Invalid merge request approvals response: expected object")
        return data  # type: ignore[return-value]

    def get_commit_comparison(
        self,
        *,
        project_id: int,
        from_sha: str,
        to_sha: str,
    ) -> CommitComparisonResponse:
        url = f"{self._api_base_url}/projects/{project_id}/repository/compare"
        data = self._request_json(
            method="GET",
            url=url,
            params={"from": from_sha, "to": to_sha},
        )
        logger.info(
            "Fetched commit comparison: project_id=%s, from=%s, to=%s",
            project_id,
            from_sha,
            to_sha,
        )

        if not isinstance(data, dict):
            raise GitLabAPIError("Invalid commit comparison response: expected object")
        return data  # type: ignore[return-value]

    def post_merge_request_comment(
        self,
        *,
        project_id: int,
        merge_request_iid: int,
        body: str,
    ) -> None:
        url = f"{self._merge_request_url(project_id, merge_request_iid)}/notes"
        _ = self._request_json(method="POST", url=url, json_payload={"body": body})
        logger.info(
            "Posted merge_request comment: project_id=%s, mr_id=%s",
            project_id,
            merge_request_iid,
        )

    def post_global_comment(
        self,
        *,
        project_id: int,
        merge_request_iid: int,
        body: str,
    ) -> None:
        try:
            self.post_merge_request_comment(
                project_id=project_id,
                merge_request_iid=merge_request_iid,
                body=body,
            )
        except GitLabAPIError:
            logger.exception(
                "Failed to post global comment: project_id=%s, mr_id=%s",
                project_id,
                merge_request_iid,
            )

    def post_inline_comment(
        self,
        *,
        project_id: int,
        merge_request_iid: int,
        comment: ReviewComment,
        mr_data: MergeRequestChangesResponse,
    ) -> None:
        """Start a discussion thread anchored to ``comment``'s file and line.

        The position is built from ``mr_data``'s ``diff_refs`` so the thread
        lands on the latest MR version whichever diff was reviewed.
        """
        target_file = next(
            (
                change
                for change in mr_data.get("changes", [])
                if change.get("new_path") == comment["file"]
            ),
            None,
        )
        if target_file is None:
            logger.info(
                "Skipping comment: file %s not found in current MR version: project_id=%s, mr_id=%s",
                comment["file"],
                project_id,
                merge_request_iid,
            )
            return

        diff_refs = mr_data.get("diff_refs") or {}
        position = {
            "base_sha": diff_refs.get("base_sha"),
            "start_sha": diff_refs.get("start_sha"),
            "head_sha": diff_refs.get("head_sha"),
            "position_type": "text",
            "new_path": comment["file"],
            "new_line": comment["line"],
        }
        url = f"{self._merge_request_url(project_id, merge_request_iid)}/discussions"

        try:
            self._request_json(
                method="POST",
                url=url,
                json_payload={
                    "body": f"{INLINE_COMMENT_PREFIX}{comment['comment']}",
                    "position": position,
                },
            )
        except GitLabAPIError as exc:
            if exc.status_code == 400:
                logger.warning(
                    "Failed to post on %s:%s (line might be unchanged or out of bounds)",
                    comment["file"],
                    comment["line"],
                )
            else:
                logger.error(
                    "API error posting comment on %s:%s: %s",
                    comment["file"],
                    comment["line"],
                    exc,
                )
            return

        logger.info(
            "Posted inline comment: project_id=%s, mr_id=%s, file=%s, line=%s",
            project_id,
            merge_request_iid,
            comment["file"],
            comment["line"],
        )
