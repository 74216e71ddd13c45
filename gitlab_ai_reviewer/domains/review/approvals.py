from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, List, Mapping

from gitlab_ai_reviewer.shared.types import ReReviewStatus


logger = logging.getLogger(__name__)

RE_REVIEW_NOTIFICATION_TEMPLATE = (
    "🔔 **Approval Status Changed**\n"
    "\n"
    "{mentions}\n"
    "\n"
    "⚠️ **New commits were pushed after your approval.**\n"
    "\n"
    "Please review the latest changes to ensure everything still looks good before the merge.\n"
    "\n"
    "---\n"
    "*This is an automated notification from the AI Code Review Bot.*"
)


def _parse_timestamp(value: Any) -> datetime | None:
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Ignoring unparseable timestamp: %s", value)
        return None


def compute_re_review_status(
    mr: Mapping[str, Any],
    approvals: Mapping[str, Any],
) -> ReReviewStatus:
    """Find approvers whose approval predates the latest MR update."""
    approvers = approvals.get("approved_by") or []
    if not approvers:
        return {"should_notify": False, "approver_usernames": []}

    mr_updated_at = _parse_timestamp(mr.get("updated_at"))
    requires_re_review = False
    usernames: List[str] = []

    for approval in approvers:
        if not isinstance(approval, Mapping):
            logger.warning("Skipping malformed approval record: %r", approval)
            continue
        approved_at = _parse_timestamp(approval.get("approved_at"))
        if mr_updated_at is None or approved_at is None:
            continue
        try:
            is_stale = mr_updated_at > approved_at
        except TypeError:
            # naive vs aware datetimes
            logger.warning(
                "Cannot compare approval timestamp %s with MR updated_at %s",
                approval.get("approved_at"),
                mr.get("updated_at"),
            )
            continue
        if not is_stale:
            continue

        requires_re_review = True
        user = approval.get("user")
        username = user.get("username") if isinstance(user, Mapping) else None
        if username:
            usernames.append(username)

    return {"should_notify": requires_re_review, "approver_usernames": usernames}


def build_re_review_notification(usernames: List[str]) -> str:
    if not usernames:
        return ""

    unique_usernames = list(dict.fromkeys(usernames))
    mentions = " ".join(f"@{username}" for username in unique_usernames)
    return RE_REVIEW_NOTIFICATION_TEMPLATE.format(mentions=mentions)
