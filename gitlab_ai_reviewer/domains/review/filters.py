from typing import Any, Iterable, List, Mapping

from gitlab_ai_reviewer.shared.types import GitDiffChange


IGNORED_EXTENSIONS = (
    ".lock",
    ".png",
    ".jpg",
    ".svg",
    ".json",
    ".md",
)


def review_path(change: Mapping[str, Any]) -> str | None:
    return change.get("new_path") or change.get("old_path")


def is_reviewable(change: Mapping[str, Any]) -> bool:
    path = review_path(change)
    if not path:
        return False
    if change.get("deleted_file"):
        return False
    return not path.endswith(IGNORED_EXTENSIONS)


def filter_reviewable(changes: Iterable[Mapping[str, Any]]) -> List[GitDiffChange]:
    return [change for change in changes if is_reviewable(change)]  # type: ignore[misc]


def normalize_diffs(changes: Iterable[Mapping[str, Any]]) -> List[GitDiffChange]:
    """Map MR-changes and compare-endpoint entries onto one diff shape.

    The two endpoints return slightly different objects (the compare endpoint
    adds ``a_mode``/``b_mode`` and may omit flags); only the fields the review
    pipeline reads are kept.
    """
    normalized: List[GitDiffChange] = []
    for change in changes:
        normalized.append(
            {
                "old_path": change.get("old_path") or "",
                "new_path": change.get("new_path") or "",
                "diff": change.get("diff") or "",
                "new_file": bool(change.get("new_file", False)),
                "deleted_file": bool(change.get("deleted_file", False)),
                "renamed_file": bool(change.get("renamed_file", False)),
            }
        )
    return normalized
