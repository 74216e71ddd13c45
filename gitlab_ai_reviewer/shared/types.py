from typing import List, NotRequired, TypedDict


class GitDiffChange(TypedDict, total=False):
    """GitLab diff entry fields used by this project."""

    old_path: str
    new_path: str
    new_file: bool
    deleted_file: bool
    renamed_file: bool
    diff: str


class DiffRefs(TypedDict, total=False):
    base_sha: str
    start_sha: str
    head_sha: str


class MergeRequestChangesResponse(TypedDict, total=False):
    """Subset of MR changes response used by this project."""

    iid: int
    updated_at: str
    diff_refs: DiffRefs
    changes: List[GitDiffChange]


class ApprovalUser(TypedDict, total=False):
    username: str


class ApprovalRecord(TypedDict, total=False):
    user: ApprovalUser
    approved_at: str


class MergeRequestApprovalsResponse(TypedDict, total=False):
    approved_by: List[ApprovalRecord]


class CommitComparisonResponse(TypedDict, total=False):
    diffs: List[GitDiffChange]


class AnnotatedDiff(TypedDict):
    """Line-numbered diff handed to the LLM."""

    file: str
    diff: str


class ReviewComment(TypedDict):
    """Single inline finding returned by the LLM."""

    file: str
    line: int
    comment: str


class ReReviewStatus(TypedDict):
    should_notify: bool
    approver_usernames: List[str]


class ChatMessageDict(TypedDict):
    """Single chat message payload."""

    role: str
    content: str


class LLMReviewResult(TypedDict, total=False):
    """LLM response content plus metadata."""

    content: str
    provider: str
    model: str
    elapsed_seconds: float
    input_tokens: NotRequired[int]
    output_tokens: NotRequired[int]
    total_tokens: NotRequired[int]
