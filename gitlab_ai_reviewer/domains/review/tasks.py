from dataclasses import dataclass


@dataclass(frozen=True)
class MergeRequestReviewTask:
    project_id: int
    merge_request_iid: int
    old_rev: str | None = None
    new_rev: str | None = None
