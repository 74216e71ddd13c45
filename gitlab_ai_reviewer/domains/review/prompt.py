import json
from typing import List

from gitlab_ai_reviewer.domains.review.diff_annotator import (
    MAX_DIFF_CHARS,
    annotate_diff,
    truncate_diff,
)
from gitlab_ai_reviewer.domains.review.filters import review_path
from gitlab_ai_reviewer.shared.types import AnnotatedDiff, ChatMessageDict, GitDiffChange


DEFAULT_SYSTEM_INSTRUCTION = """
ROLE: Senior Software Architect & Security Engineer.
TASK: Review the code changes of a GitLab Merge Request.

RULES:
1. Focus on: Logic Errors, Security Vulnerabilities, Crash Risks, and Performance bottlenecks.
2. IGNORE: Formatting, indentation, simple naming preferences, or missing comments.
3. Be constructive and provide code solutions.

INPUT DATA:
A JSON array of {"file", "diff"} objects. Every diff has explicit line numbers
added as "LineNumber| Code".

OUTPUT FORMAT:
Return a valid JSON ARRAY ONLY. No markdown, no code blocks, no prose.
Structure:
[
  {
    "file": "src/app.py",
    "line": 14,
    "comment": "Critical: This variable can be None. Guard before dereferencing."
  }
]
Return [] when there is nothing worth reporting.

IMPORTANT INSTRUCTIONS FOR LINE NUMBERS:
- The input diffs have explicit line numbers added at the start of valid lines.
- Example input: "55| + x = 1" -> This is line 55.
- You MUST use the integer provided before the pipe "|" symbol as the "line" value.
- Do NOT count lines yourself. TRUST the numbers provided in the text.
- Do not comment on lines marked "REM|" (Deleted lines).
"""


def build_annotated_diffs(
    changes: List[GitDiffChange],
    *,
    max_chars: int = MAX_DIFF_CHARS,
) -> List[AnnotatedDiff]:
    return [
        {
            "file": review_path(change) or "",
            "diff": truncate_diff(annotate_diff(change.get("diff", "")), max_chars),
        }
        for change in changes
    ]


def generate_review_prompt(
    changes: List[GitDiffChange],
    *,
    system_instruction: str | None = None,
    max_chars: int = MAX_DIFF_CHARS,
) -> List[ChatMessageDict]:
    """Turn filtered diffs into the chat messages sent to the LLM."""
    annotated = build_annotated_diffs(changes, max_chars=max_chars)
    instruction = system_instruction or DEFAULT_SYSTEM_INSTRUCTION

    return [
        {
            "role": "system",
            "content": instruction,
        },
        {
            "role": "user",
            "content": (
                "Review the following diffs and answer with the JSON array only:\n\n"
                f"{json.dumps(annotated, ensure_ascii=False)}"
            ),
        },
    ]
