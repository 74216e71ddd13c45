import re
from typing import List


MAX_DIFF_CHARS = 15000
TRUNCATION_MARKER = "\n... [Diff Truncated by AI System] ..."
REMOVED_LINE_TAG = "REM"

_LINE_SPLIT_RE = re.compile(r"\r?\n")
_NEW_START_RE = re.compile(r"\+(\d+)")


def annotate_diff(diff: str) -> str:
    """Prefix every line that exists in the new file with its line number.

    Added and context lines become ``"<n>| <line>"``. Removed lines become
    ``"REM| <line>"`` and do not advance the counter. Chunk headers reset the
    counter to the new-file start of the hunk. Lines seen before the first
    chunk header are passed through unnumbered.
    """
    if not diff:
        return ""

    current_line: int | None = None
    processed: List[str] = []

    for line in _LINE_SPLIT_RE.split(diff):
        if not line:
            continue

        if line.startswith("@@"):
            match = _NEW_START_RE.search(line)
            if match:
                current_line = int(match.group(1))
            processed.append(line)
            continue

        if current_line is None:
            processed.append(line)
            continue

        if line.startswith("+") or line.startswith(" "):
            processed.append(f"{current_line}| {line}")
            current_line += 1
        elif line.startswith("-"):
            processed.append(f"{REMOVED_LINE_TAG}| {line}")
        else:
            # "\ No newline at end of file" and similar
            processed.append(line)

    return "\n".join(processed)


def truncate_diff(text: str, max_chars: int = MAX_DIFF_CHARS) -> str:
    if not text:
        return ""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + TRUNCATION_MARKER
