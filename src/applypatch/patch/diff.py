from __future__ import annotations

import difflib
from typing import List, Sequence

NO_NEWLINE_MARKER = "\\ No newline at end of file"


def _range(start: int, length: int) -> str:
    # An empty range is reported at the line before it.
    if length == 0:
        return f"{start},0"
    return f"{start + 1},{length}"


def _emit(out: List[str], prefix: str, line: str) -> None:
    if line.endswith("\n"):
        out.append(f"{prefix}{line[:-1]}\n")
    else:
        out.append(f"{prefix}{line}\n")
        out.append(f"{NO_NEWLINE_MARKER}\n")


def unified_diff_lines(
    old_lines: Sequence[str], new_lines: Sequence[str], context: int = 1
) -> List[str]:
    """
    Diff two sequences of lines that keep their line endings. Each hunk starts
    with a '@@ -a,b +c,d @@' header.
    """
    out: List[str] = []
    matcher = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)
    for group in matcher.get_grouped_opcodes(context):
        i1, i2 = group[0][1], group[-1][2]
        j1, j2 = group[0][3], group[-1][4]
        out.append(f"@@ -{_range(i1, i2 - i1)} +{_range(j1, j2 - j1)} @@\n")
        for tag, a1, a2, b1, b2 in group:
            if tag == "equal":
                for line in old_lines[a1:a2]:
                    _emit(out, " ", line)
                continue
            if tag in ("replace", "delete"):
                for line in old_lines[a1:a2]:
                    _emit(out, "-", line)
            if tag in ("replace", "insert"):
                for line in new_lines[b1:b2]:
                    _emit(out, "+", line)
    return out


def unified_diff(old: str, new: str, context: int = 1) -> str:
    """Unified diff hunks (no file headers) between two texts."""
    return "".join(
        unified_diff_lines(
            old.splitlines(keepends=True), new.splitlines(keepends=True), context
        )
    )
