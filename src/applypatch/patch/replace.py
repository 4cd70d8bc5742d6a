from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .errors import ComputeReplacementsError
from .models import UpdateFileChunk
from .seek import seek_sequence


@dataclass(frozen=True)
class Replacement:
    start: int
    old_len: int
    new_lines: Tuple[str, ...]


def _format_block(lines: Sequence[str]) -> str:
    return "\n".join(f"  | {ln}" for ln in lines)


def _resolve_context(
    lines: Sequence[str], path: str, chunk: UpdateFileChunk, cursor: int
) -> int:
    """Advance the cursor past each context anchor in turn."""
    context = chunk.change_context
    for part in context:
        idx = seek_sequence(lines, [part], cursor, False)
        if idx is None:
            if len(context) == 1:
                raise ComputeReplacementsError(
                    f"Failed to find context '{part}' in {path}", path
                )
            raise ComputeReplacementsError(
                f"Failed to find context part '{part}' in {path} "
                f"(looking for: {' -> '.join(context)})",
                path,
            )
        cursor = idx + 1
    return cursor


def compute_replacements(
    original_lines: Sequence[str],
    path: str,
    chunks: Sequence[UpdateFileChunk],
) -> List[Replacement]:
    """
    Locate every chunk in `original_lines` and return the edits that turn them
    into the new lines. Chunks are searched in order from a cursor that only
    moves forward; end-of-file chunks are anchored at the tail instead.
    """
    replacements: List[Replacement] = []
    cursor = 0

    for chunk in chunks:
        if chunk.change_context:
            cursor = _resolve_context(original_lines, path, chunk, cursor)

        if not chunk.old_lines:
            # Pure addition: goes before a trailing empty line, else at the end.
            if original_lines and original_lines[-1] == "":
                insertion_idx = len(original_lines) - 1
            else:
                insertion_idx = len(original_lines)
            replacements.append(Replacement(insertion_idx, 0, tuple(chunk.new_lines)))
            continue

        pattern: Sequence[str] = chunk.old_lines
        new_slice: Sequence[str] = chunk.new_lines
        found = seek_sequence(original_lines, pattern, cursor, chunk.is_end_of_file)

        if found is None and pattern[-1] == "":
            # The trailing empty line stands for the file's final newline,
            # which is not part of the line buffer.
            pattern = pattern[:-1]
            if new_slice and new_slice[-1] == "":
                new_slice = new_slice[:-1]
            found = seek_sequence(
                original_lines, pattern, cursor, chunk.is_end_of_file
            )

        if found is None:
            raise ComputeReplacementsError(
                f"Failed to find expected lines in {path}:\n"
                f"{_format_block(chunk.old_lines)}",
                path,
            )

        replacements.append(Replacement(found, len(pattern), tuple(new_slice)))
        cursor = found + len(pattern)

    return replacements


def apply_replacements(
    lines: Sequence[str], replacements: Sequence[Replacement]
) -> List[str]:
    """
    Splice replacements into a copy of `lines`. Edits are applied from the
    highest start index down so earlier indices stay valid; edits sharing a
    start index keep their chunk order in the result.
    """
    result = list(lines)
    ordered = sorted(
        enumerate(replacements), key=lambda p: (p[1].start, p[0]), reverse=True
    )
    for _, rep in ordered:
        result[rep.start : rep.start + rep.old_len] = rep.new_lines
    return result


def derive_new_contents(
    original: str, path: str, chunks: Sequence[UpdateFileChunk]
) -> str:
    """Return the full new text of a file after applying `chunks` to `original`."""
    lines = original.split("\n")
    # Drop the empty element produced by the final newline so line counts
    # match those of diff.
    if lines and lines[-1] == "":
        lines.pop()

    new_lines = apply_replacements(lines, compute_replacements(lines, path, chunks))
    if not new_lines or new_lines[-1] != "":
        new_lines.append("")
    return "\n".join(new_lines)
