"""
Parse and validate patch text into a tuple of hunks. Nothing here checks that
the patch can actually be applied to any file.

Grammar:

    start: begin_patch hunk* end_patch
    begin_patch: "*** Begin Patch" LF
    end_patch: "*** End Patch" LF?

    hunk: add_hunk | delete_hunk | update_hunk
    add_hunk: "*** Add File: " filename LF add_line*
    delete_hunk: "*** Delete File: " filename LF
    update_hunk: "*** Update File: " filename LF change_move? change+
    filename: /(.+)/
    add_line: "+" /(.*)/ LF -> line

    change_move: "*** Move to: " filename LF
    change: change_context* change_line+ eof_line?
    change_context: ("@@" | "@@ " /(.+)/) LF
    change_line: ("+" | "-" | " ") /(.*)/ LF | LF
    eof_line: "*** End of File" LF

Whitespace around the envelope markers and hunk headers is tolerated.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from applypatch.logger import logger

from .errors import InvalidHunkError, InvalidPatchError
from .models import (
    AddFile,
    ApplyPatchArgs,
    DeleteFile,
    Hunk,
    ParseMode,
    UpdateFile,
    UpdateFileChunk,
)


BEGIN_PATCH_MARKER = "*** Begin Patch"
END_PATCH_MARKER = "*** End Patch"
ADD_FILE_MARKER = "*** Add File: "
DELETE_FILE_MARKER = "*** Delete File: "
UPDATE_FILE_MARKER = "*** Update File: "
MOVE_TO_MARKER = "*** Move to: "
EOF_MARKER = "*** End of File"
CHANGE_CONTEXT_MARKER = "@@ "
EMPTY_CHANGE_CONTEXT_MARKER = "@@"
HUNK_HEADER_PREFIX = "***"

HEREDOC_OPENERS = ("<<EOF", "<<'EOF'", '<<"EOF"')


def parse_patch(text: str, mode: ParseMode = ParseMode.lenient) -> ApplyPatchArgs:
    lines = text.strip().split("\n")

    try:
        check_patch_boundaries_strict(lines)
        body = lines
    except InvalidPatchError as e:
        if mode == ParseMode.strict:
            raise
        body = check_patch_boundaries_lenient(lines, e)
        logger.debug("patch parsed from heredoc wrapper", opener=lines[0].strip())

    hunks: List[Hunk] = []
    # Boundary checks guarantee at least two lines.
    remaining = body[1:-1]
    line_number = 2
    while remaining:
        hunk, consumed = parse_one_hunk(remaining, line_number)
        hunks.append(hunk)
        line_number += consumed
        remaining = remaining[consumed:]

    logger.debug("patch parsed", hunks=len(hunks), mode=mode.value)
    return ApplyPatchArgs(patch="\n".join(body), hunks=tuple(hunks))


def check_patch_boundaries_strict(lines: Sequence[str]) -> None:
    first = lines[0].strip() if lines else None
    last = lines[-1].strip() if lines else None
    if first == BEGIN_PATCH_MARKER and last == END_PATCH_MARKER:
        return
    if first != BEGIN_PATCH_MARKER:
        raise InvalidPatchError(
            f"The first line of the patch must be '{BEGIN_PATCH_MARKER}'"
        )
    raise InvalidPatchError(f"The last line of the patch must be '{END_PATCH_MARKER}'")


def check_patch_boundaries_lenient(
    lines: Sequence[str], original_error: InvalidPatchError
) -> List[str]:
    """
    Strip a literal heredoc wrapper: the first line is <<EOF (optionally quoted)
    and the last line ends with EOF. The two markers plus a minimal patch make
    four lines at least. Raises `original_error` when no wrapper is present.
    """
    if len(lines) >= 4:
        first = lines[0].strip()
        last = lines[-1].strip()
        if first in HEREDOC_OPENERS and last.endswith("EOF"):
            inner = list(lines[1:-1])
            check_patch_boundaries_strict(inner)
            return inner
    raise original_error


def parse_one_hunk(lines: Sequence[str], line_number: int) -> Tuple[Hunk, int]:
    """Parse the hunk at the head of `lines`; returns (hunk, lines consumed)."""
    first_line = lines[0].strip()

    if first_line.startswith(ADD_FILE_MARKER):
        path = first_line[len(ADD_FILE_MARKER) :]
        contents: List[str] = []
        consumed = 1
        for line in lines[1:]:
            if not line.startswith("+"):
                break
            contents.append(line[1:] + "\n")
            consumed += 1
        return AddFile(path=path, contents="".join(contents)), consumed

    if first_line.startswith(DELETE_FILE_MARKER):
        path = first_line[len(DELETE_FILE_MARKER) :]
        return DeleteFile(path=path), 1

    if first_line.startswith(UPDATE_FILE_MARKER):
        path = first_line[len(UPDATE_FILE_MARKER) :]
        remaining = list(lines[1:])
        consumed = 1

        move_path: Optional[str] = None
        if remaining and remaining[0].strip().startswith(MOVE_TO_MARKER):
            move_path = remaining[0].strip()[len(MOVE_TO_MARKER) :]
            remaining = remaining[1:]
            consumed += 1

        chunks: List[UpdateFileChunk] = []
        while remaining:
            # Blank lines may separate chunks.
            if remaining[0].strip() == "":
                consumed += 1
                remaining = remaining[1:]
                continue
            if remaining[0].startswith(HUNK_HEADER_PREFIX):
                break
            chunk, chunk_lines = parse_update_file_chunk(
                remaining, line_number + consumed, allow_missing_context=not chunks
            )
            chunks.append(chunk)
            consumed += chunk_lines
            remaining = remaining[chunk_lines:]

        if not chunks:
            raise InvalidHunkError(
                f"Update file hunk for path '{path}' is empty", line_number
            )
        return UpdateFile(path=path, move_path=move_path, chunks=tuple(chunks)), consumed

    raise InvalidHunkError(
        f"'{first_line}' is not a valid hunk header. Valid hunk headers: "
        f"'{ADD_FILE_MARKER}{{path}}', '{DELETE_FILE_MARKER}{{path}}', "
        f"'{UPDATE_FILE_MARKER}{{path}}'",
        line_number,
    )


def parse_update_file_chunk(
    lines: Sequence[str], line_number: int, allow_missing_context: bool
) -> Tuple[UpdateFileChunk, int]:
    """
    Parse one chunk of an Update hunk. `line_number` is the source line of
    lines[0]. Returns (chunk, lines consumed); a line that cannot belong to the
    chunk after at least one body line is left for the caller.
    """
    if not lines:
        raise InvalidHunkError("Update hunk does not contain any lines", line_number)

    # Consecutive @@ markers give nested anchors, e.g. a class then a method.
    context: List[str] = []
    start = 0
    while start < len(lines):
        line = lines[start]
        if line.rstrip() == EMPTY_CHANGE_CONTEXT_MARKER:
            start += 1
        elif line.startswith(CHANGE_CONTEXT_MARKER):
            part = line[len(CHANGE_CONTEXT_MARKER) :].strip()
            if part:
                context.append(part)
            start += 1
        else:
            break

    if start == 0 and not allow_missing_context:
        raise InvalidHunkError(
            f"Expected update hunk to start with a @@ context marker, got: '{lines[0]}'",
            line_number,
        )
    if start >= len(lines):
        raise InvalidHunkError(
            "Update hunk does not contain any lines", line_number + start
        )

    old_lines: List[str] = []
    new_lines: List[str] = []
    is_end_of_file = False
    body_lines = 0

    for offset, line in enumerate(lines[start:], start=start):
        if line.rstrip() == EOF_MARKER:
            if body_lines == 0:
                raise InvalidHunkError(
                    "Update hunk does not contain any lines", line_number + offset
                )
            is_end_of_file = True
            body_lines += 1
            break

        if line == "":
            old_lines.append("")
            new_lines.append("")
        elif line[0] == " ":
            old_lines.append(line[1:])
            new_lines.append(line[1:])
        elif line[0] == "+":
            new_lines.append(line[1:])
        elif line[0] == "-":
            old_lines.append(line[1:])
        elif body_lines == 0:
            raise InvalidHunkError(
                f"Unexpected line found in update hunk: '{line}'. Every line should "
                "start with ' ' (context line), '+' (added line), or '-' (removed line)",
                line_number + offset,
            )
        else:
            # Start of the next hunk or chunk.
            break
        body_lines += 1

    chunk = UpdateFileChunk(
        change_context=tuple(context),
        old_lines=tuple(old_lines),
        new_lines=tuple(new_lines),
        is_end_of_file=is_end_of_file,
    )
    return chunk, start + body_lines
