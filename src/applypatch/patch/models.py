from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union


class ParseMode(str, Enum):
    # Parse the patch text as is.
    strict = "strict"
    # Additionally accept a patch wrapped in a literal heredoc (<<'EOF' ... EOF),
    # as emitted by callers that pass shell syntax through an exec-style argv.
    lenient = "lenient"


@dataclass(frozen=True)
class UpdateFileChunk:
    # Anchor lines (class/method headers) that position the search cursor,
    # resolved in order. Never rewritten.
    change_context: Tuple[str, ...] = ()
    # Contiguous block replaced by new_lines; must occur after change_context.
    old_lines: Tuple[str, ...] = ()
    new_lines: Tuple[str, ...] = ()
    # old_lines must occur at the end of the file.
    is_end_of_file: bool = False


@dataclass(frozen=True)
class AddFile:
    path: str
    contents: str


@dataclass(frozen=True)
class DeleteFile:
    path: str


@dataclass(frozen=True)
class UpdateFile:
    path: str
    move_path: Optional[str] = None
    chunks: Tuple[UpdateFileChunk, ...] = ()


Hunk = Union[AddFile, DeleteFile, UpdateFile]


@dataclass(frozen=True)
class ApplyPatchArgs:
    patch: str
    hunks: Tuple[Hunk, ...] = field(default_factory=tuple)
    workdir: Optional[str] = None
