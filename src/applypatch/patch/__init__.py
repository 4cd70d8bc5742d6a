from __future__ import annotations

import pathlib
from typing import Optional

from .apply import (
    AddChange,
    AffectedPaths,
    AppliedPatch,
    ApplyPatchFileUpdate,
    DeleteChange,
    FileChange,
    UpdateChange,
    apply_hunks,
    derive_new_contents_from_chunks,
    plan_changes,
    unified_diff_from_chunks,
)
from .diff import unified_diff
from .errors import (
    ApplyPatchError,
    ComputeReplacementsError,
    DiffError,
    InvalidHunkError,
    InvalidPatchError,
    ParseError,
    PatchIOError,
    UnsafePathError,
)
from .files import (
    FileSystemPatchFileOps,
    InMemoryPatchFileOps,
    PatchFileOps,
    validate_hunk_paths,
)
from .models import (
    AddFile,
    ApplyPatchArgs,
    DeleteFile,
    Hunk,
    ParseMode,
    UpdateFile,
    UpdateFileChunk,
)
from .parser import parse_patch
from .replace import apply_replacements, compute_replacements, derive_new_contents
from .seek import MatchTier, seek_sequence, seek_sequence_tier


APPLY_PATCH_TOOL_INSTRUCTIONS = r"""# apply_patch format

Wrap all changes in one envelope:
```
*** Begin Patch
[YOUR_PATCH]
*** End Patch
```

[YOUR_PATCH] is a concatenation of file sections. Allowed section headers:
- `*** Add File: <relative/path>`: every following line starts with `+` and is the new file content.
- `*** Delete File: <relative/path>`: nothing follows.
- `*** Update File: <relative/path>`: optionally followed by `*** Move to: <relative/new/path>`, then change blocks.

Change blocks:
```
@@ class BaseClass
@@     def method_name(self):
 [context line]
-[old line]
+[new line]
 [context line]
```
- `@@` starts a block. Text after `@@ ` names a line (class, function) that occurs
  before the change; stack several `@@` lines to narrow down nested scopes.
- Context lines start with a single space, removed lines with `-`, added lines with `+`.
- Keep 3 lines of context above and below each change unless that would overlap another block.
- Order blocks top-to-bottom as they occur in the file.
- End a block with `*** End of File` when its lines are at the very end of the file.
- Paths are relative, never absolute.

## Minimal example
```
*** Begin Patch
*** Add File: hello.txt
+Hello world
*** Update File: src/app.py
*** Move to: src/main.py
@@ def greet():
-print("Hi")
+print("Hello, world!")
*** Delete File: obsolete.txt
*** End Patch
```
"""


def apply_patch(
    text: str,
    base_path: pathlib.Path,
    ops: Optional[PatchFileOps] = None,
    *,
    mode: ParseMode = ParseMode.lenient,
    check_paths: bool = True,
) -> AffectedPaths:
    """
    Parse `text` and apply it under base_path.
    If ops is not provided, a file-backed implementation under base_path is used.
    Raises DiffError (or a subclass) on the first failure.
    """
    args = parse_patch(text, mode)
    if check_paths:
        validate_hunk_paths(args.hunks)
    file_ops = ops or FileSystemPatchFileOps(base_path)
    return apply_hunks(args.hunks, file_ops)


__all__ = [
    "APPLY_PATCH_TOOL_INSTRUCTIONS",
    "AddChange",
    "AddFile",
    "AffectedPaths",
    "AppliedPatch",
    "ApplyPatchArgs",
    "ApplyPatchError",
    "ApplyPatchFileUpdate",
    "ComputeReplacementsError",
    "DeleteChange",
    "DeleteFile",
    "DiffError",
    "FileChange",
    "FileSystemPatchFileOps",
    "Hunk",
    "InMemoryPatchFileOps",
    "InvalidHunkError",
    "InvalidPatchError",
    "MatchTier",
    "ParseError",
    "ParseMode",
    "PatchFileOps",
    "PatchIOError",
    "UnsafePathError",
    "UpdateChange",
    "UpdateFile",
    "UpdateFileChunk",
    "apply_hunks",
    "apply_patch",
    "apply_replacements",
    "compute_replacements",
    "derive_new_contents",
    "derive_new_contents_from_chunks",
    "parse_patch",
    "plan_changes",
    "seek_sequence",
    "seek_sequence_tier",
    "unified_diff",
    "unified_diff_from_chunks",
    "validate_hunk_paths",
]
