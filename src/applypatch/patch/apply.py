from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, TypeVar, Union

from applypatch.logger import logger

from .diff import unified_diff
from .errors import ApplyPatchError, DiffError, PatchIOError
from .files import PatchFileOps
from .models import AddFile, DeleteFile, Hunk, UpdateFile, UpdateFileChunk
from .replace import derive_new_contents

T = TypeVar("T")


@dataclass
class AffectedPaths:
    added: List[str] = field(default_factory=list)
    modified: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)

    def summary(self) -> str:
        lines = ["Success. Updated the following files:"]
        lines.extend(f"A {p}" for p in self.added)
        lines.extend(f"M {p}" for p in self.modified)
        lines.extend(f"D {p}" for p in self.deleted)
        return "\n".join(lines)


@dataclass(frozen=True)
class AppliedPatch:
    original_contents: str
    new_contents: str


@dataclass(frozen=True)
class ApplyPatchFileUpdate:
    unified_diff: str
    content: str


@dataclass(frozen=True)
class AddChange:
    content: str


@dataclass(frozen=True)
class DeleteChange:
    content: str


@dataclass(frozen=True)
class UpdateChange:
    unified_diff: str
    move_path: Optional[str]
    new_content: str


FileChange = Union[AddChange, DeleteChange, UpdateChange]


def _io(context: str, fn: Callable[..., T], *args: object) -> T:
    try:
        return fn(*args)
    except OSError as e:
        raise PatchIOError(context, e) from e


def derive_new_contents_from_chunks(
    path: str,
    chunks: Sequence[UpdateFileChunk],
    open_fn: Callable[[str], str],
) -> AppliedPatch:
    original = _io(f"Failed to read file to update {path}", open_fn, path)
    return AppliedPatch(original, derive_new_contents(original, path, chunks))


def unified_diff_from_chunks(
    path: str,
    chunks: Sequence[UpdateFileChunk],
    open_fn: Callable[[str], str],
    context: int = 1,
) -> ApplyPatchFileUpdate:
    applied = derive_new_contents_from_chunks(path, chunks, open_fn)
    return ApplyPatchFileUpdate(
        unified_diff=unified_diff(
            applied.original_contents, applied.new_contents, context
        ),
        content=applied.new_contents,
    )


def apply_hunks(hunks: Sequence[Hunk], ops: PatchFileOps) -> AffectedPaths:
    """
    Apply hunks through `ops`, one at a time in patch order. Stops at the first
    failure; writes already performed for earlier hunks are kept.
    """
    if not hunks:
        raise ApplyPatchError("No files were modified.")

    affected = AffectedPaths()
    for hunk in hunks:
        if isinstance(hunk, AddFile):
            _io(f"Failed to write file {hunk.path}", ops.write, hunk.path, hunk.contents)
            logger.info("file added", path=hunk.path)
            affected.added.append(hunk.path)
        elif isinstance(hunk, DeleteFile):
            _io(f"Failed to delete file {hunk.path}", ops.delete, hunk.path)
            logger.info("file deleted", path=hunk.path)
            affected.deleted.append(hunk.path)
        elif isinstance(hunk, UpdateFile):
            try:
                applied = derive_new_contents_from_chunks(
                    hunk.path, hunk.chunks, ops.open
                )
            except DiffError as e:
                logger.warning("file update failed", path=hunk.path, err=str(e))
                raise
            if hunk.move_path and hunk.move_path != hunk.path:
                _io(
                    f"Failed to write file {hunk.move_path}",
                    ops.write,
                    hunk.move_path,
                    applied.new_contents,
                )
                _io(f"Failed to remove original {hunk.path}", ops.delete, hunk.path)
                logger.info("file moved", path=hunk.path, move_path=hunk.move_path)
                affected.modified.append(hunk.move_path)
            else:
                _io(
                    f"Failed to write file {hunk.path}",
                    ops.write,
                    hunk.path,
                    applied.new_contents,
                )
                logger.info("file updated", path=hunk.path, chunks=len(hunk.chunks))
                affected.modified.append(hunk.path)
        else:
            raise TypeError(f"Unknown hunk type: {type(hunk).__name__}")
    return affected


def plan_changes(
    hunks: Sequence[Hunk],
    open_fn: Callable[[str], str],
    *,
    resolve: Optional[Callable[[str], str]] = None,
    context: int = 1,
) -> Dict[str, FileChange]:
    """
    Compute the change each hunk would make without writing anything.
    Keys (and move paths) are passed through `resolve` when given.
    """
    to_key = resolve or (lambda p: p)
    changes: Dict[str, FileChange] = {}
    for hunk in hunks:
        key = to_key(hunk.path)
        if isinstance(hunk, AddFile):
            changes[key] = AddChange(content=hunk.contents)
        elif isinstance(hunk, DeleteFile):
            content = _io(f"Failed to read {key}", open_fn, key)
            changes[key] = DeleteChange(content=content)
        elif isinstance(hunk, UpdateFile):
            update = unified_diff_from_chunks(key, hunk.chunks, open_fn, context)
            changes[key] = UpdateChange(
                unified_diff=update.unified_diff,
                move_path=to_key(hunk.move_path) if hunk.move_path else None,
                new_content=update.content,
            )
        else:
            raise TypeError(f"Unknown hunk type: {type(hunk).__name__}")
    return changes
