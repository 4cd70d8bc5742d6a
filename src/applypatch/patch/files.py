from __future__ import annotations

import os
import pathlib
import re
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Mapping, Optional

from .errors import DiffError, UnsafePathError
from .models import AddFile, DeleteFile, Hunk, UpdateFile


class PatchFileOps(ABC):
    """
    Abstract contract for file operations used by the apply layer.
    Implementations must handle path safety and track the changes map.
    """

    @abstractmethod
    def open(self, rel: str) -> str: ...

    @abstractmethod
    def write(self, rel: str, content: str) -> None: ...

    @abstractmethod
    def delete(self, rel: str) -> None: ...

    @property
    @abstractmethod
    def changes_map(self) -> Dict[str, str]:
        """
        A map of relative file paths to change kind: 'created' | 'updated' | 'deleted'.
        """
        ...


class _ChangeRecorder:
    def __init__(self) -> None:
        self._changes: Dict[str, str] = {}

    def _record(self, rel: str, change: str) -> None:
        prev = self._changes.get(rel)
        if prev is None:
            self._changes[rel] = change
            return
        if change == "deleted":
            self._changes[rel] = change
        elif change == "updated" and prev != "deleted":
            self._changes[rel] = change
        elif change == "created" and prev == "deleted":
            # Deleted then recreated within the same patch.
            self._changes[rel] = "updated"

    @property
    def changes_map(self) -> Dict[str, str]:
        return self._changes


class FileSystemPatchFileOps(_ChangeRecorder, PatchFileOps):
    """
    File-backed implementation that keeps every path under base_path and
    records change kinds.
    """

    def __init__(self, base_path: pathlib.Path):
        super().__init__()
        self._base_path = base_path

    def _resolve_safe_path(self, rel: str) -> pathlib.Path:
        abs_path = (self._base_path / rel).resolve()
        base_resolved = self._base_path.resolve()
        if abs_path == base_resolved or base_resolved in abs_path.parents:
            return abs_path
        raise DiffError(f"Path escapes project root: {rel}")

    def open(self, rel: str) -> str:
        path = self._resolve_safe_path(rel)
        with path.open("rt", encoding="utf-8", newline="") as fh:
            return fh.read()

    def write(self, rel: str, content: str) -> None:
        path = self._resolve_safe_path(rel)
        existed = path.exists()
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("wt", encoding="utf-8", newline="") as fh:
            fh.write(content)
        self._record(rel, "updated" if existed else "created")

    def delete(self, rel: str) -> None:
        path = self._resolve_safe_path(rel)
        path.unlink()
        self._record(rel, "deleted")


class InMemoryPatchFileOps(_ChangeRecorder, PatchFileOps):
    """Dict-backed implementation, for embedding callers and tests."""

    def __init__(self, files: Optional[Mapping[str, str]] = None):
        super().__init__()
        self.files: Dict[str, str] = dict(files or {})

    def open(self, rel: str) -> str:
        try:
            return self.files[rel]
        except KeyError:
            raise FileNotFoundError(rel) from None

    def write(self, rel: str, content: str) -> None:
        existed = rel in self.files
        self.files[rel] = content
        self._record(rel, "updated" if existed else "created")

    def delete(self, rel: str) -> None:
        if rel not in self.files:
            raise FileNotFoundError(rel)
        del self.files[rel]
        self._record(rel, "deleted")


def is_relative_path(p: str) -> bool:
    # Reject absolute POSIX and Windows (drive or UNC) paths
    if not p:
        return False
    if p.startswith("/") or p.startswith("\\"):
        return False
    if re.match(r"^[A-Za-z]:[\\/]", p):
        return False
    return not os.path.isabs(os.path.normpath(p))


def has_traversal(p: str) -> bool:
    return "../" in p or "..\\" in p or p == ".."


def _hunk_paths(hunk: Hunk) -> Iterable[str]:
    if isinstance(hunk, (AddFile, DeleteFile)):
        return (hunk.path,)
    if isinstance(hunk, UpdateFile):
        if hunk.move_path is not None:
            return (hunk.path, hunk.move_path)
        return (hunk.path,)
    raise TypeError(f"Unknown hunk type: {type(hunk).__name__}")


def validate_hunk_paths(hunks: Iterable[Hunk]) -> None:
    """
    Standalone-mode check: file references must be relative and must not walk
    out of the working directory.
    """
    for hunk in hunks:
        for p in _hunk_paths(hunk):
            if not is_relative_path(p):
                raise UnsafePathError(
                    f"File references can only be relative, never absolute. Got: {p}",
                    p,
                )
            if has_traversal(p):
                raise UnsafePathError(
                    f"Path contains directory traversal which is not allowed. Got: {p}",
                    p,
                )
