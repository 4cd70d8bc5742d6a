from __future__ import annotations

from typing import Optional


class DiffError(ValueError):
    """Any problem detected while parsing or applying a patch."""


class ParseError(DiffError):
    def __init__(self, message: str, line_number: Optional[int] = None):
        super().__init__(message)
        self.line_number = line_number


class InvalidPatchError(ParseError):
    """The patch envelope (begin/end markers) is malformed."""

    def __init__(self, message: str):
        super().__init__(f"invalid patch: {message}")
        self.reason = message


class InvalidHunkError(ParseError):
    """A hunk header or chunk body could not be parsed."""

    def __init__(self, message: str, line_number: int):
        super().__init__(f"invalid hunk at line {line_number}, {message}", line_number)
        self.reason = message


class ComputeReplacementsError(DiffError):
    """A context anchor or old-line block was not found in the target file."""

    def __init__(self, message: str, path: str):
        super().__init__(message)
        self.path = path


class ApplyPatchError(DiffError):
    pass


class UnsafePathError(DiffError):
    def __init__(self, message: str, path: str):
        super().__init__(message)
        self.path = path


class PatchIOError(DiffError):
    """Wraps an OSError raised by the file ops adapter."""

    def __init__(self, context: str, source: OSError):
        super().__init__(f"{context}: {source}")
        self.context = context
        self.source = source
