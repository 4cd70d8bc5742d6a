"""
Recognise an apply_patch invocation in an exec-style argv and pull out the
patch text.

Accepted shapes:

    ["apply_patch", PATCH]          (or "applypatch")
    ["bash", "-lc", SCRIPT]

where SCRIPT is a single statement, either

    apply_patch <<'EOF'
    ...
    EOF

or the same preceded by `cd <dir> &&`. Anything else is not an apply_patch
call: chained commands, `;`, `||`, pipes, extra arguments.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence, Tuple, Union

from applypatch.logger import logger
from applypatch.patch import (
    ApplyPatchArgs,
    DiffError,
    FileChange,
    ParseError,
    parse_patch,
    plan_changes,
)

APPLY_PATCH_COMMANDS = ("apply_patch", "applypatch")

_APPLY = r"(?:apply_patch|applypatch)"
# <<EOF, <<'EOF' or <<"EOF"; group names are filled in per pattern.
_HEREDOC = r"<<(?P<q>['\"]?)(?P<delim>\w+)(?P=q)[ \t]*\n(?P<body>.*?)\n(?P=delim)\s*"

_HEREDOC_PATTERNS: Tuple[re.Pattern, ...] = (
    re.compile(rf"^\s*{_APPLY}\s+{_HEREDOC}$", re.S),
    re.compile(rf"^\s*cd\s+(?P<cd>[^\s&|;'\"]+)\s+&&\s+{_APPLY}\s+{_HEREDOC}$", re.S),
    re.compile(rf"^\s*cd\s+\"(?P<cd>[^\"]+)\"\s+&&\s+{_APPLY}\s+{_HEREDOC}$", re.S),
    re.compile(rf"^\s*cd\s+'(?P<cd>[^']+)'\s+&&\s+{_APPLY}\s+{_HEREDOC}$", re.S),
)


class ExtractHeredocError(Exception):
    """The script is not a single apply_patch heredoc statement."""


@dataclass(frozen=True)
class PatchBody:
    args: ApplyPatchArgs


@dataclass(frozen=True)
class PatchParseFailure:
    error: ParseError


@dataclass(frozen=True)
class NotApplyPatch:
    pass


MaybeApplyPatch = Union[PatchBody, PatchParseFailure, NotApplyPatch]


@dataclass
class ApplyPatchAction:
    changes: Dict[str, FileChange] = field(default_factory=dict)
    patch: str = ""
    cwd: str = ""

    def is_empty(self) -> bool:
        return not self.changes


@dataclass(frozen=True)
class VerifiedBody:
    action: ApplyPatchAction


@dataclass(frozen=True)
class CorrectnessFailure:
    error: DiffError


MaybeApplyPatchVerified = Union[VerifiedBody, CorrectnessFailure, NotApplyPatch]


def extract_heredoc_body_from_apply_patch_command(
    src: str,
) -> Tuple[str, Optional[str]]:
    """Return (heredoc body, cd directory or None) for a bash -lc script."""
    for pattern in _HEREDOC_PATTERNS:
        m = pattern.match(src)
        if m is None:
            continue
        cd = m.groupdict().get("cd")
        return m.group("body"), cd
    raise ExtractHeredocError("CommandDidNotStartWithApplyPatch")


def maybe_parse_apply_patch(argv: Sequence[str]) -> MaybeApplyPatch:
    if len(argv) == 2 and argv[0] in APPLY_PATCH_COMMANDS:
        try:
            return PatchBody(parse_patch(argv[1]))
        except ParseError as e:
            return PatchParseFailure(e)

    if len(argv) == 3 and argv[0] == "bash" and argv[1] == "-lc":
        try:
            body, workdir = extract_heredoc_body_from_apply_patch_command(argv[2])
        except ExtractHeredocError:
            return NotApplyPatch()
        try:
            parsed = parse_patch(body)
        except ParseError as e:
            return PatchParseFailure(e)
        return PatchBody(
            ApplyPatchArgs(patch=parsed.patch, hunks=parsed.hunks, workdir=workdir)
        )

    return NotApplyPatch()


def _read_file(path: str) -> str:
    with open(path, "rt", encoding="utf-8", newline="") as fh:
        return fh.read()


def maybe_parse_apply_patch_verified(
    argv: Sequence[str],
    cwd: Union[str, Path],
    open_fn: Optional[Callable[[str], str]] = None,
    context: int = 1,
) -> MaybeApplyPatchVerified:
    """
    Like maybe_parse_apply_patch, but also resolves every path against the
    effective working directory and computes the change for each file.
    `cwd` must be absolute.
    """
    result = maybe_parse_apply_patch(argv)
    if isinstance(result, NotApplyPatch):
        return result
    if isinstance(result, PatchParseFailure):
        return CorrectnessFailure(result.error)
    if not isinstance(result, PatchBody):
        raise TypeError(f"Unknown parse result: {type(result).__name__}")

    args = result.args
    base = os.fspath(cwd)
    effective_cwd = os.path.join(base, args.workdir) if args.workdir else base

    def resolve(p: str) -> str:
        return os.path.normpath(os.path.join(effective_cwd, p))

    try:
        changes = plan_changes(
            args.hunks, open_fn or _read_file, resolve=resolve, context=context
        )
    except DiffError as e:
        logger.warning("apply_patch verification failed", err=str(e))
        return CorrectnessFailure(e)

    return VerifiedBody(
        ApplyPatchAction(changes=changes, patch=args.patch, cwd=effective_cwd)
    )
