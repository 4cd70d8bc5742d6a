from __future__ import annotations

from enum import Enum
from typing import Callable, Dict, Optional, Sequence, Tuple

from applypatch.logger import logger


class MatchTier(Enum):
    exact = 1
    rstrip = 2
    strip = 3
    normalized = 4


# Typographic look-alikes that models tend to replace with plain ASCII.
_PUNCTUATION_MAP: Dict[str, str] = {
    # dashes, hyphens, minus
    "\u2010": "-",
    "\u2011": "-",
    "\u2012": "-",
    "\u2013": "-",
    "\u2014": "-",
    "\u2015": "-",
    "\u2212": "-",
    # single quotes
    "\u2018": "'",
    "\u2019": "'",
    "\u201A": "'",
    "\u201B": "'",
    # double quotes
    "\u201C": '"',
    "\u201D": '"',
    "\u201E": '"',
    "\u201F": '"',
    # non-breaking and other odd spaces
    "\u00A0": " ",
    "\u2002": " ",
    "\u2003": " ",
    "\u2004": " ",
    "\u2005": " ",
    "\u2006": " ",
    "\u2007": " ",
    "\u2008": " ",
    "\u2009": " ",
    "\u200A": " ",
    "\u202F": " ",
    "\u205F": " ",
    "\u3000": " ",
}
_PUNCTUATION_TABLE = str.maketrans(_PUNCTUATION_MAP)


def normalize_line(s: str) -> str:
    return s.translate(_PUNCTUATION_TABLE).strip()


_COMPARATORS: Tuple[Tuple[MatchTier, Callable[[str, str], bool]], ...] = (
    (MatchTier.exact, lambda a, b: a == b),
    (MatchTier.rstrip, lambda a, b: a.rstrip() == b.rstrip()),
    (MatchTier.strip, lambda a, b: a.strip() == b.strip()),
    (MatchTier.normalized, lambda a, b: normalize_line(a) == normalize_line(b)),
)


def lines_match(a: str, b: str, tier: MatchTier) -> bool:
    """Compare two lines under a single tier only."""
    for t, cmp in _COMPARATORS:
        if t == tier:
            return cmp(a, b)
    raise ValueError(f"Unknown match tier: {tier}")


def _matches_at(
    lines: Sequence[str],
    pattern: Sequence[str],
    i: int,
    cmp: Callable[[str, str], bool],
) -> bool:
    for j, expected in enumerate(pattern):
        if not cmp(lines[i + j], expected):
            return False
    return True


def seek_sequence_tier(
    lines: Sequence[str],
    pattern: Sequence[str],
    start: int,
    eof: bool,
) -> Optional[Tuple[int, MatchTier]]:
    """
    Find `pattern` in `lines` at or after `start`, trying comparators from the
    strictest to the most permissive and stopping at the first tier that
    matches. Returns (index, tier) or None.

    With `eof`, the tail position (len(lines) - len(pattern)) is probed under
    every tier first; only if that fails is the range scanned backwards from the
    tail down to `start`, so the occurrence nearest the end of file wins.

    An empty pattern matches at `start` with the exact tier.
    """
    if not pattern:
        return start, MatchTier.exact
    if len(pattern) > len(lines):
        return None

    start = max(0, start)
    tail = len(lines) - len(pattern)

    if eof:
        for tier, cmp in _COMPARATORS:
            if _matches_at(lines, pattern, tail, cmp):
                return tail, tier
        for tier, cmp in _COMPARATORS:
            for i in range(tail, start - 1, -1):
                if _matches_at(lines, pattern, i, cmp):
                    return i, tier
        return None

    for tier, cmp in _COMPARATORS:
        for i in range(start, tail + 1):
            if _matches_at(lines, pattern, i, cmp):
                return i, tier
    return None


def seek_sequence(
    lines: Sequence[str],
    pattern: Sequence[str],
    start: int,
    eof: bool = False,
) -> Optional[int]:
    found = seek_sequence_tier(lines, pattern, start, eof)
    if found is None:
        return None
    index, tier = found
    if tier != MatchTier.exact:
        logger.debug(
            "fuzzy sequence match",
            tier=tier.name,
            index=index,
            pattern_len=len(pattern),
        )
    return index

