"""
Approximate string matching for catalog search.

Scores follow the convention 0.0 = perfect match, 1.0 = no resemblance, so a
search hit is anything scoring at or below a threshold. Matching is
case-insensitive and looks for the best-aligned substring of the text, so a
query like ``"sumer"`` still finds ``"Summer Collection"``.
"""
from difflib import SequenceMatcher
from typing import Iterable, Optional

PERFECT = 0.0
NO_MATCH = 1.0


def _normalize(value: Optional[str]) -> str:
    return (value or "").strip().casefold()


def partial_ratio(pattern: str, text: str) -> float:
    """
    Similarity (0.0-1.0) between ``pattern`` and the best matching window of
    ``text`` that has the same length as ``pattern``.
    """
    if not pattern or not text:
        return 0.0
    if pattern in text:
        return 1.0
    if len(text) <= len(pattern):
        return SequenceMatcher(None, pattern, text, autojunk=False).ratio()

    best = 0.0
    blocks = SequenceMatcher(None, pattern, text, autojunk=False).get_matching_blocks()
    for pattern_start, text_start, _size in blocks:
        start = max(0, text_start - pattern_start)
        window = text[start:start + len(pattern)]
        ratio = SequenceMatcher(None, pattern, window, autojunk=False).ratio()
        if ratio > best:
            best = ratio
    return best


def match_score(pattern: str, text: Optional[str]) -> float:
    """Fuzzy score of ``pattern`` against one field value."""
    pattern = _normalize(pattern)
    text = _normalize(text)
    if not pattern:
        return PERFECT
    if not text:
        return NO_MATCH
    return round(1.0 - partial_ratio(pattern, text), 6)


def best_score(pattern: str, values: Iterable[Optional[str]]) -> float:
    """Best (lowest) score of ``pattern`` across several field values."""
    return min((match_score(pattern, value) for value in values), default=NO_MATCH)
