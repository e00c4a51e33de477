"""Continuation detection between consecutive caption snapshots."""

from __future__ import annotations

from dataclasses import dataclass

PREFIX_OVERLAP_RATIO = 0.8
LEADING_WORDS = 5


@dataclass(frozen=True)
class ContinuationResult:
    is_continuation: bool
    text_to_keep: str


def _prefix_overlap(a: str, b: str, ratio: float = PREFIX_OVERLAP_RATIO) -> bool:
    """True when either string contains the leading ``ratio`` share of the other."""
    return b[: int(len(b) * ratio)] in a or a[: int(len(a) * ratio)] in b


def _same_leading_words(a: str, b: str, count: int = LEADING_WORDS) -> bool:
    a_words = a.split()
    b_words = b.split()
    if len(a_words) < count or len(b_words) < count:
        return False
    return a_words[:count] == b_words[:count]


def classify(previous_text: str | None, new_text: str) -> ContinuationResult:
    """Decide whether ``new_text`` continues ``previous_text`` and which text to keep.

    Captions are rewritten in place, so a continuation usually shares a long
    prefix (or the first few words) with what was seen before. A shorter
    continuation is treated as a truncated view and the longer previous text
    is kept; anything else keeps the new text.
    """
    if not previous_text:
        return ContinuationResult(is_continuation=False, text_to_keep=new_text)

    is_continuation = _prefix_overlap(previous_text, new_text) or _same_leading_words(
        previous_text, new_text
    )
    if is_continuation and len(new_text) < len(previous_text):
        return ContinuationResult(is_continuation=True, text_to_keep=previous_text)
    return ContinuationResult(is_continuation=is_continuation, text_to_keep=new_text)
