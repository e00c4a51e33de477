from __future__ import annotations

from captionflow.segmentation.continuation import classify


def test_first_snapshot_is_not_a_continuation() -> None:
    result = classify("", "Hello there")
    assert result.is_continuation is False
    assert result.text_to_keep == "Hello there"


def test_growing_caption_keeps_new_text() -> None:
    result = classify("Hello there", "Hello there my friend")
    assert result.is_continuation is True
    assert result.text_to_keep == "Hello there my friend"


def test_truncated_view_keeps_longer_previous_text() -> None:
    result = classify("Hello there my friend", "Hello there my")
    assert result.is_continuation is True
    assert result.text_to_keep == "Hello there my friend"


def test_same_leading_words_with_rewritten_tail() -> None:
    previous = "we will meet again on monday morning at the office"
    new = "we will meet again on tuesday"
    result = classify(previous, new)
    assert result.is_continuation is True
    assert result.text_to_keep == previous


def test_unrelated_text_replaces_previous() -> None:
    result = classify("Good morning everyone", "Let us begin")
    assert result.is_continuation is False
    assert result.text_to_keep == "Let us begin"
