"""Core data models for CaptionFlow."""

from captionflow.models.utterance import (
    CONTINUING,
    PLACEHOLDERS,
    TRANSLATING,
    UNAVAILABLE,
    ActiveUtterance,
    CaptionSnapshot,
    FinalizedUtterance,
    clean_speaker_name,
    is_placeholder,
    new_utterance_id,
    speaker_id_for,
)

__all__ = [
    "ActiveUtterance",
    "CaptionSnapshot",
    "CONTINUING",
    "FinalizedUtterance",
    "PLACEHOLDERS",
    "TRANSLATING",
    "UNAVAILABLE",
    "clean_speaker_name",
    "is_placeholder",
    "new_utterance_id",
    "speaker_id_for",
]
