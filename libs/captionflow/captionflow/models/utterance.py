"""Utterance models for live caption segmentation."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from uuid import uuid4

TRANSLATING = "Translating..."
CONTINUING = "Continuing..."
UNAVAILABLE = "Translation temporarily unavailable. Please wait..."

PLACEHOLDERS = frozenset({TRANSLATING, CONTINUING, UNAVAILABLE})

UNKNOWN_SPEAKER = "Unknown"

_ROLE_SUFFIX_RE = re.compile(r"\((?:organizer|presenter|attendee|guest)\)", re.IGNORECASE)
_WS_RE = re.compile(r"\s+")


def is_placeholder(text: str | None) -> bool:
    return not text or text in PLACEHOLDERS


def clean_speaker_name(name: str | None) -> str:
    """Strip meeting role markers, e.g. ``"Ann Lee (Organizer)"`` -> ``"Ann Lee"``."""
    cleaned = _ROLE_SUFFIX_RE.sub("", str(name or ""))
    cleaned = _WS_RE.sub(" ", cleaned).strip()
    return cleaned or UNKNOWN_SPEAKER


def speaker_id_for(name: str | None) -> str:
    """Stable speaker id derived from a display name (case/whitespace-normalized)."""
    return _WS_RE.sub("_", clean_speaker_name(name).lower())


def new_utterance_id() -> str:
    # Millisecond prefix keeps ids time-ordered; suffix keeps them unique within a tick.
    return f"{int(time.time() * 1000)}-{uuid4().hex[:8]}"


@dataclass(frozen=True)
class CaptionSnapshot:
    """The caption UI's current best guess for one speaker."""

    speaker_name: str
    text: str
    avatar_ref: str | None = None


@dataclass
class ActiveUtterance:
    """An utterance still accepting caption updates (at most one per speaker)."""

    speaker_id: str
    speaker_name: str
    utterance_id: str
    source_text: str = ""
    translated_text: str = TRANSLATING
    avatar_ref: str | None = None
    created_at: float = field(default_factory=time.time)
    last_activity_at: float = field(default_factory=time.time)
    is_open: bool = True
    # Finalized while its translation was still a placeholder; removed once a
    # later translation succeeds.
    dormant: bool = False


@dataclass(frozen=True)
class FinalizedUtterance:
    """Immutable history record of an utterance (open or closed)."""

    utterance_id: str
    speaker_id: str
    speaker_name: str
    source_text: str
    translated_text: str
    created_at: float
    updated_at: float
    avatar_ref: str | None = None
    is_open: bool = False

    @classmethod
    def from_active(
        cls,
        utterance: ActiveUtterance,
        *,
        is_open: bool,
        at_ts: float | None = None,
    ) -> "FinalizedUtterance":
        return cls(
            utterance_id=utterance.utterance_id,
            speaker_id=utterance.speaker_id,
            speaker_name=utterance.speaker_name,
            source_text=utterance.source_text,
            translated_text=utterance.translated_text,
            created_at=utterance.created_at,
            updated_at=time.time() if at_ts is None else float(at_ts),
            avatar_ref=utterance.avatar_ref,
            is_open=is_open,
        )
