"""Serialization helpers for the display path."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from captionflow.models.utterance import ActiveUtterance, FinalizedUtterance


def serialize_active_utterance(u: ActiveUtterance) -> dict[str, Any]:
    return {
        "utterance_id": str(u.utterance_id),
        "speaker_id": str(u.speaker_id),
        "speaker_name": str(u.speaker_name),
        "avatar_ref": u.avatar_ref,
        "source_text": str(u.source_text),
        "translated_text": str(u.translated_text),
        "created_at": float(u.created_at),
        "last_activity_at": float(u.last_activity_at),
        "is_open": bool(u.is_open),
    }


def serialize_finalized_utterance(u: FinalizedUtterance) -> dict[str, Any]:
    return {
        "utterance_id": str(u.utterance_id),
        "speaker_id": str(u.speaker_id),
        "speaker_name": str(u.speaker_name),
        "avatar_ref": u.avatar_ref,
        "source_text": str(u.source_text),
        "translated_text": str(u.translated_text),
        "created_at": float(u.created_at),
        "updated_at": float(u.updated_at),
        "is_open": bool(u.is_open),
    }


def serialize_display_snapshot(
    active: Mapping[str, ActiveUtterance],
    history: Mapping[str, Sequence[FinalizedUtterance]],
) -> dict[str, Any]:
    return {
        "active": {sid: serialize_active_utterance(u) for sid, u in active.items()},
        "history": {
            sid: [serialize_finalized_utterance(u) for u in items] for sid, items in history.items()
        },
    }
