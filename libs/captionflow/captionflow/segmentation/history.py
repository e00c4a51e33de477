"""Bounded per-speaker history of utterances shown to the display."""

from __future__ import annotations

import logging
from dataclasses import replace

from captionflow.models.utterance import FinalizedUtterance

logger = logging.getLogger(__name__)


class UtteranceHistory:
    """Per speaker: most-recently-updated first, unique by utterance id, capped."""

    def __init__(self, *, max_per_speaker: int = 10) -> None:
        self._max_per_speaker = max(1, int(max_per_speaker))
        self._items: dict[str, list[FinalizedUtterance]] = {}

    @property
    def max_per_speaker(self) -> int:
        return self._max_per_speaker

    def record(self, utterance: FinalizedUtterance) -> FinalizedUtterance:
        """Insert or update a record; an update keeps the original ``created_at``."""
        items = self._items.setdefault(utterance.speaker_id, [])
        stored = utterance
        for idx, existing in enumerate(items):
            if existing.utterance_id == utterance.utterance_id:
                stored = replace(utterance, created_at=existing.created_at)
                del items[idx]
                break
        items.insert(0, stored)

        if len(items) > self._max_per_speaker:
            evicted = items[self._max_per_speaker :]
            del items[self._max_per_speaker :]
            logger.debug(
                "history evicted (speaker_id=%s, count=%s)", utterance.speaker_id, len(evicted)
            )
        return stored

    def for_speaker(self, speaker_id: str) -> list[FinalizedUtterance]:
        return list(self._items.get(str(speaker_id), []))

    def get(self, speaker_id: str, utterance_id: str) -> FinalizedUtterance | None:
        for item in self._items.get(str(speaker_id), []):
            if item.utterance_id == utterance_id:
                return item
        return None

    def snapshot(self) -> dict[str, list[FinalizedUtterance]]:
        return {sid: list(items) for sid, items in self._items.items() if items}

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return sum(len(items) for items in self._items.values())
