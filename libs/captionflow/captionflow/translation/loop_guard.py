"""Detect a translation API stuck returning the same output."""

from __future__ import annotations

from captionflow.exceptions import LoopDetected


class LoopGuard:
    def __init__(self, *, repeat_threshold: int = 3) -> None:
        self._threshold = max(2, int(repeat_threshold))
        self._last: dict[str, str] = {}
        self._repeats: dict[str, int] = {}

    @property
    def repeat_threshold(self) -> int:
        return self._threshold

    def check(self, speaker_id: str, translation: str) -> None:
        """Record ``translation`` for the speaker; raise once it repeats ``threshold`` times."""
        if self._last.get(speaker_id) == translation:
            self._repeats[speaker_id] = self._repeats.get(speaker_id, 1) + 1
        else:
            self._last[speaker_id] = translation
            self._repeats[speaker_id] = 1

        repeats = self._repeats[speaker_id]
        if repeats >= self._threshold:
            raise LoopDetected(speaker_id, translation, repeats)

    def repeats(self, speaker_id: str) -> int:
        return int(self._repeats.get(speaker_id, 0))

    def last_translation(self, speaker_id: str) -> str | None:
        return self._last.get(speaker_id)

    def reset(self, speaker_id: str) -> None:
        self._last.pop(speaker_id, None)
        self._repeats.pop(speaker_id, None)

    def clear(self) -> None:
        self._last.clear()
        self._repeats.clear()
