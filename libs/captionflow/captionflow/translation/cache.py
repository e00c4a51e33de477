"""Insertion-ordered translation cache with batch eviction."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

CacheKey = tuple[str, str, str]


class TranslationCache:
    """One entry per ``(input_lang, output_lang, text)``.

    Once the size exceeds ``max_entries`` the oldest-inserted entries are
    dropped in a batch of ``evict_count`` (reads do not refresh an entry).
    """

    def __init__(self, *, max_entries: int = 500, evict_count: int = 100) -> None:
        self._max_entries = max(1, int(max_entries))
        self._evict_count = max(1, int(evict_count))
        self._entries: dict[CacheKey, str] = {}

    @staticmethod
    def key(input_lang: str, output_lang: str, text: str) -> CacheKey:
        return (str(input_lang), str(output_lang), str(text))

    def get(self, input_lang: str, output_lang: str, text: str) -> str | None:
        return self._entries.get(self.key(input_lang, output_lang, text))

    def put(self, input_lang: str, output_lang: str, text: str, translation: str) -> None:
        self._entries[self.key(input_lang, output_lang, text)] = str(translation)
        if len(self._entries) > self._max_entries:
            self._evict()

    def _evict(self) -> None:
        overflow = len(self._entries) - self._max_entries
        count = max(self._evict_count, overflow)
        for key in list(self._entries)[:count]:
            del self._entries[key]
        logger.debug("translation cache evicted (count=%s, size=%s)", count, len(self._entries))

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
