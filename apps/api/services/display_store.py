"""Latest display snapshot published by the utterance tracker."""

from __future__ import annotations

from typing import Any

from captionflow.models.serializers import serialize_display_snapshot
from captionflow.models.utterance import ActiveUtterance, FinalizedUtterance


class DisplayStore:
    """Display callback for the tracker; clients poll :meth:`snapshot`."""

    def __init__(self) -> None:
        self._version = 0
        self._payload: dict[str, Any] = {"active": {}, "history": {}}

    def publish(
        self,
        active: dict[str, ActiveUtterance],
        history: dict[str, list[FinalizedUtterance]],
    ) -> None:
        self._payload = serialize_display_snapshot(active, history)
        self._version += 1

    @property
    def version(self) -> int:
        return self._version

    def snapshot(self) -> dict[str, Any]:
        return {"version": self._version, **self._payload}
