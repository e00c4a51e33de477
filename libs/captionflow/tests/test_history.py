from __future__ import annotations

from captionflow.models.utterance import FinalizedUtterance
from captionflow.segmentation.history import UtteranceHistory


def _record(uid: str, text: str, *, speaker_id: str = "ann", created_at: float = 1.0) -> FinalizedUtterance:
    return FinalizedUtterance(
        utterance_id=uid,
        speaker_id=speaker_id,
        speaker_name="Ann",
        source_text=text,
        translated_text=f"EN:{text}",
        created_at=created_at,
        updated_at=created_at,
    )


def test_history_is_most_recent_first_and_capped() -> None:
    history = UtteranceHistory(max_per_speaker=2)
    history.record(_record("u1", "one"))
    history.record(_record("u2", "two"))
    history.record(_record("u3", "three"))

    items = history.for_speaker("ann")
    assert [u.utterance_id for u in items] == ["u3", "u2"]
    assert len(history) == 2


def test_upsert_moves_to_front_and_keeps_created_at() -> None:
    history = UtteranceHistory(max_per_speaker=5)
    history.record(_record("u1", "one", created_at=1.0))
    history.record(_record("u2", "two", created_at=2.0))
    stored = history.record(_record("u1", "one more", created_at=9.0))

    assert stored.created_at == 1.0
    items = history.for_speaker("ann")
    assert [u.utterance_id for u in items] == ["u1", "u2"]
    assert items[0].source_text == "one more"


def test_snapshot_is_per_speaker_and_clear_empties() -> None:
    history = UtteranceHistory()
    history.record(_record("u1", "one", speaker_id="ann"))
    history.record(_record("u2", "two", speaker_id="bob"))

    snap = history.snapshot()
    assert set(snap) == {"ann", "bob"}
    assert history.get("bob", "u2") is not None

    history.clear()
    assert history.snapshot() == {}
    assert len(history) == 0
