from __future__ import annotations

from captionflow.models.serializers import serialize_display_snapshot
from captionflow.models.utterance import (
    CONTINUING,
    UNKNOWN_SPEAKER,
    ActiveUtterance,
    FinalizedUtterance,
    clean_speaker_name,
    is_placeholder,
    speaker_id_for,
)


def test_speaker_name_cleaning() -> None:
    assert clean_speaker_name("Ann Lee (Organizer)") == "Ann Lee"
    assert clean_speaker_name("  Bob   (guest) ") == "Bob"
    assert clean_speaker_name("") == UNKNOWN_SPEAKER
    assert speaker_id_for("Ann  Lee (Presenter)") == "ann_lee"


def test_placeholders() -> None:
    assert is_placeholder(CONTINUING)
    assert is_placeholder("")
    assert not is_placeholder("Good afternoon")


def test_display_snapshot_serialization() -> None:
    active = ActiveUtterance(
        speaker_id="ann",
        speaker_name="Ann",
        utterance_id="1-abc",
        source_text="Добрый день",
        translated_text="Good afternoon",
    )
    closed = FinalizedUtterance.from_active(active, is_open=False, at_ts=5.0)

    payload = serialize_display_snapshot({"ann": active}, {"ann": [closed]})
    assert payload["active"]["ann"]["translated_text"] == "Good afternoon"
    assert payload["active"]["ann"]["is_open"] is True
    assert payload["history"]["ann"][0]["updated_at"] == 5.0
    assert payload["history"]["ann"][0]["is_open"] is False
