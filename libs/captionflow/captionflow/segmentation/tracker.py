"""Per-speaker utterance lifecycle driven by live caption snapshots."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Coroutine
from dataclasses import replace
from typing import Any

from captionflow.config import Settings
from captionflow.models.utterance import (
    CONTINUING,
    TRANSLATING,
    ActiveUtterance,
    CaptionSnapshot,
    FinalizedUtterance,
    clean_speaker_name,
    is_placeholder,
    new_utterance_id,
    speaker_id_for,
)
from captionflow.segmentation.continuation import classify
from captionflow.segmentation.history import UtteranceHistory
from captionflow.timers import TimerCoordinator, TimerPurpose
from captionflow.translation.pipeline import TranslationPipeline

logger = logging.getLogger(__name__)

DisplayCallback = Callable[
    [dict[str, ActiveUtterance], dict[str, list[FinalizedUtterance]]],
    None,
]
Clock = Callable[[], float]

_KNOWN_TEXTS_PER_SPEAKER = 500


class UtteranceTracker:
    """Segments each speaker's caption stream into utterances and keeps them translated.

    States per speaker: idle (no entry), open (accepting updates), dormant
    (finalized while the translation was still a placeholder; removed once a
    later translation lands). Long segments roll over into a fresh utterance
    instead of closing the speaker.

    All methods run on the event loop; snapshot handling never awaits, it
    only schedules translation work.
    """

    def __init__(
        self,
        pipeline: TranslationPipeline,
        *,
        settings: Settings | None = None,
        display: DisplayCallback | None = None,
        timers: TimerCoordinator | None = None,
        history: UtteranceHistory | None = None,
        clock: Clock = time.monotonic,
        wall_clock: Clock = time.time,
    ) -> None:
        settings = settings or Settings()
        seg = settings.segmentation
        self._pipeline = pipeline
        self._display = display
        self._timers = timers or TimerCoordinator()
        self._history = history or UtteranceHistory(max_per_speaker=seg.max_stored_utterances)
        self._clock = clock
        # Utterance timestamps are wall-clock; `clock` only drives the clear cooldown.
        self._wall_clock = wall_clock

        self._finalize_timeout_s = float(seg.finalize_timeout_s)
        self._max_chars = int(seg.max_chars)
        self._clear_cooldown_s = float(seg.clear_cooldown_s)
        self._input_lang = str(settings.translation.input_language)
        self._output_lang = str(settings.translation.output_language)

        self._enabled = True
        self._active: dict[str, ActiveUtterance] = {}
        self._known: dict[str, dict[str, None]] = {}
        self._suppress_until: float | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

        pipeline.bind_listener(self._on_translation, on_loop_reset=self._on_loop_reset)

    @property
    def pipeline(self) -> TranslationPipeline:
        return self._pipeline

    @property
    def history(self) -> UtteranceHistory:
        return self._history

    @property
    def timers(self) -> TimerCoordinator:
        return self._timers

    @property
    def languages(self) -> tuple[str, str]:
        return self._input_lang, self._output_lang

    @property
    def enabled(self) -> bool:
        return self._enabled

    def active_utterances(self) -> dict[str, ActiveUtterance]:
        return {sid: replace(u) for sid, u in self._active.items()}

    def get_active(self, speaker_id: str) -> ActiveUtterance | None:
        utterance = self._active.get(speaker_id)
        return replace(utterance) if utterance is not None else None

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = bool(enabled)

    def set_languages(self, input_lang: str, output_lang: str) -> None:
        self._input_lang = str(input_lang)
        self._output_lang = str(output_lang)

    def reset_known_snapshots(self) -> None:
        self._known.clear()
        logger.debug("known snapshots reset")

    # Inbound

    def handle_snapshot(self, snapshot: CaptionSnapshot) -> bool:
        """Process one caption snapshot; returns False when it was skipped."""
        if not self._enabled or self._is_clearing():
            return False
        try:
            return self._process_snapshot(snapshot)
        except Exception:
            logger.exception("caption snapshot skipped")
            return False

    def _process_snapshot(self, snapshot: CaptionSnapshot) -> bool:
        text = str(snapshot.text or "").strip()
        if not text:
            return False
        speaker_name = clean_speaker_name(snapshot.speaker_name)
        speaker_id = speaker_id_for(speaker_name)
        if not self._remember(speaker_id, text):
            return False

        utterance = self._active.get(speaker_id)
        if utterance is None:
            self._open(speaker_id, speaker_name, text, snapshot.avatar_ref)
            return True

        logger.debug("caption update (speaker_id=%s): %s", speaker_id, text[:40])
        utterance.last_activity_at = self._wall_clock()
        utterance.dormant = False
        has_changed = utterance.source_text != text
        result = classify(utterance.source_text, text)
        if result.is_continuation or len(text) > len(utterance.source_text) or has_changed:
            if result.text_to_keep != utterance.source_text:
                utterance.source_text = result.text_to_keep
            if snapshot.avatar_ref and not utterance.avatar_ref:
                utterance.avatar_ref = snapshot.avatar_ref
            if has_changed:
                self._publish()

        self._arm_finalize(speaker_id)
        self._spawn(self._translate_and_update(speaker_id))
        return True

    def _remember(self, speaker_id: str, text: str) -> bool:
        known = self._known.setdefault(speaker_id, {})
        if text in known:
            return False
        known[text] = None
        if len(known) > _KNOWN_TEXTS_PER_SPEAKER:
            del known[next(iter(known))]
        return True

    def _open(self, speaker_id: str, speaker_name: str, text: str, avatar_ref: str | None) -> None:
        now = self._wall_clock()
        utterance = ActiveUtterance(
            speaker_id=speaker_id,
            speaker_name=speaker_name,
            utterance_id=new_utterance_id(),
            source_text=text,
            translated_text=TRANSLATING,
            avatar_ref=avatar_ref,
            created_at=now,
            last_activity_at=now,
        )
        self._active[speaker_id] = utterance
        logger.info(
            "utterance opened (speaker_id=%s, utterance_id=%s)", speaker_id, utterance.utterance_id
        )
        self._arm_finalize(speaker_id)
        self._spawn(self._translate_and_update(speaker_id))
        self._publish()

    # Translation

    async def _translate_and_update(self, speaker_id: str) -> None:
        utterance = self._active.get(speaker_id)
        if utterance is None or not utterance.source_text:
            return
        utterance_id = utterance.utterance_id
        translated = await self._pipeline.translate(
            speaker_id, utterance.source_text, self._input_lang, self._output_lang
        )
        # A clear-all, finalize or rollover may have happened while awaiting.
        utterance = self._active.get(speaker_id)
        if utterance is None or utterance.utterance_id != utterance_id:
            return
        self._settle(utterance, translated)

    def _on_translation(self, speaker_id: str, translated: str) -> None:
        utterance = self._active.get(speaker_id)
        if utterance is None or not utterance.source_text:
            return
        self._settle(utterance, translated)

    def _on_loop_reset(self, speaker_id: str) -> None:
        if speaker_id not in self._active:
            return
        self._timers.arm(
            speaker_id,
            TimerPurpose.RETRANSLATE,
            0.0,
            lambda: self._translate_and_update(speaker_id),
        )

    def _apply_translation(self, utterance: ActiveUtterance, translated: str) -> bool:
        if not translated or translated == utterance.translated_text:
            return False
        utterance.translated_text = translated
        if not is_placeholder(translated):
            self._history.record(
                FinalizedUtterance.from_active(utterance, is_open=True, at_ts=self._wall_clock())
            )
        return True

    def _settle(self, utterance: ActiveUtterance, translated: str) -> None:
        changed = self._apply_translation(utterance, translated)
        if utterance.dormant and not is_placeholder(utterance.translated_text):
            self._close(utterance)
        elif changed:
            self._publish()

    # Finalization

    def _arm_finalize(self, speaker_id: str) -> None:
        self._timers.arm(
            speaker_id,
            TimerPurpose.FINALIZE,
            self._finalize_timeout_s,
            lambda: self._finalize(speaker_id),
        )

    async def _finalize(self, speaker_id: str) -> None:
        utterance = self._active.get(speaker_id)
        if utterance is None or self._is_clearing():
            return

        if not utterance.source_text:
            # Rolled-over segment that never received more text.
            del self._active[speaker_id]
            logger.info("empty utterance dropped (speaker_id=%s)", speaker_id)
            self._publish()
            return

        utterance_id = utterance.utterance_id
        activity = utterance.last_activity_at
        too_long = len(utterance.source_text) > self._max_chars
        if too_long or is_placeholder(utterance.translated_text):
            translated = await self._pipeline.translate(
                speaker_id, utterance.source_text, self._input_lang, self._output_lang
            )
            utterance = self._active.get(speaker_id)
            if utterance is None or utterance.utterance_id != utterance_id:
                return
            if utterance.last_activity_at != activity:
                # Speaker resumed; the re-armed finalize timer owns this utterance now.
                return
            self._apply_translation(utterance, translated)

        if too_long:
            self._rollover(utterance)
            return

        logger.info(
            "utterance finalized (speaker_id=%s, utterance_id=%s, chars=%s)",
            speaker_id,
            utterance.utterance_id,
            len(utterance.source_text),
        )
        if is_placeholder(utterance.translated_text):
            self._history.record(
                FinalizedUtterance.from_active(utterance, is_open=False, at_ts=self._wall_clock())
            )
            utterance.dormant = True
            logger.info("utterance dormant, translation pending (speaker_id=%s)", speaker_id)
            self._publish()
            return
        self._close(utterance)

    def _close(self, utterance: ActiveUtterance) -> None:
        utterance.is_open = False
        utterance.dormant = False
        self._history.record(
            FinalizedUtterance.from_active(utterance, is_open=False, at_ts=self._wall_clock())
        )
        self._active.pop(utterance.speaker_id, None)
        self._timers.cancel_all(utterance.speaker_id)
        self._pipeline.forget(utterance.speaker_id)
        logger.debug("utterance closed (speaker_id=%s)", utterance.speaker_id)
        self._publish()

    def _rollover(self, utterance: ActiveUtterance) -> None:
        utterance.is_open = False
        now = self._wall_clock()
        self._history.record(FinalizedUtterance.from_active(utterance, is_open=False, at_ts=now))
        self._pipeline.forget(utterance.speaker_id)
        fresh = ActiveUtterance(
            speaker_id=utterance.speaker_id,
            speaker_name=utterance.speaker_name,
            utterance_id=new_utterance_id(),
            source_text="",
            translated_text=CONTINUING,
            avatar_ref=utterance.avatar_ref,
            created_at=now,
            last_activity_at=now,
        )
        self._active[utterance.speaker_id] = fresh
        logger.info(
            "utterance rolled over (speaker_id=%s, closed=%s, next=%s)",
            utterance.speaker_id,
            utterance.utterance_id,
            fresh.utterance_id,
        )
        self._arm_finalize(utterance.speaker_id)
        self._publish()

    # Session

    def clear_all(self) -> None:
        """Drop every utterance, timer and history record and publish an empty snapshot."""
        self._suppress_until = self._clock() + self._clear_cooldown_s
        cancelled = self._timers.cancel_everything()
        self._active.clear()
        self._history.clear()
        self._known.clear()
        self._pipeline.reset()
        logger.info("session cleared (timers_cancelled=%s)", cancelled)
        self._publish()

    def _is_clearing(self) -> bool:
        return self._suppress_until is not None and self._clock() < self._suppress_until

    async def drain(self) -> None:
        """Wait until no translation or timer task is running."""
        while self._tasks or self._timers.busy:
            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
            await self._timers.drain()

    async def aclose(self) -> None:
        """Stop timers and cancel translation work, including timer callbacks already running."""
        await self._timers.aclose()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("translation task failed: %s", exc, exc_info=exc)

    def _publish(self) -> None:
        if self._display is None:
            return
        try:
            self._display(self.active_utterances(), self._history.snapshot())
        except Exception:
            logger.exception("display update failed")
