"""Rate-limited, cached, loop-protected translation requests for live captions."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from captionflow.config import Settings
from captionflow.error_codes import ErrorCode
from captionflow.exceptions import LoopDetected, MalformedResponseError, ProviderError
from captionflow.models.utterance import TRANSLATING, UNAVAILABLE
from captionflow.providers.llm.base import LLMProvider, Message
from captionflow.services.health import TranslationHealthMonitor
from captionflow.timers import TimerCoordinator, TimerPurpose
from captionflow.translation.cache import TranslationCache
from captionflow.translation.loop_guard import LoopGuard

logger = logging.getLogger(__name__)

TranslationListener = Callable[[str, str], None]
LoopResetListener = Callable[[str], None]
Clock = Callable[[], float]

MIN_TRANSLATABLE_CHARS = 2


def _preview(text: str, limit: int = 40) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


class TranslationPipeline:
    """Turns ``(speaker, text)`` into a translation without ever blocking or raising.

    Each call either answers from cache/partial state or issues at most one
    outstanding external request per speaker. Anything that cannot be
    answered right now resolves to the speaker's last partial translation or
    a placeholder; re-attempting is the caller's job.
    """

    def __init__(
        self,
        provider: LLMProvider,
        *,
        settings: Settings | None = None,
        timers: TimerCoordinator | None = None,
        health: TranslationHealthMonitor | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        settings = settings or Settings()
        self._provider = provider
        self._temperature = float(settings.translation.temperature)
        self._request_timeout_s = float(settings.translation.request_timeout_s)
        self._system_prompt = str(settings.translation.system_prompt)
        self._processing_interval_s = float(settings.rate_limit.processing_interval_s)
        self._api_min_spacing_s = float(settings.rate_limit.api_min_spacing_s)
        self._loop_cooldown_s = float(settings.loop_guard.cooldown_s)

        self._cache = TranslationCache(
            max_entries=settings.cache.max_entries,
            evict_count=settings.cache.evict_count,
        )
        self._loop_guard = LoopGuard(repeat_threshold=settings.loop_guard.repeat_threshold)
        self._timers = timers or TimerCoordinator()
        self._health = health
        self._clock = clock

        self._listener: TranslationListener | None = None
        self._loop_reset_listener: LoopResetListener | None = None

        self._partials: dict[str, str] = {}
        self._last_text: dict[str, str] = {}
        self._last_processed: dict[str, float] = {}
        self._in_flight: dict[str, object] = {}
        self._epochs: dict[str, int] = {}
        self._last_api_call_at: float | None = None
        self._generation = 0

    @property
    def cache(self) -> TranslationCache:
        return self._cache

    @property
    def provider(self) -> LLMProvider:
        return self._provider

    def bind_listener(
        self,
        listener: TranslationListener | None,
        *,
        on_loop_reset: LoopResetListener | None = None,
    ) -> None:
        """Register the display-path callback ``listener(speaker_id, translated_text)``."""
        self._listener = listener
        self._loop_reset_listener = on_loop_reset

    def is_in_flight(self, speaker_id: str) -> bool:
        return speaker_id in self._in_flight

    def partial(self, speaker_id: str) -> str | None:
        return self._partials.get(speaker_id)

    def loop_repeats(self, speaker_id: str) -> int:
        return self._loop_guard.repeats(speaker_id)

    async def translate(self, speaker_id: str, text: str, input_lang: str, output_lang: str) -> str:
        if len(text) < MIN_TRANSLATABLE_CHARS:
            return text

        cached = self._cache.get(input_lang, output_lang, text)
        if cached is not None:
            logger.debug("translation cache hit (speaker_id=%s): %s", speaker_id, _preview(text))
            self._publish(speaker_id, cached)
            return cached

        prev_text = self._last_text.get(speaker_id, "")
        partial = self._partials.get(speaker_id)
        if text == prev_text and partial:
            return partial

        # A different subject may legitimately repeat an earlier translation.
        if prev_text and text not in prev_text and prev_text not in text:
            self._loop_guard.reset(speaker_id)

        now = self._clock()
        last_processed = self._last_processed.get(speaker_id)
        if last_processed is not None and now - last_processed < self._processing_interval_s:
            logger.debug(
                "translation throttled (speaker_id=%s, interval_s=%s)",
                speaker_id,
                self._processing_interval_s,
            )
            return self._fallback(speaker_id)

        if self._last_api_call_at is not None and now - self._last_api_call_at < self._api_min_spacing_s:
            logger.debug(
                "translation rate limited (speaker_id=%s, wait_s=%.3f)",
                speaker_id,
                self._api_min_spacing_s - (now - self._last_api_call_at),
            )
            return self._fallback(speaker_id)

        if speaker_id in self._in_flight:
            logger.debug("translation already in flight (speaker_id=%s)", speaker_id)
            return self._fallback(speaker_id)

        return await self._request(speaker_id, text, input_lang, output_lang, now)

    async def check_connection(self) -> bool:
        started = time.perf_counter()
        ok = await self._provider.check_connection()
        if self._health is not None:
            self._health.report_probe(ok=ok, latency_ms=int((time.perf_counter() - started) * 1000))
        return ok

    def forget(self, speaker_id: str) -> None:
        """Drop the speaker's partial and last text once their utterance is over.

        A request still in flight for the speaker only fills the cache.
        """
        self._partials.pop(speaker_id, None)
        self._last_text.pop(speaker_id, None)
        self._epochs[speaker_id] = self._epochs.get(speaker_id, 0) + 1

    def reset(self) -> None:
        """Drop per-speaker request state; outstanding requests become stale."""
        self._generation += 1
        self._in_flight.clear()
        self._partials.clear()
        self._last_text.clear()
        self._last_processed.clear()
        self._loop_guard.clear()
        self._epochs.clear()
        self._timers.cancel_purpose(TimerPurpose.LOOP_RESET)

    def _fallback(self, speaker_id: str) -> str:
        return self._partials.get(speaker_id) or TRANSLATING

    def _publish(self, speaker_id: str, translated_text: str) -> None:
        if self._listener is None:
            return
        try:
            self._listener(speaker_id, translated_text)
        except Exception:
            logger.exception("translation listener failed (speaker_id=%s)", speaker_id)

    def _build_messages(self, text: str, input_lang: str, output_lang: str) -> list[Message]:
        system = self._system_prompt.replace("{input_lang}", input_lang).replace(
            "{output_lang}", output_lang
        )
        return [Message(role="system", content=system), Message(role="user", content=text)]

    def _release(self, speaker_id: str, token: object) -> None:
        if self._in_flight.get(speaker_id) is token:
            del self._in_flight[speaker_id]

    async def _request(
        self,
        speaker_id: str,
        text: str,
        input_lang: str,
        output_lang: str,
        now: float,
    ) -> str:
        token = object()
        generation = self._generation
        epoch = self._epochs.get(speaker_id, 0)
        self._in_flight[speaker_id] = token
        self._last_text[speaker_id] = text
        self._last_processed[speaker_id] = now
        self._last_api_call_at = now
        self._publish(speaker_id, TRANSLATING)

        logger.debug("translating (speaker_id=%s): %s", speaker_id, _preview(text))
        started = time.perf_counter()
        try:
            raw = await asyncio.wait_for(
                self._provider.complete(
                    self._build_messages(text, input_lang, output_lang),
                    temperature=self._temperature,
                ),
                timeout=self._request_timeout_s,
            )
            translated = str(raw or "").strip()
            if not translated:
                raise MalformedResponseError(
                    getattr(self._provider, "provider", "llm"),
                    "empty translation",
                    error_code=ErrorCode.MALFORMED_RESPONSE,
                )
        except asyncio.CancelledError:
            self._release(speaker_id, token)
            raise
        except (ProviderError, asyncio.TimeoutError) as exc:
            error = str(exc) or "timeout"
            logger.warning("translation failed (speaker_id=%s, error=%s)", speaker_id, error)
            return self._on_failure(speaker_id, text, token, (generation, epoch), error, started)
        except Exception as exc:
            logger.exception("translation failed unexpectedly (speaker_id=%s)", speaker_id)
            return self._on_failure(speaker_id, text, token, (generation, epoch), str(exc), started)

        if self._health is not None:
            self._health.report_success(latency_ms=int((time.perf_counter() - started) * 1000))

        self._cache.put(input_lang, output_lang, text, translated)
        if generation != self._generation:
            logger.debug("discarding stale translation (speaker_id=%s)", speaker_id)
            return translated

        self._release(speaker_id, token)
        if self._epochs.get(speaker_id, 0) != epoch:
            logger.debug("translation outlived its utterance (speaker_id=%s)", speaker_id)
            return translated

        try:
            self._loop_guard.check(speaker_id, translated)
        except LoopDetected as exc:
            logger.warning(
                "translation loop detected (speaker_id=%s, repeats=%s): %s",
                speaker_id,
                exc.repeats,
                _preview(translated),
            )
            self._partials.pop(speaker_id, None)
            self._last_text.pop(speaker_id, None)
            self._publish(speaker_id, UNAVAILABLE)
            self._timers.arm(
                speaker_id,
                TimerPurpose.LOOP_RESET,
                self._loop_cooldown_s,
                lambda: self._reset_loop(speaker_id),
            )
            return UNAVAILABLE

        self._partials[speaker_id] = translated
        self._publish(speaker_id, translated)
        logger.debug("translation complete (speaker_id=%s): %s", speaker_id, _preview(translated))
        return translated

    def _on_failure(
        self,
        speaker_id: str,
        text: str,
        token: object,
        issued: tuple[int, int],
        error: str,
        started: float,
    ) -> str:
        if self._health is not None:
            self._health.report_error(
                error=error,
                latency_ms=int((time.perf_counter() - started) * 1000),
            )
        generation, epoch = issued
        if generation != self._generation:
            return TRANSLATING

        self._release(speaker_id, token)
        if self._epochs.get(speaker_id, 0) != epoch:
            return TRANSLATING
        # Let the same text go out again on the next attempt.
        if self._last_text.get(speaker_id) == text:
            del self._last_text[speaker_id]

        partial = self._partials.get(speaker_id)
        if partial:
            return partial
        self._publish(speaker_id, TRANSLATING)
        return TRANSLATING

    def _reset_loop(self, speaker_id: str) -> None:
        self._loop_guard.reset(speaker_id)
        logger.info("translation loop cooldown elapsed (speaker_id=%s)", speaker_id)
        if self._loop_reset_listener is not None:
            self._loop_reset_listener(speaker_id)
