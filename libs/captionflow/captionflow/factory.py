"""Tracker factory."""

from __future__ import annotations

import time

from captionflow.config import Settings
from captionflow.providers import get_llm_provider
from captionflow.providers.llm.base import LLMProvider
from captionflow.segmentation.tracker import Clock, DisplayCallback, UtteranceTracker
from captionflow.services.health import TranslationHealthMonitor
from captionflow.timers import TimerCoordinator
from captionflow.translation.pipeline import TranslationPipeline


def create_tracker(
    settings: Settings | None = None,
    *,
    display: DisplayCallback | None = None,
    provider: LLMProvider | None = None,
    health: TranslationHealthMonitor | None = None,
    clock: Clock = time.monotonic,
    wall_clock: Clock = time.time,
) -> UtteranceTracker:
    """Wire transport, pipeline and tracker sharing one timer registry."""
    settings = settings or Settings()
    if provider is None:
        provider = get_llm_provider(settings.translation_config())
    if health is None:
        health = TranslationHealthMonitor(
            provider=getattr(provider, "provider", "llm"),
            model=getattr(provider, "model", ""),
            stale_after_s=settings.translation.health_stale_after_s,
        )

    timers = TimerCoordinator()
    pipeline = TranslationPipeline(
        provider,
        settings=settings,
        timers=timers,
        health=health,
        clock=clock,
    )
    return UtteranceTracker(
        pipeline,
        settings=settings,
        display=display,
        timers=timers,
        clock=clock,
        wall_clock=wall_clock,
    )
