from __future__ import annotations

import asyncio

import pytest

from captionflow.config import (
    LoopGuardConfig,
    RateLimitConfig,
    SegmentationConfig,
    Settings,
)
from captionflow.providers.llm.base import LLMProvider, Message


class FakeProvider(LLMProvider):
    """Translates by prefixing ``EN:``; can be gated, failed or pinned per text."""

    provider = "fake"
    model = "fake-model"

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.responses: dict[str, str | Exception] = {}
        self.default: str | Exception | None = None
        self.gate: asyncio.Event | None = None
        self.started = asyncio.Event()
        self.reachable = True

    async def complete(
        self,
        messages: list[Message],
        temperature: float = 0.3,
        max_tokens: int | None = None,
    ) -> str:
        text = messages[-1].content
        self.calls.append(text)
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        result = self.responses.get(text, self.default)
        if result is None:
            return f"EN:{text}"
        if isinstance(result, Exception):
            raise result
        return result

    async def check_connection(self) -> bool:
        return self.reachable


class ManualClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += float(seconds)


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        log_dir=str(tmp_path / "logs"),
        rate_limit=RateLimitConfig(processing_interval_s=0.0, api_min_spacing_s=0.0),
        loop_guard=LoopGuardConfig(repeat_threshold=3, cooldown_s=0.05),
        segmentation=SegmentationConfig(
            finalize_timeout_s=60.0,
            max_chars=3000,
            max_stored_utterances=10,
            clear_cooldown_s=0.0,
        ),
    )


@pytest.fixture()
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()
