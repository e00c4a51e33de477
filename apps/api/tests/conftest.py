from __future__ import annotations

import sys
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from captionflow.config import RateLimitConfig, SegmentationConfig, Settings
from captionflow.factory import create_tracker
from captionflow.providers.llm.base import LLMProvider, Message
from captionflow.services.health import TranslationHealthMonitor

_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))


class FakeProvider(LLMProvider):
    provider = "fake"
    model = "fake-model"

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.reachable = True
        self.closed = False

    async def complete(
        self,
        messages: list[Message],
        temperature: float = 0.3,
        max_tokens: int | None = None,
    ) -> str:
        text = messages[-1].content
        self.calls.append(text)
        return f"EN:{text}"

    async def check_connection(self) -> bool:
        return self.reachable

    async def close(self) -> None:
        self.closed = True


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        log_dir=str(tmp_path / "logs"),
        rate_limit=RateLimitConfig(processing_interval_s=0.0, api_min_spacing_s=0.0),
        segmentation=SegmentationConfig(finalize_timeout_s=60.0, clear_cooldown_s=0.0),
    )


@pytest.fixture()
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture()
def app(settings: Settings, provider: FakeProvider) -> FastAPI:
    from routes.captions import router as captions_router
    from routes.health import router as health_router
    from services.display_store import DisplayStore

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        health = TranslationHealthMonitor(provider=provider.provider, model=provider.model)
        display = DisplayStore()
        app.state.settings = settings
        app.state.display = display
        app.state.health = health
        app.state.tracker = create_tracker(
            settings,
            display=display.publish,
            provider=provider,
            health=health,
        )
        try:
            yield
        finally:
            await app.state.tracker.aclose()
            await provider.close()

    test_app = FastAPI(lifespan=lifespan)
    test_app.include_router(captions_router)
    test_app.include_router(health_router)
    return test_app


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    # Entering the client keeps one event loop alive across requests, so
    # translation tasks spawned by a request can finish before the next one.
    with TestClient(app) as test_client:
        yield test_client
