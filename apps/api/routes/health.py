"""Health check routes (translation transport)."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from captionflow.segmentation.tracker import UtteranceTracker
from captionflow.services.health import TranslationHealthMonitor

router = APIRouter(tags=["health"])


class TranslationHealthResponse(BaseModel):
    status: str  # "ok" | "error" | "unknown"
    provider: str
    model: str
    last_success_at: str | None = None
    last_error_at: str | None = None
    last_error: str | None = None
    last_latency_ms: int | None = None
    last_probe_at: str | None = None
    last_probe_ok: bool | None = None
    success_count_1h: int
    error_count_1h: int


def _monitor(request: Request) -> TranslationHealthMonitor:
    monitor: TranslationHealthMonitor | None = getattr(request.app.state, "health", None)
    if monitor is None:
        raise HTTPException(status_code=500, detail="health monitor not initialized")
    return monitor


@router.get("/health/translation", response_model=TranslationHealthResponse)
async def translation_health(request: Request) -> TranslationHealthResponse:
    return TranslationHealthResponse.model_validate(_monitor(request).snapshot().to_dict())


@router.post("/health/translation", response_model=TranslationHealthResponse)
async def translation_health_check(request: Request) -> TranslationHealthResponse:
    monitor = _monitor(request)
    tracker: UtteranceTracker | None = getattr(request.app.state, "tracker", None)
    if tracker is None:
        raise HTTPException(status_code=500, detail="tracker not initialized")
    await tracker.pipeline.check_connection()
    return TranslationHealthResponse.model_validate(monitor.snapshot().to_dict())
