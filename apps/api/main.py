"""CaptionFlow API"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from captionflow.config import Settings
from captionflow.factory import create_tracker
from captionflow.providers import get_llm_provider
from captionflow.services.health import TranslationHealthMonitor
from captionflow.utils.logging_setup import setup_logging
from routes.captions import router as captions_router
from routes.health import router as health_router
from services.display_store import DisplayStore

settings = Settings()
setup_logging(settings)
logger = logging.getLogger("captionflow.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    provider = get_llm_provider(settings.translation_config())
    health = TranslationHealthMonitor(
        provider=provider.provider,
        model=provider.model,
        stale_after_s=settings.translation.health_stale_after_s,
    )
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
    logger.info(
        "API starting (provider=%s, model=%s, languages=%s->%s)",
        provider.provider,
        provider.model,
        settings.translation.input_language,
        settings.translation.output_language,
    )
    try:
        yield
    finally:
        app.state.tracker.clear_all()
        await app.state.tracker.aclose()
        await provider.close()
        logger.info("API stopped")


app = FastAPI(
    title="CaptionFlow API",
    description="Live caption segmentation and translation",
    version="0.1.0",
    lifespan=lifespan,
)


app.include_router(captions_router)
app.include_router(health_router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}
