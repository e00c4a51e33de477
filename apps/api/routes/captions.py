"""Caption ingest and display snapshot routes."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from captionflow.models.utterance import CaptionSnapshot
from captionflow.segmentation.tracker import UtteranceTracker
from services.display_store import DisplayStore

router = APIRouter(prefix="/captions", tags=["captions"])


class CaptionSnapshotRequest(BaseModel):
    speaker_name: str = ""
    avatar_ref: str | None = None
    text: str


class CaptionAcceptedResponse(BaseModel):
    accepted: bool


class LanguagesRequest(BaseModel):
    input_language: str = Field(min_length=1)
    output_language: str = Field(min_length=1)


class EnabledRequest(BaseModel):
    enabled: bool


def _tracker(request: Request) -> UtteranceTracker:
    tracker: UtteranceTracker | None = getattr(request.app.state, "tracker", None)
    if tracker is None:
        raise HTTPException(status_code=500, detail="tracker not initialized")
    return tracker


def _display(request: Request) -> DisplayStore:
    display: DisplayStore | None = getattr(request.app.state, "display", None)
    if display is None:
        raise HTTPException(status_code=500, detail="display not initialized")
    return display


@router.post("", response_model=CaptionAcceptedResponse)
async def post_caption(payload: CaptionSnapshotRequest, request: Request) -> CaptionAcceptedResponse:
    accepted = _tracker(request).handle_snapshot(
        CaptionSnapshot(
            speaker_name=payload.speaker_name,
            text=payload.text,
            avatar_ref=payload.avatar_ref,
        )
    )
    return CaptionAcceptedResponse(accepted=accepted)


@router.post("/clear")
async def clear_captions(request: Request) -> dict[str, Any]:
    _tracker(request).clear_all()
    return {"cleared": True}


@router.put("/languages")
async def set_languages(payload: LanguagesRequest, request: Request) -> dict[str, Any]:
    tracker = _tracker(request)
    tracker.set_languages(payload.input_language, payload.output_language)
    input_language, output_language = tracker.languages
    return {"input_language": input_language, "output_language": output_language}


@router.put("/enabled")
async def set_enabled(payload: EnabledRequest, request: Request) -> dict[str, Any]:
    tracker = _tracker(request)
    tracker.set_enabled(payload.enabled)
    return {"enabled": tracker.enabled}


@router.get("/snapshot")
async def get_snapshot(request: Request) -> dict[str, Any]:
    return _display(request).snapshot()
