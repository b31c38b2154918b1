"""FastAPI service exposing analysis and interactive review of stake photos.

Usage:
    uvicorn stake_counter.app.main:app --host 0.0.0.0 --port 8000
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

import numpy as np
from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from stake_counter.adapters.image_source import decode_image_bytes, encode_jpeg
from stake_counter.adapters.onnx_engine import load_engine
from stake_counter.app.schemas import (
    AddModeRequest,
    ClickRequest,
    ClickResponse,
    DetectionOut,
    HealthResponse,
    ReviewDecision,
    ReviewStatus,
    SessionResponse,
)
from stake_counter.app.settings import get_settings
from stake_counter.core.errors import InferenceError, InputError
from stake_counter.core.review import ReviewCrop
from stake_counter.services.pipeline import DetectionPipeline, InferenceEngine
from stake_counter.services.workspace import ReviewWorkspace, SessionRegistry
from stake_counter.utils.annotate import render_review_crop

logger = logging.getLogger(__name__)
settings = get_settings()
registry = SessionRegistry(max_sessions=settings.max_sessions)

_engine: Optional[InferenceEngine] = None


def get_engine() -> InferenceEngine:
    """Lazy-load the shared inference engine."""
    global _engine
    if _engine is None:
        _engine = load_engine(settings.model_path, settings.onnx_providers)
    return _engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.preload_model:
        logger.info("Preloading model from %s", settings.model_path)
        try:
            await asyncio.to_thread(get_engine)
        except InferenceError as exc:
            logger.warning("Model preload failed, will retry on first request: %s", exc)
    try:
        yield
    finally:
        registry.clear()


app = FastAPI(title="Stake Counter", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InputError)
async def _input_error_handler(request: Request, exc: InputError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(InferenceError)
async def _inference_error_handler(request: Request, exc: InferenceError) -> JSONResponse:
    logger.error("Inference failed for %s: %s", request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": str(exc)})


def get_registry() -> SessionRegistry:
    return registry


def get_workspace(session_id: str, sessions: SessionRegistry = Depends(get_registry)) -> ReviewWorkspace:
    workspace = sessions.get(session_id)
    if workspace is None:
        raise HTTPException(status_code=404, detail=f"Unknown session '{session_id}'")
    return workspace


def _review_status(workspace: ReviewWorkspace) -> ReviewStatus:
    controller = workspace.controller
    position, total = controller.progress()
    current = controller.current()
    return ReviewStatus(
        state=controller.state.value,
        index=controller.index,
        position=position,
        total=total,
        current=DetectionOut.from_detection(current) if current else None,
    )


def _session_response(workspace: ReviewWorkspace, message: Optional[str] = None) -> SessionResponse:
    return SessionResponse.build(
        workspace.session_id,
        workspace.session.snapshot(),
        workspace.corrector.add_mode,
        _review_status(workspace),
        message=message,
    )


def _encode_crop(image: np.ndarray, crop: ReviewCrop) -> bytes:
    return encode_jpeg(render_review_crop(image, crop))


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(status="ok", model_loaded=_engine is not None)


@app.post("/sessions", response_model=SessionResponse, status_code=201)
async def create_session(
    file: UploadFile = File(...),
    engine: InferenceEngine = Depends(get_engine),
    sessions: SessionRegistry = Depends(get_registry),
) -> SessionResponse:
    """Analyse an uploaded photo and open a review session for it."""
    limit = settings.max_upload_bytes
    if file.size is not None and file.size > limit:
        raise HTTPException(status_code=413, detail="Image exceeds upload limit")
    contents = await file.read(limit + 1)
    if len(contents) > limit:
        raise HTTPException(status_code=413, detail="Image exceeds upload limit")
    image = await asyncio.to_thread(decode_image_bytes, contents)

    pipeline = DetectionPipeline(engine, settings)
    result = await asyncio.to_thread(pipeline.analyze, image)

    workspace = sessions.add(ReviewWorkspace.create(image, result.session, settings))
    logger.info(
        "Session %s opened | confirmed=%d | doubt=%d | latency_ms=%.2f",
        workspace.session_id,
        result.session.total_confirmed,
        result.session.pending_doubts,
        result.latency_ms,
    )
    return _session_response(workspace)


@app.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(workspace: ReviewWorkspace = Depends(get_workspace)) -> SessionResponse:
    return _session_response(workspace)


@app.delete("/sessions/{session_id}", status_code=204)
async def delete_session(session_id: str, sessions: SessionRegistry = Depends(get_registry)) -> Response:
    if not sessions.remove(session_id):
        raise HTTPException(status_code=404, detail=f"Unknown session '{session_id}'")
    return Response(status_code=204)


@app.post("/sessions/{session_id}/review/start", response_model=SessionResponse)
async def start_review(workspace: ReviewWorkspace = Depends(get_workspace)) -> SessionResponse:
    started = workspace.controller.start_review()
    return _session_response(workspace, message=None if started else "Nothing to review")


@app.get("/sessions/{session_id}/review", response_model=ReviewStatus)
async def review_status(workspace: ReviewWorkspace = Depends(get_workspace)) -> ReviewStatus:
    workspace.controller.refresh()
    return _review_status(workspace)


@app.post("/sessions/{session_id}/review/accept", response_model=SessionResponse)
async def accept_doubt(
    decision: Optional[ReviewDecision] = None,
    workspace: ReviewWorkspace = Depends(get_workspace),
) -> SessionResponse:
    detection_id = decision.detection_id if decision else None
    moved = workspace.controller.accept(detection_id)
    return _session_response(workspace, message=None if moved else "No doubt was accepted")


@app.post("/sessions/{session_id}/review/reject", response_model=SessionResponse)
async def reject_doubt(
    decision: Optional[ReviewDecision] = None,
    workspace: ReviewWorkspace = Depends(get_workspace),
) -> SessionResponse:
    detection_id = decision.detection_id if decision else None
    moved = workspace.controller.reject(detection_id)
    return _session_response(workspace, message=None if moved else "No doubt was rejected")


@app.get("/sessions/{session_id}/review/crop")
async def review_crop(workspace: ReviewWorkspace = Depends(get_workspace)) -> Response:
    crop = workspace.controller.review_crop()
    if crop is None:
        raise HTTPException(status_code=404, detail="No doubt under review")
    payload = await asyncio.to_thread(_encode_crop, workspace.image, crop)
    return Response(content=payload, media_type="image/jpeg")


@app.post("/sessions/{session_id}/click", response_model=ClickResponse)
async def click(request: ClickRequest, workspace: ReviewWorkspace = Depends(get_workspace)) -> ClickResponse:
    result = workspace.corrector.click(request.x, request.y, force_add=request.force_add)
    workspace.controller.refresh()
    return ClickResponse(
        action=result.action.value,
        detection=DetectionOut.from_detection(result.detection) if result.detection else None,
        session=_session_response(workspace),
    )


@app.post("/sessions/{session_id}/add-mode", response_model=SessionResponse)
async def set_add_mode(request: AddModeRequest, workspace: ReviewWorkspace = Depends(get_workspace)) -> SessionResponse:
    if workspace.corrector.add_mode != request.enabled:
        workspace.corrector.toggle_add_mode()
    return _session_response(workspace)
