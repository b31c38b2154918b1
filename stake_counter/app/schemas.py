"""Pydantic schemas for API request/response contracts."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from stake_counter.core.models import Detection, SessionSnapshot


class DetectionOut(BaseModel):
    id: int
    x1: float
    y1: float
    x2: float
    y2: float
    confidence: float
    class_id: int = 0
    was_doubt: bool = False
    is_manual: bool = False

    @classmethod
    def from_detection(cls, detection: Detection) -> "DetectionOut":
        return cls(**detection.to_dict())


class Counters(BaseModel):
    total_confirmed: int
    ia_base: int
    manually_accepted: int
    manually_added: int
    pending_doubts: int


class ReviewStatus(BaseModel):
    state: str
    index: int
    position: int
    total: int
    current: Optional[DetectionOut] = None


class SessionResponse(BaseModel):
    session_id: str
    image_width: int
    image_height: int
    add_mode: bool
    confirmed: List[DetectionOut]
    doubt: List[DetectionOut]
    rejected: List[DetectionOut]
    counters: Counters
    review: ReviewStatus
    message: Optional[str] = None

    @classmethod
    def build(
        cls,
        session_id: str,
        snapshot: SessionSnapshot,
        add_mode: bool,
        review: ReviewStatus,
        message: Optional[str] = None,
    ) -> "SessionResponse":
        return cls(
            session_id=session_id,
            image_width=snapshot.image_width,
            image_height=snapshot.image_height,
            add_mode=add_mode,
            confirmed=[DetectionOut.from_detection(det) for det in snapshot.confirmed],
            doubt=[DetectionOut.from_detection(det) for det in snapshot.doubt],
            rejected=[DetectionOut.from_detection(det) for det in snapshot.rejected],
            counters=Counters(**snapshot.counters()),
            review=review,
            message=message,
        )


class ClickRequest(BaseModel):
    x: float
    y: float
    force_add: bool = False


class ClickResponse(BaseModel):
    action: str
    detection: Optional[DetectionOut] = None
    session: SessionResponse


class AddModeRequest(BaseModel):
    enabled: bool


class ReviewDecision(BaseModel):
    detection_id: Optional[int] = Field(default=None, description="Guard: only resolve if this is the current doubt")


class HealthResponse(BaseModel):
    status: str = "ok"
    model_loaded: bool = False
