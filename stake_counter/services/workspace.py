"""In-memory review workspaces, one per analysed image."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np

from stake_counter.app.settings import AppSettings
from stake_counter.core.corrections import PointCorrector
from stake_counter.core.review import ReviewController
from stake_counter.core.session import DetectionSession

LOGGER = logging.getLogger(__name__)


@dataclass
class ReviewWorkspace:
    """Everything an operator touches while correcting one image."""

    session_id: str
    image: np.ndarray
    session: DetectionSession
    controller: ReviewController
    corrector: PointCorrector

    @classmethod
    def create(cls, image: np.ndarray, session: DetectionSession, settings: AppSettings) -> "ReviewWorkspace":
        controller = ReviewController(
            session,
            crop_padding=settings.review_crop_padding,
            crop_max_size=settings.review_crop_max_size,
        )
        corrector = PointCorrector(session, default_box_size=settings.default_box_size)
        return cls(
            session_id=uuid.uuid4().hex,
            image=image,
            session=session,
            controller=controller,
            corrector=corrector,
        )


class SessionRegistry:
    """Hold live workspaces; nothing is persisted across restarts."""

    def __init__(self, max_sessions: int = 32) -> None:
        self.max_sessions = max(max_sessions, 1)
        self._workspaces: Dict[str, ReviewWorkspace] = {}

    def add(self, workspace: ReviewWorkspace) -> ReviewWorkspace:
        while len(self._workspaces) >= self.max_sessions:
            oldest = next(iter(self._workspaces))
            LOGGER.info("Evicting session %s", oldest)
            del self._workspaces[oldest]
        self._workspaces[workspace.session_id] = workspace
        return workspace

    def get(self, session_id: str) -> Optional[ReviewWorkspace]:
        return self._workspaces.get(session_id)

    def remove(self, session_id: str) -> bool:
        return self._workspaces.pop(session_id, None) is not None

    def clear(self) -> None:
        self._workspaces.clear()
