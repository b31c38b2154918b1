"""Sequential review of doubtful detections."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from stake_counter.core.models import Collection, Detection
from stake_counter.core.session import DetectionSession
from stake_counter.utils.geometry import crop_window

LOGGER = logging.getLogger(__name__)


class ReviewState(str, Enum):
    IDLE = "idle"
    REVIEWING = "reviewing"
    DONE = "done"


@dataclass
class ReviewCrop:
    """Padded window around the doubt under review, in image pixels."""

    x: float
    y: float
    width: float
    height: float
    scale: float
    detection: Detection

    def box_in_crop(self) -> Tuple[float, float, float, float]:
        """Detection box relative to the crop, already multiplied by ``scale``."""

        return (
            (self.detection.x1 - self.x) * self.scale,
            (self.detection.y1 - self.y) * self.scale,
            (self.detection.x2 - self.x) * self.scale,
            (self.detection.y2 - self.y) * self.scale,
        )


class ReviewController:
    """Walk the doubt queue front to back, one accept/reject at a time.

    Resolving a doubt removes it from the queue, which brings the next item
    into the current index; the index itself never advances.
    """

    def __init__(self, session: DetectionSession, crop_padding: float = 50.0, crop_max_size: float = 400.0) -> None:
        self.session = session
        self.crop_padding = crop_padding
        self.crop_max_size = crop_max_size
        self.state = ReviewState.IDLE
        self.index = 0

    @property
    def is_reviewing(self) -> bool:
        return self.state is ReviewState.REVIEWING

    def start_review(self) -> bool:
        if self.session.pending_doubts == 0:
            LOGGER.info("Nothing to review")
            return False
        self.state = ReviewState.REVIEWING
        self.index = 0
        LOGGER.info("Review started with %d doubts", self.session.pending_doubts)
        return True

    def current(self) -> Optional[Detection]:
        if not self.is_reviewing:
            return None
        doubts = self.session.doubt
        if self.index >= len(doubts):
            return None
        return doubts[self.index]

    def progress(self) -> Tuple[int, int]:
        """Return ``(position, total)`` with a 1-based position."""

        total = self.session.pending_doubts
        if not self.is_reviewing or total == 0:
            return (0, total)
        return (min(self.index + 1, total), total)

    def accept(self, detection_id: Optional[int] = None) -> Optional[Detection]:
        return self._resolve(Collection.CONFIRMED, detection_id, mark_doubt=True)

    def reject(self, detection_id: Optional[int] = None) -> Optional[Detection]:
        return self._resolve(Collection.REJECTED, detection_id, mark_doubt=False)

    def refresh(self) -> ReviewState:
        """Close the pass if outside corrections drained the queue under us."""

        if self.is_reviewing and self.index >= self.session.pending_doubts:
            self._finish()
        return self.state

    def review_crop(self, detection: Optional[Detection] = None) -> Optional[ReviewCrop]:
        detection = detection or self.current()
        if detection is None:
            return None
        (x, y, width, height), scale = crop_window(
            detection.bbox,
            self.session.image_width,
            self.session.image_height,
            padding=self.crop_padding,
            max_size=self.crop_max_size,
        )
        return ReviewCrop(x=x, y=y, width=width, height=height, scale=scale, detection=detection)

    def _resolve(self, target: Collection, detection_id: Optional[int], mark_doubt: bool) -> Optional[Detection]:
        current = self.current()
        if current is None:
            LOGGER.warning("Ignoring %s: no doubt under review (state=%s)", target.value, self.state.value)
            return None
        if detection_id is not None and detection_id != current.id:
            LOGGER.warning("Ignoring %s: detection %d is not the current doubt %d", target.value, detection_id, current.id)
            return None

        moved = self.session.move(current.id, Collection.DOUBT, target, mark_doubt=mark_doubt)
        remaining = self.session.pending_doubts
        if remaining == 0 or self.index >= remaining:
            self._finish()
        return moved

    def _finish(self) -> None:
        self.state = ReviewState.DONE
        LOGGER.info("Review completed, %d doubts pending", self.session.pending_doubts)
