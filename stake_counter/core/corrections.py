"""Point-based corrections applied directly on the analysed image."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from stake_counter.core.models import Collection, Detection
from stake_counter.core.session import DetectionSession
from stake_counter.utils.geometry import (
    average_box_size,
    bbox_contains_point,
    clamp_bbox,
    is_degenerate,
    square_around,
)

LOGGER = logging.getLogger(__name__)


class CorrectionAction(str, Enum):
    DISCARDED = "discarded"
    RESTORED = "restored"
    CONFIRMED = "confirmed"
    ADDED = "added"
    NONE = "none"


@dataclass
class CorrectionResult:
    action: CorrectionAction
    detection: Optional[Detection] = None


# (collection searched, destination, flag as accepted doubt, action reported)
_PRIORITY: Tuple[Tuple[Collection, Collection, bool, CorrectionAction], ...] = (
    (Collection.CONFIRMED, Collection.REJECTED, False, CorrectionAction.DISCARDED),
    (Collection.REJECTED, Collection.CONFIRMED, True, CorrectionAction.RESTORED),
    (Collection.DOUBT, Collection.CONFIRMED, True, CorrectionAction.CONFIRMED),
)


class PointCorrector:
    """Toggle detections under a point, or add a manual one in add mode."""

    def __init__(self, session: DetectionSession, add_mode: bool = False, default_box_size: float = 40.0) -> None:
        self.session = session
        self.add_mode = add_mode
        self.default_box_size = default_box_size

    def toggle_add_mode(self) -> bool:
        self.add_mode = not self.add_mode
        LOGGER.info("Add mode %s", "enabled" if self.add_mode else "disabled")
        return self.add_mode

    def hit_test(self, x: float, y: float) -> Optional[Tuple[Collection, Detection]]:
        """Return the first detection under the point in priority order."""

        for collection, _, _, _ in _PRIORITY:
            for detection in self.session.items(collection):
                if bbox_contains_point(detection.bbox, (x, y)):
                    return collection, detection
        return None

    def click(self, x: float, y: float, force_add: bool = False) -> CorrectionResult:
        hit = self.hit_test(x, y)
        if hit is not None:
            collection, detection = hit
            for source, target, mark_doubt, action in _PRIORITY:
                if source is collection:
                    moved = self.session.move(detection.id, source, target, mark_doubt=mark_doubt)
                    LOGGER.info("Detection %d %s", detection.id, action.value)
                    return CorrectionResult(action=action, detection=moved)

        if self.add_mode or force_add:
            added = self.add_manual(x, y)
            if added is not None:
                return CorrectionResult(action=CorrectionAction.ADDED, detection=added)
        return CorrectionResult(action=CorrectionAction.NONE)

    def add_manual(self, x: float, y: float) -> Optional[Detection]:
        """Insert a square detection centred on the point, sized like its peers."""

        boxes = [det.bbox for det in self.session.items(Collection.CONFIRMED)]
        boxes.extend(det.bbox for det in self.session.items(Collection.DOUBT))
        size = average_box_size(boxes, default=self.default_box_size)
        box = clamp_bbox(square_around((x, y), size), self.session.image_width, self.session.image_height)
        if is_degenerate(box):
            LOGGER.warning("Manual detection at (%.1f, %.1f) falls outside the image", x, y)
            return None
        return self.session.insert_manual(*box)
