"""Drawing helpers for annotated results and review crops."""
from __future__ import annotations

from typing import Dict, Iterable, Tuple

import cv2
import numpy as np

from stake_counter.core.models import Detection, SessionSnapshot
from stake_counter.core.review import ReviewCrop

# RGB
COLORS: Dict[str, Tuple[int, int, int]] = {
    "confirmed": (16, 185, 129),
    "doubt": (245, 158, 11),
    "rejected": (239, 68, 68),
}


def _draw_boxes(image: np.ndarray, detections: Iterable[Detection], color: Tuple[int, int, int], cross: bool = False) -> None:
    for detection in detections:
        x1, y1, x2, y2 = (int(round(v)) for v in detection.bbox)
        cv2.rectangle(image, (x1, y1), (x2, y2), color, 3)
        if cross:
            cv2.line(image, (x1 + 5, y1 + 5), (x2 - 5, y2 - 5), color, 2, lineType=cv2.LINE_AA)
            cv2.line(image, (x2 - 5, y1 + 5), (x1 + 5, y2 - 5), color, 2, lineType=cv2.LINE_AA)


def annotate_image(image_rgb: np.ndarray, snapshot: SessionSnapshot) -> np.ndarray:
    """Draw every collection plus the running count over a copy of the image."""

    output = image_rgb.copy()
    _draw_boxes(output, snapshot.confirmed, COLORS["confirmed"])
    _draw_boxes(output, snapshot.doubt, COLORS["doubt"])
    _draw_boxes(output, snapshot.rejected, COLORS["rejected"], cross=True)

    overlay_text = f"Stakes: {snapshot.total_confirmed}"
    (tw, th), _ = cv2.getTextSize(overlay_text, cv2.FONT_HERSHEY_SIMPLEX, 1.0, 2)
    cv2.rectangle(output, (10, 10), (20 + tw, 20 + th + 10), (0, 0, 0), cv2.FILLED)
    cv2.putText(
        output,
        overlay_text,
        (15, 15 + th),
        cv2.FONT_HERSHEY_SIMPLEX,
        1.0,
        COLORS["confirmed"],
        2,
        lineType=cv2.LINE_AA,
    )
    return output


def render_review_crop(image_rgb: np.ndarray, crop: ReviewCrop) -> np.ndarray:
    """Cut out the review window, scale it and outline the doubt."""

    x, y = int(crop.x), int(crop.y)
    w, h = int(round(crop.width)), int(round(crop.height))
    patch = image_rgb[y:y + h, x:x + w]
    if patch.size == 0:
        return np.zeros((1, 1, 3), dtype=np.uint8)
    size = (max(1, int(round(w * crop.scale))), max(1, int(round(h * crop.scale))))
    scaled = cv2.resize(patch, size, interpolation=cv2.INTER_LINEAR)
    bx1, by1, bx2, by2 = (int(round(v)) for v in crop.box_in_crop())
    cv2.rectangle(scaled, (bx1, by1), (bx2, by2), COLORS["confirmed"], 3)
    return scaled
