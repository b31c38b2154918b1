"""Geometry helper utilities for bounding boxes."""
from __future__ import annotations

from typing import Iterable, Sequence, Tuple

BBox = Sequence[float]
Point = Tuple[float, float]


def bbox_area(bbox: BBox) -> float:
    x1, y1, x2, y2 = bbox
    return max(0.0, x2 - x1) * max(0.0, y2 - y1)


def bbox_contains_point(bbox: BBox, point: Point) -> bool:
    """Return True if the point lies inside the box, edges included."""

    x1, y1, x2, y2 = bbox
    x, y = point
    return x1 <= x <= x2 and y1 <= y <= y2


def iou(a: BBox, b: BBox) -> float:
    """Intersection over union of two xyxy boxes; 0.0 when the union is empty."""

    x1 = max(a[0], b[0])
    y1 = max(a[1], b[1])
    x2 = min(a[2], b[2])
    y2 = min(a[3], b[3])
    intersection = max(0.0, x2 - x1) * max(0.0, y2 - y1)
    union = bbox_area(a) + bbox_area(b) - intersection
    if union <= 0:
        return 0.0
    return intersection / union


def clamp_bbox(bbox: BBox, width: float, height: float) -> Tuple[float, float, float, float]:
    """Clamp an xyxy box to the ``[0, width] x [0, height]`` frame."""

    x1, y1, x2, y2 = bbox
    return (
        min(max(x1, 0.0), width),
        min(max(y1, 0.0), height),
        min(max(x2, 0.0), width),
        min(max(y2, 0.0), height),
    )


def is_degenerate(bbox: BBox) -> bool:
    x1, y1, x2, y2 = bbox
    return x2 <= x1 or y2 <= y1


def average_box_size(boxes: Iterable[BBox], default: float = 40.0) -> float:
    """Mean of ``(w + h) / 2`` over the boxes, or ``default`` when there are none."""

    total = 0.0
    count = 0
    for x1, y1, x2, y2 in boxes:
        total += ((x2 - x1) + (y2 - y1)) / 2.0
        count += 1
    if count == 0:
        return default
    return total / count


def square_around(point: Point, size: float) -> Tuple[float, float, float, float]:
    x, y = point
    half = size / 2.0
    return (x - half, y - half, x + half, y + half)


def crop_window(
    bbox: BBox,
    image_width: int,
    image_height: int,
    padding: float = 50.0,
    max_size: float = 400.0,
) -> Tuple[Tuple[float, float, float, float], float]:
    """Return a padded crop around ``bbox`` and the scale that fits it in ``max_size``.

    The crop is ``(x, y, width, height)`` in image pixels, clipped at the image
    border. The scale maps the crop so that its longer side equals ``max_size``.
    """

    x1, y1, x2, y2 = bbox
    crop_x = max(0.0, x1 - padding)
    crop_y = max(0.0, y1 - padding)
    crop_w = min(image_width - crop_x, (x2 - x1) + padding * 2)
    crop_h = min(image_height - crop_y, (y2 - y1) + padding * 2)
    if crop_w <= 0 or crop_h <= 0:
        return (crop_x, crop_y, 0.0, 0.0), 1.0
    scale = min(max_size / crop_w, max_size / crop_h)
    return (crop_x, crop_y, crop_w, crop_h), scale
