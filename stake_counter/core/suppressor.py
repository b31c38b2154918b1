"""Greedy non-max suppression over decoded detections."""
from __future__ import annotations

import logging
from typing import Iterable, List

from stake_counter.core.models import Detection
from stake_counter.utils.geometry import iou

LOGGER = logging.getLogger(__name__)


def non_max_suppression(detections: Iterable[Detection], iou_threshold: float = 0.45) -> List[Detection]:
    """Keep the highest-confidence box of every overlapping group.

    Equal confidences keep their incoming (scan) order since ``sorted`` is stable.
    A box is suppressed when its IoU with a kept box is strictly above
    ``iou_threshold``. The result is ordered by descending confidence.
    """

    ordered = sorted(detections, key=lambda det: det.confidence, reverse=True)
    suppressed = [False] * len(ordered)
    kept: List[Detection] = []
    for i, candidate in enumerate(ordered):
        if suppressed[i]:
            continue
        kept.append(candidate)
        for j in range(i + 1, len(ordered)):
            if suppressed[j]:
                continue
            if iou(candidate.bbox, ordered[j].bbox) > iou_threshold:
                suppressed[j] = True
    LOGGER.debug("NMS kept %d of %d detections", len(kept), len(ordered))
    return kept
