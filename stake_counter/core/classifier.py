"""Partition detections into auto-confirmed and doubtful groups."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List

from stake_counter.core.models import Detection
from stake_counter.core.session import DetectionSession

LOGGER = logging.getLogger(__name__)


@dataclass
class Classification:
    confirmed: List[Detection] = field(default_factory=list)
    doubt: List[Detection] = field(default_factory=list)
    discarded: List[Detection] = field(default_factory=list)

    def populate(self, session: DetectionSession) -> DetectionSession:
        """Load the confirmed and doubt groups into ``session``."""

        session.populate(self.confirmed, self.doubt)
        return session


def classify(
    detections: Iterable[Detection],
    confidence_threshold: float,
    doubt_threshold: float,
) -> Classification:
    """Split detections by confidence, preserving their incoming order."""

    if doubt_threshold < confidence_threshold:
        raise ValueError("doubt_threshold must be >= confidence_threshold")

    result = Classification()
    for detection in detections:
        if detection.confidence >= doubt_threshold:
            result.confirmed.append(detection)
        elif detection.confidence >= confidence_threshold:
            result.doubt.append(detection)
        else:
            result.discarded.append(detection)
    LOGGER.debug(
        "Classified detections: confirmed=%d doubt=%d discarded=%d",
        len(result.confirmed),
        len(result.doubt),
        len(result.discarded),
    )
    return result
