"""Shared data models for the stake counting core."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Tuple


class Collection(str, Enum):
    CONFIRMED = "confirmed"
    DOUBT = "doubt"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Detection:
    """A single detected stake in original-image pixel coordinates."""

    id: int
    x1: float
    y1: float
    x2: float
    y2: float
    confidence: float
    class_id: int = 0
    was_doubt: bool = False
    is_manual: bool = False

    @property
    def bbox(self) -> Tuple[float, float, float, float]:
        return (self.x1, self.y1, self.x2, self.y2)

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    def marked_as_doubt(self) -> "Detection":
        """Return a copy flagged as accepted out of the doubt queue."""

        return replace(self, was_doubt=True)

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "x1": self.x1,
            "y1": self.y1,
            "x2": self.x2,
            "y2": self.y2,
            "confidence": self.confidence,
            "class_id": self.class_id,
            "was_doubt": self.was_doubt,
            "is_manual": self.is_manual,
        }


@dataclass(frozen=True)
class PreprocessInfo:
    """Letterbox parameters needed to map model space back to the source image."""

    scale: float
    offset_x: float
    offset_y: float
    original_width: int
    original_height: int

    def to_letterbox(self, x: float, y: float) -> Tuple[float, float]:
        return (x * self.scale + self.offset_x, y * self.scale + self.offset_y)

    def to_original(self, x: float, y: float) -> Tuple[float, float]:
        return ((x - self.offset_x) / self.scale, (y - self.offset_y) / self.scale)


@dataclass
class SessionSnapshot:
    """Point-in-time view of a detection session handed to observers."""

    image_width: int
    image_height: int
    confirmed: List[Detection] = field(default_factory=list)
    doubt: List[Detection] = field(default_factory=list)
    rejected: List[Detection] = field(default_factory=list)
    total_confirmed: int = 0
    ia_base: int = 0
    manually_accepted: int = 0
    manually_added: int = 0

    @property
    def pending_doubts(self) -> int:
        return len(self.doubt)

    def counters(self) -> Dict[str, int]:
        return {
            "total_confirmed": self.total_confirmed,
            "ia_base": self.ia_base,
            "manually_accepted": self.manually_accepted,
            "manually_added": self.manually_added,
            "pending_doubts": self.pending_doubts,
        }
