"""Detection store for a single analysed image."""
from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional

from stake_counter.core.errors import SessionStateError
from stake_counter.core.models import Collection, Detection, SessionSnapshot

LOGGER = logging.getLogger(__name__)

SessionListener = Callable[[SessionSnapshot], None]


class DetectionSession:
    """Own the confirmed, doubt and rejected collections for one image.

    Every surviving detection id lives in exactly one collection. Listeners are
    notified with a fresh snapshot after each mutation.
    """

    def __init__(self, image_width: int, image_height: int, doubt_threshold: float = 0.5) -> None:
        self.image_width = int(image_width)
        self.image_height = int(image_height)
        self.doubt_threshold = doubt_threshold
        self._collections: Dict[Collection, List[Detection]] = {name: [] for name in Collection}
        self._classified: List[Detection] = []
        self._next_id = 0
        self._listeners: List[SessionListener] = []

    @property
    def confirmed(self) -> List[Detection]:
        return list(self._collections[Collection.CONFIRMED])

    @property
    def doubt(self) -> List[Detection]:
        return list(self._collections[Collection.DOUBT])

    @property
    def rejected(self) -> List[Detection]:
        return list(self._collections[Collection.REJECTED])

    def items(self, collection: Collection) -> List[Detection]:
        return list(self._collections[collection])

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register ``listener``; the returned callable unsubscribes it."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def populate(self, confirmed: Iterable[Detection], doubt: Iterable[Detection]) -> None:
        """Replace all collections with a fresh classification result."""

        confirmed = list(confirmed)
        doubt = list(doubt)
        seen = set()
        for detection in confirmed + doubt:
            if detection.id in seen:
                raise ValueError(f"Duplicate detection id {detection.id}")
            seen.add(detection.id)
        self._collections = {
            Collection.CONFIRMED: confirmed,
            Collection.DOUBT: doubt,
            Collection.REJECTED: [],
        }
        self._classified = confirmed + doubt
        self._next_id = max(seen) + 1 if seen else 0
        LOGGER.info("Session populated: confirmed=%d doubt=%d", len(confirmed), len(doubt))
        self._notify()

    def next_id(self) -> int:
        value = self._next_id
        self._next_id += 1
        return value

    def locate(self, detection_id: int) -> Optional[Collection]:
        """Return the collection currently holding ``detection_id``."""

        found: Optional[Collection] = None
        for name, items in self._collections.items():
            if any(det.id == detection_id for det in items):
                if found is not None:
                    raise SessionStateError(f"Detection {detection_id} present in {found.value} and {name.value}")
                found = name
        return found

    def find(self, collection: Collection, detection_id: int) -> Optional[Detection]:
        for detection in self._collections[collection]:
            if detection.id == detection_id:
                return detection
        return None

    def move(
        self,
        detection_id: int,
        source: Collection,
        target: Collection,
        *,
        mark_doubt: bool = False,
    ) -> Optional[Detection]:
        """Move a detection between collections, returning the moved record."""

        items = self._collections[source]
        for index, detection in enumerate(items):
            if detection.id != detection_id:
                continue
            del items[index]
            if mark_doubt:
                detection = detection.marked_as_doubt()
            self._collections[target].append(detection)
            LOGGER.debug("Moved detection %d from %s to %s", detection_id, source.value, target.value)
            self._notify()
            return detection
        LOGGER.warning("Detection %d not found in %s", detection_id, source.value)
        return None

    def insert_manual(self, x1: float, y1: float, x2: float, y2: float) -> Detection:
        detection = Detection(
            id=self.next_id(),
            x1=x1,
            y1=y1,
            x2=x2,
            y2=y2,
            confidence=1.0,
            class_id=0,
            was_doubt=False,
            is_manual=True,
        )
        self._collections[Collection.CONFIRMED].append(detection)
        LOGGER.info("Manual detection %d added at (%.1f, %.1f)", detection.id, x1, y1)
        self._notify()
        return detection

    def reset(self) -> None:
        """Discard every detection (a new analysis is starting)."""

        self._collections = {name: [] for name in Collection}
        self._classified = []
        self._next_id = 0
        self._notify()

    @property
    def total_confirmed(self) -> int:
        return len(self._collections[Collection.CONFIRMED])

    @property
    def ia_base(self) -> int:
        return sum(1 for det in self._classified if det.confidence >= self.doubt_threshold)

    @property
    def manually_accepted(self) -> int:
        return sum(1 for det in self._collections[Collection.CONFIRMED] if det.was_doubt)

    @property
    def manually_added(self) -> int:
        return sum(1 for det in self._collections[Collection.CONFIRMED] if det.is_manual)

    @property
    def pending_doubts(self) -> int:
        return len(self._collections[Collection.DOUBT])

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            image_width=self.image_width,
            image_height=self.image_height,
            confirmed=self.confirmed,
            doubt=self.doubt,
            rejected=self.rejected,
            total_confirmed=self.total_confirmed,
            ia_base=self.ia_base,
            manually_accepted=self.manually_accepted,
            manually_added=self.manually_added,
        )

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)
