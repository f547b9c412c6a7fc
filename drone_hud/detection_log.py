from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterator, List, Optional, Tuple


@dataclass(frozen=True)
class GeoLocation:
    latitude: float
    longitude: float
    altitude: Optional[float] = None

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude must be in [-90, 90], got {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude must be in [-180, 180], got {self.longitude}")


@dataclass(frozen=True)
class DetectionLogEntry:
    """
    One frame that yielded at least one detection. `location` is None when
    the vehicle had no GPS fix at capture time.
    """

    timestamp: datetime
    time_label: str
    max_confidence: float
    detection_count: int
    location: Optional[GeoLocation] = None
    # Captured frame (BGR ndarray); not compared or hashed.
    image: Any = field(default=None, compare=False, repr=False)

    @property
    def has_location(self) -> bool:
        return self.location is not None


class DetectionLog:
    """
    Append-only store of geotagged detection events.

    One instance is created by the application and handed to both the frame
    processor (writer) and the map/report side (readers). Readers only ever
    see immutable snapshots.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: List[DetectionLogEntry] = []

    def append(self, entry: DetectionLogEntry) -> int:
        with self._lock:
            self._entries.append(entry)
            return len(self._entries)

    def entries(self) -> Tuple[DetectionLogEntry, ...]:
        with self._lock:
            return tuple(self._entries)

    def located(self) -> Tuple[DetectionLogEntry, ...]:
        return tuple(e for e in self.entries() if e.location is not None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[DetectionLogEntry]:
        return iter(self.entries())
