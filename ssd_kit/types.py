from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple

Color = Tuple[int, int, int]


class CoordinateSpace(str, Enum):
    NORMALIZED = "normalized"
    MODEL_PIXELS = "model_pixels"


@dataclass(frozen=True)
class Rect:
    """
    Axis-aligned box stored as origin + size.

    Rects with a non-positive width or height are degenerate: their area is 0
    and they never overlap anything.
    """

    x: float
    y: float
    width: float
    height: float

    @property
    def min_x(self) -> float:
        return self.x

    @property
    def min_y(self) -> float:
        return self.y

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def max_y(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        if self.width <= 0 or self.height <= 0:
            return 0.0
        return (self.max_x - self.min_x) * (self.max_y - self.min_y)

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.min_x, self.min_y, self.max_x, self.max_y

    def scaled(self, sx: float, sy: float) -> "Rect":
        return Rect(x=self.x * sx, y=self.y * sy, width=self.width * sx, height=self.height * sy)


@dataclass(frozen=True)
class Candidate:
    """
    One raw detector slot before suppression. `class_index` is the model id,
    not yet resolved against the label table.
    """

    class_index: int
    score: float
    rect: Rect
    space: CoordinateSpace = CoordinateSpace.NORMALIZED


@dataclass(frozen=True)
class Detection:
    """
    Final, label-resolved detection in destination pixel space.
    """

    class_name: str
    confidence: float
    rect: Rect
    display_color: Color = (0, 255, 255)
    class_index: Optional[int] = None

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.rect.as_xyxy()


@dataclass(frozen=True)
class RawTensors:
    """
    The four flat outputs of an SSD-style detector for a single frame:
    boxes (4 per anchor, [y_min, x_min, y_max, x_max]), classes, scores and
    the valid-detection count.
    """

    boxes: Any
    classes: Any
    scores: Any
    count: Any
