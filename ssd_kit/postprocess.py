from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence, Tuple

from loguru import logger

from .errors import ConfigurationError, LabelResolutionError
from .types import Candidate, Color, CoordinateSpace, Detection, Rect

# Yellow in BGR, the overlay color used for every class.
DEFAULT_DISPLAY_COLOR: Color = (0, 255, 255)


class LabelErrorPolicy(str, Enum):
    # Drop only the offending candidate and keep formatting the frame.
    DROP = "drop"
    # Propagate LabelResolutionError so the whole frame is skipped.
    FAIL_FRAME = "fail_frame"


@dataclass(frozen=True)
class RescaleTransform:
    """
    Maps rects from a source space (model input or unit square) into
    destination pixel space.
    """

    src_width: float
    src_height: float
    dest_width: float
    dest_height: float

    def __post_init__(self) -> None:
        if self.src_width <= 0 or self.src_height <= 0:
            raise ValueError(f"source size must be positive, got {(self.src_width, self.src_height)}")
        if self.dest_width <= 0 or self.dest_height <= 0:
            raise ValueError(f"destination size must be positive, got {(self.dest_width, self.dest_height)}")

    @property
    def scale(self) -> Tuple[float, float]:
        return self.dest_width / self.src_width, self.dest_height / self.src_height

    def apply(self, rect: Rect) -> Rect:
        sx, sy = self.scale
        return rect.scaled(sx, sy)

    @classmethod
    def for_space(
        cls,
        space: CoordinateSpace,
        model_size: Tuple[int, int],
        dest_size: Tuple[float, float],
    ) -> "RescaleTransform":
        """
        Build the frame transform. Normalized boxes scale from the unit square,
        model-pixel boxes from `model_size` (width, height).
        """

        dest_w, dest_h = dest_size
        if space == CoordinateSpace.NORMALIZED:
            return cls(1.0, 1.0, float(dest_w), float(dest_h))
        model_w, model_h = model_size
        return cls(float(model_w), float(model_h), float(dest_w), float(dest_h))


@dataclass(frozen=True)
class FormatterConfig:
    confidence_threshold: float = 0.5
    display_color: Color = DEFAULT_DISPLAY_COLOR
    label_error_policy: LabelErrorPolicy = LabelErrorPolicy.DROP

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ConfigurationError(f"confidence_threshold must be in [0, 1], got {self.confidence_threshold}")


def resolve_label(labels: Sequence[str], class_index: int) -> str:
    """
    Label files reserve slot 0 for the background class, so model class `i`
    lives at `labels[i + 1]`.
    """

    slot = class_index + 1
    if class_index < 0 or slot >= len(labels):
        raise LabelResolutionError(class_index, len(labels))
    return labels[slot]


class ResultFormatter:
    """
    Turns suppressed candidates into display-ready detections:
    confidence filter -> label lookup -> rescale -> sort by confidence.
    """

    def __init__(self, cfg: FormatterConfig, labels: Sequence[str]):
        self.cfg = cfg
        self.labels = list(labels)

    def format(self, candidates: Sequence[Candidate], transform: RescaleTransform) -> List[Detection]:
        results: List[Detection] = []
        for cand in candidates:
            if cand.score < self.cfg.confidence_threshold:
                continue

            try:
                name = resolve_label(self.labels, cand.class_index)
            except LabelResolutionError as exc:
                if self.cfg.label_error_policy == LabelErrorPolicy.FAIL_FRAME:
                    raise
                logger.warning(f"[ResultFormatter] dropping candidate: {exc}")
                continue

            results.append(
                Detection(
                    class_name=name,
                    confidence=float(cand.score),
                    rect=transform.apply(cand.rect),
                    display_color=self.cfg.display_color,
                    class_index=cand.class_index,
                )
            )

        # list.sort is stable, so equal confidences keep input order.
        results.sort(key=lambda d: d.confidence, reverse=True)
        return results
