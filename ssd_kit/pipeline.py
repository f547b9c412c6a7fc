from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple

from loguru import logger

from .decode import SsdTensorDecoder, TensorDecoder
from .errors import ConfigurationError, FrameSizeError, LabelResolutionError, MalformedTensorError
from .nms import NMSConfig, non_max_suppression
from .postprocess import DEFAULT_DISPLAY_COLOR, FormatterConfig, LabelErrorPolicy, RescaleTransform, ResultFormatter
from .types import Color, CoordinateSpace, Detection, RawTensors


@dataclass(frozen=True)
class PipelineConfig:
    """
    Immutable per-run settings for the detection pipeline.

    - confidence_threshold: detections scoring below this are dropped
    - iou_threshold: boxes overlapping a better box above this are suppressed
    - max_boxes: cap on boxes kept by suppression (None = unbounded)
    - model_input_size: (width, height) of the detector input
    - num_classes: when set, the label table must cover every class id
    """

    confidence_threshold: float = 0.5
    iou_threshold: float = 0.45
    max_boxes: Optional[int] = None
    class_agnostic_nms: bool = True
    model_input_size: Tuple[int, int] = (416, 416)
    coordinate_space: CoordinateSpace = CoordinateSpace.NORMALIZED
    num_classes: Optional[int] = None
    label_error_policy: LabelErrorPolicy = LabelErrorPolicy.DROP
    display_color: Color = DEFAULT_DISPLAY_COLOR

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ConfigurationError(f"confidence_threshold must be in [0, 1], got {self.confidence_threshold}")
        if not 0.0 < self.iou_threshold < 1.0:
            raise ConfigurationError(f"iou_threshold must be in (0, 1), got {self.iou_threshold}")
        if self.max_boxes is not None and self.max_boxes < 1:
            raise ConfigurationError(f"max_boxes must be >= 1 or None, got {self.max_boxes}")
        w, h = self.model_input_size
        if w <= 0 or h <= 0:
            raise ConfigurationError(f"model_input_size must be positive, got {self.model_input_size}")
        if self.num_classes is not None and self.num_classes < 1:
            raise ConfigurationError(f"num_classes must be >= 1, got {self.num_classes}")

    def nms_config(self) -> NMSConfig:
        return NMSConfig(
            iou_threshold=self.iou_threshold,
            max_boxes=self.max_boxes,
            class_agnostic=self.class_agnostic_nms,
        )

    def formatter_config(self) -> FormatterConfig:
        return FormatterConfig(
            confidence_threshold=self.confidence_threshold,
            display_color=self.display_color,
            label_error_policy=self.label_error_policy,
        )


@dataclass(frozen=True)
class FrameResult:
    detections: Tuple[Detection, ...]
    timestamp: datetime
    skipped: bool = False
    error: Optional[str] = field(default=None, compare=False)

    @property
    def has_detections(self) -> bool:
        return len(self.detections) > 0

    @property
    def best_confidence(self) -> Optional[float]:
        if not self.detections:
            return None
        return max(d.confidence for d in self.detections)

    @property
    def time_label(self) -> str:
        # e.g. "10:48:53 PM"
        return self.timestamp.strftime("%I:%M:%S %p")


def validate_labels(labels: Sequence[str], num_classes: Optional[int]) -> None:
    if len(labels) < 2:
        raise ConfigurationError(f"label table needs a background slot plus at least one class, got {len(labels)}")
    if num_classes is not None and len(labels) < num_classes + 1:
        raise ConfigurationError(
            f"label table has {len(labels)} entries but {num_classes} classes need {num_classes + 1}"
        )


def check_dest_size(dest_size: Tuple[float, float]) -> Tuple[float, float]:
    try:
        width, height = (float(v) for v in dest_size)
    except (TypeError, ValueError) as exc:
        raise FrameSizeError(f"destination size must be a (width, height) pair, got {dest_size!r}") from exc
    if not (math.isfinite(width) and math.isfinite(height)) or width <= 0 or height <= 0:
        raise FrameSizeError(f"destination size must be positive, got {(width, height)}")
    return width, height


class DetectionPipeline:
    """
    Per-frame post-processing: decode -> suppress -> format.

    The pipeline holds only immutable configuration, so a single instance can
    be reused across frames. Bad frame data never raises out of `process`;
    the frame is reported as skipped instead.
    """

    def __init__(
        self,
        cfg: PipelineConfig,
        labels: Sequence[str],
        *,
        decoder: Optional[TensorDecoder] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        validate_labels(labels, cfg.num_classes)
        self.cfg = cfg
        self.labels = tuple(labels)
        self.decoder = decoder if decoder is not None else SsdTensorDecoder(cfg.coordinate_space)
        self.nms_cfg = cfg.nms_config()
        self.formatter = ResultFormatter(cfg.formatter_config(), self.labels)
        self._clock = clock or datetime.now

    def process(self, raw: RawTensors, dest_size: Tuple[float, float]) -> FrameResult:
        """
        Args:
            raw: the interpreter's four output tensors for one frame
            dest_size: (width, height) of the destination pixel space
        """

        timestamp = self._clock()
        try:
            dest_size = check_dest_size(dest_size)
            candidates = self.decoder.decode(raw)
            keep = non_max_suppression(candidates, self.nms_cfg)
            selected = [candidates[i] for i in keep]
            transform = RescaleTransform.for_space(self.cfg.coordinate_space, self.cfg.model_input_size, dest_size)
            detections: List[Detection] = self.formatter.format(selected, transform)
        except (MalformedTensorError, LabelResolutionError, FrameSizeError) as exc:
            logger.warning(f"[DetectionPipeline] skipping frame: {exc}")
            return FrameResult(detections=(), timestamp=timestamp, skipped=True, error=str(exc))

        logger.debug(
            f"[DetectionPipeline] candidates={len(candidates)} kept={len(keep)} detections={len(detections)}"
        )
        return FrameResult(detections=tuple(detections), timestamp=timestamp)

    def __call__(self, raw: RawTensors, dest_size: Tuple[float, float]) -> FrameResult:
        return self.process(raw, dest_size)
