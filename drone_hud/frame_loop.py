from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np
from loguru import logger

from ssd_kit.pipeline import DetectionPipeline, FrameResult
from ssd_kit.preprocess import resize_for_model
from ssd_kit.types import RawTensors

from .detection_log import DetectionLog, DetectionLogEntry, GeoLocation

InferFn = Callable[[np.ndarray], RawTensors]
LocationProvider = Callable[[], Optional[GeoLocation]]
ResultCallback = Callable[[FrameResult], None]


def _no_fix() -> Optional[GeoLocation]:
    return None


class FrameProcessor:
    """
    Runs one captured frame through preprocess -> interpreter -> pipeline and
    records a log entry when the frame yielded at least one detection.
    """

    def __init__(
        self,
        infer_fn: InferFn,
        pipeline: DetectionPipeline,
        log: DetectionLog,
        *,
        location_provider: LocationProvider = _no_fix,
        quantized_input: bool = False,
        keep_images: bool = True,
    ) -> None:
        self._infer_fn = infer_fn
        self.pipeline = pipeline
        self.log = log
        self._location_provider = location_provider
        self.quantized_input = quantized_input
        self.keep_images = keep_images

    def handle(self, frame_bgr: np.ndarray) -> FrameResult:
        h, w = frame_bgr.shape[:2]
        blob = resize_for_model(frame_bgr, self.pipeline.cfg.model_input_size, quantized=self.quantized_input)
        raw = self._infer_fn(blob)
        result = self.pipeline.process(raw, (float(w), float(h)))

        if result.has_detections:
            entry = DetectionLogEntry(
                timestamp=result.timestamp,
                time_label=result.time_label,
                max_confidence=float(result.best_confidence),
                detection_count=len(result.detections),
                location=self._location_provider(),
                image=frame_bgr.copy() if self.keep_images else None,
            )
            total = self.log.append(entry)
            if entry.location is None:
                logger.info(f"[FrameProcessor] detection logged without location fix (total={total})")
            else:
                logger.debug(f"[FrameProcessor] detection logged (total={total})")
        return result


@dataclass(frozen=True)
class FrameSchedulerConfig:
    capture_fps: float = 1.0

    def __post_init__(self) -> None:
        if self.capture_fps <= 0:
            raise ValueError("capture_fps must be > 0")

    @property
    def interval_s(self) -> float:
        return 1.0 / self.capture_fps


class FrameScheduler:
    """
    Single-worker handoff between frame capture and the detection pipeline.

    At most one frame is in flight: `submit` refuses new frames until the
    previous frame and its result callback have both finished.
    """

    def __init__(self, processor: FrameProcessor, cfg: FrameSchedulerConfig = FrameSchedulerConfig()) -> None:
        self.processor = processor
        self.cfg = cfg
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="detection")
        self._lock = threading.Lock()
        self._pending: Optional[Future] = None
        self.dropped_frames = 0

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._pending is not None and not self._pending.done()

    def submit(self, frame_bgr: np.ndarray, on_result: Optional[ResultCallback] = None) -> bool:
        with self._lock:
            if self._pending is not None and not self._pending.done():
                self.dropped_frames += 1
                logger.debug(f"[FrameScheduler] previous frame still running, dropped={self.dropped_frames}")
                return False
            self._pending = self._executor.submit(self._run, frame_bgr, on_result)
            return True

    def _run(self, frame_bgr: np.ndarray, on_result: Optional[ResultCallback]) -> Optional[FrameResult]:
        try:
            result = self.processor.handle(frame_bgr)
            if on_result is not None:
                on_result(result)
        except Exception:
            logger.exception("[FrameScheduler] frame processing failed; frame skipped")
            return None
        return result

    def wait(self, timeout: Optional[float] = None) -> Optional[FrameResult]:
        """Block until the in-flight frame (if any) is done and return its result."""
        with self._lock:
            pending = self._pending
        if pending is None:
            return None
        return pending.result(timeout=timeout)

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "FrameScheduler":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
