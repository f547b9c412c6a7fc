from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .errors import ConfigurationError
from .types import Candidate, Rect


@dataclass(frozen=True)
class NMSConfig:
    iou_threshold: float = 0.45
    # None keeps every box that survives suppression.
    max_boxes: Optional[int] = None
    # If False, suppression runs per class_index and results are merged by score.
    class_agnostic: bool = True

    def __post_init__(self) -> None:
        if not 0.0 < self.iou_threshold < 1.0:
            raise ConfigurationError(f"iou_threshold must be in (0, 1), got {self.iou_threshold}")
        if self.max_boxes is not None and self.max_boxes < 1:
            raise ConfigurationError(f"max_boxes must be >= 1 or None, got {self.max_boxes}")


def box_iou(a: Rect, b: Rect) -> float:
    """
    Intersection-over-union of two rects. Degenerate rects have IoU 0 with
    everything, including themselves.
    """

    area_a = a.area
    if area_a <= 0:
        return 0.0
    area_b = b.area
    if area_b <= 0:
        return 0.0

    inter_w = max(min(a.max_x, b.max_x) - max(a.min_x, b.min_x), 0.0)
    inter_h = max(min(a.max_y, b.max_y) - max(a.min_y, b.min_y), 0.0)
    inter = inter_w * inter_h
    return float(inter / (area_a + area_b - inter))


def nms(boxes: np.ndarray, scores: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    """
    Greedy NumPy NMS. Expects boxes shape (N,4) in xyxy and scores shape (N,).
    Returns indices of kept boxes, highest score first. Equal scores keep
    input order.
    """

    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    scores = np.asarray(scores, dtype=np.float64).reshape(-1)
    if boxes.shape[0] == 0:
        return np.empty((0,), dtype=np.int64)

    x1 = boxes[:, 0]
    y1 = boxes[:, 1]
    x2 = boxes[:, 2]
    y2 = boxes[:, 3]
    degenerate = (x2 <= x1) | (y2 <= y1)
    areas = np.where(degenerate, 0.0, (x2 - x1) * (y2 - y1))

    order = np.argsort(-scores, kind="stable")
    keep: List[int] = []

    while order.size > 0:
        if cfg.max_boxes is not None and len(keep) >= cfg.max_boxes:
            break
        i = order[0]
        keep.append(int(i))
        rest = order[1:]
        if degenerate[i]:
            order = rest
            continue

        xx1 = np.maximum(x1[i], x1[rest])
        yy1 = np.maximum(y1[i], y1[rest])
        xx2 = np.minimum(x2[i], x2[rest])
        yy2 = np.minimum(y2[i], y2[rest])

        w = np.maximum(0.0, xx2 - xx1)
        h = np.maximum(0.0, yy2 - yy1)
        inter = w * h
        union = areas[i] + areas[rest] - inter
        iou = np.where(degenerate[rest], 0.0, inter / np.where(union > 0, union, 1.0))

        order = rest[iou <= cfg.iou_threshold]

    return np.array(keep, dtype=np.int64)


def non_max_suppression(
    candidates: Sequence[Candidate],
    cfg: NMSConfig,
    indices: Optional[Sequence[int]] = None,
) -> List[int]:
    """
    Select candidates that do not overlap a higher-scoring selected candidate
    by more than `cfg.iou_threshold`.

    Args:
        candidates: decoded candidates, all in the same coordinate space
        cfg: suppression settings
        indices: optional subset of `candidates` to consider; defaults to all

    Returns:
        indices into `candidates`, in selection order (descending score)
    """

    if indices is None:
        pool = np.arange(len(candidates), dtype=np.int64)
    else:
        pool = np.sort(np.asarray(indices, dtype=np.int64).reshape(-1))
    if pool.size == 0:
        return []

    boxes = np.array([candidates[i].rect.as_xyxy() for i in pool], dtype=np.float64)
    scores = np.array([candidates[i].score for i in pool], dtype=np.float64)

    if cfg.class_agnostic:
        return [int(pool[k]) for k in nms(boxes, scores, cfg)]

    class_ids = np.array([candidates[i].class_index for i in pool], dtype=np.int64)
    kept: List[int] = []
    for cls in np.unique(class_ids):
        local = np.where(class_ids == cls)[0]
        kept.extend(int(local[k]) for k in nms(boxes[local], scores[local], cfg))

    # Merge groups: descending score, ties by position in the pool.
    kept.sort(key=lambda k: (-scores[k], k))
    if cfg.max_boxes is not None:
        kept = kept[: cfg.max_boxes]
    return [int(pool[k]) for k in kept]
