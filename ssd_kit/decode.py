from __future__ import annotations

import math
from typing import Any, List, Protocol

import numpy as np

from .errors import MalformedTensorError
from .types import Candidate, CoordinateSpace, RawTensors, Rect


class TensorDecoder(Protocol):
    """Fixed tensor layout in, Candidate list out."""

    def decode(self, raw: RawTensors) -> List[Candidate]:
        ...


def _flat(buffer: Any, name: str) -> np.ndarray:
    try:
        arr = np.asarray(buffer, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise MalformedTensorError(f"{name} tensor is not numeric") from exc
    return arr.reshape(-1)


def read_valid_count(count: Any) -> int:
    """
    Read the detector's valid-detection count from the first element of the
    count tensor, truncating toward zero.
    """

    flat = _flat(count, "count")
    if flat.size == 0:
        raise MalformedTensorError("count tensor is empty")
    value = float(flat[0])
    if not math.isfinite(value):
        raise MalformedTensorError(f"count tensor holds a non-finite value: {value}")
    n = int(value)
    if n < 0:
        raise MalformedTensorError(f"count tensor holds a negative value: {n}")
    return n


def decode_tensors(
    boxes: Any,
    classes: Any,
    scores: Any,
    count: Any,
    space: CoordinateSpace = CoordinateSpace.NORMALIZED,
) -> List[Candidate]:
    """
    Reshape the four flat SSD outputs into one Candidate per valid anchor.

    Boxes are read as [y_min, x_min, y_max, x_max]. Nothing is clamped or
    filtered here; anchor order is preserved.
    """

    b = _flat(boxes, "boxes")
    c = _flat(classes, "classes")
    s = _flat(scores, "scores")
    n = read_valid_count(count)

    if b.size % 4 != 0:
        raise MalformedTensorError(f"boxes tensor length {b.size} is not a multiple of 4")
    capacity = {"boxes": b.size // 4, "classes": c.size, "scores": s.size}
    for name, slots in capacity.items():
        if n > slots:
            raise MalformedTensorError(f"valid count {n} exceeds {name} tensor capacity ({slots} anchors)")
    if not np.all(np.isfinite(c[:n])):
        raise MalformedTensorError("classes tensor holds non-finite class ids")
    if not np.all(np.isfinite(b[: 4 * n])):
        raise MalformedTensorError("boxes tensor holds non-finite coordinates")
    if not np.all(np.isfinite(s[:n])):
        raise MalformedTensorError("scores tensor holds non-finite scores")

    out: List[Candidate] = []
    for i in range(n):
        y_min, x_min, y_max, x_max = (float(v) for v in b[4 * i : 4 * i + 4])
        out.append(
            Candidate(
                class_index=int(c[i]),
                score=float(s[i]),
                rect=Rect(x=x_min, y=y_min, width=x_max - x_min, height=y_max - y_min),
                space=space,
            )
        )
    return out


class SsdTensorDecoder:
    """
    Decoder for the TFLite SSD post-process layout (boxes, classes, scores, count).
    """

    def __init__(self, space: CoordinateSpace = CoordinateSpace.NORMALIZED) -> None:
        self.space = space

    def decode(self, raw: RawTensors) -> List[Candidate]:
        return decode_tensors(raw.boxes, raw.classes, raw.scores, raw.count, space=self.space)
