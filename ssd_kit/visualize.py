from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np

from .types import Detection


def overlay_label(det: Detection) -> str:
    # Confidence is truncated to a whole percent: 0.876 -> "87%"
    return f"{det.class_name}  ({int(det.confidence * 100.0)}%)"


def clip_box(
    det: Detection,
    width: int,
    height: int,
    edge_offset: float = 2.0,
) -> Tuple[int, int, int, int]:
    """
    Fit a detection box inside a (width, height) canvas. Boxes that start off
    canvas are pulled in to `edge_offset`; boxes that run past the far edge
    are shortened to end `edge_offset` short of it.
    """

    x, y = det.rect.x, det.rect.y
    w, h = det.rect.width, det.rect.height
    if x < 0:
        x = edge_offset
    if y < 0:
        y = edge_offset
    if y + h > height:
        h = height - y - edge_offset
    if x + w > width:
        w = width - x - edge_offset

    x1 = int(np.clip(round(x), 0, width - 1))
    y1 = int(np.clip(round(y), 0, height - 1))
    x2 = int(np.clip(round(x + w), 0, width - 1))
    y2 = int(np.clip(round(y + h), 0, height - 1))
    return x1, y1, x2, y2


def draw_detections(
    image_bgr: np.ndarray,
    detections: Iterable[Detection],
    *,
    edge_offset: float = 2.0,
    box_thickness: int = 2,
    font_scale: float = 0.5,
    font_thickness: int = 1,
) -> np.ndarray:
    """
    Draw bounding boxes + labels on an OpenCV BGR image and return a copy.

    Args:
        image_bgr: input image in BGR (H, W, 3).
        detections: detections already in this image's pixel space.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for draw_detections(). Install with `pip install opencv-python`.") from e

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    out = image_bgr.copy()
    h, w = out.shape[:2]

    for det in detections:
        x1i, y1i, x2i, y2i = clip_box(det, w, h, edge_offset=edge_offset)
        color = tuple(int(c) for c in det.display_color)
        cv2.rectangle(out, (x1i, y1i), (x2i, y2i), color, thickness=box_thickness)

        label = overlay_label(det)
        (tw, th), baseline = cv2.getTextSize(label, cv2.FONT_HERSHEY_SIMPLEX, font_scale, font_thickness)
        # Place label above the box if possible, else inside.
        y_text_top = y1i - th - baseline
        if y_text_top < 0:
            y_text_top = y1i

        x_text_right = min(x1i + tw, w - 1)
        y_text_bottom = min(y_text_top + th + baseline, h - 1)

        cv2.rectangle(out, (x1i, y_text_top), (x_text_right, y_text_bottom), color, thickness=-1)
        cv2.putText(
            out,
            label,
            (x1i, min(y_text_top + th, h - 1)),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            (0, 0, 0),
            thickness=font_thickness,
            lineType=cv2.LINE_AA,
        )

    return out
