from typing import Tuple

import numpy as np


def resize_for_model(
    image: np.ndarray,
    input_size: Tuple[int, int] = (416, 416),
    quantized: bool = False,
) -> np.ndarray:
    """
    Resize a BGR frame straight to the model input size (no padding) and pack
    it as an NHWC RGB batch of one.

    Returns:
        uint8 blob for quantized models, otherwise float32 scaled to [0, 1]
    """
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for resize_for_model(). Install with `pip install opencv-python`.") from e

    if image is None or not hasattr(image, "shape"):
        raise TypeError("image must be a NumPy array (BGR).")
    if image.ndim != 3 or image.shape[2] < 3:
        raise ValueError(f"Expected image shape (H, W, 3|4), got {getattr(image, 'shape', None)}")

    new_w, new_h = input_size
    h, w = image.shape[:2]

    # Drop alpha if present (BGRA frames from screen grabs)
    img = image[:, :, :3]
    if (w, h) != (new_w, new_h):
        img = cv2.resize(img, (new_w, new_h), interpolation=cv2.INTER_LINEAR)

    rgb = np.ascontiguousarray(img[:, :, ::-1])
    if quantized:
        return rgb.astype(np.uint8)[None, ...]
    return (rgb.astype(np.float32) / 255.0)[None, ...]
