"""
Post-processing for SSD-style detectors on a drone video feed.

Takes the four raw output tensors of a detector (boxes, classes, scores,
count) and produces a small, deduplicated, confidence-ranked list of boxes in
screen space. Core pieces depend only on NumPy; OpenCV is needed for
preprocessing and overlay drawing.
"""

from .types import Candidate, CoordinateSpace, Detection, RawTensors, Rect
from .errors import ConfigurationError, FrameSizeError, LabelResolutionError, MalformedTensorError, PipelineError
from .decode import SsdTensorDecoder, TensorDecoder, decode_tensors
from .nms import NMSConfig, box_iou, nms, non_max_suppression
from .postprocess import FormatterConfig, LabelErrorPolicy, RescaleTransform, ResultFormatter
from .pipeline import DetectionPipeline, FrameResult, PipelineConfig
from .metadata import load_labels
from .preprocess import resize_for_model
from .visualize import draw_detections

__all__ = [
    "Candidate",
    "CoordinateSpace",
    "Detection",
    "RawTensors",
    "Rect",
    "ConfigurationError",
    "FrameSizeError",
    "LabelResolutionError",
    "MalformedTensorError",
    "PipelineError",
    "SsdTensorDecoder",
    "TensorDecoder",
    "decode_tensors",
    "NMSConfig",
    "box_iou",
    "nms",
    "non_max_suppression",
    "FormatterConfig",
    "LabelErrorPolicy",
    "RescaleTransform",
    "ResultFormatter",
    "DetectionPipeline",
    "FrameResult",
    "PipelineConfig",
    "load_labels",
    "resize_for_model",
    "draw_detections",
]
