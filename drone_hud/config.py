from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

from ssd_kit.errors import ConfigurationError
from ssd_kit.pipeline import PipelineConfig
from ssd_kit.postprocess import LabelErrorPolicy
from ssd_kit.types import CoordinateSpace

SCHEMA_VERSION = 1

_ALLOWED_KEYS = {
    "schema_version",
    "confidence_threshold",
    "iou_threshold",
    "max_boxes",
    "class_agnostic_nms",
    "model_input_size",
    "coordinate_space",
    "num_classes",
    "label_error_policy",
    "notes",
}


def _optional_number(payload: Dict[str, Any], key: str, default: float) -> float:
    if key not in payload:
        return default
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{key} must be a number")
    return float(value)


def _optional_int(payload: Dict[str, Any], key: str, default: Optional[int]) -> Optional[int]:
    if key not in payload or payload[key] is None:
        return default
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{key} must be an integer")
    return int(value)


def _optional_enum(payload: Dict[str, Any], key: str, enum_cls, default):
    if key not in payload:
        return default
    try:
        return enum_cls(payload[key])
    except ValueError as exc:
        choices = [m.value for m in enum_cls]
        raise ConfigurationError(f"{key} must be one of {choices}") from exc


def pipeline_config_from_dict(payload: Dict[str, Any]) -> PipelineConfig:
    unknown = sorted(set(payload.keys()) - _ALLOWED_KEYS)
    if unknown:
        raise ConfigurationError(f"Unknown pipeline profile keys: {unknown}")

    version = payload.get("schema_version")
    if isinstance(version, bool) or version != SCHEMA_VERSION:
        raise ConfigurationError(f"pipeline profile schema_version must be {SCHEMA_VERSION}")

    defaults = PipelineConfig()

    size = payload.get("model_input_size", list(defaults.model_input_size))
    if (
        not isinstance(size, list)
        or len(size) != 2
        or any(isinstance(v, bool) or not isinstance(v, int) for v in size)
    ):
        raise ConfigurationError("model_input_size must be a [width, height] pair of integers")

    class_agnostic = payload.get("class_agnostic_nms", defaults.class_agnostic_nms)
    if not isinstance(class_agnostic, bool):
        raise ConfigurationError("class_agnostic_nms must be a boolean")

    notes = payload.get("notes")
    if notes is not None and not isinstance(notes, str):
        raise ConfigurationError("notes must be a string if provided")

    return PipelineConfig(
        confidence_threshold=_optional_number(payload, "confidence_threshold", defaults.confidence_threshold),
        iou_threshold=_optional_number(payload, "iou_threshold", defaults.iou_threshold),
        max_boxes=_optional_int(payload, "max_boxes", defaults.max_boxes),
        class_agnostic_nms=class_agnostic,
        model_input_size=(int(size[0]), int(size[1])),
        coordinate_space=_optional_enum(payload, "coordinate_space", CoordinateSpace, defaults.coordinate_space),
        num_classes=_optional_int(payload, "num_classes", defaults.num_classes),
        label_error_policy=_optional_enum(payload, "label_error_policy", LabelErrorPolicy, defaults.label_error_policy),
    )


def load_pipeline_profile(path: Path) -> PipelineConfig:
    if not path.exists():
        raise ConfigurationError(f"Pipeline profile not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid pipeline profile JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ConfigurationError("Pipeline profile must be a JSON object")
    return pipeline_config_from_dict(payload)
