"""
Drone HUD application layer built on top of `ssd_kit`.

Detection itself stays in `ssd_kit`; this package covers what the HUD and
map views do with the results:
- the injected, append-only geotagged detection log
- per-frame processing and the single-worker capture handoff
- JSON pipeline profiles
- report writers for the map view
- the `drone-hud` command-line runner
"""

from __future__ import annotations

from .config import load_pipeline_profile, pipeline_config_from_dict
from .detection_log import DetectionLog, DetectionLogEntry, GeoLocation
from .frame_loop import FrameProcessor, FrameScheduler, FrameSchedulerConfig
from .reporting import (
    annotation_lines,
    entry_to_dict,
    write_detection_geojson,
    write_detection_log_csv,
    write_detection_log_json,
    write_entry_images,
)

__all__ = [
    "load_pipeline_profile",
    "pipeline_config_from_dict",
    "DetectionLog",
    "DetectionLogEntry",
    "GeoLocation",
    "FrameProcessor",
    "FrameScheduler",
    "FrameSchedulerConfig",
    "annotation_lines",
    "entry_to_dict",
    "write_detection_geojson",
    "write_detection_log_csv",
    "write_detection_log_json",
    "write_entry_images",
]
