"""
Report writers for the detection log.

The map view only needs located entries (GeoJSON points); the JSON/CSV dumps
keep every entry, with empty location fields when there was no GPS fix.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .detection_log import DetectionLogEntry


def entry_to_dict(entry: DetectionLogEntry, image_file: Optional[str] = None) -> Dict[str, Any]:
    loc = entry.location
    return {
        "timestamp": entry.timestamp.isoformat(timespec="seconds"),
        "time": entry.time_label,
        "max_confidence": float(entry.max_confidence),
        "detection_count": int(entry.detection_count),
        "latitude": None if loc is None else float(loc.latitude),
        "longitude": None if loc is None else float(loc.longitude),
        "altitude": None if loc is None or loc.altitude is None else float(loc.altitude),
        "image": image_file,
    }


def annotation_lines(entry: DetectionLogEntry) -> List[str]:
    """Text for the map annotation card: confidence, coordinates, time."""
    if entry.location is None:
        coords = "Unknown"
    else:
        coords = f"{entry.location.latitude:.5f}, {entry.location.longitude:.5f}"
    return [
        f"Max Confidence: {entry.max_confidence:.2f}",
        coords,
        entry.time_label or "Unknown",
    ]


def write_entry_images(*, out_dir: Path, entries: Iterable[DetectionLogEntry]) -> List[Optional[str]]:
    """
    Save each entry's captured frame as JPEG. Returns the relative file name
    per entry (None for entries without an image).
    """

    import cv2

    image_dir = out_dir / "images"
    names: List[Optional[str]] = []
    for idx, entry in enumerate(entries, start=1):
        if entry.image is None:
            names.append(None)
            continue
        image_dir.mkdir(parents=True, exist_ok=True)
        filename = f"detection_{idx:04d}.jpg"
        path = image_dir / filename
        if not cv2.imwrite(str(path), entry.image):
            raise RuntimeError(f"Failed to write detection image: {path}")
        names.append(str(path.relative_to(out_dir)))
    return names


def write_detection_log_json(
    *,
    out_dir: Path,
    entries: Iterable[DetectionLogEntry],
    image_files: Optional[List[Optional[str]]] = None,
) -> Path:
    entries_list = list(entries)
    files = image_files if image_files is not None else [None] * len(entries_list)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / "detections.json"
    payload = {"detections": [entry_to_dict(e, f) for e, f in zip(entries_list, files)]}
    path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    return path


def write_detection_log_csv(*, out_dir: Path, entries: Iterable[DetectionLogEntry]) -> Path:
    rows: List[Dict[str, Any]] = [entry_to_dict(e) for e in entries]
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / "detections.csv"
    if not rows:
        path.write_text("", encoding="utf-8")
        return path

    fieldnames = list(rows[0].keys())
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(rows)
    return path


def write_detection_geojson(*, out_dir: Path, entries: Iterable[DetectionLogEntry]) -> Path:
    features = []
    for entry in entries:
        if entry.location is None:
            continue
        coords = [float(entry.location.longitude), float(entry.location.latitude)]
        if entry.location.altitude is not None:
            coords.append(float(entry.location.altitude))
        features.append(
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": coords},
                "properties": {
                    "time": entry.time_label,
                    "max_confidence": float(entry.max_confidence),
                    "detection_count": int(entry.detection_count),
                    "title": " | ".join(annotation_lines(entry)),
                },
            }
        )
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / "detections.geojson"
    path.write_text(json.dumps({"type": "FeatureCollection", "features": features}, indent=2), encoding="utf-8")
    return path
