from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import List, Optional, Sequence

import cv2
from loguru import logger

from ssd_kit.metadata import load_labels
from ssd_kit.pipeline import DetectionPipeline, FrameResult, PipelineConfig
from ssd_kit.visualize import draw_detections

from .config import load_pipeline_profile
from .detection_log import DetectionLog, GeoLocation
from .frame_loop import FrameProcessor, FrameScheduler, FrameSchedulerConfig
from .reporting import write_detection_geojson, write_detection_log_csv, write_detection_log_json, write_entry_images


def parse_location(raw: Optional[str]) -> Optional[GeoLocation]:
    """Parse "LAT,LON" or "LAT,LON,ALT"; None/empty means no fix."""
    if raw is None or not raw.strip():
        return None
    parts = [p.strip() for p in raw.split(",")]
    if len(parts) not in (2, 3):
        raise ValueError(f"--location must be LAT,LON or LAT,LON,ALT, got {raw!r}")
    try:
        values = [float(p) for p in parts]
    except ValueError as exc:
        raise ValueError(f"--location must be numeric, got {raw!r}") from exc
    return GeoLocation(latitude=values[0], longitude=values[1], altitude=values[2] if len(values) == 3 else None)


def _parse_providers(raw: Optional[str]) -> Optional[List[str]]:
    if raw is None:
        return None
    parts = [p.strip().strip("'\"`") for p in str(raw).split(",")]
    return [p for p in parts if p] or None


def _open_capture(args: argparse.Namespace) -> cv2.VideoCapture:
    if args.video is not None:
        cap = cv2.VideoCapture(args.video)
    elif args.rtsp is not None:
        cap = cv2.VideoCapture(args.rtsp)
    else:
        cap = cv2.VideoCapture(int(args.webcam))
    if not cap.isOpened():
        raise RuntimeError("Failed to open video source.")
    return cap


def frame_time_s(frame_idx: int, source_fps: float, pos_msec: float, elapsed_s: float) -> float:
    """
    Stream time of the current frame. Files report fps or a position; live
    sources that report neither fall back to wall-clock time since start.
    """
    if source_fps > 0:
        return frame_idx / source_fps
    if pos_msec > 0:
        return pos_msec / 1000.0
    return elapsed_s


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="drone-hud",
        description="Run SSD detection on a drone video feed and log geotagged detection events.",
    )
    parser.add_argument("--model", required=True, help="Path to the detector model (.onnx).")
    parser.add_argument("--labels", required=True, help="Label map text file, one label per line, line 0 reserved.")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--video", help="Video file path.")
    source.add_argument("--webcam", type=int, help="Webcam index.")
    source.add_argument("--rtsp", help="RTSP stream URL.")
    parser.add_argument("--profile", help="Pipeline profile JSON (thresholds, model input size).")
    parser.add_argument("--fps", type=float, default=1.0, help="Frames per second sent to the detector.")
    parser.add_argument("--location", help="Fixed vehicle location LAT,LON[,ALT]; omit when there is no fix.")
    parser.add_argument("--providers", help="Comma-separated ONNX Runtime execution providers.")
    parser.add_argument("--out", default="runs/drone_hud", help="Output directory for the detection log.")
    parser.add_argument("--no-images", action="store_true", help="Do not keep captured frames in the log.")
    parser.add_argument("--show", action="store_true", help="Show the overlay window.")
    parser.add_argument("--log-level", default="INFO", help="loguru log level.")
    return parser


def run(args: argparse.Namespace) -> int:
    cfg = load_pipeline_profile(Path(args.profile)) if args.profile else PipelineConfig()
    labels = load_labels(args.labels)
    pipeline = DetectionPipeline(cfg, labels)
    location = parse_location(args.location)

    from ssd_kit.backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

    backend = OnnxRuntimeBackend(args.model, OnnxRuntimeBackendConfig(providers=_parse_providers(args.providers)))
    logger.info(f"ONNX Runtime session providers: {list(backend.providers_in_use)}")

    log = DetectionLog()
    processor = FrameProcessor(
        backend.infer,
        pipeline,
        log,
        location_provider=lambda: location,
        quantized_input=backend.input_is_quantized,
        keep_images=not args.no_images,
    )
    sched_cfg = FrameSchedulerConfig(capture_fps=float(args.fps))

    latest: List[Optional[FrameResult]] = [None]

    def _on_result(result: FrameResult) -> None:
        latest[0] = result

    cap = _open_capture(args)
    source_fps = cap.get(cv2.CAP_PROP_FPS) or 0.0
    frame_idx = 0
    next_capture_s = 0.0
    start_s = time.monotonic()
    try:
        with FrameScheduler(processor, sched_cfg) as scheduler:
            while True:
                ok, frame = cap.read()
                if not ok or frame is None:
                    break
                frame_idx += 1
                t_s = frame_time_s(
                    frame_idx,
                    source_fps,
                    cap.get(cv2.CAP_PROP_POS_MSEC) or 0.0,
                    time.monotonic() - start_s,
                )

                if t_s >= next_capture_s:
                    if scheduler.submit(frame, on_result=_on_result):
                        next_capture_s = t_s + sched_cfg.interval_s

                if args.show:
                    shown = frame
                    if latest[0] is not None:
                        shown = draw_detections(frame, latest[0].detections)
                    cv2.imshow("drone-hud", shown)
                    if (cv2.waitKey(1) & 0xFF) == ord("q"):
                        break
            scheduler.wait()
    finally:
        cap.release()
        if args.show:
            cv2.destroyAllWindows()

    out_dir = Path(args.out)
    entries = log.entries()
    image_files = write_entry_images(out_dir=out_dir, entries=entries)
    json_path = write_detection_log_json(out_dir=out_dir, entries=entries, image_files=image_files)
    csv_path = write_detection_log_csv(out_dir=out_dir, entries=entries)
    geojson_path = write_detection_geojson(out_dir=out_dir, entries=entries)
    logger.info(f"Wrote detection log: {json_path}")
    logger.info(f"Wrote detection CSV: {csv_path}")
    logger.info(f"Wrote map points: {geojson_path}")
    logger.info(f"Frames read: {frame_idx}, detection events: {len(entries)}, dropped: {scheduler.dropped_frames}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logger.remove()
    logger.add(sys.stderr, level=str(args.log_level).upper())
    try:
        return run(args)
    except (ValueError, FileNotFoundError, RuntimeError) as exc:
        logger.error(str(exc))
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
