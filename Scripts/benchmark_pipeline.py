from __future__ import annotations

import argparse
import statistics
import time
from dataclasses import dataclass
from typing import List

import numpy as np

from ssd_kit import DetectionPipeline, PipelineConfig, RawTensors


@dataclass(frozen=True)
class TimingSummary:
    n: int
    mean_ms: float
    p50_ms: float
    p95_ms: float
    max_ms: float


def _summarize_ms(values_s: List[float]) -> TimingSummary:
    ms = np.array(sorted(v * 1000.0 for v in values_s), dtype=np.float64)
    return TimingSummary(
        n=int(ms.size),
        mean_ms=float(statistics.fmean(ms)),
        p50_ms=float(np.percentile(ms, 50.0)),
        p95_ms=float(np.percentile(ms, 95.0)),
        max_ms=float(ms[-1]),
    )


def _synthetic_tensors(rng: np.random.Generator, anchors: int, n_classes: int) -> RawTensors:
    # [y_min, x_min, y_max, x_max] normalized
    mins = rng.uniform(0.0, 0.9, size=(anchors, 2))
    sizes = rng.uniform(0.01, 0.2, size=(anchors, 2))
    boxes = np.concatenate([mins, np.minimum(mins + sizes, 1.0)], axis=1).astype(np.float32)
    classes = rng.integers(0, n_classes, size=anchors).astype(np.float32)
    scores = np.sort(rng.uniform(0.0, 1.0, size=anchors))[::-1].astype(np.float32)
    count = np.array([anchors], dtype=np.float32)
    return RawTensors(boxes=boxes, classes=classes, scores=scores, count=count)


def main() -> int:
    parser = argparse.ArgumentParser(description="Benchmark detection post-processing latency against a frame budget.")
    parser.add_argument("--anchors", type=int, default=100, help="Detector output slots per frame.")
    parser.add_argument("--classes", type=int, default=1, help="Number of model classes.")
    parser.add_argument("--frames", type=int, default=200, help="Recorded frames.")
    parser.add_argument("--warmup", type=int, default=10, help="Warmup frames to run but not record.")
    parser.add_argument("--fps", type=float, default=1.0, help="Capture cadence; the budget is 1/fps.")
    parser.add_argument("--per-class-nms", action="store_true", help="Use per-class NMS (default is class-agnostic).")
    args = parser.parse_args()

    if args.anchors < 1 or args.classes < 1 or args.frames < 1 or args.warmup < 0 or args.fps <= 0:
        raise ValueError("--anchors/--classes/--frames must be >= 1, --warmup >= 0, --fps > 0")

    labels = ["???"] + [f"class_{i}" for i in range(args.classes)]
    pipeline = DetectionPipeline(
        PipelineConfig(class_agnostic_nms=not args.per_class_nms, num_classes=args.classes),
        labels,
    )
    rng = np.random.default_rng(0)

    timings: List[float] = []
    kept: List[int] = []
    for i in range(args.warmup + args.frames):
        raw = _synthetic_tensors(rng, args.anchors, args.classes)
        t0 = time.perf_counter()
        result = pipeline.process(raw, (1280.0, 720.0))
        t1 = time.perf_counter()
        if i >= args.warmup:
            timings.append(t1 - t0)
            kept.append(len(result.detections))

    s = _summarize_ms(timings)
    budget_ms = 1000.0 / args.fps
    print(
        f"pipeline: n={s.n} mean={s.mean_ms:.3f}ms p50={s.p50_ms:.3f}ms "
        f"p95={s.p95_ms:.3f}ms max={s.max_ms:.3f}ms"
    )
    print(f"detections/frame mean={statistics.fmean(kept):.1f} budget={budget_ms:.1f}ms within_budget={s.max_ms < budget_ms}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
