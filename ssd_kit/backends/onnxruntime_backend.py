from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple, Union

import numpy as np
from loguru import logger

from ..types import RawTensors


PathLike = Union[str, Path]


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers (e.g., ["CUDAExecutionProvider", "CPUExecutionProvider"])
    - input_name: override the auto-selected input name if needed
    - output_order: positions of the (boxes, classes, scores, count) outputs
    """

    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None
    output_order: Tuple[int, int, int, int] = (0, 1, 2, 3)


class OnnxRuntimeBackend:
    """
    ONNX Runtime backend for SSD-style detectors with a built-in
    post-process op (four outputs).

    Expects an NHWC blob shaped (1, H, W, 3). Returns the raw outputs as
    `RawTensors`.
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime` "
                "(or `onnxruntime-gpu`)."
            ) from e

        self._ort = ort
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        sess_opts = ort.SessionOptions()
        providers = list(cfg.providers) if cfg.providers is not None else None
        self.session = ort.InferenceSession(str(self.model_path), sess_options=sess_opts, providers=providers)

        self.input_name = cfg.input_name or self.session.get_inputs()[0].name
        outputs = self.session.get_outputs()
        if len(outputs) < 4:
            raise ValueError(f"Expected 4 detector outputs (boxes, classes, scores, count), model has {len(outputs)}")
        self.output_names = [outputs[i].name for i in cfg.output_order]
        logger.info(f"[OnnxRuntimeBackend] loaded {self.model_path} outputs={self.output_names}")

    @property
    def providers_in_use(self) -> Sequence[str]:
        return tuple(self.session.get_providers())

    @property
    def input_is_quantized(self) -> bool:
        return "uint8" in str(self.session.get_inputs()[0].type)

    def infer(self, blob: np.ndarray, extra_inputs: Optional[Dict[str, Any]] = None) -> RawTensors:
        inputs: Dict[str, Any] = {self.input_name: blob}
        if extra_inputs:
            inputs.update(extra_inputs)
        boxes, classes, scores, count = self.session.run(self.output_names, inputs)
        return RawTensors(boxes=boxes, classes=classes, scores=scores, count=count)
