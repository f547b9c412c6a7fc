from __future__ import annotations


class PipelineError(ValueError):
    """Base class for detection pipeline failures."""


class MalformedTensorError(PipelineError):
    """A raw output buffer does not match the declared count or stride."""


class LabelResolutionError(PipelineError):
    def __init__(self, class_index: int, label_count: int) -> None:
        super().__init__(
            f"class index {class_index} has no label (table has {label_count} entries, index 0 reserved)"
        )
        self.class_index = class_index
        self.label_count = label_count


class ConfigurationError(PipelineError):
    """Invalid thresholds or label table; raised before any frame is processed."""


class FrameSizeError(PipelineError):
    """The destination frame size is not a positive, finite (width, height)."""
