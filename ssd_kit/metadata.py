from __future__ import annotations

from pathlib import Path
from typing import List, Union

from loguru import logger

from .errors import ConfigurationError


def load_labels(labels_path: Union[str, Path]) -> List[str]:
    """
    Load the detector's label map: one label per line, line 0 is the
    background/placeholder class.

        ???
        fire
        smoke

    Trailing blank lines are dropped; blank lines in the middle are kept so
    class ids stay aligned with line numbers.
    """

    path = Path(labels_path)
    if not path.exists():
        raise ConfigurationError(f"Labels file not found: {path}")

    lines = [line.strip() for line in path.read_text(encoding="utf-8").splitlines()]
    while lines and not lines[-1]:
        lines.pop()
    if not lines:
        raise ConfigurationError(f"Labels file is empty: {path}")

    logger.info(f"[labels] loaded {len(lines)} labels from {path}")
    return lines
