"""Model artifact format helpers.

This module centralizes file-format detection for model artifacts handed
to model compilers.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

ModelFormat = Literal["onnx", "coreml", "unknown"]


def detect_model_format(model_path: str | Path) -> ModelFormat:
    """Detect model format from artifact file extension."""
    suffix = Path(model_path).expanduser().resolve().suffix.lower()
    if suffix == ".onnx":
        return "onnx"
    if suffix == ".mlmodel":
        return "coreml"
    return "unknown"
