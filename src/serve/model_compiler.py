"""Model compilation through an external runtime.

The compiler turns a serialized artifact into a runnable model handle.
Callers only rely on the handle being opaque and on the compiled path;
``OnnxRuntimeCompiler`` fulfils the contract with an ONNX Runtime
inference session and writes the optimized model next to the artifact.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from core.errors import EdgeTrainDependencyError, ModelCompileError
from core.logging_config import get_logger
from serve.model_format import detect_model_format

_LOGGER = get_logger(__name__)

_COMPILED_SUFFIX = ".compiled.onnx"


@dataclass(frozen=True)
class CompiledModel:
    """Opaque runnable model with the paths it came from."""

    handle: Any
    source_path: Path
    compiled_path: Path


class ModelCompiler(Protocol):
    """Contract for turning an artifact into a runnable model."""

    def compile(self, artifact_path: Path) -> CompiledModel:
        """Compile and load one artifact."""
        ...


class OnnxRuntimeCompiler:
    """Compile ONNX artifacts into ONNX Runtime inference sessions."""

    def __init__(self, output_dir: Path | None = None) -> None:
        self._output_dir = output_dir

    def compile(self, artifact_path: Path) -> CompiledModel:
        """Optimize and load ``artifact_path``.

        Raises:
            ModelCompileError: If the artifact is missing or rejected.
            EdgeTrainDependencyError: If onnxruntime is unavailable.
        """
        source_path = Path(artifact_path).expanduser().resolve()
        if not source_path.is_file():
            raise ModelCompileError(
                f"Model artifact not found at {source_path}. Prepare the model before compiling."
            )
        if detect_model_format(source_path) != "onnx":
            raise ModelCompileError(
                f"Unsupported model artifact format at {source_path}: expected a .onnx file."
            )
        ort_module = _import_onnxruntime_optional()
        compiled_path = self._compiled_path_for(source_path)
        compiled_path.parent.mkdir(parents=True, exist_ok=True)
        session_options = ort_module.SessionOptions()
        session_options.graph_optimization_level = (
            ort_module.GraphOptimizationLevel.ORT_ENABLE_BASIC
        )
        session_options.optimized_model_filepath = str(compiled_path)
        try:
            session = ort_module.InferenceSession(
                str(source_path),
                sess_options=session_options,
                providers=["CPUExecutionProvider"],
            )
        except Exception as error:
            raise ModelCompileError(
                f"Failed to compile model artifact at {source_path}: {error}"
            ) from error
        _LOGGER.info(
            "model_compiled",
            artifact_path=str(source_path),
            compiled_path=str(compiled_path),
        )
        return CompiledModel(handle=session, source_path=source_path, compiled_path=compiled_path)

    def _compiled_path_for(self, source_path: Path) -> Path:
        output_dir = self._output_dir or source_path.parent
        return output_dir / f"{source_path.stem}{_COMPILED_SUFFIX}"


def _import_onnxruntime_optional() -> Any:
    try:
        import onnxruntime
    except ImportError as error:
        raise EdgeTrainDependencyError(
            "Model compilation requires onnxruntime, but it is not installed. "
            "Install with pip install -e .[runtime] to compile model artifacts."
        ) from error
    return onnxruntime
