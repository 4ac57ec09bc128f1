"""Python SDK for on-device training preparation.

This module exposes one session object that prepares the training
dataset in the background, writes the model artifact, and compiles it,
while publishing preparation status and model readiness to observers.
"""

from __future__ import annotations

from pathlib import Path

from core.config import EdgeTrainConfig
from core.errors import ModelCompileError
from core.types import BatchCollection
from graph.graph_spec import GraphSpec
from graph.reference_topology import build_reference_graph_spec
from ingest.dataset_builder import DatasetBuilder, PreparationHandle, ProgressCallback
from ingest.dispatch import Dispatcher, QueueDispatcher, inline_dispatch
from ingest.input_reader import iter_source_records
from ingest.preparation_state import PreparationState
from serve.artifact_serializer import serialize_graph_spec
from serve.model_compiler import CompiledModel, ModelCompiler, OnnxRuntimeCompiler
from serve.model_readiness import ModelReadiness


class TrainingSession:
    """Primary SDK entry point for dataset and model preparation."""

    def __init__(
        self,
        config: EdgeTrainConfig | None = None,
        dispatcher: Dispatcher = inline_dispatch,
        compiler: ModelCompiler | None = None,
    ) -> None:
        """Create a session.

        Args:
            config: Optional runtime configuration.
            dispatcher: Context receiving preparation updates.
            compiler: Optional model compiler; ONNX Runtime by default.
        """
        self._config = config or EdgeTrainConfig.from_env()
        self._dispatcher = dispatcher
        self._compiler = compiler or OnnxRuntimeCompiler()
        self._state = PreparationState()
        self._readiness = ModelReadiness()
        self._builder = DatasetBuilder(self._state, dispatcher, self._config.decode_policy)
        self._batch_collection: BatchCollection | None = None
        self._compiled_model: CompiledModel | None = None

    @property
    def config(self) -> EdgeTrainConfig:
        return self._config

    @property
    def state(self) -> PreparationState:
        return self._state

    @property
    def readiness(self) -> ModelReadiness:
        return self._readiness

    @property
    def batch_collection(self) -> BatchCollection | None:
        """Latest finished collection, or None before the first completes."""
        return self._batch_collection

    @property
    def compiled_model(self) -> CompiledModel | None:
        return self._compiled_model

    def start_dataset_preparation(
        self,
        source_uri: str,
        skip_header: bool = False,
        on_progress: ProgressCallback | None = None,
    ) -> PreparationHandle:
        """Start preparing a dataset source in the background.

        Args:
            source_uri: Local CSV path or ``s3://bucket/key`` URI.
            skip_header: Drop the first non-blank source line.
            on_progress: Receives each running example count.

        Returns:
            Handle for waiting on or cancelling the run.
        """
        records = iter_source_records(source_uri, self._config, skip_header=skip_header)
        return self._builder.start(
            records, on_progress=on_progress, on_complete=self._store_collection
        )

    def prepare_dataset(
        self,
        source_uri: str,
        skip_header: bool = False,
        on_progress: ProgressCallback | None = None,
    ) -> BatchCollection:
        """Prepare a dataset source and wait for the finished collection.

        Queued updates are run on the calling thread while waiting.
        """
        handle = self.start_dataset_preparation(source_uri, skip_header, on_progress)
        if isinstance(self._dispatcher, QueueDispatcher):
            self._dispatcher.run_until(handle.done)
        return handle.result()

    def prepare_model(
        self,
        spec: GraphSpec | None = None,
        destination: Path | str | None = None,
    ) -> Path:
        """Serialize a graph to the artifact path and flag the model prepared.

        Args:
            spec: Graph to serialize; the reference MNIST graph by default.
            destination: Artifact path; the configured default if omitted.

        Returns:
            Written artifact path.
        """
        graph_spec = spec or build_reference_graph_spec()
        artifact_path = serialize_graph_spec(
            graph_spec,
            destination or self._config.default_model_path,
            random_seed=self._config.random_seed,
        )
        self._compiled_model = None
        self._readiness.mark_prepared(artifact_path)
        return artifact_path

    def compile_model(self, artifact_path: Path | str | None = None) -> CompiledModel:
        """Compile the prepared artifact and flag the model compiled.

        Args:
            artifact_path: Optional existing artifact, adopted once it compiles.

        Raises:
            ModelCompileError: If no artifact is prepared or compilation fails.
        """
        if artifact_path is not None:
            target_path = Path(artifact_path).expanduser().resolve()
        else:
            target_path = self._readiness.snapshot.artifact_path
        if target_path is None:
            raise ModelCompileError(
                "No model artifact has been prepared. Call prepare_model before compile_model."
            )
        # Readiness changes only after the compiler succeeds.
        compiled_model = self._compiler.compile(target_path)
        if artifact_path is not None:
            self._readiness.mark_prepared(target_path)
        self._compiled_model = compiled_model
        self._readiness.mark_compiled(compiled_model.compiled_path)
        return compiled_model

    def _store_collection(self, collection: BatchCollection) -> None:
        self._batch_collection = collection
