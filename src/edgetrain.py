"""Public SDK surface for edgetrain.

This module provides a stable import path for SDK users.
It re-exports the session, graph builders, and typed models.
"""

from __future__ import annotations

from core.config import EdgeTrainConfig
from core.types import BatchCollection, Example, MiniBatch, ModelMetadata
from graph.graph_file import load_graph_spec
from graph.graph_spec import GraphSpec, GraphSpecBuilder, validate_graph_spec
from graph.reference_topology import build_reference_graph_spec, build_reference_training_config
from ingest.dataset_builder import DatasetBuilder, PreparationHandle
from ingest.dispatch import QueueDispatcher, inline_dispatch
from ingest.preparation_state import PreparationState, PreparationStatus
from sdk.training_session import TrainingSession
from serve.artifact_serializer import load_artifact_training_config, serialize_graph_spec
from serve.model_compiler import CompiledModel, OnnxRuntimeCompiler
from serve.model_readiness import ModelReadiness, ReadinessSnapshot

__all__ = [
    "BatchCollection",
    "CompiledModel",
    "DatasetBuilder",
    "EdgeTrainConfig",
    "Example",
    "GraphSpec",
    "GraphSpecBuilder",
    "MiniBatch",
    "ModelMetadata",
    "ModelReadiness",
    "OnnxRuntimeCompiler",
    "PreparationHandle",
    "PreparationState",
    "PreparationStatus",
    "QueueDispatcher",
    "ReadinessSnapshot",
    "TrainingSession",
    "build_reference_graph_spec",
    "build_reference_training_config",
    "inline_dispatch",
    "load_artifact_training_config",
    "load_graph_spec",
    "serialize_graph_spec",
    "validate_graph_spec",
]
