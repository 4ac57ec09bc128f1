"""YAML graph description loading.

This module reads a network graph and its training configuration from a
YAML document and runs it through ``GraphSpecBuilder`` so file-defined
graphs pass the same validation as graphs built in code.

Document layout::

    metadata: {spec_version: 4, short_description: ..., author: ..., license: ...}
    inputs: [{name: image, shape: [1, 28, 28]}]
    outputs: [{name: output, shape: [10]}]
    training_inputs: [{name: output_true, shape: [10]}]
    training:
      loss: {type: categorical_cross_entropy, name: lossLayer, input: output, target: output_true}
      optimizer: {type: adam, learning_rate: {default: 0.001, max: 0.3}, ...}
      epochs: {default: 6, allowed: [6]}
      mini_batch_size: {default: 32, allowed: [32]}
      shuffle: true
    layers:
      - {type: convolution, name: conv1, inputs: [image], outputs: [outConv1], ...}
"""

from __future__ import annotations

from dataclasses import MISSING, fields
from pathlib import Path
from typing import Mapping, Sequence, cast

from core.errors import EdgeTrainDependencyError, GraphFileError
from core.types import ModelMetadata
from graph.graph_spec import GraphSpec, GraphSpecBuilder
from graph.layers import LAYER_TYPES, LayerNode
from graph.training_config import (
    LOSS_TYPES,
    OPTIMIZER_TYPES,
    DiscreteParameter,
    HyperParameter,
    TrainingConfig,
)

_ROOT_KEYS = {"metadata", "inputs", "outputs", "training_inputs", "training", "layers"}


def load_graph_spec(graph_path: str) -> GraphSpec:
    """Load and validate a YAML graph description from disk.

    Args:
        graph_path: File path to the YAML document.

    Returns:
        Validated graph description.

    Raises:
        EdgeTrainDependencyError: If PyYAML is unavailable.
        GraphFileError: If the file is unreadable or malformed.
        GraphValidationError: If the described graph is invalid.
    """
    payload = _load_yaml_payload(graph_path)
    return graph_spec_from_payload(_expect_mapping(payload, "graph document"))


def graph_spec_from_payload(payload: Mapping[str, object]) -> GraphSpec:
    """Build a graph description from a parsed document mapping."""
    unknown_keys = sorted(set(payload) - _ROOT_KEYS)
    if unknown_keys:
        raise GraphFileError(
            f"Unsupported graph document keys {unknown_keys}. "
            f"Allowed keys: {sorted(_ROOT_KEYS)}."
        )
    builder = GraphSpecBuilder()
    if "metadata" in payload:
        builder.with_metadata(_parse_metadata(payload["metadata"]))
    for name, shape in _parse_tensors(payload.get("inputs", []), "inputs"):
        builder.add_input(name, shape)
    for name, shape in _parse_tensors(payload.get("outputs", []), "outputs"):
        builder.add_output(name, shape)
    for name, shape in _parse_tensors(payload.get("training_inputs", []), "training_inputs"):
        builder.add_training_input(name, shape)
    if "training" in payload:
        builder.with_training(_parse_training(payload["training"]))
    layers = _expect_sequence(payload.get("layers", []), "layers")
    builder.add_layers(_parse_layer(item, index) for index, item in enumerate(layers))
    return builder.build()


def _load_yaml_payload(graph_path: str) -> object:
    try:
        import yaml  # type: ignore[import-untyped]
    except ImportError as error:  # pragma: no cover - dependency failure
        raise EdgeTrainDependencyError(
            "YAML graph files require PyYAML. Install with 'pip install pyyaml'."
        ) from error
    graph_file = Path(graph_path).expanduser().resolve()
    if not graph_file.exists():
        raise GraphFileError(
            f"Graph file does not exist at {graph_file}. Provide a valid YAML file path."
        )
    try:
        payload = cast(object, yaml.safe_load(graph_file.read_text(encoding="utf-8")))
    except OSError as error:
        raise GraphFileError(
            f"Failed to read graph file at {graph_file}: {error}. Check file permissions."
        ) from error
    except yaml.YAMLError as error:
        raise GraphFileError(
            f"Failed to parse YAML graph file at {graph_file}: {error}. Fix YAML syntax and retry."
        ) from error
    if payload is None:
        raise GraphFileError(f"Graph file at {graph_file} is empty. Define inputs and layers.")
    return payload


def _parse_metadata(value: object) -> ModelMetadata:
    mapping = _expect_mapping(value, "metadata")
    user_defined = _expect_mapping(mapping.get("user_defined", {}), "metadata.user_defined")
    return ModelMetadata(
        spec_version=int(cast(int, mapping.get("spec_version", 1))),
        short_description=str(mapping.get("short_description", "")),
        author=str(mapping.get("author", "")),
        license=str(mapping.get("license", "")),
        user_defined={key: str(item) for key, item in user_defined.items()},
    )


def _parse_tensors(value: object, context: str) -> list[tuple[str, tuple[int, ...]]]:
    tensors: list[tuple[str, tuple[int, ...]]] = []
    for index, item in enumerate(_expect_sequence(value, context)):
        mapping = _expect_mapping(item, f"{context}[{index}]")
        name = _expect_str(mapping.get("name"), f"{context}[{index}].name")
        shape = _expect_sequence(mapping.get("shape"), f"{context}[{index}].shape")
        dims = tuple(_expect_int(dim, f"{context}[{index}].shape") for dim in shape)
        tensors.append((name, dims))
    return tensors


def _parse_training(value: object) -> TrainingConfig:
    mapping = _expect_mapping(value, "training")
    loss_mapping = dict(_expect_mapping(mapping.get("loss"), "training.loss"))
    loss_type = LOSS_TYPES.get(str(loss_mapping.pop("type", "")))
    if loss_type is None:
        raise GraphFileError(
            f"Unsupported loss type in training.loss. Supported types: {sorted(LOSS_TYPES)}."
        )
    optimizer_mapping = dict(_expect_mapping(mapping.get("optimizer"), "training.optimizer"))
    optimizer_type = OPTIMIZER_TYPES.get(str(optimizer_mapping.pop("type", "")))
    if optimizer_type is None:
        raise GraphFileError(
            "Unsupported optimizer type in training.optimizer. "
            f"Supported types: {sorted(OPTIMIZER_TYPES)}."
        )
    hyperparameters = {
        name: _parse_hyperparameter(item, f"training.optimizer.{name}")
        for name, item in optimizer_mapping.items()
    }
    return TrainingConfig(
        loss=_construct(loss_type, dict(loss_mapping), "training.loss"),
        optimizer=_construct(optimizer_type, hyperparameters, "training.optimizer"),
        epochs=_parse_discrete(mapping.get("epochs"), "training.epochs"),
        mini_batch_size=_parse_discrete(mapping.get("mini_batch_size"), "training.mini_batch_size"),
        shuffle=bool(mapping.get("shuffle", True)),
    )


def _parse_hyperparameter(value: object, context: str) -> HyperParameter:
    mapping = _expect_mapping(value, context)
    return HyperParameter(
        default=_expect_float(mapping.get("default"), f"{context}.default"),
        max=_expect_float(mapping.get("max"), f"{context}.max"),
        min=_expect_float(mapping.get("min", 0.0), f"{context}.min"),
    )


def _parse_discrete(value: object, context: str) -> DiscreteParameter:
    mapping = _expect_mapping(value, context)
    allowed = _expect_sequence(mapping.get("allowed"), f"{context}.allowed")
    return DiscreteParameter(
        default=_expect_int(mapping.get("default"), f"{context}.default"),
        allowed=tuple(_expect_int(item, f"{context}.allowed") for item in allowed),
    )


def _parse_layer(value: object, index: int) -> LayerNode:
    context = f"layers[{index}]"
    mapping = dict(_expect_mapping(value, context))
    layer_type = LAYER_TYPES.get(str(mapping.pop("type", "")))
    if layer_type is None:
        raise GraphFileError(
            f"Unsupported layer type in {context}. Supported types: {sorted(LAYER_TYPES)}."
        )
    mapping["name"] = _expect_str(mapping.get("name"), f"{context}.name")
    for tensor_field in ("inputs", "outputs"):
        mapping[tensor_field] = tuple(
            _expect_str(item, f"{context}.{tensor_field}")
            for item in _expect_sequence(mapping.get(tensor_field, []), f"{context}.{tensor_field}")
        )
    params = {key: _freeze(item) for key, item in mapping.items()}
    _check_layer_params(layer_type, params, context)
    return cast(LayerNode, _construct(layer_type, params, context))


def _check_layer_params(layer_type: type, params: dict[str, object], context: str) -> None:
    """Reject parameter values whose type differs from the field default."""
    defaults = {
        layer_field.name: layer_field.default
        for layer_field in fields(layer_type)
        if layer_field.default is not MISSING
    }
    for key, item in params.items():
        if key in defaults:
            _expect_like(defaults[key], item, f"{context}.{key}")


def _expect_like(template: object, value: object, context: str) -> None:
    if isinstance(template, bool):
        if not isinstance(value, bool):
            raise GraphFileError(
                f"Invalid {context}: expected boolean, got {type(value).__name__}."
            )
    elif isinstance(template, int):
        _expect_int(value, context)
    elif isinstance(template, str):
        _expect_str(value, context)
    elif isinstance(template, tuple):
        if not isinstance(value, tuple) or len(value) != len(template):
            raise GraphFileError(
                f"Invalid {context}: expected list of {len(template)} items, got {value!r}."
            )
        for template_item, item in zip(template, value):
            _expect_like(template_item, item, context)


def _construct(target_type: type, params: dict[str, object], context: str) -> object:
    try:
        return target_type(**params)
    except TypeError as error:
        raise GraphFileError(f"Invalid fields in {context}: {error}.") from error


def _freeze(value: object) -> object:
    """Convert nested YAML lists into tuples to match frozen layer fields."""
    if isinstance(value, list):
        return tuple(_freeze(item) for item in value)
    return value


def _expect_mapping(value: object, context: str) -> Mapping[str, object]:
    if isinstance(value, Mapping):
        normalized_mapping = {}
        for key, payload in value.items():
            if not isinstance(key, str):
                raise GraphFileError(
                    f"Invalid {context}: expected string keys, got {type(key).__name__}."
                )
            normalized_mapping[key] = payload
        return normalized_mapping
    raise GraphFileError(f"Invalid {context}: expected mapping, got {type(value).__name__}.")


def _expect_sequence(value: object, context: str) -> Sequence[object]:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return value
    raise GraphFileError(f"Invalid {context}: expected list, got {type(value).__name__}.")


def _expect_str(value: object, context: str) -> str:
    if isinstance(value, str) and value:
        return value
    raise GraphFileError(f"Invalid {context}: expected non-empty string.")


def _expect_int(value: object, context: str) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    raise GraphFileError(f"Invalid {context}: expected integer, got {type(value).__name__}.")


def _expect_float(value: object, context: str) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise GraphFileError(f"Invalid {context}: expected number, got {type(value).__name__}.")
