"""Model artifact serialization.

This module converts a validated ``GraphSpec`` into a self-contained ONNX
model file. Layers become ONNX nodes, trainable weights become seeded
placeholder initializers, and the training configuration is stored as a
canonical JSON document in the model metadata. Serializing an unchanged
graph with the same seed always produces byte-identical files.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import numpy as np

from core.constants import (
    ARTIFACT_PRODUCER_NAME,
    ARTIFACT_PRODUCER_VERSION,
    BATCH_DIMENSION_NAME,
    DEFAULT_RANDOM_SEED,
    ONNX_IR_VERSION,
    ONNX_OPSET_VERSION,
    TRAINING_CONFIG_METADATA_KEY,
)
from core.errors import ArtifactIOError, EdgeTrainDependencyError, GraphValidationError
from core.logging_config import get_logger
from graph.graph_spec import GraphSpec, TensorDecl
from graph.layers import Convolution, Flatten, InnerProduct, LayerNode, Pooling

_LOGGER = get_logger(__name__)

_GRAPH_NAME = "edgetrain_graph"
_USER_METADATA_PREFIX = "user."

EmittedLayer = tuple[list[Any], list[Any]]


def serialize_graph_spec(
    spec: GraphSpec,
    destination: Path | str,
    random_seed: int = DEFAULT_RANDOM_SEED,
) -> Path:
    """Write ``spec`` as an ONNX model file, replacing existing content.

    Args:
        spec: Validated graph description.
        destination: Artifact file path; parent directories are created.
        random_seed: Seed for weight placeholder initialization.

    Returns:
        Resolved artifact path.

    Raises:
        GraphValidationError: If the generated model fails ONNX checks.
        ArtifactIOError: If the artifact cannot be written.
    """
    artifact_path = Path(destination).expanduser().resolve()
    model = build_onnx_model(spec, random_seed)
    payload = model.SerializeToString(deterministic=True)
    try:
        artifact_path.parent.mkdir(parents=True, exist_ok=True)
        with artifact_path.open("wb") as artifact_file:
            artifact_file.write(payload)
    except OSError as error:
        raise ArtifactIOError(
            f"Failed to write model artifact at {artifact_path}: {error}. "
            "Check directory permissions and retry."
        ) from error
    _LOGGER.info(
        "model_artifact_written",
        artifact_path=str(artifact_path),
        byte_count=len(payload),
        layer_count=len(spec.layers),
    )
    return artifact_path


def build_onnx_model(spec: GraphSpec, random_seed: int = DEFAULT_RANDOM_SEED) -> Any:
    """Build and check the ONNX ``ModelProto`` for ``spec``."""
    onnx = _import_onnx_optional()
    helper = onnx.helper
    rng = np.random.default_rng(random_seed)
    nodes: list[Any] = []
    initializers: list[Any] = []
    for layer in spec.layers:
        layer_nodes, layer_initializers = _LAYER_EMITTERS[layer.kind](onnx, layer, rng)
        nodes.extend(layer_nodes)
        initializers.extend(layer_initializers)
    graph = helper.make_graph(
        nodes,
        _GRAPH_NAME,
        [_value_info(onnx, tensor) for tensor in spec.inputs],
        [_value_info(onnx, tensor) for tensor in spec.outputs],
        initializer=initializers,
    )
    model = helper.make_model(
        graph,
        opset_imports=[helper.make_opsetid("", ONNX_OPSET_VERSION)],
        producer_name=ARTIFACT_PRODUCER_NAME,
        producer_version=ARTIFACT_PRODUCER_VERSION,
        model_version=spec.metadata.spec_version,
        doc_string=spec.metadata.short_description,
    )
    model.ir_version = ONNX_IR_VERSION
    helper.set_model_props(model, _build_metadata_props(spec))
    try:
        onnx.checker.check_model(model)
    except onnx.checker.ValidationError as error:
        raise GraphValidationError("artifact_format", _GRAPH_NAME, str(error)) from error
    return model


def render_graph_spec_payload(spec: GraphSpec) -> dict[str, object]:
    """Return a JSON-ready description of the full graph."""
    metadata = spec.metadata
    return {
        "metadata": {
            "spec_version": metadata.spec_version,
            "short_description": metadata.short_description,
            "author": metadata.author,
            "license": metadata.license,
            "user_defined": dict(metadata.user_defined),
        },
        "inputs": [_tensor_payload(tensor) for tensor in spec.inputs],
        "outputs": [_tensor_payload(tensor) for tensor in spec.outputs],
        "layers": [
            {
                "type": layer.kind,
                "name": layer.name,
                "inputs": list(layer.inputs),
                "outputs": list(layer.outputs),
                "parameters": layer.parameters(),
            }
            for layer in spec.layers
        ],
        **_training_payload(spec),
    }


def load_artifact_training_config(artifact_path: Path | str) -> dict[str, object]:
    """Read the training configuration document back from an artifact.

    Raises:
        ArtifactIOError: If the file is unreadable or lacks the document.
    """
    onnx = _import_onnx_optional()
    from google.protobuf.message import DecodeError

    resolved_path = Path(artifact_path).expanduser().resolve()
    try:
        model = onnx.load(str(resolved_path))
    except (OSError, DecodeError) as error:
        raise ArtifactIOError(
            f"Failed to read model artifact at {resolved_path}: {error}."
        ) from error
    for entry in model.metadata_props:
        if entry.key == TRAINING_CONFIG_METADATA_KEY:
            return json.loads(entry.value)
    raise ArtifactIOError(
        f"Model artifact at {resolved_path} has no '{TRAINING_CONFIG_METADATA_KEY}' metadata. "
        "Rebuild the artifact with edgetrain."
    )


def _training_payload(spec: GraphSpec) -> dict[str, object]:
    return {
        "training_inputs": [_tensor_payload(tensor) for tensor in spec.training_inputs],
        "training": spec.training.to_payload(),
        "updatable_layers": list(spec.updatable_layer_names()),
    }


def _tensor_payload(tensor: TensorDecl) -> dict[str, object]:
    return {"name": tensor.name, "shape": list(tensor.shape)}


def _build_metadata_props(spec: GraphSpec) -> dict[str, str]:
    metadata = spec.metadata
    props = {
        "author": metadata.author,
        "license": metadata.license,
        "short_description": metadata.short_description,
        "spec_version": str(metadata.spec_version),
        TRAINING_CONFIG_METADATA_KEY: json.dumps(
            _training_payload(spec), sort_keys=True, separators=(",", ":")
        ),
    }
    for key, value in metadata.user_defined.items():
        props[f"{_USER_METADATA_PREFIX}{key}"] = value
    return dict(sorted(props.items()))


def _value_info(onnx: Any, tensor: TensorDecl) -> Any:
    return onnx.helper.make_tensor_value_info(
        tensor.name, onnx.TensorProto.FLOAT, [BATCH_DIMENSION_NAME, *tensor.shape]
    )


def _weight_placeholder(
    onnx: Any,
    rng: np.random.Generator,
    name: str,
    shape: tuple[int, ...],
    fan_in: int,
    fan_out: int,
) -> Any:
    """Glorot-uniform initializer tensor."""
    limit = float(np.sqrt(6.0 / (fan_in + fan_out)))
    values = rng.uniform(-limit, limit, size=shape).astype(np.float32)
    return onnx.numpy_helper.from_array(values, name=name)


def _bias_placeholder(onnx: Any, name: str, size: int) -> Any:
    return onnx.numpy_helper.from_array(np.zeros(size, dtype=np.float32), name=name)


def _auto_pad(padding: str, same_padding_mode: str = "bottom_right_heavy") -> str:
    if padding == "valid":
        return "VALID"
    # ONNX SAME_UPPER puts the odd padding unit at the end (bottom/right).
    return "SAME_UPPER" if same_padding_mode == "bottom_right_heavy" else "SAME_LOWER"


def _emit_convolution(onnx: Any, layer: Convolution, rng: np.random.Generator) -> EmittedLayer:
    kernel_height, kernel_width = layer.kernel_size
    weight_name = f"{layer.name}_weight"
    initializers = [
        _weight_placeholder(
            onnx,
            rng,
            weight_name,
            (layer.output_channels, layer.kernel_channels, kernel_height, kernel_width),
            fan_in=layer.kernel_channels * kernel_height * kernel_width,
            fan_out=layer.output_channels * kernel_height * kernel_width,
        )
    ]
    node_inputs = [layer.inputs[0], weight_name]
    if layer.has_bias:
        bias_name = f"{layer.name}_bias"
        initializers.append(_bias_placeholder(onnx, bias_name, layer.output_channels))
        node_inputs.append(bias_name)
    node = onnx.helper.make_node(
        "Conv",
        node_inputs,
        list(layer.outputs),
        name=layer.name,
        kernel_shape=list(layer.kernel_size),
        strides=list(layer.stride),
        dilations=list(layer.dilation),
        group=layer.n_groups,
        auto_pad=_auto_pad(layer.padding, layer.same_padding_mode),
    )
    return [node], initializers


def _emit_pooling(onnx: Any, layer: Pooling, rng: np.random.Generator) -> EmittedLayer:
    is_max = layer.pooling_type == "max"
    if layer.global_pooling:
        op_type = "GlobalMaxPool" if is_max else "GlobalAveragePool"
        node = onnx.helper.make_node(
            op_type, [layer.inputs[0]], list(layer.outputs), name=layer.name
        )
        return [node], []
    attributes: dict[str, object] = {
        "kernel_shape": list(layer.kernel_size),
        "strides": list(layer.stride),
    }
    if layer.padding == "valid":
        (top, bottom), (left, right) = layer.border
        attributes["pads"] = [top, left, bottom, right]
    else:
        attributes["auto_pad"] = _auto_pad(layer.padding)
    if not is_max:
        attributes["count_include_pad"] = 0 if layer.avg_pool_exclude_padding else 1
    node = onnx.helper.make_node(
        "MaxPool" if is_max else "AveragePool",
        [layer.inputs[0]],
        list(layer.outputs),
        name=layer.name,
        **attributes,
    )
    return [node], []


def _emit_flatten(onnx: Any, layer: Flatten, rng: np.random.Generator) -> EmittedLayer:
    flatten_input = layer.inputs[0]
    nodes = []
    if layer.mode == "channel_last":
        flatten_input = f"{layer.name}_channel_last"
        nodes.append(
            onnx.helper.make_node(
                "Transpose",
                [layer.inputs[0]],
                [flatten_input],
                name=f"{layer.name}_transpose",
                perm=[0, 2, 3, 1],
            )
        )
    nodes.append(
        onnx.helper.make_node(
            "Flatten", [flatten_input], list(layer.outputs), name=layer.name, axis=1
        )
    )
    return nodes, []


def _emit_inner_product(onnx: Any, layer: InnerProduct, rng: np.random.Generator) -> EmittedLayer:
    weight_name = f"{layer.name}_weight"
    initializers = [
        _weight_placeholder(
            onnx,
            rng,
            weight_name,
            (layer.output_channels, layer.input_channels),
            fan_in=layer.input_channels,
            fan_out=layer.output_channels,
        )
    ]
    node_inputs = [layer.inputs[0], weight_name]
    if layer.has_bias:
        bias_name = f"{layer.name}_bias"
        initializers.append(_bias_placeholder(onnx, bias_name, layer.output_channels))
        node_inputs.append(bias_name)
    node = onnx.helper.make_node(
        "Gemm", node_inputs, list(layer.outputs), name=layer.name, transB=1
    )
    return [node], initializers


def _emit_relu(onnx: Any, layer: LayerNode, rng: np.random.Generator) -> EmittedLayer:
    node = onnx.helper.make_node("Relu", [layer.inputs[0]], list(layer.outputs), name=layer.name)
    return [node], []


def _emit_softmax(onnx: Any, layer: LayerNode, rng: np.random.Generator) -> EmittedLayer:
    node = onnx.helper.make_node(
        "Softmax", [layer.inputs[0]], list(layer.outputs), name=layer.name, axis=1
    )
    return [node], []


_LAYER_EMITTERS: dict[str, Callable[[Any, Any, np.random.Generator], EmittedLayer]] = {
    "convolution": _emit_convolution,
    "pooling": _emit_pooling,
    "flatten": _emit_flatten,
    "inner_product": _emit_inner_product,
    "relu": _emit_relu,
    "softmax": _emit_softmax,
}


def _import_onnx_optional() -> Any:
    try:
        import onnx
        import onnx.checker
        import onnx.helper
        import onnx.numpy_helper
    except ImportError as error:
        raise EdgeTrainDependencyError(
            "Model artifacts require onnx, but it is not installed. "
            "Install with pip install -e . to build model artifacts."
        ) from error
    return onnx
