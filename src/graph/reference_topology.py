"""Reference MNIST network used for on-device training.

Three convolution/ReLU/max-pool stages feed a two-layer dense classifier:

    image[1,28,28] -> conv(3x3,32) -> pool -> conv(2x2,32) -> pool
                   -> conv(2x2,32) -> pool -> flatten[288]
                   -> dense(500) -> relu -> dense(10) -> softmax -> output[10]
"""

from __future__ import annotations

from core.constants import (
    ARTIFACT_PRODUCER_VERSION,
    CLASS_COUNT,
    IMAGE_CHANNELS,
    IMAGE_FEATURE_NAME,
    IMAGE_HEIGHT,
    IMAGE_WIDTH,
    LABEL_FEATURE_NAME,
    OUTPUT_TENSOR_NAME,
    REFERENCE_MODEL_AUTHOR,
    REFERENCE_MODEL_DESCRIPTION,
    REFERENCE_MODEL_LICENSE,
    REFERENCE_MODEL_SPEC_VERSION,
    REFERENCE_MODEL_VERSION_KEY,
)
from core.types import ModelMetadata
from graph.graph_spec import GraphSpec, GraphSpecBuilder
from graph.layers import Convolution, Flatten, InnerProduct, LayerNode, Pooling, ReLU, Softmax
from graph.training_config import (
    Adam,
    CategoricalCrossEntropy,
    DiscreteParameter,
    HyperParameter,
    TrainingConfig,
)

_STAGE_KERNELS = ((3, 3), (2, 2), (2, 2))
_STAGE_CHANNELS = 32
_HIDDEN_UNITS = 500
_FLATTENED_UNITS = 288


def build_reference_graph_spec() -> GraphSpec:
    """Build and validate the reference MNIST training graph."""
    image_shape = (IMAGE_CHANNELS, IMAGE_HEIGHT, IMAGE_WIDTH)
    return (
        GraphSpecBuilder()
        .with_metadata(
            ModelMetadata(
                spec_version=REFERENCE_MODEL_SPEC_VERSION,
                short_description=REFERENCE_MODEL_DESCRIPTION,
                author=REFERENCE_MODEL_AUTHOR,
                license=REFERENCE_MODEL_LICENSE,
                user_defined={REFERENCE_MODEL_VERSION_KEY: ARTIFACT_PRODUCER_VERSION},
            )
        )
        .add_input(IMAGE_FEATURE_NAME, image_shape)
        .add_output(OUTPUT_TENSOR_NAME, (CLASS_COUNT,))
        .add_training_input(IMAGE_FEATURE_NAME, image_shape)
        .add_training_input(LABEL_FEATURE_NAME, (CLASS_COUNT,))
        .with_training(build_reference_training_config())
        .add_layers(_feature_stages())
        .add_layers(_classifier())
        .build()
    )


def build_reference_training_config() -> TrainingConfig:
    """Cross-entropy loss with Adam, batch size 32 and 6 epochs."""
    return TrainingConfig(
        loss=CategoricalCrossEntropy(
            name="lossLayer", input=OUTPUT_TENSOR_NAME, target=LABEL_FEATURE_NAME
        ),
        optimizer=Adam(
            learning_rate=HyperParameter(default=0.001, max=0.3),
            beta1=HyperParameter(default=0.9, max=1.0),
            beta2=HyperParameter(default=0.999, max=1.0),
            eps=HyperParameter(default=1e-8, max=1e-8),
        ),
        epochs=DiscreteParameter(default=6, allowed=(6,)),
        mini_batch_size=DiscreteParameter(default=32, allowed=(32,)),
        shuffle=True,
    )


def _feature_stages() -> list[LayerNode]:
    layers: list[LayerNode] = []
    stage_input = IMAGE_FEATURE_NAME
    kernel_channels = IMAGE_CHANNELS
    for stage, kernel_size in enumerate(_STAGE_KERNELS, 1):
        layers.append(
            Convolution(
                name=f"conv{stage}",
                inputs=(stage_input,),
                outputs=(f"outConv{stage}",),
                output_channels=_STAGE_CHANNELS,
                kernel_channels=kernel_channels,
                kernel_size=kernel_size,
                stride=(1, 1),
                dilation=(1, 1),
                padding="same",
                same_padding_mode="bottom_right_heavy",
                updatable=True,
            )
        )
        layers.append(
            ReLU(name=f"relu{stage}", inputs=(f"outConv{stage}",), outputs=(f"outRelu{stage}",))
        )
        layers.append(
            Pooling(
                name=f"pooling{stage}",
                inputs=(f"outRelu{stage}",),
                outputs=(f"outPooling{stage}",),
                pooling_type="max",
                kernel_size=(2, 2),
                stride=(2, 2),
                padding="valid",
                border=((0, 0), (0, 0)),
            )
        )
        stage_input = f"outPooling{stage}"
        kernel_channels = _STAGE_CHANNELS
    return layers


def _classifier() -> list[LayerNode]:
    return [
        Flatten(
            name="flatten1",
            inputs=(f"outPooling{len(_STAGE_KERNELS)}",),
            outputs=("outFlatten1",),
            mode="channel_last",
        ),
        InnerProduct(
            name="hidden1",
            inputs=("outFlatten1",),
            outputs=("outHidden1",),
            input_channels=_FLATTENED_UNITS,
            output_channels=_HIDDEN_UNITS,
        ),
        ReLU(name="relu4", inputs=("outHidden1",), outputs=("outRelu4",)),
        InnerProduct(
            name="hidden2",
            inputs=("outRelu4",),
            outputs=("outHidden2",),
            input_channels=_HIDDEN_UNITS,
            output_channels=CLASS_COUNT,
        ),
        Softmax(name="softmax", inputs=("outHidden2",), outputs=(OUTPUT_TENSOR_NAME,)),
    ]
