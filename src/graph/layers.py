"""Typed layer nodes for declarative network graphs.

Each layer kind is a frozen dataclass carrying a unique name, ordered
input and output tensor names, and its own numeric parameters.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import ClassVar, Literal, Union, get_args

PaddingType = Literal["same", "valid"]
SamePaddingMode = Literal["bottom_right_heavy", "top_left_heavy"]
PoolingType = Literal["max", "average"]
FlattenMode = Literal["channel_first", "channel_last"]

Pair = tuple[int, int]
EdgeSizes = tuple[int, int]


@dataclass(frozen=True)
class LayerBase:
    """Fields shared by every layer kind."""

    kind: ClassVar[str] = "layer"

    name: str
    inputs: tuple[str, ...]
    outputs: tuple[str, ...]

    def parameter_error(self) -> str | None:
        """Return a description of the first invalid parameter, if any."""
        return None

    def parameters(self) -> dict[str, object]:
        """Return variant-specific parameters as a JSON-ready mapping."""
        payload = asdict(self)
        for shared_field in ("name", "inputs", "outputs"):
            payload.pop(shared_field)
        return payload


@dataclass(frozen=True)
class Convolution(LayerBase):
    """2-D convolution over a channel-first feature map."""

    kind: ClassVar[str] = "convolution"

    output_channels: int = 1
    kernel_channels: int = 1
    kernel_size: Pair = (3, 3)
    stride: Pair = (1, 1)
    dilation: Pair = (1, 1)
    n_groups: int = 1
    padding: PaddingType = "same"
    same_padding_mode: SamePaddingMode = "bottom_right_heavy"
    has_bias: bool = True
    updatable: bool = True

    def parameter_error(self) -> str | None:
        choice_error = _first_bad_choice(
            padding=(self.padding, PaddingType),
            same_padding_mode=(self.same_padding_mode, SamePaddingMode),
        )
        return choice_error or _first_non_positive(
            output_channels=(self.output_channels,),
            kernel_channels=(self.kernel_channels,),
            kernel_size=self.kernel_size,
            stride=self.stride,
            dilation=self.dilation,
            n_groups=(self.n_groups,),
        )


@dataclass(frozen=True)
class Pooling(LayerBase):
    """Spatial max or average pooling."""

    kind: ClassVar[str] = "pooling"

    pooling_type: PoolingType = "max"
    kernel_size: Pair = (2, 2)
    stride: Pair = (2, 2)
    padding: PaddingType = "valid"
    border: tuple[EdgeSizes, EdgeSizes] = ((0, 0), (0, 0))
    avg_pool_exclude_padding: bool = True
    global_pooling: bool = False

    def parameter_error(self) -> str | None:
        error = _first_bad_choice(
            pooling_type=(self.pooling_type, PoolingType),
            padding=(self.padding, PaddingType),
        ) or _first_non_positive(kernel_size=self.kernel_size, stride=self.stride)
        if error is not None:
            return error
        if any(edge < 0 for edges in self.border for edge in edges):
            return "border edge sizes must be >= 0"
        return None


@dataclass(frozen=True)
class Flatten(LayerBase):
    """Collapse a channel/height/width map into one vector."""

    kind: ClassVar[str] = "flatten"

    mode: FlattenMode = "channel_first"

    def parameter_error(self) -> str | None:
        return _first_bad_choice(mode=(self.mode, FlattenMode))


@dataclass(frozen=True)
class InnerProduct(LayerBase):
    """Fully connected (dense) layer."""

    kind: ClassVar[str] = "inner_product"

    input_channels: int = 1
    output_channels: int = 1
    has_bias: bool = True
    updatable: bool = True

    def parameter_error(self) -> str | None:
        return _first_non_positive(
            input_channels=(self.input_channels,),
            output_channels=(self.output_channels,),
        )


@dataclass(frozen=True)
class ReLU(LayerBase):
    """Rectified linear activation."""

    kind: ClassVar[str] = "relu"


@dataclass(frozen=True)
class Softmax(LayerBase):
    """Softmax over the class axis."""

    kind: ClassVar[str] = "softmax"


LayerNode = Union[Convolution, Pooling, Flatten, InnerProduct, ReLU, Softmax]

LAYER_TYPES: dict[str, type[LayerBase]] = {
    layer_type.kind: layer_type
    for layer_type in (Convolution, Pooling, Flatten, InnerProduct, ReLU, Softmax)
}


def _first_non_positive(**values: tuple[int, ...]) -> str | None:
    for parameter_name, parameter_values in values.items():
        if any(value < 1 for value in parameter_values):
            return f"{parameter_name} must be >= 1, got {parameter_values}"
    return None


def _first_bad_choice(**values: tuple[str, object]) -> str | None:
    for parameter_name, (value, choices) in values.items():
        allowed = get_args(choices)
        if value not in allowed:
            return f"{parameter_name} must be one of {list(allowed)}, got {value!r}"
    return None
