"""Training configuration models.

These frozen dataclasses describe the loss, optimizer hyperparameters,
epoch schedule, and batching a training runtime applies to a graph.
Every tunable value carries its default together with its valid range
or allowed set so that runtimes may expose it for on-device tuning.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Union


@dataclass(frozen=True)
class HyperParameter:
    """Continuous hyperparameter with a default and an inclusive range."""

    default: float
    max: float
    min: float = 0.0

    def contains_default(self) -> bool:
        return self.min <= self.default <= self.max


@dataclass(frozen=True)
class DiscreteParameter:
    """Integer parameter restricted to an allowed set."""

    default: int
    allowed: tuple[int, ...]

    def contains_default(self) -> bool:
        return self.default in self.allowed


@dataclass(frozen=True)
class CategoricalCrossEntropy:
    """Cross-entropy between a probability output and a one-hot target."""

    kind: ClassVar[str] = "categorical_cross_entropy"

    name: str
    input: str
    target: str


@dataclass(frozen=True)
class MeanSquaredError:
    """Mean squared error between an output and a target tensor."""

    kind: ClassVar[str] = "mean_squared_error"

    name: str
    input: str
    target: str


@dataclass(frozen=True)
class Adam:
    """Adam optimizer hyperparameters."""

    kind: ClassVar[str] = "adam"

    learning_rate: HyperParameter
    beta1: HyperParameter
    beta2: HyperParameter
    eps: HyperParameter

    def hyperparameters(self) -> dict[str, HyperParameter]:
        return {
            "learning_rate": self.learning_rate,
            "beta1": self.beta1,
            "beta2": self.beta2,
            "eps": self.eps,
        }


@dataclass(frozen=True)
class SGD:
    """Stochastic gradient descent hyperparameters."""

    kind: ClassVar[str] = "sgd"

    learning_rate: HyperParameter
    momentum: HyperParameter

    def hyperparameters(self) -> dict[str, HyperParameter]:
        return {"learning_rate": self.learning_rate, "momentum": self.momentum}


LossFunction = Union[CategoricalCrossEntropy, MeanSquaredError]
Optimizer = Union[Adam, SGD]

LOSS_TYPES: dict[str, type] = {
    CategoricalCrossEntropy.kind: CategoricalCrossEntropy,
    MeanSquaredError.kind: MeanSquaredError,
}
OPTIMIZER_TYPES: dict[str, type] = {Adam.kind: Adam, SGD.kind: SGD}


@dataclass(frozen=True)
class TrainingConfig:
    """Complete training configuration attached to a graph.

    Attributes:
        loss: Loss function with its input/target tensor bindings.
        optimizer: Optimizer kind with ranged hyperparameters.
        epochs: Epoch count default and allowed set.
        mini_batch_size: Mini-batch size default and allowed set.
        shuffle: Whether the runtime shuffles examples every epoch.
    """

    loss: LossFunction
    optimizer: Optimizer
    epochs: DiscreteParameter
    mini_batch_size: DiscreteParameter
    shuffle: bool = True

    def to_payload(self) -> dict[str, object]:
        """Return a JSON-ready description of the configuration."""
        return {
            "loss": {
                "type": self.loss.kind,
                "name": self.loss.name,
                "input": self.loss.input,
                "target": self.loss.target,
            },
            "optimizer": {
                "type": self.optimizer.kind,
                **{
                    name: {"default": value.default, "min": value.min, "max": value.max}
                    for name, value in self.optimizer.hyperparameters().items()
                },
            },
            "epochs": {"default": self.epochs.default, "allowed": list(self.epochs.allowed)},
            "mini_batch_size": {
                "default": self.mini_batch_size.default,
                "allowed": list(self.mini_batch_size.allowed),
            },
            "shuffle": self.shuffle,
        }
