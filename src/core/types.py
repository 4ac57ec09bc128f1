"""Shared typed models.

This module defines immutable data models used by ingest, graph,
serving, and SDK layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Literal, Mapping, Sequence

import numpy as np

from core.constants import (
    CLASS_COUNT,
    IMAGE_CHANNELS,
    IMAGE_FEATURE_NAME,
    IMAGE_HEIGHT,
    IMAGE_WIDTH,
    LABEL_FEATURE_NAME,
)

DecodePolicy = Literal["skip", "abort"]
RawRecord = Sequence[str]


@dataclass(frozen=True, eq=False)
class Example:
    """One decoded training example.

    Attributes:
        image: Read-only float32 array shaped (1, 28, 28) with values in [0, 1].
        label: Read-only int32 one-hot array shaped (10,).
    """

    image: np.ndarray
    label: np.ndarray

    @property
    def class_index(self) -> int:
        """Return the class encoded by the one-hot label."""
        return int(np.argmax(self.label))

    def as_features(self) -> dict[str, np.ndarray]:
        """Return the training feature mapping keyed by graph tensor names."""
        return {IMAGE_FEATURE_NAME: self.image, LABEL_FEATURE_NAME: self.label}


@dataclass(frozen=True, eq=False)
class MiniBatch:
    """Stacked examples presented together to a training runtime.

    Attributes:
        images: float32 array shaped (batch, 1, 28, 28).
        labels: int32 array shaped (batch, 10).
    """

    images: np.ndarray
    labels: np.ndarray

    def __len__(self) -> int:
        return int(self.images.shape[0])


@dataclass(frozen=True)
class BatchCollection:
    """Ordered, read-only collection of decoded examples.

    Attributes:
        examples: Examples in source order.
        skipped_count: Number of malformed records skipped while preparing.
    """

    examples: tuple[Example, ...]
    skipped_count: int = 0

    def __len__(self) -> int:
        return len(self.examples)

    def __iter__(self) -> Iterator[Example]:
        return iter(self.examples)

    def __getitem__(self, index: int) -> Example:
        return self.examples[index]

    def stacked_images(self) -> np.ndarray:
        """Return all images stacked into one (N, 1, 28, 28) array."""
        if not self.examples:
            return np.empty((0, IMAGE_CHANNELS, IMAGE_HEIGHT, IMAGE_WIDTH), dtype=np.float32)
        return np.stack([example.image for example in self.examples])

    def stacked_labels(self) -> np.ndarray:
        """Return all labels stacked into one (N, 10) array."""
        if not self.examples:
            return np.empty((0, CLASS_COUNT), dtype=np.int32)
        return np.stack([example.label for example in self.examples])

    def iter_batches(
        self,
        batch_size: int,
        shuffle: bool = False,
        random_seed: int = 0,
    ) -> Iterator[MiniBatch]:
        """Yield mini-batches of stacked examples.

        Args:
            batch_size: Number of examples per batch.
            shuffle: Whether to permute examples before batching.
            random_seed: Seed for deterministic shuffling.

        Returns:
            Iterator of mini-batches; the final batch may be shorter.

        Raises:
            ValueError: If batch size is not positive.
        """
        if batch_size < 1:
            raise ValueError(f"Invalid batch size {batch_size}: expected value >= 1.")
        order = np.arange(len(self.examples))
        if shuffle:
            order = np.random.default_rng(random_seed).permutation(order)
        for start in range(0, len(order), batch_size):
            selected = [self.examples[int(index)] for index in order[start : start + batch_size]]
            yield MiniBatch(
                images=np.stack([example.image for example in selected]),
                labels=np.stack([example.label for example in selected]),
            )


@dataclass(frozen=True)
class ModelMetadata:
    """Descriptive metadata embedded into model artifacts.

    Attributes:
        spec_version: Model description format revision.
        short_description: Human-readable model summary.
        author: Model author.
        license: Model license identifier.
        user_defined: Extra string key/value entries.
    """

    spec_version: int = 1
    short_description: str = ""
    author: str = ""
    license: str = ""
    user_defined: Mapping[str, str] = field(default_factory=dict)
