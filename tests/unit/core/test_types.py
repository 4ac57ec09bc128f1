"""Unit tests for batch collection helpers."""

from __future__ import annotations

import numpy as np
import pytest

from core.types import BatchCollection
from ingest.record_decoder import decode_record
from tests.sample_records import make_record_fields


def _collection(labels: list[int]) -> BatchCollection:
    examples = tuple(decode_record(make_record_fields(label)) for label in labels)
    return BatchCollection(examples=examples)


def test_stacked_arrays_have_batch_leading_dimension() -> None:
    """Stacked views should prepend the example count to each shape."""
    collection = _collection([0, 1, 2])

    assert collection.stacked_images().shape == (3, 1, 28, 28)
    assert collection.stacked_labels().shape == (3, 10)
    assert collection.stacked_images().dtype == np.float32
    assert collection.stacked_labels().dtype == np.int32


def test_stacked_arrays_of_empty_collection_keep_trailing_shape() -> None:
    """An empty collection should stack to zero-length typed arrays."""
    collection = BatchCollection(examples=())

    images = collection.stacked_images()
    labels = collection.stacked_labels()

    assert (images.shape, images.dtype) == ((0, 1, 28, 28), np.float32)
    assert (labels.shape, labels.dtype) == ((0, 10), np.int32)


def test_iter_batches_keeps_final_short_batch() -> None:
    """Batching should not drop trailing examples."""
    collection = _collection([0, 1, 2, 3, 4])

    sizes = [len(batch) for batch in collection.iter_batches(2)]

    assert sizes == [2, 2, 1]


def test_iter_batches_preserves_order_without_shuffle() -> None:
    """Unshuffled batches should follow source order."""
    collection = _collection([4, 7, 1])

    batch = next(collection.iter_batches(3))

    assert batch.labels.argmax(axis=1).tolist() == [4, 7, 1]


def test_iter_batches_shuffle_is_deterministic_for_seed() -> None:
    """The same seed should always produce the same permutation."""
    collection = _collection(list(range(10)))

    first = next(collection.iter_batches(10, shuffle=True, random_seed=7))
    second = next(collection.iter_batches(10, shuffle=True, random_seed=7))

    assert first.labels.argmax(axis=1).tolist() == second.labels.argmax(axis=1).tolist()
    assert sorted(first.labels.argmax(axis=1).tolist()) == list(range(10))


def test_iter_batches_rejects_non_positive_size() -> None:
    """Batch size must be at least one."""
    collection = _collection([0])

    with pytest.raises(ValueError):
        list(collection.iter_batches(0))
