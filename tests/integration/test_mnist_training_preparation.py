"""Integration tests for dataset and model preparation end to end."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import numpy as np
import pytest

from core.config import EdgeTrainConfig
from ingest.dispatch import QueueDispatcher
from sdk.training_session import TrainingSession
from serve.artifact_serializer import load_artifact_training_config
from tests.sample_records import make_record_line, write_mnist_csv


def _write_source(tmp_path: Path, count: int) -> Path:
    lines = ["label," + ",".join(f"pixel{index}" for index in range(784))]
    lines.extend(make_record_line(index % 10, {index % 784: 255}) for index in range(count))
    return write_mnist_csv(tmp_path / "mnist_train.csv", lines)


def test_prepare_dataset_and_model_then_run_batch(tmp_path: Path) -> None:
    """Prepared batches should feed the compiled model's image input."""
    pytest.importorskip("onnxruntime")
    config = replace(EdgeTrainConfig.from_env(), artifact_dir=tmp_path / "artifacts")
    session = TrainingSession(config=config, dispatcher=QueueDispatcher())
    ticks: list[int] = []

    collection = session.prepare_dataset(
        str(_write_source(tmp_path, 40)), skip_header=True, on_progress=ticks.append
    )
    artifact_path = session.prepare_model()
    compiled_model = session.compile_model()
    training = load_artifact_training_config(artifact_path)
    batch_size = training["training"]["mini_batch_size"]["default"]
    batches = list(
        collection.iter_batches(batch_size, shuffle=True, random_seed=config.random_seed)
    )
    (probabilities,) = compiled_model.handle.run(["output"], {"image": batches[0].images})

    assert ticks == list(range(1, 41))
    assert [len(batch) for batch in batches] == [32, 8]
    assert probabilities.shape == (32, 10)
    assert np.allclose(probabilities.sum(axis=1), 1.0, atol=1e-5)
    assert session.readiness.snapshot.model_compiled is True


def test_prepared_labels_align_with_training_inputs(tmp_path: Path) -> None:
    """Example features should use the graph's training input names."""
    config = replace(EdgeTrainConfig.from_env(), artifact_dir=tmp_path / "artifacts")
    session = TrainingSession(config=config)

    collection = session.prepare_dataset(str(_write_source(tmp_path, 3)), skip_header=True)
    artifact_path = session.prepare_model()

    training_inputs = load_artifact_training_config(artifact_path)["training_inputs"]
    features = collection[2].as_features()
    assert sorted(features) == sorted(item["name"] for item in training_inputs)
    assert features["output_true"].tolist() == [0, 0, 1, 0, 0, 0, 0, 0, 0, 0]
    assert features["image"].reshape(-1)[2] == pytest.approx(1.0)
