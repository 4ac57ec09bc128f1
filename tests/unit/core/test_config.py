"""Unit tests for core config parsing."""

from __future__ import annotations

import os

import pytest

from core.config import EdgeTrainConfig
from core.errors import EdgeTrainConfigError


def test_from_env_reads_artifact_dir(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should resolve artifact directory from environment."""
    monkeypatch.setenv("EDGETRAIN_ARTIFACT_DIR", "./.tmp-edgetrain")

    config = EdgeTrainConfig.from_env()

    assert config.artifact_dir.name == ".tmp-edgetrain"


def test_default_model_path_lives_in_artifact_dir(monkeypatch: pytest.MonkeyPatch) -> None:
    """Default artifact path should use the model file name inside artifact dir."""
    monkeypatch.setenv("EDGETRAIN_ARTIFACT_DIR", "./.tmp-edgetrain")

    config = EdgeTrainConfig.from_env()

    assert config.default_model_path == config.artifact_dir / "MNIST_Model.onnx"


def test_from_env_defaults_to_skip_policy(monkeypatch: pytest.MonkeyPatch) -> None:
    """Malformed records should be skipped unless configured otherwise."""
    monkeypatch.delenv("EDGETRAIN_DECODE_POLICY", raising=False)

    config = EdgeTrainConfig.from_env()

    assert config.decode_policy == "skip"


def test_from_env_reads_abort_policy(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should accept the abort policy case-insensitively."""
    monkeypatch.setenv("EDGETRAIN_DECODE_POLICY", "ABORT")

    config = EdgeTrainConfig.from_env()

    assert config.decode_policy == "abort"


def test_from_env_raises_for_unknown_policy(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should fail for unsupported decode policies."""
    monkeypatch.setenv("EDGETRAIN_DECODE_POLICY", "ignore")

    with pytest.raises(EdgeTrainConfigError):
        EdgeTrainConfig.from_env()

    assert os.getenv("EDGETRAIN_DECODE_POLICY") == "ignore"


def test_from_env_raises_for_invalid_seed(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should fail for non-numeric random seed."""
    monkeypatch.setenv("EDGETRAIN_RANDOM_SEED", "not-a-number")

    with pytest.raises(EdgeTrainConfigError):
        EdgeTrainConfig.from_env()

    assert os.getenv("EDGETRAIN_RANDOM_SEED") == "not-a-number"
