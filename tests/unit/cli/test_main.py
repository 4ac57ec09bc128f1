"""Unit tests for CLI command handling."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from cli.main import main
from core.errors import WrongArityError
from tests.fixture_paths import fixture_path
from tests.sample_records import make_record_line, write_mnist_csv


def test_cli_prepare_dataset_prints_summary(tmp_path: Path, capsys) -> None:
    """prepare-dataset should print progress and final counts."""
    source_path = write_mnist_csv(
        tmp_path / "mnist.csv", [make_record_line(1), make_record_line(2), "bad,row"]
    )
    args = [
        "--artifact-dir",
        str(tmp_path),
        "prepare-dataset",
        str(source_path),
        "--progress-interval",
        "1",
    ]

    exit_code = main(args)
    output_lines = capsys.readouterr().out.strip().splitlines()

    assert exit_code == 0
    assert output_lines[-2:] == ["Ready", "examples=2 skipped=1"]
    assert "Preparing 2" in output_lines


def test_cli_prepare_dataset_abort_policy_fails(tmp_path: Path) -> None:
    """The abort policy override should fail on a malformed record."""
    source_path = write_mnist_csv(tmp_path / "mnist.csv", ["bad,row"])
    args = ["prepare-dataset", str(source_path), "--decode-policy", "abort"]

    with pytest.raises(WrongArityError) as error_info:
        main(args)

    assert "expected 785" in str(error_info.value)


def test_cli_build_model_prints_artifact_path(tmp_path: Path, capsys) -> None:
    """build-model should write the artifact and print its path."""
    output_path = tmp_path / "MNIST_Model.onnx"

    exit_code = main(["build-model", "--output", str(output_path)])
    printed = capsys.readouterr().out.strip()

    assert exit_code == 0
    assert Path(printed) == output_path.resolve()
    assert output_path.is_file()


def test_cli_build_model_defaults_to_artifact_dir(tmp_path: Path, capsys) -> None:
    """build-model without --output should use the artifact directory."""
    exit_code = main(["--artifact-dir", str(tmp_path), "build-model"])
    printed = capsys.readouterr().out.strip()

    assert exit_code == 0
    assert Path(printed) == tmp_path.resolve() / "MNIST_Model.onnx"


def test_cli_describe_model_reads_graph_file(capsys) -> None:
    """describe-model should print the YAML graph as JSON."""
    exit_code = main(
        ["describe-model", "--graph-file", str(fixture_path("graphs/reference_mnist.yaml"))]
    )
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert len(payload["layers"]) == 14
    assert payload["training"]["optimizer"]["type"] == "adam"


def test_cli_compile_model_prints_compiled_path(tmp_path: Path, capsys) -> None:
    """compile-model should compile the artifact in the artifact directory."""
    pytest.importorskip("onnxruntime")
    main(["--artifact-dir", str(tmp_path), "build-model"])
    capsys.readouterr()

    exit_code = main(["--artifact-dir", str(tmp_path), "compile-model"])
    printed = capsys.readouterr().out.strip()

    assert exit_code == 0
    assert printed == f"compiled_path={tmp_path.resolve() / 'MNIST_Model.compiled.onnx'}"
