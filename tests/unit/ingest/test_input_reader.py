"""Unit tests for input reader module."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.config import EdgeTrainConfig
from core.errors import SourceReadError
from ingest.input_reader import _build_boto3_session_kwargs, iter_line_records, iter_source_records
from tests.sample_records import make_record_line, write_mnist_csv


def test_iter_source_records_reads_local_csv(tmp_path: Path) -> None:
    """Reader should yield one record per non-blank line."""
    source_path = write_mnist_csv(
        tmp_path / "mnist.csv", [make_record_line(1), "", make_record_line(2)]
    )

    records = list(iter_source_records(str(source_path), EdgeTrainConfig.from_env()))

    assert [record[0] for record in records] == ["1", "2"]
    assert all(len(record) == 785 for record in records)


def test_iter_source_records_skips_header(tmp_path: Path) -> None:
    """Header skipping should drop only the first non-blank line."""
    source_path = write_mnist_csv(
        tmp_path / "mnist.csv", ["label,pixel1", make_record_line(4)]
    )

    records = list(
        iter_source_records(str(source_path), EdgeTrainConfig.from_env(), skip_header=True)
    )

    assert len(records) == 1 and records[0][0] == "4"


def test_iter_source_records_raises_for_missing_path(tmp_path: Path) -> None:
    """Reader should fail when source path is missing."""
    missing_path = tmp_path / "does-not-exist.csv"

    with pytest.raises(SourceReadError):
        list(iter_source_records(str(missing_path), EdgeTrainConfig.from_env()))

    assert missing_path.exists() is False


def test_iter_line_records_is_lazy() -> None:
    """Records should be produced on demand rather than read up front."""
    consumed: list[str] = []

    def _lines():
        for label in range(3):
            consumed.append(str(label))
            yield make_record_line(label)

    records = iter_line_records(_lines())
    first = next(records)

    assert first[0] == "0" and consumed == ["0"]


def test_build_boto3_session_kwargs_uses_profile_and_region(monkeypatch) -> None:
    """S3 session kwargs should reflect configured profile and region."""
    monkeypatch.setenv("EDGETRAIN_S3_PROFILE", "research")
    monkeypatch.setenv("EDGETRAIN_S3_REGION", "eu-west-1")

    kwargs = _build_boto3_session_kwargs(EdgeTrainConfig.from_env())

    assert kwargs == {"profile_name": "research", "region_name": "eu-west-1"}
