"""Streaming dataset source readers.

This module streams delimited records line by line from a local CSV
file or an S3 object. Records are yielded lazily so sources of any
length can be prepared without loading them into memory first.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Iterator

from core.config import EdgeTrainConfig
from core.errors import EdgeTrainDependencyError, SourceReadError
from core.s3_uri import S3Location, is_s3_uri, parse_s3_uri
from core.types import RawRecord
from ingest.record_decoder import split_record_line


def iter_source_records(
    source_uri: str,
    config: EdgeTrainConfig,
    skip_header: bool = False,
) -> Iterator[RawRecord]:
    """Stream raw records from a local file or ``s3://`` object.

    Args:
        source_uri: Local CSV path or ``s3://bucket/key`` URI.
        config: Runtime configuration for S3 session defaults.
        skip_header: Drop the first non-blank line.

    Returns:
        Lazy iterator of raw records in source order.

    Raises:
        SourceReadError: If the source cannot be opened or read.
    """
    if is_s3_uri(source_uri):
        lines = _iter_s3_lines(parse_s3_uri(source_uri), config)
    else:
        lines = _iter_local_lines(Path(source_uri).expanduser())
    return iter_line_records(lines, skip_header=skip_header)


def iter_line_records(lines: Iterable[str], skip_header: bool = False) -> Iterator[RawRecord]:
    """Split text lines into raw records, ignoring blank lines."""
    header_pending = skip_header
    for line in lines:
        if not line.strip():
            continue
        if header_pending:
            header_pending = False
            continue
        yield split_record_line(line)


def _iter_local_lines(source_path: Path) -> Iterator[str]:
    """Yield UTF-8 lines from a local file.

    Raises:
        SourceReadError: If path is missing or unreadable.
    """
    if not source_path.is_file():
        raise SourceReadError(
            f"Failed to read dataset source at {source_path}: file does not exist. "
            "Provide an existing CSV file."
        )
    try:
        with source_path.open("r", encoding="utf-8") as source_file:
            yield from source_file
    except (OSError, UnicodeDecodeError) as error:
        raise SourceReadError(
            f"Failed to read dataset source at {source_path}: {error}. "
            "Check file permissions and encoding, then retry."
        ) from error


def _iter_s3_lines(location: S3Location, config: EdgeTrainConfig) -> Iterator[str]:
    """Yield UTF-8 lines from one S3 object body.

    Raises:
        SourceReadError: If the object cannot be fetched.
    """
    s3_client = _create_s3_client(config)
    source_uri = f"s3://{location.bucket}/{location.key}"
    try:
        body = s3_client.get_object(Bucket=location.bucket, Key=location.key)["Body"]
        for raw_line in body.iter_lines():
            yield raw_line.decode("utf-8")
    except UnicodeDecodeError as error:
        raise SourceReadError(
            f"Failed to decode dataset source at {source_uri}: {error}. "
            "Upload a UTF-8 encoded CSV object."
        ) from error
    except Exception as error:
        raise SourceReadError(
            f"Failed to read dataset source at {source_uri}: {error}. "
            "Check bucket permissions and object key, then retry."
        ) from error


def _create_s3_client(config: EdgeTrainConfig) -> Any:
    """Create a boto3 S3 client.

    Raises:
        EdgeTrainDependencyError: If boto3 is missing.
    """
    try:
        import boto3
    except ImportError as error:
        raise EdgeTrainDependencyError(
            "S3 support requires boto3, but it is not installed. "
            "Install with pip install -e .[s3] to prepare s3:// sources."
        ) from error
    session = boto3.session.Session(**_build_boto3_session_kwargs(config))
    return session.client("s3")


def _build_boto3_session_kwargs(config: EdgeTrainConfig) -> dict[str, str]:
    """Build boto3 Session kwargs from config."""
    kwargs: dict[str, str] = {}
    if config.s3_profile:
        kwargs["profile_name"] = config.s3_profile
    if config.s3_region:
        kwargs["region_name"] = config.s3_region
    return kwargs
