"""Runtime configuration model for edgetrain.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
import tempfile

from core.constants import (
    DEFAULT_ARTIFACT_DIR_NAME,
    DEFAULT_DECODE_POLICY,
    DEFAULT_MODEL_FILE_NAME,
    DEFAULT_RANDOM_SEED,
    SUPPORTED_DECODE_POLICIES,
)
from core.errors import EdgeTrainConfigError
from core.types import DecodePolicy


@dataclass(frozen=True)
class EdgeTrainConfig:
    """Validated runtime configuration.

    Attributes:
        artifact_dir: Directory for intermediate model artifacts.
        random_seed: Seed for weight placeholders and batch shuffling.
        decode_policy: Handling of malformed dataset records.
        s3_region: Optional default AWS region for S3 sources.
        s3_profile: Optional AWS profile for boto3 session initialization.
    """

    artifact_dir: Path
    random_seed: int
    decode_policy: DecodePolicy
    s3_region: str | None
    s3_profile: str | None

    @classmethod
    def from_env(cls) -> "EdgeTrainConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            EdgeTrainConfigError: If environment values are invalid.
        """
        default_artifact_dir = Path(tempfile.gettempdir()) / DEFAULT_ARTIFACT_DIR_NAME
        artifact_dir_value = os.getenv("EDGETRAIN_ARTIFACT_DIR", str(default_artifact_dir))
        random_seed = _parse_random_seed(
            os.getenv("EDGETRAIN_RANDOM_SEED", str(DEFAULT_RANDOM_SEED))
        )
        decode_policy = _parse_decode_policy(
            os.getenv("EDGETRAIN_DECODE_POLICY", DEFAULT_DECODE_POLICY)
        )
        return cls(
            artifact_dir=Path(artifact_dir_value).expanduser().resolve(),
            random_seed=random_seed,
            decode_policy=decode_policy,
            s3_region=os.getenv("EDGETRAIN_S3_REGION"),
            s3_profile=os.getenv("EDGETRAIN_S3_PROFILE"),
        )

    @property
    def default_model_path(self) -> Path:
        """Artifact path used when callers do not pick one."""
        return self.artifact_dir / DEFAULT_MODEL_FILE_NAME


def _parse_random_seed(raw_value: str) -> int:
    """Parse the random seed environment value.

    Raises:
        EdgeTrainConfigError: If value cannot be parsed into int.
    """
    try:
        return int(raw_value)
    except ValueError as error:
        raise EdgeTrainConfigError(
            "Invalid EDGETRAIN_RANDOM_SEED value: "
            f"expected integer, got '{raw_value}'. "
            "Set EDGETRAIN_RANDOM_SEED to a numeric value."
        ) from error


def _parse_decode_policy(raw_value: str) -> DecodePolicy:
    """Parse the malformed-record policy environment value."""
    normalized = raw_value.strip().lower()
    if normalized == "skip":
        return "skip"
    if normalized == "abort":
        return "abort"
    raise EdgeTrainConfigError(
        "Invalid EDGETRAIN_DECODE_POLICY value: "
        f"expected one of {SUPPORTED_DECODE_POLICIES}, got '{raw_value}'."
    )
