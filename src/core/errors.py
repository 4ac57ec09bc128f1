"""edgetrain exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations


class EdgeTrainError(Exception):
    """Base exception for all edgetrain failures."""


class EdgeTrainConfigError(EdgeTrainError):
    """Raised for invalid runtime configuration."""


class EdgeTrainDependencyError(EdgeTrainError):
    """Raised when an optional runtime dependency is missing."""


class RecordDecodeError(EdgeTrainError):
    """Raised when one raw dataset record cannot be decoded."""


class WrongArityError(RecordDecodeError):
    """Raised when a record does not have the expected field count."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Invalid record field count: expected {expected} fields, got {actual}. "
            "Each record must hold one label followed by all pixel intensities."
        )
        self.expected = expected
        self.actual = actual


class MalformedFieldError(RecordDecodeError):
    """Raised when a record field is non-numeric or out of range."""

    def __init__(self, field_index: int, raw_value: str, reason: str) -> None:
        super().__init__(f"Malformed record field {field_index} ({raw_value!r}): {reason}.")
        self.field_index = field_index
        self.raw_value = raw_value
        self.reason = reason


class SourceReadError(EdgeTrainError):
    """Raised when a dataset source cannot be opened or read."""


class PreparationError(EdgeTrainError):
    """Raised for dataset preparation lifecycle failures."""


class PreparationInProgressError(PreparationError):
    """Raised when a preparation is requested while another is in flight."""


class PreparationCancelledError(PreparationError):
    """Raised when a caller cancels an in-flight preparation."""


class InvalidStateTransitionError(PreparationError):
    """Raised for preparation state transitions the machine does not allow."""


class GraphValidationError(EdgeTrainError):
    """Raised when a graph description violates a construction rule."""

    def __init__(self, rule: str, subject: str, message: str) -> None:
        super().__init__(f"Graph validation failed [{rule}] at '{subject}': {message}")
        self.rule = rule
        self.subject = subject


class GraphFileError(EdgeTrainError):
    """Raised for invalid or unreadable graph description files."""


class ArtifactIOError(EdgeTrainError):
    """Raised when a model artifact cannot be written or read."""


class ModelCompileError(EdgeTrainError):
    """Raised when the model compiler rejects an artifact."""
