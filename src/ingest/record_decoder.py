"""Raw dataset record decoding.

This module turns one delimited ``label,pixel*784`` record into an
immutable example with a normalized image tensor and a one-hot label.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from core.constants import (
    CLASS_COUNT,
    IMAGE_CHANNELS,
    IMAGE_HEIGHT,
    IMAGE_PIXEL_COUNT,
    IMAGE_WIDTH,
    MAX_PIXEL_INTENSITY,
    RECORD_DELIMITER,
    RECORD_FIELD_COUNT,
)
from core.errors import MalformedFieldError, WrongArityError
from core.types import Example


def split_record_line(line: str) -> tuple[str, ...]:
    """Split one text line into raw record fields."""
    return tuple(line.rstrip("\r\n").split(RECORD_DELIMITER))


def decode_record(raw_fields: Sequence[str]) -> Example:
    """Decode one raw record into an example.

    Args:
        raw_fields: Label field followed by pixel intensity fields.

    Returns:
        Example with image shaped (1, 28, 28) and one-hot label.

    Raises:
        WrongArityError: If the field count is not 785.
        MalformedFieldError: If a field is non-numeric or out of range.
    """
    if len(raw_fields) != RECORD_FIELD_COUNT:
        raise WrongArityError(RECORD_FIELD_COUNT, len(raw_fields))
    label = one_hot_encode(_parse_label(raw_fields[0]))
    pixels = np.empty(IMAGE_PIXEL_COUNT, dtype=np.float32)
    for pixel_index in range(IMAGE_PIXEL_COUNT):
        field_index = pixel_index + 1
        pixels[pixel_index] = _parse_pixel(field_index, raw_fields[field_index])
    image = (pixels / np.float32(MAX_PIXEL_INTENSITY)).reshape(
        IMAGE_CHANNELS, IMAGE_HEIGHT, IMAGE_WIDTH
    )
    image.flags.writeable = False
    label.flags.writeable = False
    return Example(image=image, label=label)


def one_hot_encode(class_index: int) -> np.ndarray:
    """Return an int32 vector with a single 1 at ``class_index``."""
    encoded = np.zeros(CLASS_COUNT, dtype=np.int32)
    encoded[class_index] = 1
    return encoded


def _parse_label(raw_value: str) -> int:
    try:
        label = int(raw_value.strip())
    except ValueError as error:
        raise MalformedFieldError(0, raw_value, "label is not an integer") from error
    if not 0 <= label < CLASS_COUNT:
        raise MalformedFieldError(
            0, raw_value, f"label must lie in [0, {CLASS_COUNT - 1}]"
        )
    return label


def _parse_pixel(field_index: int, raw_value: str) -> float:
    try:
        intensity = float(raw_value.strip())
    except ValueError as error:
        raise MalformedFieldError(field_index, raw_value, "pixel is not numeric") from error
    # float() accepts "nan" and "inf", neither of which is a valid intensity.
    if math.isnan(intensity) or not 0.0 <= intensity <= MAX_PIXEL_INTENSITY:
        raise MalformedFieldError(
            field_index, raw_value, f"pixel must lie in [0, {int(MAX_PIXEL_INTENSITY)}]"
        )
    return intensity
