"""Core constants used across edgetrain modules.

This module centralizes dataset layout and model defaults.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

DEFAULT_ARTIFACT_DIR_NAME = "edgetrain"
DEFAULT_MODEL_FILE_NAME = "MNIST_Model.onnx"
DEFAULT_RANDOM_SEED = 42
DEFAULT_DECODE_POLICY = "skip"
SUPPORTED_DECODE_POLICIES = ("skip", "abort")

IMAGE_CHANNELS = 1
IMAGE_HEIGHT = 28
IMAGE_WIDTH = 28
IMAGE_PIXEL_COUNT = IMAGE_CHANNELS * IMAGE_HEIGHT * IMAGE_WIDTH
CLASS_COUNT = 10
RECORD_FIELD_COUNT = 1 + IMAGE_PIXEL_COUNT
RECORD_DELIMITER = ","
MAX_PIXEL_INTENSITY = 255.0

IMAGE_FEATURE_NAME = "image"
LABEL_FEATURE_NAME = "output_true"
OUTPUT_TENSOR_NAME = "output"

ONNX_OPSET_VERSION = 13
ONNX_IR_VERSION = 8
ARTIFACT_PRODUCER_NAME = "edgetrain"
ARTIFACT_PRODUCER_VERSION = "0.1.0"
BATCH_DIMENSION_NAME = "batch"
TRAINING_CONFIG_METADATA_KEY = "training_config"

REFERENCE_MODEL_SPEC_VERSION = 4
REFERENCE_MODEL_DESCRIPTION = "MNIST-Trainable"
REFERENCE_MODEL_AUTHOR = "Jacopo Mangiavacchi"
REFERENCE_MODEL_LICENSE = "MIT"
REFERENCE_MODEL_VERSION_KEY = "EdgetrainVersion"
