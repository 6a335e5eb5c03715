# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flog

"""Configuration module for the coreason_flog log sink."""

from pathlib import Path
from typing import Final


class FlogConfig:
    """Configuration constants for the log sink."""

    # Defaults for the CLI collaborator
    DEFAULT_DIRECTORY: Final[Path] = Path("logs")
    DEFAULT_PREFIX: Final[str] = "app"

    # Segment naming
    SEGMENT_SUFFIX: Final[str] = ".log"
    COMPRESSED_SUFFIX: Final[str] = ".gz"
    DATE_FORMAT: Final[str] = "%Y-%m-%d"
    ROTATION_STAMP_FORMAT: Final[str] = "%Y-%m-%dT%H-%M-%S-%f"

    # Rotation and retention
    DEFAULT_MAX_SIZE_BYTES: Final[int] = 10 * 1024 * 1024
    DEFAULT_MAX_AGE_DAYS: Final[int] = 30
    MIN_MAX_AGE_DAYS: Final[int] = 7  # Floor so recent data is never swept

    # Dispatch
    DEFAULT_QUEUE_SIZE: Final[int] = 2048

    # Encoding
    ENCODING: Final[str] = "utf-8"
