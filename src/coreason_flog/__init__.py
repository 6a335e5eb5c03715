# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flog

"""Structured JSON-lines log sink with size and daily rotation, retention and compression."""

from coreason_flog.exceptions import FlogError, LoggerClosedError, LoggerConstructionError, SegmentWriteError
from coreason_flog.logger import Logger
from coreason_flog.models import Level, LogEvent, LogField, RotationConfig, new_field

__all__ = [
    "FlogError",
    "Level",
    "LogEvent",
    "LogField",
    "Logger",
    "LoggerClosedError",
    "LoggerConstructionError",
    "RotationConfig",
    "SegmentWriteError",
    "new_field",
]
