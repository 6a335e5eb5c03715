# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flog

"""Diagnostic logging for the log sink itself, using loguru."""

import sys

from loguru import logger

DIAGNOSTIC_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def setup_logging(level: str = "INFO") -> None:
    """Replace loguru's sinks with a single stderr sink at ``level``."""
    logger.remove()
    logger.add(sys.stderr, level=level, format=DIAGNOSTIC_FORMAT)


# Export the configured logger
__all__ = ["logger", "setup_logging"]
