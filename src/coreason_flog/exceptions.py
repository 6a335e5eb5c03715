# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flog

"""Exceptions raised by the log sink."""


class FlogError(Exception):
    """Base class for all log sink errors."""


class LoggerConstructionError(FlogError):
    """The log directory or the initial segment could not be prepared."""


class LoggerClosedError(FlogError):
    """An event was submitted after the logger started closing."""


class SegmentWriteError(FlogError):
    """An append was attempted while no segment is open."""
