# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flog

"""Caller location and stack capture for DEBUG and FATAL events."""

import sys
import traceback
from typing import Protocol


class DiagnosticContext(Protocol):
    """Source of caller information, called while an event is being built."""

    def caller(self, depth: int) -> tuple[str, int]:
        """Return ``(file, line)`` of the frame ``depth`` levels above the calling function."""
        ...

    def stack(self, depth: int) -> str:
        """Return the formatted call stack ending at the frame ``depth`` levels above the calling function."""
        ...


class FrameDiagnostics:
    """DiagnosticContext backed by the interpreter's frame objects."""

    def caller(self, depth: int) -> tuple[str, int]:
        try:
            # +1 skips this method's own frame
            frame = sys._getframe(depth + 1)
        except ValueError:
            return "<unknown>", 0
        return frame.f_code.co_filename, frame.f_lineno

    def stack(self, depth: int) -> str:
        try:
            frame = sys._getframe(depth + 1)
        except ValueError:
            return "".join(traceback.format_stack())
        return "".join(traceback.format_stack(frame))
