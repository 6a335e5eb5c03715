# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flog

"""Rendering of log events as newline-delimited JSON."""

import json
from typing import Any

from coreason_flog.config import FlogConfig
from coreason_flog.models import Level, LogEvent
from coreason_flog.utils.logger import logger


def format_time(event: LogEvent) -> str:
    """RFC 3339 timestamp with the local offset, to the second."""
    return event.timestamp.isoformat(timespec="seconds")


def event_payload(event: LogEvent) -> dict[str, Any]:
    """
    Build the JSON object for an event.

    Args:
        event: The event to render.

    Returns:
        Dictionary with ``level``, ``time`` and ``message`` always set, and
        ``properties``, ``line``, ``file`` and ``trace`` only when non-empty.
    """
    payload: dict[str, Any] = {
        "level": event.level.value,
        "time": format_time(event),
        "message": event.message,
    }
    if event.properties:
        payload["properties"] = event.properties
    if event.caller_line:
        payload["line"] = event.caller_line
    if event.caller_file:
        payload["file"] = event.caller_file
    if event.stack_trace:
        payload["trace"] = event.stack_trace
    return payload


def fallback_line(event: LogEvent, error: Exception) -> bytes:
    """Plain-text line written in place of an event that could not be serialized."""
    description = f"{type(error).__name__}: {error}"
    line = f"{Level.ERROR.value} {format_time(event)} unable to encode log event: {description}; message={event.message!r}"
    # Keep the fallback on a single line
    line = line.replace("\r", "\\r").replace("\n", "\\n")
    return (line + "\n").encode(FlogConfig.ENCODING, errors="replace")


def encode(event: LogEvent) -> bytes:
    """
    Render one event as a single UTF-8 JSON line.

    Never raises: an event that cannot be serialized is replaced by
    :func:`fallback_line` so the stream keeps a record of it.
    """
    try:
        row = json.dumps(event_payload(event), ensure_ascii=False, allow_nan=False, separators=(",", ":"))
        return (row + "\n").encode(FlogConfig.ENCODING)
    except (TypeError, ValueError, UnicodeError, RecursionError) as e:
        logger.warning(f"Falling back to plain text for {event.level.value} event: {e}")
        return fallback_line(event, e)
