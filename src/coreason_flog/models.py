# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flog

"""Pydantic models for log events and rotation settings."""

from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from coreason_flog.config import FlogConfig


def snapshot_value(value: Any, _seen: Optional[set[int]] = None) -> Any:
    """
    Copy the containers of a property value.

    Mappings become new dicts and lists or tuples become new lists, recursively,
    so later changes by the caller do not reach an event that is still queued.
    Scalars and other objects are kept as they are. A container that contains
    itself is kept uncopied from that point on and is reported by the encoder.
    """
    if not isinstance(value, (Mapping, list, tuple)):
        return value
    seen = set() if _seen is None else _seen
    if id(value) in seen:
        return value
    seen.add(id(value))
    try:
        if isinstance(value, Mapping):
            return {key: snapshot_value(item, seen) for key, item in value.items()}
        return [snapshot_value(item, seen) for item in value]
    finally:
        seen.discard(id(value))


class Level(str, Enum):
    """Severity of a log event."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    ERROR = "ERROR"
    FATAL = "FATAL"

    def __str__(self) -> str:
        return self.value


class LogField(BaseModel):
    """A single named property attached to a log event."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    key: str
    value: Any = None


def new_field(key: str, value: Any) -> LogField:
    """Build a property for a logging call, e.g. ``logger.info("saved", new_field("id", 7))``."""
    return LogField(key=key, value=value)


class LogEvent(BaseModel):
    """
    A single leveled, structured log event.

    Caller location is only recorded for DEBUG and FATAL events, and the stack
    trace only for FATAL ones.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    level: Level
    timestamp: datetime
    message: str
    properties: dict[str, Any] = Field(default_factory=dict)
    caller_file: Optional[str] = None
    caller_line: Optional[int] = None
    stack_trace: Optional[str] = None

    @field_validator("properties", mode="before")
    @classmethod
    def snapshot_properties(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            return {key: snapshot_value(item) for key, item in value.items()}
        return value

    @model_validator(mode="after")
    def check_diagnostics(self) -> "LogEvent":
        if self.stack_trace is not None and self.level is not Level.FATAL:
            raise ValueError("stack_trace is only recorded for FATAL events")
        if self.caller_line is not None and self.level not in (Level.DEBUG, Level.FATAL):
            raise ValueError("caller location is only recorded for DEBUG and FATAL events")
        return self


class RotationConfig(BaseModel):
    """
    Rotation and retention settings supplied by the constructing collaborator.
    """

    model_config = ConfigDict(frozen=True)

    max_size_bytes: int = Field(
        default=FlogConfig.DEFAULT_MAX_SIZE_BYTES,
        gt=0,
        description="Rotate before a write would push the active segment past this size",
    )
    max_age_days: int = Field(
        default=FlogConfig.DEFAULT_MAX_AGE_DAYS,
        ge=FlogConfig.MIN_MAX_AGE_DAYS,
        description="Finalized segments older than this are deleted on rotation",
    )
    compress_on_rotate: bool = Field(default=False, description="Gzip each segment once it is finalized")
