# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flog

"""Segment naming and the writer that owns the active segment's file handle."""

import os
import re
import threading
from datetime import date, datetime
from pathlib import Path
from typing import BinaryIO, Optional

from coreason_flog.config import FlogConfig
from coreason_flog.exceptions import SegmentWriteError
from coreason_flog.utils.logger import logger


def active_segment_path(directory: Path, prefix: str, day: date) -> Path:
    """
    Canonical path of the segment that receives writes on ``day``.

    Args:
        directory: Log directory.
        prefix: File name prefix of the log stream.
        day: Local calendar date.

    Returns:
        ``{directory}/{prefix}_{YYYY-MM-DD}.log``
    """
    return directory / f"{prefix}_{day.strftime(FlogConfig.DATE_FORMAT)}{FlogConfig.SEGMENT_SUFFIX}"


def rotated_segment_path(active: Path, stamp: datetime) -> Path:
    """
    Name under which ``active`` is finalized when it is rotated at ``stamp``.

    Neither the plain nor the compressed form of the returned path exists yet;
    a counter is appended if the stamp is already taken.
    """
    base = f"{active.stem}_{stamp.strftime(FlogConfig.ROTATION_STAMP_FORMAT)}"
    candidate = active.with_name(base + FlogConfig.SEGMENT_SUFFIX)
    counter = 1
    while candidate.exists() or candidate.with_name(candidate.name + FlogConfig.COMPRESSED_SUFFIX).exists():
        candidate = active.with_name(f"{base}_{counter:04d}{FlogConfig.SEGMENT_SUFFIX}")
        counter += 1
    return candidate


def segment_name_pattern(prefix: str) -> re.Pattern[str]:
    """Regex matching every segment name (active, rotated or compressed) of a log stream."""
    return re.compile(
        rf"^{re.escape(prefix)}_\d{{4}}-\d{{2}}-\d{{2}}"
        rf"(?:_\d{{4}}-\d{{2}}-\d{{2}}T\d{{2}}-\d{{2}}-\d{{2}}-\d{{6}}(?:_\d{{4}})?)?"
        rf"{re.escape(FlogConfig.SEGMENT_SUFFIX)}(?:{re.escape(FlogConfig.COMPRESSED_SUFFIX)})?$"
    )


class SegmentWriter:
    """
    Single owner of the active segment's file handle.

    Appends are made by one thread only and take no lock. Opening, closing and
    swapping the handle happen under ``lock`` so a rotation is one critical
    section.
    """

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self._handle: Optional[BinaryIO] = None
        self._path: Optional[Path] = None
        self._size = 0

    @property
    def path(self) -> Optional[Path]:
        """Path of the active segment, kept after a close so it can be reopened."""
        return self._path

    @property
    def is_open(self) -> bool:
        return self._handle is not None

    def current_size(self) -> int:
        """Size in bytes of the active segment, including what existed before it was opened."""
        return self._size

    def append(self, data: bytes) -> int:
        """
        Append ``data`` to the active segment and flush it to the OS.

        Args:
            data: Encoded bytes, normally one log line.

        Returns:
            Number of bytes written.

        Raises:
            SegmentWriteError: If no segment is open.
            OSError: If the write or flush fails (disk full, permissions).
        """
        handle = self._handle
        if handle is None:
            raise SegmentWriteError(f"No active segment open for {self._path}")
        written = handle.write(data)
        handle.flush()
        self._size += written
        return written

    def open_new(self, path: Path) -> None:
        """Open ``path`` for appending, creating it if absent, and make it the active segment."""
        with self.lock:
            self._open(path)

    def close_active(self) -> None:
        """Close the active segment if one is open."""
        with self.lock:
            self._close()

    def swap(self, finalized: Path, new_path: Path) -> Optional[Path]:
        """
        Finalize the active segment and open a new one.

        The active file is closed, renamed to ``finalized`` and ``new_path`` is
        opened, all while holding ``lock``. The new segment is opened even when
        the rename fails so writes can continue.

        Returns:
            ``finalized`` if a file was moved there, None if there was nothing to move.

        Raises:
            OSError: If the rename or the open fails. A rename failure is raised
                after the new segment has been opened.
        """
        with self.lock:
            current = self._path
            self._close()
            moved: Optional[Path] = None
            rename_error: Optional[OSError] = None
            if current is not None and current.exists():
                try:
                    os.rename(current, finalized)
                    moved = finalized
                except OSError as e:
                    rename_error = e
            self._open(new_path)
            if rename_error is not None:
                raise rename_error
            return moved

    def _open(self, path: Path) -> None:
        self._close()
        self._path = path
        handle = open(path, "ab")
        try:
            size = os.fstat(handle.fileno()).st_size
        except OSError:
            handle.close()
            raise
        self._handle = handle
        self._size = size
        logger.debug(f"Opened segment {path} ({size} bytes)")

    def _close(self) -> None:
        handle = self._handle
        if handle is None:
            return
        self._handle = None
        self._size = 0
        handle.close()
