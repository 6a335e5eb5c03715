# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flog

"""Age-based retention and compression of finalized segments."""

import gzip
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Callable, Final, Optional

from coreason_flog.config import FlogConfig
from coreason_flog.segment import segment_name_pattern
from coreason_flog.utils.logger import logger

ErrorCallback = Callable[[str, Exception, Optional[Path]], None]

SECONDS_PER_DAY: Final[int] = 24 * 60 * 60


def compress_segment(path: Path) -> Path:
    """
    Gzip a finalized segment next to itself and delete the original.

    The compressed file keeps the original's modification time so retention
    ages it the same way.

    Args:
        path: The finalized segment.

    Returns:
        Path of the ``.gz`` file.

    Raises:
        OSError: If reading, writing or deleting fails. Partial output is removed.
    """
    target = path.with_name(path.name + FlogConfig.COMPRESSED_SUFFIX)
    try:
        stat = path.stat()
        with open(path, "rb") as source, gzip.open(target, "wb") as sink:
            shutil.copyfileobj(source, sink)
        os.utime(target, (stat.st_atime, stat.st_mtime))
    except OSError:
        if target.exists():
            target.unlink()
        raise
    path.unlink()
    logger.debug(f"Compressed {path.name} -> {target.name}")
    return target


class RetentionSweeper:
    """Deletes finalized segments of one log stream once they exceed the retention age."""

    def __init__(
        self,
        directory: Path,
        prefix: str,
        max_age_days: int,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        """
        Initialize the sweeper.

        Args:
            directory: Log directory to scan.
            prefix: Prefix of the stream's segment names.
            max_age_days: Retention window in days.
            on_error: Called with ``(message, error, path)`` for each failure.
                Failures are logged and skipped when not set.
        """
        self.directory = Path(directory)
        self.prefix = prefix
        self.max_age_days = max_age_days
        self._pattern = segment_name_pattern(prefix)
        self._on_error = on_error

    def finalized_segments(self, active: Optional[Path] = None) -> list[Path]:
        """
        List the stream's segments other than ``active``, sorted by name.

        Raises:
            OSError: If the directory cannot be listed.
        """
        active_name = active.name if active is not None else None
        segments = [
            self.directory / entry.name
            for entry in os.scandir(self.directory)
            if entry.is_file() and self._pattern.match(entry.name) and entry.name != active_name
        ]
        return sorted(segments)

    def sweep(self, now: datetime, active: Optional[Path] = None) -> list[Path]:
        """
        Delete finalized segments last modified more than ``max_age_days`` before ``now``.

        Best-effort: a failure on one segment is reported and the sweep moves on.

        Args:
            now: Reference time for the age check.
            active: The active segment, never deleted.

        Returns:
            Paths that were removed.
        """
        try:
            segments = self.finalized_segments(active)
        except OSError as e:
            self._report("unable to list log directory", e, self.directory)
            return []

        cutoff = now.timestamp() - self.max_age_days * SECONDS_PER_DAY
        removed = []
        for segment in segments:
            try:
                if segment.stat().st_mtime >= cutoff:
                    continue
                segment.unlink()
            except FileNotFoundError:
                # Already gone, e.g. replaced by its compressed form
                continue
            except OSError as e:
                self._report("unable to remove log file", e, segment)
                continue
            removed.append(segment)

        if removed:
            logger.debug(f"Retention removed {len(removed)} segment(s) from {self.directory}")
        return removed

    def _report(self, message: str, error: Exception, path: Optional[Path]) -> None:
        if self._on_error is not None:
            self._on_error(message, error, path)
        else:
            logger.error(f"{message} ({path}): {error}")
