# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flog

"""Size and calendar-day rotation triggers."""

import threading
from datetime import datetime, time, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional

from coreason_flog.models import RotationConfig
from coreason_flog.utils.logger import logger


def next_midnight(now: datetime) -> datetime:
    """
    Start of the calendar day following ``now``.

    A naive ``now``, or one carrying the local UTC offset (as returned by
    ``datetime.now().astimezone()``), is resolved against the local timezone
    rules, so the boundary moves with daylight saving changes. Any other
    timezone is used as given.
    """
    tomorrow = (now + timedelta(days=1)).date()
    if now.tzinfo is None:
        return datetime.combine(tomorrow, time.min)
    if isinstance(now.tzinfo, timezone) and now.utcoffset() == now.astimezone().utcoffset():
        # Fixed offset snapshot of local time: tomorrow's offset may differ
        return datetime.combine(tomorrow, time.min).astimezone()
    return datetime.combine(tomorrow, time.min, tzinfo=now.tzinfo)


def seconds_until_midnight(now: datetime) -> float:
    """Seconds from ``now`` to the next midnight boundary."""
    return max((next_midnight(now) - now).total_seconds(), 0.0)


class RotationPolicy:
    """Decides whether a pending write has to go to a new segment."""

    def __init__(self, config: RotationConfig) -> None:
        self.config = config

    def should_rotate(self, current_size: int, pending_size: int) -> bool:
        """
        Check the size trigger before a write.

        An empty segment always takes the write, so a single event larger than
        the threshold cannot cause endless rotation.

        Args:
            current_size: Bytes already in the active segment.
            pending_size: Bytes about to be appended.

        Returns:
            True if the active segment must be rotated before the write.
        """
        if current_size <= 0:
            return False
        return current_size + pending_size > self.config.max_size_bytes


class MidnightTimer:
    """
    One-shot timer that fires at the next local midnight.

    The callback receives the value passed to :meth:`schedule`; the owner is
    expected to call :meth:`schedule` again once the rotation has been handled.
    """

    def __init__(self, clock: Callable[[], datetime], callback: Callable[[Path], None]) -> None:
        self._clock = clock
        self._callback = callback
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._cancelled = False
        self.scheduled_count = 0

    @property
    def interval(self) -> Optional[float]:
        """Delay in seconds of the pending timer, if any."""
        timer = self._timer
        return timer.interval if timer is not None else None

    def schedule(self, target: Path) -> Optional[float]:
        """
        Arm the timer for the next midnight.

        Args:
            target: Passed to the callback when the timer fires.

        Returns:
            The delay in seconds, or None if the timer was cancelled.
        """
        delay = seconds_until_midnight(self._clock())
        with self._lock:
            if self._cancelled:
                return None
            if self._timer is not None:
                self._timer.cancel()
            timer = threading.Timer(delay, self._callback, args=(target,))
            timer.daemon = True
            timer.name = "flog-midnight"
            self._timer = timer
            self.scheduled_count += 1
            timer.start()
        logger.debug(f"Next time rotation in {delay:.0f}s")
        return delay

    def cancel(self) -> None:
        """Cancel the pending timer and refuse further scheduling."""
        with self._lock:
            self._cancelled = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
