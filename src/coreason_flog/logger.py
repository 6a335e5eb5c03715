# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flog

"""The Logger: a bounded dispatch queue feeding a single writer thread."""

import queue
import threading
from collections import deque
from datetime import datetime
from pathlib import Path
from types import TracebackType
from typing import Any, Callable, Final, NamedTuple, Optional, Union

from coreason_flog.config import FlogConfig
from coreason_flog.diagnostics import DiagnosticContext, FrameDiagnostics
from coreason_flog.encoder import encode
from coreason_flog.exceptions import FlogError, LoggerClosedError, LoggerConstructionError
from coreason_flog.models import Level, LogEvent, LogField, RotationConfig
from coreason_flog.retention import RetentionSweeper, compress_segment
from coreason_flog.rotation import MidnightTimer, RotationPolicy
from coreason_flog.segment import SegmentWriter, active_segment_path, rotated_segment_path
from coreason_flog.utils.logger import logger


def local_now() -> datetime:
    """Current local time with its UTC offset."""
    return datetime.now().astimezone()


class _RotationRequest(NamedTuple):
    """Time-triggered rotation of the segment that was active when the timer was armed."""

    scheduled_for: Path


_SHUTDOWN: Final = object()
# Wakes an idle worker so it writes pending compression failures
_WAKE: Final = object()


class Logger:
    """
    Leveled, structured logger appending JSON lines to rotating segment files.

    Producer calls only enqueue; one worker thread encodes, rotates and writes,
    so events land in the order they were enqueued. Use one instance per log
    stream and call :meth:`close` (or use it as a context manager) to flush it.

    Example:
        >>> with Logger("logs", "app", RotationConfig(max_size_bytes=1 << 20)) as log:
        ...     log.info("started", new_field("pid", 42))
    """

    # Frames between _log and the code that called debug/info/error/fatal
    _CALLER_DEPTH: Final[int] = 2

    def __init__(
        self,
        directory: Union[str, Path],
        prefix: str,
        config: Optional[RotationConfig] = None,
        *,
        queue_size: int = FlogConfig.DEFAULT_QUEUE_SIZE,
        clock: Optional[Callable[[], datetime]] = None,
        diagnostics: Optional[DiagnosticContext] = None,
    ) -> None:
        """
        Open (or create) today's segment and start the worker.

        Args:
            directory: Directory holding the segments. Created if missing.
            prefix: File name prefix of this log stream.
            config: Rotation and retention settings. Defaults to RotationConfig().
            queue_size: Capacity of the dispatch queue; producers block when it is full.
            clock: Returns the current timezone-aware local time. Defaults to the system clock.
            diagnostics: Caller/stack capture for DEBUG and FATAL events.

        Raises:
            ValueError: If ``queue_size`` is not positive.
            LoggerConstructionError: If the directory or the initial segment cannot be opened.
        """
        if queue_size <= 0:
            raise ValueError(f"queue_size must be positive, got {queue_size}")

        self.directory = Path(directory)
        self.prefix = prefix
        self.config = config or RotationConfig()
        self._clock = clock or local_now
        self._diagnostics: DiagnosticContext = diagnostics or FrameDiagnostics()
        self._policy = RotationPolicy(self.config)
        self._sweeper = RetentionSweeper(
            self.directory, prefix, self.config.max_age_days, on_error=self._report_failure
        )

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Unable to create log directory {self.directory}: {e}")
            raise LoggerConstructionError(f"Unable to create log directory {self.directory}: {e}") from e

        self._writer = SegmentWriter()
        initial = self._canonical_path()
        try:
            self._writer.open_new(initial)
        except OSError as e:
            logger.error(f"Unable to open log file {initial}: {e}")
            raise LoggerConstructionError(f"Unable to open log file {initial}: {e}") from e

        self._queue: queue.Queue[Any] = queue.Queue(maxsize=queue_size)
        # Worker-only: failures to be written before the next queued item
        self._backlog: deque[LogEvent] = deque()
        self._state = threading.Condition()
        self._closing = False
        self._closed = False
        self._in_flight = 0
        self._compressions: list[threading.Thread] = []
        self._compressions_lock = threading.Lock()
        # Guarded by _compressions_lock; filled by compression threads
        self._compression_failures: list[LogEvent] = []

        self._timer = MidnightTimer(self._clock, self._request_time_rotation)
        self._timer.schedule(initial)
        self._worker = threading.Thread(target=self._run, name=f"flog-{prefix}", daemon=True)
        self._worker.start()
        logger.info(f"Logging to {initial}")

    # ------------------------------------------------------------------
    # Public API

    @property
    def active_path(self) -> Optional[Path]:
        """Path of the segment currently receiving writes."""
        return self._writer.path

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def timer(self) -> MidnightTimer:
        return self._timer

    def debug(self, message: str, *fields: LogField, **properties: Any) -> None:
        """Log a DEBUG event with the caller's file and line."""
        self._log(Level.DEBUG, message, fields, properties)

    def info(self, message: str, *fields: LogField, **properties: Any) -> None:
        """Log an INFO event."""
        self._log(Level.INFO, message, fields, properties)

    def error(self, message: str, *fields: LogField, **properties: Any) -> None:
        """Log an ERROR event."""
        self._log(Level.ERROR, message, fields, properties)

    def fatal(self, message: str, *fields: LogField, **properties: Any) -> None:
        """Log a FATAL event with the caller's location and the full stack trace. Does not exit."""
        self._log(Level.FATAL, message, fields, properties)

    def close(self) -> None:
        """
        Stop accepting events, write everything already queued, then close the segment.

        Blocks until the worker and any compression threads have finished, and
        writes the errors of compressions that failed meanwhile. A concurrent or
        repeated call waits for the first one to finish.
        """
        with self._state:
            if self._closing:
                while not self._closed:
                    self._state.wait()
                return
            self._closing = True
            # Producers already inside put() still get their events in
            while self._in_flight:
                self._state.wait()

        try:
            self._timer.cancel()
            self._queue.put(_SHUTDOWN)
            self._worker.join()
            self._drain_compressions()
            self._writer.close_active()
        finally:
            with self._state:
                self._closed = True
                self._state.notify_all()
        logger.info(f"Closed log stream {self.prefix} in {self.directory}")

    def __enter__(self) -> "Logger":
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Producer side

    def _log(self, level: Level, message: str, fields: tuple[LogField, ...], properties: dict[str, Any]) -> None:
        props = {f.key: f.value for f in fields}
        props.update(properties)

        caller_file: Optional[str] = None
        caller_line: Optional[int] = None
        stack_trace: Optional[str] = None
        if level in (Level.DEBUG, Level.FATAL):
            caller_file, caller_line = self._diagnostics.caller(self._CALLER_DEPTH)
        if level is Level.FATAL:
            stack_trace = self._diagnostics.stack(self._CALLER_DEPTH)

        event = LogEvent(
            level=level,
            timestamp=self._clock(),
            message=str(message),
            properties=props,
            caller_file=caller_file,
            caller_line=caller_line,
            stack_trace=stack_trace,
        )
        if not self._enqueue(event):
            raise LoggerClosedError(f"Logger for {self.prefix} in {self.directory} is closed")

    def _enqueue(self, item: Any) -> bool:
        with self._state:
            if self._closing:
                return False
            self._in_flight += 1
        try:
            # Blocks while the queue is full
            self._queue.put(item)
        finally:
            with self._state:
                self._in_flight -= 1
                self._state.notify_all()
        return True

    def _request_time_rotation(self, scheduled_for: Path) -> None:
        if not self._enqueue(_RotationRequest(scheduled_for)):
            logger.debug("Skipping time rotation: logger is closing")

    # ------------------------------------------------------------------
    # Worker side

    def _run(self) -> None:
        while True:
            self._flush_backlog()
            item = self._queue.get()
            if item is _SHUTDOWN:
                self._flush_backlog()
                return
            if item is _WAKE:
                continue
            try:
                if isinstance(item, _RotationRequest):
                    self._handle_time_rotation(item)
                else:
                    self._write(item)
            except Exception as e:
                logger.exception(f"Unexpected failure in log worker: {e}")
                self._report_failure("unexpected failure in log worker", e)

    def _flush_backlog(self) -> None:
        self._backlog.extend(self._take_compression_failures())
        while self._backlog:
            self._write(self._backlog.popleft(), synthetic=True)

    def _write(self, event: LogEvent, synthetic: bool = False) -> None:
        data = encode(event)
        try:
            if not self._writer.is_open:
                self._writer.open_new(self._canonical_path())
            # Error events never rotate: a failing rotation or compression would feed itself
            if not synthetic and self._policy.should_rotate(self._writer.current_size(), len(data)):
                self._rotate()
            self._writer.append(data)
        except (OSError, FlogError) as e:
            if synthetic:
                # Never feed a failed failure report back into the pipeline
                logger.error(f"Dropping error event {event.message!r}: {e}")
                return
            self._report_failure("unable to write log event", e, self._writer.path)

    def _handle_time_rotation(self, request: _RotationRequest) -> None:
        if self._writer.path == request.scheduled_for:
            self._rotate()
        else:
            # Already rotated away from the segment the timer was armed for
            logger.debug(f"Time rotation for {request.scheduled_for.name} already done")
            if not self._writer.is_open:
                path = self._canonical_path()
                try:
                    self._writer.open_new(path)
                except OSError as e:
                    self._report_failure("unable to open log file", e, path)
        self._timer.schedule(self._writer.path or self._canonical_path())

    def _rotate(self) -> None:
        now = self._clock()
        active = self._writer.path or self._canonical_path(now)
        new_path = self._canonical_path(now)

        finalized: Optional[Path] = None
        try:
            finalized = self._writer.swap(rotated_segment_path(active, now), new_path)
        except OSError as e:
            self._report_failure("unable to rotate log file", e, active)

        if finalized is not None:
            logger.debug(f"Rotated {active.name} -> {finalized.name}")
            if self.config.compress_on_rotate:
                self._spawn_compression(finalized)

        self._sweeper.sweep(now, active=self._writer.path)

    def _spawn_compression(self, path: Path) -> None:
        thread = threading.Thread(target=self._compress, args=(path,), name=f"flog-gzip-{path.name}", daemon=True)
        with self._compressions_lock:
            self._compressions = [t for t in self._compressions if t.is_alive()]
            self._compressions.append(thread)
        thread.start()

    def _compress(self, path: Path) -> None:
        try:
            compress_segment(path)
        except OSError as e:
            logger.error(f"Unable to compress log file {path}: {e}")
            event = self._failure_event("unable to compress log file", e, path)
            with self._compressions_lock:
                self._compression_failures.append(event)
            with self._state:
                if self._closing:
                    # Written by close() once this thread has been joined
                    return
                try:
                    self._queue.put_nowait(_WAKE)
                except queue.Full:
                    # The worker is busy and picks the failure up before its next item
                    pass

    def _take_compression_failures(self) -> list[LogEvent]:
        with self._compressions_lock:
            failures, self._compression_failures = self._compression_failures, []
        return failures

    def _drain_compressions(self) -> None:
        # Worker has stopped: join compressions and write what they reported.
        # Error events do not rotate, so no new compression can start.
        while True:
            with self._compressions_lock:
                pending, self._compressions = self._compressions, []
            for thread in pending:
                thread.join()
            failures = self._take_compression_failures()
            if not pending and not failures:
                return
            for event in failures:
                self._write(event, synthetic=True)

    # ------------------------------------------------------------------
    # Helpers

    def _canonical_path(self, now: Optional[datetime] = None) -> Path:
        return active_segment_path(self.directory, self.prefix, (now or self._clock()).date())

    def _report_failure(self, message: str, error: Exception, path: Optional[Path] = None) -> None:
        logger.error(f"{message} ({path}): {error}")
        self._backlog.append(self._failure_event(message, error, path))

    def _failure_event(self, message: str, error: Exception, path: Optional[Path] = None) -> LogEvent:
        properties: dict[str, Any] = {"error": str(error)}
        if path is not None:
            properties["path"] = str(path)
        return LogEvent(level=Level.ERROR, timestamp=self._clock(), message=message, properties=properties)
