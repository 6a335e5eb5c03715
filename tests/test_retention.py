# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flog

"""Tests for retention sweeping and compression."""

import gzip
import os
import time
from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from coreason_flog.retention import RetentionSweeper, compress_segment

DAY = 24 * 60 * 60


def _segment(directory: Path, name: str, age_days: float = 0, content: bytes = b"{}\n") -> Path:
    path = directory / name
    path.write_bytes(content)
    mtime = time.time() - age_days * DAY
    os.utime(path, (mtime, mtime))
    return path


class TestRetentionSweeper:
    """Tests for RetentionSweeper."""

    def test_finalized_segments(self, tmp_path: Path) -> None:
        """Only the stream's segments, minus the active one, are listed in name order."""
        active = _segment(tmp_path, "app_2026-10-18.log")
        b = _segment(tmp_path, "app_2026-10-17_2026-10-17T10-00-00-000002.log")
        a = _segment(tmp_path, "app_2026-10-17_2026-10-17T10-00-00-000001.log.gz")
        old_day = _segment(tmp_path, "app_2026-10-16.log")
        _segment(tmp_path, "other_2026-10-17.log")
        _segment(tmp_path, "notes.txt")
        (tmp_path / "app_2026-10-15.log").mkdir()

        sweeper = RetentionSweeper(tmp_path, "app", 7)
        assert sweeper.finalized_segments(active) == [old_day, a, b]

    def test_sweep_removes_only_expired(self, tmp_path: Path) -> None:
        """Segments older than the window go; newer ones and the active one stay."""
        active = _segment(tmp_path, "app_2026-10-18.log", age_days=30)
        expired = _segment(tmp_path, "app_2026-10-01_2026-10-01T10-00-00-000000.log", age_days=10)
        expired_gz = _segment(tmp_path, "app_2026-10-02_2026-10-02T10-00-00-000000.log.gz", age_days=9)
        recent = _segment(tmp_path, "app_2026-10-15_2026-10-15T10-00-00-000000.log", age_days=3)
        foreign = _segment(tmp_path, "other_2026-10-01.log", age_days=60)

        sweeper = RetentionSweeper(tmp_path, "app", 7)
        removed = sweeper.sweep(datetime.now().astimezone(), active=active)

        assert sorted(removed) == sorted([expired, expired_gz])
        assert not expired.exists()
        assert not expired_gz.exists()
        assert recent.exists()
        assert active.exists()
        assert foreign.exists()

    def test_sweep_reports_and_continues(self, tmp_path: Path) -> None:
        """A deletion failure is reported and the sweep carries on."""
        first = _segment(tmp_path, "app_2026-10-01_2026-10-01T10-00-00-000000.log", age_days=10)
        second = _segment(tmp_path, "app_2026-10-02_2026-10-02T10-00-00-000000.log", age_days=10)
        on_error = MagicMock()
        sweeper = RetentionSweeper(tmp_path, "app", 7, on_error=on_error)

        original_unlink = Path.unlink

        def failing_unlink(self: Path, missing_ok: bool = False) -> None:
            if self.name == first.name:
                raise PermissionError("Permission denied")
            original_unlink(self, missing_ok=missing_ok)

        with patch.object(Path, "unlink", failing_unlink):
            removed = sweeper.sweep(datetime.now().astimezone())

        assert removed == [second]
        assert first.exists()
        on_error.assert_called_once()
        message, error, path = on_error.call_args.args
        assert message == "unable to remove log file"
        assert isinstance(error, PermissionError)
        assert path == first

    def test_sweep_missing_directory(self, tmp_path: Path) -> None:
        """A directory that cannot be listed is reported, not raised."""
        on_error = MagicMock()
        sweeper = RetentionSweeper(tmp_path / "gone", "app", 7, on_error=on_error)
        assert sweeper.sweep(datetime.now().astimezone()) == []
        on_error.assert_called_once()
        assert on_error.call_args.args[0] == "unable to list log directory"

    def test_sweep_without_callback_logs(self, tmp_path: Path) -> None:
        """Without a callback the failure only goes to the diagnostic log."""
        sweeper = RetentionSweeper(tmp_path / "gone", "app", 7)
        assert sweeper.sweep(datetime.now().astimezone()) == []


class TestCompressSegment:
    """Tests for compress_segment."""

    def test_compress_replaces_original(self, tmp_path: Path) -> None:
        """The segment is gzipped next to itself and the original removed."""
        content = b'{"level":"INFO"}\n' * 50
        path = _segment(tmp_path, "app_2026-10-18_2026-10-18T10-00-00-000000.log", age_days=2, content=content)
        mtime = path.stat().st_mtime

        target = compress_segment(path)

        assert target == tmp_path / "app_2026-10-18_2026-10-18T10-00-00-000000.log.gz"
        assert not path.exists()
        with gzip.open(target, "rb") as f:
            assert f.read() == content
        assert target.stat().st_mtime == pytest.approx(mtime, abs=1)

    def test_compress_failure_removes_partial_output(self, tmp_path: Path) -> None:
        """A failed compression leaves the original and no partial archive."""
        path = _segment(tmp_path, "app_2026-10-18_2026-10-18T10-00-00-000000.log")

        with patch("coreason_flog.retention.shutil.copyfileobj", side_effect=OSError(28, "No space left on device")):
            with pytest.raises(OSError):
                compress_segment(path)

        assert path.exists()
        assert not (tmp_path / (path.name + ".gz")).exists()

    def test_compress_missing_file(self, tmp_path: Path) -> None:
        """Compressing a missing segment raises."""
        with pytest.raises(FileNotFoundError):
            compress_segment(tmp_path / "app_2026-10-18_2026-10-18T10-00-00-000000.log")
