# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flog

"""Tests for segment naming and the segment writer."""

from datetime import date, datetime
from pathlib import Path

import pytest

from coreason_flog.exceptions import SegmentWriteError
from coreason_flog.segment import SegmentWriter, active_segment_path, rotated_segment_path, segment_name_pattern

STAMP = datetime(2026, 10, 18, 14, 3, 11, 520311)


class TestNaming:
    """Tests for the segment naming helpers."""

    def test_active_segment_path(self, tmp_path: Path) -> None:
        """Active segment carries the prefix and local date."""
        path = active_segment_path(tmp_path, "app", date(2026, 10, 18))
        assert path == tmp_path / "app_2026-10-18.log"

    def test_rotated_segment_path(self, tmp_path: Path) -> None:
        """Rotated segment appends the rotation stamp."""
        active = tmp_path / "app_2026-10-18.log"
        rotated = rotated_segment_path(active, STAMP)
        assert rotated == tmp_path / "app_2026-10-18_2026-10-18T14-03-11-520311.log"

    def test_rotated_segment_path_collision(self, tmp_path: Path) -> None:
        """A taken stamp, plain or compressed, gets a counter."""
        active = tmp_path / "app_2026-10-18.log"
        (tmp_path / "app_2026-10-18_2026-10-18T14-03-11-520311.log").touch()
        (tmp_path / "app_2026-10-18_2026-10-18T14-03-11-520311_0001.log.gz").touch()
        rotated = rotated_segment_path(active, STAMP)
        assert rotated.name == "app_2026-10-18_2026-10-18T14-03-11-520311_0002.log"

    @pytest.mark.parametrize(
        "name",
        [
            "app_2026-10-18.log",
            "app_2026-10-18_2026-10-18T14-03-11-520311.log",
            "app_2026-10-18_2026-10-18T14-03-11-520311.log.gz",
            "app_2026-10-18_2026-10-18T14-03-11-520311_0003.log",
        ],
    )
    def test_pattern_matches_segments(self, name: str) -> None:
        """Every segment form of the stream matches."""
        assert segment_name_pattern("app").match(name)

    @pytest.mark.parametrize(
        "name",
        [
            "app_x_2026-10-18.log",
            "other_2026-10-18.log",
            "app_2026-10-18.txt",
            "app.log",
            "app_2026-10-18.log.tmp",
        ],
    )
    def test_pattern_rejects_foreign_files(self, name: str) -> None:
        """Other prefixes and unrelated files do not match."""
        assert not segment_name_pattern("app").match(name)

    def test_pattern_escapes_prefix(self) -> None:
        """Regex characters in the prefix are literal."""
        pattern = segment_name_pattern("a.b")
        assert pattern.match("a.b_2026-10-18.log")
        assert not pattern.match("axb_2026-10-18.log")


class TestSegmentWriter:
    """Tests for SegmentWriter."""

    def test_append_creates_file_and_tracks_size(self, tmp_path: Path) -> None:
        """Appending creates the file and grows current_size."""
        path = tmp_path / "app_2026-10-18.log"
        writer = SegmentWriter()
        writer.open_new(path)
        assert writer.is_open
        assert writer.current_size() == 0

        assert writer.append(b"one\n") == 4
        assert writer.append(b"two\n") == 4
        assert writer.current_size() == 8
        # Flushed on every append
        assert path.read_bytes() == b"one\ntwo\n"
        writer.close_active()
        assert not writer.is_open

    def test_open_existing_appends(self, tmp_path: Path) -> None:
        """Opening an existing segment keeps its content and size."""
        path = tmp_path / "app_2026-10-18.log"
        path.write_bytes(b"existing\n")
        writer = SegmentWriter()
        writer.open_new(path)
        assert writer.current_size() == 9
        writer.append(b"more\n")
        writer.close_active()
        assert path.read_bytes() == b"existing\nmore\n"

    def test_append_without_segment(self) -> None:
        """Appending with nothing open raises SegmentWriteError."""
        with pytest.raises(SegmentWriteError):
            SegmentWriter().append(b"x\n")

    def test_close_keeps_path(self, tmp_path: Path) -> None:
        """The path survives a close so the segment can be reopened."""
        path = tmp_path / "app_2026-10-18.log"
        writer = SegmentWriter()
        writer.open_new(path)
        writer.close_active()
        writer.close_active()
        assert writer.path == path

    def test_open_failure_propagates(self, tmp_path: Path) -> None:
        """Opening inside a missing directory raises OSError."""
        writer = SegmentWriter()
        with pytest.raises(OSError):
            writer.open_new(tmp_path / "missing" / "app_2026-10-18.log")
        assert not writer.is_open

    def test_swap_finalizes_and_reopens(self, tmp_path: Path) -> None:
        """swap moves the active file aside and starts an empty one."""
        active = tmp_path / "app_2026-10-18.log"
        writer = SegmentWriter()
        writer.open_new(active)
        writer.append(b"first\n")

        finalized = tmp_path / "app_2026-10-18_2026-10-18T14-03-11-520311.log"
        assert writer.swap(finalized, active) == finalized
        assert finalized.read_bytes() == b"first\n"
        assert writer.path == active
        assert writer.current_size() == 0

        writer.append(b"second\n")
        writer.close_active()
        assert active.read_bytes() == b"second\n"

    def test_swap_to_new_day(self, tmp_path: Path) -> None:
        """swap can open a segment at a different path."""
        active = tmp_path / "app_2026-10-18.log"
        tomorrow = tmp_path / "app_2026-10-19.log"
        writer = SegmentWriter()
        writer.open_new(active)
        writer.swap(tmp_path / "app_2026-10-18_2026-10-19T00-00-00-000000.log", tomorrow)
        assert writer.path == tomorrow
        assert tomorrow.exists()
        assert not active.exists()
        writer.close_active()

    def test_swap_with_missing_active_file(self, tmp_path: Path) -> None:
        """Nothing is moved when the active file was removed externally."""
        active = tmp_path / "app_2026-10-18.log"
        writer = SegmentWriter()
        writer.open_new(active)
        writer.close_active()
        active.unlink()

        assert writer.swap(tmp_path / "app_2026-10-18_2026-10-18T14-03-11-520311.log", active) is None
        assert writer.is_open
        writer.close_active()
