"""Tests for resync.content.marker — the marker file channel."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from resync._errors import MarkerError
from resync.content.marker import (
    MarkerFile,
    canonical_path,
    parse_marker_content,
    parse_marker_line,
)


def _bump_mtime(path: Path) -> None:
    """Force a strictly newer mtime regardless of filesystem granularity."""
    st = path.stat()
    os.utime(path, ns=(st.st_atime_ns, st.st_mtime_ns + 1_000_000_000))


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class TestParseMarkerLine:
    """parse_marker_line() — one raw line to a canonical path."""

    def test_absolute_path(self) -> None:
        assert parse_marker_line(b"/src/app.py") == "/src/app.py"

    def test_whitespace_and_cr_stripped(self) -> None:
        assert parse_marker_line(b"  /src/app.py\r") == "/src/app.py"

    def test_blank_line_is_none(self) -> None:
        assert parse_marker_line(b"   ") is None

    def test_normalizes_dot_segments(self) -> None:
        assert parse_marker_line(b"/src/./lib/../app.py") == "/src/app.py"

    def test_expands_home(self) -> None:
        assert parse_marker_line(b"~/notes.txt") == os.path.expanduser("~/notes.txt")

    def test_relative_path_rejected(self) -> None:
        with pytest.raises(MarkerError, match="not an absolute path"):
            parse_marker_line(b"src/app.py")

    def test_undecodable_rejected(self) -> None:
        with pytest.raises(MarkerError, match="undecodable"):
            parse_marker_line(b"/src/\xff.py")

    def test_control_characters_rejected(self) -> None:
        with pytest.raises(MarkerError, match="control"):
            parse_marker_line(b"/src/a\x00b.py")


class TestParseMarkerContent:
    """parse_marker_content() — skip bad lines, keep good ones."""

    def test_mixed_line_endings(self) -> None:
        assert parse_marker_content(b"/a\r\n/b\n/c") == ["/a", "/b", "/c"]

    def test_malformed_lines_skipped_individually(self, capsys: pytest.CaptureFixture[str]) -> None:
        paths = parse_marker_content(b"/a\nrelative\n/b\n")
        assert paths == ["/a", "/b"]
        assert "Marker skipped" in capsys.readouterr().err

    def test_duplicates_kept(self) -> None:
        assert parse_marker_content(b"/a\n/a\n") == ["/a", "/a"]

    def test_canonical_path_is_absolute(self) -> None:
        assert os.path.isabs(canonical_path("relative/file.txt"))


# ---------------------------------------------------------------------------
# MarkerFile
# ---------------------------------------------------------------------------


class TestMarkerFile:
    """MarkerFile — read, truncate, and append."""

    def test_ensure_exists_creates_file_and_parent(self, tmp_path: Path) -> None:
        marker = MarkerFile(tmp_path / "cache" / "changes")
        marker.ensure_exists()
        assert marker.path.is_file()
        assert marker.path.read_bytes() == b""

    def test_poll_reads_and_truncates(self, tmp_path: Path) -> None:
        marker = MarkerFile(tmp_path / "changes")
        marker.ensure_exists()
        marker.path.write_text("/a\n/b\n")
        _bump_mtime(marker.path)

        assert marker.poll() == ["/a", "/b"]
        assert marker.path.read_bytes() == b""

    def test_poll_ignores_unchanged_mtime(self, tmp_path: Path) -> None:
        marker = MarkerFile(tmp_path / "changes")
        marker.path.write_text("/a\n")
        marker.ensure_exists()
        # Content predating the engine is not reported until a new write.
        assert marker.poll() == []

    def test_poll_missing_file(self, tmp_path: Path) -> None:
        assert MarkerFile(tmp_path / "absent").poll() == []

    def test_own_truncation_not_reported(self, tmp_path: Path) -> None:
        marker = MarkerFile(tmp_path / "changes")
        marker.ensure_exists()
        marker.path.write_text("/a\n")
        _bump_mtime(marker.path)
        assert marker.poll() == ["/a"]
        assert marker.poll() == []

    def test_consume_empty(self, tmp_path: Path) -> None:
        marker = MarkerFile(tmp_path / "changes")
        marker.ensure_exists()
        assert marker.consume() == []

    def test_append_canonicalizes(self, tmp_path: Path) -> None:
        marker = MarkerFile(tmp_path / "changes")
        marker.append(["/x/./y.py", "/z.py"])
        assert marker.path.read_text() == "/x/y.py\n/z.py\n"
