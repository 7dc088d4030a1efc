"""Tests for blocking filesystem helpers and trash management."""

from __future__ import annotations

import errno
import gzip
from datetime import datetime, timezone
from pathlib import Path

import pytest

from sortora.organization import fs
from sortora.organization.errors import (
    DestinationConflictError,
    FilesystemError,
    SourceNotFoundError,
)


def _exdev_rename(source, destination):
    raise OSError(errno.EXDEV, "Invalid cross-device link")


def test_unique_path_strategies(tmp_path: Path) -> None:
    target = tmp_path / "report.pdf"
    assert fs.unique_path(target) == target

    target.write_text("x")
    (tmp_path / "report (1).pdf").write_text("x")
    assert fs.unique_path(target) == tmp_path / "report (2).pdf"

    clock = lambda: datetime(2024, 3, 5, 14, 7, 9, tzinfo=timezone.utc)  # noqa: E731
    assert fs.unique_path(target, "timestamp", clock=clock) == (
        tmp_path / "report-20240305-140709.pdf"
    )

    with pytest.raises(DestinationConflictError):
        fs.unique_path(target, "fail")


def test_move_file_renames_in_place(tmp_path: Path) -> None:
    source = tmp_path / "a.txt"
    source.write_text("payload")
    destination = tmp_path / "b.txt"

    assert fs.move_file(source, destination) == destination
    assert not source.exists()
    assert destination.read_text() == "payload"


def test_move_file_missing_source(tmp_path: Path) -> None:
    with pytest.raises(SourceNotFoundError):
        fs.move_file(tmp_path / "missing.txt", tmp_path / "b.txt")


def test_cross_device_move_copies_then_unlinks(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    source = tmp_path / "a.txt"
    source.write_text("payload")
    destination = tmp_path / "other" / "a.txt"
    destination.parent.mkdir()
    monkeypatch.setattr(fs.os, "rename", _exdev_rename)

    fs.move_file(source, destination)

    assert not source.exists()
    assert destination.read_text() == "payload"
    assert list(destination.parent.iterdir()) == [destination]


def test_cross_device_copy_failure_keeps_source(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    source = tmp_path / "a.txt"
    source.write_text("payload")
    destination = tmp_path / "other" / "a.txt"
    destination.parent.mkdir()
    monkeypatch.setattr(fs.os, "rename", _exdev_rename)

    def _failing_replace(src, dst):
        raise OSError(errno.ENOSPC, "No space left on device")

    monkeypatch.setattr(fs.os, "replace", _failing_replace)

    with pytest.raises(FilesystemError):
        fs.move_file(source, destination)

    assert source.read_text() == "payload"
    assert list(destination.parent.iterdir()) == []


def test_copy_file_preserves_source(tmp_path: Path) -> None:
    source = tmp_path / "a.txt"
    source.write_text("payload")

    fs.copy_file(source, tmp_path / "b.txt")

    assert source.read_text() == "payload"
    assert (tmp_path / "b.txt").read_text() == "payload"


def test_compress_file_writes_gzip(tmp_path: Path) -> None:
    source = tmp_path / "app.log"
    source.write_text("line\n" * 100)
    target = fs.with_gzip_suffix(tmp_path / "archive" / "app.log", source.name)
    target.parent.mkdir()

    fs.compress_file(source, target)

    assert target.name == "app.log.gz"
    with gzip.open(target, "rt") as handle:
        assert handle.read() == "line\n" * 100
    assert source.exists()
    assert fs.with_gzip_suffix(target, source.name) == target
    # FNAME header field: flag bit 3, name starts after the 10-byte header.
    header = target.read_bytes()
    assert header[3] & 0x08
    assert header[10:].split(b"\0", 1)[0] == b"app.log"


def test_gzip_suffix_is_always_appended_for_gzip_sources(tmp_path: Path) -> None:
    assert fs.with_gzip_suffix(tmp_path / "notes.gz", "notes.gz") == tmp_path / "notes.gz.gz"
    assert fs.with_gzip_suffix(tmp_path / "notes.gz.gz", "notes.gz") == tmp_path / "notes.gz.gz"
    assert fs.with_gzip_suffix(tmp_path / "bundle", "report.txt") == tmp_path / "bundle.gz"


def test_remove_file(tmp_path: Path) -> None:
    path = tmp_path / "a.txt"
    path.write_text("x")

    fs.remove_file(path)

    assert not path.exists()
    with pytest.raises(SourceNotFoundError):
        fs.remove_file(path)


def test_move_to_trash_and_list(tmp_path: Path) -> None:
    trash = tmp_path / "trash"
    first = tmp_path / "a.txt"
    second = tmp_path / "b.txt"
    first.write_text("a")
    second.write_text("bb")

    trashed_first = fs.move_to_trash(first, trash)
    trashed_second = fs.move_to_trash(second, trash)

    assert trashed_first.parent == trash
    assert trashed_first.name.endswith("-a.txt")
    entries = fs.list_trash(trash)
    assert {entry.original_name for entry in entries} == {"a.txt", "b.txt"}
    assert {entry.path for entry in entries} == {trashed_first, trashed_second}
    assert entries[0].deleted_at >= entries[1].deleted_at


def test_trash_name_uses_millisecond_prefix() -> None:
    moment = datetime(2024, 1, 1, tzinfo=timezone.utc)

    assert fs.trash_name("a.txt", now=moment) == f"{int(moment.timestamp() * 1000)}-a.txt"


def test_empty_trash(tmp_path: Path) -> None:
    trash = tmp_path / "trash"
    trash.mkdir()
    (trash / "1-a.txt").write_text("a")
    (trash / "nested").mkdir()
    (trash / "nested" / "b.txt").write_text("b")

    purge = fs.empty_trash(trash)

    assert purge.deleted == 2
    assert purge.errors == []
    assert list(trash.iterdir()) == []
    assert fs.empty_trash(tmp_path / "missing").deleted == 0


def test_default_trash_dir_follows_platform(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    monkeypatch.setattr(fs.platform, "system", lambda: "Linux")
    assert fs.default_trash_dir() == tmp_path / "data" / "Trash" / "files"
    monkeypatch.setattr(fs.platform, "system", lambda: "Darwin")
    assert fs.default_trash_dir() == tmp_path / ".Trash"
    monkeypatch.setattr(fs.platform, "system", lambda: "Windows")
    assert fs.default_trash_dir() == tmp_path / ".sortora-trash"
