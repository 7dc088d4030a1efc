"""Blocking filesystem primitives used by the executor and undo engine.

Every function here is synchronous; the async callers run them through
``asyncio.to_thread``. OS errors are translated into the
:mod:`sortora.organization.errors` taxonomy.
"""

from __future__ import annotations

import errno
import gzip
import logging
import os
import platform
import re
import shutil
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Literal, Optional

from .errors import (
    CrossDeviceError,
    DestinationConflictError,
    FilesystemError,
    SourceNotFoundError,
)

LOGGER = logging.getLogger(__name__)

ConflictStrategy = Literal["append_number", "timestamp", "fail"]

GZIP_SUFFIX = ".gz"
PARTIAL_SUFFIX = ".sortora-partial"
_TRASH_NAME_PATTERN = re.compile(r"^(\d+)-(.+)$")
_COPY_CHUNK_SIZE = 1024 * 1024


def ensure_dir(path: Path) -> None:
    """Create ``path`` and its parents if needed."""

    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemError(f"Unable to create directory {path}: {exc}") from exc


def require_source(path: Path) -> None:
    """Raise :class:`SourceNotFoundError` unless ``path`` exists."""

    if not path.exists():
        raise SourceNotFoundError(f"Source does not exist: {path}")


def unique_path(
    path: Path,
    strategy: ConflictStrategy = "append_number",
    *,
    clock: Callable[[], datetime] | None = None,
) -> Path:
    """Return a destination that does not collide with an existing entry.

    Args:
        path: Desired destination.
        strategy: ``append_number`` yields ``name (1).ext``, ``timestamp``
            yields ``name-YYYYmmdd-HHMMSS.ext``, ``fail`` refuses.
        clock: Optional time source for the timestamp strategy.

    Returns:
        Path: ``path`` itself when free, otherwise a free variant.

    Raises:
        DestinationConflictError: If the path exists and ``strategy`` is ``fail``.
    """

    if not path.exists():
        return path
    if strategy == "fail":
        raise DestinationConflictError(f"Destination already exists: {path}")

    base = path
    if strategy == "timestamp":
        now = (clock or (lambda: datetime.now(timezone.utc)))()
        base = path.with_name(f"{path.stem}-{now:%Y%m%d-%H%M%S}{path.suffix}")
        if not base.exists():
            return base

    counter = 1
    while True:
        candidate = base.with_name(f"{base.stem} ({counter}){base.suffix}")
        if not candidate.exists():
            return candidate
        counter += 1


def move_file(source: Path, destination: Path) -> Path:
    """Move ``source`` to ``destination``, falling back to copy across devices.

    The destination parent must already exist and ``destination`` must be
    free. The source is only removed once the copy has been synced and
    renamed into place.

    Returns:
        Path: The final destination.
    """

    require_source(source)
    try:
        _rename(source, destination)
    except CrossDeviceError:
        LOGGER.debug("Cross-device move %s -> %s; copying instead", source, destination)
        _copy_then_unlink(source, destination)
    return destination


def copy_file(source: Path, destination: Path) -> Path:
    """Copy ``source`` to ``destination`` preserving metadata."""

    require_source(source)
    try:
        shutil.copy2(source, destination)
    except OSError as exc:
        raise FilesystemError(f"Unable to copy {source} to {destination}: {exc}") from exc
    return destination


def compress_file(source: Path, destination: Path) -> Path:
    """Stream-compress ``source`` into a gzip file at ``destination``.

    The archive is written to a hidden partial file and renamed into place,
    so a failure never leaves a truncated archive under the final name.
    """

    require_source(source)
    partial = _partial_path(destination)
    try:
        with source.open("rb") as reader, partial.open("wb") as raw, gzip.GzipFile(
            filename=destination.name, mode="wb", fileobj=raw
        ) as writer:
            shutil.copyfileobj(reader, writer, _COPY_CHUNK_SIZE)
        _fsync(partial)
        os.replace(partial, destination)
    except OSError as exc:
        _discard(partial)
        raise FilesystemError(f"Unable to compress {source} into {destination}: {exc}") from exc
    return destination


def with_gzip_suffix(path: Path, source_name: str) -> Path:
    """Return the archive path for compressing a file named ``source_name``.

    ``.gz`` is always appended unless ``path`` is already named
    ``<source_name>.gz``, so a source that is itself ``.gz`` becomes ``.gz.gz``.
    """

    if path.name == source_name + GZIP_SUFFIX:
        return path
    return path.with_name(path.name + GZIP_SUFFIX)


def remove_file(path: Path) -> None:
    """Permanently delete ``path``."""

    try:
        path.unlink()
    except FileNotFoundError as exc:
        raise SourceNotFoundError(f"Source does not exist: {path}") from exc
    except OSError as exc:
        raise FilesystemError(f"Unable to delete {path}: {exc}") from exc


# Trash ------------------------------------------------------------------


@dataclass(frozen=True)
class TrashEntry:
    """File found in a trash directory.

    Attributes:
        path: Location inside the trash directory.
        original_name: Name before deletion, parsed from the entry prefix.
        deleted_at: Deletion time (prefix timestamp, else mtime).
        size: Size in bytes.
    """

    path: Path
    original_name: str
    deleted_at: datetime
    size: int


@dataclass
class TrashPurge:
    """Outcome of :func:`empty_trash`."""

    deleted: int = 0
    errors: list[str] = field(default_factory=list)


def default_trash_dir() -> Path:
    """Return the platform trash directory."""

    system = platform.system()
    if system == "Darwin":
        return Path.home() / ".Trash"
    if system == "Linux":
        data_home = os.environ.get("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
        return Path(data_home) / "Trash" / "files"
    return Path.home() / ".sortora-trash"


def trash_name(name: str, *, now: datetime | None = None) -> str:
    """Return the ``<epoch-ms>-<name>`` entry name used inside the trash."""

    moment = now or datetime.now(timezone.utc)
    return f"{int(moment.timestamp() * 1000)}-{name}"


def move_to_trash(source: Path, trash_dir: Path) -> Path:
    """Move ``source`` into ``trash_dir`` under a collision-free name."""

    require_source(source)
    ensure_dir(trash_dir)
    target = unique_path(trash_dir / trash_name(source.name))
    return move_file(source, target)


def list_trash(trash_dir: Path) -> list[TrashEntry]:
    """Return trash entries newest first; unreadable entries are skipped."""

    if not trash_dir.exists():
        return []
    entries: list[TrashEntry] = []
    for child in trash_dir.iterdir():
        try:
            stats = child.stat()
        except OSError as exc:
            LOGGER.debug("Skipping unreadable trash entry %s: %s", child, exc)
            continue
        match = _TRASH_NAME_PATTERN.match(child.name)
        if match:
            deleted_at = datetime.fromtimestamp(int(match.group(1)) / 1000, tz=timezone.utc)
            original = match.group(2)
        else:
            deleted_at = datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc)
            original = child.name
        entries.append(
            TrashEntry(path=child, original_name=original, deleted_at=deleted_at, size=stats.st_size)
        )
    entries.sort(key=lambda entry: entry.deleted_at, reverse=True)
    return entries


def empty_trash(trash_dir: Path) -> TrashPurge:
    """Permanently delete every file in ``trash_dir``."""

    purge = TrashPurge()
    if not trash_dir.exists():
        return purge
    for child in trash_dir.iterdir():
        try:
            if child.is_dir() and not child.is_symlink():
                shutil.rmtree(child)
            else:
                child.unlink()
            purge.deleted += 1
        except OSError as exc:
            purge.errors.append(f"{child.name}: {exc}")
    return purge


# Internal helpers -------------------------------------------------------


def _rename(source: Path, destination: Path) -> None:
    try:
        os.rename(source, destination)
    except FileNotFoundError as exc:
        if not source.exists():
            raise SourceNotFoundError(f"Source does not exist: {source}") from exc
        raise FilesystemError(f"Unable to move {source} to {destination}: {exc}") from exc
    except OSError as exc:
        if exc.errno == errno.EXDEV:
            raise CrossDeviceError(str(exc)) from exc
        raise FilesystemError(f"Unable to move {source} to {destination}: {exc}") from exc


def _copy_then_unlink(source: Path, destination: Path) -> None:
    partial = _partial_path(destination)
    try:
        shutil.copy2(source, partial)
        _fsync(partial)
        os.replace(partial, destination)
        _fsync_dir(destination.parent)
    except OSError as exc:
        _discard(partial)
        raise FilesystemError(f"Unable to copy {source} to {destination}: {exc}") from exc

    try:
        os.unlink(source)
    except OSError as exc:
        raise FilesystemError(
            f"Copied {source} to {destination} but could not remove the source: {exc}"
        ) from exc


def _partial_path(destination: Path) -> Path:
    return destination.with_name(f".{destination.name}{PARTIAL_SUFFIX}")


def _fsync(path: Path) -> None:
    with path.open("rb+") as handle:
        os.fsync(handle.fileno())


def _fsync_dir(path: Path) -> None:
    if os.name != "posix":
        return
    fd = os.open(path, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        LOGGER.warning("Unable to remove partial file %s: %s", path, exc)


__all__ = [
    "ConflictStrategy",
    "GZIP_SUFFIX",
    "TrashEntry",
    "TrashPurge",
    "compress_file",
    "copy_file",
    "default_trash_dir",
    "empty_trash",
    "ensure_dir",
    "list_trash",
    "move_file",
    "move_to_trash",
    "remove_file",
    "require_source",
    "trash_name",
    "unique_path",
    "with_gzip_suffix",
]
