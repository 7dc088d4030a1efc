"""File discovery utilities."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from .models import FileDescriptor

LOGGER = logging.getLogger(__name__)

_CATEGORY_EXTENSIONS: dict[str, tuple[str, ...]] = {
    "image": (
        "jpg", "jpeg", "png", "gif", "webp", "svg", "bmp", "tiff", "tif", "heic", "heif",
        "ico", "psd", "raw", "cr2", "nef", "arw", "dng",
    ),
    "document": (
        "pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx", "rtf", "txt", "md", "odt",
        "ods", "odp", "epub", "mobi", "fb2", "djvu", "pages", "numbers", "key", "csv",
    ),
    "audio": ("mp3", "wav", "ogg", "flac", "aac", "m4a", "mid", "midi", "wma", "opus"),
    "video": ("mp4", "mpeg", "mpg", "mov", "avi", "mkv", "webm", "flv", "3gp", "wmv", "m4v"),
    "code": (
        "js", "mjs", "cjs", "jsx", "ts", "tsx", "py", "pyw", "ipynb", "java", "c", "cpp",
        "h", "hpp", "go", "rs", "rb", "php", "swift", "kt", "scala", "cs", "vue", "svelte",
        "html", "css", "scss", "sass", "less", "sh", "bash", "zsh", "ps1", "json", "xml",
        "yaml", "yml", "toml", "ini", "env", "sql",
    ),
    "archive": ("zip", "rar", "7z", "tar", "gz", "tgz", "bz2", "xz"),
    "executable": ("exe", "msi", "dmg", "pkg", "deb", "rpm", "appimage", "app", "iso"),
    "data": ("db", "sqlite", "sqlite3", "parquet", "feather", "sav", "dat", "bak"),
}
EXTENSION_CATEGORIES = {
    extension: category
    for category, extensions in _CATEGORY_EXTENSIONS.items()
    for extension in extensions
}


def category_for_extension(extension: str) -> str:
    """Return the coarse category for ``extension`` (``other`` when unknown)."""

    return EXTENSION_CATEGORIES.get(extension.lower().lstrip("."), "other")


def _is_hidden(path: Path) -> bool:
    return any(part.startswith(".") for part in path.parts if part not in (".", ".."))


class DirectoryScanner:
    """Discover files within a directory and describe them from ``stat`` data.

    Args:
        recursive: Whether to descend into subdirectories.
        include_hidden: Whether dot-files and dot-directories are reported.
        ignore_patterns: Filename globs that are never reported.
    """

    def __init__(
        self,
        *,
        recursive: bool = False,
        include_hidden: bool = False,
        ignore_patterns: Sequence[str] = (),
    ) -> None:
        self.recursive = recursive
        self.include_hidden = include_hidden
        self.ignore_patterns = tuple(pattern.lower() for pattern in ignore_patterns)

    def scan(self, root: Path) -> Iterator[FileDescriptor]:
        """Yield descriptors for files under ``root`` respecting the filters."""
        root = root.expanduser().resolve()
        if not root.exists():
            LOGGER.warning("Scan root does not exist: %s", root)
            return

        for path in self._iter_paths(root):
            if not path.is_file():
                continue
            try:
                relative = path.relative_to(root)
            except ValueError:
                relative = Path(path.name)
            if not self.include_hidden and _is_hidden(relative):
                continue
            if self._ignored(path.name):
                continue
            try:
                stat = path.stat()
            except OSError as exc:
                LOGGER.debug("Skipping unreadable file %s: %s", path, exc)
                continue

            extension = path.suffix.lower().lstrip(".")
            yield FileDescriptor(
                path=path,
                filename=path.name,
                extension=extension,
                size=stat.st_size,
                created=datetime.fromtimestamp(stat.st_ctime, tz=timezone.utc),
                modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                accessed=datetime.fromtimestamp(stat.st_atime, tz=timezone.utc),
                category=category_for_extension(extension),
            )

    def _ignored(self, name: str) -> bool:
        lowered = name.lower()
        return any(fnmatchcase(lowered, pattern) for pattern in self.ignore_patterns)

    def _iter_paths(self, root: Path) -> Iterable[Path]:
        """Internal helper to iterate candidate paths."""
        if root.is_file():
            yield root
            return

        if self.recursive:
            yield from sorted(root.rglob("*"))
        else:
            yield from sorted(root.iterdir())


__all__ = ["DirectoryScanner", "EXTENSION_CATEGORIES", "category_for_extension"]
