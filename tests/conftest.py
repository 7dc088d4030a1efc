"""Shared fixtures for the Sortora test suite."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

import pytest

from sortora.ingestion import FileDescriptor, category_for_extension
from sortora.state import OperationLog

DescriptorFactory = Callable[..., FileDescriptor]


@pytest.fixture()
def make_file() -> DescriptorFactory:
    """Return a factory that builds descriptors without touching the disk."""

    def _make(
        path: str | Path,
        *,
        modified: Optional[datetime] = None,
        accessed: Optional[datetime] = None,
        category: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
        text_content: Optional[str] = None,
    ) -> FileDescriptor:
        location = Path(path)
        extension = location.suffix.lower().lstrip(".")
        stamp = modified or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        return FileDescriptor(
            path=location,
            filename=location.name,
            extension=extension,
            created=stamp,
            modified=stamp,
            accessed=accessed or stamp,
            category=category or category_for_extension(extension),
            metadata=metadata,
            text_content=text_content,
        )

    return _make


@pytest.fixture()
def operation_log() -> Iterator[OperationLog]:
    """Provide a transient in-memory operation log."""

    log = OperationLog()
    yield log
    log.close()


@pytest.fixture()
def write_file(tmp_path: Path) -> Callable[..., Path]:
    """Return a helper that creates a file (and its parents) under ``tmp_path``."""

    def _write(relative: str, content: str = "data") -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write
