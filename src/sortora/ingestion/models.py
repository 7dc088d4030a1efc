"""Descriptor models handed from the scanner to the organizer core."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class FileDescriptor(BaseModel):
    """Read-only description of one file plus enrichment metadata.

    Attributes:
        path: Absolute path of the file at scan time.
        filename: Final path component.
        extension: Lower-case extension without the leading dot.
        size: Size in bytes.
        created: Creation (or metadata change) timestamp.
        modified: Last modification timestamp.
        accessed: Last access timestamp.
        category: Coarse file category such as ``image`` or ``document``.
        metadata: Optional enrichment values (``date_taken``, ``artist``, ...).
        text_content: Optional extracted text used by content predicates.
    """

    model_config = ConfigDict(frozen=True)

    path: Path
    filename: str
    extension: str = ""
    size: int = 0
    created: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    modified: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    accessed: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    category: str = "other"
    metadata: Optional[Dict[str, Any]] = None
    text_content: Optional[str] = None

    @property
    def date_taken(self) -> Optional[datetime]:
        """Return the EXIF capture timestamp when the metadata carries one."""

        if not self.metadata:
            return None
        value = self.metadata.get("date_taken")
        return value if isinstance(value, datetime) else None


__all__ = ["FileDescriptor"]
