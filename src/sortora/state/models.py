"""Operation log data models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class OperationType(str, Enum):
    """Closed set of actions recorded in the operation log."""

    MOVE = "move"
    COPY = "copy"
    DELETE = "delete"
    ARCHIVE = "archive"
    RENAME = "rename"


class OperationDraft(BaseModel):
    """Fields supplied by the executor when appending a record."""

    model_config = ConfigDict(frozen=True)

    type: OperationType
    source: str
    destination: Optional[str] = None
    rule_name: Optional[str] = None
    confidence: Optional[float] = None
    compressed: bool = False


class OperationRecord(OperationDraft):
    """Durable log entry describing one applied filesystem action.

    Attributes:
        id: Monotonically increasing identifier assigned by the store.
        created_at: When the action was committed.
        undone_at: When the action was reversed; set at most once.
    """

    id: int
    created_at: datetime
    undone_at: Optional[datetime] = None

    @property
    def is_undone(self) -> bool:
        """Return True once the record has been reversed."""

        return self.undone_at is not None


__all__ = ["OperationType", "OperationDraft", "OperationRecord"]
