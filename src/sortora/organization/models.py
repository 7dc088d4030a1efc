"""Suggestion and execution result models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Set

from pydantic import BaseModel, ConfigDict, Field

from sortora.ingestion.models import FileDescriptor
from sortora.state.models import OperationType


class SuggestionAction(str, Enum):
    """Actions a suggestion can propose."""

    MOVE = "move"
    COPY = "copy"
    DELETE = "delete"
    ARCHIVE = "archive"


class OperationState(str, Enum):
    """Lifecycle of a single executor operation."""

    REQUESTED = "requested"
    IN_PROGRESS = "in_progress"
    COMMITTED = "committed"
    FAILED = "failed"


class Suggestion(BaseModel):
    """Proposed, not yet applied action for one file.

    Attributes:
        file: File the suggestion applies to.
        destination: Full target path; None for deletes.
        rule_name: Rule that produced the suggestion.
        confidence: Match confidence in [0, 1].
        action: Proposed action.
        requires_confirmation: Whether the caller must approve before executing.
    """

    model_config = ConfigDict(frozen=True)

    file: FileDescriptor
    destination: Optional[Path] = None
    rule_name: str
    confidence: float = Field(ge=0.0, le=1.0)
    action: SuggestionAction
    requires_confirmation: bool = False


class SuggestionFilter(BaseModel):
    """Criteria applied by ``filter_suggestions``.

    Attributes:
        min_confidence: Suggestions below this confidence are dropped.
        actions: Allowed actions; None allows all.
        categories: Allowed file categories; None allows all.
        exclude_confirmation: Drop suggestions that need confirmation.
    """

    min_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    actions: Optional[Set[SuggestionAction]] = None
    categories: Optional[Set[str]] = None
    exclude_confirmation: bool = False


@dataclass(slots=True)
class ExecutionResult:
    """Outcome of one executor operation.

    Attributes:
        success: Whether the operation committed.
        state: Terminal state (``COMMITTED`` or ``FAILED``).
        source: Path the operation acted on.
        operation_id: Log record id when committed.
        final_path: Where the file ended up (trash path for trashed deletes).
        error: Human-readable failure reason.
        error_kind: Failure taxonomy tag such as ``not_found`` or ``io``.
    """

    success: bool
    state: OperationState
    source: Path
    operation_id: Optional[int] = None
    final_path: Optional[Path] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-ready representation."""

        return {
            "success": self.success,
            "state": self.state.value,
            "source": str(self.source),
            "operation_id": self.operation_id,
            "final_path": str(self.final_path) if self.final_path else None,
            "error": self.error,
            "error_kind": self.error_kind,
        }


@dataclass(slots=True)
class UndoResult:
    """Outcome of reversing one logged operation."""

    success: bool
    operation_id: int
    type: Optional[OperationType] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-ready representation."""

        return {
            "success": self.success,
            "operation_id": self.operation_id,
            "type": self.type.value if self.type else None,
            "error": self.error,
            "error_kind": self.error_kind,
        }


__all__ = [
    "ExecutionResult",
    "OperationState",
    "Suggestion",
    "SuggestionAction",
    "SuggestionFilter",
    "UndoResult",
]
