"""Destination resolution, suggestions, and reversible file actions."""

from .errors import (
    CrossDeviceError,
    DestinationConflictError,
    FilesystemError,
    OrganizationError,
    SourceNotFoundError,
    UndoError,
)
from .executor import ActionExecutor
from .filename_analyzer import FilenameAnalysis, analyze_filename, suggest_group_folder
from .locks import PathLock, PathLockManager
from .models import (
    ExecutionResult,
    OperationState,
    Suggestion,
    SuggestionAction,
    SuggestionFilter,
    UndoResult,
)
from .resolver import DestinationResolver, ResolutionMode, interpolate_path
from .suggester import (
    SuggestionBuilder,
    explain_suggestion,
    filter_suggestions,
    group_by_action,
    group_by_destination,
)
from .undo import UndoEngine

__all__ = [
    "ActionExecutor",
    "CrossDeviceError",
    "DestinationConflictError",
    "DestinationResolver",
    "ExecutionResult",
    "FilenameAnalysis",
    "FilesystemError",
    "OperationState",
    "OrganizationError",
    "PathLock",
    "PathLockManager",
    "ResolutionMode",
    "SourceNotFoundError",
    "Suggestion",
    "SuggestionAction",
    "SuggestionBuilder",
    "SuggestionFilter",
    "UndoEngine",
    "UndoError",
    "UndoResult",
    "analyze_filename",
    "explain_suggestion",
    "filter_suggestions",
    "group_by_action",
    "group_by_destination",
    "interpolate_path",
    "suggest_group_folder",
]
