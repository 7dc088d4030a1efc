"""Configuration models describing Sortora settings."""

from __future__ import annotations

import platform
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from sortora.rules.models import Rule


class SortoraBaseModel(BaseModel):
    """Shared configuration for Sortora Pydantic models."""

    model_config = ConfigDict(extra="forbid")


def _default_trash_path() -> str:
    system = platform.system()
    if system == "Darwin":
        return "~/.Trash"
    if system == "Windows":
        return "~/.sortora-trash"
    return "~/.local/share/Trash/files"


def _default_destinations() -> Dict[str, str]:
    return {
        "photos": "~/Pictures/Sorted",
        "screenshots": "~/Pictures/Screenshots",
        "documents": "~/Documents/Sorted",
        "work": "~/Documents/Work",
        "finance": "~/Documents/Finance",
        "code": "~/Projects",
        "music": "~/Music/Sorted",
        "video": "~/Videos/Sorted",
        "archives": "~/Archives",
        "trash": _default_trash_path(),
    }


class GeneralSettings(SortoraBaseModel):
    """General behavior of the organize workflow.

    Attributes:
        mode: ``suggest`` previews changes, ``auto`` applies unconfirmed suggestions.
        confirm_destructive: Whether deletes always require confirmation.
        ignore_hidden: Whether hidden files are skipped by the scanner.
        ignore_patterns: Filename globs the scanner never reports.
    """

    mode: Literal["suggest", "auto"] = "suggest"
    confirm_destructive: bool = True
    ignore_hidden: bool = True
    ignore_patterns: List[str] = Field(
        default_factory=lambda: ["*.tmp", "*.crdownload", ".DS_Store", "Thumbs.db", "desktop.ini"]
    )


class OrganizationOptions(SortoraBaseModel):
    """Settings that govern how suggestions are executed.

    Attributes:
        conflict_resolution: Strategy used when a destination already exists.
        use_trash: Whether deletes go to the trash instead of being permanent.
        compress_archives: Whether archive actions gzip the file.
        delete_archived_originals: Whether the original is removed after compression.
        parallel: Number of suggestions executed concurrently per batch.
        stop_on_error: Whether a batch run stops after the first failure.
        min_confidence: Minimum confidence for suggestions applied without a prompt.
    """

    conflict_resolution: Literal["append_number", "timestamp", "fail"] = "append_number"
    use_trash: bool = True
    compress_archives: bool = False
    delete_archived_originals: bool = True
    parallel: int = Field(default=1, ge=1)
    stop_on_error: bool = False
    min_confidence: float = Field(default=0.8, ge=0.0, le=1.0)


class LoggingSettings(SortoraBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        file: Optional log file path; rotation applies when set.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    file: Optional[str] = None
    max_size_mb: int = 10
    backup_count: int = 3


class CLIOptions(SortoraBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
        history_limit: Default number of operations shown by ``history``.
    """

    quiet_default: bool = False
    summary_default: bool = False
    history_limit: int = 20


class StorageSettings(SortoraBaseModel):
    """Location of the durable operation log."""

    database_path: str = "~/.local/share/sortora/sortora.db"


class SortoraConfig(SortoraBaseModel):
    """Top-level configuration struct for Sortora.

    Attributes:
        settings: General organize behavior.
        destinations: Named destination aliases available to rule templates.
        rules: User-defined rules evaluated alongside the built-in defaults.
        organization: Execution settings.
        logging: Logging configuration.
        cli: CLI presentation defaults.
        storage: Operation log location.
    """

    settings: GeneralSettings = Field(default_factory=GeneralSettings)
    destinations: Dict[str, str] = Field(default_factory=_default_destinations)
    rules: List[Rule] = Field(default_factory=list)
    organization: OrganizationOptions = Field(default_factory=OrganizationOptions)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)
    storage: StorageSettings = Field(default_factory=StorageSettings)


__all__ = [
    "SortoraBaseModel",
    "GeneralSettings",
    "OrganizationOptions",
    "LoggingSettings",
    "CLIOptions",
    "StorageSettings",
    "SortoraConfig",
]
