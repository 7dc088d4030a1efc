"""Errors raised by the organization primitives.

The executor converts these into structured results; callers of
:mod:`sortora.organization.fs` see them directly.
"""

from __future__ import annotations


class OrganizationError(Exception):
    """Base exception for filesystem organization failures."""

    kind = "io"


class SourceNotFoundError(OrganizationError):
    """Raised when the source path is missing."""

    kind = "not_found"


class DestinationConflictError(OrganizationError):
    """Raised when a destination exists and the conflict policy forbids renaming."""

    kind = "conflict"


class CrossDeviceError(OrganizationError):
    """Raised when a rename crosses filesystems; recovered by copying."""

    kind = "cross_device"


class FilesystemError(OrganizationError):
    """Raised for permission, disk-full, and other OS level failures."""

    kind = "io"


class UndoError(OrganizationError):
    """Raised when a logged operation cannot be reversed."""

    kind = "unrecoverable"


__all__ = [
    "OrganizationError",
    "SourceNotFoundError",
    "DestinationConflictError",
    "CrossDeviceError",
    "FilesystemError",
    "UndoError",
]
