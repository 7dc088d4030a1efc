"""Reverse operations recorded in the operation log."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from sortora.state import OperationLogStore, OperationRecord, OperationType, StateError

from . import fs
from .errors import DestinationConflictError, OrganizationError, SourceNotFoundError, UndoError
from .locks import PathLockManager
from .models import UndoResult

LOGGER = logging.getLogger(__name__)


class UndoEngine:
    """Undo logged operations exactly once.

    Each record is re-read after its locks are held, so two concurrent undo
    requests for the same id cannot both succeed; the store's conditional
    ``mark_undone`` backs this up.

    Args:
        log: Operation log store shared with the executor.
        locks: Lock manager shared with the executor.
    """

    def __init__(self, log: OperationLogStore, *, locks: PathLockManager | None = None) -> None:
        self._log = log
        self._locks = locks or PathLockManager()
        self._handlers: Dict[OperationType, Callable[[OperationRecord], None]] = {
            OperationType.MOVE: self._undo_relocation,
            OperationType.RENAME: self._undo_relocation,
            OperationType.COPY: self._undo_copy,
            OperationType.DELETE: self._undo_delete,
            OperationType.ARCHIVE: self._undo_archive,
        }

    async def undo(self, operation_id: int) -> UndoResult:
        """Reverse the operation with ``operation_id``.

        Returns:
            UndoResult: Failure (without any mutation) when the record is
            missing, already undone, or cannot be reversed.
        """

        record = await asyncio.to_thread(self._log.get, operation_id)
        if record is None:
            return self._failed(operation_id, None, f"Operation #{operation_id} not found", "not_found")
        if record.is_undone:
            return self._failed(operation_id, record.type, "Operation already undone", "already_undone")

        async with self._locks.hold(*_lock_paths(record)):
            current = await asyncio.to_thread(self._log.get, operation_id)
            if current is None or current.is_undone:
                return self._failed(
                    operation_id, record.type, "Operation already undone", "already_undone"
                )
            try:
                await asyncio.to_thread(self._handlers[current.type], current)
            except OrganizationError as exc:
                return self._failed(operation_id, current.type, str(exc), exc.kind)
            except OSError as exc:
                return self._failed(operation_id, current.type, str(exc), "io")
            except StateError as exc:
                return self._failed(operation_id, current.type, str(exc), "log")

            try:
                marked = await asyncio.to_thread(self._log.mark_undone, operation_id)
            except StateError as exc:
                return self._failed(operation_id, current.type, str(exc), "log")
            if not marked:
                return self._failed(
                    operation_id, current.type, "Operation already undone", "already_undone"
                )

        LOGGER.info("Undid %s operation #%d (%s)", current.type.value, operation_id, current.source)
        return UndoResult(success=True, operation_id=operation_id, type=current.type)

    async def undo_last(self) -> Optional[UndoResult]:
        """Undo the most recent operation that has not been undone yet."""

        record = await asyncio.to_thread(self._log.last_undoable)
        if record is None:
            return None
        return await self.undo(record.id)

    async def undo_multiple(self, operation_ids: Iterable[int]) -> List[UndoResult]:
        """Undo several operations, newest first, continuing past failures."""

        results = []
        for operation_id in sorted(set(operation_ids), reverse=True):
            results.append(await self.undo(operation_id))
        return results

    def undoable(self, limit: int = 50) -> List[OperationRecord]:
        """Return operations that can still be undone, newest first."""

        return self._log.list_undoable(limit)

    # Handlers (run in a worker thread while locks are held) -------------

    def _undo_relocation(self, record: OperationRecord) -> None:
        source = Path(record.source)
        destination = _recorded_destination(record)
        if not destination.exists():
            raise SourceNotFoundError(f"Moved file no longer exists: {destination}")
        _require_free(source)
        fs.ensure_dir(source.parent)
        fs.move_file(destination, source)
        self._log.update_path_references(destination, source)

    def _undo_copy(self, record: OperationRecord) -> None:
        destination = _recorded_destination(record)
        if destination.exists():
            fs.remove_file(destination)
        else:
            LOGGER.debug("Copy %s already removed", destination)
        self._log.remove_path_reference(destination)

    def _undo_delete(self, record: OperationRecord) -> None:
        if record.destination is None:
            raise UndoError(f"{record.source} was permanently deleted and cannot be restored")
        trashed = Path(record.destination)
        if not trashed.exists():
            raise UndoError(f"Trashed file no longer exists: {trashed}")
        source = Path(record.source)
        _require_free(source)
        fs.ensure_dir(source.parent)
        fs.move_file(trashed, source)
        self._log.update_path_references(trashed, source)

    def _undo_archive(self, record: OperationRecord) -> None:
        source = Path(record.source)
        artifact = _recorded_destination(record)
        if not artifact.exists():
            LOGGER.debug("Archive artifact %s already gone", artifact)
            return
        if not record.compressed:
            self._undo_relocation(record)
            return
        if source.exists():
            fs.remove_file(artifact)
            return
        raise UndoError(
            f"{source} was compressed into {artifact} and removed; restore it manually"
        )

    def _failed(
        self,
        operation_id: int,
        op_type: Optional[OperationType],
        message: str,
        kind: str,
    ) -> UndoResult:
        LOGGER.warning("Undo of operation #%d failed (%s): %s", operation_id, kind, message)
        return UndoResult(
            success=False, operation_id=operation_id, type=op_type, error=message, error_kind=kind
        )


def _lock_paths(record: OperationRecord) -> List[str]:
    # Same order as the executor (source, then destination).
    paths = [] if record.type is OperationType.COPY else [record.source]
    if record.destination:
        paths.append(record.destination)
    return paths


def _recorded_destination(record: OperationRecord) -> Path:
    if record.destination is None:
        raise UndoError(f"Operation #{record.id} has no recorded destination")
    return Path(record.destination)


def _require_free(path: Path) -> None:
    if path.exists():
        raise DestinationConflictError(f"Original path is occupied: {path}")


__all__ = ["UndoEngine"]
