"""Asynchronous, lock-guarded executor for organization actions."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Sequence

from sortora.config.models import OrganizationOptions
from sortora.state import OperationDraft, OperationLogStore, OperationRecord, OperationType, StateError

from . import fs
from .errors import DestinationConflictError, OrganizationError
from .locks import PathLockManager
from .models import ExecutionResult, OperationState, Suggestion, SuggestionAction

LOGGER = logging.getLogger(__name__)

_Apply = Callable[[], Optional[Path]]
_Track = Callable[[Optional[Path]], None]


def _expand(path: str | Path) -> Path:
    return Path(os.path.abspath(os.path.expanduser(str(path))))


class ActionExecutor:
    """Perform filesystem actions and record them in the operation log.

    Every public operation walks ``REQUESTED -> IN_PROGRESS -> COMMITTED``
    or ends in ``FAILED`` and reports a structured :class:`ExecutionResult`
    instead of raising. Locks are held until the log write completes.

    Args:
        log: Operation log store.
        locks: Shared lock manager; a private one is created when omitted.
        options: Execution settings (conflict policy, trash, archives).
        trash_dir: Trash directory for deletes; defaults to the platform trash.
    """

    def __init__(
        self,
        log: OperationLogStore,
        *,
        locks: PathLockManager | None = None,
        options: OrganizationOptions | None = None,
        trash_dir: Path | None = None,
    ) -> None:
        self._log = log
        self._locks = locks or PathLockManager()
        self._options = options or OrganizationOptions()
        self._trash_dir = _expand(trash_dir) if trash_dir else fs.default_trash_dir()
        self._handlers: Dict[SuggestionAction, Callable[[Suggestion], Awaitable[ExecutionResult]]] = {
            SuggestionAction.MOVE: self._execute_move,
            SuggestionAction.COPY: self._execute_copy,
            SuggestionAction.DELETE: self._execute_delete,
            SuggestionAction.ARCHIVE: self._execute_archive,
        }

    @property
    def locks(self) -> PathLockManager:
        return self._locks

    @property
    def trash_dir(self) -> Path:
        return self._trash_dir

    # Public operations --------------------------------------------------

    async def move(
        self,
        source: str | Path,
        destination: str | Path,
        *,
        rule_name: Optional[str] = None,
        confidence: Optional[float] = None,
    ) -> ExecutionResult:
        """Move ``source`` to ``destination``, renaming on conflict per policy."""

        return await self._relocate(
            OperationType.MOVE, _expand(source), _expand(destination), rule_name, confidence
        )

    async def copy(
        self,
        source: str | Path,
        destination: str | Path,
        *,
        rule_name: Optional[str] = None,
        confidence: Optional[float] = None,
    ) -> ExecutionResult:
        """Copy ``source`` to ``destination``; the source is left untouched."""

        source_path = _expand(source)
        destination_path = _expand(destination)

        def _apply() -> Path:
            _reject_same_path(source_path, destination_path)
            fs.require_source(source_path)
            fs.ensure_dir(destination_path.parent)
            target = fs.unique_path(destination_path, self._options.conflict_resolution)
            return fs.copy_file(source_path, target)

        return await self._run(
            OperationType.COPY,
            source_path,
            (source_path, destination_path),
            _apply,
            rule_name=rule_name,
            confidence=confidence,
        )

    async def delete(
        self,
        source: str | Path,
        *,
        to_trash: Optional[bool] = None,
        rule_name: Optional[str] = None,
        confidence: Optional[float] = None,
    ) -> ExecutionResult:
        """Delete ``source``, moving it to the trash unless ``to_trash`` is False.

        The record's destination is the trash path, or None for a permanent
        delete (which cannot be undone).
        """

        source_path = _expand(source)
        use_trash = self._options.use_trash if to_trash is None else to_trash

        def _apply() -> Optional[Path]:
            fs.require_source(source_path)
            if use_trash:
                return fs.move_to_trash(source_path, self._trash_dir)
            fs.remove_file(source_path)
            return None

        def _track(final: Optional[Path]) -> None:
            if final is None:
                self._log.remove_path_reference(source_path)
            else:
                self._log.update_path_references(source_path, final)

        return await self._run(
            OperationType.DELETE,
            source_path,
            (source_path,),
            _apply,
            track=_track,
            rule_name=rule_name,
            confidence=confidence,
        )

    async def archive(
        self,
        source: str | Path,
        destination: str | Path,
        *,
        compress: Optional[bool] = None,
        delete_original: Optional[bool] = None,
        rule_name: Optional[str] = None,
        confidence: Optional[float] = None,
    ) -> ExecutionResult:
        """Archive ``source`` at ``destination``.

        With compression the file is gzip-streamed into ``destination`` with
        ``.gz`` appended (``notes.gz`` becomes ``notes.gz.gz``) and the
        original is removed afterwards when ``delete_original`` is set.
        Without compression the archive is a plain move.
        """

        source_path = _expand(source)
        destination_path = _expand(destination)
        should_compress = self._options.compress_archives if compress is None else compress
        if not should_compress:
            return await self._relocate(
                OperationType.ARCHIVE, source_path, destination_path, rule_name, confidence
            )

        remove_original = (
            self._options.delete_archived_originals if delete_original is None else delete_original
        )
        archive_path = fs.with_gzip_suffix(destination_path, source_path.name)

        def _apply() -> Path:
            fs.require_source(source_path)
            fs.ensure_dir(archive_path.parent)
            target = fs.unique_path(archive_path, self._options.conflict_resolution)
            fs.compress_file(source_path, target)
            if remove_original:
                fs.remove_file(source_path)
            return target

        def _track(final: Optional[Path]) -> None:
            if remove_original and final is not None:
                self._log.update_path_references(source_path, final)

        return await self._run(
            OperationType.ARCHIVE,
            source_path,
            (source_path, archive_path),
            _apply,
            track=_track,
            rule_name=rule_name,
            confidence=confidence,
            compressed=True,
        )

    async def rename(
        self,
        source: str | Path,
        new_name: str,
        *,
        rule_name: Optional[str] = None,
        confidence: Optional[float] = None,
    ) -> ExecutionResult:
        """Rename ``source`` within its directory.

        The original extension is kept when ``new_name`` has none.
        """

        source_path = _expand(source)
        separators = {os.sep, "/"} | ({os.altsep} if os.altsep else set())
        if not new_name or new_name in {".", ".."} or any(sep in new_name for sep in separators):
            return self._failed(
                OperationType.RENAME,
                source_path,
                f"Invalid file name: {new_name!r}",
                "validation",
            )
        if not Path(new_name).suffix and source_path.suffix:
            new_name = f"{new_name}{source_path.suffix}"
        return await self._relocate(
            OperationType.RENAME,
            source_path,
            source_path.with_name(new_name),
            rule_name,
            confidence,
        )

    async def execute(self, suggestion: Suggestion) -> ExecutionResult:
        """Apply ``suggestion`` using the handler for its action."""

        return await self._handlers[suggestion.action](suggestion)

    async def execute_many(
        self,
        suggestions: Sequence[Suggestion],
        *,
        parallel: Optional[int] = None,
        stop_on_error: Optional[bool] = None,
    ) -> List[ExecutionResult]:
        """Apply suggestions sequentially or in concurrent batches.

        Args:
            suggestions: Suggestions to apply, in order.
            parallel: Batch size; 1 runs sequentially.
            stop_on_error: Stop after the first failing item (sequential) or
                after the first batch containing a failure.

        Returns:
            List[ExecutionResult]: One result per attempted suggestion.
        """

        width = max(1, parallel if parallel is not None else self._options.parallel)
        halt = self._options.stop_on_error if stop_on_error is None else stop_on_error
        results: List[ExecutionResult] = []

        if width == 1:
            for suggestion in suggestions:
                result = await self.execute(suggestion)
                results.append(result)
                if halt and not result.success:
                    LOGGER.warning("Stopping batch after failure on %s", result.source)
                    break
            return results

        for start in range(0, len(suggestions), width):
            batch = suggestions[start : start + width]
            batch_results = await asyncio.gather(*(self.execute(item) for item in batch))
            results.extend(batch_results)
            if halt and any(not result.success for result in batch_results):
                LOGGER.warning("Stopping batch run after a failed batch")
                break
        return results

    def history(self, limit: int = 50) -> List[OperationRecord]:
        """Return the most recent log records, newest first."""

        return self._log.list(limit)

    # Suggestion handlers ------------------------------------------------

    async def _execute_move(self, suggestion: Suggestion) -> ExecutionResult:
        if suggestion.destination is None:
            return self._missing_destination(OperationType.MOVE, suggestion)
        return await self.move(
            suggestion.file.path,
            suggestion.destination,
            rule_name=suggestion.rule_name,
            confidence=suggestion.confidence,
        )

    async def _execute_copy(self, suggestion: Suggestion) -> ExecutionResult:
        if suggestion.destination is None:
            return self._missing_destination(OperationType.COPY, suggestion)
        return await self.copy(
            suggestion.file.path,
            suggestion.destination,
            rule_name=suggestion.rule_name,
            confidence=suggestion.confidence,
        )

    async def _execute_delete(self, suggestion: Suggestion) -> ExecutionResult:
        return await self.delete(
            suggestion.file.path,
            rule_name=suggestion.rule_name,
            confidence=suggestion.confidence,
        )

    async def _execute_archive(self, suggestion: Suggestion) -> ExecutionResult:
        if suggestion.destination is None:
            return self._missing_destination(OperationType.ARCHIVE, suggestion)
        return await self.archive(
            suggestion.file.path,
            suggestion.destination,
            rule_name=suggestion.rule_name,
            confidence=suggestion.confidence,
        )

    def _missing_destination(self, op_type: OperationType, suggestion: Suggestion) -> ExecutionResult:
        return self._failed(
            op_type,
            _expand(suggestion.file.path),
            f"Suggestion from rule {suggestion.rule_name!r} has no destination",
            "validation",
        )

    # Internal helpers ---------------------------------------------------

    async def _relocate(
        self,
        op_type: OperationType,
        source: Path,
        destination: Path,
        rule_name: Optional[str],
        confidence: Optional[float],
    ) -> ExecutionResult:
        def _apply() -> Path:
            _reject_same_path(source, destination)
            fs.require_source(source)
            fs.ensure_dir(destination.parent)
            target = fs.unique_path(destination, self._options.conflict_resolution)
            return fs.move_file(source, target)

        def _track(final: Optional[Path]) -> None:
            if final is not None:
                self._log.update_path_references(source, final)

        return await self._run(
            op_type,
            source,
            (source, destination),
            _apply,
            track=_track,
            rule_name=rule_name,
            confidence=confidence,
        )

    async def _run(
        self,
        op_type: OperationType,
        source: Path,
        lock_paths: Iterable[Path],
        apply: _Apply,
        *,
        track: Optional[_Track] = None,
        rule_name: Optional[str] = None,
        confidence: Optional[float] = None,
        compressed: bool = False,
    ) -> ExecutionResult:
        LOGGER.debug("%s %s: %s", op_type.value, source, OperationState.REQUESTED.value)
        async with self._locks.hold(*lock_paths):
            LOGGER.debug("%s %s: %s", op_type.value, source, OperationState.IN_PROGRESS.value)
            try:
                final = await asyncio.to_thread(apply)
            except OrganizationError as exc:
                return self._failed(op_type, source, str(exc), exc.kind)
            except OSError as exc:
                return self._failed(op_type, source, str(exc), "io")

            draft = OperationDraft(
                type=op_type,
                source=str(source),
                destination=str(final) if final is not None else None,
                rule_name=rule_name,
                confidence=confidence,
                compressed=compressed,
            )
            try:
                if track is not None:
                    await asyncio.to_thread(track, final)
                operation_id = await asyncio.to_thread(self._log.insert, draft)
            except StateError as exc:
                return self._failed(
                    op_type,
                    source,
                    f"Filesystem change applied but the log write failed: {exc}",
                    "log",
                    final_path=final,
                )

        LOGGER.info(
            "%s %s -> %s (#%d)",
            op_type.value,
            source,
            final if final is not None else "permanently removed",
            operation_id,
        )
        return ExecutionResult(
            success=True,
            state=OperationState.COMMITTED,
            source=source,
            operation_id=operation_id,
            final_path=final,
        )

    def _failed(
        self,
        op_type: OperationType,
        source: Path,
        message: str,
        kind: str,
        *,
        final_path: Optional[Path] = None,
    ) -> ExecutionResult:
        LOGGER.warning("%s %s failed (%s): %s", op_type.value, source, kind, message)
        return ExecutionResult(
            success=False,
            state=OperationState.FAILED,
            source=source,
            final_path=final_path,
            error=message,
            error_kind=kind,
        )


def _reject_same_path(source: Path, destination: Path) -> None:
    if source == destination:
        raise DestinationConflictError(f"Source and destination are the same: {source}")


__all__ = ["ActionExecutor"]
