"""Tests for reversing logged operations."""

from __future__ import annotations

import asyncio
import gzip
from datetime import datetime, timezone
from pathlib import Path

import pytest

from sortora.config.models import OrganizationOptions
from sortora.organization import (
    ActionExecutor,
    DestinationResolver,
    PathLockManager,
    UndoEngine,
)
from sortora.rules import Rule, RuleMatcher, RuleSet
from sortora.state import OperationLog, OperationType


@pytest.fixture()
def locks() -> PathLockManager:
    return PathLockManager()


@pytest.fixture()
def executor(operation_log: OperationLog, locks: PathLockManager, tmp_path: Path) -> ActionExecutor:
    return ActionExecutor(
        operation_log, locks=locks, options=OrganizationOptions(), trash_dir=tmp_path / "trash"
    )


@pytest.fixture()
def engine(operation_log: OperationLog, locks: PathLockManager) -> UndoEngine:
    return UndoEngine(operation_log, locks=locks)


def test_every_operation_type_has_an_undo_handler(engine: UndoEngine) -> None:
    assert set(engine._handlers) == set(OperationType)


@pytest.mark.asyncio
async def test_screenshot_move_then_undo_round_trip(
    tmp_path: Path, make_file, operation_log: OperationLog, executor, engine
) -> None:
    source = tmp_path / "Desktop" / "Screenshot 2024-01-01.png"
    source.parent.mkdir()
    source.write_bytes(b"png")
    rule = Rule.model_validate(
        {
            "name": "Screenshots",
            "priority": 100,
            "match": {"extension": ["png"], "filename": ["Screenshot*"]},
            "action": {"move_to": str(tmp_path / "Pix") + "/{year}-{month}/"},
        }
    )
    file = make_file(source, modified=datetime(2024, 1, 1, tzinfo=timezone.utc))
    match = RuleMatcher().match(file, RuleSet([rule]))
    assert match is not None and match.confidence == 1.0
    destination = DestinationResolver().resolve(file, rule)
    assert destination == tmp_path / "Pix" / "2024-01" / "Screenshot 2024-01-01.png"

    moved = await executor.move(source, destination, rule_name=rule.name, confidence=match.confidence)
    undone = await engine.undo(moved.operation_id)

    assert undone.success
    assert source.read_bytes() == b"png"
    assert not destination.exists()
    records = operation_log.list()
    assert len(records) == 1
    assert records[0].type is OperationType.MOVE
    assert records[0].undone_at is not None


@pytest.mark.asyncio
async def test_undo_restores_path_references(
    operation_log: OperationLog, executor, engine, write_file, tmp_path: Path
) -> None:
    source = write_file("in/a.txt")
    operation_log.register_path(source, "document")

    moved = await executor.move(source, tmp_path / "out" / "a.txt")
    assert operation_log.path_reference(tmp_path / "out" / "a.txt") is not None

    await engine.undo(moved.operation_id)

    assert operation_log.path_reference(source)["category"] == "document"
    assert operation_log.path_reference(tmp_path / "out" / "a.txt") is None


@pytest.mark.asyncio
async def test_double_undo_fails_without_mutation(
    operation_log: OperationLog, executor, engine, write_file, tmp_path: Path
) -> None:
    source = write_file("in/a.txt")
    moved = await executor.move(source, tmp_path / "out" / "a.txt")

    first = await engine.undo(moved.operation_id)
    stamp = operation_log.get(moved.operation_id).undone_at
    second = await engine.undo(moved.operation_id)

    assert first.success
    assert not second.success
    assert second.error_kind == "already_undone"
    assert operation_log.get(moved.operation_id).undone_at == stamp
    assert source.exists()


@pytest.mark.asyncio
async def test_concurrent_undo_of_one_record_succeeds_once(
    operation_log: OperationLog, executor, engine, write_file, tmp_path: Path
) -> None:
    source = write_file("in/a.txt")
    moved = await executor.move(source, tmp_path / "out" / "a.txt")

    results = await asyncio.gather(
        engine.undo(moved.operation_id), engine.undo(moved.operation_id)
    )

    assert sorted(result.success for result in results) == [False, True]
    assert source.exists()


@pytest.mark.asyncio
async def test_unknown_id(engine: UndoEngine) -> None:
    result = await engine.undo(999)

    assert not result.success
    assert result.error_kind == "not_found"
    assert result.type is None


@pytest.mark.asyncio
async def test_undo_move_refuses_to_overwrite(
    operation_log: OperationLog, executor, engine, write_file, tmp_path: Path
) -> None:
    source = write_file("in/a.txt", "original")
    moved = await executor.move(source, tmp_path / "out" / "a.txt")
    write_file("in/a.txt", "replacement")

    result = await engine.undo(moved.operation_id)

    assert not result.success
    assert result.error_kind == "conflict"
    assert source.read_text() == "replacement"
    assert operation_log.get(moved.operation_id).undone_at is None


@pytest.mark.asyncio
async def test_undo_move_when_destination_vanished(
    operation_log: OperationLog, executor, engine, write_file, tmp_path: Path
) -> None:
    source = write_file("in/a.txt")
    moved = await executor.move(source, tmp_path / "out" / "a.txt")
    moved.final_path.unlink()

    result = await engine.undo(moved.operation_id)

    assert result.error_kind == "not_found"
    assert operation_log.get(moved.operation_id).undone_at is None


@pytest.mark.asyncio
async def test_undo_copy_removes_copy(executor, engine, write_file, tmp_path: Path) -> None:
    source = write_file("in/a.txt")
    copied = await executor.copy(source, tmp_path / "backup" / "a.txt")

    result = await engine.undo(copied.operation_id)

    assert result.success
    assert source.exists()
    assert not copied.final_path.exists()


@pytest.mark.asyncio
async def test_undo_trashed_delete(executor, engine, write_file) -> None:
    source = write_file("in/a.txt", "keep me")
    deleted = await executor.delete(source)

    result = await engine.undo(deleted.operation_id)

    assert result.success
    assert source.read_text() == "keep me"
    assert not deleted.final_path.exists()


@pytest.mark.asyncio
async def test_permanent_delete_cannot_be_undone(
    operation_log: OperationLog, executor, engine, write_file
) -> None:
    source = write_file("in/a.txt")
    deleted = await executor.delete(source, to_trash=False)

    result = await engine.undo(deleted.operation_id)

    assert not result.success
    assert result.error_kind == "unrecoverable"
    assert operation_log.get(deleted.operation_id).undone_at is None


@pytest.mark.asyncio
async def test_undo_delete_after_trash_was_emptied(executor, engine, write_file) -> None:
    source = write_file("in/a.txt")
    deleted = await executor.delete(source)
    deleted.final_path.unlink()

    result = await engine.undo(deleted.operation_id)

    assert result.error_kind == "unrecoverable"


@pytest.mark.asyncio
async def test_undo_uncompressed_archive_moves_back(executor, engine, write_file, tmp_path: Path) -> None:
    source = write_file("in/app.log")
    archived = await executor.archive(source, tmp_path / "archive" / "app.log")

    result = await engine.undo(archived.operation_id)

    assert result.success
    assert source.exists()
    assert not archived.final_path.exists()


@pytest.mark.asyncio
async def test_undo_compressed_archive_with_original_kept(
    executor, engine, write_file, tmp_path: Path
) -> None:
    source = write_file("in/app.log")
    archived = await executor.archive(
        source, tmp_path / "archive" / "app.log", compress=True, delete_original=False
    )

    result = await engine.undo(archived.operation_id)

    assert result.success
    assert source.exists()
    assert not archived.final_path.exists()


@pytest.mark.asyncio
async def test_undo_compressed_archive_without_original_fails(
    executor, engine, write_file, tmp_path: Path
) -> None:
    source = write_file("in/app.log")
    archived = await executor.archive(source, tmp_path / "archive" / "app.log", compress=True)

    result = await engine.undo(archived.operation_id)

    assert not result.success
    assert result.error_kind == "unrecoverable"
    assert archived.final_path.exists()


@pytest.mark.asyncio
async def test_undo_archive_with_missing_artifact_is_noop(
    operation_log: OperationLog, executor, engine, write_file, tmp_path: Path
) -> None:
    source = write_file("in/app.log")
    archived = await executor.archive(
        source, tmp_path / "archive" / "app.log", compress=True, delete_original=False
    )
    archived.final_path.unlink()

    result = await engine.undo(archived.operation_id)

    assert result.success
    assert operation_log.get(archived.operation_id).undone_at is not None


@pytest.mark.asyncio
async def test_undo_rename(executor, engine, write_file) -> None:
    source = write_file("in/IMG_0001.jpg")
    renamed = await executor.rename(source, "holiday")

    result = await engine.undo(renamed.operation_id)

    assert result.success
    assert source.exists()
    assert result.type is OperationType.RENAME


@pytest.mark.asyncio
async def test_undo_last_and_multiple(
    operation_log: OperationLog, executor, engine, write_file, tmp_path: Path
) -> None:
    first = write_file("in/a.txt")
    second = write_file("in/b.txt")
    third = write_file("in/c.txt")
    ids = []
    for path in (first, second, third):
        result = await executor.move(path, tmp_path / "out" / path.name)
        ids.append(result.operation_id)

    last = await engine.undo_last()
    assert last is not None and last.operation_id == ids[2]
    assert [record.id for record in engine.undoable()] == [ids[1], ids[0]]

    results = await engine.undo_multiple([ids[0], ids[1], ids[2], ids[0]])

    assert [result.operation_id for result in results] == [ids[2], ids[1], ids[0]]
    assert [result.success for result in results] == [False, True, True]
    assert all(path.exists() for path in (first, second, third))
    assert await engine.undo_last() is None


@pytest.mark.asyncio
async def test_undo_compressed_gzip_source_keeps_original_bytes(
    operation_log: OperationLog, executor, engine, tmp_path: Path
) -> None:
    source = tmp_path / "in" / "notes.gz"
    source.parent.mkdir()
    payload = gzip.compress(b"notes")
    source.write_bytes(payload)

    archived = await executor.archive(source, tmp_path / "archive" / "notes.gz", compress=True)

    assert archived.final_path == tmp_path / "archive" / "notes.gz.gz"
    assert operation_log.get(archived.operation_id).compressed

    result = await engine.undo(archived.operation_id)

    assert not result.success
    assert result.error_kind == "unrecoverable"
    assert not source.exists()
    assert gzip.decompress(archived.final_path.read_bytes()) == payload


@pytest.mark.asyncio
async def test_undo_compressed_gzip_source_with_original_kept(
    operation_log: OperationLog, executor, engine, tmp_path: Path
) -> None:
    source = tmp_path / "in" / "notes.gz"
    source.parent.mkdir()
    payload = gzip.compress(b"notes")
    source.write_bytes(payload)

    archived = await executor.archive(
        source, tmp_path / "archive" / "notes.gz", compress=True, delete_original=False
    )
    result = await engine.undo(archived.operation_id)

    assert result.success
    assert source.read_bytes() == payload
    assert not archived.final_path.exists()
    assert operation_log.get(archived.operation_id).undone_at is not None
