"""Tests for the FIFO path lock manager."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from sortora.organization import PathLockManager
from sortora.organization.locks import normalize_lock_key


@pytest.mark.asyncio
async def test_uncontended_acquire_is_immediate(tmp_path: Path) -> None:
    manager = PathLockManager()

    lock = await manager.acquire(tmp_path / "a.txt")

    assert manager.is_locked(tmp_path / "a.txt")
    lock.release()
    assert not manager.is_locked(tmp_path / "a.txt")


@pytest.mark.asyncio
async def test_waiters_are_granted_in_fifo_order(tmp_path: Path) -> None:
    manager = PathLockManager()
    target = tmp_path / "a.txt"
    order: list[int] = []

    holder = await manager.acquire(target)

    async def _waiter(index: int) -> None:
        lock = await manager.acquire(target)
        order.append(index)
        await asyncio.sleep(0)
        lock.release()

    tasks = [asyncio.create_task(_waiter(index)) for index in range(5)]
    await asyncio.sleep(0)
    assert manager.waiting(target) == 5

    holder.release()
    await asyncio.gather(*tasks)

    assert order == [0, 1, 2, 3, 4]
    assert not manager.is_locked(target)


@pytest.mark.asyncio
async def test_release_is_idempotent(tmp_path: Path) -> None:
    manager = PathLockManager()
    target = tmp_path / "a.txt"
    first = await manager.acquire(target)
    waiter = asyncio.create_task(manager.acquire(target))
    await asyncio.sleep(0)

    first.release()
    first.release()
    second = await waiter

    assert manager.is_locked(target)
    assert first.released and not second.released
    second.release()
    assert not manager.is_locked(target)


@pytest.mark.asyncio
async def test_cancelled_waiter_leaves_the_queue(tmp_path: Path) -> None:
    manager = PathLockManager()
    target = tmp_path / "a.txt"
    holder = await manager.acquire(target)

    cancelled = asyncio.create_task(manager.acquire(target))
    survivor = asyncio.create_task(manager.acquire(target))
    await asyncio.sleep(0)
    cancelled.cancel()
    with pytest.raises(asyncio.CancelledError):
        await cancelled

    assert manager.waiting(target) == 1
    holder.release()
    lock = await asyncio.wait_for(survivor, timeout=1)
    lock.release()
    assert not manager.is_locked(target)


@pytest.mark.asyncio
async def test_disjoint_paths_do_not_block(tmp_path: Path) -> None:
    manager = PathLockManager()
    first = await manager.acquire(tmp_path / "a.txt")

    second = await asyncio.wait_for(manager.acquire(tmp_path / "b.txt"), timeout=1)

    first.release()
    second.release()


@pytest.mark.asyncio
async def test_hold_collapses_duplicates_and_releases_everything(tmp_path: Path) -> None:
    manager = PathLockManager()
    source = tmp_path / "a.txt"

    async with manager.hold(source, tmp_path / "." / "a.txt", tmp_path / "b.txt") as locks:
        assert len(locks) == 2
        assert manager.is_locked(source)

    assert not manager.is_locked(source)
    assert not manager.is_locked(tmp_path / "b.txt")


@pytest.mark.asyncio
async def test_hold_releases_on_error(tmp_path: Path) -> None:
    manager = PathLockManager()

    with pytest.raises(RuntimeError):
        async with manager.hold(tmp_path / "a.txt"):
            raise RuntimeError("boom")

    assert not manager.is_locked(tmp_path / "a.txt")


def test_lock_keys_are_normalized(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))

    assert normalize_lock_key("~/a.txt") == normalize_lock_key(tmp_path / "a.txt")
    assert normalize_lock_key(tmp_path / "x" / ".." / "a.txt") == normalize_lock_key(
        tmp_path / "a.txt"
    )
