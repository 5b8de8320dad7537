from __future__ import annotations

import asyncio

import pytest

from async_resource import ResourceCache, ResourcePending, suspend_for


def run_async(coro):
    return asyncio.run(coro)


async def fetch_user(user_id: int) -> dict:
    await asyncio.sleep(0)
    return {"id": user_id, "name": "test name"}


def test_idle_reader_reads_none_without_starting():
    cache = ResourceCache(fetch_user)
    reader = cache.get(1).reader

    assert reader() is None
    assert reader.poll().ready
    assert reader.state == "idle"
    assert cache.stats.starts == 0


def test_pending_reader_signals_with_handle():
    async def scenario() -> None:
        cache = ResourceCache(fetch_user)
        reader = cache.fetch(1).reader

        with pytest.raises(ResourcePending) as pending:
            reader()
        assert pending.value.key == reader.key
        outcome = reader.poll()
        assert outcome.state == "pending"
        assert not outcome.ready
        assert outcome.handle is pending.value.handle

        await pending.value.handle
        assert reader() == {"id": 1, "name": "test name"}

    run_async(scenario())


def test_selector_projects_without_mutating():
    async def scenario() -> None:
        cache = ResourceCache(fetch_user)
        reader = cache.fetch(1).reader
        await suspend_for(reader)

        assert reader(lambda user: user["id"]) == 1
        assert reader.read(lambda user: user["name"].upper()) == "TEST NAME"
        assert reader() == {"id": 1, "name": "test name"}
        assert reader() is reader()

    run_async(scenario())


def test_aread_waits_for_settlement():
    async def scenario() -> None:
        cache = ResourceCache(fetch_user)
        reader = cache.fetch(5).reader
        assert await reader.aread(lambda user: user["id"]) == 5
        assert await reader.aread() == {"id": 5, "name": "test name"}

    run_async(scenario())


def test_reader_identity_follows_entry():
    cache = ResourceCache(fetch_user)
    first = cache.get(1).reader
    again = cache.get(1).reader
    other = cache.get(2).reader

    assert first is again
    assert first == again
    assert hash(first) == hash(again)
    assert first != other
    assert len({first, again, other}) == 2


def test_done_callback_runs_after_settlement():
    async def scenario() -> None:
        cache = ResourceCache(fetch_user)
        reader = cache.fetch(1).reader
        seen: list[str] = []
        done = asyncio.Event()

        def on_done(settled_reader) -> None:
            seen.append(settled_reader.state)
            done.set()

        reader.add_done_callback(on_done)
        await done.wait()
        assert seen == ["resolved"]

        reader.add_done_callback(lambda r: seen.append("again"))
        await asyncio.sleep(0)
        assert seen == ["resolved", "again"]

    run_async(scenario())


def test_deleted_entry_reads_as_never_started():
    async def scenario() -> None:
        cache = ResourceCache(fetch_user)
        reader = cache.fetch(1).reader
        await suspend_for(reader)
        assert reader(lambda user: user["id"]) == 1

        cache.delete(1)

        assert reader.detached
        assert reader() is None
        assert reader.poll().state == "idle"

    run_async(scenario())


def _traceback_depth(tb) -> int:
    depth = 0
    while tb is not None:
        depth += 1
        tb = tb.tb_next
    return depth


def test_repeated_rejected_reads_keep_the_original_traceback():
    def explode(value: int) -> dict:
        raise ValueError(f"bad value {value}")

    cache = ResourceCache(explode)
    reader = cache.fetch(1).reader
    seen: list[BaseException] = []
    depths: list[int] = []

    for _ in range(200):
        try:
            reader()
        except ValueError as exc:
            seen.append(exc)
            depths.append(_traceback_depth(exc.__traceback__))

    assert len(depths) == 200
    assert len(set(depths)) == 1
    assert all(exc is seen[0] for exc in seen)
