from __future__ import annotations

import asyncio
import logging
import threading
import time

import pytest

from async_resource import ResourceCache, ResourceSettings, suspend_for


def run_async(coro):
    return asyncio.run(coro)


class _CountingSource:
    def __init__(self) -> None:
        self.calls: list[tuple] = []

    async def __call__(self, *args):
        self.calls.append(args)
        await asyncio.sleep(0)
        return {"args": list(args)}


def test_get_creates_idle_entry_without_calling_source():
    source = _CountingSource()
    cache = ResourceCache(source)

    entry = cache.get(1)
    assert entry.state == "idle"
    assert cache.get(1) is entry
    assert cache.get(2) is not entry
    assert source.calls == []
    assert len(cache) == 2
    assert entry.key in cache
    stats = cache.stats
    assert (stats.hits, stats.misses, stats.starts) == (1, 2, 0)


def test_start_is_single_flight():
    async def scenario() -> None:
        source = _CountingSource()
        cache = ResourceCache(source)

        entry = cache.get(1)
        cache.start(entry)
        cache.start(entry)
        cache.fetch(1)
        assert entry.state == "pending"
        assert entry.handle is not None

        await suspend_for(entry.reader)
        cache.start(entry)

        assert source.calls == [(1,)]
        assert entry.state == "resolved"
        assert entry.value == {"args": [1]}
        assert entry.handle is None
        assert cache.stats.starts == 1

    run_async(scenario())


def test_delete_then_get_creates_fresh_entry():
    async def scenario() -> None:
        source = _CountingSource()
        cache = ResourceCache(source)

        first = cache.fetch(1)
        await suspend_for(first.reader)
        cache.delete(1)
        cache.delete(1)

        assert cache.peek(1) is None
        second = cache.get(1)
        assert second is not first
        assert second.state == "idle"
        assert first.detached

        cache.start(second)
        await suspend_for(second.reader)
        assert source.calls == [(1,), (1,)]
        assert cache.stats.deletes == 1

    run_async(scenario())


def test_clear_detaches_every_entry():
    cache = ResourceCache(_CountingSource())
    entries = [cache.get(i) for i in range(3)]

    cache.clear()

    assert len(cache) == 0
    assert cache.keys() == []
    assert all(entry.detached for entry in entries)


def test_bound_resource_delete():
    async def scenario() -> None:
        cache = ResourceCache(_CountingSource())
        entry = cache.bind(1).start()
        await suspend_for(entry.reader)

        bound = cache.bind(1)
        assert bound.peek() is entry
        assert bound.key == entry.key
        bound.delete()
        assert bound.peek() is None
        assert bound.get() is not entry

    run_async(scenario())


def test_synchronous_failure_rejects_instead_of_raising():
    def explode(value):
        raise ValueError(f"bad value {value}")

    cache = ResourceCache(explode)
    entry = cache.fetch(3)

    assert entry.state == "rejected"
    assert isinstance(entry.error, ValueError)
    with pytest.raises(ValueError, match="bad value 3"):
        entry.reader()


def test_plain_return_value_resolves_immediately():
    cache = ResourceCache(lambda value: value * 2)
    entry = cache.fetch(21)
    assert entry.state == "resolved"
    assert entry.reader() == 42


def test_awaitable_without_running_loop_rejects():
    cache = ResourceCache(_CountingSource())
    entry = cache.fetch(1)
    assert entry.state == "rejected"
    with pytest.raises(RuntimeError):
        entry.reader()


def test_rejection_is_replayed_verbatim(caplog):
    async def scenario() -> None:
        async def failing(user_id: int) -> dict:
            await asyncio.sleep(0)
            raise LookupError(f"user {user_id} not found")

        cache = ResourceCache(failing)
        entry = cache.fetch(7)
        await suspend_for(entry.reader)

        with pytest.raises(LookupError) as first:
            entry.reader()
        with pytest.raises(LookupError) as second:
            entry.reader(lambda user: user["id"])
        assert first.value is second.value
        assert entry.error is first.value

    with caplog.at_level(logging.WARNING, logger="async_resource.cache"):
        run_async(scenario())
    assert "user 7 not found" in caplog.text


def test_stale_completion_does_not_resurrect_deleted_entry():
    async def scenario() -> None:
        gate = asyncio.Event()
        calls: list[int] = []

        async def slow(value: int) -> str:
            calls.append(value)
            if len(calls) == 1:
                await gate.wait()
                return "stale"
            return "fresh"

        cache = ResourceCache(slow)
        first = cache.fetch(1)
        cache.delete(1)
        second = cache.fetch(1)
        assert second is not first

        await suspend_for(second.reader)
        assert second.reader() == "fresh"

        gate.set()
        await first.reader.settled()

        assert second.reader() == "fresh"
        assert cache.peek(1) is second
        assert first.state == "pending"
        assert first.reader() is None
        assert cache.stats.discarded == 1

    run_async(scenario())


def test_debug_logs_include_arguments_when_enabled(caplog):
    cache = ResourceCache(
        lambda value: value, settings=ResourceSettings(log_args=True)
    )
    with caplog.at_level(logging.DEBUG, logger="async_resource.cache"):
        cache.fetch("visible-arg")
    assert "visible-arg" in caplog.text


def test_concurrent_threads_share_one_entry_and_one_call():
    calls: list[int] = []

    def slow_source(value: int) -> int:
        calls.append(value)
        time.sleep(0.01)
        return value * 10

    cache = ResourceCache(slow_source)
    barrier = threading.Barrier(8)
    entries = []

    def worker() -> None:
        barrier.wait()
        entry = cache.get(1)
        cache.start(entry)
        entries.append(entry)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert len(entries) == 8
    assert all(entry is entries[0] for entry in entries)
    assert calls == [1]
    assert entries[0].reader() == 10
    assert len(cache) == 1
    assert cache.stats.starts == 1


def test_settled_entries_ignore_further_transitions():
    cache = ResourceCache(lambda value: value)
    entry = cache.fetch(1)

    assert entry.state == "resolved"
    assert not entry.mark_pending(None)
    assert not entry.resolve(2)
    assert not entry.reject(ValueError("late"))
    assert entry.state == "resolved"
    assert entry.value == 1
    assert entry.error is None
