"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Read-or-suspend views over one cache entry.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .errors import ResourcePending
from .types import EntryState, Selector

if TYPE_CHECKING:
    from .entry import CacheEntry
    from .keys import CacheKey


@dataclass(frozen=True, slots=True)
class ReadOutcome:
    """Exception-free snapshot of what a read would produce."""

    state: EntryState
    value: Any = None
    error: BaseException | None = None
    handle: Any = None

    @property
    def ready(self) -> bool:
        """Whether a read returns without suspending."""
        return self.state != "pending"


class DataReader:
    """
    Callable accessor bound to exactly one cache entry.

    Readers compare equal only when bound to the same entry, which is how
    consumers observe that a repeated argument list reused the cache.
    """

    __slots__ = ("_entry",)

    def __init__(self, entry: "CacheEntry") -> None:
        self._entry = entry

    @property
    def key(self) -> "CacheKey":
        return self._entry.key

    @property
    def state(self) -> EntryState:
        return self._entry.state

    @property
    def detached(self) -> bool:
        """True once the bound entry was deleted from its table."""
        return self._entry.detached

    def poll(self, selector: Selector | None = None) -> ReadOutcome:
        """Describe the bound entry without raising."""
        entry = self._entry
        if entry.detached or entry.state == "idle":
            return ReadOutcome(state="idle")
        if entry.state == "pending":
            return ReadOutcome(state="pending", handle=entry.handle)
        if entry.state == "rejected":
            return ReadOutcome(state="rejected", error=entry.error)
        value = entry.value
        return ReadOutcome(
            state="resolved",
            value=selector(value) if selector is not None else value,
        )

    def read(self, selector: Selector | None = None) -> Any:
        """
        Return the resolved value, optionally projected through `selector`.

        Idle and deleted entries read as ``None``. Pending entries raise
        ``ResourcePending`` carrying the in-flight handle. Rejected entries
        re-raise the captured exception object with its original traceback.
        """
        outcome = self.poll(selector)
        if outcome.state == "pending":
            raise ResourcePending(self._entry.key, outcome.handle)
        if outcome.state == "rejected" and outcome.error is not None:
            # Restore the captured traceback so repeated reads do not extend it.
            raise outcome.error.with_traceback(self._entry.error_traceback)
        return outcome.value

    __call__ = read

    async def settled(self) -> None:
        """Wait until the bound entry leaves ``pending``."""
        handle = self._entry.handle
        if handle is None or self._entry.state != "pending":
            return
        await asyncio.wait([handle])

    async def aread(self, selector: Selector | None = None) -> Any:
        """Wait for settlement, then read."""
        await self.settled()
        return self.read(selector)

    def add_done_callback(self, callback: Callable[["DataReader"], Any]) -> None:
        """
        Call `callback(reader)` once the bound entry is no longer pending.

        Readers that are already readable are scheduled on the running loop
        when there is one, and called inline otherwise.
        """
        handle = self._entry.handle
        if handle is not None and not handle.done():
            handle.add_done_callback(lambda _: callback(self))
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            callback(self)
            return
        loop.call_soon(callback, self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DataReader):
            return NotImplemented
        return self._entry is other._entry

    def __hash__(self) -> int:
        return id(self._entry)

    def __repr__(self) -> str:
        return f"DataReader({self._entry.key.short()}, state={self.state!r})"


async def suspend_for(reader: DataReader) -> None:
    """
    Drive one read-or-suspend cycle for `reader`.

    Polls once; a pending reader has its in-flight handle awaited. Source
    failures are left for the next read to surface.
    """
    outcome = reader.poll()
    if outcome.state == "pending":
        await asyncio.wait([outcome.handle])
