"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Lifecycle record for one memoized asynchronous call.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import TracebackType
from typing import Any

from .keys import CacheKey
from .reader import DataReader
from .types import EntryState


class CacheEntry:
    """
    One cache slot moving through ``idle -> pending -> resolved | rejected``.

    Attributes:
        key: Cache key the entry was created for.
        args: Positional arguments passed to the source function.
        kwargs: Keyword arguments passed to the source function.
        state: Current lifecycle state.
        handle: In-flight future, present only while ``pending``.
        value: Resolved value, meaningful only when ``resolved``.
        error: Captured exception, present only when ``rejected``.
        error_traceback: Traceback of ``error`` as it was when captured.
        detached: Set once the entry no longer owns its table slot.
    """

    __slots__ = (
        "key",
        "args",
        "kwargs",
        "state",
        "handle",
        "value",
        "error",
        "error_traceback",
        "detached",
        "_reader",
    )

    def __init__(
        self,
        key: CacheKey,
        args: tuple[Any, ...] = (),
        kwargs: Mapping[str, Any] | None = None,
    ) -> None:
        self.key = key
        self.args = tuple(args)
        self.kwargs: dict[str, Any] = dict(kwargs or {})
        self.state: EntryState = "idle"
        self.handle: Any = None
        self.value: Any = None
        self.error: BaseException | None = None
        self.error_traceback: TracebackType | None = None
        self.detached = False
        self._reader: DataReader | None = None

    @property
    def reader(self) -> DataReader:
        """The single reader bound to this entry."""
        if self._reader is None:
            self._reader = DataReader(self)
        return self._reader

    def mark_pending(self, handle: Any) -> bool:
        """Move ``idle -> pending``; return False when already started."""
        if self.state != "idle":
            return False
        self.state = "pending"
        self.handle = handle
        return True

    def resolve(self, value: Any) -> bool:
        """Move ``pending -> resolved``; terminal entries are left untouched."""
        if self.state != "pending":
            return False
        self.state = "resolved"
        self.value = value
        self.handle = None
        return True

    def reject(self, error: BaseException) -> bool:
        """Move ``pending -> rejected``; terminal entries are left untouched."""
        if self.state != "pending":
            return False
        self.state = "rejected"
        self.error = error
        self.error_traceback = error.__traceback__
        self.handle = None
        return True

    def detach(self) -> None:
        """Mark the entry as removed from its table."""
        self.detached = True

    def __repr__(self) -> str:
        return (
            f"CacheEntry({self.key.short()}, state={self.state!r}, "
            f"detached={self.detached})"
        )
