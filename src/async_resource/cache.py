"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Per-function memoization table with single-flight starts.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, replace
from functools import partial
from threading import RLock
from typing import Any

from .entry import CacheEntry
from .keys import CacheKey, derive_key, function_namespace
from .settings import ResourceSettings
from .types import SourceFunction

logger = logging.getLogger("async_resource.cache")


@dataclass(slots=True)
class CacheStats:
    """Lifetime counters for one resource table."""

    hits: int = 0
    misses: int = 0
    starts: int = 0
    deletes: int = 0
    discarded: int = 0


class ResourceCache:
    """
    Memoization table for one source function.

    Entries are keyed by ``derive_key(fn, args, kwargs)``. Lookups never start
    work; ``start`` runs the source function at most once per entry, and a
    completion that arrives after its entry was deleted is dropped.
    """

    def __init__(
        self,
        fn: SourceFunction,
        *,
        settings: ResourceSettings | None = None,
    ) -> None:
        self._fn = fn
        self._settings = settings or ResourceSettings()
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._stats = CacheStats()
        # Re-entrant: synchronous source functions may read their own table.
        self._lock = RLock()
        self.namespace = function_namespace(fn)

    @property
    def fn(self) -> SourceFunction:
        return self._fn

    @property
    def settings(self) -> ResourceSettings:
        return self._settings

    @property
    def stats(self) -> CacheStats:
        """Copy of the table counters."""
        with self._lock:
            return replace(self._stats)

    def key_for(self, *args: Any, **kwargs: Any) -> CacheKey:
        return derive_key(self._fn, args, kwargs, settings=self._settings)

    def get(self, *args: Any, **kwargs: Any) -> CacheEntry:
        """Return the entry for these arguments, creating an idle one if absent."""
        key = self.key_for(*args, **kwargs)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                self._stats.hits += 1
                return entry
            entry = CacheEntry(key, args, kwargs)
            self._entries[key] = entry
            self._stats.misses += 1
        logger.debug("Created entry %s", self._describe(entry))
        return entry

    def start(self, entry: CacheEntry) -> CacheEntry:
        """
        Invoke the source function for an idle entry.

        Non-idle and deleted entries are returned unchanged. Failures never
        raise here: they reject the entry and surface on read.
        """
        with self._lock:
            if entry.state != "idle" or entry.detached:
                return entry
            self._stats.starts += 1
            try:
                result = self._fn(*entry.args, **entry.kwargs)
            except Exception as exc:
                entry.mark_pending(None)
                entry.reject(exc)
                self._log_rejection(entry, exc)
                return entry

            if not inspect.isawaitable(result):
                entry.mark_pending(None)
                entry.resolve(result)
                logger.debug("Resolved entry %s synchronously", self._describe(entry))
                return entry

            try:
                loop = asyncio.get_running_loop()
            except RuntimeError as exc:
                if inspect.iscoroutine(result):
                    result.close()
                entry.mark_pending(None)
                entry.reject(exc)
                self._log_rejection(entry, exc)
                return entry

            future = asyncio.ensure_future(result, loop=loop)
            entry.mark_pending(future)
            future.add_done_callback(partial(self._settle, entry))
        logger.debug("Started entry %s", self._describe(entry))
        return entry

    def fetch(self, *args: Any, **kwargs: Any) -> CacheEntry:
        """Look up the entry for these arguments and start it when idle."""
        return self.start(self.get(*args, **kwargs))

    def peek(self, *args: Any, **kwargs: Any) -> CacheEntry | None:
        """Return the live entry for these arguments without creating one."""
        key = self.key_for(*args, **kwargs)
        with self._lock:
            return self._entries.get(key)

    def delete(self, *args: Any, **kwargs: Any) -> None:
        """Remove the entry for these arguments, if present."""
        self.delete_key(self.key_for(*args, **kwargs))

    def delete_key(self, key: CacheKey) -> None:
        with self._lock:
            entry = self._entries.pop(key, None)
            if entry is None:
                return
            entry.detach()
            self._stats.deletes += 1
        logger.debug("Deleted entry %s", self._describe(entry))

    def clear(self) -> None:
        """Remove every entry in this table."""
        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
            for entry in entries:
                entry.detach()
            self._stats.deletes += len(entries)
        if entries:
            logger.debug("Cleared %d entries from %s", len(entries), self.namespace)

    def keys(self) -> list[CacheKey]:
        with self._lock:
            return list(self._entries.keys())

    def bind(self, *args: Any, **kwargs: Any) -> "BoundResource":
        """Handle on the slot for one argument list."""
        return BoundResource(self, args, kwargs)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __repr__(self) -> str:
        return f"ResourceCache({self.namespace}, entries={len(self)})"

    def _settle(self, entry: CacheEntry, future: asyncio.Future[Any]) -> None:
        """Done-callback transitioning a pending entry to its terminal state."""
        error: BaseException | None
        if future.cancelled():
            error = asyncio.CancelledError()
        else:
            error = future.exception()

        with self._lock:
            if entry.detached or self._entries.get(entry.key) is not entry:
                self._stats.discarded += 1
                logger.debug(
                    "Discarded stale completion for %s", self._describe(entry)
                )
                return
            if error is not None:
                entry.reject(error)
            else:
                entry.resolve(future.result())

        if error is not None:
            self._log_rejection(entry, error)
        else:
            logger.debug("Resolved entry %s", self._describe(entry))

    def _log_rejection(self, entry: CacheEntry, error: BaseException) -> None:
        logger.warning(
            "Source operation failed for %s: %s: %s",
            self._describe(entry),
            type(error).__name__,
            error,
        )

    def _describe(self, entry: CacheEntry) -> str:
        if not self._settings.log_args:
            return entry.key.short()
        return f"{entry.key.short()} args={entry.args!r} kwargs={entry.kwargs!r}"


class BoundResource:
    """One argument list of a resource table: ``resource_cache(fn).bind(1)``."""

    __slots__ = ("_cache", "_args", "_kwargs", "key")

    def __init__(
        self,
        cache: ResourceCache,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> None:
        self._cache = cache
        self._args = args
        self._kwargs = kwargs
        self.key = cache.key_for(*args, **kwargs)

    def get(self) -> CacheEntry:
        return self._cache.get(*self._args, **self._kwargs)

    def start(self) -> CacheEntry:
        return self._cache.fetch(*self._args, **self._kwargs)

    def peek(self) -> CacheEntry | None:
        return self._cache.peek(*self._args, **self._kwargs)

    def delete(self) -> None:
        self._cache.delete_key(self.key)
