"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Consumer-held binding between a source function and its current reader.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from threading import RLock
from typing import Any, NamedTuple

from .cache import ResourceCache
from .entry import CacheEntry
from .reader import DataReader
from .registry import ResourceRegistry, resource_cache
from .types import SourceFunction

logger = logging.getLogger("async_resource.controller")


class _ControllerState(NamedTuple):
    args: tuple[Any, ...] | None
    kwargs: dict[str, Any]
    reader: DataReader


class ResourceController:
    """
    Tracks the active argument list for one consumer and its data reader.

    Passing ``args=None`` (and no kwargs) creates a lazy controller: its reader
    reads as ``None`` and nothing runs until the first ``update``. Use
    ``args=()`` to eagerly call a function that takes no arguments.
    """

    def __init__(
        self,
        fn: SourceFunction,
        args: tuple[Any, ...] | None = None,
        kwargs: Mapping[str, Any] | None = None,
        *,
        registry: ResourceRegistry | None = None,
    ) -> None:
        self._fn = fn
        self._cache: ResourceCache = resource_cache(fn, registry=registry)
        # Re-entrant: synchronous source functions may update this controller.
        self._lock = RLock()

        call_kwargs = dict(kwargs or {})
        if args is None and not call_kwargs:
            # Unregistered so it never aliases a real zero-argument call.
            entry = CacheEntry(self._cache.key_for())
            logger.debug("Initialized lazy controller for %s", self._cache.namespace)
        else:
            args = tuple(args or ())
            entry = self._cache.fetch(*args, **call_kwargs)
        self._state = _ControllerState(args, call_kwargs, entry.reader)

    @property
    def fn(self) -> SourceFunction:
        return self._fn

    @property
    def cache(self) -> ResourceCache:
        return self._cache

    @property
    def reader(self) -> DataReader:
        return self._state.reader

    @property
    def args(self) -> tuple[Any, ...] | None:
        """Current positional arguments; ``None`` while still lazy."""
        return self._state.args

    @property
    def kwargs(self) -> dict[str, Any]:
        return dict(self._state.kwargs)

    @property
    def lazy(self) -> bool:
        return self._state.args is None and not self._state.kwargs

    def update(self, *args: Any, **kwargs: Any) -> DataReader:
        """
        Switch to a new argument list and return its reader.

        A repeated argument list whose entry is still cached yields the very
        same reader, with no new call and no state change.
        """
        with self._lock:
            entry = self._cache.fetch(*args, **kwargs)
            self._state = _ControllerState(tuple(args), dict(kwargs), entry.reader)
            return entry.reader

    def refresh(self) -> DataReader:
        """Drop the cached entry for the current arguments and fetch it again."""
        with self._lock:
            state = self._state
        if state.args is None and not state.kwargs:
            return state.reader
        self._cache.delete(*state.args, **state.kwargs)
        return self.update(*state.args, **state.kwargs)

    def __iter__(self) -> Iterator[Any]:
        """Unpack as ``reader, update = controller``."""
        yield self.reader
        yield self.update

    def __repr__(self) -> str:
        return f"ResourceController({self._cache.namespace}, reader={self.reader!r})"


def use_async_resource(
    fn: SourceFunction,
    *args: Any,
    eager: bool = False,
    **kwargs: Any,
) -> tuple[DataReader, Callable[..., DataReader]]:
    """
    Return ``(reader, update)`` for `fn` called with `args`/`kwargs`.

    Called with no arguments the reader is lazy, unless `eager` is set, in
    which case a zero-argument function is called right away. ``eager`` is
    reserved and never forwarded to `fn`.
    """
    if not args and not kwargs and not eager:
        controller = ResourceController(fn)
    else:
        controller = ResourceController(fn, args, kwargs)
    return controller.reader, controller.update


def initialize_data_reader(fn: SourceFunction, *args: Any, **kwargs: Any) -> DataReader:
    """Start (or reuse) the call for these arguments and return its reader."""
    return resource_cache(fn).fetch(*args, **kwargs).reader
