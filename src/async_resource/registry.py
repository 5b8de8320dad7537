"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Process-wide registry of resource tables, one per source function.
"""

from __future__ import annotations

import logging
from collections.abc import Hashable
from threading import Lock

from .cache import ResourceCache
from .errors import ResourceRegistryError
from .settings import ResourceSettings
from .types import SourceFunction

logger = logging.getLogger("async_resource.registry")


class ResourceRegistry:
    """Owns the mapping from source function to its ``ResourceCache``."""

    def __init__(self, settings: ResourceSettings | None = None) -> None:
        self._settings = settings or ResourceSettings()
        self._tables: dict[SourceFunction, ResourceCache] = {}
        self._lock = Lock()

    @property
    def settings(self) -> ResourceSettings:
        return self._settings

    def table(self, fn: SourceFunction) -> ResourceCache:
        """Return the table for `fn`, creating it on first use."""
        if not callable(fn):
            raise ResourceRegistryError(
                f"Source function must be callable, got {type(fn).__name__}"
            )
        if not isinstance(fn, Hashable):
            raise ResourceRegistryError(
                f"Source function must be hashable, got {type(fn).__name__}"
            )
        with self._lock:
            table = self._tables.get(fn)
            if table is None:
                table = ResourceCache(fn, settings=self._settings)
                self._tables[fn] = table
                logger.debug("Registered resource table %s", table.namespace)
            return table

    def forget(self, fn: SourceFunction) -> None:
        """Clear and drop the table for `fn`, if one exists."""
        with self._lock:
            table = self._tables.pop(fn, None)
        if table is not None:
            table.clear()

    def clear(self) -> None:
        """Clear every registered table, keeping the tables themselves."""
        with self._lock:
            tables = list(self._tables.values())
        for table in tables:
            table.clear()

    def namespaces(self) -> list[str]:
        with self._lock:
            return sorted(table.namespace for table in self._tables.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._tables)


default_registry = ResourceRegistry(ResourceSettings.from_env())


def _resolve(registry: ResourceRegistry | None) -> ResourceRegistry:
    return registry if registry is not None else default_registry


def resource_cache(
    fn: SourceFunction,
    *,
    registry: ResourceRegistry | None = None,
) -> ResourceCache:
    """Resolve the resource table for `fn` from `registry` or the default one."""
    return _resolve(registry).table(fn)


def clear_resource_caches(*, registry: ResourceRegistry | None = None) -> None:
    """Clear every table in `registry` or the default one."""
    _resolve(registry).clear()


def list_resource_caches(*, registry: ResourceRegistry | None = None) -> list[str]:
    """List namespaces of registered tables."""
    return _resolve(registry).namespaces()
