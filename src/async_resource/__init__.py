"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Deduplicated, memoized access to asynchronous operations.

Results are exposed through data readers that can be polled before the
underlying call has settled.

Quick start::

    from async_resource import resource_cache, suspend_for, use_async_resource

    async def fetch_user(user_id: int) -> dict:
        ...

    reader, update = use_async_resource(fetch_user, 1)
    await suspend_for(reader)
    reader(lambda user: user["name"])

    reader = update(2)                  # new call, new reader
    resource_cache(fetch_user).delete(1)  # invalidate one argument list
"""

from .cache import BoundResource, CacheStats, ResourceCache
from .controller import ResourceController, initialize_data_reader, use_async_resource
from .entry import CacheEntry
from .errors import (
    AsyncResourceError,
    KeyDerivationError,
    ResourcePending,
    ResourceRegistryError,
)
from .keys import CacheKey, derive_key, encode_arguments
from .reader import DataReader, ReadOutcome, suspend_for
from .registry import (
    ResourceRegistry,
    clear_resource_caches,
    default_registry,
    list_resource_caches,
    resource_cache,
)
from .settings import ResourceSettings
from .types import EntryState, Selector, SourceFunction

__all__ = [
    "CacheKey",
    "derive_key",
    "encode_arguments",
    "CacheEntry",
    "EntryState",
    "ResourceCache",
    "BoundResource",
    "CacheStats",
    "ResourceRegistry",
    "default_registry",
    "resource_cache",
    "clear_resource_caches",
    "list_resource_caches",
    "DataReader",
    "ReadOutcome",
    "suspend_for",
    "ResourceController",
    "use_async_resource",
    "initialize_data_reader",
    "ResourceSettings",
    "AsyncResourceError",
    "ResourcePending",
    "KeyDerivationError",
    "ResourceRegistryError",
    "Selector",
    "SourceFunction",
]
