"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Error types raised by resource caches, readers, and controllers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .keys import CacheKey


class AsyncResourceError(RuntimeError):
    """Base class for async-resource failures."""


class ResourcePending(AsyncResourceError):
    """
    Raised by ``DataReader.read`` while the bound operation is in flight.

    ``handle`` is the awaitable that settles together with the entry; the
    scheduler that owns the retry awaits it and reads again.
    """

    def __init__(self, key: "CacheKey", handle: Any) -> None:
        super().__init__(f"Resource '{key.namespace}' is still pending")
        self.key = key
        self.handle = handle


class KeyDerivationError(AsyncResourceError, TypeError):
    """Raised when an argument has no structural encoding in strict mode."""


class ResourceRegistryError(AsyncResourceError):
    """Raised when a resource table cannot be resolved."""
