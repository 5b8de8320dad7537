"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Shared type aliases for resource caches.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Literal


EntryState = Literal["idle", "pending", "resolved", "rejected"]

# Source operations return an awaitable or, for already-known data, a value.
SourceFunction = Callable[..., Any]
Selector = Callable[[Any], Any]
