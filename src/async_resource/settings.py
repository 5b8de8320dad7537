"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Resource cache settings and explicit config loading.
"""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass

_TRUTHY = ("1", "true", "yes", "on")


def _env_flag(name: str, default: bool = False) -> bool:
    """Parse one boolean environment variable."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUTHY


@dataclass(frozen=True, slots=True)
class ResourceSettings:
    """
    Explicit settings used by key derivation and cache tables.

    Attributes:
        strict_keys: Raise ``KeyDerivationError`` for arguments without a
            structural encoding instead of falling back to ``repr()``.
        digest_algorithm: ``hashlib`` algorithm used to digest encoded arguments.
        log_args: Include argument reprs in debug lifecycle logs.
    """

    strict_keys: bool = False
    digest_algorithm: str = "sha256"
    log_args: bool = False

    def __post_init__(self) -> None:
        # shake_* digests need an explicit length and are not usable here.
        if (
            self.digest_algorithm not in hashlib.algorithms_available
            or self.digest_algorithm.startswith("shake")
        ):
            raise ValueError(
                f"Unsupported digest algorithm '{self.digest_algorithm}'"
            )

    @staticmethod
    def from_env() -> "ResourceSettings":
        """Load settings from environment variables."""
        return ResourceSettings(
            strict_keys=_env_flag("ASYNC_RESOURCE_STRICT_KEYS"),
            digest_algorithm=(
                os.getenv("ASYNC_RESOURCE_DIGEST", "sha256").strip().lower()
                or "sha256"
            ),
            log_args=_env_flag("ASYNC_RESOURCE_LOG_ARGS"),
        )
