"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Deterministic cache keys derived from a source function and its arguments.
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
from collections.abc import Mapping
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from .errors import KeyDerivationError
from .settings import ResourceSettings

_DEFAULT_SETTINGS = ResourceSettings()


@dataclasses.dataclass(frozen=True, slots=True)
class CacheKey:
    """
    Identity of one cache entry.

    ``owner`` is the source function itself, so equal argument lists for two
    different functions never compare equal even if their digests match.
    """

    namespace: str
    digest: str
    owner: Any = dataclasses.field(repr=False)

    def short(self) -> str:
        """Compact form used in log lines."""
        return f"{self.namespace}:{self.digest[:12]}"


def function_namespace(fn: Any) -> str:
    """Return a readable dotted name for `fn`."""
    func = getattr(fn, "__func__", fn)
    module = getattr(func, "__module__", None) or "<unknown>"
    name = getattr(func, "__qualname__", None) or type(fn).__qualname__
    return f"{module}.{name}"


def _type_name(value: Any) -> str:
    cls = type(value)
    return f"{cls.__module__}.{cls.__qualname__}"


def _sort_token(node: Any) -> str:
    return json.dumps(node, ensure_ascii=True, sort_keys=True)


def _encode(value: Any, *, strict: bool) -> Any:
    """
    Map one argument onto a tagged JSON tree.

    Tags keep values that JSON would conflate apart: lists vs tuples, ``True``
    vs ``1``, and ``"1"`` vs ``1`` as mapping keys.
    """
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, bool):
        return {"bool": value}
    if isinstance(value, Enum):
        return {"enum": _type_name(value), "value": _encode(value.value, strict=strict)}
    if isinstance(value, int):
        return {"int": str(value)}
    if isinstance(value, float):
        return {"float": repr(value)}
    if isinstance(value, (bytes, bytearray)):
        return {"bytes": bytes(value).hex()}
    if isinstance(value, list):
        return {"list": [_encode(item, strict=strict) for item in value]}
    if isinstance(value, tuple):
        return {"tuple": [_encode(item, strict=strict) for item in value]}
    if isinstance(value, (set, frozenset)):
        items = [_encode(item, strict=strict) for item in value]
        return {"set": sorted(items, key=_sort_token)}
    if isinstance(value, Mapping):
        pairs = [
            [_encode(k, strict=strict), _encode(v, strict=strict)]
            for k, v in value.items()
        ]
        return {"map": sorted(pairs, key=lambda pair: _sort_token(pair[0]))}
    if isinstance(value, BaseModel):
        return {
            "model": _type_name(value),
            "fields": _encode(value.model_dump(mode="json"), strict=strict),
        }
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        fields = {
            f.name: getattr(value, f.name) for f in dataclasses.fields(value)
        }
        return {"dataclass": _type_name(value), "fields": _encode(fields, strict=strict)}
    if isinstance(value, (datetime, date, time)):
        return {"temporal": _type_name(value), "value": value.isoformat()}
    if isinstance(value, (Decimal, UUID)):
        return {"scalar": _type_name(value), "value": str(value)}

    if strict:
        raise KeyDerivationError(
            f"Argument of type '{_type_name(value)}' has no structural encoding"
        )
    return {"repr": _type_name(value), "value": repr(value)}


def encode_arguments(
    args: tuple[Any, ...],
    kwargs: Mapping[str, Any] | None = None,
    *,
    strict: bool = False,
) -> str:
    """Serialize an argument list into its canonical JSON text."""
    payload = {
        "args": [_encode(arg, strict=strict) for arg in args],
        "kwargs": _encode(dict(kwargs or {}), strict=strict),
    }
    return json.dumps(
        payload, ensure_ascii=True, sort_keys=True, separators=(",", ":")
    )


def derive_key(
    fn: Any,
    args: tuple[Any, ...] = (),
    kwargs: Mapping[str, Any] | None = None,
    *,
    settings: ResourceSettings | None = None,
) -> CacheKey:
    """Build the deterministic cache key for `fn` called with `args`/`kwargs`."""
    cfg = settings or _DEFAULT_SETTINGS
    normalized = encode_arguments(tuple(args), kwargs, strict=cfg.strict_keys)
    digest = hashlib.new(cfg.digest_algorithm, normalized.encode("utf-8")).hexdigest()
    return CacheKey(namespace=function_namespace(fn), digest=digest, owner=fn)
