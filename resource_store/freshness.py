"""Freshness policy: timestamps and the cache-or-fetch decision."""

from __future__ import annotations

import time
from dataclasses import replace
from typing import Optional

from resource_store.models import ResourceSlice


def now_ms() -> int:
    return int(time.time() * 1000)


def get_accessed_at() -> int:
    return now_ms()


def get_expires_at(max_age: int) -> int:
    return now_ms() + max_age


def is_from_ssr(slice_: ResourceSlice) -> bool:
    """A hydrated slice carries none of the timestamps a live fetch generates."""
    return slice_.expires_at is None and slice_.accessed_at is None


def set_expires_at(slice_: ResourceSlice, max_age: int) -> ResourceSlice:
    return replace(slice_, expires_at=get_expires_at(max_age))


def should_use_cache(slice_: Optional[ResourceSlice]) -> bool:
    if slice_ is None or slice_.loading or slice_.error is not None:
        return False
    return slice_.expires_at is None or slice_.expires_at > now_ms()


__all__ = [
    "get_accessed_at",
    "get_expires_at",
    "is_from_ssr",
    "now_ms",
    "set_expires_at",
    "should_use_cache",
]
