from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class CachedValue(Generic[T]):
    value: T
    expires_at: float


class TTLCache(Generic[T]):
    """
    Process-wide single-value cache with explicit expiry.
    The loader runs on first access and again once the entry has expired.
    """

    def __init__(self, ttl_s: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl_s = ttl_s
        self._clock = clock
        self._entry: Optional[CachedValue[T]] = None

    def peek(self) -> Optional[T]:
        entry = self._entry
        if entry is None or self._clock() >= entry.expires_at:
            return None
        return entry.value

    def put(self, value: T) -> T:
        self._entry = CachedValue(value=value, expires_at=self._clock() + self._ttl_s)
        return value

    async def get(self, loader: Callable[[], Awaitable[T]]) -> T:
        cached = self.peek()
        if cached is not None:
            return cached
        return self.put(await loader())

    def clear(self) -> None:
        self._entry = None
