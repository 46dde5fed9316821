"""Process-local read cache with per-entry expiry and prefix invalidation."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60


@dataclass
class CacheEntry:
    data: Any
    expiry: float


class TTLCache:
    """Thread-safe key/value store whose entries expire after a TTL.

    The cache is an optimisation only. It is never shared across processes,
    so the durable store stays the source of truth.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = Lock()

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or ``None`` when absent or expired."""

        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() >= entry.expiry:
                del self._entries[key]
                return None
            return entry.data

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        expiry = self._clock() + (self._ttl if ttl is None else ttl)
        with self._lock:
            self._entries[key] = CacheEntry(data=value, expiry=expiry)

    def clear(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear_by_prefix(self, prefix: str) -> int:
        """Drop every entry whose key starts with ``prefix``; returns the count."""

        with self._lock:
            doomed = [key for key in self._entries if key.startswith(prefix)]
            for key in doomed:
                del self._entries[key]
        if doomed:
            logger.debug("Cleared %s cache entries under '%s'", len(doomed), prefix)
        return len(doomed)

    def clear_all(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
