"""
In-process TTL cache for normalized player datasets.

Entries are replaced whole, never mutated. Expiry is judged against a single
clock read per operation. A lock guards every operation so the scheduled
sweep can run alongside request-path reads and writes.
"""
import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Optional, Tuple

from rosterstats.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    key: str
    payload: Any
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class CacheStore(ABC):
    """Backing store for PlayerCache. Swap in a shared store without touching callers."""

    @abstractmethod
    def get(self, key: str) -> Optional[CacheEntry]: ...

    @abstractmethod
    def set(self, entry: CacheEntry) -> None: ...

    @abstractmethod
    def delete(self, key: str) -> None: ...

    @abstractmethod
    def items(self) -> Iterator[Tuple[str, CacheEntry]]: ...

    @abstractmethod
    def clear(self) -> None: ...

    @abstractmethod
    def __len__(self) -> int: ...

    def ping(self) -> bool:
        return True


class MemoryStore(CacheStore):
    def __init__(self):
        self._data: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[CacheEntry]:
        return self._data.get(key)

    def set(self, entry: CacheEntry) -> None:
        self._data[entry.key] = entry

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def items(self) -> Iterator[Tuple[str, CacheEntry]]:
        # Snapshot so callers may delete while iterating
        return iter(list(self._data.items()))

    def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)


class PlayerCache:
    """
    Key -> payload cache with per-entry expiry.

    Args:
        ttl_seconds: default time-to-live for set() without an explicit ttl
        max_entries: upper bound on stored entries (0 disables the bound)
        store: backing store, MemoryStore by default
        clock: monotonic seconds source, injectable for tests
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        max_entries: Optional[int] = None,
        store: Optional[CacheStore] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = settings.cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        self.max_entries = settings.cache_max_entries if max_entries is None else max_entries
        self._store = store if store is not None else MemoryStore()
        self._clock = clock
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: str) -> Optional[Any]:
        """Return the payload for key, or None if absent or expired."""
        with self._lock:
            now = self._clock()
            entry = self._store.get(key)
            if entry is None:
                self._misses += 1
                logger.debug(f"Cache miss: {key}")
                return None
            if entry.is_expired(now):
                self._store.delete(key)
                self._misses += 1
                self._evictions += 1
                logger.debug(f"Cache expired: {key}")
                return None
            self._hits += 1
            logger.debug(f"Cache hit: {key}")
            return entry.payload

    def lookup(self, key: str) -> Optional[CacheEntry]:
        """Return the raw entry, expired or not, without evicting it."""
        with self._lock:
            return self._store.get(key)

    def restore(self, entry: CacheEntry) -> bool:
        """
        Put back an entry exactly as it was, expiry included, unless a newer
        entry has been stored under its key since. Returns True if restored.
        """
        with self._lock:
            current = self._store.get(entry.key)
            if current is not None and current.created_at > entry.created_at:
                return False
            self._store.set(entry)
            return True

    def set(self, key: str, payload: Any, ttl: Optional[float] = None) -> CacheEntry:
        """Store payload under key, replacing any previous entry and resetting expiry."""
        ttl = self.ttl_seconds if ttl is None else ttl
        if ttl < 0:
            raise ValueError("ttl must be non-negative")
        with self._lock:
            now = self._clock()
            entry = CacheEntry(key=key, payload=payload, created_at=now, expires_at=now + ttl)
            self._store.set(entry)
            if self.max_entries and len(self._store) > self.max_entries:
                self._enforce_bound(now, keep=key)
            return entry

    def sweep(self) -> int:
        """Drop every expired entry. Returns how many were removed."""
        with self._lock:
            now = self._clock()
            removed = self._sweep_locked(now)
        if removed:
            logger.info(f"Cache sweep removed {removed} expired entries")
        return removed

    def clear(self) -> None:
        with self._lock:
            count = len(self._store)
            self._store.clear()
        logger.info(f"Cache cleared ({count} entries dropped)")

    def live_entries(self) -> Iterator[CacheEntry]:
        """Snapshot of unexpired entries."""
        with self._lock:
            now = self._clock()
            entries = [e for _, e in self._store.items() if not e.is_expired(now)]
        return iter(entries)

    def ping(self) -> bool:
        with self._lock:
            return self._store.ping()

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "entries": len(self._store),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "max_entries": self.max_entries,
                "ttl_seconds": int(self.ttl_seconds),
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def _sweep_locked(self, now: float) -> int:
        removed = 0
        for key, entry in self._store.items():
            if entry.is_expired(now):
                self._store.delete(key)
                removed += 1
        self._evictions += removed
        return removed

    def _enforce_bound(self, now: float, keep: str) -> None:
        self._sweep_locked(now)
        overflow = len(self._store) - self.max_entries
        if overflow <= 0:
            return
        # Evict the entries closest to expiry first
        candidates = sorted(
            (e for k, e in self._store.items() if k != keep),
            key=lambda e: e.expires_at,
        )
        for entry in candidates[:overflow]:
            self._store.delete(entry.key)
            self._evictions += 1
        logger.debug(f"Cache bound enforced, evicted {min(overflow, len(candidates))} entries")
