"""
Time-bounded LRU cache for composite analysis reports.

Keys are ``(resume_id, version)``. Expiry is checked lazily on read; an entry
is unreachable from the moment its TTL has elapsed.
"""
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Hashable, Optional

from match_engine.models.results import AnalysisReport
from match_engine.utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class _Entry:
    value: AnalysisReport
    expires_at: float


class ResultCache:

    def __init__(
        self,
        ttl: float = 3600.0,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[Hashable, _Entry]" = OrderedDict()
        # recently dropped keys, bounded like the cache itself
        self._evicted: "OrderedDict[Hashable, None]" = OrderedDict()
        self._lock = threading.RLock()
        self.hits = 0
        self.misses = 0

    def get(self, key: Hashable) -> Optional[AnalysisReport]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            if self._clock() >= entry.expires_at:
                self._drop(key)
                self.misses += 1
                logger.debug(f"Cache entry {key} expired")
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return entry.value

    def put(self, key: Hashable, value: AnalysisReport, ttl: Optional[float] = None) -> None:
        lifetime = self.ttl if ttl is None else ttl
        if lifetime <= 0:
            raise ValueError("ttl must be positive")
        with self._lock:
            self._entries[key] = _Entry(value, self._clock() + lifetime)
            self._entries.move_to_end(key)
            self._evicted.pop(key, None)
            while len(self._entries) > self.max_entries:
                oldest = next(iter(self._entries))
                self._drop(oldest)
                logger.debug(f"Cache full, evicted {oldest}")

    def invalidate(self, key: Hashable) -> bool:
        with self._lock:
            if key not in self._entries:
                return False
            self._drop(key)
            return True

    def invalidate_resume(self, resume_id: str) -> int:
        """Drop every cached version of one resume."""
        with self._lock:
            keys = [k for k in self._entries if isinstance(k, tuple) and k and k[0] == resume_id]
            for k in keys:
                self._drop(k)
            return len(keys)

    def purge_expired(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if now >= e.expires_at]
            for k in expired:
                self._drop(k)
            return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._evicted.clear()

    def was_evicted(self, key: Hashable) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._clock() >= entry.expires_at:
                self._drop(key)
            return key in self._evicted

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and self._clock() < entry.expires_at

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _drop(self, key: Hashable) -> None:
        self._entries.pop(key, None)
        self._evicted[key] = None
        self._evicted.move_to_end(key)
        while len(self._evicted) > self.max_entries:
            self._evicted.popitem(last=False)
