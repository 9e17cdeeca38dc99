"""
In-process pieces of the path validation cache chain.

- canonical_title / pair_key: the one normalization used by both the durable
  table and the volatile cache.
- VolatileCache: bounded, lock-protected map with a TTL. Stale entries are
  dropped lazily on read and purged on insert; the oldest entry goes first
  when capacity is reached.
- SingleFlight: concurrent callers asking for the same key share one
  in-flight computation.
"""
import threading
import time
from collections import OrderedDict
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable, Generic, Hashable, TypeVar

T = TypeVar("T")

PairKey = tuple[str, str]


def canonical_title(title: str) -> str:
    return title.strip().lower()


def pair_key(source: str, target: str) -> PairKey:
    # titles may contain any character, so no joined string key
    return canonical_title(source), canonical_title(target)


@dataclass
class CacheEntry:
    key: Hashable
    result: Any
    timestamp: float


class VolatileCache:
    def __init__(self, ttl_seconds: float = 3600, max_entries: int = 2048,
    clock: Callable[[], float] = time.monotonic):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[Hashable, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

    def _is_stale(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.timestamp > self.ttl_seconds

    def get(self, key: Hashable) -> Any | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._is_stale(entry, now):
                del self._entries[key]
                return None
            return entry.result

    def set(self, key: Hashable, result: Any) -> None:
        now = self._clock()
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = CacheEntry(key=key, result=result, timestamp=now)
            self._purge_expired(now)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def _purge_expired(self, now: float) -> None:
        # insertion order == timestamp order, so stop at the first fresh entry
        while self._entries:
            oldest = next(iter(self._entries.values()))
            if not self._is_stale(oldest, now):
                break
            self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class SingleFlight(Generic[T]):
    def __init__(self):
        self._lock = threading.Lock()
        self._inflight: dict[Hashable, Future] = {}

    def do(self, key: Hashable, fn: Callable[[], T]) -> tuple[T, bool]:
        """
        Run fn once per key among concurrent callers.
        Returns (result, shared); shared is True for callers that waited on
        another caller's run. Exceptions propagate to every waiter.
        """
        with self._lock:
            future = self._inflight.get(key)
            leader = future is None
            if leader:
                future = Future()
                self._inflight[key] = future

        if not leader:
            return future.result(), True

        try:
            result = fn()
        except BaseException as e:
            future.set_exception(e)
            raise
        else:
            future.set_result(result)
            return result, False
        finally:
            with self._lock:
                self._inflight.pop(key, None)

    def inflight(self) -> int:
        with self._lock:
            return len(self._inflight)
