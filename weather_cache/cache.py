"""
In-memory TTL cache store for weather records.

Entries expire passively on every read and are also removed by a periodic
sweep running on a background thread owned by the store. There is no size cap
and no LRU ordering: an entry lives until its TTL runs out, it is deleted, or
the store is flushed. Abandoned keys therefore cost memory until the next sweep.
"""
import copy
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from utils.metrics import (
    cache_evictions,
    cache_hit_rate,
    cache_hits,
    cache_keys,
    cache_misses,
)

from .errors import InvalidArgument

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 43200  # 12 hours
SWEEP_FRACTION = 0.2
STATS_FRACTION = 0.5


@dataclass
class CacheEntry:
    key: str
    value: Any
    expires_at: float


@dataclass(frozen=True)
class CacheStats:
    """Point-in-time copy of the store counters."""

    hits: int = 0
    misses: int = 0
    keys: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keys": self.keys,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": round(self.hit_rate, 4),
        }


def _validate_ttl(ttl_seconds: Any) -> int:
    # bool is an int subclass, reject it explicitly
    if isinstance(ttl_seconds, bool) or not isinstance(ttl_seconds, int):
        raise InvalidArgument(f"ttl_seconds must be a positive integer, got {ttl_seconds!r}")
    if ttl_seconds <= 0:
        raise InvalidArgument(f"ttl_seconds must be a positive integer, got {ttl_seconds}")
    return ttl_seconds


class CacheStore:
    """Thread-safe key/value store with per-entry TTL and hit/miss counters.

    Values are deep-copied on the way in and on the way out, so callers never
    hold a reference into the store.

    Args:
        default_ttl: TTL applied by ``set`` when the caller passes none.
        check_period: Seconds between expiry sweeps. Defaults to 20% of
            ``default_ttl``; ``0`` disables the background sweeper.
        stats_period: Seconds between stats reports. Defaults to 50% of
            ``default_ttl``.
        clock: Monotonic time source, replaceable in tests.
    """

    def __init__(
        self,
        default_ttl: int = DEFAULT_TTL_SECONDS,
        check_period: Optional[float] = None,
        stats_period: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.default_ttl = _validate_ttl(default_ttl)
        self.check_period = (
            default_ttl * SWEEP_FRACTION if check_period is None else check_period
        )
        self.stats_period = (
            default_ttl * STATS_FRACTION if stats_period is None else stats_period
        )
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0

        self._stop_event = threading.Event()
        self._sweeper: Optional[threading.Thread] = None
        if self.check_period > 0:
            self._sweeper = threading.Thread(
                target=self._run_sweeper, name="cache-sweeper", daemon=True
            )
            self._sweeper.start()

        logger.info(
            f"In-memory cache initialized with {self.default_ttl} seconds "
            f"({round(self.default_ttl / 3600)} hours) expiration time"
        )

    def get(self, key: str) -> Optional[Any]:
        """Return a copy of the live value for ``key``, or None."""
        expired = False
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._clock() >= entry.expires_at:
                del self._entries[key]
                entry = None
                expired = True

            if entry is None:
                self._misses += 1
            else:
                self._hits += 1

        if expired:
            self._on_removed(key, "expired")

        if entry is None:
            cache_misses.inc()
            return None

        cache_hits.inc()
        # Stored values are never mutated in place, copying outside the lock is safe
        return copy.deepcopy(entry.value)

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        """Store ``value`` under ``key``, replacing any entry and resetting its expiry."""
        if not isinstance(key, str) or not key:
            raise InvalidArgument("cache key must be a non-empty string")
        ttl = self.default_ttl if ttl_seconds is None else _validate_ttl(ttl_seconds)

        entry = CacheEntry(
            key=key, value=copy.deepcopy(value), expires_at=self._clock() + ttl
        )
        with self._lock:
            self._entries[key] = entry
            size = len(self._entries)

        cache_keys.set(size)
        return True

    def delete(self, key: str) -> bool:
        with self._lock:
            removed = self._entries.pop(key, None) is not None

        if removed:
            self._on_removed(key, "deleted")
        return removed

    def flush(self) -> bool:
        """Drop every entry. Hit/miss counters are lifetime totals and are kept."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()

        if count:
            cache_evictions.labels(reason="flushed").inc(count)
        cache_keys.set(0)
        logger.info(f"Cache: flushed {count} keys", extra={"event": "cache_flush"})
        return True

    def stats(self) -> CacheStats:
        with self._lock:
            now = self._clock()
            live = sum(1 for entry in self._entries.values() if now < entry.expires_at)
            return CacheStats(hits=self._hits, misses=self._misses, keys=live)

    def sweep(self) -> List[str]:
        """Remove every expired entry and return the removed keys."""
        with self._lock:
            now = self._clock()
            expired = [
                key for key, entry in self._entries.items() if now >= entry.expires_at
            ]
            for key in expired:
                del self._entries[key]
            size = len(self._entries)

        for key in expired:
            self._on_removed(key, "expired")
        if expired:
            cache_keys.set(size)
        return expired

    def report_stats(self) -> CacheStats:
        """Log the current counters and publish them as gauges."""
        stats = self.stats()
        cache_keys.set(stats.keys)
        cache_hit_rate.set(stats.hit_rate)
        logger.info(
            f"Cache Stats - Keys: {stats.keys}, Hits: {stats.hits}, "
            f"Misses: {stats.misses}, Hit Rate: {round(stats.hit_rate * 100)}%",
            extra={"event": "cache_stats"},
        )
        return stats

    def close(self) -> None:
        """Stop the background sweeper. Safe to call more than once."""
        self._stop_event.set()
        if self._sweeper is not None and self._sweeper.is_alive():
            self._sweeper.join(timeout=5)
        self._sweeper = None

    @property
    def closed(self) -> bool:
        return self._stop_event.is_set()

    def __enter__(self) -> "CacheStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _on_removed(self, key: str, reason: str) -> None:
        cache_evictions.labels(reason=reason).inc()
        logger.info(
            f"Cache: Key {reason}: {key}",
            extra={"event": f"cache_{reason}", "cache_key": key},
        )

    def _run_sweeper(self) -> None:
        # Offsets in seconds since the sweeper started
        elapsed = 0.0
        next_sweep = self.check_period
        next_report = self.stats_period if self.stats_period > 0 else None

        while True:
            deadline = next_sweep if next_report is None else min(next_sweep, next_report)
            if self._stop_event.wait(deadline - elapsed):
                break
            elapsed = deadline

            sweep_due = elapsed >= next_sweep
            report_due = next_report is not None and elapsed >= next_report
            if sweep_due:
                next_sweep += self.check_period
            if report_due:
                next_report += self.stats_period

            try:
                if sweep_due:
                    self.sweep()
                if report_due:
                    self.report_stats()
            except Exception as e:
                # Diagnostics must never kill the sweeper thread
                logger.error(f"Cache sweep failed: {e}")
