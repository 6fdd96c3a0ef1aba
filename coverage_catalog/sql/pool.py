"""
Canonical Pool for Catalog Value Objects.

Keeps weak references to immutable value objects so that structurally
equal values resolve to one shared instance for as long as anything
else holds a reference to it:
- Value equality (not identity) decides whether a value is known
- Weak retention: unreferenced values are reclaimed by the collector
- Thread-safe compare-and-insert

The pool is an explicit component: construct one and inject it into
every table that should share instances.
"""

import logging
import threading
import weakref
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class PoolStatistics:
    """Statistics about pool usage."""

    size: int = 0
    hits: int = 0
    misses: int = 0
    buckets: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate pool hit rate."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "size": self.size,
            "hits": self.hits,
            "misses": self.misses,
            "buckets": self.buckets,
            "hit_rate": self.hit_rate,
        }


class CanonicalPool:
    """
    Weak set of canonical instances.

    Values are bucketed by hash; each bucket holds weak references that
    are compared by equality. When a pooled value is reclaimed, its
    reference is removed from its bucket, and the bucket is dropped once
    empty. A reclamation that happens while the pool lock is held (by
    another thread, or by a collection triggered inside the pool itself)
    is queued and applied by the next pool operation.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._buckets: Dict[int, List[weakref.ref]] = {}
        self._pending: List[Tuple[int, weakref.ref]] = []
        self._hits = 0
        self._misses = 0

    def _make_ref(self, key: int, value: Any) -> weakref.ref:
        pool_ref = weakref.ref(self)

        def _reclaimed(ref):
            pool = pool_ref()
            if pool is not None:
                pool._on_reclaimed(key, ref)

        return weakref.ref(value, _reclaimed)

    def _on_reclaimed(self, key: int, ref: weakref.ref) -> None:
        # Never block here: the collector may run while this thread holds the lock.
        if self._lock.acquire(blocking=False):
            try:
                self._discard(key, ref)
            finally:
                self._lock.release()
        else:
            self._pending.append((key, ref))

    def _discard(self, key: int, ref: weakref.ref) -> bool:
        """Remove one reference. The lock must be held."""
        bucket = self._buckets.get(key)
        if bucket is None:
            return False
        try:
            bucket.remove(ref)
        except ValueError:
            return False
        finally:
            if not bucket:
                del self._buckets[key]
        return True

    def _apply_pending(self) -> int:
        """Apply queued removals. The lock must be held."""
        dropped = 0
        while self._pending:
            key, ref = self._pending.pop()
            if self._discard(key, ref):
                dropped += 1
        return dropped

    def canonicalize(self, value: T) -> T:
        """
        Return the pooled instance equal to value, pooling value if none.

        Args:
            value: Hashable, weak-referenceable immutable value

        Returns:
            The shared instance equal to value

        Raises:
            TypeError: If value cannot be weakly referenced
        """
        if value is None:
            return None
        key = hash(value)
        with self._lock:
            self._apply_pending()
            bucket = self._buckets.get(key, ())
            for ref in bucket:
                existing = ref()
                if existing is not None and existing == value:
                    self._hits += 1
                    if existing is not value:
                        logger.debug(f"Reusing pooled {type(existing).__name__}: {existing}")
                    return existing
            ref = self._make_ref(key, value)
            self._buckets.setdefault(key, []).append(ref)
            self._misses += 1
            return value

    def __contains__(self, value: object) -> bool:
        with self._lock:
            for ref in self._buckets.get(hash(value), ()):
                existing = ref()
                if existing is not None and existing == value:
                    return True
        return False

    def __len__(self) -> int:
        with self._lock:
            self._apply_pending()
            return sum(
                1
                for bucket in self._buckets.values()
                for ref in bucket
                if ref() is not None
            )

    def purge(self) -> int:
        """
        Drop references to reclaimed values still held by the pool.

        Returns:
            Number of references dropped
        """
        with self._lock:
            dropped = self._apply_pending()
            for key in list(self._buckets):
                bucket = self._buckets[key]
                alive = [ref for ref in bucket if ref() is not None]
                dropped += len(bucket) - len(alive)
                if alive:
                    bucket[:] = alive
                else:
                    del self._buckets[key]
        if dropped:
            logger.debug(f"Purged {dropped} reclaimed pool entries")
        return dropped

    def clear(self) -> None:
        with self._lock:
            self._buckets.clear()
            self._pending.clear()

    def get_statistics(self) -> PoolStatistics:
        """Get pool statistics."""
        size = len(self)
        with self._lock:
            return PoolStatistics(
                size=size,
                hits=self._hits,
                misses=self._misses,
                buckets=len(self._buckets),
            )
