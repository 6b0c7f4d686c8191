"""
Resized Image Cache

Thread-safe in-memory cache of resized images keyed by
"{cid}_{width}x{height}".

Features:
- Sliding expiration: every hit resets the entry's TTL
- Expired entries are misses even before the sweep removes them
- Background sweep task on its own interval
- No size bound, contents are lost on restart
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Dict, Optional

from .models import CachedImage

logger = logging.getLogger(__name__)


@dataclass
class _Slot:
    """Cached value plus its expiry deadline."""
    value: CachedImage
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class ResultCache:
    """
    Key -> CachedImage store with touch-on-read expiration.

    Usage:
        cache = ResultCache(ttl_seconds=12 * 3600, sweep_interval_seconds=24 * 3600)
        cache.start()          # inside a running event loop
        cache.set(key, image)
        image = cache.get(key)
        await cache.shutdown()
    """

    def __init__(
        self,
        ttl_seconds: float = 12 * 60 * 60,
        sweep_interval_seconds: float = 24 * 60 * 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if sweep_interval_seconds <= 0:
            raise ValueError("sweep_interval_seconds must be positive")

        self.ttl_seconds = ttl_seconds
        self.sweep_interval_seconds = sweep_interval_seconds
        self._clock = clock

        self._store: Dict[str, _Slot] = {}
        self._lock = Lock()
        self._sweep_task: Optional[asyncio.Task] = None

        self._hits = 0
        self._misses = 0

    # ============================================
    # Lookup / store
    # ============================================

    def get(self, key: str) -> Optional[CachedImage]:
        """
        Get a cached image and keep it alive.

        Returns:
            The cached image with its TTL reset, or None on a miss
            (including expired-but-unswept entries).
        """
        with self._lock:
            slot = self._store.get(key)
            now = self._clock()

            if slot is None:
                self._misses += 1
                return None

            if slot.is_expired(now):
                del self._store[key]
                self._misses += 1
                logger.debug(f"[ImageCache] Expired on read: {key}")
                return None

            slot.expires_at = now + self.ttl_seconds
            self._hits += 1
            return slot.value

    def set(self, key: str, value: CachedImage) -> None:
        """Store a value with a fresh full TTL, replacing any previous one."""
        with self._lock:
            self._store[key] = _Slot(value=value, expires_at=self._clock() + self.ttl_seconds)
        logger.debug(f"[ImageCache] Cached: {key} ({value.size_bytes} bytes)")

    def __contains__(self, key: str) -> bool:
        # Does not touch the entry
        with self._lock:
            slot = self._store.get(key)
            return slot is not None and not slot.is_expired(self._clock())

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    # ============================================
    # Maintenance
    # ============================================

    def cleanup_expired(self) -> int:
        """
        Remove all expired entries.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            now = self._clock()
            expired = [k for k, slot in self._store.items() if slot.is_expired(now)]
            for k in expired:
                del self._store[k]

        if expired:
            logger.info(f"[ImageCache] Cleaned up {len(expired)} expired entries")
        return len(expired)

    def clear(self) -> int:
        """Drop every entry. Returns the number removed."""
        with self._lock:
            count = len(self._store)
            self._store.clear()
        logger.info(f"[ImageCache] Cleared all {count} entries")
        return count

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            total_size = sum(slot.value.size_bytes for slot in self._store.values())
            return {
                "total_entries": len(self._store),
                "total_size_bytes": total_size,
                "total_size_mb": round(total_size / (1024 * 1024), 2),
                "ttl_seconds": self.ttl_seconds,
                "sweep_interval_seconds": self.sweep_interval_seconds,
                "hits": self._hits,
                "misses": self._misses,
            }

    # ============================================
    # Background sweep
    # ============================================

    @property
    def is_running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    def start(self) -> None:
        """Start the periodic sweep. Must be called from a running event loop."""
        if self.is_running:
            return
        self._sweep_task = asyncio.get_running_loop().create_task(self._sweep_loop())
        logger.info(
            f"[ImageCache] Sweep started (ttl={self.ttl_seconds}s, "
            f"interval={self.sweep_interval_seconds}s)"
        )

    async def shutdown(self) -> None:
        """Stop the periodic sweep and wait for it to finish."""
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("[ImageCache] Sweep stopped")

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_seconds)
            try:
                self.cleanup_expired()
            except Exception as e:
                logger.error(f"[ImageCache] Sweep failed: {e}")
