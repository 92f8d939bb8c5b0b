"""
In-process TTL cache with tag based invalidation.

Report endpoints cache their JSON per tenant and query. Writes to ledger data
drop every entry tagged with the tenant, see the invalidation middleware in
main.py.
"""
import fnmatch
import logging
import os
import threading
import time

logger = logging.getLogger(__name__)

CACHE_VERSION = os.getenv("APP_VERSION", "1.0.0")
DEFAULT_TTL = int(os.getenv("REPORT_CACHE_TTL", "300"))

# seconds
REPORT_TTLS = {
    "dashboard": 300,
    "cash-flow": 600,
    "category-spending": 600,
    "expenses": 600,
    "investments": 900,
    "goals": 600,
    "trial-balance": 300,
}


class TTLCache:
    def __init__(self, default_ttl: int = DEFAULT_TTL, clock=time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._store = {}  # key -> (expires_at, value, tags)
        self._tags = {}  # tag -> set(keys)
        self._stats = {"hits": 0, "misses": 0, "sets": 0, "deletes": 0}

    def get(self, key):
        with self._lock:
            item = self._store.get(key)
            if item is None:
                self._stats["misses"] += 1
                return None
            expires_at, value, _ = item
            if expires_at <= self._clock():
                self._remove(key)
                self._stats["misses"] += 1
                return None
            self._stats["hits"] += 1
            return value

    def set(self, key, value, ttl: int = None, tags=None):
        ttl = self.default_ttl if ttl is None else ttl
        tags = set(tags or [])
        with self._lock:
            if key in self._store:
                self._remove(key)
            self._store[key] = (self._clock() + ttl, value, tags)
            for tag in tags:
                self._tags.setdefault(tag, set()).add(key)
            self._stats["sets"] += 1

    def delete(self, key) -> bool:
        with self._lock:
            if key not in self._store:
                return False
            self._remove(key)
            self._stats["deletes"] += 1
            return True

    def remember(self, key, factory, ttl: int = None, tags=None):
        """Return the cached value for `key`, building and storing it on a miss."""
        value = self.get(key)
        if value is not None:
            return value
        value = factory()
        self.set(key, value, ttl=ttl, tags=tags)
        return value

    def invalidate_by_tags(self, tags) -> int:
        with self._lock:
            keys = set()
            for tag in tags:
                keys |= self._tags.get(tag, set())
            for key in keys:
                self._remove(key)
            self._stats["deletes"] += len(keys)
        if keys:
            logger.info(f"Invalidated {len(keys)} cache entries for tags {list(tags)}")
        return len(keys)

    def invalidate_by_pattern(self, pattern: str) -> int:
        with self._lock:
            keys = [key for key in self._store if fnmatch.fnmatchcase(key, pattern)]
            for key in keys:
                self._remove(key)
            self._stats["deletes"] += len(keys)
        return len(keys)

    def clear(self) -> int:
        with self._lock:
            count = len(self._store)
            self._store.clear()
            self._tags.clear()
            self._stats["deletes"] += count
        return count

    def stats(self) -> dict:
        with self._lock:
            lookups = self._stats["hits"] + self._stats["misses"]
            hit_rate = round(self._stats["hits"] * 100 / lookups, 2) if lookups else 0.0
            return {**self._stats, "hit_rate": hit_rate, "size": len(self._store)}

    def reset_stats(self):
        with self._lock:
            self._stats = {"hits": 0, "misses": 0, "sets": 0, "deletes": 0}

    def _remove(self, key):
        # caller holds the lock
        _, _, tags = self._store.pop(key)
        for tag in tags:
            keys = self._tags.get(tag)
            if keys is not None:
                keys.discard(key)
                if not keys:
                    del self._tags[tag]


def tenant_tag(tenant_id) -> str:
    return f"tenant:{tenant_id}"


def report_key(report_type: str, tenant_id, **params) -> str:
    parts = [f"{name}={params[name]}" for name in sorted(params) if params[name] is not None]
    return f"v{CACHE_VERSION}:reports:{report_type}:{tenant_id}:" + "&".join(parts)


def report_tags(report_type: str, tenant_id):
    return [tenant_tag(tenant_id), "reports", report_type]


report_cache = TTLCache()
