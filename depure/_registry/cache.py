"""Time-to-live cache for registry lookups.

The cache is an explicit object owned by whoever runs resolutions (the
engine, the CLI) rather than module-level state, so separate runs can
share one instance and tests can build their own.
"""

import json
import os
import threading
import time
from concurrent.futures import Future
from pathlib import Path
from typing import Callable, Dict, Optional

from ..logging_config import logger
from .models import CacheEntry, PackageRecord, normalize_package_name

DEFAULT_TTL = 3600  # seconds

# Persisted cache location (XDG compliant)
DEFAULT_CACHE_DIR = Path(os.environ.get("XDG_CACHE_HOME", Path.home() / ".cache")) / "depure"
DEFAULT_CACHE_FILE = DEFAULT_CACHE_DIR / "registry-cache.json"

CACHE_FORMAT_VERSION = 1


class RegistryCache:
    """
    Memoizes registry lookups by canonical package name.

    Entries (positive and negative) expire after ``ttl`` seconds. Concurrent
    callers asking for the same name while a fetch is in flight wait for
    that fetch instead of issuing their own.

    Example:
        cache = RegistryCache(ttl=600)
        record = cache.get_or_fetch("requests", client.fetch)
    """

    def __init__(self, ttl: float = DEFAULT_TTL, clock: Callable[[], float] = time.time) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._in_flight: Dict[str, Future] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: str) -> bool:
        return self.get(name) is not None

    def now(self) -> float:
        return self._clock()

    def get(self, name: str) -> Optional[CacheEntry]:
        """Return the fresh entry for ``name``, or None if absent or expired."""
        key = normalize_package_name(name)
        with self._lock:
            return self._fresh_entry(key)

    def put(self, name: str, record: Optional[PackageRecord]) -> CacheEntry:
        """Store a lookup result (None for a confirmed negative)."""
        key = normalize_package_name(name)
        with self._lock:
            return self._store(key, record)

    def get_or_fetch(self, name: str, fetch: Callable[[str], Optional[PackageRecord]]) -> Optional[PackageRecord]:
        """
        Return the cached record for ``name`` or fetch and cache it.

        Args:
            name: Package name (normalized before use)
            fetch: Callable performing the actual registry request

        Returns:
            The PackageRecord, or None for a (cached) negative result
        """
        key = normalize_package_name(name)

        with self._lock:
            entry = self._fresh_entry(key)
            if entry is not None:
                self.hits += 1
                logger.debug(f"Cache hit (registry): {key}")
                return entry.record

            pending = self._in_flight.get(key)
            owner = pending is None
            if owner:
                pending = Future()
                self._in_flight[key] = pending
                self.misses += 1

        if not owner:
            logger.debug(f"Waiting on in-flight registry lookup: {key}")
            return pending.result()

        try:
            record = fetch(key)
        except BaseException as e:
            with self._lock:
                self._in_flight.pop(key, None)
            pending.set_exception(e)
            raise

        with self._lock:
            self._store(key, record)
            self._in_flight.pop(key, None)
        pending.set_result(record)
        return record

    def clear(self) -> None:
        """Remove all entries."""
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def purge_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = self.now()
        with self._lock:
            stale = [key for key, entry in self._entries.items() if not entry.is_fresh(now, self.ttl)]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def save(self, path: Path = DEFAULT_CACHE_FILE) -> None:
        """
        Persist fresh entries to a JSON file.

        Args:
            path: Destination file; parent directories are created
        """
        self.purge_expired()
        with self._lock:
            entries = {
                key: {
                    "fetched_at": entry.fetched_at,
                    "record": entry.record.to_dict() if entry.record else None,
                }
                for key, entry in self._entries.items()
            }

        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump({"version": CACHE_FORMAT_VERSION, "entries": entries}, f)
        logger.debug(f"Saved {len(entries)} registry cache entries to {path}")

    def load(self, path: Path = DEFAULT_CACHE_FILE) -> int:
        """
        Load entries persisted by ``save``; expired entries are skipped.

        A missing, unreadable or incompatible file leaves the cache unchanged.

        Returns:
            Number of entries loaded
        """
        if not path.exists():
            return 0

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable registry cache {path}: {e}")
            return 0

        if (
            not isinstance(data, dict)
            or data.get("version") != CACHE_FORMAT_VERSION
            or not isinstance(data.get("entries", {}), dict)
        ):
            logger.debug(f"Ignoring registry cache with unknown format: {path}")
            return 0

        now = self.now()
        loaded = 0
        with self._lock:
            for key, raw in data.get("entries", {}).items():
                try:
                    fetched_at = float(raw["fetched_at"])
                    record = PackageRecord.from_dict(raw["record"]) if raw.get("record") else None
                except (AttributeError, KeyError, TypeError, ValueError) as e:
                    logger.debug(f"Skipping malformed cache entry {key}: {e}")
                    continue
                entry = CacheEntry(record=record, fetched_at=fetched_at)
                if entry.is_fresh(now, self.ttl):
                    self._entries[key] = entry
                    loaded += 1

        logger.debug(f"Loaded {loaded} registry cache entries from {path}")
        return loaded

    def _fresh_entry(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not entry.is_fresh(self.now(), self.ttl):
            # Superseded on the next store, never mutated
            return None
        return entry

    def _store(self, key: str, record: Optional[PackageRecord]) -> CacheEntry:
        entry = CacheEntry(record=record, fetched_at=self.now())
        self._entries[key] = entry
        return entry
