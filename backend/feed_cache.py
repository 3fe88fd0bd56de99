# backend/feed_cache.py
"""
Time-to-live cache for live feed snapshots.

LiveFeedCache.get() returns a cached payload while it is younger than the
TTL and otherwise refetches it. The backing store is pluggable:
FileCacheStore keeps one JSON file per feed, MemoryCacheStore keeps a dict.
"""
from __future__ import annotations

import json
import logging
import math
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol

from constants import CACHE_FILE_PREFIX, CACHE_TTL_SEC
from schedule_models import CacheEntry

logger = logging.getLogger(__name__)

FeedFetcher = Callable[[str], Optional[Dict[str, Any]]]

# Field injected into stored payloads (unix milliseconds)
CACHED_TIME_FIELD = "cached_time"


class CacheStore(Protocol):
    def get(self, key: str) -> Optional[CacheEntry]:
        ...

    def put(self, key: str, entry: CacheEntry) -> None:
        ...


class MemoryCacheStore:
    def __init__(self) -> None:
        self.entries: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[CacheEntry]:
        return self.entries.get(key)

    def put(self, key: str, entry: CacheEntry) -> None:
        self.entries[key] = entry


class FileCacheStore:
    """
    One JSON file per feed: <cache_dir>/<prefix><key>.json

    The file holds the feed payload with a "cached_time" field added.
    Writes go through a temp file + os.replace so readers never see a
    half-written file. There is no locking between processes.
    """

    def __init__(self, cache_dir: Path, prefix: str = CACHE_FILE_PREFIX) -> None:
        self.cache_dir = Path(cache_dir)
        self.prefix = prefix

    def path_for(self, key: str) -> Path:
        return self.cache_dir / f"{self.prefix}{key}.json"

    def get(self, key: str) -> Optional[CacheEntry]:
        path = self.path_for(key)
        if not path.exists():
            return None

        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)

        if not isinstance(data, dict) or CACHED_TIME_FIELD not in data:
            raise ValueError(f"Cache file {path} has no {CACHED_TIME_FIELD} field")

        payload = dict(data)
        cached_ms = float(payload.pop(CACHED_TIME_FIELD))
        if not math.isfinite(cached_ms):
            raise ValueError(f"Cache file {path} has a non-finite {CACHED_TIME_FIELD}")
        return CacheEntry(feed_name=key, fetched_at=cached_ms / 1000.0, payload=payload)

    def put(self, key: str, entry: CacheEntry) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(key)

        data = dict(entry.payload)
        data[CACHED_TIME_FIELD] = int(entry.fetched_at * 1000)

        fd, tmp_name = tempfile.mkstemp(dir=self.cache_dir, prefix=path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp_name, path)
        except Exception:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class LiveFeedCache:
    def __init__(
        self,
        store: CacheStore,
        fetcher: FeedFetcher,
        ttl_sec: float = CACHE_TTL_SEC,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.fetcher = fetcher
        self.ttl_sec = ttl_sec
        self.clock = clock

    def _read_entry(self, feed_name: str) -> Optional[CacheEntry]:
        try:
            return self.store.get(feed_name)
        except (OSError, ValueError, TypeError) as e:
            # json.JSONDecodeError is a ValueError
            logger.warning("Ignoring unreadable cache entry for %s: %s", feed_name, e)
            return None

    def is_fresh(self, entry: CacheEntry, now: float) -> bool:
        # entries stamped in the future are treated as stale
        return entry.fetched_at <= now and now - entry.fetched_at < self.ttl_sec

    def get(self, url: str, feed_name: str) -> Optional[Dict[str, Any]]:
        """
        Cached payload for feed_name if younger than the TTL, otherwise a
        fresh fetch of url. Returns None when no cached entry is usable and
        the fetch fails.
        """
        now = self.clock()
        entry = self._read_entry(feed_name)
        if entry is not None and self.is_fresh(entry, now):
            logger.debug("Cache hit for %s (age %.0fs)", feed_name, now - entry.fetched_at)
            return entry.payload

        payload = self.fetcher(url)
        if payload is None:
            logger.warning("No live data available for %s", feed_name)
            return None

        try:
            self.store.put(feed_name, CacheEntry(feed_name=feed_name, fetched_at=now, payload=payload))
        except (OSError, TypeError, ValueError) as e:
            logger.error("Failed to cache %s: %s", feed_name, e)

        return payload
