"""Day-keyed, TTL- and size-bounded cache of insight reports.

Entries are keyed by ``{user_id}_{YYYY-MM-DD}``, so a report is only ever
served on the calendar day it was cached, even when its TTL has not run out.
The full cache is written to durable storage after every mutation; storage
failures are reported through ``on_storage_error`` and never raised.

Two cache instances sharing one storage key race on persistence: each save
writes its own full snapshot and the last writer wins.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta

from pydantic import ValidationError

from wellness_insights.config import AppConfig
from wellness_insights.insights.schemas import CachedInsight, CacheStats, InsightReport
from wellness_insights.storage import KeyValueStorage, MemoryStorage
from wellness_insights.telemetry import CACHE_EVICTIONS, CACHE_HITS, CACHE_MISSES, CACHE_STORAGE_FAILURES

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(hours=24)
DEFAULT_MAX_SIZE = 50
DEFAULT_STORAGE_KEY = "insight_cache"

StorageErrorHook = Callable[[str, Exception], None]


def log_storage_error(operation: str, exc: Exception) -> None:
    CACHE_STORAGE_FAILURES.labels(operation=operation).inc()
    logger.warning(
        "insight cache storage %s failed",
        operation,
        exc_info=exc,
        extra={"operation": operation, "error_type": type(exc).__name__},
    )


class InsightCache:
    def __init__(
        self,
        storage: KeyValueStorage | None = None,
        ttl: timedelta = DEFAULT_TTL,
        max_size: int = DEFAULT_MAX_SIZE,
        storage_key: str = DEFAULT_STORAGE_KEY,
        clock: Callable[[], datetime] | None = None,
        on_storage_error: StorageErrorHook | None = None,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        if ttl < timedelta(0):
            raise ValueError("ttl must not be negative")
        self.storage = storage if storage is not None else MemoryStorage()
        self.ttl_ms = int(ttl.total_seconds() * 1000)
        self.max_size = max_size
        self.storage_key = storage_key
        self.clock = clock or (lambda: datetime.now(UTC))
        self.on_storage_error = on_storage_error or log_storage_error
        self._entries: dict[str, CachedInsight] = {}
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._load()

    def _now_ms(self) -> int:
        return int(self.clock().timestamp() * 1000)

    def cache_key(self, user_id: str) -> str:
        return f"{user_id}_{self.clock().date().isoformat()}"

    def _snapshot(self) -> str:
        payload = {key: entry.model_dump(mode="json") for key, entry in self._entries.items()}
        return json.dumps(payload, ensure_ascii=True, separators=(",", ":"))

    def _load(self) -> None:
        try:
            stored = self.storage.get_item(self.storage_key)
            if not stored:
                return
            data = json.loads(stored)
            if not isinstance(data, dict):
                raise ValueError("persisted insight cache is not a mapping")
        except Exception as exc:
            self.on_storage_error("load", exc)
            return

        now_ms = self._now_ms()
        for key, raw in data.items():
            try:
                entry = CachedInsight.model_validate(raw)
            except ValidationError:
                logger.warning("dropping malformed persisted cache entry", extra={"cache_key": key})
                continue
            if entry.is_valid(now_ms):
                self._entries[key] = entry
        logger.debug("restored %d insight cache entries", len(self._entries))

    def _save(self) -> None:
        try:
            self.storage.set_item(self.storage_key, self._snapshot())
        except Exception as exc:
            self.on_storage_error("save", exc)

    def get(self, user_id: str) -> InsightReport | None:
        key = self.cache_key(user_id)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or not entry.is_valid(self._now_ms()):
                self._entries.pop(key, None)
                self._misses += 1
                CACHE_MISSES.inc()
                return None
            self._hits += 1
            CACHE_HITS.inc()
            return entry.report

    def set(self, user_id: str, report: InsightReport) -> None:
        key = self.cache_key(user_id)
        entry = CachedInsight(report=report, timestamp=self._now_ms(), ttl=self.ttl_ms)
        with self._lock:
            # A re-set entry counts as newly inserted for eviction order.
            self._entries.pop(key, None)
            if len(self._entries) >= self.max_size:
                oldest = next(iter(self._entries))
                del self._entries[oldest]
                CACHE_EVICTIONS.inc()
                logger.debug("evicted oldest insight cache entry", extra={"cache_key": oldest})
            self._entries[key] = entry
            self._save()

    def invalidate(self, user_id: str) -> None:
        key = self.cache_key(user_id)
        with self._lock:
            self._entries.pop(key, None)
            self._save()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._save()

    def cleanup(self) -> int:
        with self._lock:
            now_ms = self._now_ms()
            expired = [key for key, entry in self._entries.items() if not entry.is_valid(now_ms)]
            for key in expired:
                del self._entries[key]
            if expired:
                self._save()
        return len(expired)

    def get_stats(self) -> CacheStats:
        with self._lock:
            now_ms = self._now_ms()
            valid = sum(1 for entry in self._entries.values() if entry.is_valid(now_ms))
            total = len(self._entries)
            lookups = self._hits + self._misses
            return CacheStats(
                total_entries=total,
                valid_entries=valid,
                expired_entries=total - valid,
                cache_hit_rate=round(self._hits / lookups, 4) if lookups else 0.0,
                memory_usage=len(self._snapshot().encode("utf-8")),
            )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


def build_default_cache(config: AppConfig, storage: KeyValueStorage | None = None) -> InsightCache:
    return InsightCache(
        storage=storage,
        ttl=timedelta(seconds=config.cache_ttl_seconds),
        max_size=config.cache_max_size,
        storage_key=config.cache_storage_key,
    )


def get_cached_insights(
    cache: InsightCache,
    user_id: str,
    generate_fn: Callable[[], InsightReport],
) -> InsightReport:
    cached = cache.get(user_id)
    if cached is not None:
        return cached
    report = generate_fn()
    cache.set(user_id, report)
    return report


async def get_cached_insights_async(
    cache: InsightCache,
    user_id: str,
    generate_fn: Callable[[], Awaitable[InsightReport]],
) -> InsightReport:
    cached = cache.get(user_id)
    if cached is not None:
        return cached
    report = await generate_fn()
    cache.set(user_id, report)
    return report
