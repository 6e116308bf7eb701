from __future__ import annotations

import logging
import threading

from wellness_insights.cache import InsightCache

logger = logging.getLogger(__name__)


class CacheCleanupTask:
    def __init__(self, cache: InsightCache, interval_seconds: int = 3600) -> None:
        self.cache = cache
        self.interval_seconds = max(1, interval_seconds)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def run_once(self) -> int:
        removed = self.cache.cleanup()
        if removed:
            logger.info("removed %d expired insight cache entries", removed)
        return removed

    def run_forever(self, stop_event: threading.Event | None = None) -> None:
        stop = stop_event or self._stop_event
        while not stop.wait(timeout=self.interval_seconds):
            try:
                self.run_once()
            except Exception:
                logger.exception("insight cache cleanup cycle failed")

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self.run_forever, name="insight-cache-cleanup", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
