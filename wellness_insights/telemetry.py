from __future__ import annotations

from prometheus_client import Counter

CACHE_HITS = Counter("wellness_insights_cache_hits_total", "Insight cache lookups served from cache")
CACHE_MISSES = Counter("wellness_insights_cache_misses_total", "Insight cache lookups that missed or expired")
CACHE_EVICTIONS = Counter("wellness_insights_cache_evictions_total", "Entries evicted to respect cache capacity")
CACHE_STORAGE_FAILURES = Counter(
    "wellness_insights_cache_storage_failures_total",
    "Durable storage reads or writes that failed",
    ["operation"],
)
INSIGHTS_EMITTED = Counter("wellness_insights_emitted_total", "Insights selected into reports", ["type"])
