"""Personal wellness insight engine and report cache."""

from wellness_insights.cache import InsightCache, get_cached_insights, get_cached_insights_async
from wellness_insights.insights.engine import InsightEngine, generate_insights
from wellness_insights.insights.schemas import InsightEngineInput, InsightReport

__all__ = [
    "InsightCache",
    "InsightEngine",
    "InsightEngineInput",
    "InsightReport",
    "generate_insights",
    "get_cached_insights",
    "get_cached_insights_async",
]
