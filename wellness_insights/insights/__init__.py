from wellness_insights.insights.engine import InsightEngine, generate_insights

__all__ = ["InsightEngine", "generate_insights"]
